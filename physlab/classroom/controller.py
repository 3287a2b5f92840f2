"""
AssignmentController - Progress state machine for one assignment attempt.

Provides:
- Answer recording with the publication and network access gates
- Solution reveal (explicitly confirmed, irreversible, disqualifying)
- Linear navigation and randomized variation selection
- Resume position and review mode for re-entered assignments

Every operation is request-scoped: it re-reads the latest record, derives
its decision from it, and writes the whole record back in one upsert.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from physlab.errors import (
    DraftAssignment,
    AccessRestricted,
    ExhaustedVariations,
    InvalidInput,
    NotFound,
    PermissionDenied,
)
from physlab.schemas import Assignment, CollectionCategory, ProgressRecord

from .access import AccessGate
from .context import RequestContext
from .evaluator import evaluate
from .loader import ClassroomLoader
from .progress import ProgressStore

logger = logging.getLogger(__name__)


@dataclass
class AssignmentView:
    """What the player needs to (re-)enter an assignment."""
    assignment: Assignment
    record: ProgressRecord
    active_index: int
    review_mode: bool
    exhausted: bool
    progress_percent: float


@dataclass
class AnswerResult:
    correct: bool
    credited: bool  # False in review mode or on a revealed index
    record: ProgressRecord


# -----------------------------------------------------------------------------
# Completion rules
# -----------------------------------------------------------------------------

def eligible_variations(record: ProgressRecord, total: int) -> list[int]:
    """Variation indices neither completed nor revealed, ascending."""
    return sorted(set(range(total)) - record.resolved_indices)


def is_attempt_completed(assignment: Assignment, record: ProgressRecord) -> bool:
    """
    Derive completion from the record.

    Linear mode: the last question is answered or revealed.
    Variation mode: at least K variations answered correctly; reveals never count.
    """
    if assignment.is_variation_mode:
        return len(record.completed_question_indices) >= assignment.required_variations_count
    total = assignment.total_questions
    if total == 0:
        return False
    return (total - 1) in record.resolved_indices


def assignment_progress_percent(assignment: Assignment, record: Optional[ProgressRecord]) -> float:
    """Question-level progress of one attempt, 0-100."""
    if record is None:
        return 0.0
    if assignment.is_variation_mode:
        required = assignment.required_variations_count
        return 100 * min(len(record.completed_question_indices), required) / required
    if assignment.total_questions == 0:
        return 0.0
    return 100 * len(record.completed_question_indices) / assignment.total_questions


class AssignmentController:
    """
    Own the progress state machine of assignment attempts.

    Combines ClassroomLoader (content), ProgressStore (records) and
    AccessGate (network policy). Holds no per-student state between calls.
    """

    def __init__(
        self,
        loader: ClassroomLoader,
        store: ProgressStore,
        gate: AccessGate,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize controller.

        Args:
            loader: ClassroomLoader for assignment lookups
            store: ProgressStore for record reads and upserts
            gate: AccessGate consulted before classwork writes
            rng: Random source for variation selection (anything with choice())
        """
        self.loader = loader
        self.store = store
        self.gate = gate
        self.rng = rng or random.Random()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_assignment(self, assignment_id: str) -> Assignment:
        assignment = self.loader.get_assignment(assignment_id)
        if assignment is None:
            raise NotFound("assignment", assignment_id)
        return assignment

    @staticmethod
    def _check_index(assignment: Assignment, index) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidInput(f"Question index must be an integer, got {index!r}")
        if not 0 <= index < assignment.total_questions:
            raise InvalidInput(
                f"Question index {index} out of range for {assignment.total_questions} questions"
            )
        return index

    def _authorize_write(self, ctx: RequestContext, assignment: Assignment):
        """Publication gate first, then the classwork network gate."""
        if not assignment.published:
            logger.info(f"Rejected write on draft assignment {assignment.id}")
            raise DraftAssignment(assignment.id)

        if assignment.effective_category == CollectionCategory.CLASSWORK:
            check = self.gate.check_access(
                assignment.classroom_id, assignment.effective_category, ctx
            )
            if check.restricted:
                raise AccessRestricted(assignment.classroom_id, check.current_ip)

    @staticmethod
    def _check_reachable(assignment: Assignment, record: ProgressRecord, index: int):
        """Linear mode: an unfinished attempt cannot skip past an unresolved question."""
        if assignment.is_variation_mode or is_attempt_completed(assignment, record):
            return
        unresolved = [i for i in range(index) if i not in record.resolved_indices]
        if unresolved:
            raise InvalidInput(f"Question {unresolved[0] + 1} must be finished first")

    def _current_record(self, student_id: str, assignment: Assignment) -> ProgressRecord:
        record = self.store.get_progress(student_id, assignment.id)
        if record is None:
            return ProgressRecord(student_id=student_id, assignment_id=assignment.id)
        return record

    def _save(
        self,
        assignment: Assignment,
        record: ProgressRecord,
        recompute: bool = True,
    ) -> ProgressRecord:
        if recompute:
            derived = is_attempt_completed(assignment, record)
            if record.is_completed and not derived:
                logger.warning(
                    f"Stored completion for {record.student_id}/{assignment.id} "
                    f"no longer holds; using derived value"
                )
            record.is_completed = derived
        return self.store.upsert_progress(record)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_progress(self, student_id: str, assignment_id: str) -> Optional[ProgressRecord]:
        """Get the stored record of an attempt, or None."""
        return self.store.get_progress(student_id, assignment_id)

    def open_assignment(self, ctx: RequestContext, assignment_id: str) -> AssignmentView:
        """
        Prepare an assignment for display without writing anything.

        Resumes at the stored position. A fresh variation attempt starts on a
        random variation, which is saved so later opens resume on it; this is
        the only write, and it is skipped when writes are not allowed (draft
        preview, restricted classwork). A completed attempt opens in review
        mode.
        """
        assignment = self._load_assignment(assignment_id)
        if not assignment.published and not ctx.is_staff:
            raise NotFound("assignment", assignment_id)

        stored = self.store.get_progress(ctx.student_id, assignment.id)
        record = stored or ProgressRecord(student_id=ctx.student_id, assignment_id=assignment.id)
        total = assignment.total_questions
        completed = is_attempt_completed(assignment, record)
        eligible = eligible_variations(record, total)

        if stored is None and assignment.is_variation_mode and eligible:
            record.active_question_index = self.rng.choice(eligible)
            record = self._save_initial_pick(ctx, assignment, record)
        active = min(record.active_question_index, max(total - 1, 0))

        return AssignmentView(
            assignment=assignment,
            record=record,
            active_index=active,
            review_mode=completed,
            exhausted=assignment.is_variation_mode and not completed and not eligible,
            progress_percent=assignment_progress_percent(assignment, stored),
        )

    def _save_initial_pick(
        self,
        ctx: RequestContext,
        assignment: Assignment,
        record: ProgressRecord,
    ) -> ProgressRecord:
        try:
            self._authorize_write(ctx, assignment)
        except (DraftAssignment, AccessRestricted):
            return record
        saved = self._save(assignment, record)
        logger.info(
            f"Started {assignment.id} for {ctx.student_id} on variation {record.active_question_index}"
        )
        return saved

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def record_answer_outcome(
        self,
        ctx: RequestContext,
        assignment_id: str,
        question_index: int,
        correct: bool,
    ) -> ProgressRecord:
        """
        Record the outcome of an answer and persist the attempt.

        A correct outcome on a revealed index is not credited and causes no
        write; the current record is returned unchanged.

        Raises:
            DraftAssignment: If the assignment is unpublished
            AccessRestricted: If classwork is denied by the network policy
            InvalidInput: If the index is out of range, or skips an
                unresolved question in linear mode
        """
        assignment = self._load_assignment(assignment_id)
        self._authorize_write(ctx, assignment)
        self._check_index(assignment, question_index)

        record = self._current_record(ctx.student_id, assignment)
        self._check_reachable(assignment, record, question_index)

        if correct and question_index in record.revealed_question_indices:
            logger.info(
                f"Not crediting revealed question {question_index} "
                f"of {assignment.id} for {ctx.student_id}"
            )
            return record

        if correct:
            record.completed_question_indices.add(question_index)
        record.active_question_index = question_index
        saved = self._save(assignment, record)
        logger.info(
            f"Recorded {'correct' if correct else 'incorrect'} answer on question {question_index} "
            f"of {assignment.id} for {ctx.student_id} (completed={saved.is_completed})"
        )
        return saved

    def submit_answer(
        self,
        ctx: RequestContext,
        assignment_id: str,
        question_index: int,
        candidate,
        review: bool = False,
    ) -> AnswerResult:
        """
        Evaluate a raw answer and record its outcome.

        In review mode, or on a revealed question, the answer is evaluated
        for feedback only and nothing is persisted. Outside review mode the
        publication and access gates run before the answer is evaluated.
        """
        assignment = self._load_assignment(assignment_id)
        if not review:
            self._authorize_write(ctx, assignment)
        question = assignment.questions[self._check_index(assignment, question_index)]
        correct = evaluate(question, candidate)

        if review:
            record = self._current_record(ctx.student_id, assignment)
            return AnswerResult(correct=correct, credited=False, record=record)

        before = self.store.get_progress(ctx.student_id, assignment.id)
        revealed = before is not None and question_index in before.revealed_question_indices
        record = self.record_answer_outcome(ctx, assignment_id, question_index, correct)
        return AnswerResult(correct=correct, credited=correct and not revealed, record=record)

    def reveal_solution(
        self,
        ctx: RequestContext,
        assignment_id: str,
        question_index: int,
        confirmed: bool = False,
    ) -> ProgressRecord:
        """
        Reveal the solution of a question, disqualifying it for this attempt.

        Requires confirmed=True from an explicit user confirmation. Revealing
        never marks the attempt completed. Revealing an index already answered
        correctly changes nothing.
        """
        if confirmed is not True:
            raise InvalidInput("Revealing a solution must be confirmed")

        assignment = self._load_assignment(assignment_id)
        self._authorize_write(ctx, assignment)
        self._check_index(assignment, question_index)

        record = self._current_record(ctx.student_id, assignment)
        if question_index in record.resolved_indices:
            return record
        self._check_reachable(assignment, record, question_index)

        record.revealed_question_indices.add(question_index)
        saved = self._save(assignment, record, recompute=False)
        logger.info(f"Revealed question {question_index} of {assignment.id} for {ctx.student_id}")
        return saved

    def set_active_index(self, ctx: RequestContext, assignment_id: str, index: int) -> ProgressRecord:
        """
        Persist the current position for resuming.

        In linear mode an unfinished attempt cannot skip past an unresolved
        question.
        """
        assignment = self._load_assignment(assignment_id)
        self._authorize_write(ctx, assignment)
        self._check_index(assignment, index)

        record = self._current_record(ctx.student_id, assignment)
        self._check_reachable(assignment, record, index)

        record.active_question_index = index
        return self._save(assignment, record)

    def pick_variation(self, assignment: Assignment, record: ProgressRecord) -> int:
        """
        Choose the next variation uniformly from the eligible pool.

        Raises:
            ExhaustedVariations: If no variation is left and the threshold is not met
        """
        eligible = eligible_variations(record, assignment.total_questions)
        if not eligible:
            logger.warning(
                f"Variations exhausted for {record.student_id}/{assignment.id}: "
                f"{len(record.completed_question_indices)}/{assignment.required_variations_count}"
            )
            raise ExhaustedVariations(
                assignment.id,
                completed=len(record.completed_question_indices),
                required=assignment.required_variations_count,
                total=assignment.total_questions,
            )
        return self.rng.choice(eligible)

    def next_question(
        self,
        ctx: RequestContext,
        assignment_id: str,
        unrestricted: bool = False,
    ) -> ProgressRecord:
        """
        Move to the next question (linear) or next variation (variation mode).

        The current question must be answered or revealed first, unless
        navigation is unrestricted or the attempt is already completed. In
        linear mode, calling this on the last question finishes the attempt.
        """
        assignment = self._load_assignment(assignment_id)
        self._authorize_write(ctx, assignment)
        if assignment.total_questions == 0:
            raise InvalidInput("Assignment has no questions")

        record = self._current_record(ctx.student_id, assignment)
        completed = is_attempt_completed(assignment, record)
        current = record.active_question_index

        if not (unrestricted or completed or current in record.resolved_indices):
            raise InvalidInput("Answer the current question before moving on")

        if assignment.is_variation_mode:
            if completed:
                return record
            record.active_question_index = self.pick_variation(assignment, record)
        elif current < assignment.total_questions - 1:
            record.active_question_index = current + 1

        return self._save(assignment, record)

    def reset_progress(self, ctx: RequestContext, assignment_id: str, student_id: str) -> bool:
        """Delete a student's attempt. Teachers and admins only."""
        if not ctx.is_staff:
            raise PermissionDenied("reset progress", ctx.role)
        removed = self.store.reset_progress(student_id, assignment_id)
        logger.info(f"{ctx.student_id} reset progress of {student_id} on {assignment_id}")
        return removed
