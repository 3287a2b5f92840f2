"""
CollectionNavigator - Collection-level progress and lockstep navigation.

Provides:
- Collection completion percentage and per-assignment status
- First incomplete assignment for resuming
- Session navigation with forward locking and review mode
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from physlab.errors import InvalidInput, NotFound
from physlab.schemas import (
    Assignment,
    AssignmentStatus,
    Collection,
    CollectionSummary,
    ProgressRecord,
)

from .controller import assignment_progress_percent
from .loader import ClassroomLoader
from .progress import ProgressStore


class AssignmentAvailability(str, Enum):
    """Assignment availability status for UI display."""
    LOCKED = "locked"           # beyond the furthest reached assignment
    AVAILABLE = "available"     # reachable, not started
    IN_PROGRESS = "in_progress" # started but not completed
    COMPLETED = "completed"     # finished


def summarize_collection(
    assignments: list[Assignment],
    records: dict[str, ProgressRecord],
    collection_id: Optional[str] = None,
) -> CollectionSummary:
    """
    Compose per-assignment records into a collection summary.

    Args:
        assignments: Assignments in collection order
        records: Progress records keyed by assignment id; missing means untouched

    Returns:
        CollectionSummary; an empty collection has no first incomplete index
    """
    per_assignment = []
    first_incomplete = None

    for index, assignment in enumerate(assignments):
        record = records.get(assignment.id)
        done = record is not None and record.is_completed
        if not done and first_incomplete is None:
            first_incomplete = index
        per_assignment.append(AssignmentStatus(
            assignment_id=assignment.id,
            title=assignment.title,
            order_index=index,
            started=record is not None,
            is_completed=done,
            progress_percent=100.0 if done else assignment_progress_percent(assignment, record),
        ))

    total = len(assignments)
    completed_count = sum(1 for status in per_assignment if status.is_completed)
    all_done = total > 0 and completed_count == total

    return CollectionSummary(
        collection_id=collection_id,
        progress_percent=100 * completed_count / total if total else 0.0,
        per_assignment=per_assignment,
        first_incomplete_index=(total - 1) if all_done else first_incomplete,
        all_done=all_done,
    )


@dataclass
class CollectionSession:
    """
    Navigation state of one visit to a collection.

    max_reached_index only ever grows within a session; it is rebuilt from
    stored progress when a new session starts.
    """
    collection_id: str
    total: int
    current_index: int
    max_reached_index: int
    review_mode: bool = False
    all_done: bool = False
    celebrate: bool = False

    def can_view(self, index: int) -> bool:
        return 0 <= index < self.total and (self.review_mode or index <= self.max_reached_index)

    def availability(self, index: int, summary: CollectionSummary) -> AssignmentAvailability:
        status = summary.per_assignment[index]
        if status.is_completed:
            return AssignmentAvailability.COMPLETED
        if not self.can_view(index):
            return AssignmentAvailability.LOCKED
        if status.started:
            return AssignmentAvailability.IN_PROGRESS
        return AssignmentAvailability.AVAILABLE

    def go_to(self, index: int) -> int:
        """Jump to an unlocked assignment."""
        if not self.can_view(index):
            raise InvalidInput(f"Exercise {index + 1} is locked")
        self.current_index = index
        return index

    def go_previous(self) -> int:
        if self.current_index > 0:
            self.current_index -= 1
        return self.current_index

    def finish_current(self) -> int:
        """
        Advance after the current assignment is finished.

        On the last assignment the collection becomes done: the celebration
        flag is raised once and the session switches to review mode.
        """
        if self.current_index < self.total - 1:
            self.current_index += 1
            self.max_reached_index = max(self.max_reached_index, self.current_index)
        elif not self.all_done:
            self.all_done = True
            self.celebrate = True
            self.review_mode = True
            self.max_reached_index = self.total - 1
        else:
            self.celebrate = False
        return self.current_index

    @property
    def progress_percent(self) -> float:
        """Position-based progress shown while playing through the collection."""
        if self.all_done:
            return 100.0
        return 100 * self.current_index / self.total if self.total else 0.0


class CollectionNavigator:
    """
    Navigate through a collection's assignments in order.

    Combines ClassroomLoader (content) with ProgressStore (user state).
    """

    def __init__(self, loader: ClassroomLoader, store: ProgressStore):
        """
        Initialize navigator.

        Args:
            loader: ClassroomLoader instance for content access
            store: ProgressStore instance for user progress
        """
        self.loader = loader
        self.store = store

    def _load_collection(self, collection_id: str) -> Collection:
        collection = self.loader.get_collection(collection_id)
        if collection is None:
            raise NotFound("collection", collection_id)
        return collection

    def list_collections(self, classroom_id: str, now: Optional[datetime] = None) -> list[Collection]:
        """Collections visible to students right now."""
        return self.loader.get_collections_for_classroom(classroom_id, now=now or datetime.now())

    def get_collection_summary(self, student_id: str, collection_id: str) -> CollectionSummary:
        """Completion summary of a collection for one student."""
        collection = self._load_collection(collection_id)
        return self._summarize(student_id, collection)

    def _summarize(self, student_id: str, collection: Collection) -> CollectionSummary:
        records = self.store.get_progress_for_assignments(
            student_id, [a.id for a in collection.assignments]
        )
        return summarize_collection(collection.assignments, records, collection.id)

    def start_session(self, student_id: str, collection_id: str) -> CollectionSession:
        """
        Start a visit positioned at the first incomplete assignment.

        An already finished collection opens in review mode at the last
        assignment, without the completion celebration.

        Raises:
            InvalidInput: If the collection has no assignments
        """
        collection = self._load_collection(collection_id)
        if not collection.assignments:
            raise InvalidInput("This collection has no exercises")

        summary = self._summarize(student_id, collection)
        start = summary.first_incomplete_index
        return CollectionSession(
            collection_id=collection.id,
            total=len(collection.assignments),
            current_index=start,
            max_reached_index=start,
            review_mode=summary.all_done,
            all_done=summary.all_done,
        )

    def finish_assignment(self, student_id: str, session: CollectionSession) -> CollectionSession:
        """
        Advance the session once its current assignment is completed.

        Outside review mode the stored record must show the assignment as
        completed, so assignments are finished strictly in order.
        """
        collection = self._load_collection(session.collection_id)
        assignment = collection.assignments[session.current_index]
        if not session.review_mode:
            record = self.store.get_progress(student_id, assignment.id)
            if record is None or not record.is_completed:
                raise InvalidInput("Finish the current exercise first")
        session.finish_current()
        return session
