"""Assignment progress controller tests."""

import random

import pytest

from physlab.classroom import (
    AccessGate,
    AssignmentController,
    ClassroomLoader,
    compile_classroom,
    eligible_variations,
    is_attempt_completed,
)
from physlab.errors import (
    AccessRestricted,
    DraftAssignment,
    ExhaustedVariations,
    InvalidInput,
    NotFound,
    PermissionDenied,
)
from physlab.schemas import Assignment, ProgressRecord, Question

from conftest import FixedChoice, numerical


def linear_assignment(n):
    return Assignment(
        id="a", classroom_id="c",
        questions=[Question(type="numerical", correct_value=i + 1) for i in range(n)],
    )


class TestCompletionRules:

    def test_linear_requires_last_question(self):
        a = linear_assignment(3)
        assert not is_attempt_completed(a, ProgressRecord(student_id="s", assignment_id="a",
                                                          completed_question_indices={0, 1}))
        assert is_attempt_completed(a, ProgressRecord(student_id="s", assignment_id="a",
                                                      completed_question_indices={0, 1, 2}))
        assert is_attempt_completed(a, ProgressRecord(student_id="s", assignment_id="a",
                                                      revealed_question_indices={2}))

    def test_empty_assignment_never_completed(self):
        assert not is_attempt_completed(linear_assignment(0), ProgressRecord(student_id="s", assignment_id="a"))

    def test_variation_counts_only_completed(self):
        a = linear_assignment(5)
        a.required_variations_count = 2
        r = ProgressRecord(student_id="s", assignment_id="a",
                           completed_question_indices={1}, revealed_question_indices={2, 3, 4})
        assert not is_attempt_completed(a, r)
        r.completed_question_indices.add(0)
        assert is_attempt_completed(a, r)

    def test_eligible_variations(self):
        r = ProgressRecord(student_id="s", assignment_id="a",
                           completed_question_indices={1, 2}, revealed_question_indices={4})
        assert eligible_variations(r, 5) == [0, 3]


class TestGates:

    def test_draft_rejects_every_write(self, controller, store, make_ctx):
        ctx = make_ctx()
        with pytest.raises(DraftAssignment):
            controller.record_answer_outcome(ctx, "draft", 0, True)
        with pytest.raises(DraftAssignment):
            controller.reveal_solution(ctx, "draft", 0, confirmed=True)
        with pytest.raises(DraftAssignment):
            controller.set_active_index(ctx, "draft", 0)
        with pytest.raises(DraftAssignment):
            controller.next_question(ctx, "draft")
        assert store.get_progress("alice", "draft") is None

    def test_classwork_denied_off_network(self, controller, store, make_ctx):
        with pytest.raises(AccessRestricted) as exc_info:
            controller.record_answer_outcome(make_ctx(ip="8.8.8.8"), "cw-linear", 0, True)
        assert exc_info.value.current_ip == "8.8.8.8"
        assert store.get_progress("alice", "cw-linear") is None

    def test_classwork_allowed_on_network(self, controller, make_ctx):
        record = controller.record_answer_outcome(make_ctx(ip="1.2.3.4"), "cw-linear", 0, True)
        assert record.completed_question_indices == {0}

    def test_homework_bypasses_gate(self, loader, store, make_ctx):
        class ExplodingGate:
            def check_access(self, *args):
                raise AssertionError("gate consulted for homework")
        controller = AssignmentController(loader, store, ExplodingGate())
        record = controller.record_answer_outcome(make_ctx(ip="8.8.8.8"), "hw-first", 0, True)
        assert record.completed_question_indices == {0}

    def test_unknown_assignment(self, controller, make_ctx):
        with pytest.raises(NotFound):
            controller.record_answer_outcome(make_ctx(), "missing", 0, True)

    @pytest.mark.parametrize("index", [-1, 2, 99, "0", 1.0, True])
    def test_invalid_index(self, controller, make_ctx, index):
        with pytest.raises(InvalidInput):
            controller.record_answer_outcome(make_ctx(), "hw-first", index, True)


class TestLinearMode:

    def test_record_is_idempotent(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, True)
        record = controller.record_answer_outcome(ctx, "hw-first", 0, True)
        assert record.completed_question_indices == {0}

    def test_incorrect_answer_creates_record_without_credit(self, controller, make_ctx):
        record = controller.record_answer_outcome(make_ctx(), "hw-first", 0, False)
        assert record.completed_question_indices == set()
        assert record.active_question_index == 0
        assert controller.get_progress("alice", "hw-first") is not None

    def test_completion_after_last_question(self, controller, make_ctx):
        ctx = make_ctx()
        record = controller.record_answer_outcome(ctx, "cw-linear", 0, True)
        assert not record.is_completed
        record = controller.record_answer_outcome(ctx, "cw-linear", 1, True)
        assert not record.is_completed
        record = controller.record_answer_outcome(ctx, "cw-linear", 2, True)
        assert record.is_completed
        assert controller.get_progress("alice", "cw-linear").is_completed

    def test_next_requires_resolved_question(self, controller, make_ctx):
        with pytest.raises(InvalidInput):
            controller.next_question(make_ctx(), "hw-first")

    def test_next_advances_by_one(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, True)
        record = controller.next_question(ctx, "hw-first")
        assert record.active_question_index == 1

    def test_next_after_reveal(self, controller, make_ctx):
        ctx = make_ctx()
        controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        assert controller.next_question(ctx, "hw-first").active_question_index == 1

    def test_unrestricted_next(self, controller, make_ctx):
        record = controller.next_question(make_ctx(), "hw-first", unrestricted=True)
        assert record.active_question_index == 1
        assert not record.is_completed

    def test_reveal_last_then_finish(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, True)
        controller.next_question(ctx, "hw-first")
        record = controller.reveal_solution(ctx, "hw-first", 1, confirmed=True)
        assert not record.is_completed
        record = controller.next_question(ctx, "hw-first")
        assert record.active_question_index == 1
        assert record.is_completed

    def test_set_active_index_cannot_skip(self, controller, make_ctx):
        ctx = make_ctx()
        with pytest.raises(InvalidInput):
            controller.set_active_index(ctx, "cw-linear", 2)
        controller.record_answer_outcome(ctx, "cw-linear", 0, True)
        controller.record_answer_outcome(ctx, "cw-linear", 1, False)
        with pytest.raises(InvalidInput):
            controller.set_active_index(ctx, "cw-linear", 2)
        assert controller.set_active_index(ctx, "cw-linear", 1).active_question_index == 1

    def test_set_active_index_free_after_completion(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, True)
        controller.record_answer_outcome(ctx, "hw-first", 1, True)
        record = controller.set_active_index(ctx, "hw-first", 0)
        assert record.active_question_index == 0
        assert record.is_completed


    def test_answer_cannot_skip_ahead(self, controller, store, make_ctx):
        with pytest.raises(InvalidInput):
            controller.record_answer_outcome(make_ctx(), "hw-first", 1, True)
        assert store.get_progress("alice", "hw-first") is None

    def test_last_question_needs_earlier_ones_resolved(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "cw-linear", 0, True)
        with pytest.raises(InvalidInput):
            controller.record_answer_outcome(ctx, "cw-linear", 2, True)
        record = controller.get_progress("alice", "cw-linear")
        assert record.completed_question_indices == {0}
        assert not record.is_completed

    def test_reveal_cannot_skip_ahead(self, controller, store, make_ctx):
        with pytest.raises(InvalidInput):
            controller.reveal_solution(make_ctx(), "hw-first", 1, confirmed=True)
        assert store.get_progress("alice", "hw-first") is None

    def test_revisit_allowed_after_completion(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, False)
        controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        controller.record_answer_outcome(ctx, "hw-first", 1, True)
        record = controller.record_answer_outcome(ctx, "hw-first", 0, False)
        assert record.is_completed
        assert record.active_question_index == 0


class TestReveal:

    def test_reveal_requires_confirmation(self, controller, store, make_ctx):
        with pytest.raises(InvalidInput):
            controller.reveal_solution(make_ctx(), "hw-first", 0)
        with pytest.raises(InvalidInput):
            controller.reveal_solution(make_ctx(), "hw-first", 0, confirmed="yes")
        assert store.get_progress("alice", "hw-first") is None

    def test_reveal_disqualifies_index(self, controller, make_ctx):
        ctx = make_ctx()
        before = controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        assert before.revealed_question_indices == {0}
        after = controller.record_answer_outcome(ctx, "hw-first", 0, True)
        assert len(after.completed_question_indices) == len(before.completed_question_indices)
        assert 0 not in controller.get_progress("alice", "hw-first").completed_question_indices

    def test_reveal_never_completes(self, controller, make_ctx):
        ctx = make_ctx()
        for i in range(5):
            record = controller.reveal_solution(ctx, "hw-variations", i, confirmed=True)
        assert record.revealed_question_indices == {0, 1, 2, 3, 4}
        assert not record.is_completed

    def test_reveal_of_completed_index_is_noop(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-first", 0, True)
        record = controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        assert record.completed_question_indices == {0}
        assert record.revealed_question_indices == set()

    def test_reveal_is_irreversible(self, controller, make_ctx):
        ctx = make_ctx()
        controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        controller.record_answer_outcome(ctx, "hw-first", 1, True)
        controller.set_active_index(ctx, "hw-first", 0)
        assert controller.get_progress("alice", "hw-first").revealed_question_indices == {0}


class TestVariationMode:

    def test_scenario_pass_two_of_five(self, controller, rng, make_ctx):
        ctx = make_ctx()
        record = controller.record_answer_outcome(ctx, "hw-variations", 2, True)
        assert record.completed_question_indices == {2}
        record = controller.record_answer_outcome(ctx, "hw-variations", 2, True)
        assert record.completed_question_indices == {2}

        record = controller.reveal_solution(ctx, "hw-variations", 4, confirmed=True)
        assert record.revealed_question_indices == {4}
        assert not record.is_completed

        record = controller.record_answer_outcome(ctx, "hw-variations", 1, True)
        assert record.completed_question_indices == {1, 2}
        assert record.is_completed
        assert eligible_variations(record, 5) == [0, 3]

    def test_next_picks_from_eligible_pool(self, loader, store, gate, make_ctx):
        rng = FixedChoice(3)
        controller = AssignmentController(loader, store, gate, rng=rng)
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-variations", 2, True)
        controller.reveal_solution(ctx, "hw-variations", 4, confirmed=True)

        record = controller.next_question(ctx, "hw-variations")
        assert rng.pools == [[0, 1, 3]]
        assert record.active_question_index == 3

    def test_next_after_completion_stays(self, controller, rng, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-variations", 0, True)
        controller.record_answer_outcome(ctx, "hw-variations", 1, True)
        record = controller.next_question(ctx, "hw-variations")
        assert record.is_completed
        assert rng.pools == []

    def test_exhausted_variations(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-variations", 0, True)
        for i in (1, 2, 3, 4):
            controller.reveal_solution(ctx, "hw-variations", i, confirmed=True)

        with pytest.raises(ExhaustedVariations) as exc_info:
            controller.next_question(ctx, "hw-variations")
        err = exc_info.value
        assert (err.completed, err.required, err.total) == (1, 2, 5)

        record = controller.get_progress("alice", "hw-variations")
        assert not record.is_completed

    def test_revealed_variation_never_counts(self, controller, make_ctx):
        ctx = make_ctx()
        controller.reveal_solution(ctx, "hw-variations", 0, confirmed=True)
        controller.record_answer_outcome(ctx, "hw-variations", 0, True)
        record = controller.record_answer_outcome(ctx, "hw-variations", 1, True)
        assert record.completed_question_indices == {1}
        assert not record.is_completed


class TestSubmitAnswer:

    def test_correct_answer_is_credited(self, controller, make_ctx):
        result = controller.submit_answer(make_ctx(), "hw-first", 0, "100")
        assert result.correct and result.credited
        assert result.record.completed_question_indices == {0}

    def test_incorrect_answer(self, controller, make_ctx):
        result = controller.submit_answer(make_ctx(), "hw-first", 0, "150")
        assert not result.correct and not result.credited

    def test_choice_answer(self, controller, make_ctx):
        result = controller.submit_answer(make_ctx(), "mcq", 0, "B")
        assert result.correct
        assert result.record.is_completed

    def test_review_mode_does_not_persist(self, controller, make_ctx):
        result = controller.submit_answer(make_ctx(), "hw-first", 0, "100", review=True)
        assert result.correct and not result.credited
        assert controller.get_progress("alice", "hw-first") is None

    def test_revealed_question_practice_not_credited(self, controller, make_ctx):
        ctx = make_ctx()
        controller.reveal_solution(ctx, "hw-first", 0, confirmed=True)
        result = controller.submit_answer(ctx, "hw-first", 0, "100")
        assert result.correct and not result.credited
        assert result.record.completed_question_indices == set()

    def test_malformed_answer(self, controller, make_ctx):
        with pytest.raises(InvalidInput):
            controller.submit_answer(make_ctx(), "hw-first", 0, "a hundred")

    def test_draft_checked_before_evaluation(self, controller, make_ctx):
        with pytest.raises(DraftAssignment):
            controller.submit_answer(make_ctx(), "draft", 0, "not a number")

    def test_network_checked_before_evaluation(self, controller, make_ctx):
        with pytest.raises(AccessRestricted):
            controller.submit_answer(make_ctx(ip="8.8.8.8"), "cw-linear", 0, "not a number")
        with pytest.raises(AccessRestricted):
            controller.submit_answer(make_ctx(ip="8.8.8.8"), "cw-linear", 0, "10")


class TestOpenAssignment:

    def test_fresh_linear(self, controller, make_ctx):
        view = controller.open_assignment(make_ctx(), "hw-first")
        assert view.active_index == 0
        assert not view.review_mode
        assert view.progress_percent == 0.0

    def test_fresh_variation_starts_random(self, loader, store, gate, make_ctx):
        rng = FixedChoice(4)
        controller = AssignmentController(loader, store, gate, rng=rng)
        view = controller.open_assignment(make_ctx(), "hw-variations")
        assert view.active_index == 4
        assert store.get_progress("alice", "hw-variations").active_question_index == 4

    def test_fresh_variation_pick_kept_across_opens(self, loader, store, gate, make_ctx):
        rng = FixedChoice(3, 1)
        controller = AssignmentController(loader, store, gate, rng=rng)
        first = controller.open_assignment(make_ctx(), "hw-variations")
        second = controller.open_assignment(make_ctx(), "hw-variations")
        assert first.active_index == second.active_index == 3
        assert len(rng.pools) == 1

    def test_fresh_variation_stable_with_real_random(self, loader, store, gate, make_ctx):
        controller = AssignmentController(loader, store, gate, rng=random.Random(0))
        picks = {controller.open_assignment(make_ctx(), "hw-variations").active_index for _ in range(20)}
        assert len(picks) == 1
        assert store.get_progress("alice", "hw-variations").active_question_index in picks

    def test_initial_pick_not_saved_off_network(self, tmp_path, store, make_ctx):
        course = {"classrooms": [{
            "id": "lab",
            "allowed_ip": "1.2.3.4",
            "ip_check_enabled": True,
            "collections": [{
                "id": "lab-cw",
                "category": "classwork",
                "assignments": [{"id": "lab-variations", "required_variations_count": 1,
                                 "questions": [numerical(1), numerical(2)]}],
            }],
        }]}
        db_path = tmp_path / "lab.db"
        compile_classroom(course, db_path)
        loader = ClassroomLoader(db_path)
        gate = AccessGate(loader, public_ip_lookup=lambda: "1.2.3.4")
        controller = AssignmentController(loader, store, gate, rng=FixedChoice(1))

        view = controller.open_assignment(make_ctx(ip="8.8.8.8"), "lab-variations")
        assert view.active_index == 1
        assert store.get_progress("alice", "lab-variations") is None

    def test_resume_position(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "cw-linear", 0, True)
        controller.next_question(ctx, "cw-linear")
        view = controller.open_assignment(make_ctx(), "cw-linear")
        assert view.active_index == 1
        assert view.progress_percent == pytest.approx(100 / 3)

    def test_completed_opens_in_review(self, controller, make_ctx):
        ctx = make_ctx()
        controller.record_answer_outcome(ctx, "hw-second", 0, True)
        view = controller.open_assignment(ctx, "hw-second")
        assert view.review_mode

    def test_exhausted_flag(self, controller, make_ctx):
        ctx = make_ctx()
        for i in range(5):
            controller.reveal_solution(ctx, "hw-variations", i, confirmed=True)
        view = controller.open_assignment(ctx, "hw-variations")
        assert view.exhausted
        assert not view.review_mode

    def test_draft_hidden_from_students(self, controller, make_ctx):
        with pytest.raises(NotFound):
            controller.open_assignment(make_ctx(), "draft")
        view = controller.open_assignment(make_ctx(role="teacher"), "draft")
        assert not view.assignment.published


class TestReset:

    def test_teacher_can_reset(self, controller, make_ctx):
        controller.record_answer_outcome(make_ctx(), "hw-first", 0, True)
        assert controller.reset_progress(make_ctx("teacher-1", role="teacher"), "hw-first", "alice")
        assert controller.get_progress("alice", "hw-first") is None

    def test_student_cannot_reset(self, controller, make_ctx):
        with pytest.raises(PermissionDenied):
            controller.reset_progress(make_ctx(), "hw-first", "alice")
