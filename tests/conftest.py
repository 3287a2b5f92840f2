"""Shared fixtures: a compiled classroom database and wired-up components."""

import pytest

from physlab.classroom import (
    AccessGate,
    AssignmentController,
    ClassroomLoader,
    CollectionNavigator,
    ProgressStore,
    RequestContext,
    compile_classroom,
)

SCHOOL_IP = "1.2.3.4"


def numerical(value, tolerance=5, solution="worked solution"):
    return {
        "type": "numerical",
        "latex_text": f"Compute {value}",
        "correct_value": value,
        "tolerance_percent": tolerance,
        "solution_text": solution,
    }


COURSE = {
    "title": "Test course",
    "classrooms": [
        {
            "id": "room-1",
            "name": "Room 1",
            "allowed_ip": SCHOOL_IP,
            "ip_check_enabled": True,
            "collections": [
                {
                    "id": "cw",
                    "title": "Classwork",
                    "category": "classwork",
                    "assignments": [
                        {"id": "cw-linear", "title": "Linear", "order_index": 0,
                         "questions": [numerical(10), numerical(20), numerical(30)]},
                    ],
                },
                {
                    "id": "hw",
                    "title": "Homework",
                    "category": "homework",
                    "assignments": [
                        # inserted out of order on purpose; order_index decides
                        {"id": "hw-second", "title": "Second", "order_index": 1,
                         "questions": [numerical(1)]},
                        {"id": "hw-first", "title": "First", "order_index": 0,
                         "questions": [numerical(100), numerical(200)]},
                        {"id": "hw-variations", "title": "Variations", "order_index": 2,
                         "required_variations_count": 2, "show_all_questions": True,
                         "questions": [numerical(v) for v in (1, 2, 3, 4, 5)]},
                    ],
                },
                {
                    "id": "empty",
                    "title": "Empty",
                    "category": "homework",
                    "assignments": [],
                },
            ],
            "assignments": [
                {"id": "draft", "title": "Draft", "published": False,
                 "questions": [numerical(5)]},
                {"id": "mcq", "title": "Choice",
                 "questions": [{
                     "type": "multiple_choice",
                     "latex_text": "Pick one",
                     "options": ["one", "two", "three"],
                     "correct_answer": " b ",
                 }]},
            ],
        },
    ],
}


class FixedChoice:
    """Random source that returns scripted picks from the eligible pool."""

    def __init__(self, *picks):
        self.picks = list(picks)
        self.pools = []

    def choice(self, seq):
        self.pools.append(list(seq))
        if self.picks:
            pick = self.picks.pop(0)
            assert pick in seq
            return pick
        return seq[0]


@pytest.fixture
def classroom_db(tmp_path):
    db_path = tmp_path / "classroom.db"
    compile_classroom(COURSE, db_path)
    return db_path


@pytest.fixture
def loader(classroom_db):
    return ClassroomLoader(classroom_db)


@pytest.fixture
def store(tmp_path):
    return ProgressStore(tmp_path / "progress.db")


@pytest.fixture
def public_ip():
    """Mutable holder for the address the fake public lookup reports."""
    return {"ip": SCHOOL_IP, "calls": 0}


@pytest.fixture
def gate(loader, public_ip):
    def lookup():
        public_ip["calls"] += 1
        return public_ip["ip"]
    return AccessGate(loader, public_ip_lookup=lookup)


@pytest.fixture
def rng():
    return FixedChoice()


@pytest.fixture
def controller(loader, store, gate, rng):
    return AssignmentController(loader, store, gate, rng=rng)


@pytest.fixture
def navigator(loader, store):
    return CollectionNavigator(loader, store)


@pytest.fixture
def make_ctx():
    def factory(student_id="alice", ip=SCHOOL_IP, role="student"):
        return RequestContext(
            student_id=student_id,
            role=role,
            headers={"X-Forwarded-For": ip} if ip else {},
        )
    return factory
