"""
Classroom compiler - Build classroom.db from course definitions.

Compiles classrooms, collections, assignments and questions into a single
SQLite database for runtime serving. Course definitions are plain dicts,
usually loaded from YAML with physlab.utils.load_course.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Optional

from physlab.schemas import Assignment, Classroom, Collection

from .db import connect

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# SQLite Schema
# -----------------------------------------------------------------------------

SCHEMA = """
-- Classrooms with their network access policy
CREATE TABLE IF NOT EXISTS classrooms (
    id TEXT PRIMARY KEY,
    name TEXT,
    allowed_ip TEXT,
    ip_check_enabled INTEGER NOT NULL DEFAULT 0
);

-- Collections (classwork / homework)
CREATE TABLE IF NOT EXISTS collections (
    id TEXT PRIMARY KEY,
    classroom_id TEXT NOT NULL REFERENCES classrooms(id),
    title TEXT,
    category TEXT,
    scheduled_date TEXT,
    position INTEGER NOT NULL
);

-- Assignments, optionally inside a collection
CREATE TABLE IF NOT EXISTS assignments (
    id TEXT PRIMARY KEY,
    classroom_id TEXT NOT NULL REFERENCES classrooms(id),
    collection_id TEXT REFERENCES collections(id),
    order_index INTEGER,
    position INTEGER NOT NULL,
    title TEXT,
    published INTEGER NOT NULL DEFAULT 1,
    required_variations_count INTEGER,
    show_all_questions INTEGER NOT NULL DEFAULT 0
);

-- Questions; position is the canonical order within an assignment
CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    assignment_id TEXT NOT NULL REFERENCES assignments(id),
    position INTEGER NOT NULL,
    type TEXT NOT NULL,
    latex_text TEXT,
    correct_value REAL,
    tolerance_percent REAL,
    options JSON,
    correct_answer TEXT,
    solution_text TEXT,
    diagram_type TEXT,
    diagram_svg TEXT,
    UNIQUE (assignment_id, position)
);

CREATE INDEX IF NOT EXISTS idx_collections_classroom ON collections(classroom_id);
CREATE INDEX IF NOT EXISTS idx_assignments_collection ON assignments(collection_id);
CREATE INDEX IF NOT EXISTS idx_questions_assignment ON questions(assignment_id);

-- Metadata table
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


# -----------------------------------------------------------------------------
# Database Population
# -----------------------------------------------------------------------------

def create_database(db_path: Path, overwrite: bool = True):
    """Create database and schema."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if overwrite and db_path.exists():
        db_path.unlink()
        logger.info(f"Removed existing database: {db_path}")

    with connect(db_path, "create classroom database") as conn:
        conn.executescript(SCHEMA)
    logger.info(f"Created database schema: {db_path}")


def insert_assignment(
    conn: sqlite3.Connection,
    assignment: Assignment,
    position: int,
):
    """Insert an assignment and its questions in list order."""
    conn.execute(
        """INSERT INTO assignments
           (id, classroom_id, collection_id, order_index, position, title, published,
            required_variations_count, show_all_questions)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            assignment.id,
            assignment.classroom_id,
            assignment.collection_id,
            assignment.order_index,
            position,
            assignment.title,
            int(assignment.published),
            assignment.required_variations_count or None,
            int(assignment.show_all_questions),
        )
    )
    for q_position, question in enumerate(assignment.questions):
        conn.execute(
            """INSERT INTO questions
               (id, assignment_id, position, type, latex_text, correct_value, tolerance_percent,
                options, correct_answer, solution_text, diagram_type, diagram_svg)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                question.id or f"{assignment.id}-q{q_position + 1}",
                assignment.id,
                q_position,
                question.type.value,
                question.latex_text,
                question.correct_value,
                question.tolerance_percent,
                json.dumps(question.options, ensure_ascii=False) if question.options else None,
                question.correct_answer,
                question.solution_text,
                question.diagram_type,
                question.diagram_svg,
            )
        )


def populate_classroom(conn: sqlite3.Connection, data: dict) -> dict:
    """Populate one classroom with its collections and standalone assignments."""
    classroom = Classroom(**{k: v for k, v in data.items() if k not in ("collections", "assignments")})
    conn.execute(
        "INSERT INTO classrooms (id, name, allowed_ip, ip_check_enabled) VALUES (?, ?, ?, ?)",
        (classroom.id, classroom.name, classroom.allowed_ip, int(classroom.ip_check_enabled))
    )

    counts = {"collections": 0, "assignments": 0, "questions": 0}
    position = 0

    for c_position, coll_data in enumerate(data.get("collections") or []):
        assignments_data = coll_data.get("assignments") or []
        collection = Collection(
            classroom_id=classroom.id,
            **{k: v for k, v in coll_data.items() if k != "assignments"},
        )
        conn.execute(
            """INSERT INTO collections (id, classroom_id, title, category, scheduled_date, position)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                collection.id,
                classroom.id,
                collection.title,
                collection.category.value if collection.category else None,
                collection.scheduled_date.isoformat() if collection.scheduled_date else None,
                c_position,
            )
        )
        counts["collections"] += 1

        for a_data in assignments_data:
            assignment = Assignment(classroom_id=classroom.id, collection_id=collection.id, **a_data)
            insert_assignment(conn, assignment, position)
            position += 1
            counts["assignments"] += 1
            counts["questions"] += assignment.total_questions

    for a_data in data.get("assignments") or []:
        assignment = Assignment(classroom_id=classroom.id, **a_data)
        insert_assignment(conn, assignment, position)
        position += 1
        counts["assignments"] += 1
        counts["questions"] += assignment.total_questions

    logger.info(
        f"Inserted classroom {classroom.id}: {counts['collections']} collections, "
        f"{counts['assignments']} assignments, {counts['questions']} questions"
    )
    return counts


def compile_classroom(course: dict, db_path: Path, overwrite: bool = True) -> dict:
    """
    Compile a course definition into a classroom database.

    Args:
        course: Dict with a "classrooms" list (see courses/*.yaml)
        db_path: Output database path
        overwrite: Remove an existing database first

    Returns:
        Dictionary with totals of inserted rows

    Raises:
        pydantic.ValidationError: If the course contains invalid content
    """
    db_path = Path(db_path)
    create_database(db_path, overwrite=overwrite)

    stats = {"classrooms": 0, "collections": 0, "assignments": 0, "questions": 0}
    with connect(db_path, "compile classroom") as conn:
        for classroom_data in course.get("classrooms") or []:
            counts = populate_classroom(conn, classroom_data)
            stats["classrooms"] += 1
            for key, value in counts.items():
                stats[key] += value

        conn.executemany(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            [(key, str(value)) for key, value in stats.items()]
        )
        if course.get("title"):
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES ('title', ?)",
                (course["title"],)
            )
    return stats


def set_classroom_ip_policy(
    db_path: Path,
    classroom_id: str,
    allowed_ip: Optional[str],
    ip_check_enabled: bool,
) -> bool:
    """Update a classroom's network policy. Returns False if the classroom is unknown."""
    with connect(Path(db_path), "update classroom policy") as conn:
        cursor = conn.execute(
            "UPDATE classrooms SET allowed_ip = ?, ip_check_enabled = ? WHERE id = ?",
            (allowed_ip, int(ip_check_enabled), classroom_id)
        )
        updated = cursor.rowcount > 0
    if updated:
        logger.info(f"Classroom {classroom_id} policy: allowed_ip={allowed_ip} enabled={ip_check_enabled}")
    return updated
