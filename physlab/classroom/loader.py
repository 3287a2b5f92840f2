"""
ClassroomLoader - Load content from classroom.db SQLite database.

Provides read-only access to:
- Classrooms and their network access policy
- Collections in display order
- Assignments with their questions in canonical order
"""

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from physlab.schemas import Assignment, Classroom, Collection, Question

from .db import connect


class ClassroomLoader:
    """
    Load classroom content from SQLite database.

    Thread-safe for read operations. Each method creates a new connection,
    so policy changes made by teachers are visible on the next call.
    """

    def __init__(self, db_path: str | Path):
        """
        Initialize loader with path to classroom.db.

        Args:
            db_path: Path to classroom.db file
        """
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            raise FileNotFoundError(f"Classroom database not found: {db_path}")

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def get_metadata(self, key: str) -> Optional[str]:
        """Get metadata value by key."""
        with connect(self.db_path, "read metadata") as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    # -------------------------------------------------------------------------
    # Classrooms
    # -------------------------------------------------------------------------

    def get_classroom(self, classroom_id: str) -> Optional[Classroom]:
        """Get a classroom with its current access policy."""
        with connect(self.db_path, "load classroom") as conn:
            row = conn.execute(
                """SELECT id, name, allowed_ip, ip_check_enabled
                   FROM classrooms WHERE id = ?""",
                (classroom_id,)
            ).fetchone()
            if not row:
                return None
            return Classroom(
                id=row["id"],
                name=row["name"] or "",
                allowed_ip=row["allowed_ip"],
                ip_check_enabled=bool(row["ip_check_enabled"]),
            )

    # -------------------------------------------------------------------------
    # Assignments
    # -------------------------------------------------------------------------

    def _load_questions(self, conn: sqlite3.Connection, assignment_id: str) -> list[Question]:
        # position is the canonical order; never rely on rowid order
        cursor = conn.execute(
            """SELECT id, type, latex_text, correct_value, tolerance_percent, options,
                      correct_answer, solution_text, diagram_type, diagram_svg
               FROM questions
               WHERE assignment_id = ?
               ORDER BY position""",
            (assignment_id,)
        )
        return [
            Question(
                id=row["id"],
                type=row["type"],
                latex_text=row["latex_text"] or "",
                correct_value=row["correct_value"],
                tolerance_percent=row["tolerance_percent"],
                options=json.loads(row["options"]) if row["options"] else None,
                correct_answer=row["correct_answer"],
                solution_text=row["solution_text"],
                diagram_type=row["diagram_type"],
                diagram_svg=row["diagram_svg"],
            )
            for row in cursor.fetchall()
        ]

    def _row_to_assignment(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Assignment:
        return Assignment(
            id=row["id"],
            classroom_id=row["classroom_id"],
            title=row["title"] or "",
            published=bool(row["published"]),
            required_variations_count=row["required_variations_count"],
            show_all_questions=bool(row["show_all_questions"]),
            collection_id=row["collection_id"],
            order_index=row["order_index"],
            collection_category=row["category"],
            questions=self._load_questions(conn, row["id"]),
        )

    _ASSIGNMENT_COLUMNS = """a.id, a.classroom_id, a.title, a.published,
                             a.required_variations_count, a.show_all_questions,
                             a.collection_id, a.order_index, c.category"""

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        """Get an assignment with questions and the category of its collection."""
        with connect(self.db_path, "load assignment") as conn:
            row = conn.execute(
                f"""SELECT {self._ASSIGNMENT_COLUMNS}
                    FROM assignments a
                    LEFT JOIN collections c ON c.id = a.collection_id
                    WHERE a.id = ?""",
                (assignment_id,)
            ).fetchone()
            if not row:
                return None
            return self._row_to_assignment(conn, row)

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def _row_to_collection(self, row: sqlite3.Row) -> Collection:
        return Collection(
            id=row["id"],
            classroom_id=row["classroom_id"],
            title=row["title"] or "",
            category=row["category"],
            scheduled_date=datetime.fromisoformat(row["scheduled_date"]) if row["scheduled_date"] else None,
        )

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        """Get a collection with its assignments ordered by order_index."""
        with connect(self.db_path, "load collection") as conn:
            row = conn.execute(
                """SELECT id, classroom_id, title, category, scheduled_date
                   FROM collections WHERE id = ?""",
                (collection_id,)
            ).fetchone()
            if not row:
                return None

            collection = self._row_to_collection(row)
            cursor = conn.execute(
                f"""SELECT {self._ASSIGNMENT_COLUMNS}
                    FROM assignments a
                    JOIN collections c ON c.id = a.collection_id
                    WHERE a.collection_id = ?
                    ORDER BY COALESCE(a.order_index, 0), a.position""",
                (collection_id,)
            )
            collection.assignments = [
                self._row_to_assignment(conn, a) for a in cursor.fetchall()
            ]
            return collection

    def get_collections_for_classroom(
        self,
        classroom_id: str,
        now: Optional[datetime] = None,
    ) -> list[Collection]:
        """
        Get the collections of a classroom in display order, without assignments.

        Args:
            classroom_id: Classroom to list
            now: When given, collections scheduled after this moment are omitted
        """
        with connect(self.db_path, "list collections") as conn:
            cursor = conn.execute(
                """SELECT id, classroom_id, title, category, scheduled_date
                   FROM collections
                   WHERE classroom_id = ?
                   ORDER BY position""",
                (classroom_id,)
            )
            collections = [self._row_to_collection(row) for row in cursor.fetchall()]

        if now is not None:
            collections = [c for c in collections if c.is_visible(now)]
        return collections
