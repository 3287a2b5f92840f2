"""
ProgressStore - Persist student progress in progress.db.

Stores one record per (student, assignment) pair, separately from the
content database:
- Completed and revealed question indices
- Current question position
- Completion flag (a cache of the derived completion rule)
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from physlab import config
from physlab.schemas import ProgressRecord

from .db import connect


SCHEMA = """
CREATE TABLE IF NOT EXISTS assignment_progress (
    student_id TEXT NOT NULL,
    assignment_id TEXT NOT NULL,
    completed_question_indices JSON NOT NULL DEFAULT '[]',
    revealed_question_indices JSON NOT NULL DEFAULT '[]',
    active_question_index INTEGER NOT NULL DEFAULT 0,
    is_completed INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT,
    PRIMARY KEY (student_id, assignment_id)
);

CREATE INDEX IF NOT EXISTS idx_assignment_progress_student
ON assignment_progress(student_id);
"""


class ProgressStore:
    """
    Progress records in SQLite.

    Progress is stored separately from content (classroom.db) so that:
    - Content can be recompiled without losing progress
    - Progress is per student, content is shared

    Writes are single-statement upserts keyed by (student_id, assignment_id);
    there is never a separate existence check before writing.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize progress store.

        Args:
            db_path: Path to progress.db (default: PHYSLAB_PROGRESS_DB or ~/.physlab/progress.db)
        """
        self.db_path = Path(db_path) if db_path else config.progress_db_path()
        self._ensure_database()

    def _ensure_database(self):
        """Create database and tables if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with connect(self.db_path, "initialize progress database") as conn:
            conn.executescript(SCHEMA)

    @staticmethod
    def _row_to_record(row) -> ProgressRecord:
        return ProgressRecord(
            student_id=row["student_id"],
            assignment_id=row["assignment_id"],
            completed_question_indices=set(json.loads(row["completed_question_indices"] or "[]")),
            revealed_question_indices=set(json.loads(row["revealed_question_indices"] or "[]")),
            active_question_index=row["active_question_index"],
            is_completed=bool(row["is_completed"]),
            updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_progress(self, student_id: str, assignment_id: str) -> Optional[ProgressRecord]:
        """Get the progress record of one attempt, or None if never touched."""
        with connect(self.db_path, "load progress") as conn:
            row = conn.execute(
                """SELECT * FROM assignment_progress
                   WHERE student_id = ? AND assignment_id = ?""",
                (student_id, assignment_id)
            ).fetchone()
            return self._row_to_record(row) if row else None

    def get_progress_for_assignments(
        self,
        student_id: str,
        assignment_ids: Iterable[str],
    ) -> dict[str, ProgressRecord]:
        """Get existing records for several assignments, keyed by assignment id."""
        ids = list(assignment_ids)
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        with connect(self.db_path, "load progress") as conn:
            cursor = conn.execute(
                f"""SELECT * FROM assignment_progress
                    WHERE student_id = ? AND assignment_id IN ({placeholders})""",
                (student_id, *ids)
            )
            return {row["assignment_id"]: self._row_to_record(row) for row in cursor.fetchall()}

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upsert_progress(self, record: ProgressRecord) -> ProgressRecord:
        """
        Insert or replace the record for (student_id, assignment_id) atomically.

        Returns the record as stored, with updated_at set.
        """
        now = datetime.now()
        stored = record.model_copy(update={"updated_at": now})
        completed = json.dumps(sorted(stored.completed_question_indices))
        revealed = json.dumps(sorted(stored.revealed_question_indices))

        with connect(self.db_path, "save progress") as conn:
            conn.execute(
                """INSERT INTO assignment_progress
                     (student_id, assignment_id, completed_question_indices,
                      revealed_question_indices, active_question_index, is_completed, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(student_id, assignment_id) DO UPDATE SET
                     completed_question_indices = excluded.completed_question_indices,
                     revealed_question_indices = excluded.revealed_question_indices,
                     active_question_index = excluded.active_question_index,
                     is_completed = excluded.is_completed,
                     updated_at = excluded.updated_at""",
                (
                    stored.student_id,
                    stored.assignment_id,
                    completed,
                    revealed,
                    stored.active_question_index,
                    int(stored.is_completed),
                    now.isoformat(),
                )
            )
        return stored

    def reset_progress(self, student_id: str, assignment_id: str) -> bool:
        """Delete one attempt. Returns True if a record existed."""
        with connect(self.db_path, "reset progress") as conn:
            cursor = conn.execute(
                """DELETE FROM assignment_progress
                   WHERE student_id = ? AND assignment_id = ?""",
                (student_id, assignment_id)
            )
            return cursor.rowcount > 0

    def reset_assignment(self, assignment_id: str) -> int:
        """Delete every student's attempt on an assignment. Returns the count removed."""
        with connect(self.db_path, "reset assignment progress") as conn:
            cursor = conn.execute(
                "DELETE FROM assignment_progress WHERE assignment_id = ?",
                (assignment_id,)
            )
            return cursor.rowcount
