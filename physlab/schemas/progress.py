"""
Progress tracking schemas for PhysLab.

Defines Pydantic models for student progress including:
- Per-assignment progress records
- Access check results
- Collection-level summaries
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer


class ProgressRecord(BaseModel):
    """One attempt: a single student's progress on a single assignment."""
    student_id: str
    assignment_id: str
    completed_question_indices: set[int] = set()
    revealed_question_indices: set[int] = set()
    active_question_index: int = Field(default=0, ge=0)
    is_completed: bool = False
    updated_at: Optional[datetime] = None

    @field_serializer('completed_question_indices', 'revealed_question_indices')
    def serialize_indices(self, v: set[int]) -> list[int]:
        return sorted(v)

    @property
    def resolved_indices(self) -> set[int]:
        """Indices the student may move past: answered correctly or revealed."""
        return self.completed_question_indices | self.revealed_question_indices


class AccessCheck(BaseModel):
    restricted: bool
    current_ip: str


class AssignmentStatus(BaseModel):
    """Per-assignment line of a collection summary."""
    assignment_id: str
    title: str
    order_index: int
    started: bool = False
    is_completed: bool = False
    progress_percent: float = 0.0


class CollectionSummary(BaseModel):
    collection_id: Optional[str] = None
    progress_percent: float = 0.0
    per_assignment: list[AssignmentStatus] = []
    first_incomplete_index: Optional[int] = None  # None when empty
    all_done: bool = False
