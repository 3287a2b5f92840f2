"""
Exercise content schemas for PhysLab.

Defines Pydantic models for classroom content including:
- Questions (numerical and multiple choice)
- Assignments (linear or variation mode)
- Collections (classwork / homework)
- Classrooms with their network access policy
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# Option labels by position; multiple choice questions carry at most four options
OPTION_LABELS = ("A", "B", "C", "D")


class QuestionType(str, Enum):
    NUMERICAL = "numerical"
    MULTIPLE_CHOICE = "multiple_choice"


class CollectionCategory(str, Enum):
    CLASSWORK = "classwork"
    HOMEWORK = "homework"


# -----------------------------------------------------------------------------
# Questions
# -----------------------------------------------------------------------------

class Question(BaseModel):
    """
    A single question of an assignment.

    Identity within the assignment is its position in the question list,
    not its id: completion and reveal tracking is keyed by index.
    """
    id: Optional[str] = None
    type: QuestionType
    latex_text: str = ""
    correct_value: Optional[float] = None      # numerical target
    tolerance_percent: Optional[float] = Field(default=None, ge=0)
    options: Optional[list[str]] = None        # multiple choice, labelled A..D
    correct_answer: Optional[str] = None       # multiple choice label
    solution_text: Optional[str] = None
    diagram_type: Optional[str] = Field(default=None, pattern=r'^(graph|scheme|none)$')
    diagram_svg: Optional[str] = None

    @field_validator('options')
    @classmethod
    def options_within_labels(cls, v):
        if v is not None and len(v) > len(OPTION_LABELS):
            raise ValueError(f'At most {len(OPTION_LABELS)} options are supported')
        return v

    @model_validator(mode='after')
    def answer_data_present(self):
        if self.type == QuestionType.NUMERICAL and self.correct_value is None:
            raise ValueError('Numerical question requires correct_value')
        if self.type == QuestionType.MULTIPLE_CHOICE and not self.correct_answer:
            raise ValueError('Multiple choice question requires correct_answer')
        return self

    @property
    def tolerance(self) -> float:
        """Tolerance in percent of the target; absent means exact match."""
        return self.tolerance_percent or 0.0

    @property
    def has_solution(self) -> bool:
        return bool(self.solution_text)


# -----------------------------------------------------------------------------
# Assignments
# -----------------------------------------------------------------------------

class Assignment(BaseModel):
    """
    Ordered sequence of questions.

    required_variations_count of None or 0 selects linear mode; a positive
    value K selects variation mode where any K of the questions must be
    answered correctly.
    """
    id: str
    classroom_id: str
    title: str = ""
    published: bool = True
    required_variations_count: Optional[int] = Field(default=None, ge=0)
    show_all_questions: bool = False
    collection_id: Optional[str] = None
    order_index: Optional[int] = None
    collection_category: Optional[CollectionCategory] = None
    questions: list[Question] = []

    @model_validator(mode='after')
    def single_question_view_in_variation_mode(self):
        if self.is_variation_mode:
            self.show_all_questions = False
        return self

    @property
    def is_variation_mode(self) -> bool:
        return bool(self.required_variations_count)

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def effective_category(self) -> CollectionCategory:
        """Category used for access gating; standalone assignments act as homework."""
        return self.collection_category or CollectionCategory.HOMEWORK


# -----------------------------------------------------------------------------
# Collections and classrooms
# -----------------------------------------------------------------------------

class Collection(BaseModel):
    id: str
    classroom_id: str
    title: str = ""
    category: Optional[CollectionCategory] = None
    scheduled_date: Optional[datetime] = None
    assignments: list[Assignment] = []

    @property
    def effective_category(self) -> CollectionCategory:
        return self.category or CollectionCategory.HOMEWORK

    def is_visible(self, now: datetime) -> bool:
        """Collections scheduled in the future are hidden from students."""
        if self.scheduled_date is None:
            return True
        scheduled = self.scheduled_date
        if (scheduled.tzinfo is None) != (now.tzinfo is None):
            scheduled, now = scheduled.replace(tzinfo=None), now.replace(tzinfo=None)
        return scheduled <= now


class Classroom(BaseModel):
    id: str
    name: str = ""
    allowed_ip: Optional[str] = None
    ip_check_enabled: bool = False
