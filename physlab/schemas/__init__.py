"""
PhysLab Schemas - Pydantic models for the physics exercise platform.

This module exports all schema classes for:
- Exercise: questions, assignments, collections, classrooms
- Progress: progress records, access checks, collection summaries
"""

# Exercise schemas
from .exercise import (
    OPTION_LABELS,
    QuestionType,
    CollectionCategory,
    Question,
    Assignment,
    Collection,
    Classroom,
)

# Progress schemas
from .progress import (
    ProgressRecord,
    AccessCheck,
    AssignmentStatus,
    CollectionSummary,
)

__all__ = [
    # Exercise
    'OPTION_LABELS',
    'QuestionType',
    'CollectionCategory',
    'Question',
    'Assignment',
    'Collection',
    'Classroom',
    # Progress
    'ProgressRecord',
    'AccessCheck',
    'AssignmentStatus',
    'CollectionSummary',
]
