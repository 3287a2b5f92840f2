"""
PhysLab Classroom - Runtime components for progress tracking and navigation.

This module provides:
- ClassroomLoader: Load content from classroom.db
- ProgressStore: Persist student progress
- AccessGate: Network-location policy for classwork
- AssignmentController: Per-assignment progress state machine
- CollectionNavigator: Collection progress and lockstep navigation
- evaluate: Answer evaluation
"""

from .context import (
    RequestContext,
    STUDENT,
    TEACHER,
    ADMIN,
)

from .evaluator import (
    evaluate,
    parse_numeric_answer,
    option_labels,
    is_within_tolerance,
)

from .loader import ClassroomLoader

from .progress import ProgressStore

from .access import (
    AccessGate,
    fetch_public_ip,
    extract_client_ip,
    is_local_ip,
)

from .controller import (
    AssignmentController,
    AssignmentView,
    AnswerResult,
    eligible_variations,
    is_attempt_completed,
    assignment_progress_percent,
)

from .navigator import (
    CollectionNavigator,
    CollectionSession,
    AssignmentAvailability,
    summarize_collection,
)

from .compiler import (
    compile_classroom,
    set_classroom_ip_policy,
)

__all__ = [
    # Context
    "RequestContext",
    "STUDENT",
    "TEACHER",
    "ADMIN",
    # Evaluator
    "evaluate",
    "parse_numeric_answer",
    "option_labels",
    "is_within_tolerance",
    # Storage
    "ClassroomLoader",
    "ProgressStore",
    # Access
    "AccessGate",
    "fetch_public_ip",
    "extract_client_ip",
    "is_local_ip",
    # Controller
    "AssignmentController",
    "AssignmentView",
    "AnswerResult",
    "eligible_variations",
    "is_attempt_completed",
    "assignment_progress_percent",
    # Navigator
    "CollectionNavigator",
    "CollectionSession",
    "AssignmentAvailability",
    "summarize_collection",
    # Compiler
    "compile_classroom",
    "set_classroom_ip_policy",
]
