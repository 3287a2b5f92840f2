"""PhysLab utilities."""

from .course_loader import load_course, get_available_courses

__all__ = [
    "load_course",
    "get_available_courses",
]
