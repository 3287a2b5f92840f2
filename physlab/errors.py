"""
Exception hierarchy for PhysLab.

Every error carries a user-facing message so the player can show it
directly. Callers distinguish retryable input errors from policy denials
by type.
"""

from typing import Optional


class PhysLabError(Exception):
    """Base class for all PhysLab errors."""

    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DraftAssignment(PhysLabError):
    """A progress write was attempted on an unpublished assignment."""

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__("Cannot save progress: assignment is still in draft")


class AccessRestricted(PhysLabError):
    """The classroom network policy denied the caller."""

    def __init__(self, classroom_id: str, current_ip: str):
        self.classroom_id = classroom_id
        self.current_ip = current_ip
        super().__init__(
            f"Classwork is only available from the classroom network (your address: {current_ip})"
        )


class InvalidInput(PhysLabError):
    """Malformed answer, index or request; the caller may retry at once."""

    retryable = True


class ExhaustedVariations(PhysLabError):
    """Variation mode ran out of eligible variations before the pass threshold."""

    def __init__(self, assignment_id: str, completed: int, required: int, total: int):
        self.assignment_id = assignment_id
        self.completed = completed
        self.required = required
        self.total = total
        super().__init__(
            f"No variations left: {completed} of {required} required passes "
            f"reached with all {total} variations used. Ask your teacher to reset the exercise."
        )


class NotFound(PhysLabError):
    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class PermissionDenied(PhysLabError):
    def __init__(self, action: str, role: Optional[str]):
        self.action = action
        self.role = role
        super().__init__(f"Role '{role}' may not {action}")


class PersistenceError(PhysLabError):
    """A store read or write failed. The upsert may be re-issued by the caller."""

    retryable = True

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Failed to {operation}")
