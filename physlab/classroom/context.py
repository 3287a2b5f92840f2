"""
RequestContext - Everything the core needs to know about one inbound request.

A context lives for exactly one request. It carries the caller identity
supplied by the authentication layer and the raw network information used
for address resolution, and memoizes the resolved address for the lifetime
of that request only.
"""

from dataclasses import dataclass, field
from typing import Optional


STUDENT = "student"
TEACHER = "teacher"
ADMIN = "admin"


@dataclass
class RequestContext:
    """Identity and network data for a single request."""
    student_id: str
    role: str = STUDENT
    headers: dict[str, str] = field(default_factory=dict)
    remote_addr: Optional[str] = None
    resolved_ip: Optional[str] = None  # set by the access gate on first use

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def is_staff(self) -> bool:
        return self.role in (TEACHER, ADMIN)
