"""
Entity: User

Account that owns requests and is recorded as the actor of status changes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from docutrack.core.entities.certificate_request import utcnow


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass
class User:
    email: str
    first_name: str
    last_name: str
    national_id: str
    role: UserRole = UserRole.USER
    phone: str | None = None
    password_hash: str | None = None   # managed by the external auth service
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Actor:
    """Pre-authenticated identity performing an operation."""
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
