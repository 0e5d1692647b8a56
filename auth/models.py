"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store owns
persistence, AuthService owns the rules; User only carries shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Registration always produces Role.USER."""

    USER = "User"
    ADMIN = "Admin"


@dataclass
class User:
    """A registered account.

    password_hash and salt are written together exactly once, at registration,
    and are never exposed through the API. updated_at stays None until the
    first status toggle or role change.
    """

    username: str
    email: str
    password_hash: str
    salt: str
    role: str = Role.USER.value
    id: int | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
