# rkive/models/session.py

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    STUDENT = "student"
    ADVISER = "adviser"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


@dataclass(frozen=True)
class Session:
    """
    Explicit per-request user context.

    Handlers receive this object instead of reading a process-wide
    "current user"; an anonymous session has `user_id=None`.
    """

    user_id: Optional[str] = None
    role: Role = Role.STUDENT

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUPERADMIN)
