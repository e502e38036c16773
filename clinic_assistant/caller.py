"""Who is talking to the assistant on this turn."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    PATIENT = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class CallerContext:
    """Built once per request and passed to every chat component.

    ``role`` is always set; ``email`` is present only for identified callers.
    """

    role: Role = Role.ANONYMOUS
    email: str | None = None

    @property
    def is_identified(self) -> bool:
        return bool(self.email)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @classmethod
    def build(cls, *, email: str | None, role_name: str | None) -> CallerContext:
        """Combine an optional email with a role name (``"user"``/``"admin"``)."""
        email = email.strip().lower() if email and email.strip() else None
        # The hint alone grants admin, even without an email; see "Role hint trust" in DESIGN.md.
        if role_name == Role.ADMIN.value:
            return cls(role=Role.ADMIN, email=email)
        return cls(role=Role.PATIENT if email else Role.ANONYMOUS, email=email)
