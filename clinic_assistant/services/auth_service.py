"""User accounts: registration, login, profile updates and lookups."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from clinic_assistant.catalog import UserRole
from clinic_assistant.database import Database
from clinic_assistant.exceptions import BadRequestException, NotFoundException, UnauthorizedException
from clinic_assistant.models import users
from clinic_assistant.security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    name: str
    role: str
    phone_number: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: UserRecord


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_user(row) -> UserRecord:
    return UserRecord(
        id=row.id, email=row.email, name=row.name, role=row.role, phone_number=row.phone_number,
    )


class AuthService:
    def __init__(self, db: Database) -> None:
        self._db = db

    # ── Lookups ──────────────────────────────────────────────────────

    def get_user_by_email(self, email: str) -> UserRecord | None:
        with self._db.connect() as conn:
            row = conn.execute(
                select(users).where(users.c.email == normalize_email(email))
            ).first()
        return _to_user(row) if row else None

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._db.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).first()
        return _to_user(row) if row else None

    # ── Account operations ───────────────────────────────────────────

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password: str | None,
        role: UserRole = UserRole.USER,
        phone_number: str | None = None,
    ) -> UserRecord:
        """Insert a user row.  A ``None`` password leaves the account unusable
        until the patient sets one through a profile update."""
        email = normalize_email(email)
        now = datetime.now(UTC)
        record = UserRecord(
            id=uuid.uuid4().hex, email=email, name=name.strip(),
            role=role.value, phone_number=phone_number,
        )
        try:
            with self._db.begin() as conn:
                conn.execute(
                    insert(users).values(
                        id=record.id,
                        email=record.email,
                        name=record.name,
                        password_hash=get_password_hash(password or secrets.token_urlsafe(32)),
                        role=record.role,
                        phone_number=phone_number,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as exc:
            raise BadRequestException("User already exists") from exc
        logger.info("Created %s account for %s", record.role, email)
        return record

    def register(self, name: str, email: str, password: str) -> AuthResult:
        if not (name and name.strip()) or not (email and email.strip()) or not password:
            raise BadRequestException("Email, password, and name are required")
        if self.get_user_by_email(email) is not None:
            raise BadRequestException("User already exists")
        user = self.create_user(name=name, email=email, password=password)
        return AuthResult(token=self.issue_token(user), user=user)

    def login(self, email: str, password: str) -> AuthResult:
        if not (email and email.strip()) or not password:
            raise BadRequestException("Email and password are required")
        with self._db.connect() as conn:
            row = conn.execute(
                select(users).where(users.c.email == normalize_email(email))
            ).first()
        if row is None or not verify_password(password, row.password_hash):
            logger.info("Failed login for %s", normalize_email(email))
            raise UnauthorizedException("Invalid email or password")
        user = _to_user(row)
        return AuthResult(token=self.issue_token(user), user=user)

    def update_profile(
        self,
        user_id: str,
        *,
        name: str | None = None,
        password: str | None = None,
        phone_number: str | None = None,
    ) -> UserRecord:
        values: dict = {"updated_at": datetime.now(UTC)}
        if name:
            values["name"] = name.strip()
        if password:
            values["password_hash"] = get_password_hash(password)
        if phone_number:
            values["phone_number"] = phone_number
        with self._db.begin() as conn:
            result = conn.execute(update(users).where(users.c.id == user_id).values(**values))
        if result.rowcount == 0:
            raise NotFoundException("User not found")
        return self.get_user(user_id)

    @staticmethod
    def issue_token(user: UserRecord) -> str:
        return create_access_token({"sub": user.id, "email": user.email, "role": user.role})
