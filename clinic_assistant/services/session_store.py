"""Chat transcript persistence.

Each transcript is a ``chat_sessions`` row plus one ``chat_messages`` row per
entry.  Appending a turn only ever *inserts* rows, so two concurrent turns for
the same session both land without either overwriting the other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, insert, select, update

from clinic_assistant.database import Database
from clinic_assistant.models import chat_messages, chat_sessions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime | None = None


@dataclass(frozen=True)
class Transcript:
    session_id: str
    user_email: str | None
    messages: list[ChatMessage]


def _insert_session_if_absent(dialect_name: str):
    """Build an ``INSERT … ON CONFLICT DO NOTHING`` for the session row."""
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as dialect_insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as dialect_insert
    else:
        return None
    return dialect_insert(chat_sessions).on_conflict_do_nothing(
        index_elements=[chat_sessions.c.session_id],
    )


class SessionStore:
    """Append-only store for chat transcripts keyed by session id."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def append_turn(
        self,
        session_id: str,
        user_message: str,
        assistant_message: str,
        *,
        user_email: str | None = None,
    ) -> None:
        """Append one user entry followed by one assistant entry.

        Creates the session on first use.  Both entries are written in a
        single transaction so a transcript never holds half a turn.
        """
        now = datetime.now(UTC)
        if user_email:
            user_email = user_email.strip().lower()
        with self._db.begin() as conn:
            stmt = _insert_session_if_absent(self._db.dialect_name)
            if stmt is not None:
                conn.execute(
                    stmt,
                    {"session_id": session_id, "user_email": user_email,
                     "created_at": now, "updated_at": now},
                )
            else:
                exists = conn.execute(
                    select(chat_sessions.c.session_id).where(chat_sessions.c.session_id == session_id)
                ).first()
                if exists is None:
                    conn.execute(
                        insert(chat_sessions).values(
                            session_id=session_id, user_email=user_email,
                            created_at=now, updated_at=now,
                        )
                    )

            values: dict[str, Any] = {"updated_at": now}
            if user_email:
                values["user_email"] = user_email
            conn.execute(
                update(chat_sessions)
                .where(chat_sessions.c.session_id == session_id)
                .values(**values)
            )

            conn.execute(
                insert(chat_messages),
                [
                    {"session_id": session_id, "role": "user",
                     "content": user_message, "timestamp": now},
                    {"session_id": session_id, "role": "assistant",
                     "content": assistant_message, "timestamp": now},
                ],
            )
        logger.debug("Appended turn to session %s", session_id)

    def recent_messages(self, session_id: str, limit: int) -> list[ChatMessage]:
        """Return the last *limit* entries of a transcript, oldest first."""
        if limit <= 0:
            return []
        with self._db.connect() as conn:
            rows = conn.execute(
                select(chat_messages.c.role, chat_messages.c.content, chat_messages.c.timestamp)
                .where(chat_messages.c.session_id == session_id)
                .order_by(chat_messages.c.id.desc())
                .limit(limit)
            ).all()
        return [ChatMessage(r.role, r.content, r.timestamp) for r in reversed(rows)]

    def get_transcript(self, session_id: str) -> Transcript | None:
        with self._db.connect() as conn:
            session = conn.execute(
                select(chat_sessions).where(chat_sessions.c.session_id == session_id)
            ).first()
            if session is None:
                return None
            return Transcript(
                session_id=session.session_id,
                user_email=session.user_email,
                messages=self._load_messages(conn, session_id),
            )

    def latest_for_email(self, email: str) -> Transcript | None:
        """Return the most recently updated transcript associated with *email*."""
        with self._db.connect() as conn:
            session = conn.execute(
                select(chat_sessions)
                .where(chat_sessions.c.user_email == email.strip().lower())
                .order_by(chat_sessions.c.updated_at.desc(), chat_sessions.c.created_at.desc())
                .limit(1)
            ).first()
            if session is None:
                return None
            return Transcript(
                session_id=session.session_id,
                user_email=session.user_email,
                messages=self._load_messages(conn, session.session_id),
            )

    def purge_expired(self, retention_days: int) -> int:
        """Delete transcripts untouched for *retention_days*.  Returns count removed."""
        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
        with self._db.begin() as conn:
            expired = select(chat_sessions.c.session_id).where(chat_sessions.c.updated_at < cutoff)
            conn.execute(delete(chat_messages).where(chat_messages.c.session_id.in_(expired)))
            removed = conn.execute(
                delete(chat_sessions).where(chat_sessions.c.updated_at < cutoff)
            ).rowcount
        if removed:
            logger.info("Purged %d chat sessions older than %d days", removed, retention_days)
        return removed

    @staticmethod
    def _load_messages(conn, session_id: str) -> list[ChatMessage]:
        rows = conn.execute(
            select(chat_messages.c.role, chat_messages.c.content, chat_messages.c.timestamp)
            .where(chat_messages.c.session_id == session_id)
            .order_by(chat_messages.c.id)
        ).all()
        return [ChatMessage(r.role, r.content, r.timestamp) for r in rows]
