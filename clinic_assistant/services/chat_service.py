"""Chat turn orchestration and transcript retrieval.

A turn has two phases with independent failure modes:

1. **respond**: resolve the caller, run the turn graph (command interpreter,
   then the model only if no command matched) and produce the reply.
2. **record**: append the (message, reply) pair to the session transcript.
   A failure here is logged and swallowed; the reply is still returned.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from clinic_assistant.caller import CallerContext, Role
from clinic_assistant.services.auth_service import AuthService
from clinic_assistant.services.session_store import ChatMessage, SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatTurn:
    message: str
    session_id: str


@dataclass(frozen=True)
class ChatHistory:
    messages: list[ChatMessage]
    session_id: str | None


def generate_session_id() -> str:
    return f"session_{uuid.uuid4()}"


class ChatService:
    def __init__(self, graph, sessions: SessionStore, auth: AuthService) -> None:
        self._graph = graph
        self._sessions = sessions
        self._auth = auth

    def resolve_caller(self, email: str | None, role_hint: str | None) -> CallerContext:
        """Build the caller context.

        The role in the request is only a hint: when an email is given and a
        matching account exists, the account's role wins.
        """
        caller = CallerContext.build(email=email, role_name=role_hint)
        if not caller.is_identified:
            return caller
        try:
            user = self._auth.get_user_by_email(caller.email)
        except Exception:
            logger.exception("Role lookup failed for %s; using the request hint", caller.email)
            return caller
        if user is None:
            return caller
        return CallerContext(role=Role.ADMIN if user.is_admin else Role.PATIENT, email=caller.email)

    def respond(self, message: str, session_id: str, caller: CallerContext) -> str:
        state = self._graph.invoke(
            {"message": message, "session_id": session_id, "caller": caller, "reply": None}
        )
        return state["reply"]

    def record(self, session_id: str, message: str, reply: str, caller: CallerContext) -> bool:
        """Append the turn to the transcript.  Returns ``False`` if it could not be stored."""
        try:
            self._sessions.append_turn(session_id, message, reply, user_email=caller.email)
        except Exception:
            logger.exception("Error saving chat turn for session %s", session_id)
            return False
        return True

    def handle_turn(
        self,
        message: str,
        *,
        session_id: str | None = None,
        user_email: str | None = None,
        user_role: str | None = None,
    ) -> ChatTurn:
        session_id = session_id or generate_session_id()
        caller = self.resolve_caller(user_email, user_role)
        logger.debug("Turn for %s as %s", session_id, caller.role.value)

        reply = self.respond(message, session_id, caller)
        self.record(session_id, message, reply, caller)
        return ChatTurn(message=reply, session_id=session_id)

    def history_for(self, email: str) -> ChatHistory:
        """Latest transcript for *email*, or an empty history with no session id."""
        transcript = self._sessions.latest_for_email(email)
        if transcript is None:
            return ChatHistory(messages=[], session_id=None)
        return ChatHistory(messages=transcript.messages, session_id=transcript.session_id)
