"""Builds the collaborator graph shared by the API server and the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from langchain_core.language_models import BaseChatModel

from clinic_assistant.agent import ConversationalFallback, build_chat_model, create_turn_graph
from clinic_assistant.commands.interpreter import CommandInterpreter
from clinic_assistant.config import CHAT_HISTORY_WINDOW, DATABASE_URL, METRICS_ENABLED
from clinic_assistant.database import Database
from clinic_assistant.services.appointment_service import AppointmentService
from clinic_assistant.services.auth_service import AuthService
from clinic_assistant.services.chat_service import ChatService
from clinic_assistant.services.metrics import MetricsClient
from clinic_assistant.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class ClinicServices:
    db: Database
    auth: AuthService
    appointments: AppointmentService
    sessions: SessionStore
    chat: ChatService
    metrics: MetricsClient

    def close(self) -> None:
        self.metrics.close()
        self.db.dispose()


def build_services(
    db: Database | None = None,
    *,
    llm: BaseChatModel | None = None,
    metrics: MetricsClient | None = None,
    history_window: int = CHAT_HISTORY_WINDOW,
) -> ClinicServices:
    """Create every service once; callers own the returned bundle's lifecycle."""
    db = db or Database(DATABASE_URL)
    db.create_all()
    metrics = metrics or MetricsClient(enabled=METRICS_ENABLED)

    auth = AuthService(db)
    appointments = AppointmentService(db, auth)
    sessions = SessionStore(db)
    interpreter = CommandInterpreter(auth, appointments, metrics)
    fallback = ConversationalFallback(
        llm or build_chat_model(),
        sessions.recent_messages,
        window=history_window,
        metrics=metrics,
    )
    chat = ChatService(create_turn_graph(interpreter, fallback), sessions, auth)
    logger.debug("Clinic services wired (db=%s)", db.dialect_name)
    return ClinicServices(
        db=db, auth=auth, appointments=appointments, sessions=sessions, chat=chat, metrics=metrics,
    )
