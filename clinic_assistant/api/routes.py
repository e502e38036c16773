"""FastAPI route definitions for the chat assistant."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from clinic_assistant.api.dependencies import get_services
from clinic_assistant.api.schemas import (
    ChatHistoryResponse,
    ChatMessageOut,
    ChatRequest,
    ChatResponse,
    HealthResponse,
)
from clinic_assistant.exceptions import BadRequestException
from clinic_assistant.wiring import ClinicServices

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(http_request: Request):
    """Health check endpoint."""
    services = getattr(http_request.app.state, "services", None)
    if services is None or not await asyncio.to_thread(services.db.check_connection):
        return HealthResponse(status="degraded", database="unavailable")
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    http_request: Request,
    services: ClinicServices = Depends(get_services),
):
    """Answer one chat message.

    Commands (login, book, approve, ...) are executed directly; anything
    else goes to the language model with the caller's role prompt and the
    recent transcript.  A new ``sessionId`` is issued when none is sent.

    The turn is blocking (database and model calls), so it runs in the
    default thread pool to keep the event loop free.
    """
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        turn = await asyncio.to_thread(
            services.chat.handle_turn,
            request.message,
            session_id=request.session_id,
            user_email=request.user_email,
            user_role=request.user_role,
        )
    except Exception:
        logger.exception("[%s] Error processing chat request", request_id)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to process chat message",
                "details": "An internal error occurred. Please try again.",
            },
        )

    return ChatResponse(message=turn.message, session_id=turn.session_id)


@router.get("/chat/history", response_model=ChatHistoryResponse)
async def chat_history(
    email: str | None = None,
    services: ClinicServices = Depends(get_services),
):
    """Return the most recently active transcript for *email*."""
    if not email or not email.strip():
        raise BadRequestException("Email is required")

    history = await asyncio.to_thread(services.chat.history_for, email)
    return ChatHistoryResponse(
        message="Chat history retrieved successfully",
        messages=[
            ChatMessageOut(role=m.role, content=m.content, timestamp=m.timestamp)
            for m in history.messages
        ],
        session_id=history.session_id,
    )
