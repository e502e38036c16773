"""LangGraph turn pipeline for the clinic chat assistant.

Architecture:
  Each chat turn runs through a small StateGraph with two nodes:

    1. **interpret**: the command interpreter.  Deterministic actions
       (login, book, approve, ...) are answered here without calling
       the model.
    2. **assistant**: the conversational fallback.  Role-conditioned
       system prompt, recent transcript and the message are sent to
       the language model.

  Routing:
    interpret → (reply set?) → END
              → (no reply?)  → assistant → END

  Memory:
    The graph is compiled without a checkpointer.  Transcripts live in the
    :class:`~clinic_assistant.services.session_store.SessionStore`; the
    assistant node reads the recent window from it and the chat service
    appends the finished turn afterwards.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from clinic_assistant.caller import CallerContext
from clinic_assistant.commands.interpreter import CommandInterpreter
from clinic_assistant.config import (
    ANTHROPIC_API_KEY,
    CHAT_HISTORY_WINDOW,
    MODEL_MAX_TOKENS,
    MODEL_NAME,
    MODEL_TEMPERATURE,
)
from clinic_assistant.prompts import prompt_for
from clinic_assistant.services.metrics import MetricsClient, timed_ms
from clinic_assistant.services.session_store import ChatMessage

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I could not generate a response."

HistoryLoader = Callable[[str, int], Sequence[ChatMessage]]


class TurnState(TypedDict):
    """The state that flows through the graph for one chat turn."""

    message: str
    session_id: str
    caller: CallerContext
    reply: str | None


def build_chat_model() -> ChatAnthropic:
    """Build the chat model used for free-text answers."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=MODEL_TEMPERATURE,
        max_tokens=MODEL_MAX_TOKENS,
    )


def build_model_messages(
    system_prompt: str,
    history: Sequence[ChatMessage],
    message: str,
    window: int = CHAT_HISTORY_WINDOW,
) -> list[BaseMessage]:
    """System prompt first, then the last *window* transcript entries, then *message*."""
    recent = list(history)[-window:] if window > 0 else []
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    for entry in recent:
        if entry.role == "user":
            messages.append(HumanMessage(content=entry.content))
        else:
            messages.append(AIMessage(content=entry.content))
    messages.append(HumanMessage(content=message))
    return messages


def _reply_text(response: BaseMessage) -> str:
    """Flatten a model response to plain text (content may be a list of blocks)."""
    content = response.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


class ConversationalFallback:
    """One best-effort model call per turn; never leaves a turn unanswered."""

    def __init__(
        self,
        llm: BaseChatModel,
        history_loader: HistoryLoader,
        *,
        window: int = CHAT_HISTORY_WINDOW,
        metrics: MetricsClient | None = None,
    ) -> None:
        self._llm = llm
        self._history_loader = history_loader
        self._window = window
        self._metrics = metrics

    def reply(self, message: str, session_id: str, caller: CallerContext) -> str:
        try:
            history = self._history_loader(session_id, self._window)
        except Exception:
            logger.exception("Could not load history for session %s", session_id)
            history = []

        messages = build_model_messages(prompt_for(caller), history, message, self._window)
        t0 = time.perf_counter()
        try:
            response = self._llm.invoke(messages)
        except Exception as exc:
            self._record(timed_ms(t0), type(exc).__name__)
            logger.exception("Model call failed for session %s", session_id)
            return FALLBACK_REPLY

        elapsed = timed_ms(t0)
        text = _reply_text(response)
        if not text:
            self._record(elapsed, "EmptyResponse")
            logger.warning("Model returned no content for session %s", session_id)
            return FALLBACK_REPLY
        self._record(elapsed, None)
        logger.debug("Model answered session %s in %.0fms", session_id, elapsed)
        return text

    def _record(self, latency_ms: float, error_type: str | None) -> None:
        if self._metrics is not None:
            self._metrics.record_call(
                "anthropic", "chat_fallback", latency_ms=latency_ms, error_type=error_type,
            )


# ── Conditional edge ─────────────────────────────────────────────────


def route_after_interpret(state: TurnState) -> str:
    """Skip the model when the interpreter already produced a reply."""
    if state.get("reply") is not None:
        return END
    return "assistant"


# ── Graph assembly ───────────────────────────────────────────────────


def create_turn_graph(interpreter: CommandInterpreter, fallback: ConversationalFallback):
    """Build and compile the per-turn graph.

    Returns a compiled graph that can be invoked with:
        graph.invoke({"message": "...", "session_id": "...",
                      "caller": CallerContext(...), "reply": None})
    """

    def interpret_node(state: TurnState) -> dict:
        return {"reply": interpreter.interpret(state["message"], state["caller"])}

    def assistant_node(state: TurnState) -> dict:
        return {"reply": fallback.reply(state["message"], state["session_id"], state["caller"])}

    graph = StateGraph(TurnState)
    graph.add_node("interpret", interpret_node)
    graph.add_node("assistant", assistant_node)
    graph.set_entry_point("interpret")
    graph.add_conditional_edges(
        "interpret", route_after_interpret, {"assistant": "assistant", END: END},
    )
    graph.add_edge("assistant", END)
    return graph.compile()
