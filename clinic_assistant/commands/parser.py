"""Chat command grammar.

:func:`parse_command` tries each command shape in a fixed priority order and
returns exactly one of:

* :class:`Recognized`: a known command with its parsed arguments,
* :class:`Malformed`: a known command keyword with unusable arguments,
  carrying the correction to show the user,
* :data:`UNRECOGNIZED`: anything else (free text for the model).

Keywords are matched case-insensitively; arguments keep their casing, except
emails, which are lowercased.  Admin-only commands are unrecognized for
everyone else, so they fall through to the conversation like free text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from clinic_assistant.caller import CallerContext


class CommandName(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    BOOK = "book"
    PATIENT = "patient"
    APPROVE = "approve"
    CANCEL = "cancel"
    REMIND = "remind"
    HELP = "help"
    LOGOUT = "logout"


ADMIN_COMMANDS = (
    CommandName.PATIENT, CommandName.APPROVE, CommandName.CANCEL, CommandName.REMIND,
)


@dataclass(frozen=True)
class Recognized:
    command: CommandName
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Malformed:
    command: CommandName
    correction: str


@dataclass(frozen=True)
class Unrecognized:
    pass


UNRECOGNIZED = Unrecognized()

ParseResult = Union[Recognized, Malformed, Unrecognized]


BOOKING_RE = re.compile(
    r"book\s+(.+?)\s+on\s+(\d{4}-\d{2}-\d{2})\s+at\s+([\d:]+\s*(?:AM|PM)?)",
    re.IGNORECASE,
)
_REMIND_SPLIT_RE = re.compile(r"\s+on\s+", re.IGNORECASE)
_REMIND_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S")

# ── Correction messages ──────────────────────────────────────────────

LOGIN_USAGE = (
    "❌ Please provide your login credentials in this format:\n\n"
    "`login [email@example.com] [password]`\n\n"
    "Example:\n`login john@gmail.com password123`"
)
LOGIN_INCOMPLETE = (
    "❌ Incomplete login command. Please provide both email and password:\n\n"
    "`login [email@example.com] [password]`"
)
REGISTER_USAGE = (
    "❌ Please provide registration details in this format:\n\n"
    "`register [name] [email@example.com] [password]`\n\n"
    "Example:\n`register John Doe john@gmail.com password123`"
)
REGISTER_INCOMPLETE = (
    "❌ Incomplete registration command. Required format:\n\n"
    "`register [name] [email@example.com] [password]`"
)
BOOK_USAGE = (
    "❌ Please provide appointment details in this format:\n\n"
    "`book [service] on [YYYY-MM-DD] at [time]`\n\n"
    "Example:\n`book Consultation on 2026-02-15 at 10:00 AM`\n\n"
    "Available services: Consultation, Scaling & Polishing, Composite Filling, Zirconia Crown, etc."
)
BOOK_INVALID = (
    "❌ Invalid format. Please use:\n\n"
    "`book [service] on [YYYY-MM-DD] at [time]`\n\n"
    "Example:\n`book Consultation on 2026-02-15 at 10:00 AM`"
)
PATIENT_USAGE = "❌ Please specify patient email:\n\n`patient [email@example.com]`"
APPROVE_USAGE = "❌ Please specify appointment ID:\n\n`approve [appointment_id]`"
CANCEL_USAGE = "❌ Please specify appointment ID:\n\n`cancel [appointment_id]`"
REMIND_USAGE = (
    "❌ Please specify appointment ID and reminder date:\n\n"
    "`remind [appointment_id] on [YYYY-MM-DD HH:MM]`"
)
REMIND_BAD_DATE = (
    "❌ I couldn't read that reminder date. Use this format:\n\n"
    "`remind [appointment_id] on [YYYY-MM-DD HH:MM]`\n\n"
    "Example:\n`remind 64f1c2 on 2026-02-20 09:00`"
)


def parse_reminder_date(raw: str) -> datetime | None:
    raw = raw.strip()
    for fmt in _REMIND_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


# ── Per-command parsers ──────────────────────────────────────────────


def _parse_login(tokens: list[str], caller: CallerContext) -> ParseResult:
    if caller.is_identified:
        # Outcome depends only on who is asking
        return Recognized(CommandName.LOGIN)
    if len(tokens) == 1:
        return Malformed(CommandName.LOGIN, LOGIN_USAGE)
    if len(tokens) < 3:
        return Malformed(CommandName.LOGIN, LOGIN_INCOMPLETE)
    return Recognized(
        CommandName.LOGIN,
        {"email": tokens[1].lower(), "password": " ".join(tokens[2:])},
    )


def _parse_register(tokens: list[str], caller: CallerContext) -> ParseResult:
    if caller.is_identified:
        return Recognized(CommandName.REGISTER)
    if len(tokens) == 1:
        return Malformed(CommandName.REGISTER, REGISTER_USAGE)
    rest = tokens[1:]
    at = next((i for i, token in enumerate(rest) if "@" in token), None)
    # Name before the email, password after it
    if at is None or at == 0 or at == len(rest) - 1:
        return Malformed(CommandName.REGISTER, REGISTER_INCOMPLETE)
    return Recognized(
        CommandName.REGISTER,
        {
            "name": " ".join(rest[:at]),
            "email": rest[at].lower(),
            "password": " ".join(rest[at + 1:]),
        },
    )


def _parse_book(text: str, tokens: list[str], caller: CallerContext) -> ParseResult:
    if not caller.is_identified:
        return Recognized(CommandName.BOOK)
    if len(tokens) == 1:
        return Malformed(CommandName.BOOK, BOOK_USAGE)
    match = BOOKING_RE.search(text)
    if not match:
        return Malformed(CommandName.BOOK, BOOK_INVALID)
    service, day, time = match.groups()
    return Recognized(
        CommandName.BOOK,
        {"service": service.strip(), "date": day, "time": time.strip()},
    )


def _parse_admin(command: CommandName, tokens: list[str]) -> ParseResult:
    rest = " ".join(tokens[1:])
    if command is CommandName.PATIENT:
        if not rest:
            return Malformed(command, PATIENT_USAGE)
        return Recognized(command, {"email": tokens[1].lower()})

    if command in (CommandName.APPROVE, CommandName.CANCEL):
        if not rest:
            return Malformed(command, APPROVE_USAGE if command is CommandName.APPROVE else CANCEL_USAGE)
        return Recognized(command, {"appointment_id": rest})

    parts = _REMIND_SPLIT_RE.split(rest, maxsplit=1)
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        return Malformed(command, REMIND_USAGE)
    remind_at = parse_reminder_date(parts[1])
    if remind_at is None:
        return Malformed(command, REMIND_BAD_DATE)
    return Recognized(command, {"appointment_id": parts[0].strip(), "remind_at": remind_at})


def parse_command(message: str, caller: CallerContext) -> ParseResult:
    """Classify a chat message for *caller*.

    Commands whose outcome depends only on who is asking (``login`` or
    ``register`` from an identified caller, ``book`` from an anonymous one)
    are recognized without validating their arguments.
    """
    text = message.strip()
    tokens = text.split()
    if not tokens:
        return UNRECOGNIZED
    keyword = tokens[0].lower()

    if keyword == CommandName.LOGIN.value:
        return _parse_login(tokens, caller)
    if keyword == CommandName.REGISTER.value:
        return _parse_register(tokens, caller)
    if keyword == CommandName.BOOK.value:
        return _parse_book(text, tokens, caller)

    if caller.is_admin:
        for command in ADMIN_COMMANDS:
            if keyword == command.value:
                return _parse_admin(command, tokens)

    lowered = " ".join(tokens).lower()
    if lowered == CommandName.HELP.value:
        return Recognized(CommandName.HELP)
    if lowered == CommandName.LOGOUT.value:
        return Recognized(CommandName.LOGOUT)

    return UNRECOGNIZED
