"""Tests for the chat command grammar."""

from __future__ import annotations

from datetime import datetime

import pytest

from clinic_assistant.caller import CallerContext, Role
from clinic_assistant.commands.parser import (
    ADMIN_COMMANDS,
    APPROVE_USAGE,
    BOOK_INVALID,
    BOOK_USAGE,
    CANCEL_USAGE,
    LOGIN_INCOMPLETE,
    LOGIN_USAGE,
    PATIENT_USAGE,
    REGISTER_INCOMPLETE,
    REGISTER_USAGE,
    REMIND_BAD_DATE,
    REMIND_USAGE,
    UNRECOGNIZED,
    CommandName,
    Malformed,
    Recognized,
    parse_command,
    parse_reminder_date,
)

ANONYMOUS = CallerContext()
PATIENT = CallerContext(role=Role.PATIENT, email="jane@example.com")
ADMIN = CallerContext(role=Role.ADMIN, email="dr.smith@clinic.com")


class TestLogin:
    def test_full_login_is_recognized(self):
        result = parse_command("login John@Gmail.com password123", ANONYMOUS)
        assert result == Recognized(
            CommandName.LOGIN, {"email": "john@gmail.com", "password": "password123"},
        )

    def test_keyword_is_case_insensitive(self):
        result = parse_command("LOGIN john@gmail.com pw", ANONYMOUS)
        assert isinstance(result, Recognized)
        assert result.command is CommandName.LOGIN

    def test_bare_login_gets_usage(self):
        assert parse_command("login", ANONYMOUS) == Malformed(CommandName.LOGIN, LOGIN_USAGE)

    def test_missing_password_is_incomplete(self):
        result = parse_command("login john@gmail.com", ANONYMOUS)
        assert result == Malformed(CommandName.LOGIN, LOGIN_INCOMPLETE)

    def test_identified_caller_skips_argument_checks(self):
        assert parse_command("login", PATIENT) == Recognized(CommandName.LOGIN)


class TestRegister:
    def test_multi_word_name(self):
        result = parse_command("register John Doe john@gmail.com password123", ANONYMOUS)
        assert result == Recognized(
            CommandName.REGISTER,
            {"name": "John Doe", "email": "john@gmail.com", "password": "password123"},
        )

    def test_bare_register_gets_usage(self):
        result = parse_command("register", ANONYMOUS)
        assert result == Malformed(CommandName.REGISTER, REGISTER_USAGE)

    @pytest.mark.parametrize(
        "message",
        [
            "register john@gmail.com password123",  # no name
            "register John password123",  # no email
            "register John john@gmail.com",  # no password
        ],
    )
    def test_incomplete_register(self, message):
        result = parse_command(message, ANONYMOUS)
        assert result == Malformed(CommandName.REGISTER, REGISTER_INCOMPLETE)

    def test_identified_caller_is_recognized_without_args(self):
        assert parse_command("register", ADMIN) == Recognized(CommandName.REGISTER)


class TestBook:
    def test_well_formed_booking(self):
        result = parse_command("book Consultation on 2026-02-15 at 10:00 AM", PATIENT)
        assert result == Recognized(
            CommandName.BOOK,
            {"service": "Consultation", "date": "2026-02-15", "time": "10:00 AM"},
        )

    def test_multi_word_service_keeps_casing(self):
        result = parse_command("Book Scaling & Polishing on 2026-03-01 at 2:30 pm", PATIENT)
        assert isinstance(result, Recognized)
        assert result.args["service"] == "Scaling & Polishing"
        assert result.args["time"] == "2:30 pm"

    def test_anonymous_booking_is_recognized_without_parsing(self):
        assert parse_command("book anything at all", ANONYMOUS) == Recognized(CommandName.BOOK)

    def test_bare_book_gets_usage(self):
        assert parse_command("book", PATIENT) == Malformed(CommandName.BOOK, BOOK_USAGE)

    def test_unparseable_booking_is_invalid(self):
        result = parse_command("book a cleaning tomorrow", PATIENT)
        assert result == Malformed(CommandName.BOOK, BOOK_INVALID)

    def test_booking_prefix_is_not_the_book_command(self):
        assert parse_command("booking a cleaning please", PATIENT) is UNRECOGNIZED


class TestAdminCommands:
    @pytest.mark.parametrize(
        "message",
        ["patient jane@example.com", "approve abc123", "cancel abc123",
         "remind abc123 on 2026-02-20 09:00"],
    )
    def test_unrecognized_for_non_admins(self, message):
        assert parse_command(message, PATIENT) is UNRECOGNIZED
        assert parse_command(message, ANONYMOUS) is UNRECOGNIZED

    @pytest.mark.parametrize("command", ADMIN_COMMANDS)
    def test_every_admin_keyword_is_recognized_for_admins(self, command):
        result = parse_command(f"{command.value.upper()} abc123 on 2026-02-20 09:00", ADMIN)
        assert isinstance(result, Recognized)
        assert result.command is command
        assert parse_command(f"{command.value} abc123", PATIENT) is UNRECOGNIZED

    def test_patient_lookup_lowercases_email(self):
        result = parse_command("patient Jane@Example.com", ADMIN)
        assert result == Recognized(CommandName.PATIENT, {"email": "jane@example.com"})

    def test_approve_and_cancel_take_an_id(self):
        assert parse_command("approve abc123", ADMIN) == Recognized(
            CommandName.APPROVE, {"appointment_id": "abc123"},
        )
        assert parse_command("cancel abc123", ADMIN) == Recognized(
            CommandName.CANCEL, {"appointment_id": "abc123"},
        )

    @pytest.mark.parametrize(
        "message,correction",
        [
            ("patient", PATIENT_USAGE),
            ("approve", APPROVE_USAGE),
            ("cancel", CANCEL_USAGE),
            ("remind", REMIND_USAGE),
            ("remind abc123", REMIND_USAGE),
        ],
    )
    def test_bare_keyword_gets_usage(self, message, correction):
        result = parse_command(message, ADMIN)
        assert isinstance(result, Malformed)
        assert result.correction == correction

    def test_remind_parses_date_and_time(self):
        result = parse_command("remind 64f1c2 on 2026-02-20 09:00", ADMIN)
        assert result == Recognized(
            CommandName.REMIND,
            {"appointment_id": "64f1c2", "remind_at": datetime(2026, 2, 20, 9, 0)},
        )

    def test_remind_with_bad_date(self):
        result = parse_command("remind 64f1c2 on next tuesday", ADMIN)
        assert result == Malformed(CommandName.REMIND, REMIND_BAD_DATE)


class TestSimpleCommands:
    @pytest.mark.parametrize("caller", [ANONYMOUS, PATIENT, ADMIN])
    def test_help_for_every_caller(self, caller):
        assert parse_command("  HELP ", caller) == Recognized(CommandName.HELP)

    def test_logout(self):
        assert parse_command("logout", PATIENT) == Recognized(CommandName.LOGOUT)

    def test_help_must_be_the_whole_message(self):
        assert parse_command("help me book a cleaning", PATIENT) is UNRECOGNIZED


class TestFreeText:
    @pytest.mark.parametrize("message", ["", "   ", "hello, what are your hours?"])
    def test_not_a_command(self, message):
        assert parse_command(message, PATIENT) is UNRECOGNIZED


class TestReminderDate:
    def test_iso_format_is_accepted(self):
        assert parse_reminder_date("2026-02-20T09:00") == datetime(2026, 2, 20, 9, 0)

    def test_garbage_returns_none(self):
        assert parse_reminder_date("soon") is None
