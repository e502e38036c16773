"""Tests for chat command execution.

The auth and appointment services are mocked so each test pins down
which collaborator call a command makes and what the user sees.
"""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from clinic_assistant.caller import CallerContext, Role
from clinic_assistant.commands.interpreter import (
    ADMIN_HELP,
    ANONYMOUS_HELP,
    CHAT_APPROVAL_MESSAGE,
    CHAT_CANCELLATION_REASON,
    LOGIN_REQUIRED,
    LOGOUT_REPLY,
    PATIENT_HELP,
    CommandInterpreter,
)
from clinic_assistant.commands.parser import LOGIN_USAGE
from clinic_assistant.exceptions import ConflictException, NotFoundException, UnauthorizedException
from clinic_assistant.services.appointment_service import AppointmentRecord, PatientDetails
from clinic_assistant.services.auth_service import AuthResult, UserRecord

ANONYMOUS = CallerContext()
PATIENT = CallerContext(role=Role.PATIENT, email="jane@example.com")
ADMIN = CallerContext(role=Role.ADMIN, email="dr.smith@clinic.com")

JANE = UserRecord(id="u1", email="jane@example.com", name="Jane Doe", role="user")


def _appointment(**overrides) -> AppointmentRecord:
    values = dict(
        id="apt1",
        user_id="u1",
        user_name="Jane Doe",
        user_email="jane@example.com",
        date=date(2026, 2, 15),
        time="10:00 AM",
        service="Consultation",
        status="pending",
    )
    values.update(overrides)
    return AppointmentRecord(**values)


@pytest.fixture
def auth():
    mock = MagicMock()
    mock.get_user_by_email.return_value = JANE
    return mock


@pytest.fixture
def appointments():
    mock = MagicMock()
    mock.book.return_value = _appointment()
    return mock


@pytest.fixture
def metrics():
    return MagicMock()


@pytest.fixture
def interpreter(auth, appointments, metrics):
    return CommandInterpreter(auth, appointments, metrics)


class TestFreeTextAndCorrections:
    def test_free_text_returns_none(self, interpreter):
        assert interpreter.interpret("what are your opening hours?", PATIENT) is None

    def test_malformed_command_returns_correction(self, interpreter, auth, metrics):
        assert interpreter.interpret("login", ANONYMOUS) == LOGIN_USAGE
        auth.login.assert_not_called()
        metrics.record_command.assert_called_once_with("login", "malformed")


class TestLoginRegister:
    def test_login_success(self, interpreter, auth):
        auth.login.return_value = AuthResult(token="tok", user=JANE)
        reply = interpreter.interpret("login jane@example.com secret123", ANONYMOUS)
        auth.login.assert_called_once_with("jane@example.com", "secret123")
        assert "Login successful! Welcome Jane Doe" in reply

    def test_login_failure_shows_reason(self, interpreter, auth):
        auth.login.side_effect = UnauthorizedException("Invalid email or password")
        reply = interpreter.interpret("login jane@example.com wrong", ANONYMOUS)
        assert reply == "❌ Login failed: Invalid email or password"

    def test_login_service_crash_is_generic(self, interpreter, auth, metrics):
        auth.login.side_effect = RuntimeError("db down")
        reply = interpreter.interpret("login jane@example.com pw", ANONYMOUS)
        assert "Login error" in reply
        assert "db down" not in reply
        metrics.record_command.assert_called_once_with("login", "error")

    def test_already_logged_in(self, interpreter, auth):
        reply = interpreter.interpret("login other@example.com pw", PATIENT)
        assert "already logged in as jane@example.com" in reply
        auth.login.assert_not_called()

    def test_register_success(self, interpreter, auth):
        auth.register.return_value = AuthResult(token="tok", user=JANE)
        reply = interpreter.interpret("register Jane Doe jane@example.com secret123", ANONYMOUS)
        auth.register.assert_called_once_with("Jane Doe", "jane@example.com", "secret123")
        assert "Registration successful!" in reply

    def test_register_existing_user(self, interpreter, auth):
        from clinic_assistant.exceptions import BadRequestException

        auth.register.side_effect = BadRequestException("User already exists")
        reply = interpreter.interpret("register Jane jane@example.com pw", ANONYMOUS)
        assert reply == "❌ Registration failed: User already exists"

    def test_register_while_identified(self, interpreter, auth):
        reply = interpreter.interpret("register Jane jane@example.com pw", PATIENT)
        assert "logout first" in reply
        auth.register.assert_not_called()


class TestBook:
    def test_anonymous_must_login(self, interpreter, appointments):
        reply = interpreter.interpret("book Consultation on 2026-02-15 at 10:00 AM", ANONYMOUS)
        assert reply == LOGIN_REQUIRED
        appointments.book.assert_not_called()

    def test_successful_booking_confirms_details(self, interpreter, appointments):
        reply = interpreter.interpret("book Consultation on 2026-02-15 at 10:00 AM", PATIENT)
        appointments.book.assert_called_once_with(
            "jane@example.com", "Consultation", "2026-02-15", "10:00 AM", user_name="Jane Doe",
        )
        assert "Consultation" in reply
        assert "2026-02-15" in reply
        assert "10:00 AM" in reply
        assert "apt1" in reply

    def test_unknown_user(self, interpreter, auth, appointments):
        auth.get_user_by_email.return_value = None
        reply = interpreter.interpret("book Consultation on 2026-02-15 at 10:00 AM", PATIENT)
        assert "User not found" in reply
        appointments.book.assert_not_called()

    def test_slot_conflict(self, interpreter, appointments, metrics):
        appointments.book.side_effect = ConflictException(
            "Time slot 10:00 AM on 2026-02-15 is already booked. Please choose another time."
        )
        reply = interpreter.interpret("book Consultation on 2026-02-15 at 10:00 AM", PATIENT)
        assert reply.startswith("❌ Booking failed:")
        assert "already booked" in reply
        metrics.record_command.assert_called_once_with("book", "rejected")

    def test_booking_system_crash(self, interpreter, appointments):
        appointments.book.side_effect = ConnectionError("refused")
        reply = interpreter.interpret("book Consultation on 2026-02-15 at 10:00 AM", PATIENT)
        assert "Booking error" in reply


class TestHelpLogout:
    @pytest.mark.parametrize(
        "caller,expected",
        [(ANONYMOUS, ANONYMOUS_HELP), (PATIENT, PATIENT_HELP), (ADMIN, ADMIN_HELP)],
    )
    def test_help_depends_on_role(self, interpreter, caller, expected):
        assert interpreter.interpret("help", caller) == expected

    def test_help_texts_differ(self):
        assert "patient [email]" in ADMIN_HELP
        assert "book [service]" in PATIENT_HELP
        assert "login [email]" in ANONYMOUS_HELP
        assert "book" not in ANONYMOUS_HELP

    def test_logout(self, interpreter):
        assert interpreter.interpret("logout", PATIENT) == LOGOUT_REPLY


class TestAdminCommands:
    @pytest.mark.parametrize("caller", [ANONYMOUS, PATIENT])
    def test_non_admins_never_trigger_admin_effects(self, interpreter, appointments, caller):
        for message in ("approve apt1", "cancel apt1", "patient jane@example.com",
                        "remind apt1 on 2026-02-20 09:00"):
            assert interpreter.interpret(message, caller) is None
        appointments.approve.assert_not_called()
        appointments.cancel.assert_not_called()
        appointments.patient_details.assert_not_called()
        appointments.set_reminder.assert_not_called()

    def test_approve(self, interpreter, appointments):
        appointments.approve.return_value = _appointment(status="confirmed")
        reply = interpreter.interpret("approve apt1", ADMIN)
        appointments.approve.assert_called_once_with("apt1", CHAT_APPROVAL_MESSAGE)
        assert "Appointment apt1 approved!" in reply

    def test_approve_unknown_id(self, interpreter, appointments):
        appointments.approve.side_effect = NotFoundException("Appointment not found")
        reply = interpreter.interpret("approve nope", ADMIN)
        assert reply == "❌ Failed to approve appointment: Appointment not found"

    def test_cancel(self, interpreter, appointments):
        appointments.cancel.return_value = _appointment(status="cancelled")
        reply = interpreter.interpret("cancel apt1", ADMIN)
        appointments.cancel.assert_called_once_with("apt1", CHAT_CANCELLATION_REASON)
        assert "cancelled" in reply
        assert "Jane Doe" in reply

    def test_remind(self, interpreter, appointments):
        appointments.set_reminder.return_value = _appointment(
            reminder_set=True, reminder_date=datetime(2026, 2, 20, 9, 0),
        )
        reply = interpreter.interpret("remind apt1 on 2026-02-20 09:00", ADMIN)
        appointments.set_reminder.assert_called_once_with("apt1", datetime(2026, 2, 20, 9, 0))
        assert "2026-02-20 09:00" in reply

    def test_patient_details(self, interpreter, appointments):
        appointments.patient_details.return_value = PatientDetails(
            patient=JANE, appointments=[_appointment()],
        )
        reply = interpreter.interpret("patient jane@example.com", ADMIN)
        appointments.patient_details.assert_called_once_with("jane@example.com")
        assert "Name: Jane Doe" in reply
        assert "Consultation on 2026-02-15 at 10:00 AM" in reply

    def test_patient_without_appointments(self, interpreter, appointments):
        appointments.patient_details.return_value = PatientDetails(patient=JANE, appointments=[])
        reply = interpreter.interpret("patient jane@example.com", ADMIN)
        assert "No appointments yet." in reply

    def test_unknown_patient(self, interpreter, appointments):
        appointments.patient_details.side_effect = NotFoundException("Patient not found")
        assert interpreter.interpret("patient ghost@example.com", ADMIN) == "❌ Patient not found"
