"""Executes recognized chat commands against the clinic services.

Every side effect happens synchronously before the reply string is
returned.  Collaborator failures are caught per command: application errors
(not found, conflict, validation) are shown to the user as they are, anything
else is logged and replaced by a generic apology.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from clinic_assistant.caller import CallerContext
from clinic_assistant.commands.parser import (
    CommandName,
    Malformed,
    Recognized,
    parse_command,
)
from clinic_assistant.exceptions import AppException
from clinic_assistant.services.appointment_service import AppointmentService
from clinic_assistant.services.auth_service import AuthService
from clinic_assistant.services.metrics import MetricsClient

logger = logging.getLogger(__name__)

PATIENT_RECENT_LIMIT = 5
CHAT_APPROVAL_MESSAGE = "Your appointment has been approved by the doctor"
CHAT_CANCELLATION_REASON = "Cancelled by doctor"

ADMIN_HELP = (
    "📚 **Doctor Commands:**\n\n"
    "`patient [email]` - View patient details\n"
    "`approve [appointment_id]` - Approve appointment\n"
    "`cancel [appointment_id]` - Cancel appointment\n"
    "`remind [appointment_id] on [YYYY-MM-DD HH:MM]` - Set reminder\n\n"
    "Or ask me any questions about your patients!"
)
PATIENT_HELP = (
    "📚 **Available Commands:**\n\n"
    "`book [service] on [YYYY-MM-DD] at [time]` - Book appointment\n"
    "`logout` - Logout\n\n"
    "Or ask me any questions about our services!"
)
ANONYMOUS_HELP = (
    "📚 **Available Commands:**\n\n"
    "`login [email] [password]` - Login to your account\n"
    "`register [name] [email] [password]` - Create new account\n\n"
    "Or ask me any questions about our services! 😊"
)
LOGIN_REQUIRED = (
    "❌ Please login first before booking an appointment:\n\n`login [email] [password]`"
)
LOGOUT_REPLY = "👋 You have been logged out. You can login again anytime!"


class CommandInterpreter:
    """Turns a chat message into a command reply, or ``None`` for free text."""

    def __init__(
        self,
        auth: AuthService,
        appointments: AppointmentService,
        metrics: MetricsClient | None = None,
    ) -> None:
        self._auth = auth
        self._appointments = appointments
        self._metrics = metrics
        self._handlers: dict[CommandName, Callable[[dict, CallerContext], tuple[str, str]]] = {
            CommandName.LOGIN: self._login,
            CommandName.REGISTER: self._register,
            CommandName.BOOK: self._book,
            CommandName.PATIENT: self._patient,
            CommandName.APPROVE: self._approve,
            CommandName.CANCEL: self._cancel,
            CommandName.REMIND: self._remind,
            CommandName.HELP: self._help,
            CommandName.LOGOUT: self._logout,
        }

    def interpret(self, message: str, caller: CallerContext) -> str | None:
        """Return the command reply, or ``None`` when *message* is not a command."""
        parsed = parse_command(message, caller)
        if isinstance(parsed, Malformed):
            self._record(parsed.command, "malformed")
            return parsed.correction
        if not isinstance(parsed, Recognized):
            return None

        reply, outcome = self._handlers[parsed.command](parsed.args, caller)
        self._record(parsed.command, outcome)
        logger.info("Chat command %s -> %s", parsed.command.value, outcome)
        return reply

    def _record(self, command: CommandName, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_command(command.value, outcome)

    # ── Auth commands ────────────────────────────────────────────────

    def _login(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        if caller.is_identified:
            return f"ℹ️ You are already logged in as {caller.email}", "rejected"
        try:
            result = self._auth.login(args["email"], args["password"])
        except AppException as exc:
            return f"❌ Login failed: {exc.message}", "rejected"
        except Exception:
            logger.exception("Chat login failed for %s", args["email"])
            return "❌ Login error: Unable to reach the account service. Please try again.", "error"
        # The chat session itself is not elevated; the client still has to log in.
        return (
            f"✅ Login successful! Welcome {result.user.name}! 🎉\n\n"
            "You can now book appointments and access your dashboard.",
            "success",
        )

    def _register(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        if caller.is_identified:
            return (
                "ℹ️ You are already logged in. Please logout first to register a new account.",
                "rejected",
            )
        try:
            result = self._auth.register(args["name"], args["email"], args["password"])
        except AppException as exc:
            return f"❌ Registration failed: {exc.message}", "rejected"
        except Exception:
            logger.exception("Chat registration failed for %s", args["email"])
            return "❌ Registration error: Unable to reach the account service. Please try again.", "error"
        return (
            f"✅ Registration successful! Welcome {result.user.name}! 🎉\n\n"
            "Your account has been created. You can now book appointments.",
            "success",
        )

    # ── Patient commands ─────────────────────────────────────────────

    def _book(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        if not caller.is_identified:
            return LOGIN_REQUIRED, "rejected"
        try:
            user = self._auth.get_user_by_email(caller.email)
            if user is None:
                return "❌ User not found. Please login again.", "rejected"
            appointment = self._appointments.book(
                user.email, args["service"], args["date"], args["time"], user_name=user.name,
            )
        except AppException as exc:
            return f"❌ Booking failed: {exc.message}", "rejected"
        except Exception:
            logger.exception("Chat booking failed for %s", caller.email)
            return "❌ Booking error: Unable to reach the booking system. Please try again.", "error"

        day = appointment.date.isoformat()
        return (
            f"✅ Appointment booked! {appointment.service} on {day} at {appointment.time}. "
            "Waiting for dentist approval.\n\n"
            "📅 Details:\n"
            f"- Service: {appointment.service}\n"
            f"- Date: {day}\n"
            f"- Time: {appointment.time}\n"
            f"- Reference: {appointment.id}\n\n"
            "We'll send you a confirmation soon!",
            "success",
        )

    def _help(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        if caller.is_admin:
            return ADMIN_HELP, "success"
        if caller.is_identified:
            return PATIENT_HELP, "success"
        return ANONYMOUS_HELP, "success"

    def _logout(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        # Tokens live on the client; nothing to invalidate here.
        return LOGOUT_REPLY, "success"

    # ── Admin commands ───────────────────────────────────────────────

    def _patient(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        try:
            details = self._appointments.patient_details(args["email"])
        except AppException as exc:
            return f"❌ {exc.message}", "rejected"
        except Exception:
            logger.exception("Patient lookup failed for %s", args["email"])
            return "❌ Error fetching patient details", "error"

        recent = details.appointments[:PATIENT_RECENT_LIMIT]
        if recent:
            lines = "\n".join(
                f"- {a.service} on {a.date.isoformat()} at {a.time} ({a.status}) [{a.id}]"
                for a in recent
            )
        else:
            lines = "No appointments yet."
        phone = f"\nPhone: {details.patient.phone_number}" if details.patient.phone_number else ""
        return (
            "👤 **Patient Details:**\n\n"
            f"Name: {details.patient.name}\n"
            f"Email: {details.patient.email}{phone}\n\n"
            f"📅 **Recent Appointments:**\n{lines}",
            "success",
        )

    def _approve(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        appointment_id = args["appointment_id"]
        try:
            appointment = self._appointments.approve(appointment_id, CHAT_APPROVAL_MESSAGE)
        except AppException as exc:
            return f"❌ Failed to approve appointment: {exc.message}", "rejected"
        except Exception:
            logger.exception("Approving appointment %s failed", appointment_id)
            return "❌ Error approving appointment", "error"
        return (
            f"✅ Appointment {appointment.id} approved!\n\n"
            "📅 Details:\n"
            f"- Patient: {appointment.user_name}\n"
            f"- Service: {appointment.service}\n"
            f"- Date: {appointment.date.isoformat()}\n"
            f"- Time: {appointment.time}",
            "success",
        )

    def _cancel(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        appointment_id = args["appointment_id"]
        try:
            appointment = self._appointments.cancel(appointment_id, CHAT_CANCELLATION_REASON)
        except AppException as exc:
            return f"❌ Failed to cancel appointment: {exc.message}", "rejected"
        except Exception:
            logger.exception("Cancelling appointment %s failed", appointment_id)
            return "❌ Error cancelling appointment", "error"
        return (
            f"✅ Appointment {appointment.id} cancelled!\n\n"
            f"Patient {appointment.user_name} will see the cancellation in their dashboard.",
            "success",
        )

    def _remind(self, args: dict, caller: CallerContext) -> tuple[str, str]:
        appointment_id = args["appointment_id"]
        try:
            appointment = self._appointments.set_reminder(appointment_id, args["remind_at"])
        except AppException as exc:
            return f"❌ Failed to set reminder: {exc.message}", "rejected"
        except Exception:
            logger.exception("Setting reminder on %s failed", appointment_id)
            return "❌ Error setting reminder", "error"
        return (
            f"✅ Reminder set for appointment {appointment.id}!\n\n"
            f"You will be reminded on: {args['remind_at']:%Y-%m-%d %H:%M}",
            "success",
        )
