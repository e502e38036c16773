"""Appointment booking and administration.

Both booking paths (the web form and the chat ``book`` command) go through
:meth:`AppointmentService._insert_pending`, which runs the slot conflict check
before writing; :meth:`AppointmentService.update` runs the same check when
an appointment is moved.  The check and the write are not atomic: two
simultaneous bookings for the same slot can both pass the check.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import insert, select, update

from clinic_assistant.catalog import (
    TERMINAL_STATUSES,
    TIME_SLOTS,
    AppointmentStatus,
    canonical_service,
    normalize_time,
)
from clinic_assistant.database import Database
from clinic_assistant.exceptions import BadRequestException, ConflictException, NotFoundException
from clinic_assistant.models import appointments
from clinic_assistant.services.auth_service import AuthService, UserRecord, normalize_email

logger = logging.getLogger(__name__)

DEFAULT_APPROVAL_MESSAGE = "Your appointment has been confirmed."
DEFAULT_CANCELLATION_REASON = "Appointment cancelled by dentist."


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    user_id: str
    user_name: str
    user_email: str
    date: date
    time: str
    service: str
    status: str
    phone_number: str | None = None
    dentist_name: str | None = None
    notes: str | None = None
    approval_message: str | None = None
    rejection_reason: str | None = None
    reminder_set: bool = False
    reminder_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PatientDetails:
    patient: UserRecord
    appointments: list[AppointmentRecord]


def _to_appointment(row) -> AppointmentRecord:
    return AppointmentRecord(**row._mapping)


def parse_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string (dates pass through)."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise BadRequestException(f'"{value}" is not a valid date. Use the YYYY-MM-DD format.') from exc


def _require_service(service: str) -> str:
    canonical = canonical_service(service)
    if canonical is None:
        raise BadRequestException(
            f'"{service.strip()}" is not one of our services. '
            "Try Consultation, Scaling & Polishing, Composite Filling or Zirconia Crown."
        )
    return canonical


def _require_slot(time: str) -> str:
    slot = normalize_time(time)
    if slot is None or slot not in TIME_SLOTS:
        raise BadRequestException(
            f'"{time.strip()}" is not a bookable time. Available slots: {", ".join(TIME_SLOTS)}.'
        )
    return slot


class AppointmentService:
    def __init__(self, db: Database, auth: AuthService) -> None:
        self._db = db
        self._auth = auth

    # ── Booking ──────────────────────────────────────────────────────

    def book(
        self,
        user_email: str,
        service: str,
        date_str: str | date,
        time: str,
        user_name: str | None = None,
    ) -> AppointmentRecord:
        """Book a pending appointment for an existing user (chat path)."""
        if not user_email or not service or not date_str or not time:
            raise BadRequestException("Missing required fields: userEmail, service, date, time")
        user = self._auth.get_user_by_email(user_email)
        if user is None:
            raise NotFoundException("User not found")
        return self._insert_pending(
            user=user,
            user_name=user_name or user.name,
            phone_number=user.phone_number,
            service=service,
            day=date_str,
            time=time,
        )

    def create_from_form(
        self,
        *,
        name: str,
        email: str,
        phone_number: str,
        date_str: str | date,
        time: str,
        service: str,
        dentist_name: str | None = None,
        notes: str | None = None,
    ) -> AppointmentRecord:
        """Book from the public form, creating the patient account on the fly."""
        if not all([name, email, phone_number, date_str, time, service]):
            raise BadRequestException("Missing required fields")
        user = self._auth.get_user_by_email(email)
        if user is None:
            user = self._auth.create_user(
                name=name, email=email, password=None, phone_number=phone_number,
            )
        return self._insert_pending(
            user=user,
            user_name=name,
            phone_number=phone_number,
            service=service,
            day=date_str,
            time=time,
            dentist_name=dentist_name,
            notes=notes,
        )

    def _insert_pending(
        self,
        *,
        user: UserRecord,
        user_name: str,
        phone_number: str | None,
        service: str,
        day: str | date,
        time: str,
        dentist_name: str | None = None,
        notes: str | None = None,
    ) -> AppointmentRecord:
        canonical = _require_service(service)
        slot = _require_slot(time)
        day = parse_date(day)
        self._ensure_slot_free(day, slot)

        now = datetime.now(UTC)
        record = AppointmentRecord(
            id=uuid.uuid4().hex,
            user_id=user.id,
            user_name=user_name,
            user_email=user.email,
            date=day,
            time=slot,
            service=canonical,
            status=AppointmentStatus.PENDING.value,
            phone_number=phone_number,
            dentist_name=dentist_name or None,
            notes=notes or None,
            created_at=now,
            updated_at=now,
        )
        with self._db.begin() as conn:
            conn.execute(insert(appointments).values(**record.to_dict()))
        logger.info(
            "Booked %s for %s on %s at %s (id=%s)",
            canonical, user.email, day.isoformat(), slot, record.id,
        )
        return record

    def _ensure_slot_free(self, day: date, slot: str, exclude_id: str | None = None) -> None:
        """Raise 409 if a non-cancelled appointment other than *exclude_id* holds the slot."""
        query = select(appointments.c.id).where(
            appointments.c.date == day,
            appointments.c.time == slot,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        )
        if exclude_id is not None:
            query = query.where(appointments.c.id != exclude_id)
        with self._db.connect() as conn:
            row = conn.execute(query.limit(1)).first()
        if row is not None:
            raise ConflictException(
                f"Time slot {slot} on {day.isoformat()} is already booked. Please choose another time."
            )

    def available_slots(self, day: str | date | None = None) -> list[str]:
        if day is None:
            return list(TIME_SLOTS)
        day = parse_date(day)
        with self._db.connect() as conn:
            booked = set(
                conn.execute(
                    select(appointments.c.time).where(
                        appointments.c.date == day,
                        appointments.c.status != AppointmentStatus.CANCELLED.value,
                    )
                ).scalars()
            )
        return [slot for slot in TIME_SLOTS if slot not in booked]

    # ── Status transitions ───────────────────────────────────────────

    def approve(self, appointment_id: str, message: str | None = None) -> AppointmentRecord:
        return self._transition(
            appointment_id,
            AppointmentStatus.CONFIRMED,
            approval_message=message or DEFAULT_APPROVAL_MESSAGE,
        )

    def cancel(self, appointment_id: str, reason: str | None = None) -> AppointmentRecord:
        return self._transition(
            appointment_id,
            AppointmentStatus.CANCELLED,
            rejection_reason=reason or DEFAULT_CANCELLATION_REASON,
        )

    def _transition(
        self, appointment_id: str, target: AppointmentStatus, **values: Any,
    ) -> AppointmentRecord:
        current = self._get_open(appointment_id)
        self._update(appointment_id, status=target.value, **values)
        logger.info("Appointment %s: %s -> %s", appointment_id, current.status, target.value)
        return self.get(appointment_id)

    def update(
        self,
        appointment_id: str,
        *,
        status: str | None = None,
        date_str: str | date | None = None,
        time: str | None = None,
        service: str | None = None,
        dentist_name: str | None = None,
        notes: str | None = None,
    ) -> AppointmentRecord:
        """Edit an appointment that is still pending or confirmed.

        Only the given fields change.  A new date or time goes through the
        same slot conflict check as a booking, ignoring the appointment's own
        slot.  Setting ``status="completed"`` closes the appointment.
        """
        current = self._get_open(appointment_id)
        values: dict[str, Any] = {}
        if status is not None:
            try:
                values["status"] = AppointmentStatus(status).value
            except ValueError as exc:
                raise BadRequestException(f'"{status}" is not a valid appointment status') from exc
        if service is not None:
            values["service"] = _require_service(service)
        if date_str is not None or time is not None:
            day = parse_date(date_str) if date_str is not None else current.date
            slot = _require_slot(time) if time is not None else current.time
            self._ensure_slot_free(day, slot, exclude_id=current.id)
            values.update(date=day, time=slot)
        if dentist_name is not None:
            values["dentist_name"] = dentist_name or None
        if notes is not None:
            values["notes"] = notes or None
        if not values:
            return current

        self._update(appointment_id, **values)
        logger.info("Appointment %s updated (%s)", appointment_id, ", ".join(sorted(values)))
        return self.get(appointment_id)

    def _get_open(self, appointment_id: str) -> AppointmentRecord:
        current = self.get(appointment_id)
        if AppointmentStatus(current.status) in TERMINAL_STATUSES:
            raise ConflictException(f"Appointment is already {current.status}")
        return current

    def set_reminder(self, appointment_id: str, when: datetime) -> AppointmentRecord:
        self._update(appointment_id, reminder_set=True, reminder_date=when)
        return self.get(appointment_id)

    def _update(self, appointment_id: str, **values: Any) -> None:
        values["updated_at"] = datetime.now(UTC)
        with self._db.begin() as conn:
            result = conn.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )
        if result.rowcount == 0:
            raise NotFoundException("Appointment not found")

    # ── Queries ──────────────────────────────────────────────────────

    def get(self, appointment_id: str) -> AppointmentRecord:
        with self._db.connect() as conn:
            row = conn.execute(
                select(appointments).where(appointments.c.id == appointment_id.strip())
            ).first()
        if row is None:
            raise NotFoundException("Appointment not found")
        return _to_appointment(row)

    def list_for_user(self, email: str) -> list[AppointmentRecord]:
        return self._list(appointments.c.user_email == normalize_email(email))

    def list_all(self) -> list[AppointmentRecord]:
        return self._list()

    def list_pending(self) -> list[AppointmentRecord]:
        with self._db.connect() as conn:
            rows = conn.execute(
                select(appointments)
                .where(appointments.c.status == AppointmentStatus.PENDING.value)
                .order_by(appointments.c.date, appointments.c.time)
            ).all()
        return [_to_appointment(r) for r in rows]

    def patient_details(self, email: str) -> PatientDetails:
        patient = self._auth.get_user_by_email(email)
        if patient is None:
            raise NotFoundException("Patient not found")
        return PatientDetails(patient=patient, appointments=self.list_for_user(email))

    def _list(self, *criteria) -> list[AppointmentRecord]:
        """Newest first: by appointment date, then by booking time."""
        with self._db.connect() as conn:
            rows = conn.execute(
                select(appointments)
                .where(*criteria)
                .order_by(appointments.c.date.desc(), appointments.c.created_at.desc())
            ).all()
        return [_to_appointment(r) for r in rows]
