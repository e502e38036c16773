"""Appointment endpoints for the booking form, patients and clinic admins.

Static paths are registered before ``/{appointment_id}`` so that
``/pending`` and friends are not captured as ids.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from clinic_assistant.api.auth_routes import user_out
from clinic_assistant.api.dependencies import get_current_user, get_services, require_admin
from clinic_assistant.api.schemas import (
    AppointmentEnvelope,
    AppointmentOut,
    AvailableSlotsResponse,
    ConfirmRequest,
    CreateAppointmentRequest,
    PatientDetailsResponse,
    RejectRequest,
    ReminderRequest,
    UpdateAppointmentRequest,
)
from clinic_assistant.catalog import TIME_SLOTS
from clinic_assistant.exceptions import ForbiddenException
from clinic_assistant.services.appointment_service import AppointmentRecord
from clinic_assistant.services.auth_service import UserRecord
from clinic_assistant.wiring import ClinicServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

PATIENT_CANCELLATION_REASON = "Cancelled by patient"


def _out(record: AppointmentRecord) -> AppointmentOut:
    return AppointmentOut(**record.to_dict())


def _envelope(message: str, record: AppointmentRecord) -> AppointmentEnvelope:
    return AppointmentEnvelope(message=message, appointment=_out(record))


def _ensure_can_access(record: AppointmentRecord, user: UserRecord) -> None:
    if not user.is_admin and record.user_id != user.id:
        raise ForbiddenException("You do not have access to this appointment")


# ── Booking and listing ──────────────────────────────────────────────


@router.post("", response_model=AppointmentEnvelope, status_code=201)
def create_appointment(
    body: CreateAppointmentRequest, services: ClinicServices = Depends(get_services),
):
    """Book from the public form; the patient account is created if needed."""
    record = services.appointments.create_from_form(
        name=body.name,
        email=body.email,
        phone_number=body.phone_number,
        date_str=body.date,
        time=body.time,
        service=body.service,
        dentist_name=body.dentist_name,
        notes=body.notes,
    )
    return _envelope("Appointment booked successfully", record)


@router.get("", response_model=list[AppointmentOut])
def my_appointments(
    user: UserRecord = Depends(get_current_user),
    services: ClinicServices = Depends(get_services),
):
    return [_out(r) for r in services.appointments.list_for_user(user.email)]


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def available_slots(date: str | None = None, services: ClinicServices = Depends(get_services)):
    slots = services.appointments.available_slots(date)
    return AvailableSlotsResponse(available_slots=slots, total_slots=len(TIME_SLOTS))


@router.get("/pending", response_model=list[AppointmentOut])
def pending_appointments(
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    return [_out(r) for r in services.appointments.list_pending()]


@router.get("/admin/all", response_model=list[AppointmentOut])
def all_appointments(
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    return [_out(r) for r in services.appointments.list_all()]


@router.get("/patient/details", response_model=PatientDetailsResponse)
def patient_details(
    email: str,
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    details = services.appointments.patient_details(email)
    return PatientDetailsResponse(
        message="Patient details retrieved successfully",
        patient=user_out(details.patient),
        appointments=[_out(r) for r in details.appointments],
    )


# ── Single appointment ───────────────────────────────────────────────


@router.get("/{appointment_id}", response_model=AppointmentOut)
def get_appointment(
    appointment_id: str,
    user: UserRecord = Depends(get_current_user),
    services: ClinicServices = Depends(get_services),
):
    record = services.appointments.get(appointment_id)
    _ensure_can_access(record, user)
    return _out(record)


@router.put("/{appointment_id}", response_model=AppointmentEnvelope)
def update_appointment(
    appointment_id: str,
    body: UpdateAppointmentRequest,
    user: UserRecord = Depends(get_current_user),
    services: ClinicServices = Depends(get_services),
):
    """Edit an appointment.

    Patients may reschedule their own appointment or change its service and
    notes; only admins may set the status or the dentist.
    """
    record = services.appointments.get(appointment_id)
    _ensure_can_access(record, user)
    if not user.is_admin and (body.status is not None or body.dentist_name is not None):
        raise ForbiddenException("Only clinic staff can change the status or dentist")
    record = services.appointments.update(
        appointment_id,
        status=body.status,
        date_str=body.date,
        time=body.time,
        service=body.service,
        dentist_name=body.dentist_name,
        notes=body.notes,
    )
    return _envelope("Appointment updated successfully", record)


@router.patch("/{appointment_id}/confirm", response_model=AppointmentEnvelope)
def confirm_appointment(
    appointment_id: str,
    body: ConfirmRequest | None = None,
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    message = body.approval_message if body else None
    record = services.appointments.approve(appointment_id, message)
    return _envelope("Appointment confirmed successfully", record)


@router.patch("/{appointment_id}/reject", response_model=AppointmentEnvelope)
def reject_appointment(
    appointment_id: str,
    body: RejectRequest,
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    record = services.appointments.cancel(appointment_id, body.rejection_reason)
    return _envelope("Appointment rejected successfully", record)


@router.post("/{appointment_id}/reminder", response_model=AppointmentEnvelope)
def set_reminder(
    appointment_id: str,
    body: ReminderRequest,
    _admin: UserRecord = Depends(require_admin),
    services: ClinicServices = Depends(get_services),
):
    record = services.appointments.set_reminder(appointment_id, body.reminder_date)
    return _envelope("Reminder set successfully", record)


@router.delete("/{appointment_id}", response_model=AppointmentEnvelope)
def cancel_appointment(
    appointment_id: str,
    user: UserRecord = Depends(get_current_user),
    services: ClinicServices = Depends(get_services),
):
    """Cancel (not erase) an appointment; patients may only cancel their own."""
    record = services.appointments.get(appointment_id)
    _ensure_can_access(record, user)
    reason = None if user.is_admin else PATIENT_CANCELLATION_REASON
    record = services.appointments.cancel(appointment_id, reason)
    logger.info("Appointment %s cancelled by %s", appointment_id, user.email)
    return _envelope("Appointment cancelled successfully", record)
