"""Pydantic schemas for the FastAPI endpoints.

Request and response bodies use camelCase keys on the wire
(``sessionId``, ``userEmail``, ...).
"""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Chat ─────────────────────────────────────────────────────────────


class ChatRequest(CamelModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., max_length=4000, description="The user's message")
    session_id: str | None = Field(
        None, max_length=128, description="Conversation id; generated when absent",
    )
    user_email: str | None = Field(None, max_length=320)
    user_role: Literal["user", "admin"] | None = Field(
        None, description="Role hint; the stored account role wins when the email is known",
    )

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message is required")
        return value


class ChatResponse(CamelModel):
    message: str = Field(..., description="The assistant's reply")
    session_id: str = Field(..., description="The session ID for this conversation")


class ChatMessageOut(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: dt.datetime | None = None


class ChatHistoryResponse(CamelModel):
    message: str
    messages: list[ChatMessageOut]
    session_id: str | None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "dental-clinic-assistant"
    database: str = "ok"


# ── Auth ─────────────────────────────────────────────────────────────


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=200)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=200)


class UpdateProfileRequest(CamelModel):
    name: str | None = Field(None, max_length=200)
    password: str | None = Field(None, max_length=200)
    phone_number: str | None = Field(None, max_length=32)


class UserOut(CamelModel):
    id: str
    email: str
    name: str
    role: Literal["user", "admin"]
    phone_number: str | None = None


class AuthResponse(CamelModel):
    token: str
    user: UserOut


class UserEnvelope(CamelModel):
    user: UserOut


# ── Appointments ─────────────────────────────────────────────────────


class CreateAppointmentRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    phone_number: str = Field(..., min_length=1, max_length=32)
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="One of the bookable slots, e.g. 10:00 AM")
    service: str
    dentist_name: str | None = None
    notes: str | None = Field(None, max_length=2000)


class AppointmentOut(CamelModel):
    id: str
    user_id: str
    user_name: str
    user_email: str
    date: dt.date
    time: str
    service: str
    status: Literal["pending", "confirmed", "completed", "cancelled"]
    phone_number: str | None = None
    dentist_name: str | None = None
    notes: str | None = None
    approval_message: str | None = None
    rejection_reason: str | None = None
    reminder_set: bool = False
    reminder_date: dt.datetime | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class AppointmentEnvelope(CamelModel):
    message: str
    appointment: AppointmentOut


class UpdateAppointmentRequest(CamelModel):
    """Partial edit; omitted fields are left unchanged."""

    status: Literal["pending", "confirmed", "completed", "cancelled"] | None = None
    date: str | None = Field(None, description="YYYY-MM-DD")
    time: str | None = None
    service: str | None = None
    dentist_name: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=2000)


class ConfirmRequest(CamelModel):
    approval_message: str | None = Field(None, max_length=500)


class RejectRequest(CamelModel):
    rejection_reason: str = Field(..., min_length=1, max_length=500)


class ReminderRequest(CamelModel):
    reminder_date: dt.datetime


class AvailableSlotsResponse(CamelModel):
    available_slots: list[str]
    total_slots: int


class PatientDetailsResponse(CamelModel):
    message: str
    patient: UserOut
    appointments: list[AppointmentOut]
