"""Account endpoints: register, login and profile update."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clinic_assistant.api.dependencies import get_current_user, get_services
from clinic_assistant.api.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
    UserEnvelope,
    UserOut,
)
from clinic_assistant.services.auth_service import AuthResult, UserRecord
from clinic_assistant.wiring import ClinicServices

router = APIRouter(prefix="/auth", tags=["auth"])


def user_out(user: UserRecord) -> UserOut:
    return UserOut(
        id=user.id, email=user.email, name=user.name, role=user.role,
        phone_number=user.phone_number,
    )


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=user_out(result.user))


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(body: RegisterRequest, services: ClinicServices = Depends(get_services)):
    return _auth_response(services.auth.register(body.name, body.email, body.password))


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, services: ClinicServices = Depends(get_services)):
    return _auth_response(services.auth.login(body.email, body.password))


@router.put("/update", response_model=UserEnvelope)
def update_profile(
    body: UpdateProfileRequest,
    user: UserRecord = Depends(get_current_user),
    services: ClinicServices = Depends(get_services),
):
    updated = services.auth.update_profile(
        user.id, name=body.name, password=body.password, phone_number=body.phone_number,
    )
    return UserEnvelope(user=user_out(updated))
