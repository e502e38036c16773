"""FastAPI dependencies: service lookup and bearer-token authentication."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_assistant.exceptions import ForbiddenException, UnauthorizedException
from clinic_assistant.security import decode_access_token
from clinic_assistant.services.auth_service import UserRecord
from clinic_assistant.wiring import ClinicServices

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> ClinicServices:
    """Retrieve the service bundle built during the FastAPI lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return services


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    services: ClinicServices = Depends(get_services),
) -> UserRecord:
    if credentials is None:
        raise UnauthorizedException("No token provided")
    payload = decode_access_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise UnauthorizedException("Invalid token")
    user = services.auth.get_user(payload["sub"])
    if user is None:
        raise UnauthorizedException("Invalid token")
    return user


def require_admin(user: UserRecord = Depends(get_current_user)) -> UserRecord:
    if not user.is_admin:
        raise ForbiddenException("Only clinic administrators can do this")
    return user
