"""FastAPI server for the dental clinic assistant.

Run with:
    uvicorn clinic_assistant.server:app --reload --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinic_assistant.api.appointment_routes import router as appointment_router
from clinic_assistant.api.auth_routes import router as auth_router
from clinic_assistant.api.routes import router
from clinic_assistant.config import CHAT_RETENTION_DAYS, CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from clinic_assistant.exceptions import AppException
from clinic_assistant.wiring import build_services

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the database, services and turn graph once.

    Shutdown flushes buffered metrics and disposes of the engine.
    """
    logger.info("Starting clinic services...")
    services = build_services()
    services.sessions.purge_expired(CHAT_RETENTION_DAYS)
    application.state.services = services
    logger.info("Assistant ready.")
    yield
    application.state.services = None
    services.close()
    logger.info("Clinic services stopped.")


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Dental Clinic Assistant",
    description=(
        "Chat assistant and booking API for a dental clinic: patients book "
        "appointments, doctors approve and manage them."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the web frontend) ───────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID to every request for log correlation.

    A client-supplied ``X-Request-ID`` is reused; otherwise one is
    generated.  Either way it is echoed in the response headers.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error handlers ───────────────────────────────────────────────────
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"error": "Validation error", "details": details},
    )


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(appointment_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Dental Clinic Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting dental clinic API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "clinic_assistant.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
