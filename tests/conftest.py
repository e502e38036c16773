"""Shared test fixtures for the dental clinic assistant test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-456")
    os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
    os.environ.setdefault("METRICS_ENABLED", "false")


MODEL_REPLY = "We are open Monday to Friday from 9 AM to 6 PM."


@pytest.fixture
def db():
    """A fresh in-memory database with all tables created."""
    from clinic_assistant.database import Database

    database = Database("sqlite:///:memory:")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def model_reply():
    return MODEL_REPLY


@pytest.fixture
def fake_llm(model_reply):
    """A chat model stand-in that always gives the same answer."""
    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content=model_reply)
    return llm


@pytest.fixture
def services(db, fake_llm):
    """The full service bundle wired against the in-memory database."""
    from clinic_assistant.services.metrics import MetricsClient
    from clinic_assistant.wiring import build_services

    bundle = build_services(db, llm=fake_llm, metrics=MetricsClient(enabled=False))
    yield bundle
    bundle.metrics.close()


@pytest.fixture
def patient(services):
    return services.auth.create_user(
        name="Jane Doe", email="jane@example.com", password="secret123",
        phone_number="+1 555 0100",
    )


@pytest.fixture
def admin(services):
    from clinic_assistant.catalog import UserRole

    return services.auth.create_user(
        name="Dr. Smith", email="dr.smith@clinic.com", password="adminpass",
        role=UserRole.ADMIN,
    )


@pytest.fixture
def client(services):
    """FastAPI test client with the services attached to app state (mirrors the lifespan)."""
    from fastapi.testclient import TestClient

    from clinic_assistant.server import app

    app.state.services = services
    yield TestClient(app)
    app.state.services = None
