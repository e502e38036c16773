"""Database connection management.

The :class:`Database` owns the SQLAlchemy engine.  It is built once in the
FastAPI lifespan (or by the CLI), handed to every store/service that needs
it, and disposed explicitly on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from clinic_assistant.models import metadata

logger = logging.getLogger(__name__)


def _is_in_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:")


class Database:
    """Engine lifecycle wrapper: initialize once, reuse, dispose."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        kwargs: dict = {"echo": echo}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_in_memory_sqlite(url):
                # One shared connection, otherwise every checkout sees an empty DB
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self._engine: Engine = create_engine(url, **kwargs)

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    def create_all(self) -> None:
        """Create any missing tables."""
        metadata.create_all(self._engine)
        logger.info("Database schema ready (%s)", self.dialect_name)

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction (commit on success)."""
        with self._engine.begin() as conn:
            yield conn

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a plain connection for read-only work."""
        with self._engine.connect() as conn:
            yield conn

    def check_connection(self) -> bool:
        """Return ``True`` if a trivial query succeeds."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False

    def dispose(self) -> None:
        self._engine.dispose()
        logger.info("Database engine disposed")
