"""Database session configuration."""

from __future__ import annotations

import json
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from gamebox.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import gamebox.models  # noqa: E402,F401


def dumps_json(value: Any) -> str:
    """Serialize JSON columns keeping non-ASCII text as-is so it stays searchable."""
    return json.dumps(value, ensure_ascii=False)


_connect_args = (
    {"check_same_thread": False}
    if settings.effective_database_url.startswith("sqlite")
    else {}
)

engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args,
    json_serializer=dumps_json,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)


def get_session_factory() -> sessionmaker[Session]:
    """Return the session factory for callers that must not hold a session open.

    Long-lived handlers such as WebSockets open a short session, do their
    lookups, and close it before entering their loop.
    """
    return SessionLocal
