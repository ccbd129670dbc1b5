"""SQLAlchemy engine and session management for the alert ledger."""

from __future__ import annotations

from typing import Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


_ENGINES: Dict[str, Engine] = {}


def is_in_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: str) -> Engine:
    """Build a new engine.

    In-memory SQLite keeps a single shared connection, otherwise every
    session would see its own empty database.
    """
    kwargs = {"future": True, "echo": False}
    if database_url.startswith("sqlite:"):
        # Streamlit runs page scripts on worker threads.
        kwargs["connect_args"] = {"check_same_thread": False}
        if is_in_memory(database_url):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(database_url, **kwargs)


def get_engine(database_url: str) -> Engine:
    """Process-wide engine for ``database_url`` (cached)."""
    engine = _ENGINES.get(database_url)
    if engine is None:
        engine = create_db_engine(database_url)
        _ENGINES[database_url] = engine
    return engine


def make_sessionmaker(engine: Engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
