"""structlog setup shared by the engine and the Streamlit pages."""

from __future__ import annotations

import logging

import structlog


_configured = False


def _level_number(level: str) -> int:
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: str = "info", fmt: str = "console") -> None:
    """Configure structlog with the specified level and format."""
    global _configured

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _level_number(level)
        ),
    )
    _configured = True


def ensure_logging(level: str = "info", fmt: str = "console") -> None:
    """Configure logging once; later calls are ignored (Streamlit reruns scripts)."""
    if not _configured:
        configure_logging(level, fmt)
