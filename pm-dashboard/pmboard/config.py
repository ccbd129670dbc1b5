"""Board engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


IN_MEMORY_DATABASE_URL = "sqlite://"


def env_str(name: str, default: str, *, strip: bool = True) -> str:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip() if strip else value


def env_optional_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip() or default


def env_int(name: str, default: int, *, minimum: Optional[int] = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


@dataclass(frozen=True)
class BoardConfig:
    """Runtime configuration for the board engine.

    Environment variables:
    - PMBOARD_DATABASE_URL: alert acknowledgement store (preferred)
    - PLATFORM_DATABASE_URL: shared DB URL used when the above is unset
    - If neither is set, acknowledgements live in an in-process SQLite DB

    Team energy / alerts:
    - PMBOARD_ENERGY_WIP_LIMIT: In Progress count before breaches accrue (default: 5)
    - PMBOARD_STUCK_DAYS: whole days in one status before a task is stuck (default: 7)
    - PMBOARD_DEADLINE_WARNING_DAYS: look-ahead for deadline alerts (default: 7)
    - PMBOARD_REOPEN_THRESHOLD: reopen count that raises an alert (default: 3)

    Logging:
    - PMBOARD_LOG_LEVEL (default: info)
    - PMBOARD_LOG_FORMAT: console|json (default: console)
    """

    database_url: str = IN_MEMORY_DATABASE_URL
    energy_wip_limit: int = 5
    stuck_days: int = 7
    deadline_warning_days: int = 7
    reopen_threshold: int = 3
    log_level: str = "info"
    log_format: str = "console"

    @classmethod
    def from_env(cls) -> "BoardConfig":
        database_url = (
            env_optional_str("PMBOARD_DATABASE_URL")
            or env_optional_str("PLATFORM_DATABASE_URL")
            or IN_MEMORY_DATABASE_URL
        )

        log_format = env_str("PMBOARD_LOG_FORMAT", "console").lower()
        if log_format not in ("console", "json"):
            log_format = "console"

        return cls(
            database_url=database_url,
            energy_wip_limit=env_int("PMBOARD_ENERGY_WIP_LIMIT", 5, minimum=0),
            stuck_days=env_int("PMBOARD_STUCK_DAYS", 7, minimum=0),
            deadline_warning_days=env_int("PMBOARD_DEADLINE_WARNING_DAYS", 7, minimum=0),
            reopen_threshold=env_int("PMBOARD_REOPEN_THRESHOLD", 3, minimum=1),
            log_level=env_str("PMBOARD_LOG_LEVEL", "info").lower(),
            log_format=log_format,
        )


_config: Optional[BoardConfig] = None


def get_config() -> BoardConfig:
    """Get the board configuration (cached)."""
    global _config
    if _config is None:
        _config = BoardConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None
