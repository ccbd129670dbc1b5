import pytest

from pmboard.config import IN_MEMORY_DATABASE_URL, BoardConfig, get_config, reset_config


ENV_VARS = (
    "PMBOARD_DATABASE_URL",
    "PLATFORM_DATABASE_URL",
    "PMBOARD_ENERGY_WIP_LIMIT",
    "PMBOARD_STUCK_DAYS",
    "PMBOARD_DEADLINE_WARNING_DAYS",
    "PMBOARD_REOPEN_THRESHOLD",
    "PMBOARD_LOG_LEVEL",
    "PMBOARD_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults():
    cfg = BoardConfig.from_env()
    assert cfg == BoardConfig()
    assert cfg.database_url == IN_MEMORY_DATABASE_URL


def test_database_url_precedence(monkeypatch):
    monkeypatch.setenv("PLATFORM_DATABASE_URL", "sqlite:///platform.db")
    assert BoardConfig.from_env().database_url == "sqlite:///platform.db"
    monkeypatch.setenv("PMBOARD_DATABASE_URL", "sqlite:///board.db")
    assert BoardConfig.from_env().database_url == "sqlite:///board.db"


def test_numeric_overrides(monkeypatch):
    monkeypatch.setenv("PMBOARD_ENERGY_WIP_LIMIT", "8")
    monkeypatch.setenv("PMBOARD_STUCK_DAYS", " 3 ")
    monkeypatch.setenv("PMBOARD_REOPEN_THRESHOLD", "0")
    monkeypatch.setenv("PMBOARD_DEADLINE_WARNING_DAYS", "soon")
    cfg = BoardConfig.from_env()
    assert cfg.energy_wip_limit == 8
    assert cfg.stuck_days == 3
    assert cfg.reopen_threshold == 3
    assert cfg.deadline_warning_days == 7


def test_log_settings(monkeypatch):
    monkeypatch.setenv("PMBOARD_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PMBOARD_LOG_FORMAT", "xml")
    cfg = BoardConfig.from_env()
    assert cfg.log_level == "debug"
    assert cfg.log_format == "console"


def test_get_config_is_cached(monkeypatch):
    first = get_config()
    monkeypatch.setenv("PMBOARD_STUCK_DAYS", "2")
    assert get_config() is first
    reset_config()
    assert get_config().stuck_days == 2
