"""Tests for environment configuration."""

import pytest

from salary_engine.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DATABASE_URL",
        "LOG_LEVEL",
        "BUSINESS_TIMEZONE",
        "JOB_WORKERS",
        "JOB_MAX_ATTEMPTS",
        "JOB_BACKOFF_SECONDS",
        "JOB_HISTORY_SIZE",
        "SCHEDULER_ENABLED",
        "SCHEDULE_HOUR",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env file from leaking into the test
    monkeypatch.setattr("salary_engine.config.load_dotenv", lambda: False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()

    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert settings.job_workers == 4
    assert settings.job_max_attempts == 3
    assert settings.job_backoff_seconds == 5.0
    assert settings.job_history_size == 1000
    assert settings.scheduler_enabled is True
    assert settings.schedule_hour == 23
    assert settings.business_timezone == "UTC"


def test_overrides(clean_env):
    clean_env.setenv("JOB_WORKERS", "8")
    clean_env.setenv("SCHEDULER_ENABLED", "false")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.job_workers == 8
    assert settings.scheduler_enabled is False
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name,value",
    [
        ("JOB_WORKERS", "0"),
        ("JOB_MAX_ATTEMPTS", "0"),
        ("SCHEDULE_HOUR", "24"),
        ("JOB_HISTORY_SIZE", "0"),
        ("JOB_WORKERS", "many"),
    ],
)
def test_invalid_values_fail_fast(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ValueError):
        Settings.from_env()
