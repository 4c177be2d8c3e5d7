"""Shared pytest fixtures for the loggen test suite."""

from datetime import datetime, timezone

import pytest

from loggen.config import EngineConfig
from loggen.models import Level, LogRecord

_CONFIG_ENV_VARS = (
    "CONFIG_PATH",
    "SINK_MODE",
    "LOG_FILE",
    "MAX_FILE_SIZE",
    "LOG_INTERVAL_MS",
    "LOG_FORMAT",
    "PUSH_URL",
    "PUSH_LABELS",
    "PUSH_TIMEOUT",
    "USER_IDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment from leaking into config loading."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def sample_record() -> LogRecord:
    return LogRecord(
        timestamp=datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc),
        level=Level.ERROR,
        service="auth",
        request_id="k3j9x0a1bq",
        user_id=1007,
        message="Invalid authentication token",
    )


@pytest.fixture()
def file_config(tmp_path) -> EngineConfig:
    return EngineConfig(
        log_file=str(tmp_path / "app.log"),
        max_file_size=1024 * 1024,
        log_interval_ms=1000,
    )
