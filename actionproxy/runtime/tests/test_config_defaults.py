"""
Where: actionproxy/runtime/tests/test_config_defaults.py
What: Validate default RuntimeConfig values and environment overrides.
Why: Keep the runtime's observable defaults stable.
"""

import pytest
from pydantic import ValidationError

from actionproxy.runtime.config import RuntimeConfig

_VARS = (
    "RUN_TIMEOUT_SECONDS",
    "NULL_RESULT_AS_ERROR",
    "ACTION_LOG_MARKERS",
    "ACTION_WORK_DIR",
    "SANDBOX_ENABLED",
    "SANDBOX_EXTRA_BLOCKED_EVENTS",
    "PROXY_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = RuntimeConfig(_env_file=None)

    assert config.RUN_TIMEOUT_SECONDS == 3.0
    assert config.NULL_RESULT_AS_ERROR is False
    assert config.ACTION_LOG_MARKERS is True
    assert config.ACTION_WORK_DIR is None
    assert config.SANDBOX_ENABLED is True
    assert config.SANDBOX_EXTRA_BLOCKED_EVENTS == []
    assert config.PROXY_PORT == 8080


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RUN_TIMEOUT_SECONDS", "0.25")
    monkeypatch.setenv("NULL_RESULT_AS_ERROR", "true")
    monkeypatch.setenv("SANDBOX_EXTRA_BLOCKED_EVENTS", '["socket.connect"]')

    config = RuntimeConfig(_env_file=None)

    assert config.RUN_TIMEOUT_SECONDS == 0.25
    assert config.NULL_RESULT_AS_ERROR is True
    assert config.SANDBOX_EXTRA_BLOCKED_EVENTS == ["socket.connect"]


def test_timeout_must_be_positive(monkeypatch):
    monkeypatch.setenv("RUN_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValidationError):
        RuntimeConfig(_env_file=None)
