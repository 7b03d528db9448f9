# tests/test_config.py
import signal

import pytest

from dcron.config import load_settings
from dcron.logging import DEFAULT_FORMAT

_ENV = [
    "DCRON_LOCK_STORE_URL",
    "DCRON_NAME_PREFIX",
    "DCRON_LOCK_TTL_MS",
    "DCRON_SHUTDOWN_GRACE_MS",
    "DCRON_MISFIRE_GRACE_MS",
    "DCRON_TIMEZONE",
    "DCRON_SIGNALS",
    "DCRON_HOST",
    "DCRON_PORT",
    "DCRON_LOG_LEVEL",
    "DCRON_LOG_FORMAT",
    "DCRON_REDIS_SOCKET_TIMEOUT_MS",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.lock_store_url is None
    assert s.name_prefix == "JOB"
    assert s.lock_ttl_ms == 5_000
    assert s.shutdown_grace_ms == 10_000
    assert s.misfire_grace_ms == 60_000
    assert s.timezone == "UTC"
    assert s.shutdown_signals == ()
    assert (s.host, s.port, s.log_level) == ("127.0.0.1", 8000, "info")
    assert s.log_format == DEFAULT_FORMAT
    assert s.redis_socket_timeout_ms == 2_000

    cfg = s.scheduler_config()
    assert cfg.lock_store_url is None
    assert cfg.signals == (signal.SIGTERM,)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DCRON_LOCK_STORE_URL", "redis://cache:6379/1")
    monkeypatch.setenv("DCRON_NAME_PREFIX", "BILLING")
    monkeypatch.setenv("DCRON_LOCK_TTL_MS", "30000")
    monkeypatch.setenv("DCRON_MISFIRE_GRACE_MS", "0")
    monkeypatch.setenv("DCRON_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("DCRON_SIGNALS", "term, SIGINT")
    monkeypatch.setenv("DCRON_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("DCRON_LOG_FORMAT", "%(message)s")
    monkeypatch.setenv("DCRON_REDIS_SOCKET_TIMEOUT_MS", "250")

    s = load_settings()
    assert s.shutdown_signals == (signal.SIGTERM, signal.SIGINT)
    assert s.log_level == "debug"
    assert s.log_format == "%(message)s"

    cfg = s.scheduler_config()
    assert cfg.lock_store_url == "redis://cache:6379/1"
    assert cfg.name_prefix == "BILLING"
    assert cfg.lock_ttl_ms == 30_000
    assert cfg.misfire_grace_ms == 0
    assert cfg.timezone == "Europe/Berlin"
    assert cfg.redis_socket_timeout_ms == 250
    assert cfg.redis_socket_timeout_s == 0.25


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("DCRON_LOCK_STORE_URL", "  ")
    monkeypatch.setenv("DCRON_PORT", "")
    s = load_settings()
    assert s.lock_store_url is None
    assert s.port == 8000


@pytest.mark.parametrize(
    "name, value",
    [
        ("DCRON_LOCK_TTL_MS", "soon"),
        ("DCRON_LOCK_TTL_MS", "0"),
        ("DCRON_SHUTDOWN_GRACE_MS", "-1"),
        ("DCRON_MISFIRE_GRACE_MS", "-1"),
        ("DCRON_PORT", "70000"),
        ("DCRON_REDIS_SOCKET_TIMEOUT_MS", "0"),
        ("DCRON_SIGNALS", "SIGNOPE"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        load_settings()
