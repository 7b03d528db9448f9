from __future__ import annotations

import os
import signal
from dataclasses import dataclass
from typing import Optional

from dcron.engine.scheduler import SchedulerConfig
from dcron.logging import DEFAULT_FORMAT


def _get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be an int, got: {raw!r}") from e
    return value


def _get_env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw


def _get_env_signals(name: str) -> tuple[signal.Signals, ...]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return ()
    signals: list[signal.Signals] = []
    for part in raw.split(","):
        sig_name = part.strip().upper()
        if not sig_name:
            continue
        if not sig_name.startswith("SIG"):
            sig_name = f"SIG{sig_name}"
        try:
            signals.append(signal.Signals[sig_name])
        except KeyError as e:
            raise ValueError(f"Environment variable {name} names an unknown signal: {part.strip()!r}") from e
    return tuple(signals)


@dataclass(frozen=True)
class Settings:
    # Distributed locking
    lock_store_url: Optional[str]
    name_prefix: str
    lock_ttl_ms: int
    redis_socket_timeout_ms: int

    # Scheduling / shutdown
    shutdown_grace_ms: int
    misfire_grace_ms: int
    timezone: str
    shutdown_signals: tuple[signal.Signals, ...]

    # Status API (used by dcron.main --serve)
    host: str
    port: int
    log_level: str
    log_format: str

    def scheduler_config(self) -> SchedulerConfig:
        return SchedulerConfig(
            lock_store_url=self.lock_store_url,
            name_prefix=self.name_prefix,
            lock_ttl_ms=self.lock_ttl_ms,
            shutdown_grace_ms=self.shutdown_grace_ms,
            misfire_grace_ms=self.misfire_grace_ms,
            timezone=self.timezone,
            shutdown_signals=self.shutdown_signals,
            redis_socket_timeout_ms=self.redis_socket_timeout_ms,
        )


def load_settings() -> Settings:
    """
    Loads settings from env vars with sane defaults.

    Env vars:
      - DCRON_LOCK_STORE_URL (default: unset -> single-instance mode)
      - DCRON_NAME_PREFIX (default: JOB)
      - DCRON_LOCK_TTL_MS (default: 5000)
      - DCRON_REDIS_SOCKET_TIMEOUT_MS (default: 2000)
      - DCRON_SHUTDOWN_GRACE_MS (default: 10000)
      - DCRON_MISFIRE_GRACE_MS (default: 60000, 0 disables)
      - DCRON_TIMEZONE (default: UTC)
      - DCRON_SIGNALS (default: SIGTERM; comma separated, e.g. SIGTERM,SIGINT)
      - DCRON_HOST (default: 127.0.0.1)
      - DCRON_PORT (default: 8000)
      - DCRON_LOG_LEVEL (default: info)
      - DCRON_LOG_FORMAT (default: dcron.logging.DEFAULT_FORMAT)
    """
    lock_store_url = _get_env_str("DCRON_LOCK_STORE_URL", "") or None
    name_prefix = _get_env_str("DCRON_NAME_PREFIX", "JOB")

    lock_ttl_ms = _get_env_int("DCRON_LOCK_TTL_MS", 5_000)
    if lock_ttl_ms <= 0:
        raise ValueError("DCRON_LOCK_TTL_MS must be > 0")

    redis_socket_timeout_ms = _get_env_int("DCRON_REDIS_SOCKET_TIMEOUT_MS", 2_000)
    if redis_socket_timeout_ms <= 0:
        raise ValueError("DCRON_REDIS_SOCKET_TIMEOUT_MS must be > 0")

    shutdown_grace_ms = _get_env_int("DCRON_SHUTDOWN_GRACE_MS", 10_000)
    if shutdown_grace_ms <= 0:
        raise ValueError("DCRON_SHUTDOWN_GRACE_MS must be > 0")

    misfire_grace_ms = _get_env_int("DCRON_MISFIRE_GRACE_MS", 60_000)
    if misfire_grace_ms < 0:
        raise ValueError("DCRON_MISFIRE_GRACE_MS must be >= 0")

    timezone = _get_env_str("DCRON_TIMEZONE", "UTC")
    shutdown_signals = _get_env_signals("DCRON_SIGNALS")

    host = _get_env_str("DCRON_HOST", "127.0.0.1")
    port = _get_env_int("DCRON_PORT", 8000)
    if not (1 <= port <= 65535):
        raise ValueError("DCRON_PORT must be between 1 and 65535")

    log_level = _get_env_str("DCRON_LOG_LEVEL", "info").lower()
    log_format = _get_env_str("DCRON_LOG_FORMAT", DEFAULT_FORMAT)

    return Settings(
        lock_store_url=lock_store_url,
        name_prefix=name_prefix,
        lock_ttl_ms=lock_ttl_ms,
        redis_socket_timeout_ms=redis_socket_timeout_ms,
        shutdown_grace_ms=shutdown_grace_ms,
        misfire_grace_ms=misfire_grace_ms,
        timezone=timezone,
        shutdown_signals=shutdown_signals,
        host=host,
        port=port,
        log_level=log_level,
        log_format=log_format,
    )
