# src/dcron/storage/address.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dcron.domain.errors import ConfigurationError

from .base import LockStore
from .db import SQLiteDB
from .redis_store import RedisLockStore
from .sqlite_store import SQLiteLockStore

REDIS_SCHEMES = frozenset({"redis", "rediss", "unix"})
SQLITE_PREFIX = "sqlite:///"


@dataclass(frozen=True)
class LockStoreAddress:
    """
    Validated lock store location.

    Formats:
      redis://[:password@]host[:port][/db]
      rediss://...                      (TLS)
      unix:///path/to/redis.sock[?db=N]
      sqlite:///relative/path.db
      sqlite:////absolute/path.db
    """
    scheme: str
    url: str
    sqlite_path: Path | None = None

    @property
    def is_redis(self) -> bool:
        return self.scheme in REDIS_SCHEMES


def parse_lock_store_address(address: str) -> LockStoreAddress:
    raw = (address or "").strip()
    if not raw:
        raise ConfigurationError("Lock store address is empty")

    if raw.startswith(SQLITE_PREFIX):
        path = raw[len(SQLITE_PREFIX):]
        if not path:
            raise ConfigurationError(
                f"SQLite lock store address has no file path: {raw!r}",
                details={"address": raw},
            )
        return LockStoreAddress(scheme="sqlite", url=raw, sqlite_path=Path(path).expanduser())

    try:
        parsed = urlparse(raw)
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"Unparsable lock store address {raw!r}: {e}", details={"address": raw}) from e

    scheme = parsed.scheme.lower()
    if scheme not in REDIS_SCHEMES:
        raise ConfigurationError(
            f"Unsupported lock store scheme {parsed.scheme!r} in {raw!r}",
            details={"address": raw, "supported": sorted(REDIS_SCHEMES | {"sqlite"})},
        )

    if scheme == "unix":
        if not parsed.path:
            raise ConfigurationError(f"Unix socket address has no path: {raw!r}", details={"address": raw})
        return LockStoreAddress(scheme=scheme, url=raw)

    if not parsed.hostname:
        raise ConfigurationError(f"Redis address has no host: {raw!r}", details={"address": raw})
    if port is not None and not (1 <= port <= 65535):
        raise ConfigurationError(f"Redis port out of range in {raw!r}", details={"address": raw})

    db_part = parsed.path.lstrip("/")
    if db_part and not db_part.isdigit():
        raise ConfigurationError(
            f"Redis DB index must be an integer, got {db_part!r}",
            details={"address": raw},
        )
    return LockStoreAddress(scheme=scheme, url=raw)


def open_lock_store(
    address: LockStoreAddress,
    *,
    pool_size: int,
    socket_timeout_s: float = 2.0,
) -> LockStore:
    """Builds the shared client for ``address``; one per scheduler, not per task."""
    if address.is_redis:
        return RedisLockStore.from_url(address.url, pool_size=pool_size, socket_timeout_s=socket_timeout_s)

    assert address.sqlite_path is not None
    store = SQLiteLockStore(SQLiteDB(address.sqlite_path))
    store.ensure_schema()
    return store
