# src/dcron/storage/redis_store.py
from __future__ import annotations

from typing import Any

import redis
from redis.exceptions import RedisError

from dcron.domain.errors import LockStoreError
from dcron.logging import get_logger

_LOG = get_logger(__name__)


class RedisLockStore:
    """
    Lock store on a shared Redis: ``SET key value NX PX ttl``.

    One client (and connection pool) is shared by every loop of a scheduler.
    Redis serialises the SET itself, so no in-process locking is needed.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, pool_size: int, socket_timeout_s: float = 2.0) -> "RedisLockStore":
        # Each loop issues at most one command at a time.
        client = redis.Redis.from_url(
            url,
            max_connections=max(1, pool_size),
            socket_timeout=socket_timeout_s,
            socket_connect_timeout=socket_timeout_s,
        )
        return cls(client)

    def try_set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        try:
            created = self._client.set(key, value, nx=True, px=ttl_ms)
        except RedisError as e:
            raise LockStoreError(f"Redis lock attempt failed for {key}: {e}", details={"key": key}) from e
        return bool(created)

    def close(self) -> None:
        try:
            self._client.close()
        except RedisError:
            _LOG.warning("Error while closing Redis lock store client.", exc_info=True)
