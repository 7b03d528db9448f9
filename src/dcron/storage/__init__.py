# src/dcron/storage/__init__.py
"""
Lock stores for distributed mode.

- base: LockStore protocol + in-process MemoryLockStore
- db: SQLite connection factory + transaction helpers
- sqlite_store: file-backed lock store
- redis_store: Redis-backed lock store
- address: address parsing and store construction
"""

from .base import LockStore, MemoryLockStore
from .db import SQLiteDB
from .sqlite_store import SQLiteLockStore
from .redis_store import RedisLockStore
from .address import LockStoreAddress, open_lock_store, parse_lock_store_address

__all__ = [
    "LockStore",
    "MemoryLockStore",
    "SQLiteDB",
    "SQLiteLockStore",
    "RedisLockStore",
    "LockStoreAddress",
    "open_lock_store",
    "parse_lock_store_address",
]
