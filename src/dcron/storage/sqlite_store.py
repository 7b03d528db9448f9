# src/dcron/storage/sqlite_store.py
from __future__ import annotations

import sqlite3
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from dcron.domain.errors import LockStoreError
from dcron.logging import get_logger

from .db import SQLiteDB, begin_immediate, commit, rollback

_LOG = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS dcron_locks(
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  expires_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_dcron_locks_expires_at ON dcron_locks(expires_at);
"""


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SQLiteLockStore:
    """
    Lock store backed by a SQLite file shared by scheduler processes on one host.

    Important invariants:
    - Claiming is atomic (BEGIN IMMEDIATE + INSERT OR IGNORE).
    - Expired rows are purged inside the same transaction, so an expired
      key can be claimed again.
    """
    db: SQLiteDB
    clock: Callable[[], int] = now_ms
    _schema_ready: bool = field(default=False, init=False, repr=False)

    def ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise LockStoreError(
                f"Failed to initialise lock table in {self.db.db_path}: {e}",
                details={"path": str(self.db.db_path)},
            ) from e
        finally:
            conn.close()
        self._schema_ready = True

    def try_set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        if not self._schema_ready:
            self.ensure_schema()

        now = self.clock()
        conn = self._connect()
        try:
            begin_immediate(conn)
            conn.execute("DELETE FROM dcron_locks WHERE expires_at <= ?;", (now,))
            cur = conn.execute(
                "INSERT OR IGNORE INTO dcron_locks(key, value, expires_at) VALUES (?, ?, ?);",
                (key, value, now + ttl_ms),
            )
            created = cur.rowcount == 1
            commit(conn)
            return created
        except sqlite3.Error as e:
            _safe_rollback(conn)
            raise LockStoreError(f"SQLite lock attempt failed for {key}: {e}", details={"key": key}) from e
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM dcron_locks WHERE key = ? AND expires_at > ?;",
                (key, self.clock()),
            ).fetchone()
        except sqlite3.Error as e:
            raise LockStoreError(f"SQLite lock lookup failed for {key}: {e}", details={"key": key}) from e
        finally:
            conn.close()
        return row["value"] if row else None

    def close(self) -> None:
        # Connections are per call; nothing is held open.
        _LOG.debug("SQLite lock store closed (%s)", self.db.db_path)

    def _connect(self) -> sqlite3.Connection:
        try:
            return self.db.connect()
        except (sqlite3.Error, OSError) as e:
            raise LockStoreError(
                f"Cannot open lock database {self.db.db_path}: {e}",
                details={"path": str(self.db.db_path)},
            ) from e


def _safe_rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        try:
            rollback(conn)
        except sqlite3.Error:
            _LOG.exception("Rollback failed on lock database.")
