# src/dcron/storage/db.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SQLiteDB:
    """
    SQLite connection factory for the file-backed lock store.

    Notes:
    - One connection per lock attempt; loops run on separate threads.
    - WAL mode lets several scheduler processes share the file.
    """
    db_path: Path
    timeout_s: float = 5.0

    def connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout_s,
            isolation_level=None,          # we manage transactions manually (BEGIN/COMMIT)
            check_same_thread=True,
        )
        conn.row_factory = sqlite3.Row
        self._apply_pragmas(conn)
        return conn

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        cur.execute("PRAGMA journal_mode=WAL;")
        # Reduce spurious 'database is locked' when instances fire on the same second
        cur.execute(f"PRAGMA busy_timeout={int(self.timeout_s * 1000)};")
        cur.execute("PRAGMA synchronous=NORMAL;")
        cur.close()


def begin_immediate(conn: sqlite3.Connection) -> None:
    """
    Begins a transaction that acquires a RESERVED lock immediately.
    Concurrent writers wait, which makes check-then-insert atomic.
    """
    conn.execute("BEGIN IMMEDIATE;")


def commit(conn: sqlite3.Connection) -> None:
    conn.execute("COMMIT;")


def rollback(conn: sqlite3.Connection) -> None:
    conn.execute("ROLLBACK;")
