"""RoadSched SQL Backend - SQL Database Persistence.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Dict, Iterator, List, Optional, Tuple

from roadsched_core.storage.backend import StorageBackend

logger = logging.getLogger(__name__)


class SQLBackend(StorageBackend):
    """SQLite storage backend.

    Deletes that claim or cancel a record are single statements, so they
    stay atomic across processes sharing the database file.
    """

    def __init__(self, connection_string: str = ":memory:"):
        self.connection_string = connection_string
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        self._conn = sqlite3.connect(
            self.connection_string,
            check_same_thread=False,
            isolation_level=None,
        )
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS schedules (
                name TEXT PRIMARY KEY,
                position INTEGER NOT NULL,
                data TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS delayed_jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL,
                data TEXT NOT NULL
            )
        """)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_delayed_timestamp ON delayed_jobs(timestamp, id)"
        )
        logger.debug(f"Initialized SQL backend at {self.connection_string}")

    def _transaction(self):
        return _Transaction(self._conn)

    def replace_schedules(self, schedules: Dict[str, str]) -> None:
        with self._lock, self._transaction():
            self._conn.execute("DELETE FROM schedules")
            self._conn.executemany(
                "INSERT INTO schedules (name, position, data) VALUES (?, ?, ?)",
                [(name, i, data) for i, (name, data) in enumerate(schedules.items())],
            )

    def save_schedule(self, name: str, data: str) -> None:
        with self._lock, self._transaction():
            cursor = self._conn.execute(
                "UPDATE schedules SET data = ? WHERE name = ?", (data, name)
            )
            if cursor.rowcount == 0:
                self._conn.execute(
                    "INSERT INTO schedules (name, position, data) VALUES "
                    "(?, (SELECT COALESCE(MAX(position), -1) + 1 FROM schedules), ?)",
                    (name, data),
                )

    def fetch_schedule(self, name: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM schedules WHERE name = ?", (name,)
            ).fetchone()
            return row[0] if row else None

    def delete_schedule(self, name: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM schedules WHERE name = ?", (name,))
            return cursor.rowcount > 0

    def all_schedules(self) -> Dict[str, str]:
        with self._lock:
            cursor = self._conn.execute("SELECT name, data FROM schedules ORDER BY position")
            return {name: data for name, data in cursor.fetchall()}

    def add_delayed(self, timestamp: int, record: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO delayed_jobs (timestamp, data) VALUES (?, ?)",
                (timestamp, record),
            )

    def peek_delayed(self, offset: int, limit: int) -> List[Tuple[int, str]]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT timestamp, data FROM delayed_jobs ORDER BY timestamp, id LIMIT ? OFFSET ?",
                (limit, max(offset, 0)),
            )
            return [(ts, data) for ts, data in cursor.fetchall()]

    def delayed_timestamps(self, offset: int = 0, limit: Optional[int] = None) -> List[int]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT DISTINCT timestamp FROM delayed_jobs ORDER BY timestamp LIMIT ? OFFSET ?",
                (-1 if limit is None else limit, offset),
            )
            return [row[0] for row in cursor.fetchall()]

    def timestamp_items(self, timestamp: int, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT data FROM delayed_jobs WHERE timestamp = ? ORDER BY id LIMIT ? OFFSET ?",
                (timestamp, -1 if limit is None else limit, offset),
            )
            return [row[0] for row in cursor.fetchall()]

    def timestamp_size(self, timestamp: int) -> int:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT COUNT(*) FROM delayed_jobs WHERE timestamp = ?", (timestamp,)
            )
            return cursor.fetchone()[0]

    def count_delayed(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM delayed_jobs").fetchone()[0]

    def scan_delayed(self) -> Iterator[Tuple[int, str]]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT timestamp, data FROM delayed_jobs ORDER BY timestamp, id"
            )
            rows = cursor.fetchall()
        return iter([(ts, data) for ts, data in rows])

    def remove_delayed(self, timestamp: int, record: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "DELETE FROM delayed_jobs WHERE id = ("
                "SELECT id FROM delayed_jobs WHERE timestamp = ? AND data = ? "
                "ORDER BY id LIMIT 1)",
                (timestamp, record),
            )
            return cursor.rowcount > 0

    def pop_delayed(self, timestamp: int) -> Optional[str]:
        with self._lock, self._transaction():
            row = self._conn.execute(
                "SELECT id, data FROM delayed_jobs WHERE timestamp = ? ORDER BY id LIMIT 1",
                (timestamp,),
            ).fetchone()
            if row is None:
                return None
            cursor = self._conn.execute("DELETE FROM delayed_jobs WHERE id = ?", (row[0],))
            return row[1] if cursor.rowcount > 0 else None

    def take_delayed(self, timestamp: int) -> List[str]:
        with self._lock, self._transaction():
            rows = self._conn.execute(
                "SELECT data FROM delayed_jobs WHERE timestamp = ? ORDER BY id",
                (timestamp,),
            ).fetchall()
            self._conn.execute("DELETE FROM delayed_jobs WHERE timestamp = ?", (timestamp,))
            return [row[0] for row in rows]

    def next_delayed_timestamp(self, at_or_before: int) -> Optional[int]:
        with self._lock:
            row = self._conn.execute(
                "SELECT MIN(timestamp) FROM delayed_jobs WHERE timestamp <= ?",
                (at_or_before,),
            ).fetchone()
            return row[0] if row else None

    def clear_delayed(self) -> int:
        with self._lock, self._transaction():
            count = self._conn.execute("SELECT COUNT(*) FROM delayed_jobs").fetchone()[0]
            self._conn.execute("DELETE FROM delayed_jobs")
            return count

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None


class _Transaction:
    """Write transaction on an autocommit connection."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def __enter__(self) -> sqlite3.Connection:
        self._conn.execute("BEGIN IMMEDIATE")
        return self._conn

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self._conn.execute("COMMIT")
        else:
            self._conn.execute("ROLLBACK")


__all__ = ["SQLBackend"]
