"""Durable record store for the sync client.

This module provides:
- RecordStore: SQLite-based persistence for rescue requests and tasks
- StorageFailure: Raised when a read or write does not reach the database

Architecture:
    The store is the single source of truth for domain records on the
    device. Every write is committed before the call returns (autocommit,
    WAL journal) unless it runs inside transaction(). A mutation and its
    outbox entry are written in one such transaction, so either both
    commit or neither does.

    Records keep their original position on upsert; get_all() returns
    them in first-insertion order.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rescuesync.core.ids import generate_id
from rescuesync.core.types import (
    Location,
    RequestStatus,
    RescueRequest,
    Urgency,
    VolunteerTask,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class StorageFailure(Exception):
    """A durable read or write failed."""


def connect(db_path: Path) -> sqlite3.Connection:
    """Open a SQLite connection configured for the sync client.

    Args:
        db_path: Path to SQLite database file (parents are created).

    Returns:
        Connection in autocommit mode with WAL journaling.

    Raises:
        StorageFailure: If the database cannot be opened.
    """
    db_path = Path(db_path)
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
    except (OSError, sqlite3.Error) as e:
        raise StorageFailure(f"Cannot open database {db_path}: {e}") from e
    return conn


def _request_from_row(row: sqlite3.Row) -> RescueRequest:
    return RescueRequest(
        id=row["id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        user_phone=row["user_phone"],
        type=row["type"],
        message=row["message"],
        urgency=Urgency(row["urgency"]),
        people_count=row["people_count"],
        location=Location(
            lat=row["lat"],
            lng=row["lng"],
            address=row["address"],
        ),
        status=RequestStatus(row["status"]),
        created_at=row["created_at"],
        synced=bool(row["synced"]),
        sms_sent=bool(row["sms_sent"]),
    )


def _task_from_row(row: sqlite3.Row) -> VolunteerTask:
    return VolunteerTask(
        id=row["id"],
        request_id=row["request_id"],
        volunteer_id=row["volunteer_id"],
        assigned_at=row["assigned_at"],
        completed_at=row["completed_at"],
        notes=row["notes"],
    )


class RecordStore:
    """SQLite-backed store for rescue requests and volunteer tasks."""

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the record store.

        Args:
            db_path: Path to SQLite database file.

        Raises:
            StorageFailure: If the database cannot be opened or initialized.
        """
        self._db_path = Path(db_path)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = connect(self._db_path)
        self._execute_script("""
            CREATE TABLE IF NOT EXISTS requests (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                user_name TEXT NOT NULL,
                user_phone TEXT NOT NULL,
                type TEXT NOT NULL,
                message TEXT NOT NULL,
                urgency TEXT NOT NULL,
                people_count INTEGER NOT NULL,
                lat REAL NOT NULL,
                lng REAL NOT NULL,
                address TEXT,
                status TEXT NOT NULL,
                created_at REAL NOT NULL,
                synced INTEGER NOT NULL DEFAULT 0,
                sms_sent INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS tasks (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                request_id TEXT NOT NULL,
                volunteer_id TEXT NOT NULL,
                assigned_at REAL NOT NULL,
                completed_at REAL,
                notes TEXT
            );

            -- Key-value engine bookkeeping
            CREATE TABLE IF NOT EXISTS sync_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

    @property
    def db_path(self) -> Path:
        """Path of the underlying database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def _execute_script(self, script: str) -> None:
        with self._lock:
            try:
                self._conn.executescript(script)
            except sqlite3.Error as e:
                raise StorageFailure(f"Cannot initialize {self._db_path}: {e}") from e

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Run a statement under the lock and return all rows.

        Raises:
            StorageFailure: On any SQLite error.
        """
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                return cursor.fetchall()
            except sqlite3.Error as e:
                raise StorageFailure(f"Database operation failed: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run several writes as one atomic commit.

        Store writes made inside the block, and statements executed on the
        yielded connection, commit together when the block exits. If the
        block raises, everything is rolled back and the exception propagates.

        Example:
            with store.transaction() as conn:
                store.put(request)
                outbox.enqueue(item, conn=conn)

        Yields:
            The store's connection, holding an open write transaction.

        Raises:
            StorageFailure: If the transaction cannot be started or committed.
        """
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageFailure(f"Cannot start transaction: {e}") from e
            try:
                yield self._conn
            except BaseException:
                self._rollback()
                raise
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                raise StorageFailure(f"Cannot commit transaction: {e}") from e

    def _rollback(self) -> None:
        if not self._conn.in_transaction:
            return
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed on %s", self._db_path)

    @staticmethod
    def new_id() -> str:
        """Generate an identifier for a new record or queue item."""
        return generate_id()

    # === Requests ===

    def put(self, request: RescueRequest) -> None:
        """Insert or overwrite a rescue request.

        The write is committed when this returns. An existing record with
        the same id is replaced but keeps its original ordering position.

        Raises:
            StorageFailure: If the write fails.
        """
        location = request.location
        self._execute(
            """
            INSERT INTO requests (
                id, user_id, user_name, user_phone, type, message, urgency,
                people_count, lat, lng, address, status, created_at, synced, sms_sent
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                user_id = excluded.user_id,
                user_name = excluded.user_name,
                user_phone = excluded.user_phone,
                type = excluded.type,
                message = excluded.message,
                urgency = excluded.urgency,
                people_count = excluded.people_count,
                lat = excluded.lat,
                lng = excluded.lng,
                address = excluded.address,
                status = excluded.status,
                created_at = excluded.created_at,
                synced = excluded.synced,
                sms_sent = excluded.sms_sent
            """,
            (
                request.id,
                request.user_id,
                request.user_name,
                request.user_phone,
                request.type,
                request.message,
                request.urgency.value,
                request.people_count,
                location.lat,
                location.lng,
                location.address,
                request.status.value,
                request.created_at,
                int(request.synced),
                int(request.sms_sent),
            ),
        )
        logger.debug("Stored request %s (status=%s, synced=%s)",
                     request.id, request.status.value, request.synced)

    def get(self, request_id: str) -> RescueRequest | None:
        """Get a rescue request by id.

        Returns:
            The request, or None if no record has this id.
        """
        rows = self._execute("SELECT * FROM requests WHERE id = ?", (request_id,))
        return _request_from_row(rows[0]) if rows else None

    def get_all(self) -> list[RescueRequest]:
        """List every stored request in insertion order."""
        rows = self._execute("SELECT * FROM requests ORDER BY seq")
        return [_request_from_row(row) for row in rows]

    def count(self) -> int:
        """Number of stored requests."""
        rows = self._execute("SELECT COUNT(*) AS n FROM requests")
        return int(rows[0]["n"])

    # === Tasks ===

    def put_task(self, task: VolunteerTask) -> None:
        """Insert or overwrite a volunteer task.

        Raises:
            StorageFailure: If the write fails.
        """
        self._execute(
            """
            INSERT INTO tasks (
                id, request_id, volunteer_id, assigned_at, completed_at, notes
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                request_id = excluded.request_id,
                volunteer_id = excluded.volunteer_id,
                assigned_at = excluded.assigned_at,
                completed_at = excluded.completed_at,
                notes = excluded.notes
            """,
            (
                task.id,
                task.request_id,
                task.volunteer_id,
                task.assigned_at,
                task.completed_at,
                task.notes,
            ),
        )

    def get_task(self, task_id: str) -> VolunteerTask | None:
        """Get a volunteer task by id."""
        rows = self._execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return _task_from_row(rows[0]) if rows else None

    def list_tasks(self, request_id: str | None = None) -> list[VolunteerTask]:
        """List tasks in insertion order, optionally for one request."""
        if request_id is None:
            rows = self._execute("SELECT * FROM tasks ORDER BY seq")
        else:
            rows = self._execute(
                "SELECT * FROM tasks WHERE request_id = ? ORDER BY seq",
                (request_id,),
            )
        return [_task_from_row(row) for row in rows]

    # === Sync state ===

    def get_state(self, key: str) -> str | None:
        """Get a sync state value."""
        rows = self._execute("SELECT value FROM sync_state WHERE key = ?", (key,))
        return rows[0]["value"] if rows else None

    def set_state(self, key: str, value: str) -> None:
        """Set a sync state value."""
        self._execute(
            "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
            (key, value),
        )

    def get_last_sync_at(self) -> float | None:
        """Get timestamp of last successful drain."""
        value = self.get_state("last_sync_at")
        return float(value) if value else None

    def set_last_sync_at(self, timestamp: float) -> None:
        """Set timestamp of last successful drain."""
        self.set_state("last_sync_at", str(timestamp))
