"""Outbox queue of pending sync items.

This module provides:
- OutboxQueue: Durable FIFO log of mutation intents awaiting acknowledgement

Semantics:
    - enqueue() appends at the tail; items are never reordered or merged,
      two intents for the same record are both kept and both submitted.
    - snapshot() returns the pending items in enqueue order without
      removing them. The sync engine plans a drain pass from it.
    - remove() deletes one item by id and is idempotent.

Persistence (SQLite):
    Each enqueue/remove commits before returning. Items are only ever
    deleted through remove(), which the engine calls after the remote
    authority acknowledged them. A crash between acknowledgement and
    removal leaves the item queued, so it is submitted again on the next
    pass (at-least-once delivery).
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rescuesync.client.store import StorageFailure, connect
from rescuesync.core.types import SyncAction, SyncQueueItem

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


def _item_from_row(row: sqlite3.Row) -> SyncQueueItem:
    return SyncQueueItem(
        id=row["id"],
        action=SyncAction(row["action"]),
        payload=json.loads(row["payload"]),
        timestamp=row["timestamp"],
    )


class OutboxQueue:
    """Thread-safe, SQLite-persisted FIFO of SyncQueueItem."""

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the outbox.

        Args:
            db_path: Path to SQLite database file. May be shared with the
                RecordStore.

        Raises:
            StorageFailure: If the database cannot be opened.
        """
        self._db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn = connect(self._db_path)
        try:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS sync_queue (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    action TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    timestamp REAL NOT NULL
                )
            """)
        except sqlite3.Error as e:
            raise StorageFailure(f"Cannot initialize outbox: {e}") from e

        pending = len(self)
        if pending > 0:
            logger.info("Loaded %d pending sync items from %s", pending, self._db_path)

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageFailure(f"Outbox operation failed: {e}") from e

    @property
    def db_path(self) -> Path:
        """Path of the underlying database file."""
        return self._db_path

    def enqueue(self, item: SyncQueueItem, conn: sqlite3.Connection | None = None) -> None:
        """Append an item at the tail of the queue.

        Args:
            item: The item to append.
            conn: Connection holding an open transaction on the same
                database file (see RecordStore.transaction()). The item is
                then committed or rolled back together with that
                transaction instead of on its own.

        Raises:
            StorageFailure: If the item could not be persisted (including a
                duplicate item id).
        """
        params = (item.id, item.action.value, json.dumps(item.payload), item.timestamp)
        if conn is None:
            self._execute(
                "INSERT INTO sync_queue (id, action, payload, timestamp) VALUES (?, ?, ?, ?)",
                params,
            )
            logger.debug("Queued %r (queue size: %d)", item, len(self))
            return

        try:
            conn.execute(
                "INSERT INTO sync_queue (id, action, payload, timestamp) VALUES (?, ?, ?, ?)",
                params,
            )
        except sqlite3.Error as e:
            raise StorageFailure(f"Outbox operation failed: {e}") from e
        logger.debug("Queued %r in transaction", item)

    def snapshot(self) -> list[SyncQueueItem]:
        """Return all pending items in enqueue order, without removing them."""
        rows = self._execute("SELECT * FROM sync_queue ORDER BY seq")
        return [_item_from_row(row) for row in rows]

    def get(self, item_id: str) -> SyncQueueItem | None:
        """Get a pending item by id, or None."""
        rows = self._execute("SELECT * FROM sync_queue WHERE id = ?", (item_id,))
        return _item_from_row(rows[0]) if rows else None

    def remove(self, item_id: str) -> bool:
        """Remove an item by id.

        Removing an id that is not queued is a no-op.

        Returns:
            True if an item was removed.
        """
        with self._lock:
            try:
                cursor = self._conn.execute("DELETE FROM sync_queue WHERE id = ?", (item_id,))
            except sqlite3.Error as e:
                raise StorageFailure(f"Outbox operation failed: {e}") from e
            removed = cursor.rowcount > 0
        if removed:
            logger.debug("Removed sync item %s", item_id)
        return removed

    def has_pending_for(self, request_id: str, after: str | None = None) -> bool:
        """Check whether an item targeting a request is still queued.

        Args:
            request_id: Rescue request id.
            after: Only consider items enqueued after this item id.

        Returns:
            True if a matching item is pending.
        """
        with self._lock:
            items = self.snapshot()
        if after is not None:
            ids = [item.id for item in items]
            if after in ids:
                items = items[ids.index(after) + 1:]
        return any(item.request_id == request_id for item in items)

    def clear(self) -> int:
        """Remove all items from the queue.

        Returns:
            Number of items removed.
        """
        with self._lock:
            count = len(self)
            self._execute("DELETE FROM sync_queue")
        logger.info("Cleared %d items from outbox", count)
        return count

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __len__(self) -> int:
        """Get number of pending items."""
        rows = self._execute("SELECT COUNT(*) AS n FROM sync_queue")
        return int(rows[0]["n"])

    def __iter__(self) -> Iterator[SyncQueueItem]:
        """Iterate over pending items in enqueue order (does not remove them)."""
        return iter(self.snapshot())

    def __bool__(self) -> bool:
        """Check if the queue has pending items."""
        return len(self) > 0

    def stats(self) -> dict[str, int]:
        """Get queue statistics.

        Returns:
            Dictionary with item counts by action.
        """
        stats: dict[str, int] = {"total": 0}
        for action in SyncAction:
            stats[action.name.lower()] = 0
        rows = self._execute("SELECT action, COUNT(*) AS n FROM sync_queue GROUP BY action")
        for row in rows:
            stats[SyncAction(row["action"]).name.lower()] = int(row["n"])
            stats["total"] += int(row["n"])
        return stats
