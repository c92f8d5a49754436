"""Server database using SQLAlchemy with SQLite.

This module provides:
- Idempotent application of sync items submitted by clients
- Authoritative storage of rescue requests and volunteer tasks
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from rescuesync.server.models import AppliedItem, Base, RescueRequestRecord, TaskRecord

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class ItemRejectedError(Exception):
    """Raised when a sync item cannot be applied."""


class UnknownRequestError(ItemRejectedError):
    """The item targets a request the server has never seen."""


class Database:
    """SQLAlchemy database for the remote authority.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        Base.metadata.create_all(self._engine)

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Sync items ===

    def get_applied_item(self, item_id: str) -> AppliedItem | None:
        """Get the record of an already-applied item."""
        with self._session() as session:
            applied = session.get(AppliedItem, item_id)
            if applied:
                session.expunge(applied)
            return applied

    def apply_item(
        self,
        item_id: str,
        action: str,
        payload: dict[str, Any],
        enqueued_at: float,
    ) -> tuple[AppliedItem, bool]:
        """Apply a sync item exactly once.

        Args:
            item_id: Client-generated item id (idempotency key).
            action: CREATE_REQUEST, UPDATE_STATUS or ASSIGN_TASK.
            payload: Validated payload for the action.
            enqueued_at: Client enqueue timestamp.

        Returns:
            (applied item record, duplicate flag). A duplicate returns the
            record of the first application without touching any data.

        Raises:
            UnknownRequestError: If UPDATE_STATUS/ASSIGN_TASK target an
                unknown request.
            ItemRejectedError: If the action is not supported.
        """
        with self._session() as session:
            existing = session.get(AppliedItem, item_id)
            if existing is not None:
                session.expunge(existing)
                logger.info("Item %s already applied, acknowledging again", item_id)
                return existing, True

            if action == "CREATE_REQUEST":
                request_id, status = self._create_request(session, payload)
            elif action == "UPDATE_STATUS":
                request_id, status = self._update_status(session, payload["id"], payload["status"])
            elif action == "ASSIGN_TASK":
                request_id, status = self._assign_task(session, payload)
            else:
                raise ItemRejectedError(f"Unsupported action: {action}")

            applied = AppliedItem(
                item_id=item_id,
                action=action,
                request_id=request_id,
                status=status,
                enqueued_at=enqueued_at,
                accepted_at=time.time(),
            )
            session.add(applied)
            session.commit()
            session.refresh(applied)
            session.expunge(applied)
            logger.info("Applied %s %s for request %s", action, item_id, request_id)
            return applied, False

    def _create_request(self, session: Session, payload: dict[str, Any]) -> tuple[str, str]:
        location = payload["location"]
        record = session.get(RescueRequestRecord, payload["id"])
        if record is None:
            record = RescueRequestRecord(id=payload["id"])
            session.add(record)
        record.user_id = payload["user_id"]
        record.user_name = payload["user_name"]
        record.user_phone = payload["user_phone"]
        record.type = payload["type"]
        record.message = payload["message"]
        record.urgency = payload["urgency"]
        record.people_count = payload["people_count"]
        record.lat = location["lat"]
        record.lng = location["lng"]
        record.address = location.get("address")
        record.status = payload["status"]
        record.created_at = payload["created_at"]
        return record.id, record.status

    def _update_status(self, session: Session, request_id: str, status: str) -> tuple[str, str]:
        record = session.get(RescueRequestRecord, request_id)
        if record is None:
            raise UnknownRequestError(f"Unknown request: {request_id}")
        record.status = status
        return record.id, record.status

    def _assign_task(self, session: Session, payload: dict[str, Any]) -> tuple[str, str]:
        task = payload["task"]
        request_id, status = self._update_status(session, payload["request_id"], payload["status"])
        record = session.get(TaskRecord, task["id"])
        if record is None:
            record = TaskRecord(id=task["id"])
            session.add(record)
        record.request_id = request_id
        record.volunteer_id = task["volunteer_id"]
        record.assigned_at = task["assigned_at"]
        record.completed_at = task.get("completed_at")
        record.notes = task.get("notes")
        return request_id, status

    # === Requests ===

    def get_request(self, request_id: str) -> RescueRequestRecord | None:
        """Get a request by id."""
        with self._session() as session:
            record = session.get(RescueRequestRecord, request_id)
            if record:
                session.expunge(record)
            return record

    def list_requests(self, status: str | None = None) -> list[RescueRequestRecord]:
        """List requests, newest first, optionally filtered by status."""
        with self._session() as session:
            stmt = select(RescueRequestRecord).order_by(RescueRequestRecord.created_at.desc())
            if status is not None:
                stmt = stmt.where(RescueRequestRecord.status == status)
            records = list(session.scalars(stmt).all())
            for record in records:
                session.expunge(record)
            return records

    def list_tasks(self, request_id: str) -> list[TaskRecord]:
        """List tasks assigned for a request."""
        with self._session() as session:
            stmt = select(TaskRecord).where(TaskRecord.request_id == request_id)
            tasks = list(session.scalars(stmt).all())
            for task in tasks:
                session.expunge(task)
            return tasks
