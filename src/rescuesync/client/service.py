"""Domain mutations for rescue requests.

This module provides:
- RescueService: Creates and mutates rescue requests, recording one outbox
  item per mutation
- RequestNotFound: Raised for unknown request ids
- RequestSummary: Counts used by status views

Every mutation writes the record to the RecordStore and appends the matching
SyncQueueItem inside one store transaction. A StorageFailure from either
write rolls both back and propagates to the caller, so the mutation is
either stored together with its sync intent or not stored at all.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rescuesync.client.classifier import apply_classification, classify
from rescuesync.core.types import (
    Location,
    RequestStatus,
    RescueRequest,
    SyncAction,
    SyncQueueItem,
    Urgency,
    VolunteerTask,
)

if TYPE_CHECKING:
    import sqlite3

    from rescuesync.client.classifier import Classifier
    from rescuesync.client.connectivity import ConnectivitySignal
    from rescuesync.client.outbox import OutboxQueue
    from rescuesync.client.store import RecordStore
    from rescuesync.core.types import User

logger = logging.getLogger(__name__)


class RequestNotFound(KeyError):
    """No rescue request with the given id."""


@dataclass
class RequestSummary:
    """Aggregate counts over stored requests."""

    total: int
    pending: int
    in_progress: int
    completed: int
    unsynced: int
    people: int


class RescueService:
    """Entry point for every mutation of rescue requests."""

    def __init__(
        self,
        store: RecordStore,
        outbox: OutboxQueue,
        connectivity: ConnectivitySignal,
        classifier: Classifier | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Durable record store.
            outbox: Outbox receiving one item per mutation.
            connectivity: Used to decide whether enrichment may run.
            classifier: Optional classification collaborator.

        Raises:
            ValueError: If the store and the outbox use different database
                files (mutations could not commit atomically).
        """
        if Path(store.db_path).resolve() != Path(outbox.db_path).resolve():
            raise ValueError(
                f"Store ({store.db_path}) and outbox ({outbox.db_path}) must share a database"
            )
        self._store = store
        self._outbox = outbox
        self._connectivity = connectivity
        self._classifier = classifier

    def _record(
        self,
        conn: sqlite3.Connection,
        action: SyncAction,
        payload: dict[str, Any],
    ) -> SyncQueueItem:
        item = SyncQueueItem(
            id=self._store.new_id(),
            action=action,
            payload=payload,
            timestamp=time.time(),
        )
        self._outbox.enqueue(item, conn=conn)
        return item

    def _require(self, request_id: str) -> RescueRequest:
        request = self._store.get(request_id)
        if request is None:
            raise RequestNotFound(request_id)
        return request

    # === Mutations ===

    def create_request(
        self,
        user: User,
        message: str,
        people_count: int = 1,
        urgency: Urgency = Urgency.MEDIUM,
        location: Location | None = None,
    ) -> RescueRequest:
        """Create a new rescue request.

        When online, the message is classified first; a high urgency score
        may raise the urgency and the suggested category replaces the
        default one.

        Args:
            user: Requester.
            message: Free-text description (must not be blank).
            people_count: Number of people needing help (>= 1).
            urgency: User-selected urgency.
            location: GPS location; defaults to a manual-entry placeholder.

        Returns:
            The stored request (pending, not yet synced).

        Raises:
            ValueError: On blank message or people_count < 1.
            StorageFailure: If the request or its outbox item was not persisted.
        """
        if not message.strip():
            raise ValueError("Message must not be empty")
        if people_count < 1:
            raise ValueError(f"people_count must be positive, got {people_count}")

        suggestion = classify(self._classifier, message, self._connectivity.is_online)
        final_urgency, category = apply_classification(urgency, suggestion)
        if final_urgency != urgency:
            logger.info("Urgency raised from %s to %s by classification",
                        urgency.value, final_urgency.value)

        request = RescueRequest(
            id=self._store.new_id(),
            user_id=user.id,
            user_name=user.name,
            user_phone=user.phone,
            type=category,
            message=message,
            urgency=final_urgency,
            people_count=people_count,
            location=location or Location.manual(),
            status=RequestStatus.PENDING,
            created_at=time.time(),
            synced=False,
            sms_sent=False,
        )

        with self._store.transaction() as conn:
            self._store.put(request)
            self._record(conn, SyncAction.CREATE_REQUEST, request.to_dict())
        logger.info("Created request %s (%s, %s)", request.id, category, final_urgency.value)
        return request

    def update_status(self, request_id: str, status: RequestStatus) -> RescueRequest:
        """Change the status of a request and queue the change.

        Raises:
            RequestNotFound: If the request does not exist.
            StorageFailure: If the change was not persisted.
        """
        request = self._require(request_id)
        updated = request.with_changes(status=status)
        with self._store.transaction() as conn:
            self._store.put(updated)
            self._record(conn, SyncAction.UPDATE_STATUS, {"id": request_id, "status": status.value})
        logger.info("Request %s: %s -> %s", request_id, request.status.value, status.value)
        return updated

    def accept_request(self, request_id: str) -> RescueRequest:
        """Volunteer accepts a request: status becomes in-progress."""
        return self.update_status(request_id, RequestStatus.IN_PROGRESS)

    def complete_request(self, request_id: str) -> RescueRequest:
        """Mark a request completed."""
        return self.update_status(request_id, RequestStatus.COMPLETED)

    def assign_task(
        self,
        request_id: str,
        volunteer: User,
        notes: str | None = None,
    ) -> VolunteerTask:
        """Assign a volunteer to a request.

        Stores a VolunteerTask, sets the request to ASSIGNED and queues one
        ASSIGN_TASK item carrying both.

        Raises:
            RequestNotFound: If the request does not exist.
            StorageFailure: If the assignment was not persisted.
        """
        request = self._require(request_id)
        task = VolunteerTask(
            id=self._store.new_id(),
            request_id=request_id,
            volunteer_id=volunteer.id,
            assigned_at=time.time(),
            notes=notes,
        )
        with self._store.transaction() as conn:
            self._store.put_task(task)
            self._store.put(request.with_changes(status=RequestStatus.ASSIGNED))
            self._record(
                conn,
                SyncAction.ASSIGN_TASK,
                {
                    "task": task.to_dict(),
                    "request_id": request_id,
                    "status": RequestStatus.ASSIGNED.value,
                },
            )
        logger.info("Assigned request %s to volunteer %s", request_id, volunteer.id)
        return task

    def mark_sms_sent(self, request_id: str) -> RescueRequest:
        """Record that an SMS fallback was sent (local only, not synced)."""
        request = self._require(request_id)
        updated = request.with_changes(sms_sent=True)
        self._store.put(updated)
        return updated

    # === Queries ===

    def list_requests(self) -> list[RescueRequest]:
        """All requests, newest first."""
        return sorted(self._store.get_all(), key=lambda r: r.created_at, reverse=True)

    def open_requests(self) -> list[RescueRequest]:
        """Pending requests a volunteer may accept."""
        return [r for r in self.list_requests() if r.status == RequestStatus.PENDING]

    def active_request(self) -> RescueRequest | None:
        """The first request currently in progress, if any."""
        for request in self._store.get_all():
            if request.status == RequestStatus.IN_PROGRESS:
                return request
        return None

    def summary(self) -> RequestSummary:
        """Aggregate counts over all stored requests."""
        requests = self._store.get_all()
        return RequestSummary(
            total=len(requests),
            pending=sum(1 for r in requests if r.status == RequestStatus.PENDING),
            in_progress=sum(1 for r in requests if r.status == RequestStatus.IN_PROGRESS),
            completed=sum(1 for r in requests if r.status == RequestStatus.COMPLETED),
            unsynced=sum(1 for r in requests if not r.synced),
            people=sum(r.people_count for r in requests),
        )
