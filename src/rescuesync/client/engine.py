"""Sync engine draining the outbox against the remote authority.

This module provides:
- SyncEngine: Single-flight drain passes over the OutboxQueue
- EngineState: IDLE / DRAINING
- DrainOutcome, DrainResult: Summary of one drain() call

A drain pass submits items strictly in enqueue order and stops at the
first failure, so an item is never confirmed while an earlier one is still
pending. Each acknowledged item is applied to the RecordStore first and
removed from the outbox second; a crash in between only causes the item to
be submitted again.

Triggers:
    - every offline -> online transition of the ConnectivitySignal
    - an optional periodic timer (start()/stop())
    - explicit drain() calls
All of them go through the same non-blocking lock.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from rescuesync.client.api import RemoteError, RemoteRejected, RemoteUnavailable
from rescuesync.client.store import StorageFailure
from rescuesync.core.types import RequestStatus, SyncAction

if TYPE_CHECKING:
    from rescuesync.client.api import Ack, RemoteAuthority
    from rescuesync.client.connectivity import ConnectivitySignal
    from rescuesync.client.outbox import OutboxQueue
    from rescuesync.client.store import RecordStore
    from rescuesync.core.types import SyncQueueItem

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    """State of the sync engine."""

    IDLE = "idle"
    DRAINING = "draining"


class DrainOutcome(str, Enum):
    """How a drain() call ended."""

    OFFLINE = "offline"  # Skipped: connectivity is down
    BUSY = "busy"  # Skipped: another pass is running
    EMPTY = "empty"  # Nothing to submit
    COMPLETED = "completed"  # Every snapshot item was acknowledged
    FAILED = "failed"  # Halted at the first failing item


@dataclass
class DrainResult:
    """Summary of one drain() call.

    Attributes:
        outcome: How the call ended.
        submitted: Ids of items acknowledged and removed during the pass.
        failed_item: Id of the item that halted the pass, if any.
        error: Description of the failure, if any.
        remaining: Items left in the outbox after the pass.
    """

    outcome: DrainOutcome
    submitted: list[str] = field(default_factory=list)
    failed_item: str | None = None
    error: str | None = None
    remaining: int = 0

    @property
    def ok(self) -> bool:
        """True if the pass ran and nothing failed."""
        return self.outcome in (DrainOutcome.COMPLETED, DrainOutcome.EMPTY)

    @property
    def skipped(self) -> bool:
        """True if no pass ran."""
        return self.outcome in (DrainOutcome.OFFLINE, DrainOutcome.BUSY)


class SyncEngine:
    """Drives the outbox to empty whenever connectivity allows."""

    def __init__(
        self,
        store: RecordStore,
        outbox: OutboxQueue,
        remote: RemoteAuthority,
        connectivity: ConnectivitySignal,
        submit_timeout: float | None = None,
    ) -> None:
        """Initialize the engine and subscribe to connectivity changes.

        Args:
            store: Durable record store.
            outbox: Pending sync items.
            remote: Remote authority accepting items.
            connectivity: Online/offline signal; a drain is attempted on
                every offline -> online transition.
            submit_timeout: Optional bound (seconds) on each submission;
                an expired submission counts as RemoteUnavailable.
        """
        self._store = store
        self._outbox = outbox
        self._remote = remote
        self._connectivity = connectivity
        self._submit_timeout = submit_timeout

        self._state = EngineState.IDLE
        self._drain_lock = threading.Lock()
        self._last_result: DrainResult | None = None

        # Periodic trigger
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._unsubscribe = connectivity.subscribe(self._on_connectivity_change)

    @property
    def state(self) -> EngineState:
        """Current engine state."""
        return self._state

    @property
    def is_draining(self) -> bool:
        return self._state == EngineState.DRAINING

    @property
    def last_result(self) -> DrainResult | None:
        """Result of the most recent drain() call that ran a pass."""
        return self._last_result

    @property
    def last_sync_at(self) -> float | None:
        """Wall-clock time of the last successful drain."""
        return self._store.get_last_sync_at()

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Back online, draining outbox")
            self.drain()

    # === Drain ===

    def drain(self) -> DrainResult:
        """Run one drain pass unless offline or already draining.

        Never raises for submission or storage failures; they are reported
        in the returned DrainResult and the affected items stay queued.
        """
        if not self._connectivity.is_online:
            logger.debug("Drain skipped: offline")
            return DrainResult(outcome=DrainOutcome.OFFLINE, remaining=len(self._outbox))

        if not self._drain_lock.acquire(blocking=False):
            logger.debug("Drain skipped: another pass is running")
            return DrainResult(outcome=DrainOutcome.BUSY)

        try:
            items = self._outbox.snapshot()
            if not items:
                return DrainResult(outcome=DrainOutcome.EMPTY)

            self._state = EngineState.DRAINING
            logger.info("Syncing %d items to server...", len(items))
            result = self._run_pass(items)
            self._last_result = result
            return result
        except StorageFailure as e:
            logger.error("Drain aborted, outbox unreadable: %s", e)
            result = DrainResult(outcome=DrainOutcome.FAILED, error=str(e))
            self._last_result = result
            return result
        finally:
            self._state = EngineState.IDLE
            self._drain_lock.release()

    def _run_pass(self, items: list[SyncQueueItem]) -> DrainResult:
        submitted: list[str] = []
        executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="SyncSubmit")
            if self._submit_timeout is not None
            else None
        )
        try:
            for item in items:
                try:
                    ack = self._submit(item, executor)
                    self._apply(item, ack)
                    self._outbox.remove(item.id)
                except RemoteRejected as e:
                    logger.warning(
                        "Server rejected %r (status %s): %s; will retry on next drain",
                        item, e.status_code, e,
                    )
                    return self._failed(submitted, item, e)
                except RemoteError as e:
                    logger.warning("Sync halted at %r: %s", item, e)
                    return self._failed(submitted, item, e)
                except StorageFailure as e:
                    logger.error("Sync halted at %r, local write failed: %s", item, e)
                    return self._failed(submitted, item, e)
                except Exception as e:
                    logger.exception("Unexpected error submitting %r", item)
                    return self._failed(submitted, item, e)
                submitted.append(item.id)
        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)

        now = time.time()
        self._store.set_last_sync_at(now)
        remaining = len(self._outbox)
        logger.info("Sync complete: %d items submitted, %d pending", len(submitted), remaining)
        return DrainResult(
            outcome=DrainOutcome.COMPLETED,
            submitted=submitted,
            remaining=remaining,
        )

    def _failed(
        self,
        submitted: list[str],
        item: SyncQueueItem,
        error: Exception,
    ) -> DrainResult:
        return DrainResult(
            outcome=DrainOutcome.FAILED,
            submitted=submitted,
            failed_item=item.id,
            error=str(error),
            remaining=len(self._outbox),
        )

    def _submit(self, item: SyncQueueItem, executor: ThreadPoolExecutor | None) -> Ack:
        if executor is None:
            return self._remote.submit(item)
        future = executor.submit(self._remote.submit, item)
        try:
            return future.result(timeout=self._submit_timeout)
        except FutureTimeoutError as e:
            raise RemoteUnavailable(
                f"Submission of {item.id} timed out after {self._submit_timeout}s"
            ) from e

    def _apply(self, item: SyncQueueItem, ack: Ack) -> None:
        """Apply an acknowledged item to the record store.

        CREATE_REQUEST marks the record synced. UPDATE_STATUS and
        ASSIGN_TASK write the acknowledged status, unless a later local
        intent for the same record is still queued. Missing records are
        ignored.
        """
        request_id = item.request_id
        if request_id is None:
            return

        record = self._store.get(request_id)
        if record is None:
            logger.debug("Acknowledged %r but request %s is not stored", item, request_id)
            return

        if item.action == SyncAction.CREATE_REQUEST:
            self._store.put(record.with_changes(synced=True))
            return

        status = ack.status
        if status is None and item.payload.get("status"):
            status = RequestStatus(item.payload["status"])
        if status is None or record.status == status:
            return

        if self._outbox.has_pending_for(request_id, after=item.id):
            logger.debug(
                "Keeping local status %s for %s: newer change still queued",
                record.status.value, request_id,
            )
            return

        self._store.put(record.with_changes(status=status))

    # === Periodic trigger ===

    def start(self, interval: float) -> None:
        """Start a background thread calling drain() every interval seconds."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Sync engine timer already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_timer,
            args=(interval,),
            name="SyncEngineTimer",
            daemon=True,
        )
        self._thread.start()
        logger.info("Sync engine timer started (every %.1fs)", interval)

    def _run_timer(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            self.drain()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the periodic trigger and detach from connectivity changes."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._unsubscribe()
        logger.debug("Sync engine stopped")
