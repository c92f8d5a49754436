"""Shared fixtures for rescuesync tests."""

from __future__ import annotations

import threading
from collections.abc import Generator
from pathlib import Path

import pytest

from rescuesync.client.api import Ack, RemoteRejected, RemoteUnavailable
from rescuesync.client.connectivity import ConnectivitySignal
from rescuesync.client.outbox import OutboxQueue
from rescuesync.client.store import RecordStore
from rescuesync.core.types import RequestStatus, SyncQueueItem, User, UserRole


class FakeRemote:
    """In-memory remote authority recording every submission.

    Attributes:
        submitted: Items in submission order (duplicates included).
        fail_on: item id -> exception to raise when that item is submitted.
        gate: Optional event every submission waits on before answering.
        ack_status: Status reported in every ack instead of the payload one.
    """

    def __init__(self) -> None:
        self.submitted: list[SyncQueueItem] = []
        self.fail_on: dict[str, Exception] = {}
        self.gate: threading.Event | None = None
        self.ack_status: RequestStatus | None = None
        self.entered = threading.Event()
        self._lock = threading.Lock()

    def submit(self, item: SyncQueueItem) -> Ack:
        with self._lock:
            self.submitted.append(item)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        error = self.fail_on.get(item.id)
        if error is not None:
            raise error
        status = item.payload.get("status")
        return Ack(
            item_id=item.id,
            request_id=item.request_id,
            status=self.ack_status or (RequestStatus(status) if status else None),
        )

    def reject(self, item_id: str) -> None:
        self.fail_on[item_id] = RemoteRejected("invalid item", 422)

    def go_down(self, item_id: str) -> None:
        self.fail_on[item_id] = RemoteUnavailable("connection refused")

    @property
    def submitted_ids(self) -> list[str]:
        return [item.id for item in self.submitted]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of the client database."""
    return tmp_path / "client" / "state.db"


@pytest.fixture
def store(db_path: Path) -> Generator[RecordStore, None, None]:
    """Create a RecordStore."""
    s = RecordStore(db_path)
    yield s
    s.close()


@pytest.fixture
def outbox(db_path: Path) -> Generator[OutboxQueue, None, None]:
    """Create an OutboxQueue sharing the store's database."""
    q = OutboxQueue(db_path)
    yield q
    q.close()


@pytest.fixture
def connectivity() -> ConnectivitySignal:
    """Connectivity signal starting offline."""
    return ConnectivitySignal(online=False)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def citizen() -> User:
    return User(id="citizen-1", name="Asha", phone="555-0100", role=UserRole.CITIZEN)


@pytest.fixture
def volunteer() -> User:
    return User(id="volunteer-7", name="Ravi", phone="555-0177", role=UserRole.VOLUNTEER)
