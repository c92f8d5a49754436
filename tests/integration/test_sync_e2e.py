"""End-to-end integration tests for the offline-first sync workflow.

Tests the complete flow: create offline -> reconnect -> drain -> server
holds the request and the local copy is marked synced.
"""

from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from rescuesync.client.api import HTTPRemoteAuthority
from rescuesync.client.connectivity import ConnectivitySignal
from rescuesync.client.engine import DrainOutcome, SyncEngine
from rescuesync.client.outbox import OutboxQueue
from rescuesync.client.service import RescueService
from rescuesync.client.store import RecordStore
from rescuesync.core.config import RemoteConfig
from rescuesync.core.types import (
    RequestStatus,
    SyncAction,
    SyncQueueItem,
    Urgency,
    User,
    UserRole,
)
from rescuesync.server.app import create_app
from rescuesync.server.database import Database


@dataclass
class Device:
    """A simulated client device wired to the test server."""

    store: RecordStore
    outbox: OutboxQueue
    connectivity: ConnectivitySignal
    service: RescueService
    engine: SyncEngine

    def close(self) -> None:
        self.engine.stop()
        self.outbox.close()
        self.store.close()


@pytest.fixture
def server_db(tmp_path: Path) -> Generator[Database, None, None]:
    db = Database(tmp_path / "server" / "server.db")
    yield db
    db.close()


@pytest.fixture
def remote(server_db: Database) -> HTTPRemoteAuthority:
    http = TestClient(create_app(server_db))
    return HTTPRemoteAuthority(RemoteConfig(server_url="http://testserver"), client=http)


def open_device(db_path: Path, remote: HTTPRemoteAuthority) -> Device:
    store = RecordStore(db_path)
    outbox = OutboxQueue(db_path)
    connectivity = ConnectivitySignal(online=False)
    return Device(
        store=store,
        outbox=outbox,
        connectivity=connectivity,
        service=RescueService(store, outbox, connectivity),
        engine=SyncEngine(store, outbox, remote, connectivity),
    )


@pytest.fixture
def device(tmp_path: Path, remote: HTTPRemoteAuthority) -> Generator[Device, None, None]:
    d = open_device(tmp_path / "device" / "state.db", remote)
    yield d
    d.close()


@pytest.fixture
def citizen() -> User:
    return User(id="citizen-1", name="Asha", phone="555-0100", role=UserRole.CITIZEN)


class TestOfflineCreate:
    """Requests created offline reach the server once connectivity returns."""

    def test_create_offline_then_sync(
        self, device: Device, server_db: Database, citizen: User,
    ) -> None:
        request = device.service.create_request(
            citizen, "Family of four on the roof", people_count=4, urgency=Urgency.HIGH,
        )
        assert server_db.get_request(request.id) is None
        assert len(device.outbox) == 1

        device.connectivity.set_online(True)

        assert len(device.outbox) == 0
        assert device.store.get(request.id).synced is True
        record = server_db.get_request(request.id)
        assert record is not None
        assert record.people_count == 4
        assert record.urgency == "high"
        assert device.engine.last_sync_at is not None

    def test_status_changes_reach_server_in_order(
        self, device: Device, server_db: Database, citizen: User,
    ) -> None:
        request = device.service.create_request(citizen, "Trapped in car")
        device.service.accept_request(request.id)
        device.service.complete_request(request.id)

        device.connectivity.set_online(True)

        record = server_db.get_request(request.id)
        assert record is not None
        assert record.status == "completed"
        assert device.store.get(request.id).status == RequestStatus.COMPLETED


class TestReplayAfterCrash:
    """An item delivered but never removed is acknowledged again without side effects."""

    def test_replayed_create_does_not_revert_status(
        self,
        tmp_path: Path,
        remote: HTTPRemoteAuthority,
        server_db: Database,
        citizen: User,
    ) -> None:
        db_path = tmp_path / "device" / "state.db"
        device = open_device(db_path, remote)
        request = device.service.create_request(citizen, "Need insulin")
        create_item = device.outbox.snapshot()[0]

        # Delivered before the crash, never removed locally
        remote.submit(create_item)
        server_db.apply_item(
            "other-device-item", "UPDATE_STATUS",
            {"id": request.id, "status": "in-progress"}, 2.0,
        )
        device.close()

        device = open_device(db_path, remote)
        device.connectivity.set_online(True)

        assert len(device.outbox) == 0
        stored = device.store.get(request.id)
        assert stored.synced is True
        record = server_db.get_request(request.id)
        assert record is not None
        assert record.status == "in-progress"
        device.close()


class TestRejection:
    """A rejected item blocks the queue until it is accepted."""

    def test_unknown_request_halts_drain(self, device: Device) -> None:
        device.outbox.enqueue(SyncQueueItem(
            id="orphan",
            action=SyncAction.UPDATE_STATUS,
            payload={"id": "never-created", "status": "completed"},
            timestamp=1.0,
        ))

        device.connectivity.set_online(True)

        result = device.engine.last_result
        assert result is not None
        assert result.outcome == DrainOutcome.FAILED
        assert result.failed_item == "orphan"
        assert len(device.outbox) == 1
