"""Tests for the HTTP remote authority client."""

from __future__ import annotations

import json
from collections.abc import Generator

import httpx
import pytest
from pytest_httpx import HTTPXMock

from rescuesync.client.api import (
    Ack,
    HTTPRemoteAuthority,
    RemoteRejected,
    RemoteUnavailable,
)
from rescuesync.core.config import RemoteConfig
from rescuesync.core.types import RequestStatus, SyncAction, SyncQueueItem

SERVER = "http://test"
SUBMIT_URL = f"{SERVER}/api/sync/items"


@pytest.fixture
def remote() -> Generator[HTTPRemoteAuthority, None, None]:
    client = HTTPRemoteAuthority(RemoteConfig(server_url=SERVER + "/", timeout=1.0))
    yield client
    client.close()


@pytest.fixture
def item() -> SyncQueueItem:
    return SyncQueueItem(
        id="item-1",
        action=SyncAction.UPDATE_STATUS,
        payload={"id": "req-1", "status": "completed"},
        timestamp=1700000000.0,
    )


class TestAck:
    """Tests for Ack parsing."""

    def test_from_dict(self) -> None:
        ack = Ack.from_dict({
            "item_id": "i1",
            "request_id": "r1",
            "status": "assigned",
            "accepted_at": 5.0,
            "duplicate": True,
        })
        assert ack == Ack(
            item_id="i1",
            request_id="r1",
            status=RequestStatus.ASSIGNED,
            accepted_at=5.0,
            duplicate=True,
        )

    def test_minimal(self) -> None:
        ack = Ack.from_dict({"item_id": "i1"})
        assert ack.status is None
        assert ack.duplicate is False


class TestSubmit:
    """Tests for submit()."""

    def test_accepted(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=SUBMIT_URL,
            json={
                "item_id": "item-1",
                "request_id": "req-1",
                "status": "completed",
                "accepted_at": 1700000001.0,
                "duplicate": False,
            },
        )

        ack = remote.submit(item)

        assert ack.item_id == "item-1"
        assert ack.status == RequestStatus.COMPLETED
        sent = httpx_mock.get_request()
        assert sent is not None
        assert json.loads(sent.read()) == item.to_dict()

    def test_rejected(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=SUBMIT_URL,
            status_code=422,
            json={"detail": "Unknown request: req-1"},
        )

        with pytest.raises(RemoteRejected, match="Unknown request") as exc_info:
            remote.submit(item)
        assert exc_info.value.status_code == 422

    def test_server_error_is_unavailable(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_response(method="POST", url=SUBMIT_URL, status_code=503)

        with pytest.raises(RemoteUnavailable) as exc_info:
            remote.submit(item)
        assert exc_info.value.status_code == 503

    def test_timeout(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with pytest.raises(RemoteUnavailable, match="Timed out"):
            remote.submit(item)

    def test_connection_error(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(RemoteUnavailable, match="Cannot reach"):
            remote.submit(item)

    def test_malformed_ack(
        self, remote: HTTPRemoteAuthority, item: SyncQueueItem, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_response(method="POST", url=SUBMIT_URL, json={"unexpected": True})

        with pytest.raises(RemoteUnavailable, match="Malformed"):
            remote.submit(item)


class TestQueries:
    """Tests for health_check() and list_requests()."""

    def test_health_ok(self, remote: HTTPRemoteAuthority, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{SERVER}/health", json={"status": "ok"})
        assert remote.health_check() is True

    def test_health_unreachable(self, remote: HTTPRemoteAuthority, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))
        assert remote.health_check() is False

    def test_list_requests(self, remote: HTTPRemoteAuthority, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{SERVER}/api/requests", json=[{"id": "r1"}])
        assert remote.list_requests() == [{"id": "r1"}]

    def test_list_requests_error(
        self, remote: HTTPRemoteAuthority, httpx_mock: HTTPXMock,
    ) -> None:
        httpx_mock.add_response(url=f"{SERVER}/api/requests", status_code=500)
        with pytest.raises(RemoteUnavailable):
            remote.list_requests()
