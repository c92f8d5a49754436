"""Tests for the server database."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from rescuesync.server.database import Database, ItemRejectedError, UnknownRequestError


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    database = Database(tmp_path / "server.db")
    yield database
    database.close()


def request_payload(request_id: str = "req-1", **overrides: Any) -> dict[str, Any]:
    payload = {
        "id": request_id,
        "user_id": "u1",
        "user_name": "Asha",
        "user_phone": "555-0100",
        "type": "General",
        "message": "Help",
        "urgency": "medium",
        "people_count": 1,
        "location": {"lat": 0.0, "lng": 0.0, "address": "Manual Entry"},
        "status": "pending",
        "created_at": 100.0,
    }
    payload.update(overrides)
    return payload


class TestApplyItem:
    """Tests for idempotent item application."""

    def test_create(self, db: Database) -> None:
        applied, duplicate = db.apply_item("i1", "CREATE_REQUEST", request_payload(), 1.0)

        assert duplicate is False
        assert applied.request_id == "req-1"
        assert applied.status == "pending"
        assert db.get_applied_item("i1") is not None

    def test_duplicate_not_reapplied(self, db: Database) -> None:
        """A replayed item must not undo later changes."""
        db.apply_item("i1", "CREATE_REQUEST", request_payload(), 1.0)
        db.apply_item("i2", "UPDATE_STATUS", {"id": "req-1", "status": "completed"}, 2.0)

        applied, duplicate = db.apply_item("i1", "CREATE_REQUEST", request_payload(), 1.0)

        assert duplicate is True
        assert applied.status == "pending"
        record = db.get_request("req-1")
        assert record is not None
        assert record.status == "completed"

    def test_create_twice_with_new_item_overwrites(self, db: Database) -> None:
        db.apply_item("i1", "CREATE_REQUEST", request_payload(message="First"), 1.0)
        db.apply_item("i2", "CREATE_REQUEST", request_payload(message="Second"), 2.0)

        record = db.get_request("req-1")
        assert record is not None
        assert record.message == "Second"
        assert len(db.list_requests()) == 1

    def test_update_unknown_request(self, db: Database) -> None:
        with pytest.raises(UnknownRequestError):
            db.apply_item("i1", "UPDATE_STATUS", {"id": "ghost", "status": "completed"}, 1.0)
        assert db.get_applied_item("i1") is None

    def test_unsupported_action(self, db: Database) -> None:
        with pytest.raises(ItemRejectedError, match="Unsupported"):
            db.apply_item("i1", "DELETE_REQUEST", {}, 1.0)

    def test_assign_task(self, db: Database) -> None:
        db.apply_item("i1", "CREATE_REQUEST", request_payload(), 1.0)
        task = {"id": "t1", "request_id": "req-1", "volunteer_id": "v1", "assigned_at": 3.0}

        applied, _ = db.apply_item(
            "i2", "ASSIGN_TASK", {"task": task, "request_id": "req-1", "status": "assigned"}, 2.0,
        )

        assert applied.status == "assigned"
        assert [t.volunteer_id for t in db.list_tasks("req-1")] == ["v1"]


class TestRequestQueries:
    """Tests for request listing."""

    def test_list_filter_and_order(self, db: Database) -> None:
        db.apply_item("i1", "CREATE_REQUEST", request_payload("a", created_at=1.0), 1.0)
        db.apply_item("i2", "CREATE_REQUEST", request_payload("b", created_at=2.0), 1.0)
        db.apply_item("i3", "UPDATE_STATUS", {"id": "a", "status": "in-progress"}, 1.0)

        assert [r.id for r in db.list_requests()] == ["b", "a"]
        assert [r.id for r in db.list_requests(status="in-progress")] == ["a"]

    def test_get_missing(self, db: Database) -> None:
        assert db.get_request("missing") is None
