"""Shared domain types for rescuesync.

This module defines the records exchanged between the local store, the
outbox queue, the sync engine and the remote authority:
- Urgency, RequestStatus, UserRole, SyncAction: Enumerations
- Location, RescueRequest, VolunteerTask, User: Domain records
- SyncQueueItem: A durable mutation intent
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Urgency(str, Enum):
    """Urgency level of a rescue request, ordered low < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position of this level in the urgency ordering (0 = lowest)."""
        return _URGENCY_ORDER.index(self)


_URGENCY_ORDER = (Urgency.LOW, Urgency.MEDIUM, Urgency.HIGH, Urgency.CRITICAL)


class RequestStatus(str, Enum):
    """Lifecycle status of a rescue request."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class UserRole(str, Enum):
    """Role of the user driving a mutation."""

    CITIZEN = "citizen"
    VOLUNTEER = "volunteer"
    ADMIN = "admin"


class SyncAction(str, Enum):
    """Closed set of mutation intents carried by the outbox."""

    CREATE_REQUEST = "CREATE_REQUEST"
    UPDATE_STATUS = "UPDATE_STATUS"
    ASSIGN_TASK = "ASSIGN_TASK"


# Category used when no classification is available
DEFAULT_CATEGORY = "General"


@dataclass(frozen=True)
class Location:
    """Geolocation attached to a request."""

    lat: float
    lng: float
    address: str | None = None

    @classmethod
    def manual(cls) -> Location:
        """Placeholder used when no GPS fix is available."""
        return cls(lat=0.0, lng=0.0, address="Manual Entry")

    @property
    def has_fix(self) -> bool:
        """True unless this is the 0,0 placeholder."""
        return not (self.lat == 0 and self.lng == 0)

    def to_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng, "address": self.address}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Location:
        return cls(
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            address=data.get("address"),
        )


@dataclass(frozen=True)
class User:
    """Authenticated user as produced by the login flow."""

    id: str
    name: str
    phone: str
    role: UserRole


@dataclass(frozen=True)
class RescueRequest:
    """A rescue request, the primary synchronized record.

    Attributes:
        id: Opaque identifier, immutable once created.
        user_id: Identifier of the requester.
        user_name: Display name of the requester.
        user_phone: Contact phone of the requester.
        type: Category (e.g. "Medical", "Flood").
        message: Free-text description.
        urgency: Urgency level.
        people_count: Number of people needing help (>= 1).
        location: Where help is needed.
        status: Lifecycle status.
        created_at: Creation timestamp (seconds since epoch).
        synced: True once the remote authority has accepted the record.
        sms_sent: True once an SMS fallback was sent for this request.
    """

    id: str
    user_id: str
    user_name: str
    user_phone: str
    type: str
    message: str
    urgency: Urgency
    people_count: int
    location: Location
    status: RequestStatus = RequestStatus.PENDING
    created_at: float = field(default_factory=time.time)
    synced: bool = False
    sms_sent: bool = False

    def with_changes(self, **changes: Any) -> RescueRequest:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_phone": self.user_phone,
            "type": self.type,
            "message": self.message,
            "urgency": self.urgency.value,
            "people_count": self.people_count,
            "location": self.location.to_dict(),
            "status": self.status.value,
            "created_at": self.created_at,
            "synced": self.synced,
            "sms_sent": self.sms_sent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RescueRequest:
        """Create from a dictionary produced by to_dict()."""
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            user_name=data["user_name"],
            user_phone=data["user_phone"],
            type=data["type"],
            message=data["message"],
            urgency=Urgency(data["urgency"]),
            people_count=int(data["people_count"]),
            location=Location.from_dict(data["location"]),
            status=RequestStatus(data["status"]),
            created_at=float(data["created_at"]),
            synced=bool(data.get("synced", False)),
            sms_sent=bool(data.get("sms_sent", False)),
        )


@dataclass(frozen=True)
class VolunteerTask:
    """Assignment of a volunteer to a rescue request."""

    id: str
    request_id: str
    volunteer_id: str
    assigned_at: float
    completed_at: float | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "volunteer_id": self.volunteer_id,
            "assigned_at": self.assigned_at,
            "completed_at": self.completed_at,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VolunteerTask:
        return cls(
            id=data["id"],
            request_id=data["request_id"],
            volunteer_id=data["volunteer_id"],
            assigned_at=float(data["assigned_at"]),
            completed_at=(
                float(data["completed_at"])
                if data.get("completed_at") is not None
                else None
            ),
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class SyncQueueItem:
    """A durable mutation intent waiting for remote acknowledgement.

    Attributes:
        id: Unique identifier of the item.
        action: What the item asks the remote authority to do.
        payload: JSON-compatible body; shape depends on the action.
        timestamp: Enqueue time (seconds since epoch).
    """

    id: str
    action: SyncAction
    payload: dict[str, Any]
    timestamp: float = field(default_factory=time.time)

    @property
    def request_id(self) -> str | None:
        """Identifier of the rescue request this item targets."""
        if self.action == SyncAction.ASSIGN_TASK:
            return self.payload.get("request_id")
        return self.payload.get("id")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.value,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"SyncQueueItem({self.action.name}, id={self.id!r}, request={self.request_id!r})"
