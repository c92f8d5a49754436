"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from rescuesync.server.models import AppliedItem, RescueRequestRecord

StatusValue = Literal["pending", "assigned", "in-progress", "completed"]
UrgencyValue = Literal["low", "medium", "high", "critical"]

# === Sync item schemas ===


class SyncItemRequest(BaseModel):
    """A sync item as submitted by a client outbox."""

    id: str = Field(min_length=1)
    action: Literal["CREATE_REQUEST", "UPDATE_STATUS", "ASSIGN_TASK"]
    payload: dict[str, Any]
    timestamp: float


class LocationPayload(BaseModel):
    lat: float
    lng: float
    address: str | None = None


class CreateRequestPayload(BaseModel):
    """Payload of CREATE_REQUEST: a full rescue request."""

    id: str = Field(min_length=1)
    user_id: str
    user_name: str
    user_phone: str
    type: str
    message: str = Field(min_length=1)
    urgency: UrgencyValue
    people_count: int = Field(ge=1)
    location: LocationPayload
    status: StatusValue
    created_at: float


class UpdateStatusPayload(BaseModel):
    """Payload of UPDATE_STATUS."""

    id: str = Field(min_length=1)
    status: StatusValue


class TaskPayload(BaseModel):
    id: str = Field(min_length=1)
    request_id: str
    volunteer_id: str
    assigned_at: float
    completed_at: float | None = None
    notes: str | None = None


class AssignTaskPayload(BaseModel):
    """Payload of ASSIGN_TASK."""

    task: TaskPayload
    request_id: str = Field(min_length=1)
    status: StatusValue = "assigned"


PAYLOAD_MODELS: dict[str, type[BaseModel]] = {
    "CREATE_REQUEST": CreateRequestPayload,
    "UPDATE_STATUS": UpdateStatusPayload,
    "ASSIGN_TASK": AssignTaskPayload,
}


class AckResponse(BaseModel):
    """Acknowledgement of an applied sync item."""

    item_id: str
    request_id: str | None
    status: str | None
    accepted_at: float
    duplicate: bool = False


# === Request schemas ===


class RescueRequestResponse(BaseModel):
    """Rescue request in responses."""

    id: str
    user_id: str
    user_name: str
    type: str
    message: str
    urgency: str
    people_count: int
    location: LocationPayload
    status: str
    created_at: float
    updated_at: str


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def ack_to_response(applied: AppliedItem, duplicate: bool) -> AckResponse:
    """Convert AppliedItem to response model."""
    return AckResponse(
        item_id=applied.item_id,
        request_id=applied.request_id,
        status=applied.status,
        accepted_at=applied.accepted_at,
        duplicate=duplicate,
    )


def request_to_response(record: RescueRequestRecord) -> RescueRequestResponse:
    """Convert RescueRequestRecord to response model."""
    return RescueRequestResponse(
        id=record.id,
        user_id=record.user_id,
        user_name=record.user_name,
        type=record.type,
        message=record.message,
        urgency=record.urgency,
        people_count=record.people_count,
        location=LocationPayload(lat=record.lat, lng=record.lng, address=record.address),
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at.isoformat(),
    )
