"""Core module - Shared domain types, identifiers and configuration."""

from rescuesync.core.config import ClassifierConfig, RemoteConfig
from rescuesync.core.ids import generate_id, id_timestamp
from rescuesync.core.types import (
    DEFAULT_CATEGORY,
    Location,
    RequestStatus,
    RescueRequest,
    SyncAction,
    SyncQueueItem,
    Urgency,
    User,
    UserRole,
    VolunteerTask,
)

__all__ = [
    # Config
    "ClassifierConfig",
    "RemoteConfig",
    # Identifiers
    "generate_id",
    "id_timestamp",
    # Types
    "DEFAULT_CATEGORY",
    "Location",
    "RequestStatus",
    "RescueRequest",
    "SyncAction",
    "SyncQueueItem",
    "Urgency",
    "User",
    "UserRole",
    "VolunteerTask",
]
