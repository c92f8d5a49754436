"""Offline-first sync client.

Architecture:
    RescueService → RecordStore + OutboxQueue → SyncEngine → RemoteAuthority

Components:
- **RecordStore**: Durable SQLite store for requests and tasks
- **OutboxQueue**: Durable FIFO of mutation intents
- **SyncEngine**: Single-flight drain passes, triggered by connectivity
- **ConnectivitySignal**: External online/offline observable
- **RescueService**: Domain mutations (create, accept, complete, assign)
"""

from rescuesync.client.api import (
    Ack,
    HTTPRemoteAuthority,
    RemoteAuthority,
    RemoteError,
    RemoteRejected,
    RemoteUnavailable,
)
from rescuesync.client.classifier import (
    Classification,
    ClassificationUnavailable,
    HTTPClassifier,
    apply_classification,
    classify,
)
from rescuesync.client.connectivity import ConnectivitySignal
from rescuesync.client.engine import DrainOutcome, DrainResult, EngineState, SyncEngine
from rescuesync.client.outbox import OutboxQueue
from rescuesync.client.service import RequestNotFound, RequestSummary, RescueService
from rescuesync.client.store import RecordStore, StorageFailure

__all__ = [
    # Remote
    "Ack",
    "HTTPRemoteAuthority",
    "RemoteAuthority",
    "RemoteError",
    "RemoteRejected",
    "RemoteUnavailable",
    # Classification
    "Classification",
    "ClassificationUnavailable",
    "HTTPClassifier",
    "apply_classification",
    "classify",
    # Sync
    "ConnectivitySignal",
    "DrainOutcome",
    "DrainResult",
    "EngineState",
    "OutboxQueue",
    "SyncEngine",
    # Domain
    "RecordStore",
    "RequestNotFound",
    "RequestSummary",
    "RescueService",
    "StorageFailure",
]
