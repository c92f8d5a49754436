"""Wiring of the sync client for CLI commands.

Each command opens a ClientRuntime: the record store, the outbox, the
connectivity signal and, when a server is configured, the remote authority
and the sync engine. Connectivity is probed once with a health check; going
online triggers the engine's automatic drain.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from rescuesync.client.api import HTTPRemoteAuthority
from rescuesync.client.classifier import HTTPClassifier
from rescuesync.client.cli.config import get_state_db_path, load_config
from rescuesync.client.connectivity import ConnectivitySignal
from rescuesync.client.engine import DrainResult, SyncEngine
from rescuesync.client.outbox import OutboxQueue
from rescuesync.client.service import RescueService
from rescuesync.client.store import RecordStore
from rescuesync.core.config import ClassifierConfig, RemoteConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class ClientRuntime:
    """Open client components for the duration of one command."""

    store: RecordStore
    outbox: OutboxQueue
    connectivity: ConnectivitySignal
    service: RescueService
    remote: HTTPRemoteAuthority | None = None
    engine: SyncEngine | None = None
    classifier: HTTPClassifier | None = None

    @property
    def online(self) -> bool:
        return self.connectivity.is_online

    def drain(self) -> DrainResult | None:
        """Run a drain pass if a server is configured."""
        if self.engine is None:
            return None
        return self.engine.drain()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.stop()
        if self.remote is not None:
            self.remote.close()
        if self.classifier is not None:
            self.classifier.close()
        self.outbox.close()
        self.store.close()


@contextmanager
def open_runtime(offline: bool = False) -> Iterator[ClientRuntime]:
    """Open the client runtime from the saved configuration.

    Args:
        offline: Skip the connectivity probe and stay offline.

    Yields:
        The opened runtime; it is closed on exit.
    """
    config = load_config()
    db_path = get_state_db_path()
    timeout = float(config.get("timeout", DEFAULT_TIMEOUT))

    store = RecordStore(db_path)
    outbox = OutboxQueue(db_path)
    connectivity = ConnectivitySignal(online=False)

    remote = None
    engine = None
    if config.get("server_url"):
        remote = HTTPRemoteAuthority(RemoteConfig(server_url=config["server_url"], timeout=timeout))
        engine = SyncEngine(store, outbox, remote, connectivity)

    classifier = None
    if config.get("classifier_url"):
        classifier = HTTPClassifier(ClassifierConfig(endpoint_url=config["classifier_url"]))

    runtime = ClientRuntime(
        store=store,
        outbox=outbox,
        connectivity=connectivity,
        service=RescueService(store, outbox, connectivity, classifier),
        remote=remote,
        engine=engine,
        classifier=classifier,
    )
    try:
        if remote is not None and not offline:
            # Going online triggers the engine's automatic drain
            connectivity.set_online(remote.health_check())
        yield runtime
    finally:
        runtime.close()
