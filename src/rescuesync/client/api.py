"""Remote authority client for rescuesync.

This module provides:
- RemoteAuthority: Protocol implemented by anything that accepts sync items
- Ack: Acknowledgement returned for an accepted item
- RemoteUnavailable, RemoteRejected: Submission failures
- HTTPRemoteAuthority: httpx-based implementation talking to the
  rescuesync server

A submission has exactly three outcomes: an Ack is returned, or one of the
two RemoteError subclasses is raised. Only an Ack allows the item to leave
the outbox.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from rescuesync.core.types import RequestStatus

if TYPE_CHECKING:
    from rescuesync.core.config import RemoteConfig
    from rescuesync.core.types import SyncQueueItem

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Base exception for remote submission errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteUnavailable(RemoteError):
    """The remote authority could not be reached (network, timeout, 5xx)."""


class RemoteRejected(RemoteError):
    """The remote authority explicitly refused the item."""


@dataclass(frozen=True)
class Ack:
    """Acknowledgement of an accepted sync item.

    Attributes:
        item_id: Id of the acknowledged SyncQueueItem.
        request_id: Rescue request the item applied to, if any.
        status: Authoritative request status after applying the item.
        accepted_at: Server time of first acceptance (seconds since epoch).
        duplicate: True if the item had already been applied before.
    """

    item_id: str
    request_id: str | None = None
    status: RequestStatus | None = None
    accepted_at: float | None = None
    duplicate: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ack:
        """Create from API response dictionary."""
        status = data.get("status")
        return cls(
            item_id=data["item_id"],
            request_id=data.get("request_id"),
            status=RequestStatus(status) if status else None,
            accepted_at=data.get("accepted_at"),
            duplicate=bool(data.get("duplicate", False)),
        )


class RemoteAuthority(Protocol):
    """Anything that can accept sync items.

    Implementations must tolerate receiving the same item more than once.
    """

    def submit(self, item: SyncQueueItem) -> Ack:
        """Submit one item.

        Returns:
            Ack when the item was accepted.

        Raises:
            RemoteUnavailable: Transient failure; retry later.
            RemoteRejected: The item was refused.
        """
        ...


# Status codes meaning "the server understood and refused the item"
REJECTION_STATUS_CODES = frozenset({400, 404, 409, 422})


class HTTPRemoteAuthority:
    """HTTP client for the rescuesync server API."""

    def __init__(
        self,
        config: RemoteConfig,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server URL, timeout and SSL settings.
            client: Optional preconfigured httpx client whose base URL is
                the server (e.g. a FastAPI TestClient).
        """
        self._config = config
        self._client = client or httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPRemoteAuthority:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @staticmethod
    def _detail(response: httpx.Response) -> str:
        try:
            detail = response.json().get("detail", response.reason_phrase)
        except (ValueError, AttributeError):
            detail = response.reason_phrase
        return str(detail)

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is reachable and healthy.

        Returns:
            True if server is healthy.
        """
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    # === Submission ===

    def submit(self, item: SyncQueueItem) -> Ack:
        """Submit one sync item to the server.

        Args:
            item: Item to submit.

        Returns:
            Ack parsed from the server response.

        Raises:
            RemoteUnavailable: On connection errors, timeouts and
                non-rejection error statuses.
            RemoteRejected: On 400/404/409/422 responses.
        """
        started = time.monotonic()
        try:
            response = self._client.post("/api/sync/items", json=item.to_dict())
        except httpx.TimeoutException as e:
            raise RemoteUnavailable(
                f"Timed out after {self._config.timeout}s submitting {item.id}"
            ) from e
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"Cannot reach {self._config.server_url}: {e}") from e

        if response.status_code in REJECTION_STATUS_CODES:
            raise RemoteRejected(self._detail(response), response.status_code)
        if response.status_code >= 400:
            raise RemoteUnavailable(self._detail(response), response.status_code)

        try:
            ack = Ack.from_dict(response.json())
        except (ValueError, KeyError) as e:
            raise RemoteUnavailable(f"Malformed acknowledgement for {item.id}: {e}") from e

        logger.debug(
            "Submitted %r in %.0fms (duplicate=%s)",
            item,
            (time.monotonic() - started) * 1000,
            ack.duplicate,
        )
        return ack

    # === Read-only queries ===

    def list_requests(self) -> list[dict[str, Any]]:
        """List requests known to the server.

        Raises:
            RemoteUnavailable: If the server cannot be reached.
        """
        try:
            response = self._client.get("/api/requests")
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"Cannot reach {self._config.server_url}: {e}") from e
        if response.status_code >= 400:
            raise RemoteUnavailable(self._detail(response), response.status_code)
        return list(response.json())
