"""Shared configuration classes for rescuesync.

This module defines configuration classes for the remote collaborators of
the sync client: the remote authority and the classification service.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RemoteConfig:
    """Configuration for connecting to the remote authority.

    Attributes:
        server_url: Base URL of the server (e.g., "https://rescue.example.org").
        timeout: Per-submission timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    timeout: float = 10.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.server_url.startswith("https://")


@dataclass
class ClassifierConfig:
    """Configuration for the request classification service.

    Attributes:
        endpoint_url: Full URL accepting POSTed text.
        timeout: Request timeout in seconds. Classification runs before a
            request is saved, so this stays short.
    """

    endpoint_url: str
    timeout: float = 5.0
