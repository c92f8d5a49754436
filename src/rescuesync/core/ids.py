"""Identifier generation.

Identifiers are 32 lowercase hex characters: a 48-bit millisecond timestamp
followed by 80 random bits. They sort by creation time and are safe to
generate offline on many devices at once.
"""

from __future__ import annotations

import secrets
import time


def generate_id(now: float | None = None) -> str:
    """Generate a time-ordered random identifier.

    Args:
        now: Optional timestamp in seconds (defaults to the current time).

    Returns:
        A 32-character hex string.
    """
    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis & 0xFFFFFFFFFFFF:012x}{secrets.token_hex(10)}"


def id_timestamp(identifier: str) -> float:
    """Extract the creation time (seconds) embedded in an identifier."""
    return int(identifier[:12], 16) / 1000
