"""Configuration utilities for the rescuesync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from rescuesync.core.types import User, UserRole

# Keys accepted in config.json
CONFIG_KEYS = (
    "server_url",
    "classifier_url",
    "timeout",
    "user_id",
    "user_name",
    "user_phone",
    "user_role",
)


def get_config_dir() -> Path:
    """Get the configuration directory for rescuesync.

    Returns:
        Path from RESCUESYNC_HOME, or ~/.rescuesync.
    """
    override = os.environ.get("RESCUESYNC_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".rescuesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the local store/outbox database."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_current_user(config: dict[str, str] | None = None) -> User | None:
    """Build the configured user.

    Returns:
        User if an id and name are configured, None otherwise.
    """
    config = load_config() if config is None else config
    if not config.get("user_id") or not config.get("user_name"):
        return None
    return User(
        id=config["user_id"],
        name=config["user_name"],
        phone=config.get("user_phone", ""),
        role=UserRole(config.get("user_role", UserRole.CITIZEN.value)),
    )
