"""Command-line interface for rescuesync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Set server, classifier and user settings
- request: Create, list and update rescue requests
- task: Assign volunteers to requests
- sync: Submit pending changes to the server
- queue: Show pending sync items
- status: Show connectivity and counts
- server: Run the reference remote authority
"""

from __future__ import annotations

import logging
import sys

import click

from rescuesync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_current_user,
    get_state_db_path,
    load_config,
    save_config,
)
from rescuesync.client.cli.configure import configure
from rescuesync.client.cli.requests import request, task
from rescuesync.client.cli.server import server
from rescuesync.client.cli.sync import queue, status, sync


@click.group()
@click.version_option(package_name="rescuesync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """RescueSync - Offline-first rescue request tracking."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


cli.add_command(configure)

# Domain commands
cli.add_command(request)
cli.add_command(task)

# Sync commands
cli.add_command(sync)
cli.add_command(queue)
cli.add_command(status)

# Server commands
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "get_current_user",
    "get_state_db_path",
    "load_config",
    "save_config",
]
