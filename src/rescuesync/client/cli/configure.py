"""Configure command for the rescuesync CLI.

Commands:
- configure: Set server, classifier and user settings
"""

from __future__ import annotations

import click

from rescuesync.client.cli.config import get_config_file, load_config, save_config
from rescuesync.core.types import UserRole


@click.command()
@click.option("--server", "server_url", default=None, help="Remote authority base URL.")
@click.option("--classifier", "classifier_url", default=None,
              help="Classification service URL (empty string disables it).")
@click.option("--timeout", type=float, default=None, help="Submission timeout in seconds.")
@click.option("--user-id", default=None, help="Identifier of the current user.")
@click.option("--name", "user_name", default=None, help="Display name of the current user.")
@click.option("--phone", "user_phone", default=None, help="Contact phone of the current user.")
@click.option("--role", "user_role", type=click.Choice([r.value for r in UserRole]),
              default=None, help="Role of the current user.")
def configure(
    server_url: str | None,
    classifier_url: str | None,
    timeout: float | None,
    user_id: str | None,
    user_name: str | None,
    user_phone: str | None,
    user_role: str | None,
) -> None:
    """Update the client configuration.

    Only the given options change; run without options to show the
    current configuration.
    """
    config = load_config()
    updates = {
        "server_url": server_url.rstrip("/") if server_url else server_url,
        "classifier_url": classifier_url,
        "timeout": str(timeout) if timeout is not None else None,
        "user_id": user_id,
        "user_name": user_name,
        "user_phone": user_phone,
        "user_role": user_role,
    }

    changed = False
    for key, value in updates.items():
        if value is None:
            continue
        if value == "":
            config.pop(key, None)
        else:
            config[key] = value
        changed = True

    if changed:
        save_config(config)
        click.echo(f"Configuration saved to {get_config_file()}")

    for key in sorted(config):
        click.echo(f"  {key}: {config[key]}")
