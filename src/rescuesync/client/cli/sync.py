"""Sync commands for the rescuesync CLI.

Commands:
- sync: Drain the outbox against the server
- queue: Show pending sync items
- status: Show connectivity, queue depth and request counts
"""

from __future__ import annotations

import sys
import time
from datetime import datetime

import click

from rescuesync.client.cli.config import load_config
from rescuesync.client.cli.runtime import open_runtime
from rescuesync.client.engine import DrainOutcome


def _format_time(timestamp: float | None) -> str:
    if timestamp is None:
        return "never"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep draining periodically.")
@click.option("--interval", "-i", type=float, default=30.0, show_default=True,
              help="Seconds between drains with --watch.")
def sync(watch: bool, interval: float) -> None:
    """Submit pending changes to the server.

    Items are submitted oldest first; the pass stops at the first failure
    and the remaining items stay queued for the next attempt.
    """
    with open_runtime(offline=True) as runtime:
        engine, remote = runtime.engine, runtime.remote
        if engine is None or remote is None:
            click.echo("Error: No server configured. Run 'rescuesync configure --server URL'.", err=True)
            sys.exit(1)

        if not remote.health_check():
            click.echo(f"Server unreachable: {len(runtime.outbox)} items remain queued.")
            sys.exit(1)

        # Going online triggers the drain
        runtime.connectivity.set_online(True)

        if watch:
            engine.start(interval)
            click.echo(f"Watching (every {interval:.0f}s). Press Ctrl+C to stop.")
            try:
                while True:
                    time.sleep(interval)
                    runtime.connectivity.set_online(remote.health_check())
            except KeyboardInterrupt:
                click.echo("Stopped.")
            return

        result = engine.last_result
        if result is None:
            click.echo("Nothing to sync.")
            return
        if result.outcome == DrainOutcome.FAILED:
            click.echo(f"Sync failed: {result.error} ({result.remaining} items pending)", err=True)
            sys.exit(1)
        click.echo(
            f"Sync complete: {len(result.submitted)} items submitted, "
            f"{result.remaining} pending."
        )


@click.command()
def queue() -> None:
    """Show pending sync items, oldest first."""
    with open_runtime(offline=True) as runtime:
        items = runtime.outbox.snapshot()
    if not items:
        click.echo("Outbox is empty.")
        return
    for item in items:
        click.echo(
            f"{item.id[:12]}  {_format_time(item.timestamp)}  "
            f"{item.action.value:<14}  request={(item.request_id or '-')[:12]}"
        )
    click.echo(f"{len(items)} pending")


@click.command()
@click.option("--offline", is_flag=True, help="Do not probe the server.")
def status(offline: bool) -> None:
    """Show connectivity, queue depth and request counts."""
    config = load_config()
    with open_runtime(offline=offline) as runtime:
        summary = runtime.service.summary()
        pending = len(runtime.outbox)
        last_sync = runtime.store.get_last_sync_at()
        online = runtime.online

    click.echo(f"Server:     {config.get('server_url', 'not configured')}")
    click.echo(f"Connection: {'online' if online else 'offline'}")
    click.echo(f"Last sync:  {_format_time(last_sync)}")
    click.echo(f"Outbox:     {pending} pending")
    click.echo(
        f"Requests:   {summary.total} total, {summary.pending} pending, "
        f"{summary.in_progress} in progress, {summary.completed} completed, "
        f"{summary.unsynced} unsynced"
    )
