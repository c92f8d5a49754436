"""Rescue request commands for the rescuesync CLI.

Commands:
- request create: Record a new rescue request
- request list: List stored requests, newest first
- request accept / complete: Change request status
- request sms-sent: Flag a request as sent by SMS
- task assign: Assign the configured volunteer to a request
- task list: List volunteer tasks
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

import click

from rescuesync.client.cli.config import get_current_user
from rescuesync.client.cli.runtime import ClientRuntime, open_runtime
from rescuesync.client.service import RequestNotFound
from rescuesync.client.store import StorageFailure
from rescuesync.core.types import Location, Urgency

if TYPE_CHECKING:
    from rescuesync.client.store import RecordStore
    from rescuesync.core.types import RescueRequest, User

offline_option = click.option(
    "--offline",
    is_flag=True,
    help="Do not contact the server; the change stays queued.",
)


def resolve_request_id(store: RecordStore, prefix: str) -> str:
    """Resolve a full request id from an unambiguous prefix.

    Raises:
        RequestNotFound: If no request matches.
        click.UsageError: If several requests match.
    """
    if store.get(prefix) is not None:
        return prefix
    matches = [r.id for r in store.get_all() if r.id.startswith(prefix)]
    if not matches:
        raise RequestNotFound(prefix)
    if len(matches) > 1:
        raise click.UsageError(f"Ambiguous request id '{prefix}' ({len(matches)} matches)")
    return matches[0]


def format_request(request: RescueRequest) -> str:
    """One-line summary of a request."""
    created = datetime.fromtimestamp(request.created_at).strftime("%Y-%m-%d %H:%M")
    sync_flag = "synced" if request.synced else "pending sync"
    return (
        f"{request.id[:12]}  {created}  {request.status.value:<11}  "
        f"{request.urgency.value:<8}  {request.type:<10}  {request.people_count}ppl  "
        f"[{sync_flag}]  {request.message[:40]}"
    )


def _require_user() -> User:
    user = get_current_user()
    if user is None:
        click.echo("Error: No user configured. Run 'rescuesync configure' first.", err=True)
        sys.exit(1)
    return user


def _run_mutation(offline: bool, mutate: Callable[[ClientRuntime], Any]) -> None:
    """Open the runtime, apply a mutation and push it if online."""
    try:
        with open_runtime(offline=offline) as runtime:
            mutate(runtime)
            if runtime.online:
                result = runtime.drain()
                if result is not None and not result.ok:
                    click.echo(f"Sync deferred: {result.error}")
            else:
                click.echo(f"Offline: change queued ({len(runtime.outbox)} pending).")
    except RequestNotFound as e:
        click.echo(f"Error: Request not found: {e.args[0]}", err=True)
        sys.exit(1)
    except (StorageFailure, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
def request() -> None:
    """Create and update rescue requests."""


@request.command("create")
@click.argument("message")
@click.option("--people", "-p", type=int, default=1, show_default=True,
              help="Number of people needing help.")
@click.option("--urgency", "-u", type=click.Choice([u.value for u in Urgency]),
              default=Urgency.MEDIUM.value, show_default=True)
@click.option("--lat", type=float, default=None, help="Latitude.")
@click.option("--lng", type=float, default=None, help="Longitude.")
@click.option("--address", default=None, help="Human-readable location.")
@offline_option
def create_cmd(
    message: str,
    people: int,
    urgency: str,
    lat: float | None,
    lng: float | None,
    address: str | None,
    offline: bool,
) -> None:
    """Record a new rescue request.

    The request is saved locally first and synchronized when the server is
    reachable.
    """
    user = _require_user()
    location = None
    if lat is not None and lng is not None:
        location = Location(lat=lat, lng=lng, address=address or "GPS Coordinates")

    def mutate(runtime: ClientRuntime) -> None:
        created = runtime.service.create_request(
            user,
            message,
            people_count=people,
            urgency=Urgency(urgency),
            location=location,
        )
        click.echo(f"Created request {created.id} ({created.type}, {created.urgency.value})")

    _run_mutation(offline, mutate)


@request.command("list")
@click.option("--status", "status_filter", default=None, help="Only show this status.")
def list_cmd(status_filter: str | None) -> None:
    """List stored requests, newest first."""
    with open_runtime(offline=True) as runtime:
        requests = runtime.service.list_requests()
    if status_filter:
        requests = [r for r in requests if r.status.value == status_filter]
    if not requests:
        click.echo("No requests.")
        return
    for item in requests:
        click.echo(format_request(item))


@request.command("accept")
@click.argument("request_id")
@offline_option
def accept_cmd(request_id: str, offline: bool) -> None:
    """Accept a request (status becomes in-progress)."""

    def mutate(runtime: ClientRuntime) -> None:
        full_id = resolve_request_id(runtime.store, request_id)
        runtime.service.accept_request(full_id)
        click.echo(f"Request {full_id} is in progress")

    _run_mutation(offline, mutate)


@request.command("complete")
@click.argument("request_id")
@offline_option
def complete_cmd(request_id: str, offline: bool) -> None:
    """Mark a request completed."""

    def mutate(runtime: ClientRuntime) -> None:
        full_id = resolve_request_id(runtime.store, request_id)
        runtime.service.complete_request(full_id)
        click.echo(f"Request {full_id} completed")

    _run_mutation(offline, mutate)


@request.command("sms-sent")
@click.argument("request_id")
def sms_sent_cmd(request_id: str) -> None:
    """Flag a request as reported by SMS (local only)."""
    try:
        with open_runtime(offline=True) as runtime:
            full_id = resolve_request_id(runtime.store, request_id)
            runtime.service.mark_sms_sent(full_id)
    except RequestNotFound as e:
        click.echo(f"Error: Request not found: {e.args[0]}", err=True)
        sys.exit(1)
    click.echo(f"Request {full_id} marked as sent by SMS")


@click.group()
def task() -> None:
    """Volunteer task assignment."""


@task.command("assign")
@click.argument("request_id")
@click.option("--notes", default=None, help="Notes for the assignment.")
@offline_option
def assign_cmd(request_id: str, notes: str | None, offline: bool) -> None:
    """Assign the configured volunteer to a request."""
    volunteer = _require_user()

    def mutate(runtime: ClientRuntime) -> None:
        full_id = resolve_request_id(runtime.store, request_id)
        created = runtime.service.assign_task(full_id, volunteer, notes=notes)
        click.echo(f"Task {created.id} assigned to {volunteer.name}")

    _run_mutation(offline, mutate)


@task.command("list")
def task_list_cmd() -> None:
    """List volunteer tasks."""
    with open_runtime(offline=True) as runtime:
        tasks = runtime.store.list_tasks()
    if not tasks:
        click.echo("No tasks.")
        return
    for item in tasks:
        assigned = datetime.fromtimestamp(item.assigned_at).strftime("%Y-%m-%d %H:%M")
        click.echo(
            f"{item.id[:12]}  request={item.request_id[:12]}  "
            f"volunteer={item.volunteer_id}  {assigned}  {item.notes or ''}".rstrip()
        )
