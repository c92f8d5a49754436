"""Server commands for the rescuesync CLI.

Commands:
- server run: Run the reference remote authority
"""

from __future__ import annotations

from pathlib import Path

import click


@click.group()
def server() -> None:
    """Remote authority server commands."""


@server.command("run")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", "-p", type=int, default=8000, show_default=True, help="Bind port.")
@click.option(
    "--db-path",
    type=click.Path(),
    default=None,
    help="Path to database file (default: RESCUESYNC_DB_PATH or ./rescuesync-server.db).",
)
def run_cmd(host: str, port: int, db_path: str | None) -> None:
    """Run the remote authority server."""
    import uvicorn

    from rescuesync.server.app import DB_PATH, LOG_PATH, create_app, setup_logging
    from rescuesync.server.database import Database

    setup_logging(LOG_PATH)
    database = Database(Path(db_path) if db_path else DB_PATH)
    try:
        uvicorn.run(create_app(database), host=host, port=port)
    finally:
        database.close()
