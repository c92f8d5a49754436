"""FastAPI application for the rescuesync remote authority.

This module creates and configures the FastAPI application with:
- Sync item submission (idempotent by item id)
- Read-only request queries

Usage:
    uvicorn rescuesync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from rescuesync import __version__
from rescuesync.server.api.router import router as api_router
from rescuesync.server.database import Database

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("RESCUESYNC_DB_PATH", "rescuesync-server.db"))
LOG_PATH = Path(os.environ.get("RESCUESYNC_LOG_PATH", "rescuesync-server.log"))

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path | None = None) -> None:
    """Configure logging to output to stdout and, optionally, a file.

    Args:
        log_path: Path to the log file (None for stdout only).
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger("rescuesync")
    root_logger.setLevel(logging.INFO)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Also capture uvicorn logs to file
        for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(db: Database) -> FastAPI:
    """Create FastAPI application with a given database.

    Args:
        db: Database instance.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("RescueSync Server Starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", getattr(db, "_db_path", "in-memory"))
        logger.info("=" * 60)

        yield

        logger.info("RescueSync Server shutting down")

    application = FastAPI(
        title="RescueSync Server",
        description="Remote authority for offline-first rescue request sync",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(LOG_PATH)
    return create_app(db=Database(DB_PATH))
