"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Request

from rescuesync.server.database import Database


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db
