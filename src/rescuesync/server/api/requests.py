"""Rescue request query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from rescuesync.server.api.deps import get_db
from rescuesync.server.database import Database
from rescuesync.server.schemas import RescueRequestResponse, request_to_response

router = APIRouter(prefix="/api", tags=["requests"])


@router.get("/requests", response_model=list[RescueRequestResponse])
def list_requests(
    db: Database = Depends(get_db),
    status_filter: str | None = None,
) -> list[RescueRequestResponse]:
    """List all requests, newest first."""
    return [request_to_response(r) for r in db.list_requests(status=status_filter)]


@router.get("/requests/{request_id}", response_model=RescueRequestResponse)
def get_request(
    request_id: str,
    db: Database = Depends(get_db),
) -> RescueRequestResponse:
    """Get a request by id."""
    record = db.get_request(request_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Request not found: {request_id}",
        )
    return request_to_response(record)
