"""Sync item submission API route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from rescuesync.server.api.deps import get_db
from rescuesync.server.database import Database, ItemRejectedError
from rescuesync.server.schemas import (
    PAYLOAD_MODELS,
    AckResponse,
    SyncItemRequest,
    ack_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post("/items", response_model=AckResponse)
def submit_item(
    item: SyncItemRequest,
    db: Database = Depends(get_db),
) -> AckResponse:
    """Apply one sync item.

    Replaying an item id that was already applied returns the original
    acknowledgement with ``duplicate`` set.
    """
    applied = db.get_applied_item(item.id)
    if applied is not None:
        return ack_to_response(applied, duplicate=True)

    try:
        payload = PAYLOAD_MODELS[item.action].model_validate(item.payload)
    except ValidationError as e:
        logger.warning("Rejected %s %s: invalid payload", item.action, item.id)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid {item.action} payload: {e.error_count()} error(s)",
        ) from e

    try:
        applied, duplicate = db.apply_item(
            item_id=item.id,
            action=item.action,
            payload=payload.model_dump(),
            enqueued_at=item.timestamp,
        )
    except ItemRejectedError as e:
        logger.warning("Rejected %s %s: %s", item.action, item.id, e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e

    return ack_to_response(applied, duplicate=duplicate)
