"""
activity.py — Activity Logging Endpoint

Purpose:
- POST /activity → registered apps report events (sign-ups, logins, usage)
  into the shared activity table.
"""

from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict

from watchtower.core.logging import get_logger
from watchtower.services.activity import ActivityEvent, ActivityValidationError, record_activity
from watchtower.services.db_client import SupabaseDBClient, get_db_client

logger = get_logger(__name__)

router = APIRouter(
    prefix="/activity",
    tags=["activity"]
)


@router.post("")
def log_activity(
    payload: Dict[str, Any] = Body(...),
    db: SupabaseDBClient = Depends(get_db_client),
):
    """
    POST /activity

    Body: {app_slug, event_type, user_email?, user_id?, metadata?}
    """
    try:
        event = ActivityEvent.from_payload(payload)
    except ActivityValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        record_activity(db, event)
    except RuntimeError as e:
        logger.error(f"Error recording activity for {event.app_slug}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"ok": True}
