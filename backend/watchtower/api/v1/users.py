"""
users.py — Cross-App User API Endpoints

Purpose:
- GET  /users          → aggregated, normalized users across every registered app
- GET  /users/summary  → status counts over the aggregated list
- POST /users/update   → write one normalized edit back into its app's schema

Role in System:
- Thin layer: request → services/users/* → JSON response.
- Translates service exceptions into HTTP status codes:
    400 bad input / nothing to update, 404 unknown app, 500 downstream failure.

Data Flow:
Dashboard → FastAPI Router → (this file) → aggregator / write_back → Supabase projects
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from watchtower.core.logging import get_logger
from watchtower.models.user import NormalizedUser
from watchtower.services.clients.project_rest_client import (
    ProjectClientError,
    ProjectRestClient,
    get_project_rest_client,
)
from watchtower.services.db_client import SupabaseDBClient, get_db_client
from watchtower.services.registry import AppNotFoundError, ProjectRegistry, RegistryUnavailableError
from watchtower.services.users.aggregator import UserAggregator, filter_users, summarize_users
from watchtower.services.users.write_back import NoValidFieldsError, UserWriteBack, WriteBackError, changed_fields

logger = get_logger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"]
)

AGGREGATION_INFO_HEADER = "X-Aggregation-Info"

# -----------------------------------------------------------------------------
# Schemas
# -----------------------------------------------------------------------------

class NormalizedUserOut(BaseModel):
    """One user from one app, in the common shape."""
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    status: str
    app: str
    created_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None


class UserSummaryOut(BaseModel):
    total: int
    active: int
    inactive: int
    suspended: int
    by_app: Dict[str, int]


class UserFieldsIn(BaseModel):
    """Normalized edit fields; omitted or empty fields are left untouched."""
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None


class UserUpdateRequest(BaseModel):
    userId: Optional[str] = None
    app: Optional[str] = None
    fields: Optional[UserFieldsIn] = None
    # Row as the dashboard last saw it; when sent, unchanged fields are not written
    original: Optional[NormalizedUserOut] = None

    class Config:
        json_schema_extra = {
            "example": {
                "userId": "6f1c2a0e-1d1b-4a53-9c7e-2b1f0c9d8e11",
                "app": "BuybidHQ",
                "fields": {"firstName": "Jane", "lastName": "Doe", "status": "active"},
            }
        }


class UserUpdateResponse(BaseModel):
    success: bool
    updated: Dict[str, Any]


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------

def get_aggregator(
    db: SupabaseDBClient = Depends(get_db_client),
    rest: ProjectRestClient = Depends(get_project_rest_client),
) -> UserAggregator:
    return UserAggregator(ProjectRegistry(db), db, rest)


def get_write_back(
    db: SupabaseDBClient = Depends(get_db_client),
    rest: ProjectRestClient = Depends(get_project_rest_client),
) -> UserWriteBack:
    return UserWriteBack(ProjectRegistry(db), db, rest)


def _aggregate(aggregator: UserAggregator):
    try:
        return aggregator.aggregate()
    except RegistryUnavailableError as e:
        logger.error(f"User aggregation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------

@router.get("", response_model=List[NormalizedUserOut])
def list_users(
    response: Response,
    search: Optional[str] = Query(None, description="Substring of name or email"),
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    app: Optional[str] = Query(None),
    aggregator: UserAggregator = Depends(get_aggregator),
):
    """
    GET /users

    Fans out to every registered project and returns the merged list,
    newest first. Unreachable projects are skipped (see the
    X-Aggregation-Info header), only a registry failure is an error.
    """
    result = _aggregate(aggregator)
    response.headers[AGGREGATION_INFO_HEADER] = result.info_header
    users = filter_users(result.users, search=search, role=role, status=status, app=app)
    return [user.to_dict() for user in users]


@router.get("/summary", response_model=UserSummaryOut)
def users_summary(
    response: Response,
    aggregator: UserAggregator = Depends(get_aggregator),
):
    """GET /users/summary — totals by status and by app."""
    result = _aggregate(aggregator)
    response.headers[AGGREGATION_INFO_HEADER] = result.info_header
    return summarize_users(result.users)


@router.post("/update", response_model=UserUpdateResponse)
def update_user(
    body: UserUpdateRequest,
    write_back: UserWriteBack = Depends(get_write_back),
):
    """
    POST /users/update

    Body: {userId, app, fields: {firstName?, lastName?, email?, phone?, role?, status?}, original?}

    With `original`, fields equal to its current values are dropped first,
    so an edit that changes nothing is a 400.
    """
    user_id = (body.userId or "").strip()
    app_name = (body.app or "").strip()
    if not user_id or not app_name or body.fields is None:
        raise HTTPException(status_code=400, detail="Missing userId, app, or fields")

    fields = body.fields.model_dump(exclude_none=True)
    if body.original is not None:
        fields = changed_fields(NormalizedUser(**body.original.model_dump()), fields)

    try:
        updated = write_back.update_user(user_id, app_name, fields)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoValidFieldsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (ProjectClientError, WriteBackError, RegistryUnavailableError) as e:
        logger.error(f"update-user error for {app_name}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return UserUpdateResponse(success=True, updated=updated)
