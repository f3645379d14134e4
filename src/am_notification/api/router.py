"""am_notification REST endpoints.

GET  /notifications                 — inbox, newest first
GET  /notifications/unread-count    — badge count
POST /notifications/{id}/read       — mark one read (owner only)
POST /notifications/read-all        — mark all read
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.database import get_db_session
from src.am_common.response import ApiResponse, success_response
from src.am_gateway.auth.dependencies import get_current_user
from src.am_gateway.user.db_models import ProfileModel
from src.am_notification.application.service import NotificationApplicationService

router = APIRouter(prefix="/notifications", tags=["notifications"])

_service = NotificationApplicationService()


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("")
async def list_notifications(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    unread_only: bool = Query(False),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    data = await _service.list_notifications(
        db, str(current_user.id), unread_only, cursor, limit
    )
    return success_response(data.model_dump(), _request_id(request))


@router.get("/unread-count")
async def unread_count(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.unread_count(db, str(current_user.id))
    return success_response(data.model_dump(), _request_id(request))


@router.post("/read-all")
async def mark_all_read(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.mark_all_read(db, str(current_user.id))
    return success_response(data.model_dump(), _request_id(request))


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.mark_read(db, notification_id, str(current_user.id))
    return success_response(data.model_dump(), _request_id(request))
