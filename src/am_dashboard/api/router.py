# src/am_dashboard/api/router.py
"""Dashboard REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.database import get_db_session
from src.am_common.datetime_utils import utc_now
from src.am_common.response import ApiResponse, success_response
from src.am_dashboard.application.service import DashboardService
from src.am_gateway.auth.dependencies import get_current_user
from src.am_gateway.user.db_models import ProfileModel

router = APIRouter(prefix="/dashboard", tags=["dashboard"])
_service = DashboardService()


@router.get("")
async def get_dashboard(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_dashboard(db, utc_now())
    return success_response(result, getattr(request.state, "request_id", None))


@router.get("/me")
async def get_my_dashboard(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_user_dashboard(db, str(current_user.id), utc_now())
    return success_response(result, getattr(request.state, "request_id", None))


@router.get("/auctions/{auction_id}/audit")
async def audit_leader(
    auction_id: str,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.audit_leader(db, auction_id)
    return success_response(result, getattr(request.state, "request_id", None))
