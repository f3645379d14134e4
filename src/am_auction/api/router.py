"""am_auction REST endpoints.

POST /auctions                        — create (DRAFT)
GET  /auctions                        — list, phase/seller filters, cursor pagination
POST /auctions/reconcile              — apply due status transitions now
GET  /auctions/{auction_id}           — detail
POST /auctions/{auction_id}/cancel    — seller cancels
GET  /auctions/{auction_id}/bids      — bid history, newest first
GET  /auctions/{auction_id}/events    — live stream (Server-Sent Events)
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_auction.application.schemas import CreateAuctionRequest
from src.am_auction.application.service import AuctionApplicationService
from src.am_auction.infrastructure.event_stream import stream_events
from src.am_common.database import get_db_session, session_scope
from src.am_common.datetime_utils import utc_now
from src.am_common.response import ApiResponse, success_response
from src.am_gateway.auth.dependencies import get_current_user
from src.am_gateway.user.db_models import ProfileModel

router = APIRouter(prefix="/auctions", tags=["auctions"])

_service = AuctionApplicationService()


def _wrap(data: dict, request: Request) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_auction(
    body: CreateAuctionRequest,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_auction(db, str(current_user.id), body, utc_now())
    return _wrap(result.model_dump(), request)


@router.get("")
async def list_auctions(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    phase: Literal["ALL", "UPCOMING", "ACTIVE", "ENDED"] = Query("ALL"),
    seller_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_auctions(db, utc_now(), phase, seller_id, cursor, limit)
    return _wrap(result.model_dump(), request)


@router.post("/reconcile")
async def reconcile_statuses(
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reconcile(db, utc_now())
    return _wrap(result.model_dump(), request)


@router.get("/{auction_id}")
async def get_auction(
    auction_id: str,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_auction(db, auction_id, utc_now())
    return _wrap(result.model_dump(), request)


@router.post("/{auction_id}/cancel")
async def cancel_auction(
    auction_id: str,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_auction(db, auction_id, str(current_user.id), utc_now())
    return _wrap(result.model_dump(), request)


@router.get("/{auction_id}/bids")
async def list_bids(
    auction_id: str,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    result = await _service.list_bids(db, auction_id, limit)
    return _wrap(result.model_dump(), request)


@router.get("/{auction_id}/events")
async def auction_events(auction_id: str) -> StreamingResponse:
    # EventSource cannot send an Authorization header, so the stream is public.
    # The session is closed before the first frame; open streams hold no
    # pooled connection.
    async with session_scope() as db:
        await _service.get_auction(db, auction_id, utc_now())
    return StreamingResponse(
        stream_events(auction_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
