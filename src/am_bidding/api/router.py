"""am_bidding REST endpoint.

POST /auctions/{auction_id}/bids — place a bid (200 whether accepted or not)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_bidding.application.schemas import PlaceBidRequest
from src.am_bidding.application.service import BiddingApplicationService
from src.am_common.database import get_db_session
from src.am_common.response import ApiResponse, success_response
from src.am_gateway.auth.dependencies import get_current_user
from src.am_gateway.user.db_models import ProfileModel

router = APIRouter(prefix="/auctions", tags=["bids"])

_service = BiddingApplicationService()


@router.post("/{auction_id}/bids")
async def place_bid(
    auction_id: str,
    body: PlaceBidRequest,
    request: Request,
    current_user: Annotated[ProfileModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.place_bid(db, auction_id, str(current_user.id), body.amount)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    if not result.accepted:
        resp.message = "Bid rejected"
    return resp
