"""Pydantic schemas for the place-bid endpoint.

A rejected bid is not an error: the call succeeds with ``accepted: false``
and the reason (plus the minimum for BELOW_MINIMUM).
"""

from pydantic import BaseModel, Field

from src.am_bidding.domain.models import BidAccepted, BidOutcome
from src.am_common.cents import cents_to_display


class PlaceBidRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Bid amount in cents")


class PlaceBidResponse(BaseModel):
    auction_id: str
    accepted: bool
    bid_id: str | None = None
    amount: int | None = None
    amount_display: str | None = None
    new_leader_id: str | None = None
    reason: str | None = None
    minimum_bid: int | None = None

    @classmethod
    def from_outcome(cls, outcome: BidOutcome) -> "PlaceBidResponse":
        if isinstance(outcome, BidAccepted):
            return cls(
                auction_id=outcome.bid.auction_id,
                accepted=True,
                bid_id=outcome.bid.id,
                amount=outcome.amount,
                amount_display=cents_to_display(outcome.amount),
                new_leader_id=outcome.new_leader_id,
            )
        return cls(
            auction_id=outcome.auction_id,
            accepted=False,
            reason=outcome.reason.value,
            minimum_bid=outcome.minimum_bid,
        )
