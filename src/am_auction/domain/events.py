"""Domain events emitted by the bid ledger and reconciliation.

Events are immutable facts named in the past tense. They drive notification
fan-out and are published to the per-auction live stream as JSON.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from src.am_common.enums import AuctionStatus


class BidPlaced(BaseModel):
    """A bid was accepted and became the auction's leading bid."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["BID_PLACED"] = "BID_PLACED"
    event_id: str
    auction_id: str
    auction_title: str
    seller_id: str
    bid_id: str
    amount: int
    new_leader_id: str
    previous_leader_id: str | None
    previous_amount: int
    occurred_at: datetime


class AuctionStatusChanged(BaseModel):
    """Persisted status moved forward (reconciliation or cancellation)."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["AUCTION_STATUS_CHANGED"] = "AUCTION_STATUS_CHANGED"
    event_id: str
    auction_id: str
    auction_title: str
    seller_id: str
    from_status: AuctionStatus
    to_status: AuctionStatus
    highest_bid: int
    highest_bidder_id: str | None
    occurred_at: datetime


AuctionEvent = BidPlaced | AuctionStatusChanged
