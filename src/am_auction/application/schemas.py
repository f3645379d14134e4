"""Pydantic schemas for am_auction API requests and responses.

Cursor format for auctions (snowflake VARCHAR PK):
  {"ts": "<created_at ISO>", "id": "<auction_id>"}, Base64 JSON.

Every response carries ``phase`` computed from ``now`` alongside the cached
``status``; clients should trust ``phase``.
"""

import base64
import json
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from src.am_auction.domain.events import AuctionStatusChanged
from src.am_auction.domain.lifecycle import phase_of
from src.am_auction.domain.models import Auction, Bid
from src.am_common.cents import cents_to_display
from src.am_common.datetime_utils import ensure_utc

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_auction: Auction) -> str:
    payload = {
        "ts": last_auction.created_at.isoformat() if last_auction.created_at else None,
        "id": last_auction.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, auction_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except Exception:
        return None, None


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateAuctionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    starting_price: int = Field(..., gt=0, description="Cents")
    bid_increment: int = Field(..., gt=0, description="Cents")
    start_time: datetime
    end_time: datetime

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def window_is_ordered(self) -> Self:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


# ---------------------------------------------------------------------------
# Auction views
# ---------------------------------------------------------------------------


class AuctionListItem(BaseModel):
    id: str
    seller_id: str
    seller_name: str | None
    title: str
    status: str
    phase: str
    starting_price: int
    current_price: int
    current_price_display: str
    highest_bidder_id: str | None
    bid_count: int
    start_time: str
    end_time: str
    created_at: str | None

    @classmethod
    def from_domain(cls, a: Auction, now: datetime) -> "AuctionListItem":
        return cls(
            id=a.id,
            seller_id=a.seller_id,
            seller_name=a.seller_name,
            title=a.title,
            status=a.status,
            phase=phase_of(a, now).value,
            starting_price=a.starting_price,
            current_price=a.current_price,
            current_price_display=cents_to_display(a.current_price),
            highest_bidder_id=a.highest_bidder_id,
            bid_count=a.bid_count,
            start_time=a.start_time.isoformat(),
            end_time=a.end_time.isoformat(),
            created_at=_iso(a.created_at),
        )


class AuctionListResponse(BaseModel):
    items: list[AuctionListItem]
    next_cursor: str | None
    has_more: bool


class AuctionDetail(BaseModel):
    id: str
    seller_id: str
    seller_name: str | None
    title: str
    description: str
    status: str
    phase: str
    starting_price: int
    bid_increment: int
    highest_bid: int
    highest_bidder_id: str | None
    current_price: int
    current_price_display: str
    minimum_bid: int
    minimum_bid_display: str
    bid_count: int
    start_time: str
    end_time: str
    created_at: str | None
    updated_at: str | None

    @classmethod
    def from_domain(cls, a: Auction, now: datetime) -> "AuctionDetail":
        return cls(
            id=a.id,
            seller_id=a.seller_id,
            seller_name=a.seller_name,
            title=a.title,
            description=a.description,
            status=a.status,
            phase=phase_of(a, now).value,
            starting_price=a.starting_price,
            bid_increment=a.bid_increment,
            highest_bid=a.highest_bid,
            highest_bidder_id=a.highest_bidder_id,
            current_price=a.current_price,
            current_price_display=cents_to_display(a.current_price),
            minimum_bid=a.minimum_bid,
            minimum_bid_display=cents_to_display(a.minimum_bid),
            bid_count=a.bid_count,
            start_time=a.start_time.isoformat(),
            end_time=a.end_time.isoformat(),
            created_at=_iso(a.created_at),
            updated_at=_iso(a.updated_at),
        )


# ---------------------------------------------------------------------------
# Bids
# ---------------------------------------------------------------------------


class BidItem(BaseModel):
    id: str
    auction_id: str
    bidder_id: str
    bidder_name: str | None
    amount: int
    amount_display: str
    created_at: str

    @classmethod
    def from_domain(cls, b: Bid) -> "BidItem":
        return cls(
            id=b.id,
            auction_id=b.auction_id,
            bidder_id=b.bidder_id,
            bidder_name=b.bidder_name,
            amount=b.amount,
            amount_display=cents_to_display(b.amount),
            created_at=b.created_at.isoformat(),
        )


class BidListResponse(BaseModel):
    auction_id: str
    items: list[BidItem]


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class TransitionItem(BaseModel):
    auction_id: str
    from_status: str
    to_status: str

    @classmethod
    def from_event(cls, e: AuctionStatusChanged) -> "TransitionItem":
        return cls(
            auction_id=e.auction_id,
            from_status=e.from_status.value,
            to_status=e.to_status.value,
        )


class ReconcileResponse(BaseModel):
    applied: int
    transitions: list[TransitionItem]
