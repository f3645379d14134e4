"""Domain models for am_auction — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Auction:
    id: str
    seller_id: str
    title: str
    description: str
    starting_price: int  # cents, > 0
    bid_increment: int  # cents, > 0
    start_time: datetime
    end_time: datetime
    status: str  # DRAFT / ACTIVE / ENDED / CANCELLED
    # Leader state: materialized view over the bid log's maximum.
    highest_bid: int = 0  # 0 == no bid yet
    highest_bidder_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Read-side enrichment, populated by query SQL only
    seller_name: str | None = None
    bid_count: int = 0

    @property
    def has_bids(self) -> bool:
        return self.highest_bid > 0

    @property
    def current_price(self) -> int:
        return self.highest_bid if self.has_bids else self.starting_price

    @property
    def minimum_bid(self) -> int:
        """Smallest amount the next bid must meet."""
        if not self.has_bids:
            return self.starting_price
        return self.highest_bid + self.bid_increment


@dataclass
class Bid:
    """Append-only bid log entry."""

    id: str
    auction_id: str
    bidder_id: str
    amount: int  # cents
    created_at: datetime
    bidder_name: str | None = None  # read-side enrichment
