"""Bid submission outcomes — typed results, never exceptions."""
from dataclasses import dataclass

from src.am_auction.domain.events import BidPlaced
from src.am_auction.domain.models import Bid
from src.am_common.enums import RejectReason


@dataclass(frozen=True)
class BidAccepted:
    bid: Bid
    event: BidPlaced

    @property
    def amount(self) -> int:
        return self.bid.amount

    @property
    def new_leader_id(self) -> str:
        return self.bid.bidder_id


@dataclass(frozen=True)
class BidRejected:
    auction_id: str
    reason: RejectReason
    minimum_bid: int | None = None


BidOutcome = BidAccepted | BidRejected
