"""Bid validator — ordered composition of the rules in am_risk.rules.

Checks run in a fixed order and the first failure wins:

  1. auction exists                 → NOT_FOUND
  2. phase_of(auction, now) ACTIVE  → NOT_ACTIVE
  3. bidder is not the seller       → SELF_BID
  4. amount >= minimum bid          → BELOW_MINIMUM(minimum)

Pure given a consistent snapshot of the auction. "Accepted bid is the new
maximum" only holds if the caller keeps the snapshot and the commit atomic
with respect to other bids on the same auction (see BiddingEngine).
"""

from dataclasses import dataclass
from datetime import datetime

from src.am_auction.domain.models import Auction
from src.am_common.enums import RejectReason
from src.am_risk.rules.auction_status import check_auction_biddable
from src.am_risk.rules.minimum_bid import meets_minimum, minimum_bid_for
from src.am_risk.rules.self_bid import is_self_bid


@dataclass(frozen=True)
class Acceptance:
    auction: Auction
    bidder_id: str
    amount: int
    minimum_bid: int


@dataclass(frozen=True)
class Rejection:
    reason: RejectReason
    minimum_bid: int | None = None  # set for BELOW_MINIMUM only


BidDecision = Acceptance | Rejection


def validate_bid(
    auction: Auction | None, now: datetime, bidder_id: str, amount: int
) -> BidDecision:
    reason = check_auction_biddable(auction, now)
    if reason is not None:
        return Rejection(reason)
    assert auction is not None

    if is_self_bid(bidder_id, auction.seller_id):
        return Rejection(RejectReason.SELF_BID)

    minimum = minimum_bid_for(auction)
    if not meets_minimum(auction, amount):
        return Rejection(RejectReason.BELOW_MINIMUM, minimum_bid=minimum)

    return Acceptance(auction=auction, bidder_id=bidder_id, amount=amount, minimum_bid=minimum)
