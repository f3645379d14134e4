from datetime import datetime

from src.am_auction.domain.lifecycle import phase_of
from src.am_auction.domain.models import Auction
from src.am_common.enums import AuctionPhase, RejectReason


def check_auction_biddable(auction: Auction | None, now: datetime) -> RejectReason | None:
    """NOT_FOUND for a missing auction; NOT_ACTIVE unless its phase is ACTIVE at now.

    Phase is recomputed from time, so a stale DRAFT status whose window has
    opened is still biddable, and a stale ACTIVE status past end_time is not.
    """
    if auction is None:
        return RejectReason.NOT_FOUND
    if phase_of(auction, now) != AuctionPhase.ACTIVE:
        return RejectReason.NOT_ACTIVE
    return None
