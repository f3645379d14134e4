"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class AuctionStatus(str, Enum):
    """Persisted lifecycle status; a cached projection of wall-clock time."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (AuctionStatus.ENDED, AuctionStatus.CANCELLED)


class AuctionPhase(str, Enum):
    """Phase computed from time; never persisted."""
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class RejectReason(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    NOT_ACTIVE = "NOT_ACTIVE"
    SELF_BID = "SELF_BID"
    BELOW_MINIMUM = "BELOW_MINIMUM"


class NotificationType(str, Enum):
    NEW_BID = "NEW_BID"
    OUTBID = "OUTBID"
    AUCTION_ENDED = "AUCTION_ENDED"
    BID_ACCEPTED = "BID_ACCEPTED"
    BID_REJECTED = "BID_REJECTED"
    # Reserved: no counter-offer workflow exists.
    COUNTER_OFFER = "COUNTER_OFFER"


class AuctionEventType(str, Enum):
    BID_PLACED = "BID_PLACED"
    AUCTION_STATUS_CHANGED = "AUCTION_STATUS_CHANGED"
