"""Auction lifecycle as a pure function of wall-clock time.

Persisted ``status`` is a cache of what these functions compute; it is
refreshed by reconciliation, never by a background scheduler.

  DRAFT ──(start_time ≤ now < end_time)──► ACTIVE
  DRAFT | ACTIVE ──(end_time ≤ now)──────► ENDED
  DRAFT | ACTIVE ──(seller cancels)──────► CANCELLED

ENDED and CANCELLED are terminal.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from src.am_auction.domain.models import Auction
from src.am_common.enums import AuctionPhase, AuctionStatus


@dataclass(frozen=True)
class StatusTransition:
    auction_id: str
    from_status: AuctionStatus
    to_status: AuctionStatus


def _is_terminal(status: str) -> bool:
    return AuctionStatus(status).is_terminal


def phase_of(auction: Auction, now: datetime) -> AuctionPhase:
    """Terminal status wins over time, so a cancelled upcoming auction is ENDED."""
    if _is_terminal(auction.status) or now >= auction.end_time:
        return AuctionPhase.ENDED
    if now < auction.start_time:
        return AuctionPhase.UPCOMING
    return AuctionPhase.ACTIVE


def next_status(auction: Auction, now: datetime) -> AuctionStatus | None:
    """Status the auction should move to at ``now``, or None if it is current."""
    status = AuctionStatus(auction.status)
    if status.is_terminal:
        return None
    if now >= auction.end_time:
        return AuctionStatus.ENDED
    if status == AuctionStatus.DRAFT and auction.start_time <= now:
        return AuctionStatus.ACTIVE
    return None


def plan_transitions(auctions: Iterable[Auction], now: datetime) -> list[StatusTransition]:
    """Idempotent: applying the plan and planning again yields nothing."""
    transitions: list[StatusTransition] = []
    for auction in auctions:
        target = next_status(auction, now)
        if target is not None:
            transitions.append(
                StatusTransition(auction.id, AuctionStatus(auction.status), target)
            )
    return transitions


def can_cancel(auction: Auction, now: datetime) -> bool:
    return (
        AuctionStatus(auction.status) in (AuctionStatus.DRAFT, AuctionStatus.ACTIVE)
        and phase_of(auction, now) != AuctionPhase.ENDED
    )


def is_owner(profile_id: str, auction: Auction) -> bool:
    """Profile ids are UUID strings; case is not significant."""
    return str(profile_id).lower() == str(auction.seller_id).lower()
