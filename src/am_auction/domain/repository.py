# src/am_auction/domain/repository.py
"""Repository Protocols — dependency inversion for testability.

Unit tests inject fakes or mocks that conform to these Protocols.
Infrastructure layer provides the raw-SQL implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.am_auction.domain.models import Auction, Bid
from src.am_common.enums import AuctionStatus


class AuctionRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, auction: Auction) -> None: ...

    async def get_by_id(self, db: AsyncSession, auction_id: str) -> Auction | None: ...

    async def get_for_update(self, db: AsyncSession, auction_id: str) -> Auction | None:
        """Row-locked read; the lock is held until the caller's transaction ends."""
        ...

    async def update_leader(
        self,
        db: AsyncSession,
        auction_id: str,
        expected_bid: int,
        new_bid: int,
        new_leader_id: str,
    ) -> bool:
        """Compare-and-set on highest_bid. False means nothing was updated."""
        ...

    async def list_reconcile_candidates(
        self, db: AsyncSession, now: datetime
    ) -> list[Auction]: ...

    async def transition_status(
        self,
        db: AsyncSession,
        auction_id: str,
        from_status: AuctionStatus,
        to_status: AuctionStatus,
    ) -> Auction | None:
        """Compare-and-set on status. Returns the updated auction, or None if
        the row was no longer in ``from_status``."""
        ...

    async def list_auctions(
        self,
        db: AsyncSession,
        now: datetime,
        phase: str | None,
        seller_id: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Auction]: ...

    async def list_recent(self, db: AsyncSession, limit: int) -> list[Auction]: ...

    async def list_top_by_highest_bid(self, db: AsyncSession, limit: int) -> list[Auction]:
        """Ordered by highest_bid DESC, then oldest first."""
        ...

    async def list_bid_on_by(
        self, db: AsyncSession, bidder_id: str, limit: int
    ) -> list[Auction]: ...


class BidRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, bid: Bid) -> None: ...

    async def list_by_auction(
        self, db: AsyncSession, auction_id: str, limit: int
    ) -> list[Bid]: ...

    async def count_by_auction(self, db: AsyncSession, auction_id: str) -> int: ...
