"""BiddingEngine — per-auction serialized ledger for bids and cancellation."""
import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.am_auction.domain.events import AuctionStatusChanged, BidPlaced
from src.am_auction.domain.lifecycle import can_cancel, is_owner
from src.am_auction.domain.models import Auction, Bid
from src.am_auction.domain.repository import (
    AuctionRepositoryProtocol,
    BidRepositoryProtocol,
)
from src.am_auction.infrastructure.persistence import AuctionRepository, BidRepository
from src.am_bidding.domain.models import BidAccepted, BidOutcome, BidRejected
from src.am_common.datetime_utils import utc_now
from src.am_common.enums import AuctionStatus
from src.am_common.errors import (
    AuctionNotCancellableError,
    AuctionNotFoundError,
    LedgerInvariantError,
    NotAuctionOwnerError,
)
from src.am_common.id_generator import generate_event_id, generate_id
from src.am_risk.rules.self_bid import is_self_bid
from src.am_risk.validator import Rejection, validate_bid

logger = logging.getLogger(__name__)


class BiddingEngine:
    """Single point of mutation for each auction's leader state.

    Two layers of exclusion, both scoped to one auction id:
      - an in-process asyncio.Lock, so coroutines in this worker queue up
        without holding DB connections;
      - SELECT ... FOR UPDATE on the auction row, so other worker
        processes serialize in PostgreSQL.
    The read → validate → commit sequence runs entirely inside both, and the
    clock is read there too: a bid's ``created_at`` is never earlier than
    the commit it queued behind. Different auctions never contend.

    A lock lives in ``_auction_locks`` only while some coroutine holds or
    waits for it.
    """

    def __init__(
        self,
        auction_repo: AuctionRepositoryProtocol | None = None,
        bid_repo: BidRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._auction_repo: AuctionRepositoryProtocol = auction_repo or AuctionRepository()
        self._bid_repo: BidRepositoryProtocol = bid_repo or BidRepository()
        self._clock = clock
        self._auction_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _serialized(self, auction_id: str) -> AsyncIterator[None]:
        lock = self._auction_locks.get(auction_id)
        if lock is None:
            lock = self._auction_locks[auction_id] = asyncio.Lock()
        self._lock_users[auction_id] = self._lock_users.get(auction_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[auction_id] - 1
            if remaining:
                self._lock_users[auction_id] = remaining
            else:
                del self._lock_users[auction_id]
                del self._auction_locks[auction_id]

    async def submit_bid(
        self,
        auction_id: str,
        bidder_id: str,
        amount: int,
        now: datetime,
        db: AsyncSession,
    ) -> BidOutcome:
        """Main entry point. Commits on acceptance, rolls back otherwise.

        ``now`` is a lower bound; the effective time is taken after the
        auction row is locked.
        """
        async with self._serialized(auction_id):
            try:
                outcome = await self._submit_bid_inner(auction_id, bidder_id, amount, now, db)
                if isinstance(outcome, BidAccepted):
                    await db.commit()
                else:
                    # Nothing written; releases the row lock.
                    await db.rollback()
            except Exception:
                await db.rollback()
                raise

        if isinstance(outcome, BidAccepted):
            logger.info(
                "Bid accepted: auction=%s bid=%s amount=%d leader=%s previous=%s",
                auction_id,
                outcome.bid.id,
                outcome.amount,
                bidder_id,
                outcome.event.previous_leader_id,
            )
        else:
            logger.debug(
                "Bid rejected: auction=%s bidder=%s amount=%d reason=%s",
                auction_id, bidder_id, amount, outcome.reason.value,
            )
        return outcome

    async def _submit_bid_inner(
        self,
        auction_id: str,
        bidder_id: str,
        amount: int,
        now: datetime,
        db: AsyncSession,
    ) -> BidOutcome:
        auction = await self._auction_repo.get_for_update(db, auction_id)
        now = max(now, self._clock())
        decision = validate_bid(auction, now, bidder_id, amount)
        if isinstance(decision, Rejection):
            return BidRejected(auction_id, decision.reason, decision.minimum_bid)

        auction = decision.auction
        previous_bid = auction.highest_bid
        previous_leader = auction.highest_bidder_id
        _check_leader_advance(auction, bidder_id, amount)

        bid = Bid(
            id=generate_id(),
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            created_at=now,
        )
        await self._bid_repo.insert(db, bid)

        updated = await self._auction_repo.update_leader(
            db,
            auction_id,
            expected_bid=previous_bid,
            new_bid=amount,
            new_leader_id=bidder_id,
        )
        if not updated:
            logger.error(
                "Leader compare-and-set failed: auction=%s expected=%d new=%d",
                auction_id, previous_bid, amount,
            )
            raise LedgerInvariantError(
                f"auction {auction_id} leader changed underneath a serialized commit"
            )

        event = BidPlaced(
            event_id=generate_event_id(),
            auction_id=auction_id,
            auction_title=auction.title,
            seller_id=auction.seller_id,
            bid_id=bid.id,
            amount=amount,
            new_leader_id=bidder_id,
            previous_leader_id=previous_leader,
            previous_amount=previous_bid,
            occurred_at=now,
        )
        return BidAccepted(bid=bid, event=event)

    async def cancel_auction(
        self,
        auction_id: str,
        seller_id: str,
        now: datetime,
        db: AsyncSession,
    ) -> AuctionStatusChanged:
        """Seller-initiated DRAFT/ACTIVE → CANCELLED, serialized with bids."""
        async with self._serialized(auction_id):
            try:
                auction = await self._auction_repo.get_for_update(db, auction_id)
                if auction is None:
                    raise AuctionNotFoundError(auction_id)
                if not is_owner(seller_id, auction):
                    raise NotAuctionOwnerError(auction_id)
                now = max(now, self._clock())
                if not can_cancel(auction, now):
                    raise AuctionNotCancellableError(auction_id, auction.status)
                from_status = AuctionStatus(auction.status)
                updated = await self._auction_repo.transition_status(
                    db, auction_id, from_status, AuctionStatus.CANCELLED
                )
                if updated is None:
                    raise AuctionNotCancellableError(auction_id, auction.status)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Auction cancelled: auction=%s from=%s", auction_id, from_status.value)
        return AuctionStatusChanged(
            event_id=generate_event_id(),
            auction_id=auction_id,
            auction_title=updated.title,
            seller_id=updated.seller_id,
            from_status=from_status,
            to_status=AuctionStatus.CANCELLED,
            highest_bid=updated.highest_bid,
            highest_bidder_id=updated.highest_bidder_id,
            occurred_at=now,
        )


def _check_leader_advance(auction: Auction, bidder_id: str, amount: int) -> None:
    """Fail loudly on a commit that would break the leader invariants.

    Unreachable while the validator runs inside the per-auction lock.
    """
    if amount <= auction.highest_bid:
        raise LedgerInvariantError(
            f"auction {auction.id}: amount {amount} does not exceed "
            f"highest_bid {auction.highest_bid}"
        )
    if (auction.highest_bid == 0) != (auction.highest_bidder_id is None):
        raise LedgerInvariantError(
            f"auction {auction.id}: highest_bid={auction.highest_bid} "
            f"inconsistent with highest_bidder_id={auction.highest_bidder_id}"
        )
    if is_self_bid(bidder_id, auction.seller_id):
        raise LedgerInvariantError(f"auction {auction.id}: seller cannot lead")
