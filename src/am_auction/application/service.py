"""AuctionApplicationService — auction commands and queries.

Reads reconcile first (when RECONCILE_ON_READ is on) so the cached status
they return, and any end-of-auction notifications, are current. Phase in
every response is computed from ``now`` regardless.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.am_auction.application.reconciler import StatusReconciler, get_status_reconciler
from src.am_auction.application.schemas import (
    AuctionDetail,
    AuctionListItem,
    AuctionListResponse,
    BidItem,
    BidListResponse,
    CreateAuctionRequest,
    ReconcileResponse,
    TransitionItem,
    cursor_decode,
    cursor_encode,
)
from src.am_auction.domain.models import Auction
from src.am_auction.domain.repository import (
    AuctionRepositoryProtocol,
    BidRepositoryProtocol,
)
from src.am_auction.infrastructure.persistence import AuctionRepository, BidRepository
from src.am_bidding.application.service import get_bidding_engine
from src.am_bidding.engine.engine import BiddingEngine
from src.am_common.enums import AuctionStatus
from src.am_common.errors import AuctionNotFoundError
from src.am_common.id_generator import generate_id
from src.am_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)

logger = logging.getLogger(__name__)


class AuctionApplicationService:
    def __init__(
        self,
        repo: AuctionRepositoryProtocol | None = None,
        bid_repo: BidRepositoryProtocol | None = None,
        reconciler: StatusReconciler | None = None,
        engine: BiddingEngine | None = None,
        dispatcher: NotificationDispatcher | None = None,
        reconcile_on_read: bool | None = None,
    ) -> None:
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._bid_repo: BidRepositoryProtocol = bid_repo or BidRepository()
        self._reconciler = reconciler
        self._engine = engine
        self._dispatcher = dispatcher
        self._reconcile_on_read = (
            settings.RECONCILE_ON_READ if reconcile_on_read is None else reconcile_on_read
        )

    @property
    def reconciler(self) -> StatusReconciler:
        return self._reconciler or get_status_reconciler()

    async def _maybe_reconcile(self, db: AsyncSession, now: datetime) -> None:
        if self._reconcile_on_read:
            await self.reconciler.reconcile(db, now)

    async def _require(self, db: AsyncSession, auction_id: str) -> Auction:
        auction = await self._repo.get_by_id(db, auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)
        return auction

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_auction(
        self,
        db: AsyncSession,
        seller_id: str,
        req: CreateAuctionRequest,
        now: datetime,
    ) -> AuctionDetail:
        """Persist a DRAFT auction; it becomes ACTIVE on the first reconcile after start_time."""
        auction = Auction(
            id=generate_id(),
            seller_id=seller_id,
            title=req.title,
            description=req.description,
            starting_price=req.starting_price,
            bid_increment=req.bid_increment,
            start_time=req.start_time,
            end_time=req.end_time,
            status=AuctionStatus.DRAFT.value,
        )
        try:
            await self._repo.create(db, auction)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Auction created: auction=%s seller=%s window=%s..%s",
            auction.id, seller_id, auction.start_time.isoformat(), auction.end_time.isoformat(),
        )
        stored = await self._repo.get_by_id(db, auction.id)
        return AuctionDetail.from_domain(stored or auction, now)

    async def cancel_auction(
        self, db: AsyncSession, auction_id: str, seller_id: str, now: datetime
    ) -> AuctionDetail:
        engine = self._engine or get_bidding_engine()
        event = await engine.cancel_auction(auction_id, seller_id, now, db)
        (self._dispatcher or get_notification_dispatcher()).schedule(event)
        return AuctionDetail.from_domain(await self._require(db, auction_id), now)

    async def reconcile(self, db: AsyncSession, now: datetime) -> ReconcileResponse:
        events = await self.reconciler.reconcile(db, now)
        return ReconcileResponse(
            applied=len(events),
            transitions=[TransitionItem.from_event(e) for e in events],
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_auction(
        self, db: AsyncSession, auction_id: str, now: datetime
    ) -> AuctionDetail:
        await self._maybe_reconcile(db, now)
        return AuctionDetail.from_domain(await self._require(db, auction_id), now)

    async def list_auctions(
        self,
        db: AsyncSession,
        now: datetime,
        phase: str | None,
        seller_id: str | None,
        cursor: str | None,
        limit: int,
    ) -> AuctionListResponse:
        await self._maybe_reconcile(db, now)
        # phase=None or 'ALL' → no filter
        sql_phase = None if phase in (None, "ALL") else phase
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        auctions = await self._repo.list_auctions(
            db, now, sql_phase, seller_id, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(auctions) > limit
        page = auctions[:limit]
        return AuctionListResponse(
            items=[AuctionListItem.from_domain(a, now) for a in page],
            next_cursor=cursor_encode(page[-1]) if has_more and page else None,
            has_more=has_more,
        )

    async def list_bids(
        self, db: AsyncSession, auction_id: str, limit: int
    ) -> BidListResponse:
        await self._require(db, auction_id)
        bids = await self._bid_repo.list_by_auction(db, auction_id, limit)
        return BidListResponse(
            auction_id=auction_id,
            items=[BidItem.from_domain(b) for b in bids],
        )
