"""place_bid command and the process-wide BiddingEngine."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.am_auction.application.reconciler import StatusReconciler, get_status_reconciler
from src.am_bidding.application.schemas import PlaceBidResponse
from src.am_bidding.domain.models import BidAccepted
from src.am_bidding.engine.engine import BiddingEngine
from src.am_common.datetime_utils import utc_now
from src.am_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)

logger = logging.getLogger(__name__)

_engine: BiddingEngine | None = None


def get_bidding_engine() -> BiddingEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = BiddingEngine()
    return _engine


class BiddingApplicationService:
    def __init__(
        self,
        engine: BiddingEngine | None = None,
        reconciler: StatusReconciler | None = None,
        dispatcher: NotificationDispatcher | None = None,
        reconcile_on_read: bool | None = None,
    ) -> None:
        self._engine = engine
        self._reconciler = reconciler
        self._dispatcher = dispatcher
        self._reconcile_on_read = (
            settings.RECONCILE_ON_READ if reconcile_on_read is None else reconcile_on_read
        )

    async def place_bid(
        self,
        db: AsyncSession,
        auction_id: str,
        bidder_id: str,
        amount: int,
        now: datetime | None = None,
    ) -> PlaceBidResponse:
        """Submit a bid through the ledger; notifications follow in the background."""
        now = now or utc_now()
        if self._reconcile_on_read:
            await (self._reconciler or get_status_reconciler()).reconcile(db, now)

        engine = self._engine or get_bidding_engine()
        outcome = await engine.submit_bid(auction_id, bidder_id, amount, now, db)

        if isinstance(outcome, BidAccepted):
            (self._dispatcher or get_notification_dispatcher()).schedule(outcome.event)
        return PlaceBidResponse.from_outcome(outcome)
