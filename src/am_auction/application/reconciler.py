"""StatusReconciler — brings persisted auction status in line with the clock.

There is no background scheduler. Any path whose answer depends on status
calls reconcile(now) first; POST /auctions/reconcile exposes it directly.

Each planned transition is applied as a compare-and-set on the current
status, so two reconcilers racing on the same auction apply it once and
only the winner emits AuctionStatusChanged. That is what makes the
end-of-auction notifications fire exactly once.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.am_auction.domain.events import AuctionStatusChanged
from src.am_auction.domain.lifecycle import plan_transitions
from src.am_auction.domain.repository import AuctionRepositoryProtocol
from src.am_auction.infrastructure.persistence import AuctionRepository
from src.am_common.enums import AuctionStatus
from src.am_common.id_generator import generate_event_id
from src.am_notification.application.dispatcher import (
    NotificationDispatcher,
    get_notification_dispatcher,
)

logger = logging.getLogger(__name__)


class StatusReconciler:
    def __init__(
        self,
        repo: AuctionRepositoryProtocol | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher or get_notification_dispatcher()

    async def reconcile(self, db: AsyncSession, now: datetime) -> list[AuctionStatusChanged]:
        """Apply every due transition and return the events for those this call won."""
        candidates = await self._repo.list_reconcile_candidates(db, now)
        plan = plan_transitions(candidates, now)
        if not plan:
            return []

        events: list[AuctionStatusChanged] = []
        try:
            for transition in plan:
                updated = await self._repo.transition_status(
                    db, transition.auction_id, transition.from_status, transition.to_status
                )
                if updated is None:
                    # Another reconciler or a cancellation got there first.
                    continue
                events.append(
                    AuctionStatusChanged(
                        event_id=generate_event_id(),
                        auction_id=updated.id,
                        auction_title=updated.title,
                        seller_id=updated.seller_id,
                        from_status=transition.from_status,
                        to_status=transition.to_status,
                        highest_bid=updated.highest_bid,
                        highest_bidder_id=updated.highest_bidder_id,
                        occurred_at=now,
                    )
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        for event in events:
            if event.to_status == AuctionStatus.ENDED:
                logger.info(
                    "Auction ended: auction=%s winner=%s amount=%d",
                    event.auction_id, event.highest_bidder_id, event.highest_bid,
                )
            self.dispatcher.schedule(event)
        if events:
            logger.info("Reconciled %d of %d planned transitions", len(events), len(plan))
        return events


_reconciler: StatusReconciler | None = None


def get_status_reconciler() -> StatusReconciler:
    global _reconciler  # noqa: PLW0603
    if _reconciler is None:
        _reconciler = StatusReconciler()
    return _reconciler
