# src/am_dashboard/application/service.py
"""Dashboard aggregates and the leader audit.

Counts come straight from SQL; auction lists reuse the auction repository so
phase is derived the same way as everywhere else. Like other status-dependent
reads, the dashboards reconcile first when RECONCILE_ON_READ is on, so status
counts are current and due end notifications go out.
"""
import logging
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.am_auction.application.reconciler import StatusReconciler, get_status_reconciler
from src.am_auction.application.schemas import AuctionListItem
from src.am_auction.domain.repository import AuctionRepositoryProtocol
from src.am_auction.infrastructure.persistence import AuctionRepository
from src.am_common.enums import AuctionStatus
from src.am_common.errors import AuctionNotFoundError

logger = logging.getLogger(__name__)

_DASHBOARD_LIST_SIZE = 5
_USER_LIST_SIZE = 50

_STATUS_COUNTS_SQL = text("SELECT status, COUNT(*) AS n FROM auctions GROUP BY status")
_ACTIVE_BY_TIME_SQL = text("""
    SELECT COUNT(*) FROM auctions
    WHERE status NOT IN ('ENDED', 'CANCELLED')
      AND start_time <= :now AND end_time > :now
""")
_TOTAL_BIDS_SQL = text("SELECT COUNT(*) FROM bids")
_TOTAL_PROFILES_SQL = text("SELECT COUNT(*) FROM profiles")
_MY_MAX_BIDS_SQL = text("""
    SELECT auction_id, MAX(amount) AS my_max_bid
    FROM bids
    WHERE bidder_id = :bidder_id
    GROUP BY auction_id
""")
_AUDIT_SQL = text("""
    SELECT a.id, a.highest_bid, a.highest_bidder_id,
           top.amount AS max_amount,
           top.bidder_id AS max_bidder_id,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN LATERAL (
        SELECT b.amount, b.bidder_id
        FROM bids b
        WHERE b.auction_id = a.id
        ORDER BY b.amount DESC, b.created_at ASC
        LIMIT 1
    ) top ON TRUE
    WHERE a.id = :auction_id
""")


class DashboardService:
    def __init__(
        self,
        auction_repo: AuctionRepositoryProtocol | None = None,
        reconciler: StatusReconciler | None = None,
        reconcile_on_read: bool | None = None,
    ) -> None:
        self._auctions: AuctionRepositoryProtocol = auction_repo or AuctionRepository()
        self._reconciler = reconciler
        self._reconcile_on_read = (
            settings.RECONCILE_ON_READ if reconcile_on_read is None else reconcile_on_read
        )

    async def _maybe_reconcile(self, db: AsyncSession, now: datetime) -> None:
        if self._reconcile_on_read:
            await (self._reconciler or get_status_reconciler()).reconcile(db, now)

    async def get_dashboard(self, db: AsyncSession, now: datetime) -> dict[str, Any]:
        await self._maybe_reconcile(db, now)
        counts = {s.value: 0 for s in AuctionStatus}
        for row in (await db.execute(_STATUS_COUNTS_SQL)).fetchall():
            counts[row.status] = int(row.n)

        active_by_time = (await db.execute(_ACTIVE_BY_TIME_SQL, {"now": now})).scalar_one()
        total_bids = (await db.execute(_TOTAL_BIDS_SQL)).scalar_one()
        total_profiles = (await db.execute(_TOTAL_PROFILES_SQL)).scalar_one()

        recent = await self._auctions.list_recent(db, _DASHBOARD_LIST_SIZE)
        top = await self._auctions.list_top_by_highest_bid(db, _DASHBOARD_LIST_SIZE)
        return {
            "auctions_by_status": counts,
            "total_auctions": sum(counts.values()),
            "active_auctions": int(active_by_time),
            "total_bids": int(total_bids),
            "total_profiles": int(total_profiles),
            "recent_auctions": [AuctionListItem.from_domain(a, now).model_dump() for a in recent],
            "top_auctions": [AuctionListItem.from_domain(a, now).model_dump() for a in top],
        }

    async def get_user_dashboard(
        self, db: AsyncSession, user_id: str, now: datetime
    ) -> dict[str, Any]:
        await self._maybe_reconcile(db, now)
        selling = await self._auctions.list_auctions(
            db, now, None, user_id, None, None, _USER_LIST_SIZE
        )
        bidding = await self._auctions.list_bid_on_by(db, user_id, _USER_LIST_SIZE)
        my_max = {
            row.auction_id: int(row.my_max_bid)
            for row in (await db.execute(_MY_MAX_BIDS_SQL, {"bidder_id": user_id})).fetchall()
        }

        bids_out = []
        for a in bidding:
            item = AuctionListItem.from_domain(a, now).model_dump()
            item["my_max_bid"] = my_max.get(a.id, 0)
            item["is_leading"] = a.highest_bidder_id == user_id
            bids_out.append(item)

        return {
            "user_id": user_id,
            "selling": [AuctionListItem.from_domain(a, now).model_dump() for a in selling],
            "bidding": bids_out,
            "leading_count": sum(1 for b in bids_out if b["is_leading"]),
        }

    async def audit_leader(self, db: AsyncSession, auction_id: str) -> dict[str, Any]:
        """Compare the cached leader fields with the maximum of the bid log."""
        row = (await db.execute(_AUDIT_SQL, {"auction_id": auction_id})).fetchone()
        if row is None:
            raise AuctionNotFoundError(auction_id)

        cached_bidder = str(row.highest_bidder_id) if row.highest_bidder_id else None
        log_bidder = str(row.max_bidder_id) if row.max_bidder_id else None
        log_amount = int(row.max_amount) if row.max_amount is not None else 0

        issues: list[str] = []
        if row.highest_bid != log_amount:
            issues.append(f"highest_bid={row.highest_bid} but max bid in log={log_amount}")
        if cached_bidder != log_bidder:
            issues.append(f"highest_bidder_id={cached_bidder} but log leader={log_bidder}")
        if issues:
            logger.error("Leader audit failed: auction=%s issues=%s", auction_id, issues)

        return {
            "auction_id": auction_id,
            "ok": not issues,
            "highest_bid": row.highest_bid,
            "highest_bidder_id": cached_bidder,
            "log_max_amount": log_amount,
            "log_leader_id": log_bidder,
            "bid_count": int(row.bid_count),
            "issues": issues,
        }
