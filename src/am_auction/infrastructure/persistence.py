"""AuctionRepository / BidRepository — raw SQL persistence.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
Profile ids are UUID columns; they are mapped to str at the row-mapper boundary.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_auction.domain.models import Auction, Bid
from src.am_common.enums import AuctionStatus

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_AUCTION_COLUMNS = """
    a.id, a.seller_id, a.title, a.description,
    a.starting_price, a.bid_increment, a.start_time, a.end_time,
    a.status, a.highest_bid, a.highest_bidder_id,
    a.created_at, a.updated_at
"""

_INSERT_AUCTION_SQL = text("""
    INSERT INTO auctions (id, seller_id, title, description,
        starting_price, bid_increment, start_time, end_time, status)
    VALUES (:id, :seller_id, :title, :description,
        :starting_price, :bid_increment, :start_time, :end_time, :status)
    RETURNING created_at, updated_at
""")

_GET_AUCTION_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS},
           p.full_name AS seller_name,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN profiles p ON p.id = a.seller_id
    WHERE a.id = :auction_id
""")

_GET_AUCTION_FOR_UPDATE_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS}
    FROM auctions a
    WHERE a.id = :auction_id
    FOR UPDATE
""")

# Compare-and-set: only succeeds if nobody committed a new leader since
# the row was read, and only ever moves highest_bid upwards.
_UPDATE_LEADER_SQL = text("""
    UPDATE auctions
    SET highest_bid = :new_bid,
        highest_bidder_id = :new_leader_id,
        updated_at = NOW()
    WHERE id = :auction_id
      AND highest_bid = :expected_bid
      AND :new_bid > highest_bid
      AND seller_id <> :new_leader_id
    RETURNING id
""")

_LIST_RECONCILE_CANDIDATES_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS}
    FROM auctions a
    WHERE a.status IN ('DRAFT', 'ACTIVE')
      AND (
          (a.status = 'DRAFT' AND a.start_time <= :now)
          OR a.end_time <= :now
      )
    ORDER BY a.end_time ASC, a.id ASC
""")

_TRANSITION_STATUS_SQL = text("""
    UPDATE auctions a
    SET status = :to_status, updated_at = NOW()
    WHERE a.id = :auction_id AND a.status = :from_status
    RETURNING a.id, a.seller_id, a.title, a.description,
              a.starting_price, a.bid_increment, a.start_time, a.end_time,
              a.status, a.highest_bid, a.highest_bidder_id,
              a.created_at, a.updated_at
""")

# Phase filter is computed from time, not from the cached status column.
_LIST_AUCTIONS_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS},
           p.full_name AS seller_name,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN profiles p ON p.id = a.seller_id
    WHERE
        (CAST(:seller_id AS TEXT) IS NULL OR a.seller_id = CAST(:seller_id AS UUID))
        AND (
            CAST(:phase AS TEXT) IS NULL
            OR (CAST(:phase AS TEXT) = 'UPCOMING'
                AND a.status NOT IN ('ENDED', 'CANCELLED')
                AND a.start_time > :now)
            OR (CAST(:phase AS TEXT) = 'ACTIVE'
                AND a.status NOT IN ('ENDED', 'CANCELLED')
                AND a.start_time <= :now AND a.end_time > :now)
            OR (CAST(:phase AS TEXT) = 'ENDED'
                AND (a.status IN ('ENDED', 'CANCELLED') OR a.end_time <= :now))
        )
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR a.created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                a.created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND a.id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY a.created_at DESC, a.id DESC
    LIMIT :limit
""")

_LIST_RECENT_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS},
           p.full_name AS seller_name,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN profiles p ON p.id = a.seller_id
    ORDER BY a.created_at DESC, a.id DESC
    LIMIT :limit
""")

_LIST_TOP_BY_HIGHEST_BID_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS},
           p.full_name AS seller_name,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN profiles p ON p.id = a.seller_id
    ORDER BY a.highest_bid DESC, a.created_at ASC
    LIMIT :limit
""")

_LIST_BID_ON_BY_SQL = text(f"""
    SELECT {_AUCTION_COLUMNS},
           p.full_name AS seller_name,
           (SELECT COUNT(*) FROM bids b WHERE b.auction_id = a.id) AS bid_count
    FROM auctions a
    LEFT JOIN profiles p ON p.id = a.seller_id
    WHERE a.id IN (SELECT DISTINCT auction_id FROM bids WHERE bidder_id = :bidder_id)
    ORDER BY a.end_time DESC, a.id DESC
    LIMIT :limit
""")

_INSERT_BID_SQL = text("""
    INSERT INTO bids (id, auction_id, bidder_id, amount, created_at)
    VALUES (:id, :auction_id, :bidder_id, :amount, :created_at)
""")

_LIST_BIDS_SQL = text("""
    SELECT b.id, b.auction_id, b.bidder_id, b.amount, b.created_at,
           p.full_name AS bidder_name
    FROM bids b
    LEFT JOIN profiles p ON p.id = b.bidder_id
    WHERE b.auction_id = :auction_id
    ORDER BY b.created_at DESC, b.id DESC
    LIMIT :limit
""")

_COUNT_BIDS_SQL = text("SELECT COUNT(*) FROM bids WHERE auction_id = :auction_id")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _opt_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _row_to_auction(row: Any) -> Auction:
    mapping = row._mapping
    return Auction(
        id=row.id,
        seller_id=str(row.seller_id),
        title=row.title,
        description=row.description,
        starting_price=row.starting_price,
        bid_increment=row.bid_increment,
        start_time=row.start_time,
        end_time=row.end_time,
        status=row.status,
        highest_bid=row.highest_bid,
        highest_bidder_id=_opt_str(row.highest_bidder_id),
        created_at=row.created_at,
        updated_at=row.updated_at,
        seller_name=mapping.get("seller_name"),
        bid_count=mapping.get("bid_count") or 0,
    )


def _row_to_bid(row: Any) -> Bid:
    return Bid(
        id=row.id,
        auction_id=row.auction_id,
        bidder_id=str(row.bidder_id),
        amount=row.amount,
        created_at=row.created_at,
        bidder_name=row._mapping.get("bidder_name"),
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class AuctionRepository:
    """Concrete implementation of AuctionRepositoryProtocol using raw SQL."""

    async def create(self, db: AsyncSession, auction: Auction) -> None:
        result = await db.execute(
            _INSERT_AUCTION_SQL,
            {
                "id": auction.id,
                "seller_id": auction.seller_id,
                "title": auction.title,
                "description": auction.description,
                "starting_price": auction.starting_price,
                "bid_increment": auction.bid_increment,
                "start_time": auction.start_time,
                "end_time": auction.end_time,
                "status": auction.status,
            },
        )
        row = result.fetchone()
        if row is not None:
            auction.created_at = row.created_at
            auction.updated_at = row.updated_at

    async def get_by_id(self, db: AsyncSession, auction_id: str) -> Auction | None:
        result = await db.execute(_GET_AUCTION_SQL, {"auction_id": auction_id})
        row = result.fetchone()
        return _row_to_auction(row) if row else None

    async def get_for_update(self, db: AsyncSession, auction_id: str) -> Auction | None:
        result = await db.execute(_GET_AUCTION_FOR_UPDATE_SQL, {"auction_id": auction_id})
        row = result.fetchone()
        return _row_to_auction(row) if row else None

    async def update_leader(
        self,
        db: AsyncSession,
        auction_id: str,
        expected_bid: int,
        new_bid: int,
        new_leader_id: str,
    ) -> bool:
        result = await db.execute(
            _UPDATE_LEADER_SQL,
            {
                "auction_id": auction_id,
                "expected_bid": expected_bid,
                "new_bid": new_bid,
                "new_leader_id": new_leader_id,
            },
        )
        return result.fetchone() is not None

    async def list_reconcile_candidates(
        self, db: AsyncSession, now: datetime
    ) -> list[Auction]:
        result = await db.execute(_LIST_RECONCILE_CANDIDATES_SQL, {"now": now})
        return [_row_to_auction(row) for row in result.fetchall()]

    async def transition_status(
        self,
        db: AsyncSession,
        auction_id: str,
        from_status: AuctionStatus,
        to_status: AuctionStatus,
    ) -> Auction | None:
        result = await db.execute(
            _TRANSITION_STATUS_SQL,
            {
                "auction_id": auction_id,
                "from_status": from_status.value,
                "to_status": to_status.value,
            },
        )
        row = result.fetchone()
        return _row_to_auction(row) if row else None

    async def list_auctions(
        self,
        db: AsyncSession,
        now: datetime,
        phase: str | None,
        seller_id: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Auction]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.  Parse the cursor timestamp here.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_AUCTIONS_SQL,
            {
                "now": now,
                "phase": phase,
                "seller_id": seller_id,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_auction(row) for row in result.fetchall()]

    async def list_recent(self, db: AsyncSession, limit: int) -> list[Auction]:
        result = await db.execute(_LIST_RECENT_SQL, {"limit": limit})
        return [_row_to_auction(row) for row in result.fetchall()]

    async def list_top_by_highest_bid(self, db: AsyncSession, limit: int) -> list[Auction]:
        result = await db.execute(_LIST_TOP_BY_HIGHEST_BID_SQL, {"limit": limit})
        return [_row_to_auction(row) for row in result.fetchall()]

    async def list_bid_on_by(
        self, db: AsyncSession, bidder_id: str, limit: int
    ) -> list[Auction]:
        result = await db.execute(
            _LIST_BID_ON_BY_SQL, {"bidder_id": bidder_id, "limit": limit}
        )
        return [_row_to_auction(row) for row in result.fetchall()]


class BidRepository:
    """Append-only bid log: insert and read, never update or delete."""

    async def insert(self, db: AsyncSession, bid: Bid) -> None:
        await db.execute(
            _INSERT_BID_SQL,
            {
                "id": bid.id,
                "auction_id": bid.auction_id,
                "bidder_id": bid.bidder_id,
                "amount": bid.amount,
                "created_at": bid.created_at,
            },
        )

    async def list_by_auction(
        self, db: AsyncSession, auction_id: str, limit: int
    ) -> list[Bid]:
        result = await db.execute(
            _LIST_BIDS_SQL, {"auction_id": auction_id, "limit": limit}
        )
        return [_row_to_bid(row) for row in result.fetchall()]

    async def count_by_auction(self, db: AsyncSession, auction_id: str) -> int:
        result = await db.execute(_COUNT_BIDS_SQL, {"auction_id": auction_id})
        return int(result.scalar_one())
