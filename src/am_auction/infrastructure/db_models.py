"""SQLAlchemy ORM models for the auctions and bids tables.

DDL reference only — persistence.py uses raw text() SQL.
Alembic migrations (003_create_auctions.py, 004_create_bids.py) are the
authoritative DDL source.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.am_common.database import Base


class AuctionORM(Base):
    __tablename__ = "auctions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    seller_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    starting_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bid_increment: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    highest_bid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    highest_bidder_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class BidORM(Base):
    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    auction_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("auctions.id"), nullable=False
    )
    bidder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
