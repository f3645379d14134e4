"""003: create auctions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auctions (
            id                  VARCHAR(32)     PRIMARY KEY,
            seller_id           UUID            NOT NULL REFERENCES profiles(id),
            title               VARCHAR(200)    NOT NULL,
            description         TEXT            NOT NULL DEFAULT '',
            starting_price      BIGINT          NOT NULL,
            bid_increment       BIGINT          NOT NULL,
            start_time          TIMESTAMPTZ     NOT NULL,
            end_time            TIMESTAMPTZ     NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'DRAFT',
            highest_bid         BIGINT          NOT NULL DEFAULT 0,
            highest_bidder_id   UUID            REFERENCES profiles(id),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_auctions_starting_price_gt_0  CHECK (starting_price > 0),
            CONSTRAINT ck_auctions_bid_increment_gt_0   CHECK (bid_increment > 0),
            CONSTRAINT ck_auctions_window               CHECK (end_time > start_time),
            CONSTRAINT ck_auctions_highest_bid_gte_0    CHECK (highest_bid >= 0),
            CONSTRAINT ck_auctions_leader_consistency   CHECK (
                (highest_bid = 0) = (highest_bidder_id IS NULL)
            ),
            CONSTRAINT ck_auctions_seller_not_leader    CHECK (
                highest_bidder_id IS NULL OR highest_bidder_id <> seller_id
            ),
            CONSTRAINT ck_auctions_status CHECK (
                status IN ('DRAFT', 'ACTIVE', 'ENDED', 'CANCELLED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_auctions_created ON auctions (created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_auctions_seller ON auctions (seller_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_auctions_reconcile ON auctions (end_time, start_time)
            WHERE status IN ('DRAFT', 'ACTIVE');
    """)
    op.execute("""
        CREATE TRIGGER trg_auctions_updated_at
            BEFORE UPDATE ON auctions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE auctions IS "
        "'Timed auctions; highest_bid/highest_bidder_id mirror the max of bids';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS auctions CASCADE;")
