"""004: create bids table

Revision ID: 004
Revises: 003
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bids (
            id              VARCHAR(32)     PRIMARY KEY,
            auction_id      VARCHAR(32)     NOT NULL REFERENCES auctions(id),
            bidder_id       UUID            NOT NULL REFERENCES profiles(id),
            amount          BIGINT          NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bids_amount_gt_0 CHECK (amount > 0)
        );
    """)
    op.execute("CREATE INDEX idx_bids_auction_created ON bids (auction_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_bids_auction_amount ON bids (auction_id, amount DESC);")
    op.execute("CREATE INDEX idx_bids_bidder ON bids (bidder_id, auction_id);")
    op.execute("""
        CREATE TRIGGER trg_bids_append_only
            BEFORE UPDATE OR DELETE ON bids
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE bids IS 'Append-only bid log';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bids CASCADE;")
