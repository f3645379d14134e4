"""005: create notifications table

Revision ID: 005
Revises: 004
Create Date: 2026-10-01
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id              VARCHAR(32)     PRIMARY KEY,
            user_id         UUID            NOT NULL REFERENCES profiles(id),
            auction_id      VARCHAR(32)     REFERENCES auctions(id),
            type            VARCHAR(20)     NOT NULL,
            message         TEXT            NOT NULL,
            read            BOOLEAN         NOT NULL DEFAULT FALSE,
            dedup_key       VARCHAR(160)    NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_notifications_dedup_key UNIQUE (dedup_key),
            CONSTRAINT ck_notifications_type CHECK (
                type IN ('NEW_BID', 'OUTBID', 'AUCTION_ENDED',
                         'BID_ACCEPTED', 'BID_REJECTED', 'COUNTER_OFFER')
            )
        );
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, id DESC);")
    op.execute("""
        CREATE INDEX idx_notifications_user_unread ON notifications (user_id)
            WHERE read = FALSE;
    """)
    op.execute("COMMENT ON TABLE notifications IS 'Per-user inbox; only read flips false to true';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
