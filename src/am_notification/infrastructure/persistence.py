# src/am_notification/infrastructure/persistence.py
"""NotificationRepository — raw SQL persistence implementation."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.id_generator import generate_id
from src.am_notification.domain.models import Notification, NotificationDraft

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

# The unique dedup_key turns event redelivery into a no-op.
_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (id, user_id, auction_id, type, message, read, dedup_key)
    VALUES (:id, :user_id, :auction_id, :type, :message, FALSE, :dedup_key)
    ON CONFLICT (dedup_key) DO NOTHING
    RETURNING id
""")

_SELECT_COLUMNS = """
    id, user_id, auction_id, type, message, read, dedup_key, created_at
"""

_LIST_NOTIFICATIONS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM notifications
    WHERE user_id = :user_id
      AND (CAST(:unread_only AS BOOLEAN) IS FALSE OR read = FALSE)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_COUNT_UNREAD_SQL = text("""
    SELECT COUNT(*) FROM notifications WHERE user_id = :user_id AND read = FALSE
""")

# read only ever moves false -> true; the owner check is part of the WHERE.
_MARK_READ_SQL = text(f"""
    UPDATE notifications
    SET read = TRUE
    WHERE id = :id AND user_id = :user_id
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_ALL_READ_SQL = text("""
    UPDATE notifications
    SET read = TRUE
    WHERE user_id = :user_id AND read = FALSE
    RETURNING id
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_notification(row: Any) -> Notification:
    return Notification(
        id=row.id,
        user_id=str(row.user_id),
        auction_id=row.auction_id,
        type=row.type,
        message=row.message,
        read=row.read,
        dedup_key=row.dedup_key,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class NotificationRepository:
    """Concrete implementation of NotificationRepositoryProtocol using raw SQL."""

    async def insert_many(
        self, db: AsyncSession, drafts: list[NotificationDraft]
    ) -> int:
        created = 0
        for draft in drafts:
            result = await db.execute(
                _INSERT_NOTIFICATION_SQL,
                {
                    "id": generate_id(),
                    "user_id": draft.user_id,
                    "auction_id": draft.auction_id,
                    "type": draft.type,
                    "message": draft.message,
                    "dedup_key": draft.dedup_key,
                },
            )
            if result.fetchone() is not None:
                created += 1
        return created

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        unread_only: bool,
        cursor_id: str | None,
        limit: int,
    ) -> list[Notification]:
        result = await db.execute(
            _LIST_NOTIFICATIONS_SQL,
            {
                "user_id": user_id,
                "unread_only": unread_only,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_notification(row) for row in result.fetchall()]

    async def count_unread(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_COUNT_UNREAD_SQL, {"user_id": user_id})
        return int(result.scalar_one())

    async def mark_read(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> Notification | None:
        result = await db.execute(
            _MARK_READ_SQL, {"id": notification_id, "user_id": user_id}
        )
        row = result.fetchone()
        return _row_to_notification(row) if row else None

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int:
        result = await db.execute(_MARK_ALL_READ_SQL, {"user_id": user_id})
        return len(result.fetchall())
