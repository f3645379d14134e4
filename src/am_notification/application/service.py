"""NotificationApplicationService — the user's notification inbox.

Notifications are created only by the dispatcher; this service reads them
and flips ``read`` to true for their owner.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.am_common.errors import NotificationNotFoundError
from src.am_notification.application.schemas import (
    MarkAllReadResponse,
    NotificationItem,
    NotificationListResponse,
    UnreadCountResponse,
    cursor_decode,
    cursor_encode,
)
from src.am_notification.domain.repository import NotificationRepositoryProtocol
from src.am_notification.infrastructure.persistence import NotificationRepository


class NotificationApplicationService:
    def __init__(self, repo: NotificationRepositoryProtocol | None = None) -> None:
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: str,
        unread_only: bool,
        cursor: str | None,
        limit: int,
    ) -> NotificationListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._repo.list_for_user(db, user_id, unread_only, cursor_id, limit + 1)
        has_more = len(rows) > limit
        page = rows[:limit]
        unread = await self._repo.count_unread(db, user_id)
        return NotificationListResponse(
            items=[NotificationItem.from_domain(n) for n in page],
            unread_count=unread,
            next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )

    async def unread_count(self, db: AsyncSession, user_id: str) -> UnreadCountResponse:
        return UnreadCountResponse(unread_count=await self._repo.count_unread(db, user_id))

    async def mark_read(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> NotificationItem:
        try:
            notification = await self._repo.mark_read(db, notification_id, user_id)
            if notification is None:
                # Missing and not-yours look the same to the caller.
                raise NotificationNotFoundError(notification_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NotificationItem.from_domain(notification)

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> MarkAllReadResponse:
        try:
            updated = await self._repo.mark_all_read(db, user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return MarkAllReadResponse(updated=updated)
