# src/am_notification/domain/repository.py
"""NotificationRepository Protocol — interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.am_notification.domain.models import Notification, NotificationDraft


class NotificationRepositoryProtocol(Protocol):
    async def insert_many(
        self, db: AsyncSession, drafts: list[NotificationDraft]
    ) -> int:
        """Insert drafts, skipping dedup-key conflicts. Returns rows created."""
        ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        unread_only: bool,
        cursor_id: str | None,
        limit: int,
    ) -> list[Notification]: ...

    async def count_unread(self, db: AsyncSession, user_id: str) -> int: ...

    async def mark_read(
        self, db: AsyncSession, notification_id: str, user_id: str
    ) -> Notification | None: ...

    async def mark_all_read(self, db: AsyncSession, user_id: str) -> int: ...
