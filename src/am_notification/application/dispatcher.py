"""NotificationDispatcher — post-commit side effects of auction events.

For every event the dispatcher:
  1. derives notification drafts (am_notification.domain.fanout),
  2. persists them in its own session and transaction, retrying with
     exponential backoff; dedup keys make retries and redelivery safe,
  3. publishes the event to the auction's live stream.

Runs as a background task after the ledger commit. Nothing here raises
back into the bid or reconciliation path: a bid that was committed stays
committed even if every delivery attempt fails.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.am_auction.domain.events import AuctionEvent, BidPlaced
from src.am_auction.infrastructure.event_stream import publish_event
from src.am_common.database import session_scope
from src.am_notification.domain.fanout import (
    notifications_for_bid,
    notifications_for_status_change,
)
from src.am_notification.domain.models import NotificationDraft
from src.am_notification.domain.repository import NotificationRepositoryProtocol
from src.am_notification.infrastructure.persistence import NotificationRepository

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def drafts_for(event: AuctionEvent) -> list[NotificationDraft]:
    if isinstance(event, BidPlaced):
        return notifications_for_bid(event)
    return notifications_for_status_change(event)


class NotificationDispatcher:
    def __init__(
        self,
        repo: NotificationRepositoryProtocol | None = None,
        session_factory: SessionFactory = session_scope,
        max_attempts: int | None = None,
        retry_base_seconds: float | None = None,
        publish: Callable[[AuctionEvent], Awaitable[bool]] | None = publish_event,
    ) -> None:
        self._repo: NotificationRepositoryProtocol = repo or NotificationRepository()
        self._session_factory = session_factory
        self._max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS
        self._retry_base = (
            settings.NOTIFICATION_RETRY_BASE_SECONDS
            if retry_base_seconds is None
            else retry_base_seconds
        )
        self._publish = publish
        self._pending: set[asyncio.Task[int]] = set()

    def schedule(self, event: AuctionEvent) -> asyncio.Task[int]:
        """Fire-and-forget dispatch; keeps a reference until the task finishes."""
        task = asyncio.create_task(self.dispatch(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for scheduled dispatches (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def dispatch(self, event: AuctionEvent) -> int:
        """Deliver one event. Returns notifications created; never raises."""
        created = await self._deliver(event, drafts_for(event))
        if self._publish is not None:
            try:
                await self._publish(event)
            except Exception:
                logger.exception("Event publish failed: event=%s", event.event_id)
        return created

    async def _deliver(self, event: AuctionEvent, drafts: list[NotificationDraft]) -> int:
        if not drafts:
            return 0
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._session_factory() as db:
                    created = await self._repo.insert_many(db, drafts)
                    await db.commit()
                logger.debug(
                    "Notifications delivered: event=%s created=%d of %d",
                    event.event_id, created, len(drafts),
                )
                return created
            except Exception:
                if attempt == self._max_attempts:
                    logger.exception(
                        "Notification delivery gave up: event=%s type=%s attempts=%d",
                        event.event_id, event.event_type, attempt,
                    )
                    return 0
                delay = self._retry_base * (2 ** (attempt - 1))
                logger.warning(
                    "Notification delivery failed: event=%s attempt=%d/%d, retrying in %.2fs",
                    event.event_id, attempt, self._max_attempts, delay,
                )
                await asyncio.sleep(delay)
        return 0


_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
