"""Tests for NotificationDispatcher: retries, dedup and isolation from the bid path."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

from auction_fakes import ALICE, BOB, NOW, SELLER, FakeNotificationRepository, make_db

from src.am_auction.domain.events import BidPlaced
from src.am_notification.application.dispatcher import NotificationDispatcher


def _event(event_id: str = "evt_1") -> BidPlaced:
    return BidPlaced(
        event_id=event_id,
        auction_id="AUC-1",
        auction_title="Vintage Camera",
        seller_id=SELLER,
        bid_id="BID-2",
        amount=1500,
        new_leader_id=BOB,
        previous_leader_id=ALICE,
        previous_amount=1000,
        occurred_at=NOW,
    )


def _session_factory(db=None):
    db = db or make_db()

    @asynccontextmanager
    async def factory():
        yield db

    return factory


def _dispatcher(repo, publish=None, attempts=3) -> NotificationDispatcher:
    return NotificationDispatcher(
        repo=repo,
        session_factory=_session_factory(),
        max_attempts=attempts,
        retry_base_seconds=0,
        publish=publish,
    )


class TestDispatch:
    async def test_creates_and_publishes(self) -> None:
        repo = FakeNotificationRepository()
        publish = AsyncMock(return_value=True)

        created = await _dispatcher(repo, publish).dispatch(_event())

        assert created == 2
        publish.assert_awaited_once()

    async def test_redelivery_creates_nothing(self) -> None:
        repo = FakeNotificationRepository()
        dispatcher = _dispatcher(repo)

        assert await dispatcher.dispatch(_event()) == 2
        assert await dispatcher.dispatch(_event()) == 0
        assert len(repo.rows) == 2

    async def test_retries_then_succeeds(self) -> None:
        repo = FakeNotificationRepository(fail_times=2)

        created = await _dispatcher(repo, attempts=3).dispatch(_event())

        assert created == 2
        assert repo.calls == 3

    async def test_gives_up_without_raising(self) -> None:
        repo = FakeNotificationRepository(fail_times=10)
        publish = AsyncMock(return_value=True)

        created = await _dispatcher(repo, publish, attempts=3).dispatch(_event())

        assert created == 0
        assert repo.calls == 3
        # The live stream still hears about the committed bid.
        publish.assert_awaited_once()

    async def test_publish_failure_swallowed(self) -> None:
        repo = FakeNotificationRepository()
        publish = AsyncMock(side_effect=RuntimeError("redis down"))

        assert await _dispatcher(repo, publish).dispatch(_event()) == 2

    async def test_commits_each_successful_attempt(self) -> None:
        db = make_db()
        dispatcher = NotificationDispatcher(
            repo=FakeNotificationRepository(),
            session_factory=_session_factory(db),
            max_attempts=1,
            retry_base_seconds=0,
            publish=None,
        )
        await dispatcher.dispatch(_event())
        db.commit.assert_awaited_once()


class TestSchedule:
    async def test_schedule_and_drain(self) -> None:
        repo = FakeNotificationRepository()
        dispatcher = _dispatcher(repo)

        task = dispatcher.schedule(_event("evt_a"))
        dispatcher.schedule(_event("evt_b"))
        await dispatcher.drain()

        assert task.done()
        assert task.result() == 2
        assert len(repo.rows) == 4

    async def test_drain_with_nothing_pending(self) -> None:
        await _dispatcher(FakeNotificationRepository()).drain()
