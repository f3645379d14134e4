"""Tests for StatusReconciler: compare-and-set transitions, single end firing."""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from auction_fakes import ALICE, NOW, FakeAuctionRepository, make_auction, make_db

from src.am_auction.application.reconciler import StatusReconciler
from src.am_common.enums import AuctionStatus


def _reconciler(*auctions):
    repo = FakeAuctionRepository(*auctions)
    dispatcher = MagicMock()
    return StatusReconciler(repo=repo, dispatcher=dispatcher), repo, dispatcher


def _ending(**kw):
    return make_auction(
        start_time=NOW - timedelta(hours=2),
        end_time=NOW - timedelta(seconds=1),
        **kw,
    )


class TestReconcile:
    async def test_activates_and_ends(self) -> None:
        reconciler, repo, dispatcher = _reconciler(
            make_auction(id="A", status="DRAFT"),
            _ending(id="B", highest_bid=25, highest_bidder_id=ALICE),
            make_auction(id="C", status="DRAFT", start_time=NOW + timedelta(hours=1),
                         end_time=NOW + timedelta(hours=2)),
        )
        db = make_db()

        events = await reconciler.reconcile(db, NOW)

        assert {(e.auction_id, e.to_status) for e in events} == {
            ("A", AuctionStatus.ACTIVE),
            ("B", AuctionStatus.ENDED),
        }
        assert repo.rows["C"].status == "DRAFT"
        ended = next(e for e in events if e.auction_id == "B")
        assert ended.highest_bid == 25
        assert ended.highest_bidder_id == ALICE
        assert dispatcher.schedule.call_count == 2
        db.commit.assert_awaited_once()

    async def test_nothing_due_does_not_touch_db(self) -> None:
        reconciler, _, dispatcher = _reconciler(make_auction())
        db = make_db()

        assert await reconciler.reconcile(db, NOW) == []
        db.commit.assert_not_awaited()
        dispatcher.schedule.assert_not_called()

    async def test_second_run_is_a_no_op(self) -> None:
        reconciler, _, dispatcher = _reconciler(_ending())
        await reconciler.reconcile(make_db(), NOW)

        assert await reconciler.reconcile(make_db(), NOW + timedelta(minutes=5)) == []
        assert dispatcher.schedule.call_count == 1

    async def test_concurrent_reconcilers_end_once(self) -> None:
        repo = FakeAuctionRepository(_ending())
        dispatcher = MagicMock()
        first = StatusReconciler(repo=repo, dispatcher=dispatcher)
        second = StatusReconciler(repo=repo, dispatcher=dispatcher)

        results = await asyncio.gather(
            first.reconcile(make_db(), NOW), second.reconcile(make_db(), NOW)
        )

        ended = [e for batch in results for e in batch if e.to_status == AuctionStatus.ENDED]
        assert len(ended) == 1
        assert dispatcher.schedule.call_count == 1
        assert repo.transition_calls == 2

    async def test_never_moves_terminal(self) -> None:
        reconciler, repo, _ = _reconciler(_ending(status="CANCELLED"))
        assert await reconciler.reconcile(make_db(), NOW) == []
        assert repo.rows["AUC-1"].status == "CANCELLED"

    async def test_status_only_moves_forward(self) -> None:
        reconciler, repo, _ = _reconciler(
            make_auction(status="DRAFT", end_time=NOW + timedelta(minutes=30))
        )
        seen = []
        for minutes in (0, 10, 20, 40, 60):
            await reconciler.reconcile(make_db(), NOW + timedelta(minutes=minutes))
            seen.append(repo.rows["AUC-1"].status)
        assert seen == ["ACTIVE", "ACTIVE", "ACTIVE", "ENDED", "ENDED"]

    async def test_rollback_on_failure(self) -> None:
        reconciler, repo, dispatcher = _reconciler(_ending())

        async def boom(*args, **kwargs):
            raise RuntimeError("db gone")

        repo.transition_status = boom
        db = make_db()
        with pytest.raises(RuntimeError):
            await reconciler.reconcile(db, NOW)
        db.rollback.assert_awaited_once()
        dispatcher.schedule.assert_not_called()
