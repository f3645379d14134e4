"""Tests for BiddingEngine against in-memory repositories."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from auction_fakes import (
    ALICE,
    BOB,
    CAROL,
    NOW,
    SELLER,
    FakeAuctionRepository,
    FakeBidRepository,
    TickingClock,
    fixed_clock,
    make_auction,
    make_db,
)

from src.am_bidding.domain.models import BidAccepted, BidRejected
from src.am_bidding.engine.engine import BiddingEngine
from src.am_common.enums import AuctionStatus, RejectReason
from src.am_common.errors import (
    AuctionNotCancellableError,
    AuctionNotFoundError,
    LedgerInvariantError,
    NotAuctionOwnerError,
)


def _engine(*auctions, clock=fixed_clock):
    auction_repo = FakeAuctionRepository(*auctions)
    bid_repo = FakeBidRepository()
    engine = BiddingEngine(auction_repo=auction_repo, bid_repo=bid_repo, clock=clock)
    return engine, auction_repo, bid_repo


class TestSubmitBid:
    async def test_first_bid_at_starting_price(self) -> None:
        engine, auctions, bids = _engine(make_auction())
        db = make_db()

        outcome = await engine.submit_bid("AUC-1", ALICE, 10, NOW, db)

        assert isinstance(outcome, BidAccepted)
        assert outcome.amount == 10
        assert outcome.new_leader_id == ALICE
        assert auctions.rows["AUC-1"].highest_bid == 10
        assert auctions.rows["AUC-1"].highest_bidder_id == ALICE
        assert len(bids.bids) == 1
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_event_carries_previous_leader(self) -> None:
        engine, _, _ = _engine(make_auction())
        db = make_db()
        await engine.submit_bid("AUC-1", ALICE, 10, NOW, db)

        outcome = await engine.submit_bid("AUC-1", BOB, 15, NOW, db)

        event = outcome.event
        assert event.event_id.startswith("evt_")
        assert event.auction_title == "Vintage Camera"
        assert event.seller_id == SELLER
        assert event.previous_leader_id == ALICE
        assert event.previous_amount == 10
        assert event.new_leader_id == BOB
        assert event.bid_id == outcome.bid.id

    async def test_first_bid_has_no_previous_leader(self) -> None:
        engine, _, _ = _engine(make_auction())
        outcome = await engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db())
        assert outcome.event.previous_leader_id is None
        assert outcome.event.previous_amount == 0

    async def test_rejection_writes_nothing_and_rolls_back(self) -> None:
        engine, auctions, bids = _engine(make_auction())
        db = make_db()

        outcome = await engine.submit_bid("AUC-1", ALICE, 5, NOW, db)

        assert outcome == BidRejected("AUC-1", RejectReason.BELOW_MINIMUM, 10)
        assert bids.bids == []
        assert auctions.rows["AUC-1"].highest_bid == 0
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_unknown_auction(self) -> None:
        engine, _, _ = _engine()
        outcome = await engine.submit_bid("NOPE", ALICE, 10, NOW, make_db())
        assert outcome == BidRejected("NOPE", RejectReason.NOT_FOUND)

    async def test_seller_rejected(self) -> None:
        engine, _, bids = _engine(make_auction())
        outcome = await engine.submit_bid("AUC-1", SELLER, 100, NOW, make_db())
        assert outcome.reason == RejectReason.SELF_BID
        assert bids.bids == []

    async def test_leader_may_raise_own_bid(self) -> None:
        engine, auctions, _ = _engine(make_auction())
        db = make_db()
        await engine.submit_bid("AUC-1", ALICE, 10, NOW, db)
        outcome = await engine.submit_bid("AUC-1", ALICE, 15, NOW, db)
        assert isinstance(outcome, BidAccepted)
        assert outcome.event.previous_leader_id == ALICE
        assert auctions.rows["AUC-1"].highest_bid == 15

    async def test_failed_compare_and_set_raises_and_rolls_back(self) -> None:
        engine, auctions, _ = _engine(make_auction())
        auctions.update_leader = AsyncMock(return_value=False)
        db = make_db()

        with pytest.raises(LedgerInvariantError) as exc_info:
            await engine.submit_bid("AUC-1", ALICE, 10, NOW, db)

        assert exc_info.value.code == 9003
        assert exc_info.value.http_status == 500
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_inconsistent_leader_state_raises(self) -> None:
        corrupt = make_auction(highest_bid=0, highest_bidder_id=ALICE)
        engine, _, _ = _engine(corrupt)
        with pytest.raises(LedgerInvariantError):
            await engine.submit_bid("AUC-1", BOB, 10, NOW, make_db())


class TestConcurrentBids:
    async def test_leader_is_max_of_accepted_bids(self) -> None:
        engine, auctions, bids = _engine(make_auction(starting_price=10, bid_increment=5))
        bidders = [ALICE, BOB, CAROL]
        amounts = [10, 15, 15, 20, 40, 25, 30, 45, 50, 50, 12, 60]

        outcomes = await asyncio.gather(
            *(
                engine.submit_bid("AUC-1", bidders[i % 3], amount, NOW, make_db())
                for i, amount in enumerate(amounts)
            )
        )

        accepted = [o for o in outcomes if isinstance(o, BidAccepted)]
        assert accepted
        # Accepted amounts strictly increase in commit order.
        committed = [b.amount for b in bids.bids]
        assert committed == sorted(set(committed))
        final = auctions.rows["AUC-1"]
        assert final.highest_bid == max(committed)
        assert final.highest_bidder_id == bids.bids[-1].bidder_id

    async def test_equal_concurrent_bids_accept_one(self) -> None:
        engine, _, bids = _engine(make_auction())

        outcomes = await asyncio.gather(
            engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db()),
            engine.submit_bid("AUC-1", BOB, 10, NOW, make_db()),
        )

        assert sum(isinstance(o, BidAccepted) for o in outcomes) == 1
        rejected = [o for o in outcomes if isinstance(o, BidRejected)]
        assert rejected[0].reason == RejectReason.BELOW_MINIMUM
        assert rejected[0].minimum_bid == 15
        assert len(bids.bids) == 1

    async def test_queued_bid_is_stamped_after_the_commit_it_waited_for(self) -> None:
        engine, _, bids = _engine(make_auction(), clock=TickingClock(NOW + timedelta(seconds=2)))

        # The first submission takes the lock although its caller read the
        # clock later than the second one.
        first, second = await asyncio.gather(
            engine.submit_bid("AUC-1", ALICE, 10, NOW + timedelta(seconds=1), make_db()),
            engine.submit_bid("AUC-1", BOB, 15, NOW, make_db()),
        )

        assert isinstance(first, BidAccepted)
        assert isinstance(second, BidAccepted)
        assert second.bid.created_at > first.bid.created_at
        history = await bids.list_by_auction(None, "AUC-1", 10)
        assert [b.amount for b in history] == [15, 10]

    async def test_bid_time_never_earlier_than_caller_now(self) -> None:
        engine, _, _ = _engine(make_auction())
        later = NOW + timedelta(minutes=5)
        outcome = await engine.submit_bid("AUC-1", ALICE, 10, later, make_db())
        assert outcome.bid.created_at == later
        assert outcome.event.occurred_at == later

    async def test_end_time_checked_with_time_read_under_lock(self) -> None:
        engine, _, bids = _engine(
            make_auction(), clock=lambda: NOW + timedelta(hours=1, seconds=1)
        )

        outcome = await engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db())

        assert outcome == BidRejected("AUC-1", RejectReason.NOT_ACTIVE)
        assert bids.bids == []


class TestAuctionLocks:
    async def test_lock_map_empty_after_bid(self) -> None:
        engine, _, _ = _engine(make_auction())
        await engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db())
        assert engine._auction_locks == {}
        assert engine._lock_users == {}

    async def test_lock_map_empty_after_failed_commit(self) -> None:
        engine, auctions, _ = _engine(make_auction())
        auctions.update_leader = AsyncMock(return_value=False)
        with pytest.raises(LedgerInvariantError):
            await engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db())
        assert engine._auction_locks == {}

    async def test_lock_shared_while_waiting_then_dropped(self) -> None:
        engine, auctions, _ = _engine(make_auction(id="A"), make_auction(id="B"))
        release = asyncio.Event()
        original_read = auctions.get_for_update

        async def blocked_read(db, auction_id):
            await release.wait()
            return await original_read(db, auction_id)

        auctions.get_for_update = blocked_read
        first = asyncio.create_task(engine.submit_bid("A", ALICE, 10, NOW, make_db()))
        second = asyncio.create_task(engine.submit_bid("A", BOB, 10, NOW, make_db()))
        await asyncio.sleep(0)

        assert list(engine._auction_locks) == ["A"]
        assert engine._lock_users == {"A": 2}

        release.set()
        outcomes = await asyncio.gather(first, second)

        assert sum(isinstance(o, BidAccepted) for o in outcomes) == 1
        assert engine._auction_locks == {}

    async def test_cancel_releases_lock_entry(self) -> None:
        engine, _, _ = _engine(make_auction())
        with pytest.raises(NotAuctionOwnerError):
            await engine.cancel_auction("AUC-1", ALICE, NOW, make_db())
        assert engine._auction_locks == {}



class TestCancelAuction:
    async def test_seller_cancels_active(self) -> None:
        engine, auctions, _ = _engine(make_auction())
        db = make_db()

        event = await engine.cancel_auction("AUC-1", SELLER, NOW, db)

        assert event.from_status == AuctionStatus.ACTIVE
        assert event.to_status == AuctionStatus.CANCELLED
        assert auctions.rows["AUC-1"].status == "CANCELLED"
        db.commit.assert_awaited_once()

    async def test_non_owner_forbidden(self) -> None:
        engine, auctions, _ = _engine(make_auction())
        db = make_db()
        with pytest.raises(NotAuctionOwnerError):
            await engine.cancel_auction("AUC-1", ALICE, NOW, db)
        assert auctions.rows["AUC-1"].status == "ACTIVE"
        db.rollback.assert_awaited_once()

    async def test_terminal_not_cancellable(self) -> None:
        engine, _, _ = _engine(make_auction(status="ENDED"))
        with pytest.raises(AuctionNotCancellableError) as exc_info:
            await engine.cancel_auction("AUC-1", SELLER, NOW, make_db())
        assert exc_info.value.http_status == 422

    async def test_missing(self) -> None:
        engine, _, _ = _engine()
        with pytest.raises(AuctionNotFoundError):
            await engine.cancel_auction("NOPE", SELLER, NOW, make_db())

    async def test_bids_rejected_after_cancel(self) -> None:
        engine, _, _ = _engine(make_auction())
        await engine.cancel_auction("AUC-1", SELLER, NOW, make_db())
        outcome = await engine.submit_bid("AUC-1", ALICE, 10, NOW, make_db())
        assert outcome.reason == RejectReason.NOT_ACTIVE
