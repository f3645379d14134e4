"""Tests for am_common.id_generator and am_common.datetime_utils."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from src.am_common.datetime_utils import ensure_utc, utc_now
from src.am_common.id_generator import SnowflakeIdGenerator, generate_event_id


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        assert isinstance(SnowflakeIdGenerator(worker_id=1).next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(worker_id=1)
        assert len({gen.next_id() for _ in range(1000)}) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(worker_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_clock_backwards_still_increasing(self, monkeypatch) -> None:
        gen = SnowflakeIdGenerator(worker_id=1)
        first = int(gen.next_id())
        monkeypatch.setattr(gen, "_current_ms", lambda: gen._last_timestamp_ms - 50)
        assert int(gen.next_id()) > first

    def test_worker_id_bounds(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(worker_id=1024)

    def test_fixed_width(self) -> None:
        assert len(SnowflakeIdGenerator(worker_id=1).next_id()) == 19

    def test_text_order_across_digit_boundary(self, monkeypatch) -> None:
        gen = SnowflakeIdGenerator(worker_id=1)
        ticks = iter([gen._EPOCH_MS + 1, gen._EPOCH_MS + 1000])
        monkeypatch.setattr(gen, "_current_ms", lambda: next(ticks))
        first, second = gen.next_id(), gen.next_id()
        assert len(str(int(first))) < len(str(int(second)))
        assert first < second
        assert sorted([second, first]) == [first, second]

    def test_event_id_prefix(self) -> None:
        assert generate_event_id().startswith("evt_")


class TestDatetimeUtils:
    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo == UTC

    def test_ensure_utc_naive(self) -> None:
        assert ensure_utc(datetime(2026, 1, 1, 9)).tzinfo == UTC

    def test_ensure_utc_converts(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        assert ensure_utc(datetime(2026, 1, 1, 9, tzinfo=plus_two)).hour == 7
