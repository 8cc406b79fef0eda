"""Tests for hb_common.id_generator and hb_common.datetime_utils."""

from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from src.hb_common.datetime_utils import ms_to_datetime, now_ms, utc_now
from src.hb_common.id_generator import ID_WIDTH, SnowflakeIdGenerator


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        assert isinstance(SnowflakeIdGenerator(node_id=1).next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_clock_step_back_keeps_increasing(self) -> None:
        gen = SnowflakeIdGenerator(node_id=2)
        with patch.object(gen, "_clock_ms", return_value=1_800_000_000_000):
            first = int(gen.next_id())
        with patch.object(gen, "_clock_ms", return_value=1_799_999_999_000):
            second = int(gen.next_id())
        assert second > first

    def test_string_order_matches_numeric_order_across_digit_boundary(self) -> None:
        gen = SnowflakeIdGenerator(node_id=3)
        # ~2030 still fits 18 digits unpadded; ~2033 needs 19.
        with patch.object(gen, "_clock_ms", return_value=1_904_067_200_000):
            earlier = gen.next_id()
        with patch.object(gen, "_clock_ms", return_value=2_004_067_200_000):
            later = gen.next_id()
        assert len(earlier) == len(later) == ID_WIDTH
        assert earlier.startswith("0")
        assert earlier < later
        assert int(earlier) < int(later)

    def test_node_id_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(node_id=1024)


class TestTime:
    def test_utc_now_is_aware(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC

    def test_now_ms_matches_wall_clock(self) -> None:
        assert abs(now_ms() - int(utc_now().timestamp() * 1000)) < 1000

    def test_ms_to_datetime(self) -> None:
        assert ms_to_datetime(0) == datetime(1970, 1, 1, tzinfo=UTC)
