"""Tests for chunk count and indirection height planning."""

import pytest

from merkledag import DEFAULT_CHUNK_SIZE, DEFAULT_FANOUT
from merkledag.errors import ConfigError
from merkledag.planner import indirection_height, plan_chunks

C = DEFAULT_CHUNK_SIZE
F = DEFAULT_FANOUT


class TestPlanChunks:
    """Chunk counts for the default chunk size."""

    @pytest.mark.parametrize(
        "length,num_chunks,height",
        [
            (0, 0, 0),
            (1, 1, 0),
            (C, 1, 0),
            (C + 1, 2, 1),
            (C * 3 + 1, 4, 1),
        ],
    )
    def test_small_files(self, length: int, num_chunks: int, height: int):
        plan = plan_chunks(length)
        assert plan.num_chunks == num_chunks
        assert plan.height == height
        assert plan.is_single_leaf == (height == 0)

    def test_defaults(self):
        """256 KiB chunks with at most 4096 links per object."""
        plan = plan_chunks(10)
        assert plan.chunk_size == 262144
        assert plan.fanout == 4096

    def test_capacity_covers_length(self):
        for length in (C + 1, C * F, C * F + 1, C * F * 7):
            plan = plan_chunks(length)
            assert plan.capacity >= length


class TestHeightBoundary:
    """An exact power of the fan-out fills a tree without an extra level."""

    def test_exactly_fanout_chunks_is_one_level(self):
        plan = plan_chunks(C * F)
        assert plan.num_chunks == F
        assert plan.height == 1

    def test_one_chunk_past_fanout_adds_a_level(self):
        plan = plan_chunks(C * F + 1)
        assert plan.num_chunks == F + 1
        assert plan.height == 2

    def test_fanout_squared(self):
        assert plan_chunks(C * F * F).height == 2
        assert plan_chunks(C * F * F + 1).height == 3

    @pytest.mark.parametrize(
        "num_chunks,fanout,height",
        [
            (2, 2, 1),
            (3, 2, 2),
            (4, 2, 2),
            (5, 2, 3),
            (16, 4, 2),
            (17, 4, 3),
        ],
    )
    def test_indirection_height(self, num_chunks: int, fanout: int, height: int):
        assert indirection_height(num_chunks, fanout) == height


class TestInvalidPlans:
    def test_negative_length(self):
        with pytest.raises(ConfigError):
            plan_chunks(-1)

    def test_zero_chunk_size(self):
        with pytest.raises(ConfigError):
            plan_chunks(10, chunk_size=0)

    def test_fanout_of_one(self):
        with pytest.raises(ConfigError):
            plan_chunks(10, chunk_size=1, fanout=1)
