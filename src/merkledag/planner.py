"""Chunk count and indirection height for a file of a given length."""

from __future__ import annotations

from dataclasses import dataclass

from . import DEFAULT_CHUNK_SIZE, DEFAULT_FANOUT
from .errors import ConfigError


@dataclass(frozen=True)
class ChunkPlan:
    """How a file of `length` bytes is laid out as leaves and indirect objects."""

    length: int
    chunk_size: int
    fanout: int
    num_chunks: int
    height: int  # 0 for a single leaf

    @property
    def is_single_leaf(self) -> bool:
        return self.height == 0

    @property
    def capacity(self) -> int:
        """Bytes addressable by a tree of this height."""
        return self.chunk_size * self.fanout**self.height


def indirection_height(num_chunks: int, fanout: int) -> int:
    """Smallest h >= 1 such that fanout**h >= num_chunks.

    An exact power of the fan-out fills the tree completely and does not get
    an extra level: 4096 chunks at fan-out 4096 is height 1, 4097 is height 2.
    """
    height = 1
    capacity = fanout
    while capacity < num_chunks:
        capacity *= fanout
        height += 1
    return height


def plan_chunks(
    length: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    fanout: int = DEFAULT_FANOUT,
) -> ChunkPlan:
    """Compute the chunk plan for a file of `length` bytes."""
    if length < 0:
        raise ConfigError(f"file length must be non-negative, got {length}")
    if chunk_size < 1:
        raise ConfigError(f"chunk size must be at least 1, got {chunk_size}")
    if fanout < 2:
        raise ConfigError(f"fan-out must be at least 2, got {fanout}")

    num_chunks = -(-length // chunk_size)
    height = 0 if num_chunks <= 1 else indirection_height(num_chunks, fanout)
    return ChunkPlan(
        length=length,
        chunk_size=chunk_size,
        fanout=fanout,
        num_chunks=num_chunks,
        height=height,
    )
