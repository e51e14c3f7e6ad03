"""Shared test fixtures for merkle-dag."""

import random

import pytest
from click.testing import CliRunner

from merkledag.codec import decode_object
from merkledag.hasher import HashlibHasher
from merkledag.store import MemoryStore


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def hasher() -> HashlibHasher:
    return HashlibHasher("sha256")


def random_bytes(n: int, seed: int = 0) -> bytes:
    """Deterministic, non-repeating test content."""
    return random.Random(seed).randbytes(n)


class FailingStore(MemoryStore):
    """Accepts `fail_after` puts, then raises on every later put."""

    def __init__(self, fail_after: int):
        super().__init__()
        self.fail_after = fail_after
        self.attempts = 0

    def put(self, key: bytes, value: bytes) -> None:
        self.attempts += 1
        if self.attempts > self.fail_after:
            raise OSError("disk full")
        super().put(key, value)


class OrderCheckingStore(MemoryStore):
    """Fails the test if an object is stored before any of its children."""

    def put(self, key: bytes, value: bytes) -> None:
        obj = decode_object(value)
        for link in obj.links:
            assert link.hash in self, f"parent {key.hex()[:8]} stored before child"
        super().put(key, value)
