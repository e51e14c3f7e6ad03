"""Resettable digest functions used to address objects."""

from __future__ import annotations

import hashlib
from typing import Protocol

from . import DEFAULT_HASH
from .errors import ConfigError


class Hasher(Protocol):
    """A reusable digest function. Reset before each independent digest.

    new() is only needed for parallel builds, where each branch hashes with
    its own instance.
    """

    def reset(self) -> None: ...

    def write(self, data: bytes) -> None: ...

    def sum(self) -> bytes: ...

    def new(self) -> Hasher:
        """Return a fresh instance of the same algorithm."""
        ...


class HashlibHasher:
    """Hasher backed by a hashlib algorithm."""

    def __init__(self, algorithm: str = DEFAULT_HASH):
        # shake_* need an explicit digest length
        if algorithm not in hashlib.algorithms_available or algorithm.startswith("shake"):
            raise ConfigError(f"unknown hash algorithm: {algorithm}")
        self.algorithm = algorithm
        self._h = hashlib.new(algorithm)

    @property
    def digest_size(self) -> int:
        return self._h.digest_size

    def reset(self) -> None:
        self._h = hashlib.new(self.algorithm)

    def write(self, data: bytes) -> None:
        self._h.update(data)

    def sum(self) -> bytes:
        return self._h.digest()

    def new(self) -> HashlibHasher:
        return HashlibHasher(self.algorithm)

    def __repr__(self) -> str:
        return f"HashlibHasher({self.algorithm!r})"


def digest_bytes(hasher: Hasher, data: bytes) -> bytes:
    """Compute a standalone digest of data with a reset hasher."""
    hasher.reset()
    hasher.write(data)
    return hasher.sum()
