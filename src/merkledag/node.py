"""File and directory nodes consumed by the DAG builder."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Protocol


class NodeType(Enum):
    FILE = "file"
    DIR = "dir"


class Node(Protocol):
    """A named entry in a tree with an explicit type discriminant."""

    def type(self) -> NodeType: ...

    def name(self) -> str: ...

    def size(self) -> int: ...


class File(Node, Protocol):
    def bytes(self) -> bytes: ...


class Dir(Node, Protocol):
    def iter_children(self) -> Iterator[Node]:
        """Yield child nodes in a deterministic order."""
        ...


class MemoryFile:
    """A file held entirely in memory."""

    def __init__(self, name: str, data: bytes):
        self._name = name
        self._data = bytes(data)

    def type(self) -> NodeType:
        return NodeType.FILE

    def name(self) -> str:
        return self._name

    def size(self) -> int:
        return len(self._data)

    def bytes(self) -> bytes:
        return self._data

    def __repr__(self) -> str:
        return f"MemoryFile({self._name!r}, {len(self._data)} bytes)"


class MemoryDir:
    """A directory whose children are given up front, iterated in insertion order."""

    def __init__(self, name: str, children: Iterable[Node] = (), size: int | None = None):
        self._name = name
        self._children = list(children)
        self._size = size

    def type(self) -> NodeType:
        return NodeType.DIR

    def name(self) -> str:
        return self._name

    def size(self) -> int:
        if self._size is not None:
            return self._size
        return sum(child.size() for child in self._children)

    def iter_children(self) -> Iterator[Node]:
        return iter(self._children)

    def __repr__(self) -> str:
        return f"MemoryDir({self._name!r}, {len(self._children)} children)"


def should_exclude(path: Path, exclude_patterns: list[str]) -> bool:
    """Check if path matches any exclusion pattern."""
    name = path.name
    for pattern in exclude_patterns:
        if fnmatch.fnmatch(name, pattern):
            return True
    return False


class FsFile:
    """A regular file on disk. Content is read on each call to bytes().

    The size is read once and kept in `size_cache`, which is shared by every
    node created from the same root.
    """

    def __init__(self, path: Path, size_cache: dict[Path, int] | None = None):
        self.path = path
        self._sizes = size_cache if size_cache is not None else {}

    def type(self) -> NodeType:
        return NodeType.FILE

    def name(self) -> str:
        return self.path.name

    def size(self) -> int:
        size = self._sizes.get(self.path)
        if size is None:
            size = self._sizes[self.path] = self._read_size()
        return size

    def _read_size(self) -> int:
        return self.path.stat().st_size

    def bytes(self) -> bytes:
        return self.path.read_bytes()

    def __repr__(self) -> str:
        return f"FsFile({str(self.path)!r})"


class FsDir:
    """A directory on disk.

    Children are yielded in sorted name order so that the same tree always
    produces the same root digest. Symlinks, special files and entries
    matching an exclude pattern are skipped. Sizes of files and directories
    are cached by path across the whole tree, so each file is stat'd once.
    """

    def __init__(
        self,
        path: Path,
        exclude_patterns: list[str] | None = None,
        size_cache: dict[Path, int] | None = None,
    ):
        self.path = path
        self.exclude_patterns = list(exclude_patterns or [])
        self._sizes = size_cache if size_cache is not None else {}

    def type(self) -> NodeType:
        return NodeType.DIR

    def name(self) -> str:
        return self.path.name

    def size(self) -> int:
        """Total size of the included regular files beneath this directory."""
        size = self._sizes.get(self.path)
        if size is None:
            size = self._sizes[self.path] = sum(child.size() for child in self.iter_children())
        return size

    def iter_children(self) -> Iterator[Node]:
        for child in sorted(self.path.iterdir()):
            if child.is_symlink() or should_exclude(child, self.exclude_patterns):
                continue
            if child.is_dir():
                yield FsDir(child, self.exclude_patterns, self._sizes)
            elif child.is_file():
                yield FsFile(child, self._sizes)

    def __repr__(self) -> str:
        return f"FsDir({str(self.path)!r})"


def from_path(path: Path, exclude_patterns: list[str] | None = None) -> FsFile | FsDir:
    """Wrap a filesystem path as a node."""
    if path.is_dir():
        return FsDir(path, exclude_patterns)
    if path.is_file():
        return FsFile(path)
    raise FileNotFoundError(f"not a regular file or directory: {path}")
