"""Bottom-up construction of the object graph for a file or directory tree."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Literal, cast

from . import DEFAULT_CHUNK_SIZE, DEFAULT_FANOUT
from .codec import DagObject, Link, LinkKind, encode_object
from .errors import ConfigError, DagError, StoreWriteError, UnsupportedNodeError
from .hasher import Hasher, digest_bytes
from .node import Dir, File, Node, NodeType
from .planner import plan_chunks
from .store import KVStore

logger = logging.getLogger(__name__)

ObjectRole = Literal["leaf", "indirect", "tree"]


@dataclass
class AddStats:
    """Counts accumulated while adding a tree."""

    objects_written: int = 0
    bytes_written: int = 0  # Encoded bytes handed to the store
    leaves: int = 0
    indirects: int = 0
    trees: int = 0
    files: int = 0
    directories: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_object(self, role: ObjectRole, encoded_size: int) -> None:
        with self._lock:
            self.objects_written += 1
            self.bytes_written += encoded_size
            if role == "leaf":
                self.leaves += 1
            elif role == "indirect":
                self.indirects += 1
            else:
                self.trees += 1

    def record_node(self, node_type: NodeType) -> None:
        with self._lock:
            if node_type is NodeType.FILE:
                self.files += 1
            else:
                self.directories += 1


class DagBuilder:
    """Builds and persists the objects for one tree at a time.

    Every object is encoded, hashed and written to the store as soon as it
    is complete, before its parent can reference it. Failures propagate
    unchanged; objects written before the failure stay in the store.
    """

    def __init__(
        self,
        store: KVStore,
        hasher: Hasher,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        fanout: int = DEFAULT_FANOUT,
        workers: int = 1,
    ):
        if chunk_size < 1:
            raise ConfigError(f"chunk size must be at least 1, got {chunk_size}")
        if fanout < 2:
            raise ConfigError(f"fan-out must be at least 2, got {fanout}")
        if workers < 1:
            raise ConfigError(f"workers must be at least 1, got {workers}")
        if workers > 1 and not callable(getattr(hasher, "new", None)):
            raise ConfigError("parallel builds need a hasher with a new() method")
        self.store = store
        self.hasher = hasher
        self.chunk_size = chunk_size
        self.fanout = fanout
        self.workers = workers
        self.stats = AddStats()

    def add(self, node: Node) -> bytes:
        """Persist the whole tree rooted at `node` and return its root digest."""
        _, digest = self._build_node(node, self.hasher, parallel=self.workers > 1)
        logger.info(
            "Added %s: root %s (%d objects, %d bytes)",
            node.name() or "<root>",
            digest.hex(),
            self.stats.objects_written,
            self.stats.bytes_written,
        )
        return digest

    def _build_node(
        self, node: Node, hasher: Hasher, parallel: bool = False
    ) -> tuple[DagObject, bytes]:
        node_type = node.type()
        if node_type is NodeType.FILE:
            return self.build_file(cast(File, node), hasher)
        if node_type is NodeType.DIR:
            return self.build_dir(cast(Dir, node), hasher, parallel=parallel)
        raise UnsupportedNodeError(node.name(), node_type)

    def _persist(self, obj: DagObject, hasher: Hasher, role: ObjectRole) -> bytes:
        encoded = encode_object(obj)
        digest = digest_bytes(hasher, encoded)
        try:
            self.store.put(digest, encoded)
        except DagError:
            raise
        except Exception as e:
            raise StoreWriteError(digest, str(e) or type(e).__name__) from e
        self.stats.record_object(role, len(encoded))
        logger.debug("Stored %s %s (%d bytes)", role, digest.hex()[:16], len(encoded))
        return digest

    # File path

    def build_file(self, file: File, hasher: Hasher | None = None) -> tuple[DagObject, bytes]:
        """Build the leaf or indirect tree for a file's content."""
        hasher = hasher or self.hasher
        self.stats.record_node(NodeType.FILE)
        data = file.bytes()
        plan = plan_chunks(len(data), self.chunk_size, self.fanout)

        if plan.is_single_leaf:
            leaf = DagObject.leaf(data)
            return leaf, self._persist(leaf, hasher, "leaf")

        obj, digest, _ = self._build_level(data, 0, plan.height, hasher)
        return obj, digest

    def _build_level(
        self, data: bytes, offset: int, height: int, hasher: Hasher
    ) -> tuple[DagObject, bytes, int]:
        """Build the subtree covering data[offset:] up to this level's capacity.

        Returns the object, its digest and the number of bytes it covers.
        """
        remaining = len(data) - offset
        if height == 1 and remaining <= self.chunk_size:
            leaf = DagObject.leaf(data[offset:])
            return leaf, self._persist(leaf, hasher, "leaf"), remaining

        links: list[Link] = []
        kinds: list[LinkKind] = []
        consumed = 0
        for _ in range(self.fanout):
            pos = offset + consumed
            if pos >= len(data):
                break
            if height > 1:
                child, child_digest, n = self._build_level(data, pos, height - 1, hasher)
                kind = LinkKind.BLOB if child.is_leaf else LinkKind.LINK
            else:
                chunk = data[pos : pos + self.chunk_size]
                child_digest = self._persist(DagObject.leaf(chunk), hasher, "leaf")
                n = len(chunk)
                kind = LinkKind.BLOB
            links.append(Link(name="", hash=child_digest, size=n))
            kinds.append(kind)
            consumed += n

        obj = DagObject(links=tuple(links), kinds=tuple(kinds))
        return obj, self._persist(obj, hasher, "indirect"), consumed

    # Directory path

    def build_dir(
        self, directory: Dir, hasher: Hasher | None = None, parallel: bool = False
    ) -> tuple[DagObject, bytes]:
        """Build the tree object for a directory and everything beneath it."""
        hasher = hasher or self.hasher
        self.stats.record_node(NodeType.DIR)

        children = list(directory.iter_children())
        if parallel and len(children) > 1:
            results = self._build_children_parallel(children, hasher)
        else:
            results = [self._build_node(child, hasher) for child in children]

        links: list[Link] = []
        kinds: list[LinkKind] = []
        for child, (child_obj, child_digest) in zip(children, results):
            if child.type() is NodeType.DIR:
                kind = LinkKind.TREE
            else:
                kind = LinkKind.BLOB if child_obj.is_leaf else LinkKind.LINK
            # Directory sizes are taken as reported, not recomputed
            links.append(Link(name=child.name(), hash=child_digest, size=child.size()))
            kinds.append(kind)

        tree = DagObject(links=tuple(links), kinds=tuple(kinds))
        return tree, self._persist(tree, hasher, "tree")

    def _build_children_parallel(
        self, children: list[Node], hasher: Hasher
    ) -> list[tuple[DagObject, bytes]]:
        """Build sibling subtrees concurrently, one hasher per branch.

        Results come back in the children's original order.
        """
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [
                executor.submit(self._build_node, child, hasher.new()) for child in children
            ]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise


def add(
    store: KVStore,
    node: Node,
    hasher: Hasher,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    fanout: int = DEFAULT_FANOUT,
    workers: int = 1,
) -> bytes:
    """Persist the tree rooted at `node` into `store` and return its root digest."""
    builder = DagBuilder(store, hasher, chunk_size=chunk_size, fanout=fanout, workers=workers)
    return builder.add(node)
