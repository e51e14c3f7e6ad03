"""Write-only content-addressed stores for encoded objects."""

from __future__ import annotations

import os
import tempfile
import threading
from collections.abc import Iterator
from pathlib import Path
from typing import Literal, Protocol

import lancedb
import pyarrow as pa

from .errors import ConfigError

StoreBackend = Literal["memory", "file", "lance"]


class KVStore(Protocol):
    """Persistence for encoded objects keyed by their digest.

    put() must tolerate repeated identical writes and raise on failure.
    """

    def put(self, key: bytes, value: bytes) -> None: ...


class MemoryStore:
    """Dict-backed store. Safe for concurrent puts."""

    def __init__(self):
        self._objects: dict[bytes, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._objects[bytes(key)] = bytes(value)

    def get(self, key: bytes) -> bytes:
        return self._objects[key]

    def keys(self) -> set[bytes]:
        with self._lock:
            return set(self._objects)

    def __contains__(self, key: object) -> bool:
        return key in self._objects

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.keys())


class FileStore:
    """One file per object under `root`, sharded by the first hex byte."""

    def __init__(self, root: Path):
        self.root = root

    def path_for(self, key: bytes) -> Path:
        digest = key.hex()
        return self.root / digest[:2] / digest[2:]

    def put(self, key: bytes, value: bytes) -> None:
        target = self.path_for(key)
        if target.exists():
            return
        target.parent.mkdir(parents=True, exist_ok=True)

        # Write to a temp file in the same directory, then rename into place
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def keys(self) -> set[bytes]:
        if not self.root.exists():
            return set()
        return {
            bytes.fromhex(shard.name + entry.name)
            for shard in self.root.iterdir()
            if shard.is_dir()
            for entry in shard.iterdir()
            if not entry.name.startswith(".tmp-")
        }


class LanceStore:
    """LanceDB table of (hex key, encoded object) rows."""

    OBJECTS_TABLE = "objects"

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: lancedb.DBConnection | None = None
        self._table: lancedb.table.Table | None = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Initialize database connection."""
        self.db_path.mkdir(parents=True, exist_ok=True)
        self._db = lancedb.connect(str(self.db_path))

    def close(self) -> None:
        """Close database connection."""
        self._db = None
        self._table = None

    @property
    def db(self) -> lancedb.DBConnection:
        """Get the database connection, connecting if needed."""
        if self._db is None:
            self.connect()
        return self._db  # type: ignore

    def _get_objects_table(self) -> lancedb.table.Table:
        """Get or create the objects table."""
        if self._table is not None:
            return self._table

        if self.OBJECTS_TABLE in self.db.list_tables().tables:
            self._table = self.db.open_table(self.OBJECTS_TABLE)
        else:
            schema = pa.schema([
                pa.field("key", pa.string()),
                pa.field("value", pa.binary()),
            ])
            self._table = self.db.create_table(self.OBJECTS_TABLE, schema=schema)
        return self._table

    def put(self, key: bytes, value: bytes) -> None:
        hex_key = key.hex()
        with self._lock:
            table = self._get_objects_table()
            # Delete any existing row with the same key first
            table.delete(f"key = '{hex_key}'")
            table.add([{"key": hex_key, "value": bytes(value)}])

    def get(self, key: bytes) -> bytes | None:
        table = self._get_objects_table()
        rows = table.search().where(f"key = '{key.hex()}'", prefilter=True).to_list()
        if not rows:
            return None
        return rows[0]["value"]

    def count(self) -> int:
        """Count stored objects."""
        return self._get_objects_table().count_rows()


def open_store(backend: StoreBackend, path: Path | None = None) -> KVStore:
    """Create a store for the named backend."""
    if backend == "memory":
        return MemoryStore()
    if path is None:
        raise ConfigError(f"store backend {backend!r} requires a path")
    if backend == "file":
        return FileStore(path)
    if backend == "lance":
        store = LanceStore(path)
        store.connect()
        return store
    raise ConfigError(f"unknown store backend: {backend}")
