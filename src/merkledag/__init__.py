"""Merkle DAG - Content-addressed object graphs for file and directory trees."""

__version__ = "0.1.0"

# Chunking defaults
DEFAULT_CHUNK_SIZE = 256 * 1024
DEFAULT_FANOUT = 4096
DEFAULT_HASH = "sha256"

# Directory and file constants
MDAG_DIR = ".merkledag"
CONFIG_FILE = "config.json"
OBJECTS_DIR = "objects"
LANCEDB_DIR = "lancedb"

from .builder import AddStats, DagBuilder, add  # noqa: E402
from .codec import DagObject, Link, LinkKind  # noqa: E402
from .errors import (  # noqa: E402
    ConfigError,
    DagError,
    SerializationError,
    StoreWriteError,
    UnsupportedNodeError,
)

__all__ = [
    "add",
    "AddStats",
    "DagBuilder",
    "DagObject",
    "Link",
    "LinkKind",
    "DagError",
    "ConfigError",
    "SerializationError",
    "StoreWriteError",
    "UnsupportedNodeError",
]
