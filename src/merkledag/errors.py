"""Exceptions raised while building a Merkle DAG."""


class DagError(Exception):
    """Base exception for Merkle DAG errors."""


class ConfigError(DagError):
    pass


class SerializationError(DagError):
    pass


class StoreWriteError(DagError):
    """A store rejected or failed to persist an object."""

    def __init__(self, key: bytes, message: str):
        super().__init__(f"failed to store object {key.hex()[:16]}: {message}")
        self.key = key


class UnsupportedNodeError(DagError):
    """A node reported a type other than FILE or DIR."""

    def __init__(self, name: str, node_type: object):
        super().__init__(f"unsupported node type {node_type!r} for {name!r}")
        self.name = name
        self.node_type = node_type
