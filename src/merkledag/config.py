"""Configuration management for Merkle DAG."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from . import CONFIG_FILE, DEFAULT_CHUNK_SIZE, DEFAULT_FANOUT, DEFAULT_HASH, LANCEDB_DIR, MDAG_DIR, OBJECTS_DIR


class DagConfig(BaseModel):
    """Configuration for building and storing a Merkle DAG."""

    version: int = 1
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    fanout: int = Field(default=DEFAULT_FANOUT, ge=2)
    hash_algorithm: str = DEFAULT_HASH
    store_backend: Literal["file", "lance", "memory"] = "file"
    workers: int = Field(default=1, ge=1)
    exclude_patterns: list[str] = Field(
        default=[
            ".git",
            "__pycache__",
            MDAG_DIR,
        ]
    )


# Store location for each persistent backend, relative to the project root
STORE_DIRS = {
    "file": Path(MDAG_DIR) / OBJECTS_DIR,
    "lance": Path(MDAG_DIR) / LANCEDB_DIR,
}


def get_mdag_dir(project_root: Path) -> Path:
    """Get the .merkledag directory path."""
    return project_root / MDAG_DIR


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return get_mdag_dir(project_root) / CONFIG_FILE


def get_store_path(project_root: Path, backend: str) -> Path | None:
    """Default store location for a backend, or None for in-memory."""
    relative = STORE_DIRS.get(backend)
    return project_root / relative if relative is not None else None


def load_config(project_root: Path) -> DagConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)
        config = DagConfig.model_validate(data)
    else:
        config = DagConfig()

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config


def save_config(config: DagConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


ENV_OVERRIDES = {
    "MDAG_CHUNK_SIZE": "chunk_size",
    "MDAG_FANOUT": "fanout",
    "MDAG_HASH": "hash_algorithm",
    "MDAG_STORE": "store_backend",
    "MDAG_WORKERS": "workers",
}


def _apply_env_overrides(config: DagConfig) -> DagConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    for env_name, key in ENV_OVERRIDES.items():
        if value := os.environ.get(env_name):
            data[key] = value

    # Values from the environment are strings; validation coerces and checks them
    return DagConfig.model_validate(data)
