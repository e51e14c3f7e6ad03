"""Integration tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from merkledag import MDAG_DIR
from merkledag.config import DagConfig, get_config_path, get_store_path, load_config, save_config


class TestConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(tmp_path)
        assert config.chunk_size == 262144
        assert config.fanout == 4096
        assert config.hash_algorithm == "sha256"
        assert config.store_backend == "file"
        assert config.workers == 1
        assert MDAG_DIR in config.exclude_patterns

    def test_save_and_load(self, tmp_path: Path):
        save_config(DagConfig(chunk_size=1024, fanout=16, store_backend="lance"), tmp_path)

        assert get_config_path(tmp_path).exists()
        config = load_config(tmp_path)
        assert config.chunk_size == 1024
        assert config.fanout == 16
        assert config.store_backend == "lance"

    def test_env_overrides(self, tmp_path: Path, monkeypatch):
        save_config(DagConfig(chunk_size=1024), tmp_path)
        monkeypatch.setenv("MDAG_CHUNK_SIZE", "4096")
        monkeypatch.setenv("MDAG_HASH", "blake2b")
        monkeypatch.setenv("MDAG_WORKERS", "3")

        config = load_config(tmp_path)
        assert config.chunk_size == 4096
        assert config.hash_algorithm == "blake2b"
        assert config.workers == 3

    def test_invalid_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MDAG_FANOUT", "1")
        with pytest.raises(ValidationError):
            load_config(tmp_path)

    def test_invalid_backend(self):
        with pytest.raises(ValidationError):
            DagConfig(store_backend="s3")

    def test_store_paths(self, tmp_path: Path):
        assert get_store_path(tmp_path, "file") == tmp_path / MDAG_DIR / "objects"
        assert get_store_path(tmp_path, "lance") == tmp_path / MDAG_DIR / "lancedb"
        assert get_store_path(tmp_path, "memory") is None
