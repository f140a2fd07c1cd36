"""Tests for the SpecContentStore module."""

from __future__ import annotations

from pathlib import Path

import pytest

from oasync.cache import SpecContentStore
from oasync.cache.store import CONTENT_DIRNAME


@pytest.fixture()
def store(tmp_path: Path):
    s = SpecContentStore(tmp_path)
    yield s
    s.close()


class TestSpecContentStore:
    def test_put_and_get(self, store: SpecContentStore) -> None:
        store.put("api.yaml", "hash1", "openapi: 3.0.0")
        assert store.get("api.yaml", "hash1") == "openapi: 3.0.0"

    def test_hash_mismatch_returns_none(self, store: SpecContentStore) -> None:
        store.put("api.yaml", "hash1", "openapi: 3.0.0")
        assert store.get("api.yaml", "hash2") is None

    def test_unknown_source(self, store: SpecContentStore) -> None:
        assert store.get("missing.yaml", "hash1") is None

    def test_put_replaces(self, store: SpecContentStore) -> None:
        store.put("api.yaml", "hash1", "one")
        store.put("api.yaml", "hash2", "two")
        assert store.get("api.yaml", "hash1") is None
        assert store.get("api.yaml", "hash2") == "two"

    def test_clear(self, store: SpecContentStore) -> None:
        store.put("a", "h", "1")
        store.put("b", "h", "2")
        store.clear()
        assert store.get("a", "h") is None
        assert store.get("b", "h") is None

    def test_lives_in_project_directory(self, tmp_path: Path) -> None:
        with SpecContentStore(tmp_path) as s:
            s.put("x", "h", "text")
            assert s.directory == tmp_path / CONTENT_DIRNAME
        assert (tmp_path / CONTENT_DIRNAME).is_dir()

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        with SpecContentStore(tmp_path) as s:
            s.put("x", "h", "text")
        with SpecContentStore(tmp_path) as s:
            assert s.get("x", "h") == "text"
