# tests/unit/cache/test_unit_cache_factory.py — v1
"""Tests for cache/cache_factory.py and cache/fingerprint.py."""

from __future__ import annotations

import pytest

from quillpress.cache.cache_factory import create_cache_store
from quillpress.cache.fingerprint import compute_config_hash, compute_content_hash
from quillpress.cache.json_store import JsonCacheStore
from quillpress.cache.sqlite_store import SqliteCacheStore


class TestCreateCacheStore:
    def test_default_is_json(self):
        assert isinstance(create_cache_store(), JsonCacheStore)

    def test_json_backend(self, make_settings, tmp_path):
        store = create_cache_store(make_settings(cache_backend="json"))
        assert isinstance(store, JsonCacheStore)
        assert store.location == str(tmp_path / ".cache" / "cache.json")

    def test_sqlite_backend_gets_db_suffix(self, make_settings):
        store = create_cache_store(make_settings(cache_backend="sqlite"))
        assert isinstance(store, SqliteCacheStore)
        assert store.location.endswith("cache.json.db")


class TestFingerprint:
    def test_content_hash_is_sha256(self):
        digest = compute_content_hash(b"hello")
        assert len(digest) == 64
        assert digest == compute_content_hash(b"hello")
        assert digest != compute_content_hash(b"hello!")

    def test_config_hash_stable_across_option_order(self):
        a = compute_config_hash([("md", "1", {"x": 1, "y": 2})])
        b = compute_config_hash([("md", "1", {"y": 2, "x": 1})])
        assert a == b

    @pytest.mark.parametrize("other", [
        [("md", "2", {"x": 1})],
        [("md", "1", {"x": 2})],
        [("md", "1", {"x": 1}), ("tags", "1", {})],
    ])
    def test_config_hash_changes(self, other):
        assert compute_config_hash([("md", "1", {"x": 1})]) != compute_config_hash(other)

    def test_config_hash_depends_on_order(self):
        a = compute_config_hash([("a", "1", {}), ("b", "1", {})])
        b = compute_config_hash([("b", "1", {}), ("a", "1", {})])
        assert a != b
