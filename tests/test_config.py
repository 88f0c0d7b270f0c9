"""Tests for environment-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from fast_recall.config import DEFAULT_LIMIT, Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.cache_size == 1000
        assert settings.cache_max_age == 86400
        assert settings.default_limit == DEFAULT_LIMIT
        assert settings.use_index is True

    def test_environment_overrides(self, tmp_path):
        settings = Settings.from_env(
            {
                "FAST_RECALL_HOME": str(tmp_path),
                "FAST_RECALL_CACHE_SIZE": "50",
                "FAST_RECALL_CACHE_MAX_AGE": "3600",
                "FAST_RECALL_DEFAULT_LIMIT": "7",
                "FAST_RECALL_USE_INDEX": "off",
            }
        )
        assert settings.home == tmp_path
        assert settings.cache_size == 50
        assert settings.cache_max_age == 3600.0
        assert settings.default_limit == 7
        assert settings.use_index is False

    def test_invalid_boolean_raises(self):
        with pytest.raises(ValueError):
            Settings.from_env({"FAST_RECALL_USE_INDEX": "maybe"})

    def test_snapshot_paths(self, tmp_path):
        settings = Settings(home=tmp_path)
        assert settings.documents_path == tmp_path / "documents.json"
        assert settings.index_path == tmp_path / "index.json"
        assert settings.cache_path == tmp_path / "cache.json"

    def test_with_home(self, tmp_path):
        settings = Settings().with_home(tmp_path / "elsewhere")
        assert settings.home == Path(tmp_path / "elsewhere")
