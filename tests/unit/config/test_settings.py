# tests/unit/config/test_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from dociium.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_upstreams(self):
        s = Settings(_env_file=None)
        assert s.docs_base_url == "https://docs.rs"
        assert s.registry_base_url == "https://crates.io/api/v1"

    def test_default_cache(self):
        s = Settings(_env_file=None)
        assert s.cache_enabled_disk is True
        assert s.memory_max_entries == 1000
        assert s.doc_ttl_s == 7 * 24 * 3600
        assert s.negative_ttl_s == 300

    def test_default_import_cache(self):
        s = Settings(_env_file=None)
        assert s.import_cache_ttl_s == 300
        assert s.import_cache_max_entries == 512

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "text"
        assert s.log_file is None


class TestSettingsValidation:
    def test_negative_ttl_must_be_shorter_than_doc_ttl(self):
        with pytest.raises(ConfigurationError, match="NEGATIVE_TTL_S"):
            Settings(_env_file=None, doc_ttl_s=100, negative_ttl_s=100)

    def test_import_ttl_must_be_shorter_than_doc_ttl(self):
        with pytest.raises(ConfigurationError, match="IMPORT_CACHE_TTL_S"):
            Settings(_env_file=None, doc_ttl_s=400, negative_ttl_s=10, import_cache_ttl_s=500)

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="TIMEOUT"):
            Settings(_env_file=None, http_timeout_s=0)

    @pytest.mark.parametrize("field", ["memory_max_entries", "max_symbols", "max_search_limit"])
    def test_positive_fields(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_negative_retries_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, http_max_retries=-1)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_trailing_slash_stripped(self):
        s = Settings(_env_file=None, docs_base_url="https://mirror.example/")
        assert s.docs_base_url == "https://mirror.example"


class TestSettingsSources:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DOCIIUM_MAX_SEARCH_LIMIT", "50")
        assert Settings(_env_file=None).max_search_limit == 50

    def test_env_file(self, tmp_path: Path):
        env = tmp_path / ".env"
        env.write_text("DOCIIUM_LOG_LEVEL=DEBUG\nUNRELATED=1\n")
        s = Settings(_env_file=env)
        assert s.log_level == "DEBUG"

    def test_cache_root_expands_user(self):
        s = Settings(_env_file=None, cache_dir=Path("~/somewhere"))
        assert "~" not in str(s.cache_root)

    def test_load_settings_overrides(self, tmp_path: Path):
        s = load_settings(cache_dir=tmp_path, cache_enabled_disk=False)
        assert s.cache_dir == tmp_path
        assert s.cache_enabled_disk is False
