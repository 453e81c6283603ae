"""Tests for config dataclasses and environment loading."""

from datetime import timedelta

import pytest

from resonance.config import AppConfig, SaveConfig, SessionConfig, SupabaseConfig
from resonance.hub.constants import NORMALIZE_CAP


class TestDefaults:
    def test_app_config_defaults(self):
        config = AppConfig()
        assert config.supabase.configured is False
        assert config.supabase.resonance_table == "emoji_media"
        assert config.save.strategy == "per_row"
        assert config.server.port == 8010

    def test_session_defaults(self):
        config = SessionConfig()
        assert config.recency_window == timedelta(days=2)
        assert config.normalize_cap == NORMALIZE_CAP == 30
        assert config.autofill_defaults["voice"] == 4
        assert config.autofill_fallback == 5

    def test_autofill_table_is_per_instance(self):
        first = SessionConfig()
        first.autofill_defaults["voice"] = 1
        assert SessionConfig().autofill_defaults["voice"] == 4


class TestSupabaseConfig:
    def test_rest_url_strips_trailing_slash(self):
        assert SupabaseConfig(url="https://x.supabase.co/").rest_url == "https://x.supabase.co/rest/v1"

    @pytest.mark.parametrize("url,key,expected", [("u", "k", True), ("u", "", False), ("", "k", False)])
    def test_configured(self, url, key, expected):
        assert SupabaseConfig(url=url, anon_key=key).configured is expected


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", " https://x.supabase.co ")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("RESONANCE_TABLE", "links")
        monkeypatch.setenv("RESONANCE_SAVE_STRATEGY", "bulk")
        monkeypatch.setenv("RESONANCE_BULK_SAVE_URL", "https://api.example.com/save")

        config = AppConfig.from_env()

        assert config.supabase.url == "https://x.supabase.co"
        assert config.supabase.configured is True
        assert config.supabase.resonance_table == "links"
        assert config.supabase.semantics_table == "media_semantics"
        assert config.save.strategy == "bulk"
        assert config.save.bulk_url == "https://api.example.com/save"

    def test_missing_environment(self, monkeypatch):
        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "RESONANCE_SAVE_STRATEGY"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.supabase.configured is False
        assert config.save.strategy == "per_row"

    def test_invalid_strategy_raises(self, monkeypatch):
        monkeypatch.setenv("RESONANCE_SAVE_STRATEGY", "parallel")
        with pytest.raises(ValueError, match="strategy"):
            SaveConfig.from_env()
