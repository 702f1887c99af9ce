"""
Unit tests for configuration loading.
"""

import logging

import pytest

from cms.docsync.config import ObservabilityConfig, SourceConfig, StoreConfig, SyncConfig


class TestSyncConfig:
    """Tests for SyncConfig.from_env and validation."""

    @pytest.fixture
    def env(self, monkeypatch):
        for name in (
            "CONTENT_TOKEN",
            "CONTENT_OVERLAY_DRAFTS",
            "CONTENT_WATCH_MODE",
            "CONTENT_DOCUMENT_TYPES",
            "CONTENT_API_HOST",
            "LOG_FORMAT",
        ):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("CONTENT_PROJECT_ID", "abc123")
        monkeypatch.setenv("CONTENT_DATASET", "production")
        return monkeypatch

    def test_defaults(self, env):
        config = SyncConfig.from_env()

        assert config.source.project_id == "abc123"
        assert config.source.dataset == "production"
        assert config.source.overlay_drafts is False
        assert config.source.watch_mode is False
        assert config.source.base_url == "https://abc123.api.sanity.io/v1"
        assert config.store.document_types == ()
        assert config.observability.log_format == "json"

    def test_flags_and_types(self, env):
        env.setenv("CONTENT_OVERLAY_DRAFTS", "true")
        env.setenv("CONTENT_WATCH_MODE", "TRUE")
        env.setenv("CONTENT_TOKEN", "sk-secret")
        env.setenv("CONTENT_DOCUMENT_TYPES", "post, author,,category")

        config = SyncConfig.from_env()

        assert config.source.overlay_drafts is True
        assert config.source.watch_mode is True
        assert config.store.document_types == ("post", "author", "category")

    def test_missing_project_id(self, env):
        env.delenv("CONTENT_PROJECT_ID")

        with pytest.raises(ValueError, match="CONTENT_PROJECT_ID"):
            SyncConfig.from_env()

    def test_missing_dataset(self, env):
        env.setenv("CONTENT_DATASET", "")

        with pytest.raises(ValueError, match="CONTENT_DATASET"):
            SyncConfig.from_env()

    def test_invalid_log_format(self, env):
        env.setenv("LOG_FORMAT", "xml")

        with pytest.raises(ValueError, match="LOG_FORMAT"):
            SyncConfig.from_env()

    def test_overlay_without_token_warns(self, caplog):
        config = SyncConfig(source=SourceConfig(project_id="p", dataset="d", overlay_drafts=True))

        with caplog.at_level(logging.WARNING, logger="cms.docsync.config"):
            config.validate()

        assert "no token" in caplog.text

    def test_log_config_redacts_token(self, caplog):
        config = SyncConfig(
            source=SourceConfig(project_id="p", dataset="d", token="sk-secret"),
            store=StoreConfig(),
            observability=ObservabilityConfig(),
        )

        with caplog.at_level(logging.INFO, logger="cms.docsync.config"):
            config.log_config()

        record = caplog.records[-1]
        assert record.token_set is True
        assert "sk-secret" not in str(record.__dict__)
