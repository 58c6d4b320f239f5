"""
Tests for settings, source configuration and the config repository.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from sheetsync.domain.config import DuplicateHeaderPolicy, SourceConfig, SyncMode, SyncSettings
from sheetsync.domain.errors import ConfigError
from sheetsync.infrastructure.config import ConfigRepository, SettingsManager
from sheetsync.infrastructure.config.repository import _strip_comments


class TestSyncSettings:

    def test_defaults(self):
        settings = SyncSettings()
        assert settings.db_path == "output/sheetsync.db"
        assert settings.duplicate_headers is DuplicateHeaderPolicy.REJECT
        assert settings.lock_timeout_seconds == 600
        assert settings.numeric_log_level == logging.INFO

    def test_log_level_normalized(self):
        assert SyncSettings(log_level=" debug ").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"log_level": "LOUD"},
            {"lock_timeout_seconds": 5},
            {"lock_timeout_seconds": 100000},
            {"default_token_column": "A1"},
            {"duplicate_headers": "first_wins"},
            {"unknown_option": True},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            SyncSettings(**kwargs)

    def test_long_lock_timeout_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            SyncSettings(lock_timeout_seconds=7200)
        assert "7200" in caplog.text


class TestSourceConfig:

    def test_defaults(self):
        source = SourceConfig(id="main", workbook_path="events.xlsx")
        assert source.sheet_name == "Events"
        assert source.header_row == 1
        assert source.data_start_row == 2
        assert source.token_column == "A"
        assert source.sync_mode is SyncMode.MANUAL
        assert source.display_name == "main"

    def test_token_column_uppercased(self):
        assert SourceConfig(id="s", workbook_path="x.xlsx", token_column="b").token_column == "B"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"id": "has space"},
            {"id": ""},
            {"header_row": 3, "data_start_row": 3},
            {"data_start_row": 1},
            {"token_column": "7"},
            {"sync_mode": "hourly"},
        ],
    )
    def test_invalid(self, kwargs):
        values = {"id": "main", "workbook_path": "events.xlsx", **kwargs}
        with pytest.raises(ValidationError):
            SourceConfig(**values)


class TestConfigRepository:

    def test_missing_settings_are_defaults(self, tmp_path):
        assert ConfigRepository(tmp_path).load_settings() == SyncSettings()

    def test_load_settings(self, tmp_path):
        (tmp_path / "sheetsync.json").write_text(json.dumps({"duplicate_headers": "last_wins"}))
        settings = ConfigRepository(tmp_path).load_settings()
        assert settings.duplicate_headers is DuplicateHeaderPolicy.LAST_WINS

    def test_load_jsonc_settings(self, tmp_path):
        (tmp_path / "sheetsync.jsonc").write_text(
            '{\n  // database\n  "db_path": "data/events.db", /* inline */\n  "log_level": "warning"\n}\n'
        )
        settings = ConfigRepository(tmp_path).load_settings()
        assert settings.db_path == "data/events.db"
        assert settings.log_level == "WARNING"

    def test_invalid_settings(self, tmp_path):
        (tmp_path / "sheetsync.json").write_text(json.dumps({"lock_timeout_seconds": 1}))
        with pytest.raises(ConfigError):
            ConfigRepository(tmp_path).load_settings()

    def test_malformed_json(self, tmp_path):
        (tmp_path / "sheetsync.json").write_text("{not json")
        with pytest.raises(ConfigError):
            ConfigRepository(tmp_path).load_settings()

    def test_save_and_reload(self, tmp_path):
        repo = ConfigRepository(tmp_path / "config")
        repo.save_settings(SyncSettings(lock_timeout_seconds=120))
        assert repo.load_settings().lock_timeout_seconds == 120

    def test_load_sources(self, tmp_path):
        (tmp_path / "sources.json").write_text(
            json.dumps({"sources": [{"id": "a", "workbook_path": "a.xlsx", "sync_mode": "auto"}]})
        )
        (source,) = ConfigRepository(tmp_path).load_sources()
        assert source.sync_mode is SyncMode.AUTO

    def test_load_sources_list(self, tmp_path):
        (tmp_path / "sources.json").write_text(json.dumps([{"id": "a", "workbook_path": "a.xlsx"}, {"id": "b", "workbook_path": "b.xlsx"}]))
        assert [s.id for s in ConfigRepository(tmp_path).load_sources()] == ["a", "b"]

    def test_invalid_source_entry(self, tmp_path):
        (tmp_path / "sources.json").write_text(json.dumps([{"id": "bad id", "workbook_path": "a.xlsx"}]))
        with pytest.raises(ConfigError, match="index 0"):
            ConfigRepository(tmp_path).load_sources()

    def test_missing_sources_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ConfigRepository(tmp_path).load_sources()

    def test_strip_comments_keeps_strings(self):
        text = '{"url": "http://example.com/a", /* c */ "b": 1} // tail'
        assert json.loads(_strip_comments(text)) == {"url": "http://example.com/a", "b": 1}


class TestSettingsManager:

    def test_paths_resolve_against_project_dir(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "sheetsync.json").write_text(json.dumps({"log_file": "logs/sync.log"}))
        manager = SettingsManager(config_dir)
        assert manager.db_path == tmp_path / "output" / "sheetsync.db"
        assert manager.log_file == tmp_path / "logs" / "sync.log"

    def test_absolute_paths_kept(self, tmp_path):
        manager = SettingsManager(tmp_path / "config")
        assert manager.resolve_path(str(tmp_path / "x.db")) == tmp_path / "x.db"

    def test_settings_cached(self, tmp_path):
        manager = SettingsManager(tmp_path)
        first = manager.load_settings()
        (tmp_path / "sheetsync.json").write_text(json.dumps({"log_level": "ERROR"}))
        assert manager.load_settings() is first
        assert manager.load_settings(force_reload=True).log_level == "ERROR"
