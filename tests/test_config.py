"""Tests for settings, database configuration and the domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from mailsync.core.database.config import DatabaseConfig, get_config
from mailsync.core.models import SyncCursor
from mailsync.utils.config import SyncSettings, get_settings, reset_settings
from mailsync.utils.errors import InvalidConfigError

from .helpers import MailboxTestHelper


class TestSyncSettings:
    def test_defaults(self):
        settings = SyncSettings()

        assert settings.max_candidates == 50
        assert settings.folder_timeout == 180.0
        assert settings.max_retries == 2
        assert settings.retry_delay == 2.0
        assert settings.connect_timeout == 30.0
        assert settings.session_timeout == 180.0
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAILSYNC_MAX_CANDIDATES", "25")
        monkeypatch.setenv("MAILSYNC_RETRY_DELAY", "0.5")
        monkeypatch.setenv("MAILSYNC_LOG_LEVEL", "debug")

        settings = SyncSettings()

        assert settings.max_candidates == 25
        assert settings.retry_delay == 0.5
        assert settings.log_level == "DEBUG"

    def test_keyword_beats_environment(self, monkeypatch):
        monkeypatch.setenv("MAILSYNC_MAX_RETRIES", "5")

        assert SyncSettings(max_retries=1).max_retries == 1

    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_candidates", 0),
            ("max_retries", -1),
            ("retry_delay", -1.0),
            ("folder_timeout", 0),
            ("log_level", "LOUD"),
        ],
    )
    def test_validation(self, field, value):
        with pytest.raises(ValidationError):
            SyncSettings(**{field: value})

    def test_get_settings_singleton(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize(
        "name, value",
        [
            ("MAILSYNC_MAX_CANDIDATES", "0"),
            ("MAILSYNC_MAX_RETRIES", "-1"),
            ("MAILSYNC_FOLDER_TIMEOUT", "0"),
            ("MAILSYNC_LOG_LEVEL", "chatty"),
        ],
    )
    def test_out_of_range_environment_is_rejected(self, monkeypatch, name, value):
        """Test environment values go through the field validators"""
        monkeypatch.setenv(name, value)
        reset_settings()

        with pytest.raises(InvalidConfigError):
            get_settings()

    def test_bad_environment_raises_config_error(self, monkeypatch):
        monkeypatch.setenv("MAILSYNC_MAX_CANDIDATES", "lots")
        reset_settings()

        with pytest.raises(InvalidConfigError):
            get_settings()


class TestDatabaseConfig:
    def test_environment_defaults(self, monkeypatch):
        monkeypatch.setenv("DB_POOL_SIZE", "3")

        assert DatabaseConfig().pool_size == 3

    def test_validation(self):
        with pytest.raises(ValueError):
            DatabaseConfig(pool_size=0)
        with pytest.raises(ValueError):
            DatabaseConfig(query_timeout=0)

    def test_singleton(self):
        assert get_config() is get_config()


class TestMailboxConfig:
    def test_password_is_hidden(self):
        config = MailboxTestHelper.create_config()

        assert "app-password" not in repr(config)
        assert config.password.get_secret_value() == "app-password"

    def test_provider(self):
        assert MailboxTestHelper.create_config(username="Me@GMail.com").provider == "gmail.com"

    def test_frozen(self):
        config = MailboxTestHelper.create_config()

        with pytest.raises(ValidationError):
            config.host = "other.example.com"

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port):
        with pytest.raises(ValidationError):
            MailboxTestHelper.create_config(port=port)


class TestSyncCursor:
    def test_full_scan(self):
        cursor = SyncCursor("mbx-1")

        assert not cursor.is_incremental
        assert cursor.search_criteria() == "ALL"

    def test_since_uses_utc_day(self):
        """Test a local timestamp is converted to its UTC day"""
        local = datetime(2026, 3, 1, 1, 30, tzinfo=timezone(timedelta(hours=2)))

        assert SyncCursor("mbx-1", local).search_criteria() == "SINCE 28-Feb-2026"

    def test_advanced_to(self):
        timestamp = datetime(2026, 10, 18, tzinfo=timezone.utc)

        cursor = SyncCursor("mbx-1").advanced_to(timestamp)

        assert cursor.is_incremental
        assert cursor.mailbox_id == "mbx-1"
        assert cursor.last_synced_at == timestamp
