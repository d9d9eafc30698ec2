"""
Tests for configuration classes.
"""
import pytest

from tasksync.config.app_config import AppConfig, DatabaseConfig, SyncConfig


class TestSyncConfig:
    """Test cases for SyncConfig class."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        config = SyncConfig()

        assert config.api_base_url == "http://localhost:3000/api"
        assert config.api_key is None
        assert config.batch_size == 50
        assert config.max_retries == 3
        assert config.probe_timeout == 5.0
        assert config.enable_background_sync is True

    def test_custom_values(self):
        config = SyncConfig(batch_size=5, max_retries=1, enable_background_sync=False)

        assert config.batch_size == 5
        assert config.max_retries == 1
        assert config.enable_background_sync is False

    @pytest.mark.parametrize("overrides", [
        {"batch_size": 0},
        {"batch_size": -5},
        {"max_retries": 0},
        {"max_retries": -1},
    ])
    def test_out_of_range_values_raise(self, overrides):
        with pytest.raises(ValueError, match="must be at least 1"):
            SyncConfig(**overrides)


class TestAppConfig:
    """Test cases for AppConfig class."""

    def test_defaults(self):
        config = AppConfig()

        assert config.database == DatabaseConfig()
        assert config.database.path == "tasksync.db"
        assert config.sync == SyncConfig()
        assert config.log_file is None

    def test_from_empty_env(self):
        """Test that an empty environment yields the defaults."""
        assert AppConfig.from_env({}) == AppConfig()

    def test_from_env(self):
        config = AppConfig.from_env({
            "TASKSYNC_DB_PATH": "/tmp/tasks.db",
            "API_BASE_URL": "https://sync.example.com/api",
            "API_KEY": "secret",
            "SYNC_BATCH_SIZE": "25",
            "SYNC_MAX_RETRIES": "5",
            "SYNC_INTERVAL": "2.5",
            "TASKSYNC_LOG_FILE": "/tmp/tasksync.log",
        })

        assert config.database.path == "/tmp/tasks.db"
        assert config.sync.api_base_url == "https://sync.example.com/api"
        assert config.sync.api_key == "secret"
        assert config.sync.batch_size == 25
        assert config.sync.max_retries == 5
        assert config.sync.background_interval == 2.5
        assert config.log_file == "/tmp/tasksync.log"

    def test_empty_api_key_is_none(self):
        assert AppConfig.from_env({"API_KEY": ""}).sync.api_key is None

    def test_invalid_number_raises(self):
        with pytest.raises(ValueError):
            AppConfig.from_env({"SYNC_BATCH_SIZE": "many"})

    @pytest.mark.parametrize("env", [
        {"SYNC_BATCH_SIZE": "0"},
        {"SYNC_BATCH_SIZE": "-3"},
        {"SYNC_MAX_RETRIES": "0"},
    ])
    def test_zero_or_negative_env_values_raise(self, env):
        """Test that a bad sync setting fails at load time, before any pass runs."""
        with pytest.raises(ValueError, match="must be at least 1"):
            AppConfig.from_env(env)

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SYNC_MAX_RETRIES", "7")
        assert AppConfig.from_env().sync.max_retries == 7
