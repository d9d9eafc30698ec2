"""
Tests for SyncApplication and logging setup.
"""
import logging
import signal
from unittest.mock import Mock, patch

import pytest

from tasksync.app.sync_application import SyncApplication, setup_logging
from tasksync.config.app_config import AppConfig, DatabaseConfig, SyncConfig


@pytest.fixture
def app_config():
    return AppConfig(
        database=DatabaseConfig(path=":memory:"),
        sync=SyncConfig(api_base_url="http://127.0.0.1:9/api", probe_timeout=0.5,
                        enable_background_sync=False),
    )


class TestSyncApplication:
    """Test cases for SyncApplication class."""

    def test_initialization(self, app_config):
        """Test SyncApplication initialization."""
        app = SyncApplication(app_config)

        assert app.config == app_config
        assert app.database is None
        assert app.task_store is None
        assert app.sync_service is None
        assert app.task_service is None

    def test_setup_wires_components(self, app_config):
        app = SyncApplication(app_config).setup()
        try:
            assert app.database.db_path == ":memory:"
            assert app.sync_service.entities is app.task_store
            assert app.task_service.sync_service is app.sync_service
            assert app.sync_service.client.batch_url == "http://127.0.0.1:9/api/batch"
        finally:
            app.shutdown()

    @patch('tasksync.app.sync_application.signal.signal')
    def test_setup_signal_handlers(self, mock_signal, app_config):
        app = SyncApplication(app_config)
        app.setup_signal_handlers()

        registered = {call.args[0] for call in mock_signal.call_args_list}
        assert registered == {signal.SIGINT, signal.SIGTERM}

    def test_signal_handler_requests_shutdown(self, app_config):
        app = SyncApplication(app_config)
        app._signal_handler(signal.SIGINT, None)
        assert app._shutdown_event.is_set()

    @patch('tasksync.app.sync_application.signal.signal')
    def test_run_single_pass_when_background_disabled(self, mock_signal, app_config):
        """Test that run() does one pass and shuts down when background sync is off."""
        app = SyncApplication(app_config).setup()
        app.sync_service = Mock(wraps=app.sync_service)

        app.run()

        app.sync_service.run_sync_pass.assert_called_once()
        app.sync_service.start_background_sync.assert_not_called()
        app.sync_service.close.assert_called_once()

    @patch('tasksync.app.sync_application.signal.signal')
    def test_run_starts_background_sync(self, mock_signal, app_config):
        app_config.sync.enable_background_sync = True
        app = SyncApplication(app_config).setup()
        app.sync_service = Mock(wraps=app.sync_service)
        app._shutdown_event.set()

        app.run()

        app.sync_service.start_background_sync.assert_called_once()
        app.sync_service.close.assert_called_once()

    def test_shutdown_without_setup(self, app_config):
        SyncApplication(app_config).shutdown()


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_file_handler_added(self, tmp_path):
        log_file = tmp_path / "tasksync.log"
        root = logging.getLogger()
        previous = root.handlers[:]
        previous_level = root.level
        try:
            setup_logging(str(log_file), logging.DEBUG)
            logging.getLogger("tasksync.test").info("hello log")
            for handler in root.handlers:
                handler.flush()

            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert "hello log" in log_file.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = previous
            root.setLevel(previous_level)
