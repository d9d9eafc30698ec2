"""
Tests for SyncService.

This module covers:
- Wiring of default collaborators from configuration
- Sync status reporting
- Dead-letter inspection
- Conditional and background sync
"""
import time
from unittest.mock import Mock, patch

import pytest

from tasksync.config.app_config import SyncConfig
from tasksync.models.mutation import Operation
from tasksync.sync.exceptions import ConnectivityError, SyncInProgressError
from tasksync.sync.sync_service import SyncService


class TestSyncServiceInit:
    """Test cases for SyncService construction."""

    @pytest.mark.unit
    def test_defaults_built_from_config(self, database, task_store):
        config = SyncConfig(
            api_base_url="http://sync.example.com/api",
            api_key="k",
            batch_size=10,
            max_retries=5,
            probe_timeout=1.0,
        )
        service = SyncService(database, task_store, config)
        try:
            assert service.client.batch_url == "http://sync.example.com/api/batch"
            assert service.client.api_key == "k"
            assert service.prober.health_url == "http://sync.example.com/api/health"
            assert service.prober.timeout == 1.0
            assert service.prober.session is service.client.session
            assert service.coordinator.batch_size == 10
            assert service.retry_policy.max_retries == 5
        finally:
            service.close()

    @pytest.mark.unit
    def test_default_config(self, database, task_store):
        service = SyncService(database, task_store)
        try:
            assert service.config.batch_size == 50
            assert service.config.max_retries == 3
        finally:
            service.close()


class TestSyncStatus:
    """Test cases for get_sync_status."""

    @pytest.mark.unit
    def test_status_of_fresh_service(self, sync_service):
        assert sync_service.get_sync_status() == {
            "pending": 0,
            "in_progress": 0,
            "dead_letter_count": 0,
            "last_sync_timestamp": None,
        }

    @pytest.mark.unit
    def test_status_counts_pending(self, sync_service):
        sync_service.enqueue("a", Operation.CREATE, {})
        sync_service.enqueue("b", Operation.CREATE, {})

        assert sync_service.get_sync_status()["pending"] == 2

    @pytest.mark.unit
    def test_status_after_sync(self, sync_service, task_store):
        task = task_store.create_task("Synced")
        sync_service.enqueue(task.id, Operation.CREATE, task.to_dict())

        sync_service.run_sync_pass()
        status = sync_service.get_sync_status()

        assert status["pending"] == 0
        assert status["last_sync_timestamp"] is not None

    @pytest.mark.unit
    def test_status_counts_dead_letters(self, sync_service, mock_client):
        """Test that exhausted mutations show up as dead letters, not pending."""
        sync_service.enqueue("a", Operation.UPDATE, {})
        mock_client.submit_batch.side_effect = ConnectivityError("down")

        for _ in range(3):
            sync_service.run_sync_pass()
        status = sync_service.get_sync_status()

        assert status["pending"] == 0
        assert status["dead_letter_count"] == 1


class TestDeadLetterEntries:
    """Test cases for get_dead_letter_entries."""

    @pytest.mark.unit
    def test_entries_newest_first(self, sync_service, mock_client):
        mock_client.submit_batch.side_effect = ConnectivityError("down")
        sync_service.enqueue("first", Operation.CREATE, {})
        for _ in range(3):
            sync_service.run_sync_pass()
        sync_service.enqueue("second", Operation.CREATE, {})
        for _ in range(3):
            sync_service.run_sync_pass()

        entries = sync_service.get_dead_letter_entries()

        assert [e.entity_id for e in entries] == ["second", "first"]


class TestSyncIfReachable:
    """Test cases for conditional sync."""

    @pytest.mark.unit
    def test_skips_when_nothing_pending(self, sync_service, mock_prober):
        assert sync_service.sync_if_reachable() is None
        mock_prober.is_reachable.assert_not_called()

    @pytest.mark.unit
    def test_skips_when_unreachable(self, sync_service, mock_prober, mock_client):
        sync_service.enqueue("a", Operation.CREATE, {})
        mock_prober.is_reachable.return_value = False

        assert sync_service.sync_if_reachable() is None
        mock_client.submit_batch.assert_not_called()

    @pytest.mark.unit
    def test_runs_when_reachable(self, sync_service):
        sync_service.enqueue("a", Operation.CREATE, {})

        result = sync_service.sync_if_reachable()

        assert result is not None
        assert result.synced_items == 1

    @pytest.mark.unit
    def test_skips_when_pass_in_progress(self, sync_service):
        sync_service.enqueue("a", Operation.CREATE, {})
        with patch.object(sync_service.coordinator, 'run_sync_pass',
                          side_effect=SyncInProgressError("busy")):
            assert sync_service.sync_if_reachable() is None


class TestBackgroundSync:
    """Test cases for the background sync thread."""

    @pytest.mark.unit
    def test_background_thread_syncs_pending_work(self, sync_service, sync_config):
        sync_config.background_interval = 0.05
        sync_service.enqueue("a", Operation.CREATE, {})

        sync_service.start_background_sync()
        deadline = time.time() + 5
        while sync_service.queue.count_pending() and time.time() < deadline:
            time.sleep(0.02)

        assert sync_service.queue.count_pending() == 0
        assert sync_service._sync_thread.name == "TaskSyncBackground"
        assert sync_service._sync_thread.daemon is True

    @pytest.mark.unit
    def test_start_is_idempotent(self, sync_service):
        sync_service.start_background_sync()
        first_thread = sync_service._sync_thread
        sync_service.start_background_sync()

        assert sync_service._sync_thread is first_thread

    @pytest.mark.unit
    def test_close_stops_thread(self, sync_service, mock_client):
        sync_service.start_background_sync()
        sync_service.close()

        assert not sync_service._sync_thread.is_alive()
        mock_client.session.close.assert_called()

    @pytest.mark.unit
    def test_loop_survives_errors(self, sync_service, sync_config):
        """Test that an unexpected error does not kill the background thread."""
        sync_config.background_interval = 0.01
        calls = Mock(side_effect=[RuntimeError("boom"), None, None, None, None, None])
        with patch.object(sync_service, 'sync_if_reachable', calls):
            sync_service.start_background_sync()
            deadline = time.time() + 5
            while calls.call_count < 2 and time.time() < deadline:
                time.sleep(0.01)
            sync_service.close()

        assert calls.call_count >= 2
