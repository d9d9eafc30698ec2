"""
End-to-end tests against the mock remote authority.

These tests run the real HTTP client, prober and sync engine against the
mock server started on a free local port.

Usage:
    pytest tests/test_e2e_integration.py -v
"""
from datetime import timedelta

import pytest
import requests

from tasksync.app.task_service import TaskService
from tasksync.config.app_config import SyncConfig
from tasksync.models.task import SyncStatus
from tasksync.models.timestamps import to_iso
from tasksync.sync.coordinator import CONFLICT_RESOLVED_NOTE
from tasksync.sync.remote_client import CHECKSUM_HEADER
from tasksync.sync.sync_service import SyncService


@pytest.fixture
def live_sync(database, task_store, mock_authority):
    """Sync service and task service talking to the mock authority."""
    base_url, state = mock_authority
    config = SyncConfig(
        api_base_url=base_url,
        batch_size=2,
        max_retries=3,
        probe_timeout=2.0,
        dispatch_timeout=5.0,
        enable_background_sync=False,
    )
    service = SyncService(database, task_store, config)
    yield service, TaskService(task_store, service), state
    service.close()


class TestEndToEndSync:
    """Full sync flows over HTTP."""

    @pytest.mark.integration
    def test_create_update_delete_flow(self, live_sync, task_store):
        service, tasks, state = live_sync
        task = tasks.create_task("Write report", "quarterly")

        result = service.run_sync_pass()

        assert result.success is True
        assert result.synced_items == 1
        stored = task_store.get_task(task.id)
        assert stored.sync_status == SyncStatus.SYNCED
        assert stored.server_id == "srv_1"
        assert state.tasks["srv_1"]["title"] == "Write report"

        tasks.update_task(task.id, completed=True)
        tasks.delete_task(task.id)
        result = service.run_sync_pass()

        assert result.synced_items == 2
        assert state.tasks["srv_1"]["completed"] is True
        assert state.tasks["srv_1"]["is_deleted"] is True
        assert service.get_sync_status()["pending"] == 0

    @pytest.mark.integration
    def test_multiple_batches(self, live_sync):
        """Test that five tasks with batch size two go out as three batches."""
        service, tasks, state = live_sync
        for i in range(5):
            tasks.create_task(f"Task {i}")

        result = service.run_sync_pass()

        assert result.synced_items == 5
        assert len(state.received_batches) == 3
        assert len(state.tasks) == 5

    @pytest.mark.integration
    def test_remote_newer_conflict(self, live_sync, task_store):
        service, tasks, state = live_sync
        task = tasks.create_task("Original")
        service.run_sync_pass()

        remote = state.tasks["srv_1"]
        remote["title"] = "Edited elsewhere"
        remote["updated_at"] = to_iso(task_store.get_task(task.id).updated_at + timedelta(hours=1))
        tasks.update_task(task.id, title="Edited here")

        result = service.run_sync_pass()

        assert result.success is True
        assert result.synced_items == 1
        assert [e.error for e in result.errors] == [CONFLICT_RESOLVED_NOTE]
        stored = task_store.get_task(task.id)
        assert stored.title == "Edited elsewhere"
        assert stored.sync_status == SyncStatus.SYNCED

    @pytest.mark.integration
    def test_unreachable_remote(self, database, task_store):
        config = SyncConfig(api_base_url="http://127.0.0.1:9/api", probe_timeout=0.5)
        service = SyncService(database, task_store, config)
        try:
            TaskService(task_store, service).create_task("Offline edit")

            result = service.run_sync_pass()

            assert result.success is False
            assert result.errors[0].entity_id == "global"
            assert service.get_sync_status()["pending"] == 1
        finally:
            service.close()

    @pytest.mark.integration
    def test_bad_checksum_rejected(self, mock_authority):
        base_url, state = mock_authority
        body = {"items": [{
            "id": 1,
            "task_id": "t1",
            "operation": "create",
            "data": {"title": "x"},
            "created_at": "2025-01-01T00:00:00.000000+00:00",
            "retry_count": 0,
        }]}

        response = requests.post(
            f"{base_url}/batch", json=body, headers={CHECKSUM_HEADER: "0000000000000000"}, timeout=5
        )

        assert response.status_code == 400
        assert state.received_batches == []

    @pytest.mark.integration
    def test_health_and_task_listing(self, mock_authority):
        base_url, _ = mock_authority

        assert requests.get(f"{base_url}/health", timeout=5).json()["status"] == "ok"
        assert requests.get(f"{base_url}/tasks", timeout=5).json() == {"tasks": []}
        assert requests.get(f"{base_url}/unknown", timeout=5).status_code == 404
