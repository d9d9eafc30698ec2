"""
Pytest configuration and shared fixtures for the task sync tests.
"""
import os
import tempfile
import threading
import uuid
from unittest.mock import Mock

import pytest

from tasksync.config.app_config import SyncConfig
from tasksync.database.sync_database import SyncDatabase
from tasksync.models.sync_result import ItemOutcome, OutcomeStatus
from tasksync.store.task_store import TaskStore
from tasksync.sync.dead_letter_store import DeadLetterStore
from tasksync.sync.mutation_queue import MutationQueue
from tasksync.sync.remote_client import RemoteAuthorityClient
from tasksync.sync.sync_service import SyncService


def success_outcomes(batch, batch_checksum=None):
    """Outcome factory for an always-successful remote authority."""
    return [
        ItemOutcome(status=OutcomeStatus.SUCCESS, client_id=m.entity_id, server_id=f"srv_{m.id}")
        for m in batch
    ]


@pytest.fixture
def database():
    """In-memory database for testing."""
    db = SyncDatabase(":memory:")
    yield db
    db.close()


@pytest.fixture
def temp_db_path():
    """Temporary file path for a file-based SQLite database."""
    temp_path = os.path.join(tempfile.gettempdir(), f"test_tasksync_{uuid.uuid4().hex}.db")

    yield temp_path

    # Cleanup
    try:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
    except (OSError, FileNotFoundError):
        pass


@pytest.fixture
def task_store(database):
    return TaskStore(database)


@pytest.fixture
def queue(database):
    return MutationQueue(database)


@pytest.fixture
def dead_letters(database):
    return DeadLetterStore(database)


@pytest.fixture
def mock_client():
    """Mock remote authority client that accepts every mutation."""
    client = Mock(spec=RemoteAuthorityClient)
    client.submit_batch = Mock(side_effect=success_outcomes)
    client.session = Mock()
    return client


@pytest.fixture
def mock_prober():
    """Mock connectivity prober reporting the remote as reachable."""
    prober = Mock()
    prober.is_reachable = Mock(return_value=True)
    return prober


@pytest.fixture
def sync_config():
    return SyncConfig(
        api_base_url="http://test.example.com/api",
        batch_size=50,
        max_retries=3,
        enable_background_sync=False,
    )


@pytest.fixture
def sync_service(database, task_store, sync_config, mock_client, mock_prober):
    """Sync service wired to an in-memory database and mocked network."""
    service = SyncService(
        database,
        task_store,
        sync_config,
        client=mock_client,
        prober=mock_prober
    )
    yield service
    service.close()


@pytest.fixture
def mock_authority():
    """Run the mock remote authority on a free local port."""
    from tasksync.mock_api.server import AuthorityState, make_server

    state = AuthorityState()
    server = make_server('127.0.0.1', 0, state)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    host, port = server.server_address
    yield f"http://{host}:{port}/api", state

    server.shutdown()
    server.server_close()
    thread.join(timeout=5)
