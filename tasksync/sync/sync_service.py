"""
Sync service facade.

This is the surface the rest of the application talks to:
- enqueue mutations as tasks change
- run sync passes on demand or from a background thread
- report queue and dead-letter status
"""

import logging
import threading
from typing import Any, Dict, List, Optional

from ..config.app_config import SyncConfig
from ..database.sync_database import SyncDatabase
from ..models.mutation import DeadLetterEntry, QueuedMutation
from ..models.sync_result import SyncResult
from ..models.timestamps import to_iso
from .conflict_resolver import ConflictResolver
from .connectivity import ConnectivityProber
from .coordinator import SyncCoordinator
from .dead_letter_store import DeadLetterStore
from .exceptions import SyncInProgressError
from .interfaces import EntityRepository
from .mutation_queue import MutationQueue
from .remote_client import RemoteAuthorityClient
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


class SyncService:
    """
    Offline-first sync engine for local tasks.

    This class provides:
    - A durable mutation queue fed by the task service
    - Sequential, checksummed batch sync with last-write-wins conflict handling
    - Escalation of exhausted mutations to a dead-letter store
    - An optional background thread that syncs whenever the remote is reachable
    """

    def __init__(
        self,
        database: SyncDatabase,
        entities: EntityRepository,
        config: Optional[SyncConfig] = None,
        client: Optional[RemoteAuthorityClient] = None,
        prober: Optional[ConnectivityProber] = None,
        resolver: Optional[ConflictResolver] = None
    ):
        """
        Initialize the sync service.

        Args:
            database: Local store holding the queue and dead-letter tables
            entities: Task repository the sync engine reports outcomes to
            config: Sync configuration; defaults are used if None
            client: Remote authority client (built from config if None)
            prober: Connectivity prober (built from config if None)
            resolver: Conflict resolver (last-write-wins if None)
        """
        self.config = config or SyncConfig()
        self.entities = entities
        self.queue = MutationQueue(database)
        self.dead_letters = DeadLetterStore(database)
        self.client = client or RemoteAuthorityClient(
            base_url=self.config.api_base_url,
            api_key=self.config.api_key,
            timeout=self.config.dispatch_timeout
        )
        self.prober = prober or ConnectivityProber(
            self.config.api_base_url,
            timeout=self.config.probe_timeout,
            session=self.client.session
        )
        self.retry_policy = RetryPolicy(
            self.queue,
            self.dead_letters,
            entities,
            max_retries=self.config.max_retries
        )
        self.coordinator = SyncCoordinator(
            self.queue,
            entities,
            self.client,
            self.prober,
            self.retry_policy,
            resolver=resolver,
            batch_size=self.config.batch_size
        )
        self._stop_event = threading.Event()
        self._sync_thread: Optional[threading.Thread] = None

    def enqueue(self, entity_id: str, operation, payload: Dict[str, Any]) -> QueuedMutation:
        """Record a local mutation for the next sync pass."""
        return self.queue.enqueue(entity_id, operation, payload)

    def run_sync_pass(self) -> SyncResult:
        """
        Run one sync pass now.

        Raises:
            SyncInProgressError: If a pass is already running
        """
        return self.coordinator.run_sync_pass()

    def check_connectivity(self) -> bool:
        return self.prober.is_reachable()

    def get_sync_status(self) -> Dict[str, Any]:
        """
        Get statistics about the sync queues.

        Returns:
            Dictionary with pending, in-progress and dead-letter counts and
            the most recent successful sync time (ISO string or None)
        """
        return {
            "pending": self.queue.count_pending(self.config.max_retries),
            "in_progress": self.queue.count_in_progress(),
            "dead_letter_count": self.dead_letters.count(),
            "last_sync_timestamp": to_iso(self.entities.last_synced_at()),
        }

    def get_dead_letter_entries(self) -> List[DeadLetterEntry]:
        """Dead-lettered mutations, newest failure first."""
        return self.dead_letters.list_entries()

    def start_background_sync(self) -> None:
        """Start the background sync thread."""
        if self._sync_thread and self._sync_thread.is_alive():
            return
        self._stop_event.clear()
        self._sync_thread = threading.Thread(
            target=self._background_sync_loop,
            name="TaskSyncBackground",
            daemon=True
        )
        self._sync_thread.start()
        logger.debug("Background sync thread started")

    def _background_sync_loop(self) -> None:
        """Background loop running a pass whenever the remote authority is reachable."""
        while not self._stop_event.is_set():
            try:
                self.sync_if_reachable()
            except Exception as e:
                logger.error(f"Error in background sync loop: {e}")

            self._stop_event.wait(self.config.background_interval)

    def sync_if_reachable(self) -> Optional[SyncResult]:
        """
        Run a pass only if there is work and the remote authority answers.

        Returns:
            The pass result, or None if the pass was skipped
        """
        if self.queue.count_pending(self.config.max_retries) == 0:
            return None
        if not self.check_connectivity():
            logger.debug("Remote authority unreachable, skipping background sync")
            return None
        try:
            return self.run_sync_pass()
        except SyncInProgressError:
            logger.debug("Sync pass already running, skipping background sync")
            return None

    def close(self) -> None:
        """Stop the background thread."""
        self._stop_event.set()
        if self._sync_thread and self._sync_thread.is_alive():
            self._sync_thread.join(timeout=5)
        self.client.session.close()
        logger.debug("Sync service closed")
