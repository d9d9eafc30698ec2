"""
Sync pass orchestration.

A pass walks ``probing -> draining -> batching -> dispatching -> reconciling``
and returns to ``idle``. Batches are dispatched one at a time so a later
batch never reaches the remote authority before an earlier batch's outcome
has been applied. At most one pass runs at a time.
"""

import logging
import threading
from enum import Enum
from typing import List, Optional

from ..models.mutation import QueuedMutation
from ..models.sync_result import ItemOutcome, OutcomeStatus, SyncErrorEntry, SyncResult
from ..models.task import Task
from .batcher import checksum, make_batches
from .conflict_resolver import ConflictResolver
from .connectivity import ConnectivityProber
from .exceptions import SyncError, SyncInProgressError
from .interfaces import EntityRepository
from .mutation_queue import MutationQueue
from .remote_client import RemoteAuthorityClient
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

GLOBAL_ENTITY_ID = "global"
NO_RESPONSE_ERROR = "No response from server"
CONFLICT_RESOLVED_NOTE = "Conflict resolved using last-write-wins"


class SyncState(Enum):
    """Phases of a sync pass."""
    IDLE = "idle"
    PROBING = "probing"
    DRAINING = "draining"
    BATCHING = "batching"
    DISPATCHING = "dispatching"
    RECONCILING = "reconciling"


class SyncCoordinator:
    """
    Runs sync passes against the remote authority.

    The coordinator owns no state beyond its current phase: the queue, the
    dead-letter store and the entity repository are injected.
    """

    DEFAULT_BATCH_SIZE = 50

    def __init__(
        self,
        queue: MutationQueue,
        entities: EntityRepository,
        client: RemoteAuthorityClient,
        prober: ConnectivityProber,
        retry_policy: RetryPolicy,
        resolver: Optional[ConflictResolver] = None,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.queue = queue
        self.entities = entities
        self.client = client
        self.prober = prober
        self.retry_policy = retry_policy
        self.resolver = resolver or ConflictResolver()
        self.batch_size = batch_size
        self._pass_lock = threading.Lock()
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def max_retries(self) -> int:
        return self.retry_policy.max_retries

    def run_sync_pass(self) -> SyncResult:
        """
        Run one complete sync pass.

        Returns:
            The pass result. ``success`` is False when the probe failed or
            any mutation ended the pass in error.

        Raises:
            SyncInProgressError: If another pass is already running
        """
        if not self._pass_lock.acquire(blocking=False):
            raise SyncInProgressError("A sync pass is already in progress")
        try:
            return self._run_pass()
        finally:
            self._state = SyncState.IDLE
            self._pass_lock.release()

    def _run_pass(self) -> SyncResult:
        logger.info("Starting sync pass")
        result = SyncResult()

        self._state = SyncState.PROBING
        if not self.prober.is_reachable():
            logger.warning("Remote authority unreachable, aborting sync pass")
            result.success = False
            result.errors.append(SyncErrorEntry(
                entity_id=GLOBAL_ENTITY_ID,
                operation="sync",
                error="No network connectivity",
            ))
            return result

        self._state = SyncState.DRAINING
        pending = self.queue.drain_eligible(self.max_retries)
        if not pending:
            logger.info("No pending items to sync")
            return result

        logger.info(f"Processing {len(pending)} pending sync items")
        self.queue.mark_in_progress(m.id for m in pending)

        self._state = SyncState.BATCHING
        batches = make_batches(pending, self.batch_size)

        for index, batch in enumerate(batches, start=1):
            logger.debug(f"Dispatching batch {index}/{len(batches)} ({len(batch)} items)")
            result.merge(self._process_batch(batch))

        result.success = result.failed_items == 0
        logger.info(f"Sync completed: {result.synced_items} synced, {result.failed_items} failed")
        return result

    def _process_batch(self, batch: List[QueuedMutation]) -> SyncResult:
        """Dispatch one batch and reconcile every item in it."""
        batch_result = SyncResult()

        self._state = SyncState.DISPATCHING
        try:
            outcomes = self.client.submit_batch(batch, checksum(batch))
        except SyncError as e:
            logger.error(f"Batch sync failed: {e}")
            self._state = SyncState.RECONCILING
            for mutation in batch:
                self._apply_error(mutation, str(e), batch_result)
            batch_result.success = batch_result.failed_items == 0
            return batch_result

        self._state = SyncState.RECONCILING
        for mutation, outcome in zip(batch, outcomes):
            self._apply_outcome(mutation, outcome, batch_result)

        batch_result.success = batch_result.failed_items == 0
        return batch_result

    def _apply_outcome(
        self,
        mutation: QueuedMutation,
        outcome: Optional[ItemOutcome],
        batch_result: SyncResult
    ) -> None:
        if outcome is None:
            self._apply_error(mutation, NO_RESPONSE_ERROR, batch_result)
            return
        if outcome.status == OutcomeStatus.ERROR:
            self._apply_error(mutation, outcome.error or "Unknown error", batch_result)
            return

        # Bad remote state is charged to this item only; storage errors still propagate
        try:
            Task.check_field_types({"server_id": outcome.server_id})
            if outcome.resolved_data is not None:
                Task.check_field_types(outcome.resolved_data)
            if outcome.status == OutcomeStatus.SUCCESS:
                self._apply_success(mutation, outcome)
            else:
                self._apply_conflict(mutation, outcome)
        except (SyncError, ValueError, TypeError) as e:
            logger.warning(f"Could not apply outcome for {mutation.entity_id}: {e}")
            self._apply_error(mutation, f"Malformed outcome in response: {e}", batch_result)
            return

        batch_result.synced_items += 1
        if outcome.status == OutcomeStatus.CONFLICT:
            batch_result.errors.append(SyncErrorEntry(
                entity_id=mutation.entity_id,
                operation=mutation.operation.value,
                error=CONFLICT_RESOLVED_NOTE,
            ))

    def _apply_success(self, mutation: QueuedMutation, outcome: ItemOutcome) -> None:
        if outcome.resolved_data:
            resolved = dict(outcome.resolved_data)
            if outcome.server_id and not resolved.get("server_id"):
                resolved["server_id"] = outcome.server_id
            self.entities.apply_resolved_state(mutation.entity_id, resolved)
        else:
            self.entities.mark_synced(mutation.entity_id, outcome.server_id)
        self.queue.remove(mutation.id)

    def _apply_conflict(self, mutation: QueuedMutation, outcome: ItemOutcome) -> None:
        remote = Task.from_dict(outcome.resolved_data)
        if not remote.server_id:
            remote.server_id = outcome.server_id
        merged = self.resolver.resolve(self._local_version(mutation), remote)
        self.entities.apply_resolved_state(mutation.entity_id, merged.to_dict())
        self.queue.remove(mutation.id)

    def _local_version(self, mutation: QueuedMutation) -> Task:
        """The local side of a conflict: stored task with the mutation payload laid over it."""
        current = self.entities.get_entity(mutation.entity_id)
        if current is None:
            local = Task.from_dict(mutation.payload)
        else:
            local = Task.from_dict({**current.to_dict(), **mutation.payload})
        if not local.id:
            local.id = mutation.entity_id
        return local

    def _apply_error(self, mutation: QueuedMutation, message: str, batch_result: SyncResult) -> None:
        self.retry_policy.record_failure(mutation, message)
        batch_result.failed_items += 1
        batch_result.errors.append(SyncErrorEntry(
            entity_id=mutation.entity_id,
            operation=mutation.operation.value,
            error=message,
        ))
