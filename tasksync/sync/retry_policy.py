"""Retry bookkeeping and escalation to the dead-letter store."""

import logging

from ..models.mutation import QueuedMutation
from .dead_letter_store import DeadLetterStore
from .interfaces import EntityRepository
from .mutation_queue import MutationQueue

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Charges failed attempts against a mutation's retry budget.

    A mutation whose retry count reaches ``max_retries`` is dead-lettered and
    its task marked ``failed``; otherwise the new count is persisted on the
    queue row and the task marked ``error``.
    """

    DEFAULT_MAX_RETRIES = 3

    def __init__(
        self,
        queue: MutationQueue,
        dead_letters: DeadLetterStore,
        entities: EntityRepository,
        max_retries: int = DEFAULT_MAX_RETRIES
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.queue = queue
        self.dead_letters = dead_letters
        self.entities = entities
        self.max_retries = max_retries

    def record_failure(self, mutation: QueuedMutation, error_message: str) -> bool:
        """
        Apply one failed attempt to a mutation.

        Args:
            mutation: The mutation as drained at the start of the pass
            error_message: Reason for the failure

        Returns:
            True if the mutation was escalated to the dead-letter store
        """
        new_retry_count = mutation.retry_count + 1
        mutation.retry_count = new_retry_count
        mutation.error_message = error_message

        logger.warning(
            f"Sync error for {mutation.operation.value} on task {mutation.entity_id}: "
            f"{error_message}. Retry {new_retry_count}/{self.max_retries}"
        )

        if new_retry_count >= self.max_retries:
            self.dead_letters.promote(mutation, error_message)
            self.entities.mark_sync_failed(mutation.entity_id)
            return True

        self.queue.record_failure(mutation.id, new_retry_count, error_message)
        self.entities.mark_sync_error(mutation.entity_id)
        return False
