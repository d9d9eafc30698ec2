"""
Dead-letter store for mutations that exhausted their retries.

Entries are terminal: nothing in the sync engine replays them. Inspecting or
re-enqueueing them is left to an operator.
"""

import json
import logging
from typing import List

from ..database.sync_database import SyncDatabase
from ..models.mutation import DeadLetterEntry, Operation, QueuedMutation
from ..models.timestamps import parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)


class DeadLetterStore:
    """Persistent, append-only record of mutations the sync engine gave up on."""

    def __init__(self, database: SyncDatabase):
        self.database = database

    def promote(self, mutation: QueuedMutation, error_message: str) -> None:
        """
        Move a mutation from the sync queue into the dead-letter store.

        The insert and the queue delete run in one transaction, so a mutation
        is never both queued and dead-lettered, nor lost in between.

        Args:
            mutation: The mutation being escalated, with its final retry count
            error_message: The error that exhausted the retry budget
        """
        with self.database.transaction() as conn:
            conn.execute(
                """
                INSERT INTO sync_dead_letter_queue
                (original_sync_queue_id, task_id, operation, data, created_at,
                 retry_count, error_message, failed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    mutation.id,
                    mutation.entity_id,
                    mutation.operation.value,
                    json.dumps(mutation.payload),
                    to_iso(mutation.created_at),
                    mutation.retry_count,
                    error_message,
                    to_iso(utc_now()),
                )
            )
            conn.execute("DELETE FROM sync_queue WHERE id = ?", (mutation.id,))

        logger.warning(
            f"Moved {mutation.operation.value} on task {mutation.entity_id} "
            f"to dead-letter queue: {error_message}"
        )

    def list_entries(self) -> List[DeadLetterEntry]:
        """
        Get all dead-lettered mutations.

        Returns:
            Entries ordered newest failure first
        """
        with self.database.transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM sync_dead_letter_queue
                ORDER BY failed_at DESC, id DESC
                """
            ).fetchall()
        return [
            DeadLetterEntry(
                id=row['id'],
                original_queue_id=row['original_sync_queue_id'],
                entity_id=row['task_id'],
                operation=Operation(row['operation']),
                payload=json.loads(row['data']),
                created_at=parse_timestamp(row['created_at']),
                retry_count=row['retry_count'],
                error_message=row['error_message'],
                failed_at=parse_timestamp(row['failed_at']),
            )
            for row in rows
        ]

    def count(self) -> int:
        with self.database.transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM sync_dead_letter_queue"
            ).fetchone()
        return row['count']
