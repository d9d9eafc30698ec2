"""
Durable mutation queue.

Local task mutations are appended here and drained by the sync coordinator
once the remote authority is reachable. Each method is a single statement,
so enqueues can interleave safely with a running sync pass.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..database.sync_database import SyncDatabase
from ..models.mutation import Operation, QueuedMutation
from ..models.timestamps import parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in-progress"
STATUS_ERROR = "error"


def _row_to_mutation(row) -> QueuedMutation:
    return QueuedMutation(
        id=row['id'],
        entity_id=row['task_id'],
        operation=Operation(row['operation']),
        payload=json.loads(row['data']),
        created_at=parse_timestamp(row['created_at']),
        retry_count=row['retry_count'],
        error_message=row['error_message'],
    )


class MutationQueue:
    """
    Ordered, persistent record of pending task mutations.

    Ordering guarantee: ``drain_eligible`` returns every entity's mutations
    contiguously and in creation order, ties broken by insertion id.
    """

    def __init__(self, database: SyncDatabase):
        self.database = database

    def enqueue(self, entity_id: str, operation, payload: Dict[str, Any]) -> QueuedMutation:
        """
        Append a mutation to the queue.

        Args:
            entity_id: ID of the affected task
            operation: An ``Operation`` or its string value
            payload: Field snapshot describing the change

        Returns:
            The stored mutation with its assigned id

        Raises:
            ValueError: If the operation is not create, update or delete
        """
        op = operation if isinstance(operation, Operation) else Operation(operation)
        with self.database.transaction() as conn:
            created_at = utc_now()
            cursor = conn.execute(
                """
                INSERT INTO sync_queue (task_id, operation, data, created_at, retry_count, sync_status)
                VALUES (?, ?, ?, ?, 0, ?)
                """,
                (entity_id, op.value, json.dumps(payload), to_iso(created_at), STATUS_PENDING)
            )
            mutation_id = cursor.lastrowid

        logger.info(f"Added {op.value} operation to sync queue for task {entity_id}")
        return QueuedMutation(
            id=mutation_id,
            entity_id=entity_id,
            operation=op,
            payload=payload,
            created_at=created_at,
        )

    def drain_eligible(self, max_retries: int) -> List[QueuedMutation]:
        """
        Get every mutation that still has retry budget left.

        Args:
            max_retries: Mutations with ``retry_count >= max_retries`` are skipped

        Returns:
            Mutations ordered by (entity, created_at, id)
        """
        with self.database.transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, task_id, operation, data, created_at, retry_count, error_message
                FROM sync_queue
                WHERE retry_count < ?
                ORDER BY task_id ASC, created_at ASC, id ASC
                """,
                (max_retries,)
            ).fetchall()
        return [_row_to_mutation(row) for row in rows]

    def get(self, mutation_id: int) -> Optional[QueuedMutation]:
        with self.database.transaction() as conn:
            row = conn.execute(
                """
                SELECT id, task_id, operation, data, created_at, retry_count, error_message
                FROM sync_queue WHERE id = ?
                """,
                (mutation_id,)
            ).fetchone()
        return _row_to_mutation(row) if row else None

    def mark_in_progress(self, mutation_ids: Iterable[int]) -> None:
        """Flag drained mutations as in-progress. Informational only."""
        ids = [(mutation_id,) for mutation_id in mutation_ids]
        if not ids:
            return
        with self.database.transaction() as conn:
            conn.executemany(
                f"UPDATE sync_queue SET sync_status = '{STATUS_IN_PROGRESS}' WHERE id = ?",
                ids
            )

    def record_failure(self, mutation_id: int, retry_count: int, error_message: str) -> None:
        """Persist a new retry count and error message in one update."""
        with self.database.transaction() as conn:
            conn.execute(
                """
                UPDATE sync_queue
                SET retry_count = ?,
                    error_message = ?,
                    sync_status = ?
                WHERE id = ?
                """,
                (retry_count, error_message, STATUS_ERROR, mutation_id)
            )

    def remove(self, mutation_id: int) -> None:
        """Delete a mutation. Removing an unknown id is a no-op."""
        with self.database.transaction() as conn:
            conn.execute("DELETE FROM sync_queue WHERE id = ?", (mutation_id,))

    def count_pending(self, max_retries: Optional[int] = None) -> int:
        """
        Count queued mutations.

        Args:
            max_retries: If given, only count mutations still eligible for sync
        """
        with self.database.transaction() as conn:
            if max_retries is None:
                row = conn.execute("SELECT COUNT(*) AS count FROM sync_queue").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS count FROM sync_queue WHERE retry_count < ?",
                    (max_retries,)
                ).fetchone()
        return row['count']

    def count_in_progress(self) -> int:
        with self.database.transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM sync_queue WHERE sync_status = ?",
                (STATUS_IN_PROGRESS,)
            ).fetchone()
        return row['count']

    def clear(self) -> int:
        """
        Clear all pending mutations.

        Returns:
            Number of mutations deleted
        """
        with self.database.transaction() as conn:
            cursor = conn.execute("DELETE FROM sync_queue")
            return cursor.rowcount
