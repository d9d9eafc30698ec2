"""
SQLite-backed task store.

Handles local task CRUD and the sync-state updates the sync engine reports
back (synced, error, failed, resolved state).
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..database.sync_database import SyncDatabase
from ..models.task import SyncStatus, Task
from ..models.timestamps import parse_timestamp, to_iso, utc_now

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "completed")


class TaskStore:
    """Local task table plus the sync-state contract used by the sync engine."""

    def __init__(self, database: SyncDatabase):
        self.database = database

    @staticmethod
    def _row_to_task(row) -> Task:
        return Task(
            id=row['id'],
            title=row['title'],
            description=row['description'] or "",
            completed=bool(row['completed']),
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
            is_deleted=bool(row['is_deleted']),
            sync_status=SyncStatus(row['sync_status']),
            server_id=row['server_id'],
            last_synced_at=parse_timestamp(row['last_synced_at']),
        )

    def create_task(self, title: str, description: str = "") -> Task:
        now = utc_now()
        task = Task(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
        )
        with self.database.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, title, description, completed, created_at, updated_at,
                                   is_deleted, sync_status, server_id, last_synced_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id, task.title, task.description, int(task.completed),
                    to_iso(task.created_at), to_iso(task.updated_at), int(task.is_deleted),
                    task.sync_status.value, task.server_id, to_iso(task.last_synced_at),
                )
            )
        return task

    def update_task(self, task_id: str, **updates: Any) -> Optional[Task]:
        """
        Apply a local edit and mark the task pending sync.

        Returns:
            The updated task, or None if it does not exist
        """
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self.database.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND is_deleted = 0", (task_id,)
            ).fetchone()
            if row is None:
                return None
            task = self._row_to_task(row)
            for key, value in updates.items():
                setattr(task, key, value)
            task.updated_at = utc_now()
            task.sync_status = SyncStatus.PENDING
            conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, completed = ?, updated_at = ?, sync_status = ?
                WHERE id = ?
                """,
                (task.title, task.description, int(task.completed),
                 to_iso(task.updated_at), task.sync_status.value, task_id)
            )
        return task

    def delete_task(self, task_id: str) -> bool:
        """Soft-delete a task. Returns False if it does not exist."""
        with self.database.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE tasks SET is_deleted = 1, updated_at = ?, sync_status = ?
                WHERE id = ? AND is_deleted = 0
                """,
                (to_iso(utc_now()), SyncStatus.PENDING.value, task_id)
            )
            return cursor.rowcount > 0

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a live (not deleted) task."""
        with self.database.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND is_deleted = 0", (task_id,)
            ).fetchone()
        return self._row_to_task(row) if row else None

    def get_entity(self, entity_id: str) -> Optional[Task]:
        """Get a task including soft-deleted ones."""
        with self.database.transaction() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (entity_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def get_all_tasks(self) -> List[Task]:
        with self.database.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE is_deleted = 0 ORDER BY created_at DESC"
            ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def apply_resolved_state(self, entity_id: str, resolved_fields: Dict[str, Any]) -> None:
        """
        Overwrite a task with the state agreed with the remote authority.

        Content fields missing from ``resolved_fields`` keep their local
        value. The task's local id never changes, and a local deletion is
        never undone by resolved state.
        """
        now = utc_now()
        with self.database.transaction() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (entity_id,)).fetchone()
            if row is None:
                logger.warning(f"Resolved state for unknown task {entity_id} ignored")
                return
            current = self._row_to_task(row)
            conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, completed = ?, is_deleted = ?, updated_at = ?,
                    sync_status = ?, server_id = ?, last_synced_at = ?
                WHERE id = ?
                """,
                (
                    resolved_fields.get("title") or current.title,
                    resolved_fields.get("description", current.description) or "",
                    int(bool(resolved_fields.get("completed", current.completed))),
                    int(current.is_deleted or bool(resolved_fields.get("is_deleted"))),
                    to_iso(now),
                    SyncStatus.SYNCED.value,
                    resolved_fields.get("server_id") or current.server_id,
                    to_iso(now),
                    entity_id,
                )
            )

    def mark_synced(self, entity_id: str, server_id: Optional[str] = None) -> None:
        now = to_iso(utc_now())
        with self.database.transaction() as conn:
            conn.execute(
                """
                UPDATE tasks
                SET sync_status = ?, last_synced_at = ?, server_id = COALESCE(?, server_id)
                WHERE id = ?
                """,
                (SyncStatus.SYNCED.value, now, server_id, entity_id)
            )

    def _set_sync_status(self, entity_id: str, status: SyncStatus) -> None:
        with self.database.transaction() as conn:
            conn.execute(
                "UPDATE tasks SET sync_status = ? WHERE id = ?",
                (status.value, entity_id)
            )

    def mark_sync_error(self, entity_id: str) -> None:
        self._set_sync_status(entity_id, SyncStatus.ERROR)

    def mark_sync_failed(self, entity_id: str) -> None:
        self._set_sync_status(entity_id, SyncStatus.FAILED)

    def last_synced_at(self) -> Optional[datetime]:
        """Most recent successful sync time across all tasks."""
        with self.database.transaction() as conn:
            row = conn.execute(
                "SELECT MAX(last_synced_at) AS last_sync FROM tasks WHERE last_synced_at IS NOT NULL"
            ).fetchone()
        return parse_timestamp(row['last_sync'])
