"""
Task service: validated task mutations that feed the sync queue.

Every successful create, update or delete is followed by an enqueue of the
matching mutation, so the queue mirrors local history.
"""

import logging
from typing import Any, List, Optional

from ..models.mutation import Operation
from ..models.task import Task
from ..store.task_store import TaskStore
from ..sync.sync_service import SyncService
from .exceptions import TaskNotFoundError, ValidationError

logger = logging.getLogger(__name__)


def validate_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required and must be a non-empty string")
    return title.strip()


def validate_description(description: Any) -> str:
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("Description must be a string")
    return description.strip()


class TaskService:
    """Creates, edits and deletes tasks and enqueues the resulting mutations."""

    def __init__(self, store: TaskStore, sync_service: SyncService):
        self.store = store
        self.sync_service = sync_service

    def create_task(self, title: Any, description: Any = None) -> Task:
        task = self.store.create_task(validate_title(title), validate_description(description))
        self.sync_service.enqueue(task.id, Operation.CREATE, task.to_dict())
        logger.debug(f"Created task {task.id}")
        return task

    def update_task(
        self,
        task_id: str,
        title: Any = None,
        description: Any = None,
        completed: Optional[bool] = None
    ) -> Task:
        """
        Edit a task. Arguments left as None are not changed.

        Raises:
            ValidationError: If a provided field is invalid
            TaskNotFoundError: If no live task has this id
        """
        updates = {}
        if title is not None:
            updates["title"] = validate_title(title)
        if description is not None:
            updates["description"] = validate_description(description)
        if completed is not None:
            if not isinstance(completed, bool):
                raise ValidationError("Completed must be a boolean")
            updates["completed"] = completed

        task = self.store.update_task(task_id, **updates)
        if task is None:
            raise TaskNotFoundError(task_id)
        self.sync_service.enqueue(task.id, Operation.UPDATE, task.to_dict())
        return task

    def delete_task(self, task_id: str) -> None:
        """
        Soft-delete a task, enqueueing its last known state.

        Raises:
            TaskNotFoundError: If no live task has this id
        """
        existing = self.store.get_task(task_id)
        if existing is None or not self.store.delete_task(task_id):
            raise TaskNotFoundError(task_id)
        self.sync_service.enqueue(task_id, Operation.DELETE, existing.to_dict())

    def get_task(self, task_id: str) -> Task:
        task = self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self) -> List[Task]:
        return self.store.get_all_tasks()
