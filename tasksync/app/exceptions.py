"""Errors raised by the task service layer."""


class TaskServiceError(Exception):
    """Base class for task service errors."""


class ValidationError(TaskServiceError):
    """Task input failed validation."""


class TaskNotFoundError(TaskServiceError):
    """No live task has the requested id."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
