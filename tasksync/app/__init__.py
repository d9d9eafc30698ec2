"""Application layer: task service, application wiring and lifecycle."""

from .exceptions import TaskNotFoundError, TaskServiceError, ValidationError
from .task_service import TaskService

__all__ = ['TaskNotFoundError', 'TaskService', 'TaskServiceError', 'ValidationError']
