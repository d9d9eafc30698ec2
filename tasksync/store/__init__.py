"""Local task storage."""

from .task_store import TaskStore

__all__ = ['TaskStore']
