"""Models package for the task sync client."""

from .task import Task, SyncStatus
from .mutation import QueuedMutation, DeadLetterEntry, Operation
from .sync_result import SyncResult, SyncErrorEntry, ItemOutcome, OutcomeStatus

__all__ = [
    'Task', 'SyncStatus',
    'QueuedMutation', 'DeadLetterEntry', 'Operation',
    'SyncResult', 'SyncErrorEntry', 'ItemOutcome', 'OutcomeStatus',
]
