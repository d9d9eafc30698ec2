"""Local SQLite persistence for tasks and the sync queues."""

from .sync_database import SyncDatabase

__all__ = ['SyncDatabase']
