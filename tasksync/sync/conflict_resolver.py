"""
Last-write-wins conflict resolution.

Field precedence when the remote authority reports divergent state:

    field                               local newer / tie    remote newer
    ---------------------------------   ------------------   ------------------
    title, description, completed,
    is_deleted, created_at              local                remote
    id                                  local                remote
    server_id                           remote if set        remote if set
                                        (else local)         (else local)
    sync_status                         synced               synced
    updated_at, last_synced_at          resolution time      resolution time

Ties go to the local copy: the client doing the resolving keeps its edit.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..models.task import SyncStatus, Task
from ..models.timestamps import utc_now

logger = logging.getLogger(__name__)

CONTENT_FIELDS = ("title", "description", "completed", "is_deleted", "created_at")

LOCAL = "local"
REMOTE = "remote"


class ConflictResolver:
    """Merges a local and a remote task version into the synced result."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

    @staticmethod
    def pick_winner(local: Task, remote: Task) -> str:
        """Return ``"local"`` or ``"remote"`` by comparing ``updated_at``."""
        if remote.updated_at > local.updated_at:
            return REMOTE
        return LOCAL

    def resolve(self, local: Task, remote: Task) -> Task:
        """
        Resolve a conflict between the local and remote versions of a task.

        Returns:
            A new task carrying the winning field values, ``synced`` status
            and fresh ``updated_at``/``last_synced_at`` timestamps
        """
        winner_side = self.pick_winner(local, remote)
        winner = local if winner_side == LOCAL else remote
        now = self._clock()

        merged = Task(
            id=winner.id,
            title=winner.title,
            description=winner.description,
            completed=winner.completed,
            created_at=winner.created_at,
            updated_at=now,
            is_deleted=winner.is_deleted,
            sync_status=SyncStatus.SYNCED,
            server_id=remote.server_id or local.server_id,
            last_synced_at=now,
        )
        logger.info(f"Conflict on task {local.id} resolved in favour of {winner_side} (last-write-wins)")
        return merged
