"""Contract the sync engine consumes from the entity store."""

from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from ..models.task import Task


class EntityRepository(Protocol):
    """Read and write access to task sync state."""

    def get_entity(self, entity_id: str) -> Optional[Task]:
        ...

    def apply_resolved_state(self, entity_id: str, resolved_fields: Dict[str, Any]) -> None:
        ...

    def mark_synced(self, entity_id: str, server_id: Optional[str] = None) -> None:
        ...

    def mark_sync_error(self, entity_id: str) -> None:
        ...

    def mark_sync_failed(self, entity_id: str) -> None:
        ...

    def last_synced_at(self) -> Optional[datetime]:
        ...
