from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .timestamps import epoch_ms, to_iso


class Operation(Enum):
    """Kinds of local mutation that can be queued for sync."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class QueuedMutation:
    """One pending change waiting in the sync queue."""
    id: int
    entity_id: str
    operation: Operation
    payload: Dict[str, Any]
    created_at: datetime
    retry_count: int = 0
    error_message: Optional[str] = None

    @property
    def created_at_ms(self) -> int:
        return epoch_ms(self.created_at)

    def to_wire(self) -> Dict[str, Any]:
        """Representation submitted to the remote authority."""
        return {
            "id": self.id,
            "task_id": self.entity_id,
            "operation": self.operation.value,
            "data": self.payload,
            "created_at": to_iso(self.created_at),
            "retry_count": self.retry_count,
        }


@dataclass
class DeadLetterEntry:
    """A mutation that exhausted its retries. Terminal; never replayed automatically."""
    id: int
    original_queue_id: int
    entity_id: str
    operation: Operation
    payload: Dict[str, Any]
    created_at: datetime
    retry_count: int
    error_message: Optional[str]
    failed_at: datetime
