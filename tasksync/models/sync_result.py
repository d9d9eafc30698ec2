from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .timestamps import to_iso, utc_now


class OutcomeStatus(Enum):
    """Per-item status reported by the remote authority."""
    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass
class ItemOutcome:
    """The remote authority's verdict for one submitted mutation."""
    status: OutcomeStatus
    client_id: Optional[str] = None
    server_id: Optional[str] = None
    resolved_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@dataclass
class SyncErrorEntry:
    """An entry in a pass result's error list (failures and informational notes)."""
    entity_id: str
    operation: str
    error: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "operation": self.operation,
            "error": self.error,
            "timestamp": to_iso(self.timestamp),
        }


@dataclass
class SyncResult:
    """Outcome of a whole sync pass."""
    success: bool = True
    synced_items: int = 0
    failed_items: int = 0
    errors: List[SyncErrorEntry] = field(default_factory=list)

    def merge(self, other: 'SyncResult') -> None:
        """Fold a batch-level result into this one."""
        self.synced_items += other.synced_items
        self.failed_items += other.failed_items
        self.errors.extend(other.errors)
        self.success = self.failed_items == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "synced_items": self.synced_items,
            "failed_items": self.failed_items,
            "errors": [e.to_dict() for e in self.errors],
        }
