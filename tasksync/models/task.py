from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .timestamps import parse_timestamp, to_iso, utc_now

# Accepted types for task fields in remote state; None is always allowed
REMOTE_FIELD_TYPES = {
    "id": (str,),
    "title": (str,),
    "description": (str,),
    "completed": (bool, int),
    "is_deleted": (bool, int),
    "server_id": (str,),
    "created_at": (str,),
    "updated_at": (str,),
}


class SyncStatus(Enum):
    """Sync state of a task as seen by the local client."""
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"
    FAILED = "failed"


@dataclass
class Task:
    """A locally stored task and its sync bookkeeping fields."""
    id: str
    title: str
    description: str = ""
    completed: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    is_deleted: bool = False
    sync_status: SyncStatus = SyncStatus.PENDING
    server_id: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation used in queue payloads and on the wire."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "is_deleted": self.is_deleted,
            "sync_status": self.sync_status.value,
            "server_id": self.server_id,
            "last_synced_at": to_iso(self.last_synced_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """
        Build a task from a (possibly partial) dictionary.

        Unknown keys are ignored so remote payloads carrying extra fields still load.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for key in ("created_at", "updated_at", "last_synced_at"):
            if key in values:
                values[key] = parse_timestamp(values[key])
        for key in ("created_at", "updated_at"):
            if values.get(key) is None:
                values.pop(key, None)
        if "sync_status" in values:
            try:
                values["sync_status"] = SyncStatus(values["sync_status"])
            except ValueError:
                values["sync_status"] = SyncStatus.PENDING
        for key in ("completed", "is_deleted"):
            if key in values:
                values[key] = bool(values[key])
        if values.get("description") is None:
            values.pop("description", None)
        values.setdefault("id", "")
        values.setdefault("title", "")
        return cls(**values)

    @staticmethod
    def check_field_types(data: Dict[str, Any]) -> None:
        """
        Reject remote task state whose fields cannot be stored.

        Raises:
            TypeError: If a known field holds a value of the wrong type
        """
        for key, types in REMOTE_FIELD_TYPES.items():
            value = data.get(key)
            if value is not None and not isinstance(value, types):
                raise TypeError(f"field '{key}' has type {type(value).__name__}")
