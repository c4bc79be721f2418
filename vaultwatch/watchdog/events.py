from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class EventKind(Enum):
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"

    @classmethod
    def parse(cls, value) -> "EventKind":
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


@dataclass
class WatchdogEvent:
    """Raw file-system notification with a vault-relative path"""
    kind: EventKind
    path: str
    previous_path: Optional[str] = None
    received_at: datetime = field(default_factory=datetime.now)

    def __str__(self):
        if self.previous_path:
            return f"{self.kind.value}: {self.previous_path} -> {self.path}"
        return f"{self.kind.value}: {self.path}"
