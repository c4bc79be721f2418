# vaultwatch/db/records.py

"""
Immutable activity records and aggregate snapshots exchanged with the store
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from ..watchdog.events import EventKind

EVENT_KINDS = tuple(kind.value for kind in EventKind)


def day_bucket(timestamp: int) -> str:
    """Local calendar date (YYYY-MM-DD) of a millisecond timestamp"""
    return datetime.fromtimestamp(timestamp / 1000).strftime('%Y-%m-%d')


@dataclass(frozen=True)
class ContentDelta:
    added: int = 0
    removed: int = 0
    word_count_before: int = 0
    word_count_after: int = 0
    char_count_before: int = 0
    char_count_after: int = 0
    sampled_at: int = 0


@dataclass(frozen=True)
class EventRecord:
    """One durable activity record; never mutated after commit"""
    timestamp: int
    path: str
    kind: EventKind
    content_delta: ContentDelta = field(default_factory=ContentDelta)
    previous_path: Optional[str] = None

    def __post_init__(self):
        if self.kind is EventKind.RENAME and not self.previous_path:
            raise ValueError("Rename records require previous_path")
        if self.kind is not EventKind.RENAME and self.previous_path is not None:
            raise ValueError(f"{self.kind.value} records cannot carry previous_path")

    @property
    def date(self) -> str:
        return day_bucket(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'path': self.path,
            'kind': self.kind.value,
            'previous_path': self.previous_path,
            'content_delta': asdict(self.content_delta),
        }


@dataclass
class DailyAggregate:
    date: str
    total_events: int = 0
    event_counts: Dict[str, int] = field(
        default_factory=lambda: {kind: 0 for kind in EVENT_KINDS}
    )
    total_added: int = 0
    total_removed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EntityAggregate:
    path: str
    total_edits: int = 0
    total_added: int = 0
    total_removed: int = 0
    last_modified: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
