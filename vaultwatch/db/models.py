# vaultwatch/db/models.py

"""
SQLAlchemy models for the VaultWatch activity database
"""
from sqlalchemy import Column, Integer, String, BigInteger, Index
from sqlalchemy.orm import declarative_base

from .records import ContentDelta, DailyAggregate, EntityAggregate, EventRecord
from ..watchdog.events import EventKind

Base = declarative_base()


class FileEvent(Base):
    """Append-only activity log"""
    __tablename__ = 'file_events'

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(BigInteger, nullable=False, index=True)  # ms since epoch
    date = Column(String(10), nullable=False, index=True)  # local YYYY-MM-DD
    file_path = Column(String(1024), nullable=False, index=True)
    event_type = Column(String(10), nullable=False)  # create, modify, delete, rename
    old_path = Column(String(1024))  # rename only

    # Content delta
    added = Column(Integer, default=0, nullable=False)
    removed = Column(Integer, default=0, nullable=False)
    word_count_before = Column(Integer, default=0, nullable=False)
    word_count_after = Column(Integer, default=0, nullable=False)
    char_count_before = Column(Integer, default=0, nullable=False)
    char_count_after = Column(Integer, default=0, nullable=False)
    sampled_at = Column(BigInteger, default=0, nullable=False)

    __table_args__ = (
        Index('idx_file_events_path_time', 'file_path', 'timestamp'),
    )

    @classmethod
    def from_record(cls, record: EventRecord) -> "FileEvent":
        delta = record.content_delta
        return cls(
            timestamp=record.timestamp,
            date=record.date,
            file_path=record.path,
            event_type=record.kind.value,
            old_path=record.previous_path,
            added=delta.added,
            removed=delta.removed,
            word_count_before=delta.word_count_before,
            word_count_after=delta.word_count_after,
            char_count_before=delta.char_count_before,
            char_count_after=delta.char_count_after,
            sampled_at=delta.sampled_at,
        )

    def to_record(self) -> EventRecord:
        return EventRecord(
            timestamp=self.timestamp,
            path=self.file_path,
            kind=EventKind(self.event_type),
            previous_path=self.old_path,
            content_delta=ContentDelta(
                added=self.added,
                removed=self.removed,
                word_count_before=self.word_count_before,
                word_count_after=self.word_count_after,
                char_count_before=self.char_count_before,
                char_count_after=self.char_count_after,
                sampled_at=self.sampled_at,
            ),
        )

    def __repr__(self):
        return f"<FileEvent(id={self.id}, type={self.event_type}, path={self.file_path})>"


class DailyStats(Base):
    """Per-day rollup of the event log"""
    __tablename__ = 'daily_stats'

    date = Column(String(10), primary_key=True)
    total_events = Column(Integer, default=0, nullable=False)
    create_count = Column(Integer, default=0, nullable=False)
    modify_count = Column(Integer, default=0, nullable=False)
    delete_count = Column(Integer, default=0, nullable=False)
    rename_count = Column(Integer, default=0, nullable=False)
    total_added = Column(Integer, default=0, nullable=False)
    total_removed = Column(Integer, default=0, nullable=False)

    @staticmethod
    def count_column(kind: EventKind) -> str:
        return f"{kind.value}_count"

    def to_aggregate(self) -> DailyAggregate:
        return DailyAggregate(
            date=self.date,
            total_events=self.total_events,
            event_counts={
                kind.value: getattr(self, self.count_column(kind)) for kind in EventKind
            },
            total_added=self.total_added,
            total_removed=self.total_removed,
        )

    def __repr__(self):
        return f"<DailyStats(date={self.date}, events={self.total_events})>"


class FileStats(Base):
    """Per-path rollup; follows the file across renames"""
    __tablename__ = 'file_stats'

    file_path = Column(String(1024), primary_key=True)
    total_edits = Column(Integer, default=0, nullable=False)
    total_added = Column(Integer, default=0, nullable=False)
    total_removed = Column(Integer, default=0, nullable=False)
    last_modified = Column(BigInteger, default=0, nullable=False)

    def to_aggregate(self) -> EntityAggregate:
        return EntityAggregate(
            path=self.file_path,
            total_edits=self.total_edits,
            total_added=self.total_added,
            total_removed=self.total_removed,
            last_modified=self.last_modified,
        )

    def __repr__(self):
        return f"<FileStats(path={self.file_path}, edits={self.total_edits})>"


def create_tables(engine):
    """Create all database tables"""
    Base.metadata.create_all(engine)
