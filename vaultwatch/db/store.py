# vaultwatch/db/store.py

"""
Activity store: append-only event log plus daily and per-file rollups

Every commit writes the event and both rollups in a single transaction, so a
reader never sees an event without its aggregates.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import DailyStats, FileEvent, FileStats
from .records import DailyAggregate, EntityAggregate, EventRecord
from .session import DatabaseManager
from ..exceptions import StoreError, StoreNotInitializedError
from ..watchdog.events import EventKind

logger = logging.getLogger(__name__)


class ActivityStore:
    """
    Durable activity store with an explicit initialize/close lifecycle
    """

    def __init__(self, db_url: str = "sqlite:///./data/vaultwatch.db", echo: bool = False,
                 pool_size: int = 5, max_overflow: int = 10):
        self.db_url = db_url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.db: Optional[DatabaseManager] = None

        self.stats = {
            'commits': 0,
            'failed_commits': 0,
        }

    @classmethod
    def from_config(cls, database_config) -> "ActivityStore":
        return cls(
            db_url=database_config.url,
            echo=database_config.echo,
            pool_size=database_config.pool_size,
            max_overflow=database_config.max_overflow,
        )

    def initialize(self):
        """Open the database and create tables; idempotent"""
        if self.db is not None:
            return
        try:
            self.db = DatabaseManager(
                self.db_url,
                echo=self.echo,
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot open activity store at {self.db_url}: {e}") from e
        logger.info("Activity store initialized")

    def is_initialized(self) -> bool:
        return self.db is not None

    def close(self):
        if self.db is None:
            return
        db, self.db = self.db, None
        db.dispose()
        logger.info("Activity store closed")

    def _require(self) -> DatabaseManager:
        if self.db is None:
            raise StoreNotInitializedError()
        return self.db

    # Writes

    def commit(self, record: EventRecord):
        """
        Append an event and apply it to the daily and per-file rollups

        Args:
            record: Event to persist

        Raises:
            StoreNotInitializedError: Store not open
            StoreError: Transaction failed; nothing was applied
        """
        db = self._require()
        try:
            with db.get_session() as session:
                session.add(FileEvent.from_record(record))
                self._apply_daily(session, record)
                self._apply_entity(session, record)
        except SQLAlchemyError as e:
            self.stats['failed_commits'] += 1
            raise StoreError(f"Failed to commit {record.kind.value} for {record.path}: {e}") from e

        self.stats['commits'] += 1
        logger.debug(f"Committed {record.kind.value} event for {record.path}")

    def _apply_daily(self, session: Session, record: EventRecord):
        stats = session.get(DailyStats, record.date)
        if stats is None:
            stats = DailyStats(
                date=record.date,
                total_events=0,
                create_count=0,
                modify_count=0,
                delete_count=0,
                rename_count=0,
                total_added=0,
                total_removed=0,
            )
            session.add(stats)

        column = DailyStats.count_column(record.kind)
        setattr(stats, column, getattr(stats, column) + 1)
        stats.total_events += 1
        stats.total_added += record.content_delta.added
        stats.total_removed += record.content_delta.removed

    def _apply_entity(self, session: Session, record: EventRecord):
        if record.kind is EventKind.RENAME:
            stats = self._move_entity(session, record.previous_path, record.path)
        else:
            stats = session.get(FileStats, record.path)

        if stats is None:
            stats = FileStats(
                file_path=record.path,
                total_edits=0,
                total_added=0,
                total_removed=0,
                last_modified=0,
            )
            session.add(stats)

        if record.kind is EventKind.MODIFY:
            stats.total_edits += 1
        stats.total_added += record.content_delta.added
        stats.total_removed += record.content_delta.removed
        stats.last_modified = max(stats.last_modified, record.timestamp)

    def _move_entity(self, session: Session, old_path: str, new_path: str) -> Optional[FileStats]:
        """Re-key a file's rollup, merging into an existing target"""
        source = session.get(FileStats, old_path)
        target = session.get(FileStats, new_path)
        if source is None:
            return target

        if target is None:
            target = FileStats(
                file_path=new_path,
                total_edits=source.total_edits,
                total_added=source.total_added,
                total_removed=source.total_removed,
                last_modified=source.last_modified,
            )
            session.add(target)
        else:
            target.total_edits += source.total_edits
            target.total_added += source.total_added
            target.total_removed += source.total_removed
            target.last_modified = max(target.last_modified, source.last_modified)

        session.delete(source)
        return target

    # Reads

    def events(self, start: Optional[int] = None, end: Optional[int] = None,
               kinds: Optional[Iterable[EventKind]] = None) -> List[EventRecord]:
        """
        Events ordered by timestamp, optionally bounded (inclusive) and filtered by kind
        """
        db = self._require()
        stmt = select(FileEvent)
        if start is not None:
            stmt = stmt.where(FileEvent.timestamp >= start)
        if end is not None:
            stmt = stmt.where(FileEvent.timestamp <= end)
        if kinds is not None:
            stmt = stmt.where(FileEvent.event_type.in_([kind.value for kind in kinds]))
        stmt = stmt.order_by(FileEvent.timestamp, FileEvent.id)

        try:
            with db.get_session() as session:
                return [row.to_record() for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read events: {e}") from e

    def range_query(self, start: int, end: int) -> List[EventRecord]:
        return self.events(start=start, end=end)

    def all_events(self) -> List[EventRecord]:
        return self.events()

    def event_count(self) -> int:
        db = self._require()
        try:
            with db.get_session() as session:
                return session.scalar(select(func.count(FileEvent.id)))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count events: {e}") from e

    def daily_aggregate(self, date: str) -> Optional[DailyAggregate]:
        db = self._require()
        try:
            with db.get_session() as session:
                stats = session.get(DailyStats, date)
                return stats.to_aggregate() if stats else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read daily stats for {date}: {e}") from e

    def all_daily_aggregates(self) -> List[DailyAggregate]:
        db = self._require()
        try:
            with db.get_session() as session:
                rows = session.scalars(select(DailyStats).order_by(DailyStats.date))
                return [row.to_aggregate() for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read daily stats: {e}") from e

    def entity_aggregate(self, path: str) -> Optional[EntityAggregate]:
        db = self._require()
        try:
            with db.get_session() as session:
                stats = session.get(FileStats, path)
                return stats.to_aggregate() if stats else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read file stats for {path}: {e}") from e

    def all_entity_aggregates(self) -> List[EntityAggregate]:
        db = self._require()
        try:
            with db.get_session() as session:
                rows = session.scalars(select(FileStats).order_by(FileStats.file_path))
                return [row.to_aggregate() for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read file stats: {e}") from e

    def get_stats(self):
        return {
            **self.stats,
            'initialized': self.is_initialized(),
            'db_url': self.db_url,
        }
