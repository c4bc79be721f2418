# vaultwatch/processing/tracker.py

"""
Activity tracker: wires filtering, sampling, batching and recording together
and exposes the query API over the activity store
"""
import asyncio
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .recorder import EventRecorder
from .sampler import ContentSampler
from ..db.export import ExportOptions, export_events, schedule_export
from ..db.records import DailyAggregate, EntityAggregate, EventRecord
from ..exceptions import SamplingError, StoreError
from ..utils.logger import log_exception
from ..utils.scheduler import AsyncioScheduler
from ..watchdog.debounce import BatchingScheduler
from ..watchdog.events import EventKind, WatchdogEvent
from ..watchdog.patterns import TrackingFilter

logger = logging.getLogger(__name__)


class ActivityTracker:
    """
    Entry point for vault events and activity queries

    The on_* handlers never raise; query methods propagate store errors.
    """

    def __init__(self, config, store, reader, content_store=None, scheduler=None):
        """
        Initialize activity tracker

        Args:
            config: Config instance
            store: ActivityStore (constructed, not necessarily initialized)
            reader: ContentReader for note content
            content_store: ContentStore for exports
            scheduler: Scheduler; defaults to an AsyncioScheduler
        """
        self.config = config
        self.store = store
        self.reader = reader
        self.content_store = content_store
        self.scheduler = scheduler or AsyncioScheduler()

        self.filter = TrackingFilter(
            config.tracking,
            dashboard_path=config.dashboard.path,
            retry_skip_prefixes=config.retry.skip_prefixes,
        )
        self.sampler = ContentSampler()
        self.recorder = EventRecorder(
            store=store,
            sampler=self.sampler,
            reader=reader,
            scheduler=self.scheduler,
            tracking_filter=self.filter,
            retry_config=config.retry,
        )
        self.batching = BatchingScheduler(
            scheduler=self.scheduler,
            sampler=self.sampler,
            reader=reader,
            recorder=self.recorder,
            tracking_config=config.tracking,
        )

        self.stats = {
            'events_received': 0,
            'events_ignored': 0,
            'errors': 0,
            'seeded': 0,
        }

    @property
    def ledger(self):
        return self.recorder.ledger

    # Lifecycle

    def initialize(self) -> bool:
        """
        Open the store and start the failure ledger

        Returns:
            False when the store could not be opened; events are still
            accepted and their commits queue up in the ledger
        """
        ok = True
        try:
            self.store.initialize()
        except StoreError as e:
            log_exception(logger, e, "Activity store unavailable")
            ok = False

        self.ledger.start()
        logger.info("Activity tracker initialized")
        return ok

    async def load_initial_state(self, paths: Iterable[str]) -> int:
        """
        Seed baselines for existing notes without recording events

        Args:
            paths: Vault-relative paths of known notes

        Returns:
            Number of notes seeded
        """
        batch_size = max(1, self.config.tracking.initial_load_batch_size)
        paths = list(paths)
        seeded = 0

        for offset in range(0, len(paths), batch_size):
            for path in paths[offset:offset + batch_size]:
                if self.filter.is_ignored(path):
                    continue
                try:
                    content = await self.reader.read(path)
                except SamplingError as e:
                    logger.debug(f"Skipping initial state for {path}: {e}")
                    continue
                self.sampler.seed(path, content, self.scheduler.now())
                seeded += 1
            # Let queued callbacks run between batches
            await asyncio.sleep(0)

        self.stats['seeded'] += seeded
        logger.info(f"Loaded initial state for {seeded} of {len(paths)} notes")
        return seeded

    async def shutdown(self):
        """Stop retries, flush or abandon pending batches and close the store"""
        self.ledger.stop()

        if self.config.tracking.flush_on_shutdown:
            await self.batching.flush_all()
        else:
            self.batching.cancel_all()

        drain = getattr(self.scheduler, 'drain', None)
        if drain is not None:
            await drain()

        if self.ledger.entries:
            logger.warning(f"Shutting down with {len(self.ledger)} unrecorded operations")

        self.store.close()
        logger.info("Activity tracker shut down")

    # Inbound events

    async def handle_event(self, event: WatchdogEvent):
        """Dispatch a watch event to the matching handler"""
        if event.kind is EventKind.CREATE:
            await self.on_create(event.path)
        elif event.kind is EventKind.MODIFY:
            await self.on_modify(event.path)
        elif event.kind is EventKind.DELETE:
            await self.on_delete(event.path)
        elif event.kind is EventKind.RENAME:
            await self.on_rename(event.path, event.previous_path)

    def _failed(self, e: Exception, action: str, path: str):
        self.stats['errors'] += 1
        log_exception(logger, e, f"Error handling {action} for {path}", {'path': path})

    async def on_create(self, path: str):
        self.stats['events_received'] += 1
        try:
            if not self.filter.should_track(EventKind.CREATE, path):
                self.stats['events_ignored'] += 1
                return

            # A re-created path starts from scratch
            self.batching.cancel(path)

            try:
                content = await self.reader.read(path)
            except SamplingError as e:
                logger.warning(f"Could not read new note: {e}")
                if not e.missing:
                    self.ledger.add(EventKind.CREATE, path)
                return

            if self.filter.is_transient(path):
                # Counted once the note gets a real name
                self.sampler.seed(path, content, self.scheduler.now())
                return

            await self.recorder.record_create(path, content)
        except Exception as e:
            self._failed(e, "create", path)

    async def on_modify(self, path: str):
        self.stats['events_received'] += 1
        try:
            if not self.filter.should_track(EventKind.MODIFY, path):
                self.stats['events_ignored'] += 1
                return
            self.batching.touch(path)
        except Exception as e:
            self._failed(e, "modify", path)

    async def on_delete(self, path: str):
        self.stats['events_received'] += 1
        try:
            # No flush may fire for a path that is gone
            self.batching.cancel(path)

            if not self.filter.should_track(EventKind.DELETE, path):
                self.stats['events_ignored'] += 1
                self.sampler.discard(path)
                return

            await self.recorder.record_delete(path)
        except Exception as e:
            self._failed(e, "delete", path)

    async def on_rename(self, path: str, previous_path: str):
        self.stats['events_received'] += 1
        try:
            # Pending edits follow the note to its new name
            self.batching.transfer(previous_path, path)
            if not self.filter.should_track(EventKind.MODIFY, path):
                self.batching.cancel(path)

            if not (self.filter.should_track(EventKind.RENAME, previous_path)
                    or self.filter.should_track(EventKind.RENAME, path)):
                self.stats['events_ignored'] += 1
                return

            await self.recorder.record_rename(path, previous_path)
        except Exception as e:
            self._failed(e, "rename", path)

    # Query API

    def get_events_in_range(self, start: int, end: int) -> List[EventRecord]:
        return self.store.range_query(start, end)

    def get_all_events(self) -> List[EventRecord]:
        return self.store.all_events()

    def get_daily_stats(self, day: str) -> Optional[DailyAggregate]:
        return self.store.daily_aggregate(day)

    def get_all_daily_stats(self) -> List[DailyAggregate]:
        return self.store.all_daily_aggregates()

    def get_event_count(self) -> int:
        return self.store.event_count()

    def get_entity_stats(self, path: str) -> Optional[EntityAggregate]:
        return self.store.entity_aggregate(path)

    def get_all_entity_stats(self) -> List[EntityAggregate]:
        return self.store.all_entity_aggregates()

    def export_events(self, options: ExportOptions) -> str:
        return export_events(self.store, options)

    async def schedule_export(self, options: ExportOptions, directory: Optional[str] = None,
                              day: Optional[date] = None) -> str:
        """Write an export file into the vault; returns its vault-relative path"""
        if self.content_store is None:
            raise RuntimeError("No content store configured for exports")
        if directory is None:
            directory = self.config.paths.export_dir
        return await schedule_export(self.store, self.content_store, options, directory, day)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'recorder': self.recorder.get_stats(),
            'batching': self.batching.get_stats(),
            'sampler': self.sampler.get_stats(),
            'store': self.store.get_stats(),
        }
