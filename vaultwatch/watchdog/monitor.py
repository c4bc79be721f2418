# vaultwatch/watchdog/monitor.py

"""
Vault file system monitor
"""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from watchdog.observers import Observer

from .events import WatchdogEvent
from .handlers import VaultEventHandler
from ..utils.logger import get_logger, log_exception

logger = logging.getLogger(__name__)


class FileMonitor:
    """
    Watches the vault and feeds events to the tracker in arrival order

    A single consumer task drains the queue, so events for one path are
    handled strictly one after another.
    """

    def __init__(self, config, tracker: Any, tracking_filter=None):
        """
        Initialize file monitor

        Args:
            config: Config instance
            tracker: ActivityTracker (anything with an async handle_event)
            tracking_filter: TrackingFilter for raw noise; defaults to the tracker's
        """
        self.config = config
        self.tracker = tracker
        self.tracking_filter = tracking_filter or getattr(tracker, 'filter', None)

        watchdog_config = config.watchdog
        self.root = Path(config.paths.vault).expanduser().resolve()
        self.recursive = watchdog_config.recursive
        self.queue_size = watchdog_config.queue_size
        self.extensions = watchdog_config.extensions

        self.observer = None
        self.event_handler: Optional[VaultEventHandler] = None
        self.queue: Optional[asyncio.Queue] = None
        self.consumer_task: Optional[asyncio.Task] = None

        # State
        self.is_running = False
        self.stats = {
            'events_queued': 0,
            'events_processed': 0,
            'dropped_events': 0,
            'errors': 0,
            'last_event': None,
        }

        self.log = get_logger(__name__, {'vault': str(self.root)})
        self.log.info("FileMonitor initialized")

    async def start(self) -> bool:
        """Start watching the vault"""
        if self.is_running:
            logger.warning("FileMonitor is already running")
            return True

        if not self.root.is_dir():
            logger.error(f"Vault directory not found: {self.root}")
            return False

        loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue(maxsize=self.queue_size)
        self.event_handler = VaultEventHandler(
            root=self.root,
            loop=loop,
            sink=self.enqueue,
            tracking_filter=self.tracking_filter,
            extensions=self.extensions,
        )

        try:
            self.observer = Observer()
            self.observer.schedule(self.event_handler, str(self.root), recursive=self.recursive)
            self.observer.start()
        except OSError as e:
            log_exception(logger, e, "Failed to start FileMonitor", {'vault': str(self.root)})
            self.observer = None
            return False

        self.is_running = True
        self.consumer_task = asyncio.create_task(self._consume())
        self.log.info(f"Watching vault (recursive: {self.recursive})")
        return True

    async def stop(self) -> bool:
        """Stop watching and finish queued events"""
        if not self.is_running:
            return True

        self.is_running = False

        if self.observer:
            self.observer.stop()
            self.observer.join(timeout=10)
            self.observer = None

        # Let the consumer finish what is already queued
        if self.queue is not None:
            await self.queue.join()

        if self.consumer_task:
            self.consumer_task.cancel()
            try:
                await self.consumer_task
            except asyncio.CancelledError:
                pass
            self.consumer_task = None

        self.log.info("FileMonitor stopped")
        return True

    def enqueue(self, event: WatchdogEvent) -> bool:
        """Queue an event; runs on the loop thread"""
        if self.queue is None:
            return False
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.stats['dropped_events'] += 1
            logger.warning(f"Event queue full, dropping event: {event}")
            return False

        self.stats['events_queued'] += 1
        self.stats['last_event'] = datetime.now()
        return True

    async def _consume(self):
        logger.info("Starting vault event consumer")
        while True:
            event = await self.queue.get()
            try:
                await self.tracker.handle_event(event)
                self.stats['events_processed'] += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.stats['errors'] += 1
                log_exception(logger, e, f"Error processing event {event}")
            finally:
                self.queue.task_done()

    def get_stats(self) -> Dict[str, Any]:
        """Get monitor statistics"""
        stats = {
            **self.stats,
            'is_running': self.is_running,
            'queue_size': self.queue.qsize() if self.queue is not None else 0,
        }
        if self.event_handler is not None:
            stats['handler'] = self.event_handler.get_stats()
        return stats
