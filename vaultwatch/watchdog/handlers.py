# vaultwatch/watchdog/handlers.py

"""
Event handler bridging watchdog's observer thread to the event loop
"""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)

from .events import EventKind, WatchdogEvent
from ..utils.file_utils import to_vault_path

logger = logging.getLogger(__name__)

EVENT_KIND_MAP = {
    EVENT_TYPE_CREATED: EventKind.CREATE,
    EVENT_TYPE_MODIFIED: EventKind.MODIFY,
    EVENT_TYPE_DELETED: EventKind.DELETE,
    EVENT_TYPE_MOVED: EventKind.RENAME,
}


class VaultEventHandler(FileSystemEventHandler):
    """
    Converts watchdog events into vault-relative WatchdogEvents

    Runs on the observer thread; converted events are handed to ``sink`` on the
    event loop via call_soon_threadsafe.
    """

    def __init__(self, root: Path, loop: asyncio.AbstractEventLoop,
                 sink: Callable[[WatchdogEvent], Any],
                 tracking_filter=None,
                 extensions: Iterable[str] = ('.md',)):
        """
        Initialize event handler

        Args:
            root: Vault root directory
            loop: Event loop receiving converted events
            sink: Called on the loop with each WatchdogEvent
            tracking_filter: TrackingFilter used to drop raw noise (hidden, swap files)
            extensions: Note file extensions to watch
        """
        super().__init__()
        self.root = Path(root)
        self.loop = loop
        self.sink = sink
        self.tracking_filter = tracking_filter
        self.extensions = tuple(ext.lower() for ext in extensions)

        # Statistics
        self.stats = {
            'events_received': 0,
            'events_forwarded': 0,
            'events_ignored': 0,
            'last_event': None,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Handle any file system event"""
        self.stats['events_received'] += 1
        self.stats['last_event'] = datetime.now()

        try:
            converted = self.convert_event(event)
            if converted is None:
                self.stats['events_ignored'] += 1
                return

            self._dispatch(converted)
            self.stats['events_forwarded'] += 1

        except Exception as e:
            logger.error(f"Error handling event: {e}", exc_info=True)

    def _is_note(self, path: Optional[str]) -> bool:
        if path is None:
            return False
        if not path.lower().endswith(self.extensions):
            return False
        if self.tracking_filter is not None and self.tracking_filter.is_ignored(path):
            return False
        return True

    def _relative(self, raw_path) -> Optional[str]:
        if not raw_path:
            return None
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode('utf-8', errors='replace')
        return to_vault_path(raw_path, self.root)

    def convert_event(self, event: FileSystemEvent) -> Optional[WatchdogEvent]:
        """
        Convert a watchdog event to a vault event

        Directory events and open/close notifications are ignored. A move is
        reduced to whichever side is a watched note: note -> elsewhere is a
        delete, elsewhere -> note is a modify of the target (atomic saves
        write a temp file and move it over the note).

        Returns:
            WatchdogEvent, or None when the event is not relevant
        """
        if event.is_directory:
            return None

        kind = EVENT_KIND_MAP.get(event.event_type)
        if kind is None:
            return None

        src = self._relative(event.src_path)
        src_is_note = self._is_note(src)

        if kind is not EventKind.RENAME:
            if not src_is_note:
                return None
            return WatchdogEvent(kind=kind, path=src)

        dest = self._relative(getattr(event, 'dest_path', None))
        dest_is_note = self._is_note(dest)

        if src_is_note and dest_is_note:
            return WatchdogEvent(kind=EventKind.RENAME, path=dest, previous_path=src)
        if src_is_note:
            return WatchdogEvent(kind=EventKind.DELETE, path=src)
        if dest_is_note:
            return WatchdogEvent(kind=EventKind.MODIFY, path=dest)
        return None

    def _dispatch(self, event: WatchdogEvent):
        """Thread-safe hand-off (observer thread -> asyncio loop)"""
        try:
            self.loop.call_soon_threadsafe(self.sink, event)
        except RuntimeError:
            # Loop closed during shutdown
            logger.debug(f"Event loop closed, dropping {event}")

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
