"""Tests for watchdog event conversion and the monitor queue."""

import asyncio
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from vaultwatch.utils.config import TrackingConfig
from vaultwatch.watchdog.events import EventKind, WatchdogEvent
from vaultwatch.watchdog.handlers import VaultEventHandler
from vaultwatch.watchdog.monitor import FileMonitor
from vaultwatch.watchdog.patterns import TrackingFilter

ROOT = Path("/vault").resolve()


def make_handler(sink=None, loop=None):
    return VaultEventHandler(
        root=ROOT,
        loop=loop,
        sink=sink or (lambda event: None),
        tracking_filter=TrackingFilter(TrackingConfig()),
    )


def p(relative):
    return str(ROOT / relative)


class TestConvertEvent:
    """Tests for VaultEventHandler.convert_event."""

    def test_basic_kinds(self):
        handler = make_handler()
        assert handler.convert_event(FileCreatedEvent(p("a.md"))).kind is EventKind.CREATE
        assert handler.convert_event(FileModifiedEvent(p("a.md"))).kind is EventKind.MODIFY
        assert handler.convert_event(FileDeletedEvent(p("a.md"))).kind is EventKind.DELETE

    def test_paths_are_vault_relative(self):
        event = make_handler().convert_event(FileCreatedEvent(p("Journal/today.md")))
        assert event.path == "Journal/today.md"

    def test_move_between_notes_is_rename(self):
        event = make_handler().convert_event(FileMovedEvent(p("a.md"), p("sub/b.md")))
        assert event.kind is EventKind.RENAME
        assert event.path == "sub/b.md"
        assert event.previous_path == "a.md"

    def test_move_out_of_vault_is_delete(self):
        event = make_handler().convert_event(FileMovedEvent(p("a.md"), "/elsewhere/a.md"))
        assert event.kind is EventKind.DELETE
        assert event.path == "a.md"

    def test_atomic_save_is_modify(self):
        event = make_handler().convert_event(FileMovedEvent(p("a.md.tmp"), p("a.md")))
        assert event.kind is EventKind.MODIFY
        assert event.path == "a.md"

    def test_ignored_events(self):
        handler = make_handler()
        assert handler.convert_event(DirCreatedEvent(p("folder"))) is None
        assert handler.convert_event(FileClosedEvent(p("a.md"))) is None
        assert handler.convert_event(FileModifiedEvent(p("image.png"))) is None
        assert handler.convert_event(FileModifiedEvent(p(".obsidian/workspace.md"))) is None
        assert handler.convert_event(FileModifiedEvent("/elsewhere/a.md")) is None


class TestDispatch:
    """Events reach the loop through call_soon_threadsafe."""

    def test_on_any_event_hands_off_to_loop(self):
        received = []

        async def scenario():
            handler = make_handler(sink=received.append, loop=asyncio.get_running_loop())
            handler.on_any_event(FileCreatedEvent(p("a.md")))
            handler.on_any_event(FileClosedEvent(p("a.md")))
            await asyncio.sleep(0)
            return handler.get_stats()

        stats = asyncio.run(scenario())

        assert [(e.kind, e.path) for e in received] == [(EventKind.CREATE, "a.md")]
        assert stats["events_received"] == 2
        assert stats["events_ignored"] == 1


class TestMonitorQueue:
    """FileMonitor feeds events to the tracker in order."""

    def test_consumer_preserves_order(self, config):
        handled = []

        class Tracker:
            filter = None

            async def handle_event(self, event):
                handled.append(event.path)

        async def scenario():
            monitor = FileMonitor(config, Tracker())
            monitor.queue = asyncio.Queue(maxsize=10)
            monitor.is_running = True
            monitor.consumer_task = asyncio.create_task(monitor._consume())
            for name in ("a.md", "b.md", "c.md"):
                monitor.enqueue(WatchdogEvent(kind=EventKind.MODIFY, path=name))
            await monitor.stop()
            return monitor.get_stats()

        stats = asyncio.run(scenario())

        assert handled == ["a.md", "b.md", "c.md"]
        assert stats["events_processed"] == 3

    def test_full_queue_drops_events(self, config):
        monitor = FileMonitor(config, tracker=None)

        async def scenario():
            monitor.queue = asyncio.Queue(maxsize=1)
            first = monitor.enqueue(WatchdogEvent(kind=EventKind.MODIFY, path="a.md"))
            second = monitor.enqueue(WatchdogEvent(kind=EventKind.MODIFY, path="b.md"))
            return first, second

        assert asyncio.run(scenario()) == (True, False)
        assert monitor.stats["dropped_events"] == 1

    def test_start_fails_without_vault(self, config):
        monitor = FileMonitor(config, tracker=None)
        assert asyncio.run(monitor.start()) is False
