"""Pytest configuration and fixtures for VaultWatch tests."""

import heapq
import itertools
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, Set

import pytest

from vaultwatch.db.store import ActivityStore
from vaultwatch.exceptions import SamplingError
from vaultwatch.processing.tracker import ActivityTracker
from vaultwatch.utils.config import Config

# Local noon, so day buckets never straddle midnight during a test
START_MS = int(datetime(2024, 3, 15, 12, 0, 0).timestamp() * 1000)


class ManualScheduler:
    """Virtual clock: timers fire only when the test advances time."""

    def __init__(self, start_ms: int = START_MS):
        self.now_ms = start_ms
        self._timers: Dict = {}
        self._heap = []
        self._seq = itertools.count()

    def now(self) -> int:
        return self.now_ms

    def after(self, delay, token, callback):
        self.cancel(token)
        entry = [self.now_ms + int(delay * 1000), next(self._seq), token, callback, True]
        self._timers[token] = entry
        heapq.heappush(self._heap, entry)
        return token

    def cancel(self, token) -> bool:
        entry = self._timers.pop(token, None)
        if entry is None:
            return False
        entry[4] = False
        return True

    def is_armed(self, token) -> bool:
        return token in self._timers

    def armed_tokens(self):
        return set(self._timers)

    async def advance(self, seconds: float):
        """Move the clock forward, running due timers in order."""
        target = self.now_ms + int(seconds * 1000)
        while self._heap and self._heap[0][0] <= target:
            due, _, token, callback, active = heapq.heappop(self._heap)
            if not active:
                continue
            self._timers.pop(token, None)
            self.now_ms = max(self.now_ms, due)
            await callback()
        self.now_ms = target

    async def drain(self):
        return None


class InMemoryVault:
    """ContentReader and ContentStore over a dict of path -> text."""

    def __init__(self, files: Dict[str, str] = None):
        self.files: Dict[str, str] = dict(files or {})
        self.unreadable: Set[str] = set()
        self.reads = 0

    async def read(self, path: str) -> str:
        self.reads += 1
        if path in self.unreadable:
            raise SamplingError(path, "permission denied")
        if path not in self.files:
            raise SamplingError(path, "file not found", missing=True)
        return self.files[path]

    async def write(self, path: str, data: str) -> str:
        self.files[path] = data
        return path


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def vault() -> InMemoryVault:
    return InMemoryVault()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default configuration pointed at a temporary vault.

    Returns:
        Config with file logging disabled
    """
    config = Config()
    config.paths.vault = tmp_path / "vault"
    config.database.url = f"sqlite:///{tmp_path / 'activity.db'}"
    config.log_file = None
    return config


@pytest.fixture
def store(config: Config) -> Iterator[ActivityStore]:
    """Initialized SQLite activity store in a temporary directory."""
    store = ActivityStore.from_config(config.database)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def tracker(config, store, vault, scheduler) -> ActivityTracker:
    """Tracker wired to the in-memory vault and virtual clock."""
    tracker = ActivityTracker(config, store, reader=vault, content_store=vault, scheduler=scheduler)
    tracker.ledger.start()
    return tracker
