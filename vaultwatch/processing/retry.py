# vaultwatch/processing/retry.py

"""
Failure ledger: bounded queue of failed commits, retried on a fixed interval
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..watchdog.events import EventKind

logger = logging.getLogger(__name__)

RETRY_TIMER = ('failure-ledger', 'retry')


class RecoveryOutcome(Enum):
    RECORDED = "recorded"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass
class FailedOperation:
    kind: EventKind
    path: str
    enqueued_at: int
    last_attempt_at: int
    attempts: int = 0
    # Content as of the failed create, when it was known
    content: Optional[str] = None

    @property
    def key(self) -> Tuple[EventKind, str]:
        return (self.kind, self.path)


RecoverCallback = Callable[[FailedOperation], Awaitable[RecoveryOutcome]]


class FailureLedger:
    """
    Bounded, ordered set of failed operations keyed by (kind, path)

    Adding an operation that is already queued keeps the original entry, so a
    retry that fails again does not extend its lifetime.
    """

    def __init__(self, store, scheduler, recover: RecoverCallback,
                 is_exempt: Callable[[str], bool], retry_config):
        """
        Initialize failure ledger

        Args:
            store: ActivityStore (only is_initialized() is consulted)
            scheduler: Scheduler used for the periodic retry timer
            recover: Kind-specific recovery, provided by the EventRecorder
            is_exempt: Predicate for paths that are never retried
            retry_config: RetryConfig section
        """
        self.store = store
        self.scheduler = scheduler
        self.recover = recover
        self.is_exempt = is_exempt
        self.config = retry_config

        self.entries: "OrderedDict[Tuple[EventKind, str], FailedOperation]" = OrderedDict()
        self.is_running = False

        self.stats = {
            'enqueued': 0,
            'evicted': 0,
            'recovered': 0,
            'dropped': 0,
            'failed_attempts': 0,
            'skipped_cycles': 0,
        }

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key) -> bool:
        return key in self.entries

    def get(self, kind: EventKind, path: str) -> Optional[FailedOperation]:
        return self.entries.get((kind, path))

    def add(self, kind: EventKind, path: str, content: Optional[str] = None) -> FailedOperation:
        """Queue a failed operation"""
        key = (kind, path)
        existing = self.entries.get(key)
        if existing is not None:
            return existing

        now = self.scheduler.now()
        operation = FailedOperation(
            kind=kind,
            path=path,
            enqueued_at=now,
            last_attempt_at=now,
            content=content,
        )
        self.entries[key] = operation
        self.stats['enqueued'] += 1

        while len(self.entries) > self.config.max_entries:
            _, evicted = self.entries.popitem(last=False)
            self.stats['evicted'] += 1
            logger.warning(
                f"Failure ledger full, dropping {evicted.kind.value} for {evicted.path}"
            )

        logger.debug(f"Queued failed {kind.value} for {path} ({len(self.entries)} pending)")
        return operation

    def resolve(self, kind: EventKind, path: str) -> bool:
        """Remove an entry after the same operation committed"""
        return self.entries.pop((kind, path), None) is not None

    def clear(self):
        self.entries.clear()

    def start(self):
        if self.is_running:
            return
        self.is_running = True
        self._arm()
        logger.info(f"Failure ledger started (interval={self.config.interval}s)")

    def stop(self):
        if not self.is_running:
            return
        self.is_running = False
        self.scheduler.cancel(RETRY_TIMER)
        logger.info(f"Failure ledger stopped ({len(self.entries)} operations pending)")

    def _arm(self):
        self.scheduler.after(self.config.interval, RETRY_TIMER, self._on_timer)

    async def _on_timer(self):
        try:
            await self.retry_once()
        finally:
            if self.is_running:
                self._arm()

    def _drop(self, operation: FailedOperation, reason: str):
        self.entries.pop(operation.key, None)
        self.stats['dropped'] += 1
        logger.info(f"Dropping failed {operation.kind.value} for {operation.path}: {reason}")

    async def retry_once(self) -> Dict[str, int]:
        """
        Run one retry cycle

        Returns:
            Counts of recovered, dropped and failed operations in this cycle
        """
        summary = {'recovered': 0, 'dropped': 0, 'failed': 0}

        if not self.entries:
            return summary

        if not self.store.is_initialized():
            self.stats['skipped_cycles'] += 1
            logger.debug("Store not initialized, skipping retry cycle")
            return summary

        max_age_ms = self.config.max_age * 1000
        min_age_ms = self.config.min_age * 1000

        for key, operation in list(self.entries.items()):
            # Resolved by a commit earlier in this cycle
            if key not in self.entries:
                continue

            now = self.scheduler.now()
            if now - operation.enqueued_at > max_age_ms:
                self._drop(operation, "too old")
                summary['dropped'] += 1
                continue

            if now - operation.last_attempt_at < min_age_ms:
                continue

            if self.is_exempt(operation.path):
                self._drop(operation, "path is never retried")
                summary['dropped'] += 1
                continue

            operation.attempts += 1
            operation.last_attempt_at = now
            outcome = await self.recover(operation)

            if outcome is RecoveryOutcome.RECORDED:
                self.entries.pop(key, None)
                self.stats['recovered'] += 1
                summary['recovered'] += 1
                logger.info(f"Recovered {operation.kind.value} for {operation.path}")
            elif outcome is RecoveryOutcome.DROPPED:
                self._drop(operation, "unrecoverable")
                summary['dropped'] += 1
            else:
                self.stats['failed_attempts'] += 1
                summary['failed'] += 1
                logger.debug(
                    f"Retry {operation.attempts} failed for {operation.kind.value} {operation.path}"
                )

        return summary

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'pending': len(self.entries),
            'is_running': self.is_running,
        }
