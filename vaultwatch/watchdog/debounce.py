# vaultwatch/watchdog/debounce.py

"""
Per-file debouncing and batching of modify events

Each path with pending edits owns a BatchSlot holding its armed timers.
Two policies are supported:

- two-level debounce: a content-sampling timer and a durable-write timer,
  both re-armed on every modify
- inactivity batching: an inactivity timer re-armed on every modify plus a
  max-duration timer armed once per batch window
"""
import logging
from dataclasses import dataclass, field
from functools import partial
from itertools import count
from typing import Any, Dict, Hashable, Optional, Set

from ..exceptions import SamplingError

logger = logging.getLogger(__name__)

SAMPLE = 'sample'
WRITE = 'write'
INACTIVITY = 'inactivity'
MAX_BATCH = 'max_batch'


@dataclass(eq=False)
class BatchSlot:
    """Timers and event count for one path with pending edits"""
    serial: int
    path: str
    started_at: int
    events: int = 0
    closed: bool = False
    timers: Set[str] = field(default_factory=set)

    def token(self, name: str) -> Hashable:
        # Tokens are bound to the slot, not the path, so renames keep them valid
        return ('batch', self.serial, name)


class BatchingScheduler:
    """
    Decides when pending edits are sampled and committed
    """

    def __init__(self, scheduler, sampler, reader, recorder, tracking_config):
        """
        Initialize batching scheduler

        Args:
            scheduler: Scheduler for timers and the clock
            sampler: ContentSampler holding pending changes
            reader: ContentReader for content samples
            recorder: EventRecorder receiving flushed modifies
            tracking_config: TrackingConfig section
        """
        self.scheduler = scheduler
        self.sampler = sampler
        self.reader = reader
        self.recorder = recorder
        self.config = tracking_config

        self.slots: Dict[str, BatchSlot] = {}
        self._serials = count(1)

        self.stats = {
            'modify_events': 0,
            'samples': 0,
            'sample_failures': 0,
            'flushes': 0,
            'forced_flushes': 0,
            'cancelled': 0,
            'transferred': 0,
        }

    @property
    def batching_enabled(self) -> bool:
        return self.config.batching_enabled

    def is_pending(self, path: str) -> bool:
        return path in self.slots

    def get_slot(self, path: str) -> Optional[BatchSlot]:
        return self.slots.get(path)

    def _arm(self, slot: BatchSlot, name: str, delay: float, callback):
        self.scheduler.after(delay, slot.token(name), callback)
        slot.timers.add(name)

    def _disarm(self, slot: BatchSlot, name: str) -> bool:
        slot.timers.discard(name)
        return self.scheduler.cancel(slot.token(name))

    def _is_armed(self, slot: BatchSlot, name: str) -> bool:
        return self.scheduler.is_armed(slot.token(name))

    def _open_slot(self, path: str) -> BatchSlot:
        slot = BatchSlot(serial=next(self._serials), path=path, started_at=self.scheduler.now())
        self.slots[path] = slot
        if self.batching_enabled:
            self._arm(slot, MAX_BATCH, self.config.max_batch_duration,
                      partial(self._on_max_batch, slot))
        logger.debug(f"Opened batch for {path}")
        return slot

    def _close_slot(self, slot: BatchSlot):
        for name in list(slot.timers):
            self._disarm(slot, name)
        slot.closed = True
        if self.slots.get(slot.path) is slot:
            del self.slots[slot.path]

    def touch(self, path: str) -> BatchSlot:
        """
        Register a modify event for a path and (re)arm its timers

        Synchronous, so no other callback can observe a half-armed slot.
        """
        self.stats['modify_events'] += 1
        slot = self.slots.get(path) or self._open_slot(path)
        slot.events += 1

        self._arm(slot, SAMPLE, self.config.content_debounce_interval,
                  partial(self._sample, slot))
        if self.batching_enabled:
            self._arm(slot, INACTIVITY, self.config.inactivity_threshold,
                      partial(self._flush, slot, INACTIVITY))
        else:
            self._arm(slot, WRITE, self.config.db_write_debounce_interval,
                      partial(self._flush, slot, WRITE))
        return slot

    async def _sample(self, slot: BatchSlot):
        slot.timers.discard(SAMPLE)
        if slot.closed:
            return
        path = slot.path
        try:
            content = await self.reader.read(path)
        except SamplingError as e:
            # Keep the pending change; the next sample or flush tries again
            self.stats['sample_failures'] += 1
            logger.warning(f"Skipping content sample: {e}")
            return

        if slot.closed or slot.path != path:
            logger.debug(f"Discarding stale sample for {path}")
            return
        self.sampler.sample(path, content, self.scheduler.now())
        self.stats['samples'] += 1

    async def _flush(self, slot: BatchSlot, reason: str, keep_open: bool = False):
        slot.timers.discard(reason)
        if slot.closed:
            return

        # Only events seen before the flush's own sample are covered by it
        events = slot.events
        if self._is_armed(slot, SAMPLE):
            self._disarm(slot, SAMPLE)
            await self._sample(slot)
            if slot.closed:
                return

        if events > 0:
            logger.debug(f"Flushing {slot.path} ({events} events, reason={reason})")
            await self.recorder.record_modify(slot.path)
            self.stats['flushes'] += 1
            if slot.closed:
                return

        slot.events -= events
        if keep_open or slot.events > 0 or self._is_armed(slot, SAMPLE):
            # More edits arrived while flushing; their timers are already armed
            return
        self._close_slot(slot)

    async def _on_max_batch(self, slot: BatchSlot):
        slot.timers.discard(MAX_BATCH)
        if slot.closed:
            return

        self.stats['forced_flushes'] += 1
        self.sampler.mark_force_flush(slot.path)
        ongoing = self._is_armed(slot, INACTIVITY)
        logger.debug(f"Max batch duration reached for {slot.path}")

        await self._flush(slot, MAX_BATCH, keep_open=ongoing)

        if ongoing and not slot.closed:
            # Start the next window right away
            slot.started_at = self.scheduler.now()
            self._arm(slot, MAX_BATCH, self.config.max_batch_duration,
                      partial(self._on_max_batch, slot))

    def cancel(self, path: str) -> bool:
        """Cancel every timer of a path (delete)"""
        slot = self.slots.get(path)
        if slot is None:
            return False
        self._close_slot(slot)
        self.stats['cancelled'] += 1
        logger.debug(f"Cancelled pending batch for {path}")
        return True

    def transfer(self, old_path: str, new_path: str) -> bool:
        """
        Re-key a path's slot and pending change (rename)

        Returns:
            True if a batch was in flight for the old path
        """
        target = self.slots.get(new_path)
        if target is not None:
            self._close_slot(target)

        self.sampler.move(old_path, new_path)

        slot = self.slots.pop(old_path, None)
        if slot is None:
            return False
        slot.path = new_path
        self.slots[new_path] = slot
        self.stats['transferred'] += 1
        logger.debug(f"Moved pending batch {old_path} -> {new_path}")
        return True

    async def flush_all(self):
        """Flush every pending batch (shutdown)"""
        slots = list(self.slots.values())
        for slot in slots:
            for name in (WRITE, INACTIVITY, MAX_BATCH):
                self._disarm(slot, name)
        for slot in slots:
            await self._flush(slot, 'shutdown')
        logger.info(f"Flushed {len(slots)} pending batches")

    def cancel_all(self) -> int:
        """Abandon every pending batch"""
        slots = list(self.slots.values())
        for slot in slots:
            self._close_slot(slot)
        if slots:
            logger.info(f"Abandoned {len(slots)} pending batches")
        return len(slots)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'pending_batches': len(self.slots),
            'mode': 'batching' if self.batching_enabled else 'debounce',
        }
