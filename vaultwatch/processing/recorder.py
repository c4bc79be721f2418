# vaultwatch/processing/recorder.py

"""
Event recorder: turns pending changes into durable activity records
"""
import logging
from typing import Any, Dict, Optional

from .retry import FailedOperation, FailureLedger, RecoveryOutcome
from .sampler import ContentSampler, word_count
from ..db.records import ContentDelta, EventRecord
from ..exceptions import SamplingError, StoreError
from ..watchdog.events import EventKind

logger = logging.getLogger(__name__)


class EventRecorder:
    """
    Builds one EventRecord per call and commits it to the store

    Commit failures never propagate: they are logged and queued in the
    failure ledger, which calls back into recover() later.
    """

    def __init__(self, store, sampler: ContentSampler, reader, scheduler,
                 tracking_filter, retry_config):
        """
        Initialize event recorder

        Args:
            store: ActivityStore
            sampler: ContentSampler holding pending changes
            reader: ContentReader used for recovery re-reads
            scheduler: Scheduler providing the clock
            tracking_filter: TrackingFilter (transient and retry-exempt checks)
            retry_config: RetryConfig section
        """
        self.store = store
        self.sampler = sampler
        self.reader = reader
        self.scheduler = scheduler
        self.filter = tracking_filter

        self.ledger = FailureLedger(
            store=store,
            scheduler=scheduler,
            recover=self.recover,
            is_exempt=tracking_filter.is_retry_exempt,
            retry_config=retry_config,
        )

        self.stats = {
            'recorded': {kind.value: 0 for kind in EventKind},
            'failed': 0,
            'reclassified_renames': 0,
        }

    def _commit(self, record: EventRecord, content: Optional[str] = None) -> bool:
        try:
            self.store.commit(record)
        except StoreError as e:
            self.stats['failed'] += 1
            logger.warning(f"Could not record {record.kind.value} for {record.path}: {e}")
            self.ledger.add(record.kind, record.path, content=content)
            return False

        self.stats['recorded'][record.kind.value] += 1
        self.ledger.resolve(record.kind, record.path)
        return True

    def _create_record(self, path: str, content: str, now: int, added: Optional[int] = None) -> EventRecord:
        chars = len(content)
        return EventRecord(
            timestamp=now,
            path=path,
            kind=EventKind.CREATE,
            content_delta=ContentDelta(
                added=chars if added is None else added,
                word_count_after=word_count(content),
                char_count_after=chars,
                sampled_at=now,
            ),
        )

    async def record_create(self, path: str, content: str, seed: bool = True) -> bool:
        """
        Record a new file; all of its content counts as added

        The baseline is seeded whether or not the commit succeeds, unless
        ``seed`` is False.
        """
        now = self.scheduler.now()
        ok = self._commit(self._create_record(path, content, now), content=content)
        if seed:
            self.sampler.seed(path, content, now)
        return ok

    async def record_modify(self, path: str) -> bool:
        """Record the delta accumulated for a path since its last commit"""
        change = self.sampler.get(path)
        if change is None:
            logger.debug(f"No pending change for {path}, nothing to record")
            return False

        now = self.scheduler.now()
        record = EventRecord(
            timestamp=now,
            path=path,
            kind=EventKind.MODIFY,
            content_delta=change.accumulated.to_content_delta(change.last_sample_time),
        )
        ok = self._commit(record)
        if ok:
            self.sampler.rotate(path, now)
        return ok

    async def record_delete(self, path: str) -> bool:
        """Record a deletion; the last known content counts as removed"""
        change = self.sampler.discard(path)
        now = self.scheduler.now()

        if change is not None:
            baseline = change.last_known_content
            delta = ContentDelta(
                removed=len(baseline),
                word_count_before=word_count(baseline),
                char_count_before=len(baseline),
                sampled_at=now,
            )
        else:
            delta = ContentDelta(sampled_at=now)

        return self._commit(EventRecord(
            timestamp=now,
            path=path,
            kind=EventKind.DELETE,
            content_delta=delta,
        ))

    async def record_rename(self, path: str, previous_path: str) -> bool:
        """
        Record a rename; pending state must already be under the new path

        Renaming a transient note (e.g. 'Untitled.md') is its real creation,
        so it is recorded as a create at the new path.
        """
        if self.filter.is_transient(previous_path):
            self.stats['reclassified_renames'] += 1
            try:
                content = await self.reader.read(path)
            except SamplingError as e:
                logger.warning(f"Could not read renamed note, using last known content: {e}")
                content = self.sampler.baseline(path) or ""
            return await self.record_create(path, content)

        now = self.scheduler.now()
        baseline = self.sampler.baseline(path)
        if baseline is not None:
            words = word_count(baseline)
            chars = len(baseline)
            delta = ContentDelta(
                word_count_before=words,
                word_count_after=words,
                char_count_before=chars,
                char_count_after=chars,
                sampled_at=now,
            )
        else:
            delta = ContentDelta(sampled_at=now)

        return self._commit(EventRecord(
            timestamp=now,
            path=path,
            kind=EventKind.RENAME,
            previous_path=previous_path,
            content_delta=delta,
        ))

    async def recover(self, operation: FailedOperation) -> RecoveryOutcome:
        """
        Re-drive a failed operation for the failure ledger

        Args:
            operation: Queued failed operation

        Returns:
            RECORDED on commit, FAILED to retry later, DROPPED when unrecoverable
        """
        path = operation.path

        if operation.kind is EventKind.RENAME:
            # Source state is gone
            return RecoveryOutcome.DROPPED

        if operation.kind is EventKind.DELETE:
            now = self.scheduler.now()
            ok = self._commit(EventRecord(
                timestamp=now,
                path=path,
                kind=EventKind.DELETE,
                content_delta=ContentDelta(sampled_at=now),
            ))
            return RecoveryOutcome.RECORDED if ok else RecoveryOutcome.FAILED

        try:
            content = await self.reader.read(path)
        except SamplingError as e:
            if e.missing:
                return RecoveryOutcome.DROPPED
            logger.warning(f"Retry could not read {path}: {e}")
            return RecoveryOutcome.FAILED

        if operation.kind is EventKind.CREATE:
            # Later edits are measured against the pending baseline; never reseed it
            pending = self.sampler.get(path) is not None
            if operation.content is not None:
                ok = await self.record_create(path, operation.content, seed=not pending)
            elif pending:
                # First sample of an unseen path already counted its content as added
                ok = self._commit(self._create_record(path, content, self.scheduler.now(), added=0))
            else:
                ok = await self.record_create(path, content)
        else:
            self.sampler.sample(path, content, self.scheduler.now())
            ok = await self.record_modify(path)

        return RecoveryOutcome.RECORDED if ok else RecoveryOutcome.FAILED

    def get_stats(self) -> Dict[str, Any]:
        return {
            'recorded': dict(self.stats['recorded']),
            'failed': self.stats['failed'],
            'reclassified_renames': self.stats['reclassified_renames'],
            'ledger': self.ledger.get_stats(),
        }
