# vaultwatch/processing/sampler.py

"""
Content sampling for pending changes

Keeps one PendingChange per tracked path and turns successive content samples
into an accumulated length-based delta. The diff is an approximation: it
compares character counts only, so a same-length replacement reads as no change.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from ..db.records import ContentDelta

logger = logging.getLogger(__name__)


def word_count(content: str) -> int:
    """Whitespace-delimited token count"""
    return len(content.split())


@dataclass
class AccumulatedDelta:
    added: int = 0
    removed: int = 0
    word_count_before: int = 0
    word_count_after: int = 0
    char_count_before: int = 0
    char_count_after: int = 0

    @property
    def is_empty(self) -> bool:
        return self.added == 0 and self.removed == 0

    def to_content_delta(self, sampled_at: int) -> ContentDelta:
        return ContentDelta(
            added=self.added,
            removed=self.removed,
            word_count_before=self.word_count_before,
            word_count_after=self.word_count_after,
            char_count_before=self.char_count_before,
            char_count_after=self.char_count_after,
            sampled_at=sampled_at,
        )


@dataclass
class PendingChange:
    """Ephemeral per-path state between durable writes"""
    last_known_content: str
    last_sample_time: int
    batch_start_time: int
    accumulated: AccumulatedDelta = field(default_factory=AccumulatedDelta)
    force_flush: bool = False


class ContentSampler:
    """
    Tracks pending content changes per path
    """

    def __init__(self):
        self.pending: Dict[str, PendingChange] = {}
        self.stats = {
            'samples': 0,
            'seeded': 0,
            'rotations': 0,
        }

    def __contains__(self, path: str) -> bool:
        return path in self.pending

    def __len__(self) -> int:
        return len(self.pending)

    def get(self, path: str) -> Optional[PendingChange]:
        return self.pending.get(path)

    def baseline(self, path: str) -> Optional[str]:
        """Last content seen for a path, if any"""
        change = self.pending.get(path)
        return change.last_known_content if change else None

    def seed(self, path: str, content: str, now: int) -> PendingChange:
        """
        Record a baseline without attributing any delta

        Used on startup and for transient notes, whose content should count
        only once they get a real name.
        """
        words = word_count(content)
        chars = len(content)
        change = PendingChange(
            last_known_content=content,
            last_sample_time=now,
            batch_start_time=now,
            accumulated=AccumulatedDelta(
                word_count_before=words,
                word_count_after=words,
                char_count_before=chars,
                char_count_after=chars,
            ),
        )
        self.pending[path] = change
        self.stats['seeded'] += 1
        return change

    def sample(self, path: str, content: str, now: int) -> AccumulatedDelta:
        """
        Fold a fresh content sample into the path's accumulated delta

        Args:
            path: Vault-relative path
            content: Current content
            now: Sample time (ms)

        Returns:
            The accumulated delta after this sample
        """
        self.stats['samples'] += 1
        change = self.pending.get(path)

        if change is None:
            # Never seen: everything counts as added
            chars = len(content)
            change = PendingChange(
                last_known_content=content,
                last_sample_time=now,
                batch_start_time=now,
                accumulated=AccumulatedDelta(
                    added=chars,
                    word_count_after=word_count(content),
                    char_count_after=chars,
                ),
            )
            self.pending[path] = change
            return change.accumulated

        diff = len(content) - len(change.last_known_content)
        acc = change.accumulated
        acc.added += max(0, diff)
        acc.removed += max(0, -diff)
        acc.word_count_after = word_count(content)
        acc.char_count_after = len(content)

        change.last_known_content = content
        change.last_sample_time = now
        return acc

    def snapshot(self, path: str) -> Optional[AccumulatedDelta]:
        change = self.pending.get(path)
        return replace(change.accumulated) if change else None

    def rotate(self, path: str, now: int):
        """Start a new accumulation window from the current baseline"""
        change = self.pending.get(path)
        if change is None:
            return
        words = word_count(change.last_known_content)
        chars = len(change.last_known_content)
        change.accumulated = AccumulatedDelta(
            word_count_before=words,
            word_count_after=words,
            char_count_before=chars,
            char_count_after=chars,
        )
        change.batch_start_time = now
        change.force_flush = False
        self.stats['rotations'] += 1

    def mark_force_flush(self, path: str):
        change = self.pending.get(path)
        if change is not None:
            change.force_flush = True

    def move(self, old_path: str, new_path: str) -> Optional[PendingChange]:
        """Re-key a pending change on rename; an existing target is replaced"""
        change = self.pending.pop(old_path, None)
        if change is not None:
            self.pending[new_path] = change
        return change

    def discard(self, path: str) -> Optional[PendingChange]:
        return self.pending.pop(path, None)

    def clear(self):
        self.pending.clear()

    def get_stats(self):
        return {
            **self.stats,
            'pending': len(self.pending),
        }
