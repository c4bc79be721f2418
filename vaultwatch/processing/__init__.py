"""
VaultWatch Processing Modules
Document Activity Tracking - Sampling, Recording and Retry Pipeline
"""
from .sampler import ContentSampler, PendingChange, AccumulatedDelta, word_count
from .retry import FailureLedger, FailedOperation, RecoveryOutcome
from .recorder import EventRecorder
from .tracker import ActivityTracker

__all__ = [
    'ContentSampler',
    'PendingChange',
    'AccumulatedDelta',
    'word_count',
    'FailureLedger',
    'FailedOperation',
    'RecoveryOutcome',
    'EventRecorder',
    'ActivityTracker',
]
