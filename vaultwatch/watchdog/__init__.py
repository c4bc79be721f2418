# vaultwatch/watchdog/__init__.py

"""
VaultWatch Watchdog Module
Document Activity Tracking - Vault Monitoring, Filtering and Batching
"""
from .events import WatchdogEvent, EventKind
from .patterns import (
    PatternRule, TrackingFilter,
    is_export_artifact, is_reserved_output_path, is_transient_path
)
from .debounce import BatchingScheduler, BatchSlot
from .handlers import VaultEventHandler
from .monitor import FileMonitor

__all__ = [
    'WatchdogEvent',
    'EventKind',
    'PatternRule',
    'TrackingFilter',
    'is_export_artifact',
    'is_reserved_output_path',
    'is_transient_path',
    'BatchingScheduler',
    'BatchSlot',
    'VaultEventHandler',
    'FileMonitor',
]
