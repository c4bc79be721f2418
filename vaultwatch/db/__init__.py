"""
VaultWatch Database Modules
Document Activity Tracking - Event Log, Rollups and Export
"""
from .records import ContentDelta, EventRecord, DailyAggregate, EntityAggregate, day_bucket
from .models import Base, FileEvent, DailyStats, FileStats
from .session import DatabaseManager
from .store import ActivityStore
from .export import ExportOptions, export_events, schedule_export

__all__ = [
    'ContentDelta',
    'EventRecord',
    'DailyAggregate',
    'EntityAggregate',
    'day_bucket',
    'Base',
    'FileEvent',
    'DailyStats',
    'FileStats',
    'DatabaseManager',
    'ActivityStore',
    'ExportOptions',
    'export_events',
    'schedule_export',
]
