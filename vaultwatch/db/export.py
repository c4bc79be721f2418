# vaultwatch/db/export.py

"""
Export of the activity log as CSV or JSON
"""
import csv
import io
import json
import logging
from dataclasses import dataclass, fields as dataclass_fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .records import ContentDelta, EventRecord
from ..exceptions import ExportError
from ..watchdog.events import EventKind

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ('json', 'csv')
EXPORT_PREFIX = "activity-export-"

RECORD_FIELDS = ('timestamp', 'kind', 'path', 'previous_path', 'content_delta')
DELTA_FIELDS = tuple(f.name for f in dataclass_fields(ContentDelta))
DEFAULT_CSV_FIELDS = ['timestamp', 'kind', 'path', 'previous_path', 'added', 'removed']


@dataclass
class ExportOptions:
    """
    What to export

    start/end are inclusive millisecond bounds, each optional. Fields may be
    record names, delta names ('added') or dotted delta names ('content_delta.added').
    """
    format: str = 'json'
    start: Optional[int] = None
    end: Optional[int] = None
    include_kinds: Optional[List[str]] = None
    fields: Optional[List[str]] = None

    def __post_init__(self):
        self.format = str(self.format).lower()
        if self.format not in EXPORT_FORMATS:
            raise ExportError(f"Unsupported export format: {self.format}")

        if self.include_kinds is not None:
            try:
                self.include_kinds = [EventKind.parse(k).value for k in self.include_kinds]
            except ValueError as e:
                raise ExportError(f"Unknown event kind in include_kinds: {e}") from e

        if self.fields is not None:
            for name in self.fields:
                resolve_field_name(name)

        if self.start is not None and self.end is not None and self.start > self.end:
            raise ExportError(f"Export start {self.start} is after end {self.end}")

    @property
    def kinds(self) -> Optional[List[EventKind]]:
        # An empty list means no kind filter
        if not self.include_kinds:
            return None
        return [EventKind(k) for k in self.include_kinds]

    @property
    def extension(self) -> str:
        return self.format


def resolve_field_name(name: str) -> str:
    """Map an export field name to the record attribute it reads"""
    if name in RECORD_FIELDS:
        return name
    if name in DELTA_FIELDS:
        return name
    if name.startswith('content_delta.') and name.split('.', 1)[1] in DELTA_FIELDS:
        return name.split('.', 1)[1]
    raise ExportError(f"Unknown export field: {name}")


def _field_value(record: EventRecord, name: str) -> Any:
    attr = resolve_field_name(name)
    if attr == 'kind':
        return record.kind.value
    if attr == 'content_delta':
        return record.to_dict()['content_delta']
    if attr in RECORD_FIELDS:
        return getattr(record, attr)
    return getattr(record.content_delta, attr)


def iso_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).isoformat(
        timespec='milliseconds'
    ).replace('+00:00', 'Z')


def to_csv(records: Sequence[EventRecord], fields: Optional[List[str]] = None) -> str:
    """
    Render records as CSV with a header row

    Values containing commas, quotes or newlines are double-quoted with
    embedded quotes doubled.
    """
    field_list = fields or DEFAULT_CSV_FIELDS
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n', quoting=csv.QUOTE_MINIMAL)
    writer.writerow(field_list)

    for record in records:
        row = []
        for name in field_list:
            value = _field_value(record, name)
            if name == 'timestamp':
                value = iso_timestamp(value)
            elif isinstance(value, dict):
                value = json.dumps(value)
            elif value is None:
                value = ''
            row.append(value)
        writer.writerow(row)

    return buffer.getvalue().rstrip('\n')


def to_json(records: Sequence[EventRecord], fields: Optional[List[str]] = None) -> str:
    """Render records as an indented JSON array, optionally keeping only some fields"""
    if not fields:
        return json.dumps([record.to_dict() for record in records], indent=2)

    filtered: List[Dict[str, Any]] = [
        {name: _field_value(record, name) for name in fields}
        for record in records
    ]
    return json.dumps(filtered, indent=2)


def export_events(store, options: ExportOptions) -> str:
    """
    Export events from an ActivityStore

    Args:
        store: ActivityStore to read from
        options: Export options

    Returns:
        Serialized export
    """
    records = store.events(start=options.start, end=options.end, kinds=options.kinds)
    logger.info(f"Exporting {len(records)} events as {options.format}")

    if options.format == 'json':
        return to_json(records, options.fields)
    return to_csv(records, options.fields)


def export_filename(options: ExportOptions, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{EXPORT_PREFIX}{day.strftime('%Y-%m-%d')}.{options.extension}"


async def schedule_export(store, content_store, options: ExportOptions,
                          directory: str = "", day: Optional[date] = None) -> str:
    """
    Export events into a dated file through a ContentStore

    Args:
        store: ActivityStore to read from
        content_store: ContentStore used to write the file
        options: Export options
        directory: Vault-relative folder; empty for the vault root
        day: Date used in the file name (defaults to today)

    Returns:
        Path of the written export
    """
    data = export_events(store, options)
    folder = directory.strip('/')
    filename = export_filename(options, day)
    target = f"{folder}/{filename}" if folder else filename

    try:
        written = await content_store.write(target, data)
    except OSError as e:
        logger.error(f"Failed to export activity data: {e}")
        raise ExportError(f"Cannot write export to {target}: {e}") from e

    logger.info(f"Activity data exported to {written}")
    return written
