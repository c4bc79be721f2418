"""Tests for CSV and JSON export."""

import asyncio
import csv
import io
import json
from datetime import date

import pytest

from vaultwatch.db.export import ExportOptions, export_events, export_filename, to_csv
from vaultwatch.db.records import ContentDelta, EventRecord
from vaultwatch.exceptions import ExportError
from vaultwatch.watchdog.events import EventKind

from conftest import START_MS


def record(kind, path, ts, added=0, removed=0, previous_path=None):
    return EventRecord(
        timestamp=ts,
        path=path,
        kind=kind,
        previous_path=previous_path,
        content_delta=ContentDelta(added=added, removed=removed, word_count_after=2, sampled_at=ts),
    )


@pytest.fixture
def populated_store(store):
    store.commit(record(EventKind.CREATE, "a.md", START_MS, added=5))
    store.commit(record(EventKind.MODIFY, "a.md", START_MS + 1000, added=6))
    store.commit(record(EventKind.MODIFY, "b.md", START_MS + 2000, removed=3))
    return store


class TestOptions:
    """Tests for ExportOptions validation."""

    def test_rejects_unknown_format(self):
        with pytest.raises(ExportError):
            ExportOptions(format="xml")

    def test_rejects_unknown_kind(self):
        with pytest.raises(ExportError):
            ExportOptions(include_kinds=["touch"])

    def test_rejects_unknown_field(self):
        with pytest.raises(ExportError):
            ExportOptions(fields=["size"])

    def test_rejects_inverted_range(self):
        with pytest.raises(ExportError):
            ExportOptions(start=10, end=5)

    def test_format_is_case_insensitive(self):
        assert ExportOptions(format="CSV").format == "csv"

    def test_filename(self):
        options = ExportOptions(format="csv")
        assert export_filename(options, date(2024, 3, 5)) == "activity-export-2024-03-05.csv"


class TestCsv:
    """Tests for CSV rendering."""

    def test_modify_only_export_has_two_rows(self, populated_store):
        output = export_events(populated_store, ExportOptions(format="csv", include_kinds=["modify"]))

        lines = output.split("\n")
        assert lines[0] == "timestamp,kind,path,previous_path,added,removed"
        assert len(lines) == 3
        assert all(",modify," in line for line in lines[1:])

    def test_timestamp_is_iso(self, populated_store):
        output = export_events(populated_store, ExportOptions(format="csv", fields=["timestamp"]))
        rows = list(csv.reader(io.StringIO(output)))
        assert rows[1][0].endswith("Z")
        assert "T" in rows[1][0]

    def test_values_with_commas_and_quotes_are_escaped(self):
        rows = [record(EventKind.MODIFY, 'notes/a, "b"\nc.md', START_MS)]
        output = to_csv(rows, fields=["path"])

        assert output == 'path\n"notes/a, ""b""\nc.md"'
        parsed = list(csv.reader(io.StringIO(output)))
        assert parsed[1][0] == 'notes/a, "b"\nc.md'

    def test_range_bounds_are_independent(self, populated_store):
        after = export_events(populated_store, ExportOptions(format="csv", start=START_MS + 1000))
        before = export_events(populated_store, ExportOptions(format="csv", end=START_MS + 1000))

        assert len(after.split("\n")) == 3
        assert len(before.split("\n")) == 3

    def test_empty_export_is_header_only(self, store):
        output = export_events(store, ExportOptions(format="csv"))
        assert output == "timestamp,kind,path,previous_path,added,removed"


class TestJson:
    """Tests for JSON rendering."""

    def test_full_records_by_default(self, populated_store):
        data = json.loads(export_events(populated_store, ExportOptions(format="json")))

        assert len(data) == 3
        assert data[0]["kind"] == "create"
        assert data[0]["content_delta"]["added"] == 5

    def test_field_filter(self, populated_store):
        options = ExportOptions(
            format="json",
            include_kinds=["modify"],
            fields=["path", "removed", "content_delta.word_count_after"],
        )
        data = json.loads(export_events(populated_store, options))

        assert data == [
            {"path": "a.md", "removed": 0, "content_delta.word_count_after": 2},
            {"path": "b.md", "removed": 3, "content_delta.word_count_after": 2},
        ]


class TestScheduledExport:
    """Tests for writing exports through the content store."""

    def test_writes_dated_file(self, tracker, store, vault):
        store.commit(record(EventKind.CREATE, "a.md", START_MS, added=5))

        path = asyncio.run(
            tracker.schedule_export(ExportOptions(format="json"), "Exports/", day=date(2024, 3, 15))
        )

        assert path == "Exports/activity-export-2024-03-15.json"
        assert json.loads(vault.files[path])[0]["path"] == "a.md"

    def test_defaults_to_configured_directory(self, tracker, config, vault):
        config.paths.export_dir = ""
        path = asyncio.run(tracker.schedule_export(ExportOptions(format="csv"), day=date(2024, 3, 15)))
        assert path == "activity-export-2024-03-15.csv"
        assert path in vault.files
