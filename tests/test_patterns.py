"""Tests for trackability rules and path predicates."""

import pytest

from vaultwatch.utils.config import TrackingConfig
from vaultwatch.watchdog.events import EventKind
from vaultwatch.watchdog.patterns import (
    PatternRule,
    TrackingFilter,
    compile_rules,
    is_export_artifact,
    is_reserved_output_path,
    is_transient_path,
)


def make_filter(**overrides) -> TrackingFilter:
    tracking = TrackingConfig(**overrides)
    return TrackingFilter(tracking, dashboard_path="activity_dashboard")


class TestPatternRule:
    """Tests for PatternRule matching modes."""

    def test_plain_pattern_matches_substring(self):
        rule = PatternRule("Journal/")
        assert rule.matches("Journal/2024-01-01.md")
        assert rule.matches("Archive/Journal/old.md")
        assert not rule.matches("Projects/plan.md")

    def test_plain_pattern_is_case_insensitive(self):
        assert PatternRule("journal/").matches("Journal/today.md")

    def test_glob_pattern_matches_whole_path(self):
        rule = PatternRule("*.tmp")
        assert rule.is_glob
        assert rule.matches("notes/draft.tmp")
        assert not rule.matches("notes/draft.tmp.md")

    def test_regex_pattern(self):
        rule = compile_rules([r"^Daily/\d{4}-"])[0]
        assert rule.is_regex
        assert rule.matches("Daily/2024-03-15.md")
        assert not rule.matches("Notes/Daily/2024-03-15.md")

    def test_invalid_regex_falls_back_to_literal(self):
        rule = PatternRule("(unclosed", is_regex=True)
        assert not rule.is_regex
        assert rule.matches("a/(unclosed/b.md")

    def test_blank_patterns_are_skipped(self):
        assert compile_rules(["", "  ", "Inbox/"]) == [PatternRule("Inbox/")]


class TestPredicates:
    """Tests for the module-level path predicates."""

    @pytest.mark.parametrize("path", ["Untitled.md", "Folder/Untitled.md", "Untitled 3.md"])
    def test_transient_names(self, path):
        rules = [PatternRule(r"^Untitled( \d+)?\.md$", is_regex=True)]
        assert is_transient_path(path, rules)

    @pytest.mark.parametrize("path", ["Untitled/note.md", "Untitled notes.md", "My Untitled.md"])
    def test_not_transient(self, path):
        rules = [PatternRule(r"^Untitled( \d+)?\.md$", is_regex=True)]
        assert not is_transient_path(path, rules)

    def test_reserved_output_path_appends_extension(self):
        assert is_reserved_output_path("activity_dashboard.md", "activity_dashboard")
        assert is_reserved_output_path("Reports/dash.md", "Reports/dash.md")
        assert not is_reserved_output_path("activity_dashboard.md", "")
        assert not is_reserved_output_path("other.md", "activity_dashboard")

    def test_export_artifact(self):
        assert is_export_artifact("exports/activity-export-2024-03-15.csv")
        assert not is_export_artifact("notes/activity.md")


class TestShouldTrack:
    """Tests for TrackingFilter.should_track precedence."""

    def test_regular_note_is_tracked(self):
        tracking_filter = make_filter()
        for kind in EventKind:
            assert tracking_filter.should_track(kind, "notes/a.md")

    def test_global_switch(self):
        tracking_filter = make_filter(enabled=False)
        assert not tracking_filter.should_track(EventKind.MODIFY, "notes/a.md")

    def test_dashboard_is_never_tracked(self):
        tracking_filter = make_filter()
        assert not tracking_filter.should_track(EventKind.CREATE, "activity_dashboard.md")
        assert not tracking_filter.should_track(EventKind.MODIFY, "activity_dashboard.md")

    def test_transient_only_create_and_rename(self):
        tracking_filter = make_filter()
        assert tracking_filter.should_track(EventKind.CREATE, "Untitled.md")
        assert tracking_filter.should_track(EventKind.RENAME, "Untitled.md")
        assert not tracking_filter.should_track(EventKind.MODIFY, "Untitled.md")
        assert not tracking_filter.should_track(EventKind.DELETE, "Untitled.md")

    def test_transient_ignores_per_kind_flags(self):
        tracking_filter = make_filter(track_create=False)
        assert tracking_filter.should_track(EventKind.CREATE, "Untitled.md")

    def test_per_kind_flags(self):
        tracking_filter = make_filter(track_modify=False, track_rename=False)
        assert not tracking_filter.should_track(EventKind.MODIFY, "a.md")
        assert not tracking_filter.should_track(EventKind.RENAME, "a.md")
        assert tracking_filter.should_track(EventKind.CREATE, "a.md")

    def test_include_list(self):
        tracking_filter = make_filter(include_paths=["Journal/"])
        assert tracking_filter.should_track(EventKind.MODIFY, "Journal/today.md")
        assert not tracking_filter.should_track(EventKind.MODIFY, "Projects/plan.md")

    def test_exclude_list(self):
        tracking_filter = make_filter(exclude_paths=["Templates/"])
        assert not tracking_filter.should_track(EventKind.MODIFY, "Templates/daily.md")
        assert tracking_filter.should_track(EventKind.MODIFY, "Journal/today.md")

    def test_exclude_wins_over_include(self):
        tracking_filter = make_filter(include_paths=["Journal/"], exclude_paths=["private"])
        assert not tracking_filter.should_track(EventKind.MODIFY, "Journal/private.md")


class TestIgnoreAndRetryExempt:
    """Tests for raw-noise and retry-exempt predicates."""

    @pytest.mark.parametrize("path", [
        ".obsidian/workspace.json",
        "notes/.hidden.md",
        "notes/draft.md.swp",
        "notes/draft.md~",
    ])
    def test_ignored_paths(self, path):
        assert make_filter().is_ignored(path)

    def test_regular_note_not_ignored(self):
        assert not make_filter().is_ignored("notes/a.md")

    @pytest.mark.parametrize("path", [
        "activity_dashboard.md",
        "activity_dashboard",
        "Untitled.md",
        "activity-export-2024-03-15.json",
    ])
    def test_retry_exempt(self, path):
        assert make_filter().is_retry_exempt(path)

    def test_regular_note_not_retry_exempt(self):
        assert not make_filter().is_retry_exempt("notes/a.md")
