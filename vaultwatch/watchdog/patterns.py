# vaultwatch/watchdog/patterns.py

"""
Pattern matching and trackability rules for vault events
"""
import fnmatch
import re
import logging
from posixpath import basename
from typing import Iterable, List, Optional
from dataclasses import dataclass, field

from .events import EventKind

logger = logging.getLogger(__name__)

EXPORT_ARTIFACT_PREFIX = "activity-export-"

REGEX_CHARS = {'^', '$', '(', ')', '{', '}', '|', '+', '\\'}
GLOB_CHARS = {'*', '?', '['}


@dataclass
class PatternRule:
    """
    Path matching rule

    Plain patterns match as substrings (so 'Journal/' matches everything under
    that folder), glob patterns match the whole path, regex patterns search it.
    """
    pattern: str
    is_regex: bool = False
    case_sensitive: bool = False
    compiled_pattern: Optional[re.Pattern] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.is_regex:
            flags = 0 if self.case_sensitive else re.IGNORECASE
            try:
                self.compiled_pattern = re.compile(self.pattern, flags)
            except re.error as e:
                logger.error(f"Invalid regex pattern '{self.pattern}': {e}")
                # Fallback to literal match
                self.is_regex = False

    @property
    def is_glob(self) -> bool:
        return not self.is_regex and any(char in self.pattern for char in GLOB_CHARS)

    def matches(self, path: str) -> bool:
        """
        Check if path matches pattern

        Args:
            path: Vault-relative path

        Returns:
            True if path matches pattern
        """
        if self.is_regex:
            return bool(self.compiled_pattern.search(path))

        path_str = path if self.case_sensitive else path.lower()
        pattern = self.pattern if self.case_sensitive else self.pattern.lower()

        if self.is_glob:
            return fnmatch.fnmatchcase(path_str, pattern)
        return pattern in path_str


def is_regex_pattern(pattern: str) -> bool:
    """Simple heuristic: regex patterns contain characters globs never use"""
    return any(char in pattern for char in REGEX_CHARS)


def compile_rules(patterns: Iterable[str], case_sensitive: bool = False) -> List[PatternRule]:
    """Compile pattern strings into PatternRule objects, skipping blanks"""
    rules = []
    for pattern in patterns or []:
        pattern = pattern.strip()
        if not pattern:
            continue
        rules.append(PatternRule(
            pattern=pattern,
            is_regex=is_regex_pattern(pattern),
            case_sensitive=case_sensitive,
        ))
    return rules


def matches_any(path: str, rules: Iterable[PatternRule]) -> bool:
    return any(rule.matches(path) for rule in rules)


def normalize_output_path(path: str) -> str:
    """Dashboard paths are configured without extension; notes carry '.md'"""
    path = path.strip().lstrip('/')
    return path if path.endswith('.md') else f"{path}.md"


def is_reserved_output_path(path: str, dashboard_path: str) -> bool:
    """True for the generated dashboard note (tracking it would feed back into itself)"""
    if not dashboard_path:
        return False
    return path == normalize_output_path(dashboard_path)


def is_transient_path(path: str, transient_rules: Iterable[PatternRule]) -> bool:
    """
    True for placeholder notes such as 'Untitled.md' or 'Folder/Untitled 2.md'

    Only the file name is checked, so a folder called 'Untitled' does not make
    its contents transient.
    """
    name = basename(path)
    return any(rule.matches(name) for rule in transient_rules)


def is_export_artifact(path: str, prefixes: Iterable[str] = (EXPORT_ARTIFACT_PREFIX,)) -> bool:
    name = basename(path)
    return any(name.startswith(prefix) for prefix in prefixes)


class TrackingFilter:
    """
    Decides which events are tracked

    Stateless once constructed: safe to call from any callback.
    """

    def __init__(self, tracking_config, dashboard_path: str = "",
                 retry_skip_prefixes: Iterable[str] = (EXPORT_ARTIFACT_PREFIX,)):
        """
        Initialize tracking filter

        Args:
            tracking_config: TrackingConfig section
            dashboard_path: Reserved dashboard note path
            retry_skip_prefixes: File name prefixes never retried after failure
        """
        self.config = tracking_config
        self.dashboard_path = dashboard_path
        self.retry_skip_prefixes = tuple(retry_skip_prefixes)

        self.include_rules = compile_rules(tracking_config.include_paths)
        self.exclude_rules = compile_rules(tracking_config.exclude_paths)
        self.ignore_rules = compile_rules(tracking_config.ignore_patterns)
        # Transient patterns are always regular expressions over the file name
        self.transient_rules = [
            PatternRule(pattern=p, is_regex=True) for p in tracking_config.transient_patterns
        ]

        logger.info(
            f"TrackingFilter initialized (include={len(self.include_rules)}, "
            f"exclude={len(self.exclude_rules)}, ignore={len(self.ignore_rules)})"
        )

    def _kind_enabled(self, kind: EventKind) -> bool:
        return {
            EventKind.CREATE: self.config.track_create,
            EventKind.MODIFY: self.config.track_modify,
            EventKind.DELETE: self.config.track_delete,
            EventKind.RENAME: self.config.track_rename,
        }[kind]

    def is_transient(self, path: str) -> bool:
        return is_transient_path(path, self.transient_rules)

    def is_reserved(self, path: str) -> bool:
        return is_reserved_output_path(path, self.dashboard_path)

    def is_ignored(self, path: str) -> bool:
        """Raw watch noise (hidden folders, editor swap files)"""
        return matches_any(path, self.ignore_rules)

    def is_retry_exempt(self, path: str) -> bool:
        """Paths whose failed operations are dropped instead of retried"""
        if self.dashboard_path and (
            path == self.dashboard_path or self.is_reserved(path)
        ):
            return True
        return self.is_transient(path) or is_export_artifact(path, self.retry_skip_prefixes)

    def should_track(self, kind: EventKind, path: str) -> bool:
        """
        Decide whether an event should be tracked

        Args:
            kind: Event kind
            path: Vault-relative path

        Returns:
            True if the event should reach the recorder
        """
        if not self.config.enabled:
            return False

        if self.is_reserved(path):
            logger.debug(f"Ignoring activity for dashboard file: {path}")
            return False

        if self.is_transient(path):
            # Create seeds content, rename captures the real name
            return kind in (EventKind.CREATE, EventKind.RENAME)

        if not self._kind_enabled(kind):
            logger.debug(f"Event type {kind.value} is disabled in settings")
            return False

        if self.include_rules and not matches_any(path, self.include_rules):
            logger.debug(f"File {path} doesn't match any include paths")
            return False

        if self.exclude_rules and matches_any(path, self.exclude_rules):
            logger.debug(f"File {path} matches an exclude path")
            return False

        return True
