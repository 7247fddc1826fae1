"""Aggregation engine - applies classified editor events to the store.

Flow per event:
1. Filter: drop malformed and transient paths, route the status file
2. Resolve the project root (or fall back to the unnamed sentinel)
3. Ensure the ProjectAggregate and FileCounter exist
4. Classify the change and apply counters

Handlers never raise. A bad event is logged and becomes a no-op so the
accumulation stream keeps running.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .classifier import ChangeKind, classify_records
from .errors import AmbiguousChangeError, MalformedEventError
from .events import ChangeEvent, ChangeRecord, CloseEvent, OpenEvent
from .store import AggregationStore
from .types import UNNAMED_ROOT, UNTITLED_WORKSPACE, FileCounter, ProjectAggregate, ProjectRoot


logger = logging.getLogger(__name__)

# Live Share hands out temporary workspaces that never map to a real project
DEFAULT_TRANSIENT_PATTERNS = ("*vsliveshare*tmp-*.code-workspace*",)


@dataclass
class StatusFileState:
    """Visibility of the aggregator's own status file in the editor."""
    focused: bool = False
    closed: bool = True

    def mark_opened(self) -> None:
        self.focused = True
        self.closed = False

    def mark_closed(self) -> None:
        self.focused = False
        self.closed = True


@dataclass
class AggregationEngine:
    """
    Turns editor events into counters on the shared AggregationStore.

    The low-level operations (`on_open`, `on_close`, `on_change`) take an
    already-resolved root key. The `handle_*` entry points take event
    objects, apply filtering, and resolve the root through `resolve_root`.
    """
    store: AggregationStore

    # Maps a file path to its project root; None means unresolvable
    resolve_root: Callable[[str], ProjectRoot | None] | None = None

    fallback_project_name: str = UNTITLED_WORKSPACE
    status_file: str | None = None
    transient_path_patterns: Sequence[str] = DEFAULT_TRANSIENT_PATTERNS

    status: StatusFileState = field(default_factory=StatusFileState, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "processed": 0,
            "dropped": 0,
            "ambiguous": 0,
            "errors": 0,
        }

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    def handle_open(self, event: OpenEvent) -> None:
        """Process an open event. Never raises."""
        try:
            path = self._require_path(event.path)
            if self._is_status_file(path, event.is_tracked_metrics_file):
                self.status.mark_opened()
                return
            self.status.focused = False
            if self._is_transient(path):
                self._drop(path, "transient workspace")
                return
            root = self._resolve(path)
            self.on_open(path, root.directory, project_name=root.name, length=event.length)
        except MalformedEventError as e:
            self._drop(None, str(e))
        except Exception as e:
            self._error("open", e)

    def handle_close(self, event: CloseEvent) -> None:
        """Process a close event. Never raises."""
        try:
            path = self._require_path(event.path)
            if self._is_status_file(path, event.is_tracked_metrics_file):
                self.status.mark_closed()
                return
            if self._is_transient(path):
                self._drop(path, "transient workspace")
                return
            self._require_int(event.final_length, "final_length")
            root = self._resolve(path)
            self.on_close(path, root.directory, event.final_length, project_name=root.name)
        except MalformedEventError as e:
            self._drop(None, str(e))
        except Exception as e:
            self._error("close", e)

    def handle_change(self, event: ChangeEvent) -> None:
        """Process a text change event. Never raises."""
        try:
            path = self._require_path(event.path)
            if self._is_status_file(path, event.is_tracked_metrics_file):
                return
            if self._is_transient(path):
                self._drop(path, "transient workspace")
                return
            self._require_int(event.line_count, "line_count")
            self._require_int(event.current_length, "current_length")
            root = self._resolve(path)
            self.on_change(
                path,
                root.directory,
                language_id=event.language_id,
                line_count=event.line_count,
                change_records=event.change_records,
                current_length=event.current_length,
                project_name=root.name,
            )
        except MalformedEventError as e:
            self._drop(None, str(e))
        except Exception as e:
            self._error("change", e)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def on_open(
        self,
        path: str,
        root_key: str | None,
        project_name: str | None = None,
        length: int | None = None,
    ) -> None:
        """Record a file open."""
        with self.store.locked():
            counter = self._ensure(path, root_key, project_name)
            if length is not None:
                counter.length = length
            counter.open += 1
            self._stats["processed"] += 1
        logger.debug(f"File opened: {path}")

    def on_close(
        self,
        path: str,
        root_key: str | None,
        final_length: int,
        project_name: str | None = None,
    ) -> None:
        """Record a file close and its final length."""
        with self.store.locked():
            counter = self._ensure(path, root_key, project_name)
            counter.close += 1
            counter.length = final_length
            self._stats["processed"] += 1
        logger.debug(f"File closed: {path}")

    def on_change(
        self,
        path: str,
        root_key: str | None,
        language_id: str,
        line_count: int,
        change_records: Sequence[ChangeRecord],
        current_length: int,
        project_name: str | None = None,
    ) -> None:
        """
        Classify a text change and apply it.

        Length is updated even when the change is ambiguous or a no-op;
        keystroke and line counters move only for classified changes.
        """
        with self.store.locked():
            aggregate = self._ensure_aggregate(root_key, project_name)
            counter = aggregate.file(path)
            counter.length = current_length

            try:
                result = classify_records(change_records)
            except AmbiguousChangeError as e:
                self._stats["ambiguous"] += 1
                logger.debug(f"{path}: {e}")
                return

            if result.kind is ChangeKind.NOOP:
                return

            if result.kind is ChangeKind.PASTE:
                counter.paste += 1
            elif result.kind is ChangeKind.DELETE:
                counter.delete += 1
            elif result.kind is ChangeKind.ADD:
                counter.add += 1

            if result.is_keystroke:
                aggregate.keystrokes += 1

            counter.recompute_netkeys()

            if not counter.syntax and language_id:
                counter.syntax = language_id

            self._apply_line_count(counter, line_count, result.has_line_break)
            self._stats["processed"] += 1

        logger.debug(f"{result.kind.value} ({result.delta:+d}) in {path}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_line_count(self, counter: FileCounter, line_count: int, has_line_break: bool) -> None:
        """Update line totals. The first observation only sets the baseline."""
        diff = 0
        if counter.lines is not None:
            diff = line_count - counter.lines
        counter.lines = line_count

        if diff < 0:
            counter.lines_removed += abs(diff)
        elif diff > 0:
            counter.lines_added += diff

        if has_line_break and counter.lines_added == 0:
            counter.lines_added = 1

    def _ensure_aggregate(self, root_key: str | None, project_name: str | None) -> ProjectAggregate:
        key = root_key or UNNAMED_ROOT
        name = project_name or self.fallback_project_name
        return self.store.get_or_create(
            key,
            lambda: ProjectAggregate(directory=key, name=name),
        )

    def _ensure(self, path: str, root_key: str | None, project_name: str | None) -> FileCounter:
        return self._ensure_aggregate(root_key, project_name).file(path)

    def _resolve(self, path: str) -> ProjectRoot:
        root = None
        if self.resolve_root is not None:
            try:
                root = self.resolve_root(path)
            except Exception as e:
                logger.warning(f"Root resolution failed for {path}: {e}")
        if root is None or not root.directory:
            return ProjectRoot(directory=UNNAMED_ROOT, name=self.fallback_project_name)
        return root

    def _require_path(self, path: str | None) -> str:
        if not path:
            raise MalformedEventError("Event has no path")
        return path

    def _require_int(self, value: object, name: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise MalformedEventError(f"Event has no usable {name}: {value!r}")
        return value

    def _is_status_file(self, path: str, flagged: bool) -> bool:
        if flagged:
            return True
        if self.status_file is None:
            return False
        return os.path.normpath(path) == os.path.normpath(self.status_file)

    def _is_transient(self, path: str) -> bool:
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self.transient_path_patterns)

    def _drop(self, path: str | None, reason: str) -> None:
        with self.store.locked():
            self._stats["dropped"] += 1
        logger.debug(f"Dropped event for {path}: {reason}")

    def _error(self, kind: str, exc: Exception) -> None:
        with self.store.locked():
            self._stats["errors"] += 1
        logger.error(f"Error handling {kind} event: {exc}")

    @property
    def stats(self) -> dict:
        """Engine statistics."""
        return {
            **self._stats,
            "status_file_focused": self.status.focused,
            "status_file_closed": self.status.closed,
        }
