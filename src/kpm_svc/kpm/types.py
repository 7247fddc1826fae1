"""Core aggregation types."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


# Inserted-character count above which an insertion is a paste
PASTE_THRESHOLD = 8

# Root-path key used when no project root can be resolved
UNNAMED_ROOT = "Unnamed"

# Display name used when the project has no resolvable name
UNTITLED_WORKSPACE = "Untitled"

# Seconds between flush ticks
DEFAULT_FLUSH_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class ProjectRoot:
    """A resolved project root for a file."""
    directory: str
    name: str | None = None


@dataclass
class FileCounter:
    """
    Per-file counters for one aggregation window.

    `netkeys` always mirrors `add - delete`; the engine recomputes it after
    every mutation. `lines_added` and `lines_removed` only grow. `lines` is
    None until the first change event sets a baseline.
    """
    add: int = 0
    delete: int = 0
    paste: int = 0
    open: int = 0
    close: int = 0
    length: int = 0
    lines: int | None = None
    lines_added: int = 0
    lines_removed: int = 0
    netkeys: int = 0
    syntax: str = ""

    def recompute_netkeys(self) -> None:
        self.netkeys = self.add - self.delete

    def has_activity(self) -> bool:
        return any((self.add, self.delete, self.paste, self.open, self.close))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape expected by the ingestion endpoint."""
        return {
            "add": self.add,
            "delete": self.delete,
            "paste": self.paste,
            "open": self.open,
            "close": self.close,
            "length": self.length,
            "lines": self.lines or 0,
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "netkeys": self.netkeys,
            "syntax": self.syntax,
        }


@dataclass
class ProjectAggregate:
    """
    All activity for one project root within the current window.

    Owns its FileCounters. `keystrokes` only ever increments.
    """
    directory: str
    name: str = UNTITLED_WORKSPACE
    identifier: str = ""
    resource: dict[str, Any] = field(default_factory=dict)
    keystrokes: int = 0
    source: dict[str, FileCounter] = field(default_factory=dict)

    # Window bounds (UTC epoch seconds)
    start: float = field(default_factory=time.time)
    end: float | None = None

    def file(self, path: str) -> FileCounter:
        """Get the counter for a file, creating it on first reference."""
        counter = self.source.get(path)
        if counter is None:
            counter = FileCounter()
            self.source[path] = counter
        return counter

    def has_activity(self) -> bool:
        if self.keystrokes > 0:
            return True
        return any(counter.has_activity() for counter in self.source.values())

    def to_payload(self) -> dict[str, Any]:
        """Serialize for submission to a payload sink."""
        return {
            "directory": self.directory,
            "name": self.name,
            "identifier": self.identifier,
            "resource": dict(self.resource),
            "keystrokes": self.keystrokes,
            "start": int(self.start),
            "end": int(self.end) if self.end is not None else None,
            "source": {path: counter.to_dict() for path, counter in self.source.items()},
        }
