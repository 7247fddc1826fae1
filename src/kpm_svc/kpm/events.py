"""Inbound editor event shapes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """A single content change: text inserted over a removed range."""
    inserted_text: str = ""
    removed_extent: int = 0


@dataclass(frozen=True, slots=True)
class OpenEvent:
    """A document was opened."""
    path: str | None
    is_tracked_metrics_file: bool = False
    length: int | None = None


@dataclass(frozen=True, slots=True)
class CloseEvent:
    """A document was closed."""
    path: str | None
    is_tracked_metrics_file: bool = False
    final_length: int = 0


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """
    A document's text changed.

    `change_records` holds every simultaneous content change; multi-cursor
    edits deliver more than one.
    """
    path: str | None
    language_id: str = ""
    line_count: int = 0
    current_length: int = 0
    change_records: tuple[ChangeRecord, ...] = ()
    is_tracked_metrics_file: bool = False
