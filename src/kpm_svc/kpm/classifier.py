"""Edit classification - turns one content change into a keystroke kind.

Pure functions, no state. The engine decides what to do with the result.

    "x"            -> ADD        (delta +1)
    ""   over 5    -> DELETE     (delta -5)
    20 chars       -> PASTE      (delta +20)
    "\\n"           -> LINE_BREAK (delta +1, has_line_break)
    ""   over 0    -> NOOP
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .errors import AmbiguousChangeError
from .events import ChangeRecord
from .types import PASTE_THRESHOLD


_LINE_BREAK = re.compile(r"[\n\r]")
_NON_LINE_BREAK = re.compile(r"[^\n\r]")


class ChangeKind(str, Enum):
    """What a single content change represents."""
    ADD = "add"
    DELETE = "delete"
    PASTE = "paste"
    LINE_BREAK = "line_break"  # only line-break characters inserted
    NOOP = "noop"


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying one content change."""
    kind: ChangeKind
    delta: int = 0
    has_line_break: bool = False

    @property
    def is_keystroke(self) -> bool:
        """Whether this change counts toward the project's keystrokes."""
        return self.kind is not ChangeKind.NOOP and self.delta != 0


NOOP = Classification(kind=ChangeKind.NOOP)


def classify_change(inserted_text: str | None, removed_extent: int | None = 0) -> Classification:
    """
    Classify a single content change.

    The delta is the inserted length when text was inserted, otherwise the
    negated removed extent. Replacements are judged by what was inserted.
    """
    text = inserted_text or ""
    removed = removed_extent or 0

    has_line_break = bool(_LINE_BREAK.search(text))

    if text:
        delta = len(text)
    elif removed > 0:
        delta = -removed
    else:
        delta = 0

    if delta == 0:
        return NOOP

    if delta > PASTE_THRESHOLD:
        kind = ChangeKind.PASTE
    elif delta < 0:
        kind = ChangeKind.DELETE
    elif _NON_LINE_BREAK.search(text):
        kind = ChangeKind.ADD
    else:
        kind = ChangeKind.LINE_BREAK

    return Classification(kind=kind, delta=delta, has_line_break=has_line_break)


def classify_records(records: Sequence[ChangeRecord] | None) -> Classification:
    """
    Classify the content changes carried by one change event.

    Only single-change events are classified. Raises AmbiguousChangeError
    when more than one change arrives at once (multi-cursor edits).
    """
    if not records:
        return NOOP

    if len(records) > 1:
        raise AmbiguousChangeError(
            f"{len(records)} simultaneous content changes, skipping classification",
            record_count=len(records),
        )

    record = records[0]
    return classify_change(record.inserted_text, record.removed_extent)
