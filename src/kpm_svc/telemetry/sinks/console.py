"""Console sink for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from typing import Any

from .base import PayloadSink


@dataclass
class ConsoleSink(PayloadSink):
    """
    Sink that writes payloads to console (stdout/stderr).

    Useful for development and debugging.
    """
    # Output destination
    stream: str = "stdout"  # stdout | stderr

    # Output format
    format: str = "json"  # json | compact | pretty

    # Prefix for each line
    prefix: str = "[KPM] "

    async def send(self, payload: dict[str, Any]) -> None:
        out = sys.stdout if self.stream == "stdout" else sys.stderr
        print(f"{self.prefix}{self._format_payload(payload)}", file=out)

    def _format_payload(self, payload: dict[str, Any]) -> str:
        if self.format == "json":
            return json.dumps(payload, default=str)
        elif self.format == "compact":
            source = payload.get("source", {})
            return (
                f"{payload.get('directory')} "
                f"keystrokes={payload.get('keystrokes', 0)} "
                f"files={len(source)} "
                f"add={sum(f.get('add', 0) for f in source.values())} "
                f"delete={sum(f.get('delete', 0) for f in source.values())} "
                f"paste={sum(f.get('paste', 0) for f in source.values())}"
            )
        else:  # pretty
            return json.dumps(payload, indent=2, default=str)
