"""File-based sinks for project payloads."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .base import PayloadSink


@dataclass
class FileSink(PayloadSink):
    """
    Sink that appends payloads to a single file (JSONL format).

    Each payload is written as one JSON line.
    """
    path: str = "kpm-payloads.jsonl"
    encoding: str = "utf-8"

    # Internal state
    _file: Any = field(default=None, init=False)

    async def start(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a", encoding=self.encoding)

    async def stop(self) -> None:
        if self._file:
            self._file.close()
            self._file = None

    async def send(self, payload: dict[str, Any]) -> None:
        if not self._file:
            await self.start()

        self._file.write(json.dumps(payload, default=str) + "\n")
        self._file.flush()


@dataclass
class RotatingFileSink(PayloadSink):
    """
    Sink that writes payloads to rotating JSONL files.

    The path pattern may include strftime codes for time-based rotation;
    files are also rotated once they reach `max_bytes`.
    """
    # Path pattern (can include strftime codes like %Y%m%d)
    path_pattern: str = "kpm-%Y%m%d.jsonl"

    # Base directory
    directory: str = "./kpm-data"

    # Max file size in bytes (0 = no size limit)
    max_bytes: int = 10 * 1024 * 1024  # 10MB

    encoding: str = "utf-8"

    # Internal state
    _period_path: str = field(default="", init=False)
    _current_path: str = field(default="", init=False)
    _current_file: Any = field(default=None, init=False)
    _current_size: int = field(default=0, init=False)

    async def start(self) -> None:
        Path(self.directory).mkdir(parents=True, exist_ok=True)

    async def stop(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None

    async def send(self, payload: dict[str, Any]) -> None:
        expected_path = os.path.join(self.directory, datetime.now().strftime(self.path_pattern))

        if expected_path != self._period_path or self._needs_size_rotation():
            self._rotate(expected_path)

        line = json.dumps(payload, default=str) + "\n"
        self._current_file.write(line)
        self._current_size += len(line.encode(self.encoding))
        self._current_file.flush()

    @property
    def current_path(self) -> str:
        return self._current_path

    def _needs_size_rotation(self) -> bool:
        if self.max_bytes == 0:
            return False
        return self._current_size >= self.max_bytes

    def _rotate(self, period_path: str) -> None:
        new_path = period_path
        if self._current_file:
            self._current_file.close()

        Path(self.directory).mkdir(parents=True, exist_ok=True)

        # Same period but full: roll over to a numbered suffix
        if new_path == self._period_path and self._needs_size_rotation():
            base, ext = os.path.splitext(new_path)
            suffix = 1
            while os.path.exists(f"{base}.{suffix}{ext}"):
                suffix += 1
            new_path = f"{base}.{suffix}{ext}"

        self._period_path = period_path
        self._current_path = new_path
        self._current_file = open(new_path, "a", encoding=self.encoding)
        self._current_size = os.path.getsize(new_path)
