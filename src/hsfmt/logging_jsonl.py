# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""JSON Lines logger for structured run logs.

Each call to ``write`` appends one JSON object on its own line and flushes,
so a log stays readable even when a run is interrupted.
"""

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, TextIO, Union


class JsonlLogger:
    """Append-only JSONL writer, safe to share between worker threads."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._handle: Optional[TextIO] = None
        self._lock = threading.Lock()

    def start_fresh(self) -> None:
        """Create (or truncate) the log file, making parent directories."""
        with self._lock:
            self._close_handle()
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("", encoding="utf-8")

    def write(self, record: Dict[str, Any]) -> None:
        """Append one record; values json cannot encode are written as strings."""
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            if self._handle is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._handle = self.path.open("a", encoding="utf-8")
            self._handle.write(line + "\n")
            self._handle.flush()

    def append_notes(self, file: str, notes: Iterable[str]) -> None:
        """Record free-form notes about one file."""
        for note in notes:
            self.write({"ev": "note", "path": file, "note": note})

    def close(self) -> None:
        with self._lock:
            self._close_handle()

    def _close_handle(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "JsonlLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
