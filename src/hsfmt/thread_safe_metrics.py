# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Thread-safe batch counters shared by the workers of one run."""

import asyncio
from collections import Counter
from typing import Dict, Iterable

from .diagnostics import Diagnostic


class ThreadSafeMetrics:
    """Files by outcome and diagnostics by kind for one batch.

    Workers record every finished file; the CLI reads a snapshot when the
    batch is over. All methods are async and share one asyncio.Lock.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._files: Counter = Counter()
        self._by_kind: Counter = Counter()
        self._mechanical = 0
        self._advisory = 0
        self._format_time = 0.0

    async def record_file(
        self,
        status: str,
        diagnostics: Iterable[Diagnostic] = (),
        format_time: float = 0.0,
    ) -> None:
        """Count one finished file and its diagnostics.

        Args:
            status: ``changed``, ``unchanged`` or ``failed``
            diagnostics: Everything reported for the file
            format_time: Seconds spent formatting or linting it
        """
        async with self._lock:
            self._files[status] += 1
            self._format_time += format_time
            for diagnostic in diagnostics:
                self._by_kind[diagnostic.kind.value] += 1
                if diagnostic.is_mechanical:
                    self._mechanical += 1
                else:
                    self._advisory += 1

    async def get_snapshot(self) -> Dict:
        """Read-only copy of every counter."""
        async with self._lock:
            return {
                'changed': self._files['changed'],
                'unchanged': self._files['unchanged'],
                'failed': self._files['failed'],
                'mechanical': self._mechanical,
                'advisory': self._advisory,
                'by_kind': dict(sorted(self._by_kind.items())),
                'format_time': self._format_time,
            }

    async def get_failed(self) -> int:
        async with self._lock:
            return self._files['failed']

    async def get_total_processed(self) -> int:
        async with self._lock:
            return sum(self._files.values())
