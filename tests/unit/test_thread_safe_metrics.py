# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for thread-safe batch counters."""

import asyncio

import pytest

from hsfmt.diagnostics import Diagnostic, DiagnosticKind
from hsfmt.thread_safe_metrics import ThreadSafeMetrics
from hsfmt.tokens import TextSpan


def _diagnostic(kind):
    return Diagnostic.create(kind, "message", TextSpan(0, 1, 0, 0))


class TestThreadSafeMetrics:
    """Test ThreadSafeMetrics class."""

    @pytest.mark.asyncio
    async def test_initialization(self):
        """Test metrics collector starts at zero."""
        snapshot = await ThreadSafeMetrics().get_snapshot()

        assert snapshot == {
            'changed': 0,
            'unchanged': 0,
            'failed': 0,
            'mechanical': 0,
            'advisory': 0,
            'by_kind': {},
            'format_time': 0.0,
        }

    @pytest.mark.asyncio
    async def test_files_counted_by_status(self):
        """Test file outcomes and the processed total.

        Given: Two changed files, one unchanged and one failed
        When: They are recorded
        Then: Four files count as processed and one as failed
        """
        metrics = ThreadSafeMetrics()

        await metrics.record_file("changed")
        await metrics.record_file("changed")
        await metrics.record_file("unchanged")
        await metrics.record_file("failed")

        snapshot = await metrics.get_snapshot()
        assert snapshot['changed'] == 2
        assert snapshot['unchanged'] == 1
        assert await metrics.get_failed() == 1
        assert await metrics.get_total_processed() == 4

    @pytest.mark.asyncio
    async def test_diagnostics_split_by_kind(self):
        """Test diagnostics are counted per kind and as fixes or advisories.

        Given: Two files with an import fix, a trailing-whitespace fix and
               two lazy record fields between them
        When: Both are recorded
        Then: Each kind has its own count and the mechanical/advisory
              totals add up
        """
        metrics = ThreadSafeMetrics()
        await metrics.record_file("changed", (
            _diagnostic(DiagnosticKind.IMPORT_ORDER),
            _diagnostic(DiagnosticKind.MISSING_STRICTNESS_ANNOTATION),
        ), format_time=0.5)
        await metrics.record_file("changed", (
            _diagnostic(DiagnosticKind.TRAILING_WHITESPACE),
            _diagnostic(DiagnosticKind.MISSING_STRICTNESS_ANNOTATION),
        ), format_time=0.25)

        snapshot = await metrics.get_snapshot()
        assert snapshot['by_kind'] == {
            'ImportOrder': 1,
            'MissingStrictnessAnnotation': 2,
            'TrailingWhitespace': 1,
        }
        assert snapshot['mechanical'] == 2
        assert snapshot['advisory'] == 2
        assert snapshot['format_time'] == 0.75

    @pytest.mark.asyncio
    async def test_snapshot_returns_copy(self):
        """Test changing a snapshot does not change the collector."""
        metrics = ThreadSafeMetrics()
        await metrics.record_file("changed", (_diagnostic(DiagnosticKind.IMPORT_ORDER),))

        snapshot = await metrics.get_snapshot()
        snapshot['by_kind']['ImportOrder'] = 99

        assert (await metrics.get_snapshot())['by_kind'] == {'ImportOrder': 1}

    @pytest.mark.asyncio
    async def test_concurrent_access(self):
        """Test concurrent records are all counted."""
        metrics = ThreadSafeMetrics()

        await asyncio.gather(*(metrics.record_file("changed") for _ in range(50)))
        await asyncio.gather(*(metrics.record_file("unchanged") for _ in range(25)))

        assert await metrics.get_total_processed() == 75
