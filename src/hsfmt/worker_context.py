# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Shared context for worker pool operations."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from .diagnostics import Diagnostic
from .errors import HsfmtError
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .logging_jsonl import JsonlLogger
from .thread_safe_metrics import ThreadSafeMetrics

logger = logging.getLogger(__name__)

RunMode = Literal["format", "lint", "check"]
FileStatus = Literal["changed", "unchanged", "failed"]


@dataclass
class WorkItem:
    """Item queued for worker processing."""
    path: Path
    index: int
    total: int


@dataclass(frozen=True)
class FileOutcome:
    """What happened to one file."""
    path: Path
    index: int
    status: FileStatus
    diagnostics: Tuple[Diagnostic, ...] = ()
    diff: Optional[str] = None
    error: Optional[HsfmtError] = None
    worker_id: int = 0


@dataclass
class WorkerContext:
    """Shared context for all workers in the pool.

    Nothing here belongs to a single file; each worker owns the tree of the
    file it is formatting and drops it when the file is done.
    """

    # Core components
    metrics: ThreadSafeMetrics
    logger: Optional[JsonlLogger]
    diagnostics_logger: Optional[JsonlLogger]

    # Configuration
    config: FormatConfig = DEFAULT_CONFIG
    mode: RunMode = "format"
    write_enabled: bool = False
    diff_enabled: bool = False

    # Completed files, in completion order
    outcomes: List[FileOutcome] = field(default_factory=list)

    # Lifecycle management
    shutdown_event: Optional[asyncio.Event] = None

    def __post_init__(self):
        """Initialize event if not provided."""
        if self.shutdown_event is None:
            self.shutdown_event = asyncio.Event()

    def should_shutdown(self) -> bool:
        """Check if workers should shutdown."""
        return self.shutdown_event is not None and self.shutdown_event.is_set()

    async def report_completion(self, outcome: FileOutcome) -> None:
        """Record a finished file and log it.

        Args:
            outcome: Result for one file, including failures
        """
        self.outcomes.append(outcome)
        if self.logger:
            if outcome.error is not None:
                self.logger.write({
                    'ev': 'file_failed',
                    'path': str(outcome.path),
                    'worker_id': outcome.worker_id,
                    'error': outcome.error.message,
                    'error_type': type(outcome.error).__name__,
                })
            else:
                self.logger.write({
                    'ev': 'file_formatted',
                    'path': str(outcome.path),
                    'worker_id': outcome.worker_id,
                    'status': outcome.status,
                    'diagnostics': len(outcome.diagnostics),
                })
        if self.diagnostics_logger:
            for diagnostic in outcome.diagnostics:
                record = {'path': str(outcome.path)}
                record.update(diagnostic.to_dict())
                self.diagnostics_logger.write(record)

    async def report_error(
        self,
        path: Path,
        error: Exception,
        worker_id: int = 0
    ) -> None:
        """Log an unexpected worker exception.

        Args:
            path: File path that caused error
            error: Exception that occurred
            worker_id: Worker identifier
        """
        logger.warning("Worker %d: %s - %s", worker_id, path, error)
        if self.logger:
            self.logger.write({
                'ev': 'worker_error',
                'worker_id': worker_id,
                'path': str(path),
                'error': str(error),
                'error_type': type(error).__name__
            })
