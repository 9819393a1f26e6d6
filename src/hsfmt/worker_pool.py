# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Worker pool for formatting a batch of files in parallel.

One work item is one file. Formatting itself is CPU-bound and runs in a
worker thread so that reads and writes of other files keep moving; a file
that fails to read, decode or parse is reported and the batch goes on.
"""

import asyncio
import contextlib
import signal
import time
from pathlib import Path
from typing import List, Optional

from returns.result import Failure

from .async_file_io import read_bytes_safe, write_formatted
from .edits import unified_diff
from .errors import HsfmtError, WorkerError
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .logging_jsonl import JsonlLogger
from .pipeline import format_source, lint_source
from .thread_safe_metrics import ThreadSafeMetrics
from .worker_context import FileOutcome, RunMode, WorkerContext, WorkItem


class WorkerPool:
    """Manages a pool of async workers for parallel file processing."""

    def __init__(
        self,
        num_workers: Optional[int] = None,
        queue_size: int = 10
    ):
        """Initialize worker pool.

        Args:
            num_workers: Number of worker tasks (default: 1)
            queue_size: Maximum items in queue (default: 10)
        """
        if num_workers is None:
            num_workers = 1
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")

        self.num_workers = num_workers
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.workers: List[asyncio.Task] = []
        self.context: Optional[WorkerContext] = None
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._pending_tasks = 0
        self._all_tasks_done = asyncio.Event()

    async def start(
        self,
        metrics: ThreadSafeMetrics,
        config: FormatConfig = DEFAULT_CONFIG,
        mode: RunMode = "format",
        write_enabled: bool = False,
        diff_enabled: bool = False,
        logger: Optional[JsonlLogger] = None,
        diagnostics_logger: Optional[JsonlLogger] = None,
    ) -> None:
        """Start the worker pool.

        Args:
            metrics: Thread-safe metrics collector
            config: Formatting options shared by every file
            mode: ``format``, ``lint`` or ``check`` (format with self-check)
            write_enabled: Whether to write changed files back to disk
            diff_enabled: Whether to attach a unified diff to changed files
            logger: Optional logger for run events
            diagnostics_logger: Optional logger receiving every diagnostic
        """
        if self._running:
            raise RuntimeError("Worker pool already running")

        self.context = WorkerContext(
            metrics=metrics,
            logger=logger,
            diagnostics_logger=diagnostics_logger,
            config=config,
            mode=mode,
            write_enabled=write_enabled,
            diff_enabled=diff_enabled,
            shutdown_event=self._shutdown_event,
        )

        self._running = True
        self._all_tasks_done.set()  # Initially no tasks
        for i in range(self.num_workers):
            worker_id = i + 1
            self.workers.append(asyncio.create_task(
                self._worker(worker_id),
                name=f"worker-{worker_id}"
            ))

        if logger:
            logger.write({
                'ev': 'worker_pool_started',
                'num_workers': self.num_workers,
                'queue_size': self.queue.maxsize,
                'mode': mode,
            })

    async def submit(self, item: WorkItem) -> None:
        """Submit a work item to the pool.

        Raises:
            RuntimeError: If pool not started
        """
        if not self._running:
            raise RuntimeError("Worker pool not started")

        self._pending_tasks += 1
        self._all_tasks_done.clear()
        await self.queue.put(item)

    async def wait_for_completion(self) -> None:
        """Wait for all submitted tasks to complete, or for a shutdown request."""
        done = asyncio.create_task(self._all_tasks_done.wait())
        stopped = asyncio.create_task(self._shutdown_event.wait())
        try:
            await asyncio.wait({done, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            done.cancel()
            stopped.cancel()

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Shutdown the worker pool gracefully.

        Args:
            timeout: Maximum time to wait for shutdown
        """
        if not self._running:
            return

        self._shutdown_event.set()

        # Sentinel values to wake up idle workers
        for _ in range(self.num_workers):
            try:
                await asyncio.wait_for(self.queue.put(None), timeout=1.0)
            except asyncio.TimeoutError:
                pass

        if self.workers:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self.workers, return_exceptions=True),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                for worker in self.workers:
                    if not worker.done():
                        worker.cancel()
                await asyncio.gather(*self.workers, return_exceptions=True)

        self._running = False
        self.workers.clear()

        if self.context and self.context.logger:
            self.context.logger.write({
                'ev': 'worker_pool_shutdown',
                'timeout_used': timeout
            })

    async def _worker(self, worker_id: int) -> None:
        """Worker coroutine that processes items from the queue.

        Args:
            worker_id: Unique identifier for this worker
        """
        if not self.context:
            return

        while not self.context.should_shutdown():
            try:
                item = await asyncio.wait_for(self.queue.get(), timeout=1.0)

                if item is None:  # Sentinel value
                    break

                try:
                    await self._process_item(item, worker_id)
                finally:
                    self._pending_tasks -= 1
                    if self._pending_tasks == 0:
                        self._all_tasks_done.set()

            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break
            except Exception as e:
                # Unexpected error; keep the worker alive for the rest of the batch
                await self.context.report_error(Path("worker"), e, worker_id)

    async def _process_item(self, item: WorkItem, worker_id: int) -> None:
        """Read, format or lint, and optionally write back one file.

        Args:
            item: Work item to process
            worker_id: Worker processing this item
        """
        if not self.context:
            return
        context = self.context

        try:
            read_result = await read_bytes_safe(item.path)
            if isinstance(read_result, Failure):
                await self._fail(item, worker_id, read_result.failure())
                return
            source = read_result.unwrap()

            format_start = time.time()
            if context.mode == "lint":
                lint_result = await asyncio.to_thread(lint_source, source, context.config, item.path)
                format_time = time.time() - format_start
                if isinstance(lint_result, Failure):
                    await self._fail(item, worker_id, lint_result.failure())
                    return
                diagnostics = lint_result.unwrap()
                outcome = FileOutcome(
                    path=item.path,
                    index=item.index,
                    status="unchanged",
                    diagnostics=diagnostics,
                    worker_id=worker_id,
                )
            else:
                format_result = await asyncio.to_thread(
                    format_source, source, context.config, context.mode == "check", item.path,
                )
                format_time = time.time() - format_start
                if isinstance(format_result, Failure):
                    await self._fail(item, worker_id, format_result.failure())
                    return
                formatted = format_result.unwrap()
                original = source.decode("utf-8")

                if context.write_enabled and formatted.changed:
                    write_result = await write_formatted(item.path, formatted.text)
                    if isinstance(write_result, Failure):
                        await self._fail(item, worker_id, write_result.failure())
                        return

                diff = None
                if context.diff_enabled and formatted.changed:
                    diff = unified_diff(original, formatted.text, str(item.path))

                outcome = FileOutcome(
                    path=item.path,
                    index=item.index,
                    status="changed" if formatted.changed else "unchanged",
                    diagnostics=formatted.diagnostics,
                    diff=diff,
                    worker_id=worker_id,
                )

            await context.metrics.record_file(outcome.status, outcome.diagnostics, format_time)
            await context.report_completion(outcome)

        except Exception as e:
            await context.report_error(item.path, e, worker_id)
            await self._fail(item, worker_id, WorkerError(
                message=f"Unexpected error processing {item.path}: {e}",
                operation="cancelled",
                worker_id=worker_id,
                path=item.path,
            ))

    async def _fail(self, item: WorkItem, worker_id: int, error: HsfmtError) -> None:
        if not self.context:
            return
        await self.context.metrics.record_file("failed")
        await self.context.report_completion(FileOutcome(
            path=item.path,
            index=item.index,
            status="failed",
            error=error,
            worker_id=worker_id,
        ))


class SignalHandler:
    """Handles OS signals for graceful shutdown."""

    def __init__(self, worker_pool: WorkerPool):
        """Initialize signal handler.

        Args:
            worker_pool: Worker pool to shutdown on signal
        """
        self.worker_pool = worker_pool
        self._original_handlers = {}

    def __enter__(self):
        """Install signal handlers."""
        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, self._handle_signal)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, self._handle_signal)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)

    def _handle_signal(self, signum, frame):
        """Handle signal by triggering shutdown."""
        context = self.worker_pool.context
        if context and context.shutdown_event:
            context.shutdown_event.set()
        if context and context.logger:
            context.logger.write({
                'ev': 'signal_received',
                'signal': signal.Signals(signum).name
            })


async def process_files(
    paths: List[Path],
    config: FormatConfig = DEFAULT_CONFIG,
    mode: RunMode = "format",
    write_enabled: bool = False,
    diff_enabled: bool = False,
    num_workers: int = 1,
    logger: Optional[JsonlLogger] = None,
    diagnostics_logger: Optional[JsonlLogger] = None,
    handle_signals: bool = False,
) -> WorkerContext:
    """Run one batch through a fresh pool and return its context.

    Outcomes in the returned context are sorted by submission order. With
    ``handle_signals`` (main thread only) SIGINT and SIGTERM stop the batch
    after the files already in progress.
    """
    metrics = ThreadSafeMetrics()
    pool = WorkerPool(num_workers=num_workers)
    await pool.start(
        metrics,
        config=config,
        mode=mode,
        write_enabled=write_enabled,
        diff_enabled=diff_enabled,
        logger=logger,
        diagnostics_logger=diagnostics_logger,
    )
    signals = SignalHandler(pool) if handle_signals else contextlib.nullcontext()
    try:
        with signals:
            total = len(paths)
            for index, path in enumerate(paths, start=1):
                if pool.context and pool.context.should_shutdown():
                    break
                await pool.submit(WorkItem(path=path, index=index, total=total))
            await pool.wait_for_completion()
    finally:
        await pool.shutdown()
    context = pool.context
    assert context is not None
    context.outcomes.sort(key=lambda outcome: outcome.index)
    return context
