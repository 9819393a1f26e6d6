# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Command-line interface with functional error handling.

Exit codes:
    0  success
    1  files need formatting, lint findings (with --check), or files failed
    2  configuration or usage error
    3  unexpected error
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from returns.io import IOFailure, IOResult, impure_safe
from returns.result import Failure, Result, Success
from returns.unsafe import unsafe_perform_io
from typing_extensions import Annotated

from . import __version__
from .errors import ConfigError, FileError, IdempotenceViolation, file_not_found
from .formatting_rules_model import FormatConfig
from .logging_jsonl import JsonlLogger
from .logging_setup import configure_console_logging, setup_loggers
from .worker_context import RunMode, WorkerContext
from .worker_pool import process_files

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_CONFIG = 2
EXIT_UNEXPECTED = 3

SOURCE_SUFFIX = ".hs"

app = typer.Typer(
    name="hsfmt",
    help="Haskell style formatter and linter",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)


def version_callback(value: Optional[bool]) -> None:
    if value:
        typer.echo(f"hsfmt {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=False)
def main_callback(
    version: Annotated[Optional[bool], typer.Option("--version", "-V", callback=version_callback, is_eager=True, help="Show version and exit")] = None,
) -> None:
    """Haskell style formatter and linter."""


# =============================================================================
# Helpers
# =============================================================================

def load_config(path: Optional[Path]) -> Result[FormatConfig, ConfigError]:
    """Configuration from ``path``, ``hsfmt.json`` in the CWD, or defaults."""
    if path is not None and not path.exists():
        return Failure(ConfigError(message=f"Configuration file not found: {path}", config_file=path))
    try:
        return Success(FormatConfig.load_from_path_or_default(path))
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        key = ".".join(str(part) for part in first.get("loc", ())) or None
        return Failure(ConfigError(
            message=f"Invalid configuration: {e.error_count()} error(s); first: {first.get('msg', e)}",
            config_file=path,
            key=key,
            invalid_value=str(first.get("input")) if "input" in first else None,
        ))
    except OSError as e:
        return Failure(ConfigError(message=f"Cannot read configuration: {e}", config_file=path))


def discover_files(paths: List[Path]) -> Result[List[Path], FileError]:
    """Explicit files as given plus every ``*.hs`` file under directories.

    Hidden directories are skipped; the result is de-duplicated and keeps
    the order of ``paths``.
    """
    found: List[Path] = []
    seen = set()
    for path in paths:
        if not path.exists():
            return Failure(file_not_found(path, "stat"))
        if path.is_dir():
            candidates = sorted(
                candidate for candidate in path.rglob(f"*{SOURCE_SUFFIX}")
                if candidate.is_file()
                and not any(part.startswith(".") for part in candidate.relative_to(path).parts[:-1])
            )
        else:
            candidates = [path]
        for candidate in candidates:
            key = candidate.resolve()
            if key not in seen:
                seen.add(key)
                found.append(candidate)
    return Success(found)


async def _run_batch_async(
    files: List[Path],
    config: FormatConfig,
    mode: RunMode,
    write: bool,
    diff: bool,
    workers: int,
    logger: Optional[JsonlLogger],
    diagnostics_logger: Optional[JsonlLogger],
) -> WorkerContext:
    started = time.time()
    context = await process_files(
        files,
        config=config,
        mode=mode,
        write_enabled=write,
        diff_enabled=diff,
        num_workers=workers,
        logger=logger,
        diagnostics_logger=diagnostics_logger,
        handle_signals=True,
    )
    if logger:
        snapshot = await context.metrics.get_snapshot()
        logger.write({'ev': 'run_finished', **snapshot, 'elapsed_ms': int((time.time() - started) * 1000)})
    return context


@impure_safe
def _run_batch(
    files: List[Path],
    config: FormatConfig,
    mode: RunMode,
    write: bool,
    diff: bool,
    workers: int,
    log_path: Optional[Path],
) -> WorkerContext:
    """Run the pool to completion; any exception becomes an IOFailure."""
    logger = diagnostics_logger = None
    if log_path is not None:
        logger, diagnostics_logger, _ = setup_loggers(log_path)
    try:
        if logger:
            logger.write({'ev': 'run_started', 'mode': mode, 'files': len(files), 'workers': workers})
        return asyncio.run(_run_batch_async(
            files, config, mode, write, diff, workers, logger, diagnostics_logger,
        ))
    finally:
        if logger:
            logger.close()
        if diagnostics_logger:
            diagnostics_logger.close()


def _report(context: WorkerContext, show_diagnostics: bool, check: bool) -> int:
    """Print outcomes and return the exit code for the batch."""
    exit_code = EXIT_OK
    changed = unchanged = failed = 0
    for outcome in context.outcomes:
        label = str(outcome.path)
        if outcome.error is not None:
            failed += 1
            typer.echo(f"{label}: error: {outcome.error.message}", err=True)
            if isinstance(outcome.error, IdempotenceViolation) and outcome.error.diff:
                typer.echo(outcome.error.diff, nl=False, err=True)
            exit_code = EXIT_FINDINGS
            continue
        if outcome.status == "changed":
            changed += 1
        else:
            unchanged += 1
        if outcome.diff:
            typer.echo(outcome.diff, nl=False)
        if show_diagnostics:
            for diagnostic in outcome.diagnostics:
                typer.echo(diagnostic.format(label))
        if check and context.mode == "format" and outcome.status == "changed":
            typer.echo(f"would reformat {label}")
            exit_code = EXIT_FINDINGS
        if check and context.mode == "lint" and outcome.diagnostics:
            exit_code = EXIT_FINDINGS

    total = changed + unchanged + failed
    if context.mode == "lint":
        findings = sum(len(outcome.diagnostics) for outcome in context.outcomes)
        typer.echo(f"{total} file(s) checked, {findings} finding(s), {failed} failed", err=True)
    else:
        verb = "reformatted" if context.write_enabled else "would change"
        typer.echo(f"{total} file(s): {changed} {verb}, {unchanged} unchanged, {failed} failed", err=True)
    return exit_code


def _execute(
    paths: List[Path],
    config_path: Optional[Path],
    mode: RunMode,
    write: bool = False,
    diff: bool = False,
    check: bool = False,
    workers: int = 1,
    log_path: Optional[Path] = None,
    show_diagnostics: bool = False,
) -> int:
    config_result = load_config(config_path)
    if isinstance(config_result, Failure):
        error = config_result.failure()
        typer.echo(f"Configuration error: {error.message}", err=True)
        return EXIT_CONFIG
    files_result = discover_files(paths)
    if isinstance(files_result, Failure):
        typer.echo(f"Error: {files_result.failure().message}", err=True)
        return EXIT_CONFIG

    result: IOResult[WorkerContext, Exception] = _run_batch(
        files_result.unwrap(), config_result.unwrap(), mode, write, diff, workers, log_path,
    )
    if isinstance(result, IOFailure):
        error = unsafe_perform_io(result.failure())
        typer.echo(f"Unexpected error: {error}", err=True)
        return EXIT_UNEXPECTED
    return _report(unsafe_perform_io(result.unwrap()), show_diagnostics, check)


# =============================================================================
# Commands
# =============================================================================

PathsArgument = Annotated[List[Path], typer.Argument(help="Haskell files, or directories to search for *.hs files")]
ConfigOption = Annotated[Optional[Path], typer.Option("--config", help="Path to an hsfmt.json configuration file")]
WorkersOption = Annotated[int, typer.Option("--workers", min=1, help="Number of files processed in parallel")]
LogPathOption = Annotated[Optional[Path], typer.Option("--log-path", help="Write a JSONL run log (and a diagnostics log beside it)")]
VerboseOption = Annotated[bool, typer.Option("--verbose", help="Log pass timings and decisions to stderr")]


@app.command(name="format")
def format_command(
    paths: PathsArgument,
    write: Annotated[bool, typer.Option("--write", help="Write formatted files back to disk")] = False,
    check: Annotated[bool, typer.Option("--check", help="Exit with code 1 if any file needs formatting")] = False,
    diff: Annotated[bool, typer.Option("--diff", help="Show unified diffs of changes")] = False,
    diagnostics: Annotated[bool, typer.Option("--diagnostics", help="Print every fix and advisory")] = False,
    config: ConfigOption = None,
    workers: WorkersOption = 1,
    log_path: LogPathOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Format Haskell source files."""
    configure_console_logging(verbose)
    exit_code = _execute(
        paths, config, "format",
        write=write, diff=diff, check=check, workers=workers,
        log_path=log_path, show_diagnostics=diagnostics,
    )
    if exit_code != EXIT_OK:
        raise typer.Exit(exit_code)


@app.command(name="lint")
def lint_command(
    paths: PathsArgument,
    check: Annotated[bool, typer.Option("--check", help="Exit with code 1 if there are findings")] = False,
    config: ConfigOption = None,
    workers: WorkersOption = 1,
    log_path: LogPathOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Report style advisories without changing any file."""
    configure_console_logging(verbose)
    exit_code = _execute(
        paths, config, "lint",
        check=check, workers=workers, log_path=log_path, show_diagnostics=True,
    )
    if exit_code != EXIT_OK:
        raise typer.Exit(exit_code)


@app.command(name="check")
def check_command(
    paths: PathsArgument,
    config: ConfigOption = None,
    workers: WorkersOption = 1,
    log_path: LogPathOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Verify that formatting each file twice gives the same result."""
    configure_console_logging(verbose)
    exit_code = _execute(paths, config, "check", workers=workers, log_path=log_path)
    if exit_code != EXIT_OK:
        raise typer.Exit(exit_code)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
