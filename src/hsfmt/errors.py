# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Error types for functional error handling using Result.

This module defines all error types used throughout hsfmt. Public entry
points return ``Result[Value, HsfmtError]``; the only exceptions raised are
``ParseAbort`` (internal to the reader, converted at its boundary) and
``IdempotenceViolationError`` (raised on request by the idempotence harness).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from returns.result import Result


# =============================================================================
# Base Error Types
# =============================================================================

@dataclass(frozen=True)
class HsfmtError:
    """Base error type for all hsfmt errors."""
    message: str


# =============================================================================
# File Operation Errors
# =============================================================================

@dataclass(frozen=True)
class FileError(HsfmtError):
    """File operation error."""
    path: Path
    operation: Literal["read", "write", "create", "delete", "stat"]
    original_error: str | None = None
    permission_error: bool = False
    not_found: bool = False


# =============================================================================
# Source Errors
# =============================================================================

@dataclass(frozen=True)
class EncodingError(HsfmtError):
    """Input is not valid UTF-8 text."""
    offset: int = 0
    path: Path | None = None


@dataclass(frozen=True)
class ParseError(HsfmtError):
    """Layout could not be resolved. Line and column are 1-based."""
    line: int = 0
    column: int = 0
    offset: int = 0
    path: Path | None = None


class ParseAbort(Exception):
    """Raised inside the tokenizer and reader; never escapes ``parse_source``."""

    def __init__(self, message: str, offset: int):
        super().__init__(message)
        self.message = message
        self.offset = offset


# =============================================================================
# Rule Engine Errors
# =============================================================================

@dataclass(frozen=True)
class PassError(HsfmtError):
    """A rewrite pass failed unexpectedly."""
    pass_name: str
    node_kind: str = ""
    path: Path | None = None


# =============================================================================
# Idempotence Errors
# =============================================================================

@dataclass(frozen=True)
class IdempotenceViolation(HsfmtError):
    """Formatting the formatter's own output changed it again."""
    diff: str = ""
    first_output: str = ""
    second_output: str = ""
    path: Path | None = None


class IdempotenceViolationError(Exception):
    """Raised by ``assert_idempotent`` when a second run changes the text."""

    def __init__(self, error: IdempotenceViolation):
        super().__init__(error.message)
        self.error = error


# =============================================================================
# Concurrency Errors
# =============================================================================

@dataclass(frozen=True)
class ConcurrencyError(HsfmtError):
    """Concurrency-related error."""
    operation: Literal["worker_start", "worker_stop", "queue_full", "timeout", "cancelled"]
    worker_id: int | None = None
    queue_size: int | None = None


@dataclass(frozen=True)
class WorkerError(ConcurrencyError):
    """Worker pool error."""
    path: Path | None = None
    inner_error: HsfmtError | None = None


# =============================================================================
# Configuration Errors
# =============================================================================

@dataclass(frozen=True)
class ConfigError(HsfmtError):
    """Configuration error."""
    config_file: Path | None = None
    key: str | None = None
    invalid_value: str | None = None


# =============================================================================
# Type Aliases for Common Result Types
# =============================================================================

FileResult = Result[str, FileError]
PathResult = Result[Path, FileError]
WorkerResult = Result[Path, WorkerError]


# =============================================================================
# Error Helpers
# =============================================================================

def file_not_found(path: Path, operation: Literal["read", "write", "create", "delete", "stat"] = "read") -> FileError:
    """Create a file not found error."""
    return FileError(
        message=f"File not found: {path}",
        path=path,
        operation=operation,
        not_found=True
    )


def permission_denied(path: Path, operation: Literal["read", "write", "create", "delete", "stat"]) -> FileError:
    """Create a permission denied error."""
    return FileError(
        message=f"Permission denied: {operation} {path}",
        path=path,
        operation=operation,
        permission_error=True
    )


def parse_failed(message: str, line: int, column: int, offset: int = 0, path: Path | None = None) -> ParseError:
    """Create a parse error from 0-based coordinates."""
    return ParseError(
        message=message,
        line=line + 1,
        column=column + 1,
        offset=offset,
        path=path
    )
