# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Text-in, text-out entry points.

``format_source`` runs the whole chain (decode, read, rule engine, render)
and never raises: encoding and layout problems come back as a Failure and
no partial output is produced. Diagnostics for fixes the formatter applied
are returned alongside the formatted text, never instead of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple, Union

from returns.result import Failure, Result, Success

from .cst import Module
from .diagnostics import Diagnostic, DiagnosticKind, mechanical, sort_diagnostics
from .edits import unified_diff
from .errors import EncodingError, HsfmtError, IdempotenceViolation, ParseError
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .line_formatting_visitors import LineFormattingVisitor, protected_ranges
from .linter import Linter
from .reader import parse_source
from .renderer import render
from .rule_engine import RuleEngine
from .tokens import LineIndex

logger = logging.getLogger(__name__)

Source = Union[str, bytes]


@dataclass(frozen=True)
class FormatResult:
    """Formatted text plus everything found on the way.

    Attributes:
        text: Formatted source
        diagnostics: Mechanical fixes and advisories, sorted by position
        changed: Whether ``text`` differs from the input
        applied_rules: Rules that rewrote something
    """
    text: str
    diagnostics: Tuple[Diagnostic, ...] = ()
    changed: bool = False
    applied_rules: FrozenSet[str] = field(default_factory=frozenset)


def decode_source(source: Source, path: Optional[Path] = None) -> Result[str, EncodingError]:
    """UTF-8 text of ``source``; a leading BOM is kept as part of the text."""
    if isinstance(source, bytes):
        try:
            return Success(source.decode("utf-8"))
        except UnicodeDecodeError as e:
            return Failure(EncodingError(
                message=f"Invalid UTF-8 at byte {e.start}: {e.reason}",
                offset=e.start,
                path=path,
            ))
    try:
        source.encode("utf-8")
    except UnicodeEncodeError as e:
        return Failure(EncodingError(
            message=f"Text is not encodable as UTF-8 at offset {e.start}: {e.reason}",
            offset=e.start,
            path=path,
        ))
    return Success(source)


def source_line_diagnostics(module: Module, text: str, config: FormatConfig) -> List[Diagnostic]:
    """TrailingWhitespace and FinalNewline fixes the output will carry."""
    visitor = LineFormattingVisitor(text, module.newline, protected_ranges(module.iter_tokens()))
    if not visitor.edits:
        return []
    index = LineIndex(text)
    found = []
    for edit in visitor.edits:
        span = index.span(edit.start_offset, edit.end_offset)
        if edit.edit_type == "trailing_whitespace":
            found.append(Diagnostic.create(DiagnosticKind.TRAILING_WHITESPACE, "Trailing whitespace removed", span))
        else:
            found.append(Diagnostic.create(DiagnosticKind.FINAL_NEWLINE, "File must end with exactly one newline", span))
    return [d for d in found if config.check_enabled(d.check)]


def _format_text(text: str, config: FormatConfig, path: Optional[Path]) -> Result[FormatResult, HsfmtError]:
    parsed = parse_source(text)
    if isinstance(parsed, Failure):
        error = parsed.failure()
        return Failure(error if path is None else _with_path(error, path))
    module = parsed.unwrap()

    outcome = RuleEngine(config, path=path).run(module)
    if isinstance(outcome, Failure):
        return Failure(outcome.failure())
    engine_result = outcome.unwrap()

    rendered = render(engine_result.module, config)
    diagnostics = sort_diagnostics(
        list(engine_result.diagnostics)
        + list(rendered.diagnostics)
        + source_line_diagnostics(module, text, config)
    )
    return Success(FormatResult(
        text=rendered.text,
        diagnostics=diagnostics,
        changed=rendered.text != text,
        applied_rules=frozenset(engine_result.applied_rules),
    ))


def _with_path(error: ParseError, path: Path) -> ParseError:
    return replace(error, path=path)


def second_run_violation(
    first: FormatResult,
    config: FormatConfig,
    path: Optional[Path] = None,
) -> Optional[IdempotenceViolation]:
    """Format ``first.text`` again; None when nothing changes."""
    label = str(path) if path is not None else "<input>"
    outcome = _format_text(first.text, config, path)
    if isinstance(outcome, Failure):
        return IdempotenceViolation(
            message=f"Formatted output of {label} no longer reads: {outcome.failure().message}",
            first_output=first.text,
            path=path,
        )
    second = outcome.unwrap()
    fixes = mechanical(second.diagnostics)
    if second.text == first.text and not fixes:
        return None
    if second.text != first.text:
        message = f"Formatting {label} a second time changed it again"
    else:
        kinds = sorted({d.kind.value for d in fixes})
        message = f"Formatting {label} a second time reported fixes: {', '.join(kinds)}"
    return IdempotenceViolation(
        message=message,
        diff=unified_diff(first.text, second.text, label),
        first_output=first.text,
        second_output=second.text,
        path=path,
    )


def format_source(
    source: Source,
    config: FormatConfig = DEFAULT_CONFIG,
    self_check: bool = False,
    path: Optional[Path] = None,
) -> Result[FormatResult, HsfmtError]:
    """Format one module.

    Args:
        source: Module text, or its UTF-8 bytes
        config: Formatting options
        self_check: Format the output again and fail on any change
        path: Used only to label errors and diagnostics logs

    Returns:
        Success(FormatResult) or Failure(EncodingError | ParseError |
        PassError | IdempotenceViolation)
    """
    decoded = decode_source(source, path)
    if isinstance(decoded, Failure):
        return Failure(decoded.failure())
    result = _format_text(decoded.unwrap(), config, path)
    if isinstance(result, Failure) or not self_check:
        return result
    violation = second_run_violation(result.unwrap(), config, path)
    if violation is not None:
        logger.debug("Self-check failed: %s", violation.message)
        return Failure(violation)
    return result


def lint_source(
    source: Source,
    config: FormatConfig = DEFAULT_CONFIG,
    path: Optional[Path] = None,
) -> Result[Tuple[Diagnostic, ...], HsfmtError]:
    """Advisories for one module as written; the text is never rewritten."""
    decoded = decode_source(source, path)
    if isinstance(decoded, Failure):
        return Failure(decoded.failure())
    text = decoded.unwrap()
    parsed = parse_source(text)
    if isinstance(parsed, Failure):
        error = parsed.failure()
        return Failure(error if path is None else _with_path(error, path))
    return Success(Linter(config).lint(parsed.unwrap(), text))


def check_idempotent(source: Source, config: FormatConfig = DEFAULT_CONFIG) -> bool:
    """True when formatting the formatted text is a no-op.

    Input that cannot be formatted at all is reported as False.
    """
    return isinstance(format_source(source, config, self_check=True), Success)
