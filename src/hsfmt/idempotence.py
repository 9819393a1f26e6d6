# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Idempotence harness.

Two properties are checked here:

1. Formatting already formatted text changes nothing and reports no
   mechanical fixes.
2. Formatting keeps every meaningful token: the multiset of token texts
   before and after is the same. Pragma whitespace and the parentheses a
   deriving clause gains are the only differences that are allowed.

``verify_idempotence`` returns a Result for production callers;
``assert_idempotent`` raises, for test suites where a violation must stop
the run.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Optional, Set

from returns.result import Failure, Result, Success

from .cst import DataDecl, Module, Pragma, walk
from .errors import HsfmtError, IdempotenceViolation, IdempotenceViolationError
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .pipeline import FormatResult, Source, check_idempotent, format_source
from .reader import parse_source
from .renderer import pragma_text
from .tokens import TokenKind

__all__ = [
    "assert_idempotent",
    "check_idempotent",
    "semantic_tokens",
    "tokens_preserved",
    "verify_idempotence",
]


def _grouping_parens(module: Module) -> Set[int]:
    """Offsets of the parentheses wrapping deriving class lists."""
    offsets: Set[int] = set()
    for node in walk(module):
        if not isinstance(node, DataDecl):
            continue
        for clause in node.deriving:
            if clause.is_parenthesized:
                offsets.add(clause.classes[0].offset)
                offsets.add(clause.classes[-1].offset)
    return offsets


def semantic_tokens(module: Module) -> Counter:
    """Multiset of the token texts that carry meaning."""
    skipped = _grouping_parens(module)
    found: Counter = Counter()
    for token in module.iter_tokens():
        if token.kind is TokenKind.EOF or token.offset in skipped:
            continue
        if token.kind is TokenKind.PRAGMA:
            found[pragma_text(Pragma(token))] += 1
        else:
            found[token.text] += 1
    return found


def tokens_preserved(original: str, formatted: str) -> bool:
    """True when both texts read and carry the same semantic tokens."""
    before = parse_source(original)
    after = parse_source(formatted)
    if isinstance(before, Failure) or isinstance(after, Failure):
        return False
    return semantic_tokens(before.unwrap()) == semantic_tokens(after.unwrap())


def verify_idempotence(
    source: Source,
    config: FormatConfig = DEFAULT_CONFIG,
    path: Optional[Path] = None,
) -> Result[FormatResult, HsfmtError]:
    """Format ``source`` with the self-check on.

    Besides the second-run comparison, the formatted text must keep the
    input's semantic tokens.
    """
    result = format_source(source, config, self_check=True, path=path)
    if isinstance(result, Failure):
        return result
    formatted = result.unwrap()
    original = source.decode("utf-8") if isinstance(source, bytes) else source
    if not tokens_preserved(original, formatted.text):
        label = str(path) if path is not None else "<input>"
        return Failure(IdempotenceViolation(
            message=f"Formatting {label} changed its tokens",
            first_output=formatted.text,
            path=path,
        ))
    return Success(formatted)


def assert_idempotent(source: Source, config: FormatConfig = DEFAULT_CONFIG) -> str:
    """Formatted text of ``source``.

    Raises:
        IdempotenceViolationError: When a second run changes the output or
            the tokens are not preserved
        ValueError: When ``source`` cannot be formatted at all
    """
    result = verify_idempotence(source, config)
    if isinstance(result, Failure):
        error = result.failure()
        if isinstance(error, IdempotenceViolation):
            raise IdempotenceViolationError(error)
        raise ValueError(error.message)
    return result.unwrap().text
