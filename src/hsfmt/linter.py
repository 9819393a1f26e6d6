# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Read-only linter.

The linter inspects the tree as read from the source and never rewrites
it, so it can run on code nobody wants auto-formatted. Every check is named
and can be switched off through ``enabled_lint_checks``; results come back
sorted by position so two runs over the same text agree exactly.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence, Tuple

from .cst import DataDecl, FunctionClause, Module, TypeSignature
from .diagnostics import Diagnostic, DiagnosticKind, SuggestedFix, sort_diagnostics
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .layout import is_closing, is_opening
from .line_formatting_visitors import LineFormattingVisitor, protected_ranges
from .naming import naming_diagnostics
from .passes.import_order_pass import import_advisories
from .passes.strictness_deriving_pass import duplicate_derive_findings, strictness_findings
from .renderer import flat_join, long_line_diagnostics
from .tokens import LineIndex, Token, TokenKind, TriviaKind

logger = logging.getLogger(__name__)


class Linter:
    """Runs every enabled check over one module."""

    def __init__(self, config: FormatConfig = DEFAULT_CONFIG):
        self.config = config
        self._checks: Dict[str, Callable[[Module, str], List[Diagnostic]]] = {
            "naming": lambda module, _: naming_diagnostics(module, self.config),
            "missing-signature": self._missing_signatures,
            "record-in-sum-type": self._records_in_sum_types,
            "point-free": self._eta_reducible,
            "long-line": lambda _, text: list(long_line_diagnostics(text, self.config)),
            "trailing-whitespace": self._trailing_whitespace,
            "tab-character": self._tabs,
            "missing-strictness": lambda module, _: strictness_findings(module, self.config),
            "unnecessary-derive": lambda module, _: duplicate_derive_findings(module, self.config),
            "imports": lambda module, _: import_advisories(module, self.config),
        }

    def lint(self, module: Module, text: str) -> Tuple[Diagnostic, ...]:
        found: List[Diagnostic] = []
        for name, check in self._checks.items():
            results = check(module, text)
            if results:
                logger.debug("Lint check %s: %d findings", name, len(results))
            found.extend(results)
        return sort_diagnostics(d for d in found if self.config.check_enabled(d.check))

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _missing_signatures(self, module: Module, text: str) -> List[Diagnostic]:
        signed = set()
        for decl in module.declarations:
            if isinstance(decl, TypeSignature):
                signed.update(decl.binder_names)
        found = []
        reported = set()
        for decl in module.declarations:
            if not isinstance(decl, FunctionClause) or decl.binder is None:
                continue
            name = decl.binder.text
            if name in signed or name in reported:
                continue
            reported.add(name)
            found.append(Diagnostic.create(
                DiagnosticKind.MISSING_SIGNATURE,
                f"Top-level binding '{name}' has no type signature",
                decl.binder.span,
            ))
        return found

    def _records_in_sum_types(self, module: Module, text: str) -> List[Diagnostic]:
        found = []
        for decl in module.declarations:
            if not isinstance(decl, DataDecl) or len(decl.constructors) < 2:
                continue
            for constructor in decl.constructors:
                if constructor.record is None:
                    continue
                name = constructor.name.text if constructor.name is not None else "constructor"
                found.append(Diagnostic.create(
                    DiagnosticKind.RECORD_IN_SUM_TYPE,
                    f"Record syntax in sum type constructor '{name}' creates partial field selectors",
                    constructor.first_token.span,
                ))
        return found

    def _eta_reducible(self, module: Module, text: str) -> List[Diagnostic]:
        """Single-clause ``f x = g x`` equations."""
        clause_counts: Dict[str, int] = {}
        for decl in module.declarations:
            if isinstance(decl, FunctionClause) and decl.binder is not None:
                clause_counts[decl.binder.text] = clause_counts.get(decl.binder.text, 0) + 1

        found = []
        for decl in module.declarations:
            if not isinstance(decl, FunctionClause) or decl.binder is None:
                continue
            if clause_counts[decl.binder.text] != 1 or decl.where is not None:
                continue
            suggestion = eta_reduction(decl)
            if suggestion is None:
                continue
            found.append(Diagnostic.create(
                DiagnosticKind.ETA_REDUCIBLE,
                f"'{decl.binder.text}' can be written point-free: {suggestion}",
                decl.span,
                SuggestedFix(decl.span, suggestion),
            ))
        return found

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _trailing_whitespace(self, module: Module, text: str) -> List[Diagnostic]:
        visitor = LineFormattingVisitor(text, module.newline, protected_ranges(module.iter_tokens()))
        index = LineIndex(text)
        return [
            Diagnostic.create(
                DiagnosticKind.TRAILING_WHITESPACE,
                "Trailing whitespace",
                index.span(edit.start_offset, edit.end_offset),
            )
            for edit in visitor.edits_of("trailing_whitespace")
        ]

    def _tabs(self, module: Module, text: str) -> List[Diagnostic]:
        found = []
        lines = set()
        index = LineIndex(text)
        for token in module.iter_tokens():
            for piece in token.leading.pieces + token.trailing.pieces:
                if piece.kind is not TriviaKind.WHITESPACE or "\t" not in piece.text or piece.line in lines:
                    continue
                lines.add(piece.line)
                offset = piece.offset + piece.text.index("\t")
                found.append(Diagnostic.create(
                    DiagnosticKind.TAB_CHARACTER,
                    "Tab character in indentation or spacing",
                    index.span(offset, offset + 1),
                ))
        return found


def eta_reduction(clause: FunctionClause) -> str | None:
    """``f xs = g xs`` rewritten as ``f = g``, or None when not applicable."""
    equation = clause.equation
    if equation.equals is None or equation.guards:
        return None
    lhs = equation.lhs
    body = equation.body
    if len(lhs) < 2 or len(body) < 2:
        return None
    if not all(isinstance(segment, Token) and segment.kind is TokenKind.VARID for segment in lhs):
        return None
    if not all(isinstance(segment, Token) for segment in body):
        return None
    lhs_tokens: Sequence[Token] = lhs  # type: ignore[assignment]
    body_tokens: Sequence[Token] = body  # type: ignore[assignment]
    argument = lhs_tokens[-1]
    last = body_tokens[-1]
    if last.kind is not TokenKind.VARID or last.text != argument.text:
        return None
    if any(token.text == argument.text for token in body_tokens[:-1]):
        return None
    if any(token.text == argument.text for token in lhs_tokens[:-1]):
        return None
    depth = 0
    for token in body_tokens[:-1]:
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0 and (token.is_operator or token.kind in (TokenKind.RESERVED_ID, TokenKind.RESERVED_OP)
                             or token.is_special("`")):
            return None
    if not (body_tokens[-2].trailing.pieces or last.leading.pieces):
        return None
    return f"{flat_join(tuple(lhs_tokens[:-1]) + (equation.equals,))} {flat_join(body_tokens[:-1])}"


def lint_module(module: Module, text: str, config: FormatConfig = DEFAULT_CONFIG) -> Tuple[Diagnostic, ...]:
    return Linter(config).lint(module, text)
