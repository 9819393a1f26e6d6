# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Base class for rule-engine passes.

Each pass is a pure function from Module to Module: it reads the tree it is
given, returns a new tree (or the same one when nothing changes) and
records diagnostics for what it fixed or flagged. Unexpected exceptions are
turned into a PassError result so one broken rule cannot crash a batch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, FrozenSet, List, Optional, Set, Tuple

from returns.result import Failure, Result, Success

from .cst import Module, Node, NodeKind, tokens_text
from .diagnostics import CHECK_NAMES, Diagnostic, DiagnosticKind, SuggestedFix
from .errors import PassError
from .formatting_rules_model import FormatConfig
from .renderer import render_fragment
from .tokens import TextSpan, Token


@dataclass
class PassResult:
    """Result of applying one pass.

    Attributes:
        module: The rewritten tree
        diagnostics: Findings and applied fixes, in discovery order
        applied_rules: Names of the rules that changed something
        statistics: Per-pass counters (e.g. blocks re-indented)
    """
    module: Module
    diagnostics: List[Diagnostic] = field(default_factory=list)
    applied_rules: Set[str] = field(default_factory=set)
    statistics: dict = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return any(diagnostic.is_mechanical for diagnostic in self.diagnostics)


class RulePass(ABC):
    """Abstract base class for all rule-engine passes."""

    name: ClassVar[str] = ""
    touches: ClassVar[FrozenSet[NodeKind]] = frozenset()

    def __init__(self, config: FormatConfig, path: Optional[Path] = None):
        self.config = config
        self.path = path
        self.diagnostics: List[Diagnostic] = []
        self.applied_rules: Set[str] = set()
        self.statistics: dict = {}
        self._current: Optional[Node] = None

    @abstractmethod
    def apply(self, module: Module) -> Module:
        """Return the rewritten module."""

    def run(self, module: Module) -> Result[PassResult, PassError]:
        """Apply the pass, converting unexpected failures into a PassError."""
        try:
            rewritten = self.apply(module)
        except Exception as e:
            node_kind = self._current.kind.value if self._current is not None else ""
            return Failure(PassError(
                message=f"{self.name} pass failed: {e}",
                pass_name=self.name,
                node_kind=node_kind,
                path=self.path,
            ))
        return Success(PassResult(
            module=rewritten,
            diagnostics=list(self.diagnostics),
            applied_rules=set(self.applied_rules),
            statistics=dict(self.statistics),
        ))

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        span: TextSpan,
        suggested_fix: Optional[SuggestedFix] = None,
    ) -> None:
        """Record a diagnostic unless its lint check is disabled."""
        if not self.config.check_enabled(CHECK_NAMES.get(kind)):
            return
        self.diagnostics.append(Diagnostic.create(kind, message, span, suggested_fix))

    def fixed(self, rule: str, kind: DiagnosticKind, message: str, span: TextSpan) -> None:
        """Record a mechanical fix."""
        self.applied_rules.add(rule)
        self.count(rule)
        self.report(kind, message, span)

    def count(self, key: str, amount: int = 1) -> None:
        self.statistics[key] = self.statistics.get(key, 0) + amount

    def fragment(self, module: Module, node: Node) -> str:
        return render_fragment(node, module, self.config)

    def rewrites_source(self, module: Module, before: Node, after: Node) -> bool:
        """Whether ``after`` renders differently from both ``before`` and its source text.

        A freshly read node renders from its tokens while a node carrying a
        layout renders in normalized form; already-normalized source must
        not count as a change.
        """
        rendered = self.fragment(module, after)
        if rendered == self.fragment(module, before):
            return False
        return rendered != source_fragment(before)


def source_fragment(node: Node) -> str:
    """Source of ``node`` plus the comments trailing its last token."""
    return tokens_source(tuple(node.iter_tokens()))


def tokens_source(tokens: Tuple[Token, ...]) -> str:
    text = tokens_text(tokens)
    pieces = tokens[-1].trailing.pieces
    last_comment = max((i for i, piece in enumerate(pieces) if piece.is_comment), default=None)
    if last_comment is None:
        return text
    return text + "".join(piece.text for piece in pieces[:last_comment + 1])
