# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Indentation pass.

Re-indents layout blocks whose opener ends its line to the opener line's
indent plus ``indent_width``, and moves an equation's ``where`` onto its
own line at the clause column plus one indent with its bindings one indent
further. A block is only moved when the move cannot change how the layout
rule reads the module:

* every line of the block starts with a plain-space indent,
* the block ends at the end of a line,
* its new column is right of every enclosing block, and
* the first line after it stays left of the new column.

The pass records new columns as placements keyed by token offset; the
renderer shifts each affected line as a unit.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from ..cst import (
    BlockKind,
    FunctionClause,
    LayoutBlock,
    Module,
    Node,
    NodeKind,
    Placement,
    children,
    walk,
)
from ..diagnostics import DiagnosticKind
from ..formatting_visitor import RulePass
from ..tokens import Token, TokenKind

logger = logging.getLogger(__name__)


class IndentationPass(RulePass):
    """Plans per-line indentation for layout blocks and ``where`` clauses."""

    name = "indentation"
    touches = frozenset({NodeKind.LAYOUT_BLOCK, NodeKind.WHERE_CLAUSE, NodeKind.FUNCTION_CLAUSE})

    def apply(self, module: Module) -> Module:
        self._tokens: Tuple[Token, ...] = tuple(module.iter_tokens())
        self._index: Dict[int, int] = {token.offset: i for i, token in enumerate(self._tokens)}
        self._columns: Dict[int, int] = {}
        self._breaks: Set[int] = set()
        self._width = self.config.indent_width

        firsts = [decl.first_token for decl in module.import_decls] + \
                 [decl.first_token for decl in module.declarations]
        top = (firsts[0].column,) if firsts else ()
        for declaration in module.declarations:
            self._current = declaration
            self._visit(declaration, top)

        placements = dict(module.placements)
        for index, column in self._columns.items():
            token = self._tokens[index]
            if column != token.column or index in self._breaks:
                placements[token.offset] = Placement(column, index in self._breaks)
        if len(placements) == len(module.placements):
            return module
        logger.debug("Indentation: %d line placements", len(placements) - len(module.placements))
        return replace(module, placements=placements)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _visit(self, node: Node, enclosing: Tuple[int, ...]) -> None:
        if isinstance(node, LayoutBlock):
            self._block(node, enclosing)
            return
        if isinstance(node, FunctionClause) and node.where is not None:
            snapshot = self._snapshot()
            provisional = self._provisional_where(node)
            self._visit(node.equation, enclosing)
            if provisional and not self._where_ready(node):
                self._restore(snapshot)
                self._visit(node.equation, enclosing)
            self._where(node, enclosing)
            return
        for child in children(node):
            self._visit(child, enclosing)

    def _block(self, block: LayoutBlock, enclosing: Tuple[int, ...]) -> None:
        delta = self._plan_shift(block, enclosing)
        if delta is not None:
            self._assign(block, delta)
            if delta:
                self.fixed(
                    "block-indentation", DiagnosticKind.INDENTATION,
                    f"Indent '{block.opener.text}' block by {self._width} spaces",
                    block.first_token.span,
                )
        inner = enclosing + (self._new_column(self._index[block.first_token.offset]),)
        for item in block.items:
            self._visit(item, inner)

    # ------------------------------------------------------------------
    # Column bookkeeping
    # ------------------------------------------------------------------

    def _line_delta(self, index: int) -> int:
        """Shift applied to the line holding ``tokens[index]``."""
        position = index
        while True:
            token = self._tokens[position]
            if position != index and token.is_multiline:
                return 0
            if token.line_start or position in self._breaks or position == 0:
                return self._columns.get(position, token.column) - token.column
            position -= 1

    def _new_column(self, index: int) -> int:
        return self._tokens[index].column + self._line_delta(index)

    def _line_starts(self, block: LayoutBlock) -> List[int]:
        first = self._index[block.first_token.offset]
        last = self._index[block.last_token.offset]
        return [i for i in range(first, last + 1) if self._tokens[i].line_start]

    def _assign(self, block: LayoutBlock, delta: int) -> None:
        for index in self._line_starts(block):
            self._columns[index] = self._tokens[index].column + delta

    def _closes_cleanly(self, block: LayoutBlock, target: int) -> bool:
        """The block ends its line and the next line stays left of ``target``."""
        after_index = self._index[block.last_token.offset] + 1
        after = self._tokens[after_index]
        if after.kind is TokenKind.EOF:
            return True
        if not after.line_start:
            return False
        column = self._new_column(after_index)
        return column < target or (column == target and after.is_keyword("where"))

    def _plan_shift(self, block: LayoutBlock, enclosing: Tuple[int, ...]) -> Optional[int]:
        """Delta that moves ``block`` to its target column, or None when unsafe."""
        first = block.first_token
        if not first.line_start:
            return None
        if not all(self._tokens[i].reindentable for i in self._line_starts(block)):
            return None
        opener_index = self._index[block.opener.offset]
        if self._tokens[opener_index + 1] is not first:
            return None
        target = self._new_column(self._line_start_of(opener_index)) + self._width
        if enclosing and target <= enclosing[-1]:
            return None
        if not self._closes_cleanly(block, target):
            return None
        return target - block.column

    def _line_start_of(self, index: int) -> int:
        while index > 0 and not (self._tokens[index].line_start or index in self._breaks):
            index -= 1
        return index

    # ------------------------------------------------------------------
    # where placement
    # ------------------------------------------------------------------

    def _where(self, clause: FunctionClause, enclosing: Tuple[int, ...]) -> None:
        where = clause.where
        assert where is not None
        keyword, bindings = where.keyword, where.block
        keyword_index = self._index[keyword.offset]
        first_index = self._index[bindings.first_token.offset]

        item_column = self._new_column(self._index[clause.first_token.offset])
        where_column = item_column + self._width
        binding_column = where_column + self._width

        if self._where_movable(clause, keyword, keyword_index, where_column) \
                and self._plan_shift_bindings(bindings, binding_column):
            self._columns[keyword_index] = where_column
            if not keyword.line_start:
                self._breaks.add(keyword_index)
            self._assign(bindings, binding_column - bindings.column)
            self._columns[first_index] = binding_column
            if not bindings.first_token.line_start:
                self._breaks.add(first_index)
            moved = (
                not keyword.line_start
                or keyword.column != where_column
                or not bindings.first_token.line_start
                or bindings.first_token.column != binding_column
            )
            if moved:
                self.fixed(
                    "where-placement", DiagnosticKind.WHERE_PLACEMENT,
                    "Place 'where' on its own line, indented one level from its equation",
                    keyword.span,
                )
            inner = enclosing + (binding_column,)
            for item in bindings.items:
                self._visit(item, inner)
            return
        self._block(bindings, enclosing)

    def _where_movable(self, clause: FunctionClause, keyword: Token, keyword_index: int, where_column: int) -> bool:
        if keyword.line_start and not keyword.reindentable:
            return False
        if not keyword.line_start and keyword.leading.has_directive:
            return False
        for node in walk(clause.equation):
            if not isinstance(node, LayoutBlock):
                continue
            if self._index[node.last_token.offset] != keyword_index - 1:
                continue
            if self._new_column(self._index[node.first_token.offset]) < where_column:
                return False
        return True

    def _plan_shift_bindings(self, bindings: LayoutBlock, binding_column: int) -> bool:
        first = bindings.first_token
        if first.line_start and not first.reindentable:
            return False
        if not first.line_start and (first.leading.has_directive or bindings.block_kind is not BlockKind.WHERE):
            return False
        others = [i for i in self._line_starts(bindings) if self._tokens[i] is not first]
        if not all(self._tokens[i].reindentable for i in others):
            return False
        return self._closes_cleanly(bindings, binding_column)

    # ------------------------------------------------------------------
    # Provisional where column
    # ------------------------------------------------------------------

    def _snapshot(self) -> Tuple[Dict[int, int], Set[int], int, dict]:
        return dict(self._columns), set(self._breaks), len(self.diagnostics), dict(self.statistics)

    def _restore(self, snapshot: Tuple[Dict[int, int], Set[int], int, dict]) -> None:
        columns, breaks, diagnostic_count, statistics = snapshot
        self._columns = columns
        self._breaks = breaks
        del self.diagnostics[diagnostic_count:]
        self.statistics = statistics

    def _provisional_where(self, clause: FunctionClause) -> bool:
        """Put a line-start ``where`` at its target column before planning the equation.

        Blocks that end just before the ``where`` may then move left to meet it.
        """
        assert clause.where is not None
        keyword = clause.where.keyword
        if not keyword.line_start or not keyword.reindentable:
            return False
        item_column = self._new_column(self._index[clause.first_token.offset])
        self._columns[self._index[keyword.offset]] = item_column + self._width
        return True

    def _where_ready(self, clause: FunctionClause) -> bool:
        assert clause.where is not None
        keyword = clause.where.keyword
        keyword_index = self._index[keyword.offset]
        where_column = self._columns[keyword_index]
        return self._where_movable(clause, keyword, keyword_index, where_column) \
            and self._plan_shift_bindings(clause.where.block, where_column + self._width)
