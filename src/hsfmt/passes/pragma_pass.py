# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Pragma placement pass.

Header pragmas are regrouped into an OPTIONS_GHC block, a LANGUAGE block
sorted by extension and aligned on the closing ``#-}``, and a block for
everything else, with one blank line between blocks. Per-declaration
pragmas (INLINE and friends) move directly after the last signature or
clause of the binder they name.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from ..cst import FunctionClause, Module, Node, NodeKind, Pragma, TypeSignature
from ..diagnostics import DiagnosticKind
from ..formatting_visitor import RulePass
from ..renderer import Renderer, own_line_only, pragma_block_index

logger = logging.getLogger(__name__)


def pragma_sort_key(pragma: Pragma) -> Tuple[int, str]:
    block = pragma_block_index(pragma)
    if block == 1 and pragma.extensions:
        return block, pragma.extensions[0]
    return block, ""


def binder_names(node: Node) -> Tuple[str, ...]:
    """Names a top-level signature or clause defines."""
    if isinstance(node, TypeSignature):
        return node.binder_names
    if isinstance(node, FunctionClause) and node.binder is not None:
        return (node.binder.text,)
    return ()


class PragmaPass(RulePass):
    """Orders header pragmas and pins binder pragmas to their declarations."""

    name = "pragma-placement"
    touches = frozenset({NodeKind.PRAGMA})

    def apply(self, module: Module) -> Module:
        module = self._header_pragmas(module)
        return self._binder_pragmas(module)

    def _renderer(self, module: Module) -> Renderer:
        return Renderer(self.config, module.newline, module.placements)

    # ------------------------------------------------------------------
    # Header pragmas
    # ------------------------------------------------------------------

    def _header_pragmas(self, module: Module) -> Module:
        pragmas = module.header_pragmas
        if not pragmas or module.pragmas_normalized:
            return module
        if not all(own_line_only(pragma.token.leading) for pragma in pragmas[1:]):
            logger.debug("Header pragmas interleaved with comments or directives; order kept")
            return module
        ordered = tuple(sorted(pragmas, key=pragma_sort_key))
        before = self._renderer(module).render_header_pragmas(pragmas, normalized=False)
        after = self._renderer(module).render_header_pragmas(ordered, normalized=True)
        if before != after:
            self._current = pragmas[0]
            reordered = ordered != pragmas
            message = (
                "Order header pragmas: OPTIONS_GHC, then LANGUAGE sorted by extension"
                if reordered else "Normalise header pragma spacing and alignment"
            )
            self.fixed("header-pragmas", DiagnosticKind.PRAGMA_ORDER, message, pragmas[0].token.span)
        return replace(module, header_pragmas=ordered, pragmas_normalized=True)

    # ------------------------------------------------------------------
    # Per-declaration pragmas
    # ------------------------------------------------------------------

    def _movable(self, pragma: Pragma, owners: Dict[str, int]) -> Optional[str]:
        target = pragma.target
        if target is None or target not in owners:
            return None
        if pragma.token.column != 0 or pragma.token.leading.has_directive:
            return None
        if not pragma.token.leading.has_newline:
            return None
        return target

    def _binder_pragmas(self, module: Module) -> Module:
        declarations = module.declarations
        if not declarations or any(decl.first_token.column != 0 for decl in declarations):
            return module

        owners: Dict[str, int] = {}
        for index, decl in enumerate(declarations):
            for name in binder_names(decl):
                owners[name] = index

        pinned: Dict[int, List[Pragma]] = {}
        kept: List[Tuple[int, Node]] = []
        for index, decl in enumerate(declarations):
            target = self._movable(decl, owners) if isinstance(decl, Pragma) else None
            if target is None:
                kept.append((index, decl))
                continue
            pinned.setdefault(owners[target], []).append(decl)  # type: ignore[arg-type]

        if not pinned:
            return module

        result: List[Node] = []
        for index, decl in kept:
            result.append(decl)
            for pragma in pinned.get(index, ()):
                result.append(replace(pragma, pinned=True))

        previous_offsets = {
            decl.first_token.offset: declarations[index - 1].first_token.offset if index else None
            for index, decl in enumerate(declarations)
        }
        for position, node in enumerate(result):
            if not isinstance(node, Pragma) or not node.pinned:
                continue
            self._current = node
            original = replace(node, pinned=False)
            moved = previous_offsets[node.token.offset] != result[position - 1].first_token.offset
            respaced = self.fragment(module, node) != self.fragment(module, original)
            if moved or respaced or node.token.leading.blank_lines > 0:
                self.fixed(
                    "binder-pragmas", DiagnosticKind.PRAGMA_PLACEMENT,
                    f"Place {node.name} pragma directly after the declaration of '{node.target}'",
                    node.token.span,
                )
        return replace(module, declarations=tuple(result))
