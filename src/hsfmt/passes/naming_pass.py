# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Naming pass: advisory only, the tree is returned unchanged."""

from __future__ import annotations

from ..cst import Module, NodeKind
from ..formatting_visitor import RulePass
from ..naming import naming_diagnostics


class NamingPass(RulePass):
    name = "naming"
    touches = frozenset({
        NodeKind.TYPE_SIGNATURE, NodeKind.FUNCTION_CLAUSE, NodeKind.DATA_DECL,
        NodeKind.CONSTRUCTOR, NodeKind.RECORD_FIELD,
    })

    def apply(self, module: Module) -> Module:
        self.diagnostics.extend(naming_diagnostics(module, self.config))
        return module
