# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Import and export ordering pass.

Imports are split into external and intra-project groups (in the order
``import_group_order`` names), sorted by module path inside each group and
separated by exactly one blank line. Comments travel with the import they
precede. Export lists are never reordered; their layout belongs to the
alignment pass.

The advisory checks on imports and exports live here as plain functions so
the linter can run them without rewriting anything.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Tuple

from ..cst import ImportDecl, ImportGroup, Module, NodeKind
from ..diagnostics import Diagnostic, DiagnosticKind
from ..formatting_rules_model import FormatConfig
from ..formatting_visitor import RulePass
from ..renderer import render
from ..tokens import TriviaKind

logger = logging.getLogger(__name__)


def module_root(name: str) -> str:
    return name.split(".", 1)[0]


def is_local_import(decl: ImportDecl, module: Module, config: FormatConfig) -> bool:
    """Whether ``decl`` imports a module of the same project."""
    name = decl.module_name
    current = module.module_name
    if current and current != "Main" and module_root(name) == module_root(current):
        return True
    return any(name == prefix or name.startswith(prefix + ".") for prefix in config.local_module_prefixes)


def import_sort_key(decl: ImportDecl) -> Tuple[str, bool, str]:
    return (decl.module_name, decl.is_qualified, decl.normalized_text())


def is_pure_reexport(module: Module) -> bool:
    """A module with no declarations whose exports are all ``module M`` items."""
    header = module.header
    if header is None or header.exports is None or module.declarations:
        return False
    items = header.exports.items
    return bool(items) and all(item.first_token.text == "module" for item in items)


def import_advisories(module: Module, config: FormatConfig) -> List[Diagnostic]:
    """MissingExportList, MissingImportList and LargeUnqualifiedImport findings."""
    found: List[Diagnostic] = []
    header = module.header
    if header is not None and header.exports is None:
        found.append(Diagnostic.create(
            DiagnosticKind.MISSING_EXPORT_LIST,
            f"Module '{header.name.text}' has no explicit export list",
            header.name.span,
        ))
    reexport = is_pure_reexport(module)
    for decl in module.import_decls:
        if decl.is_qualified:
            continue
        if decl.import_list is None:
            if not reexport:
                found.append(Diagnostic.create(
                    DiagnosticKind.MISSING_IMPORT_LIST,
                    f"Unqualified import of '{decl.module_name}' has no explicit import list",
                    decl.span,
                ))
            continue
        count = len(decl.import_list.items)
        if not decl.is_hiding and count >= config.qualification_threshold:
            found.append(Diagnostic.create(
                DiagnosticKind.LARGE_UNQUALIFIED_IMPORT,
                f"Import of '{decl.module_name}' exposes {count} names; consider a qualified import",
                decl.span,
            ))
    return [d for d in found if config.check_enabled(d.check)]


def _prefix_is_movable(decl: ImportDecl) -> bool:
    """Trivia before the first import can be re-emitted from its comment lines."""
    leading = decl.first_token.leading
    if any(piece.kind is TriviaKind.BOM for piece in leading.pieces):
        return False
    return not any(piece.is_comment for piece in leading.lines()[0])


class ImportOrderPass(RulePass):
    """Groups, sorts and re-spaces the import block."""

    name = "import-order"
    touches = frozenset({NodeKind.IMPORT_GROUP, NodeKind.IMPORT_DECL, NodeKind.EXPORT_LIST})

    def apply(self, module: Module) -> Module:
        self.diagnostics.extend(import_advisories(module, self.config))
        decls = module.import_decls
        if not decls:
            return module
        if not module.imports_reorderable:
            logger.debug("Imports separated by preprocessor directives; order kept")
            return module
        source_first = min(decls, key=lambda decl: decl.first_token.offset)
        if not _prefix_is_movable(source_first):
            return module

        groups = self._grouped(module, decls)
        normalized = replace(module, imports=groups, imports_normalized=True)

        before = [[decl.first_token.offset for decl in group.decls] for group in module.imports]
        after = [[decl.first_token.offset for decl in group.decls] for group in groups]
        self._current = decls[0]
        if before != after and not module.imports_normalized:
            self.fixed(
                "import-order", DiagnosticKind.IMPORT_ORDER,
                "Group imports (external, then local) and sort them by module name",
                decls[0].span,
            )
            self.count("imports-sorted", len(decls))
        elif render(module, self.config).text != render(normalized, self.config).text:
            self.fixed(
                "import-spacing", DiagnosticKind.IMPORT_SPACING,
                "Normalise spacing in the import block",
                decls[0].span,
            )
        return normalized

    def _grouped(self, module: Module, decls: Tuple[ImportDecl, ...]) -> Tuple[ImportGroup, ...]:
        buckets: Dict[str, List[ImportDecl]] = {"external": [], "local": []}
        for decl in decls:
            bucket = "local" if is_local_import(decl, module, self.config) else "external"
            buckets[bucket].append(decl)
        order = list(self.config.import_group_order)
        for name in ("external", "local"):
            if name not in order:
                order.append(name)
        return tuple(
            ImportGroup(tuple(sorted(buckets[name], key=import_sort_key)))
            for name in order
            if buckets[name]
        )
