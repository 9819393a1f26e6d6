# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Strictness and deriving normalisation pass.

Record fields without a ``!``/``~`` annotation are reported, never changed:
adding a bang changes what the program means. Deriving clauses are
rewritten to parenthesised class lists; several clauses go one per line
with their class lists aligned.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List

from ..cst import DataDecl, DerivingLayout, ListLayout, Module, NodeKind
from ..diagnostics import Diagnostic, DiagnosticKind
from ..formatting_rules_model import FormatConfig
from ..formatting_visitor import RulePass, tokens_source
from ..renderer import deriving_prefix, flat_join


def data_decls(module: Module) -> List[DataDecl]:
    return [decl for decl in module.declarations if isinstance(decl, DataDecl)]


def strictness_findings(module: Module, config: FormatConfig) -> List[Diagnostic]:
    """MissingStrictnessAnnotation for every lazy record field."""
    if not config.check_enabled("missing-strictness"):
        return []
    found = []
    for decl in data_decls(module):
        if decl.is_newtype:
            continue
        for constructor in decl.constructors:
            if constructor.record is None:
                continue
            for record_field in constructor.record.items:
                if record_field.is_strict:  # type: ignore[attr-defined]
                    continue
                names = flat_join(record_field.names)  # type: ignore[attr-defined]
                found.append(Diagnostic.create(
                    DiagnosticKind.MISSING_STRICTNESS_ANNOTATION,
                    f"Record field '{names}' has no strictness annotation",
                    record_field.span,
                ))
    return found


def duplicate_derive_findings(module: Module, config: FormatConfig) -> List[Diagnostic]:
    """UnnecessaryDerive for a class derived more than once on one type."""
    if not config.check_enabled("unnecessary-derive"):
        return []
    found = []
    for decl in data_decls(module):
        seen = set()
        for clause in decl.deriving:
            for name in clause.class_names:
                if name.text in seen:
                    found.append(Diagnostic.create(
                        DiagnosticKind.UNNECESSARY_DERIVE,
                        f"'{name.text}' is already derived for this type",
                        name.span,
                    ))
                seen.add(name.text)
    return found


class StrictnessDerivingPass(RulePass):
    """Reports lazy record fields and normalises deriving clauses."""

    name = "strictness-deriving"
    touches = frozenset({NodeKind.RECORD_FIELD, NodeKind.DERIVING_CLAUSE, NodeKind.DATA_DECL})

    def apply(self, module: Module) -> Module:
        self.diagnostics.extend(strictness_findings(module, self.config))
        self.diagnostics.extend(duplicate_derive_findings(module, self.config))

        declarations = []
        for declaration in module.declarations:
            if isinstance(declaration, DataDecl) and declaration.deriving and declaration.layout is not None:
                self._current = declaration
                updated = self._deriving(declaration)
                if self._deriving_rewritten(module, declaration, updated):
                    self.fixed(
                        "deriving", DiagnosticKind.DERIVING_FORMAT,
                        "Parenthesise deriving clauses and put several clauses on their own lines",
                        declaration.deriving[0].span,
                    )
                declaration = updated
            declarations.append(declaration)
        return replace(module, declarations=tuple(declarations))

    def _deriving(self, decl: DataDecl) -> DataDecl:
        clauses = tuple(replace(clause, parenthesize=True) for clause in decl.deriving)
        own_lines = len(clauses) > 1 or decl.layout is ListLayout.MULTI_LINE
        width = 0
        if own_lines and self.config.alignment.deriving_strategies:
            width = max(len(deriving_prefix(clause)) for clause in clauses)
        return replace(decl, deriving=clauses, deriving_layout=DerivingLayout(own_lines, width))

    def _deriving_rewritten(self, module: Module, before: DataDecl, after: DataDecl) -> bool:
        rendered = self._deriving_fragment(module, after)
        if rendered == self._deriving_fragment(module, before):
            return False
        return rendered != deriving_source(before)

    def _deriving_fragment(self, module: Module, decl: DataDecl) -> str:
        """Rendered text from the end of the last constructor on."""
        body = self.fragment(module, replace(decl, deriving=()))
        return self.fragment(module, decl)[len(body):]


def deriving_source(decl: DataDecl) -> str:
    tokens = tuple(token for clause in decl.deriving for token in clause.iter_tokens())
    return decl.deriving[0].keyword.leading.text + tokens_source(tokens)
