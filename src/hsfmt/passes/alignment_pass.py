# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Alignment pass.

Chooses between the one-line and the multi-line form for export lists,
import lists, record bodies, sum types, top-level type signatures and
over-long top-level equations. The one-line form wins whenever it fits the
line budget, carries no comments and the source did not already spread
several items over several lines. Constructs whose comments cannot be
placed in either form keep their source layout.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from ..cst import (
    Constructor,
    DataDecl,
    FunctionClause,
    ImportDecl,
    ImportGroup,
    ItemList,
    ListLayout,
    Module,
    ModuleHeader,
    Node,
    NodeKind,
    RecordBody,
    RhsLayout,
    RhsStyle,
    TypeSignature,
)
from ..diagnostics import DiagnosticKind
from ..formatting_visitor import RulePass
from ..layout import is_closing, is_opening
from ..renderer import (
    application_terms,
    clean_inside,
    constructor_single_text,
    data_single_text,
    deriving_text,
    flat_join,
    operator_chunks,
    chain_operator_set,
    own_line_only,
    signature_segments,
    signature_single_text,
    single_list_text,
    spans_lines,
)
from ..tokens import Token, TokenKind

logger = logging.getLogger(__name__)


def _has_comments(tokens: Sequence[Token]) -> bool:
    return any(token.leading.has_comments or token.trailing.has_comments for token in tokens)


def _depth0(tokens: Sequence[Token]) -> List[Token]:
    result = []
    depth = 0
    for token in tokens:
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0:
            result.append(token)
    return result


class AlignmentPass(RulePass):
    """Decides single-line or aligned multi-line layout per construct."""

    name = "alignment"
    touches = frozenset({
        NodeKind.EXPORT_LIST, NodeKind.IMPORT_LIST, NodeKind.RECORD_BODY, NodeKind.DATA_DECL,
        NodeKind.CONSTRUCTOR, NodeKind.TYPE_SIGNATURE, NodeKind.FUNCTION_CLAUSE,
    })

    def apply(self, module: Module) -> Module:
        header = module.header
        if header is not None and header.exports is not None:
            self._current = header
            new_header = self._module_header(header)
            if new_header is not header:
                self._compare(module, header, new_header, "export-list", "Reflow export list")
                header = new_header

        imports = tuple(
            ImportGroup(tuple(self._import(decl) for decl in group.decls))
            for group in module.imports
        )

        declarations = []
        for declaration in module.declarations:
            self._current = declaration
            updated = declaration
            rule = ""
            if isinstance(declaration, DataDecl):
                updated = self._data(declaration)
                rule = "data-declaration"
            elif isinstance(declaration, TypeSignature):
                updated = self._signature(declaration)
                rule = "type-signature"
            elif isinstance(declaration, FunctionClause):
                updated = self._clause(declaration)
                rule = "long-equation"
            if updated is not declaration:
                self._compare(module, declaration, updated, rule, "Align layout")
            declarations.append(updated)

        return replace(module, header=header, imports=imports, declarations=tuple(declarations))

    def _compare(self, module: Module, before: Node, after: Node, rule: str, message: str) -> None:
        if isinstance(before, DataDecl) and isinstance(after, DataDecl):
            # deriving clauses are judged by the strictness-deriving pass
            before, after = replace(before, deriving=()), replace(after, deriving=())
        if self.rewrites_source(module, before, after):
            self.fixed(rule, DiagnosticKind.ALIGNMENT, f"{message} ({before.kind.value})", before.first_token.span)

    def _fits(self, column: int, text: str) -> bool:
        return column + len(text) <= self.config.max_line_length

    # ------------------------------------------------------------------
    # Item lists
    # ------------------------------------------------------------------

    def _list_representable(self, item_list: ItemList) -> bool:
        if item_list.has_trailing_comma:
            return False
        tokens = tuple(item_list.iter_tokens())
        if any(token.is_multiline for token in tokens):
            return False
        for item in item_list.items:
            item_tokens = tuple(item.iter_tokens())
            if not clean_inside(item_tokens) or not own_line_only(item_tokens[0].leading):
                return False
        return all(own_line_only(token.leading) for token in (item_list.open, item_list.close) + item_list.separators)

    def _list_layout(self, item_list: ItemList, prefix_width: int, suffix: str) -> Optional[ListLayout]:
        """Layout for a list whose text starts at ``prefix_width``."""
        if not self._list_representable(item_list):
            return None
        tokens = tuple(item_list.iter_tokens())
        comments = _has_comments(tokens)
        if not item_list.items:
            return None if comments else ListLayout.SINGLE_LINE
        source_multi = spans_lines(tokens) and len(item_list.items) > 1
        if not comments and not source_multi and self._fits(prefix_width, single_list_text(item_list) + suffix):
            return ListLayout.SINGLE_LINE
        return ListLayout.MULTI_LINE

    def _module_header(self, header: ModuleHeader) -> ModuleHeader:
        exports = header.exports
        assert exports is not None
        head = (header.keyword, header.name) + header.pragmas
        if not clean_inside(head + (exports.open,)) or head[-1].trailing.has_comments:
            return header
        if exports.close.trailing.has_comments or header.where_keyword.leading.has_comments:
            return header
        prefix = " ".join(token.text for token in head) + " "
        layout = self._list_layout(exports, header.keyword.column + len(prefix), " where")
        if layout is None or layout is exports.layout:
            return header
        return replace(header, exports=replace(exports, layout=layout))

    def _import(self, decl: ImportDecl) -> ImportDecl:
        import_list = decl.import_list
        if import_list is None:
            return decl
        if not clean_inside(decl.head) or decl.head[-1].trailing.has_comments:
            return decl
        if decl.tail and not clean_inside((import_list.close,) + decl.tail):
            return decl
        prefix = " ".join(token.text for token in decl.head) + " "
        suffix = " " + flat_join(decl.tail) if decl.tail else ""
        layout = self._list_layout(import_list, decl.first_token.column + len(prefix), suffix)
        if layout is None or layout is import_list.layout:
            return decl
        return replace(decl, import_list=replace(import_list, layout=layout))

    # ------------------------------------------------------------------
    # Data declarations
    # ------------------------------------------------------------------

    def _constructor_representable(self, constructor: Constructor) -> bool:
        if not own_line_only(constructor.first_token.leading):
            return False
        if constructor.record is None:
            return clean_inside(constructor.prefix + constructor.suffix)
        if constructor.suffix or not constructor.prefix:
            return False
        if not clean_inside(constructor.prefix) or constructor.prefix[-1].trailing.has_comments:
            return False
        return self._list_representable(constructor.record)

    def _data_representable(self, decl: DataDecl) -> bool:
        tokens = tuple(decl.iter_tokens())
        if any(token.is_multiline for token in tokens):
            return False
        head = (decl.keyword,) + decl.head
        if not clean_inside(head) or head[-1].trailing.has_comments:
            return False
        if not all(own_line_only(leader.leading) for leader in decl.leaders):
            return False
        if not all(self._constructor_representable(c) for c in decl.constructors):
            return False
        for clause in decl.deriving:
            if not clean_inside(tuple(clause.iter_tokens())) or not own_line_only(clause.keyword.leading):
                return False
        return True

    def _record_widths(self, record: RecordBody) -> Tuple[int, ...]:
        """Name column width per field; groups restart after a blank line."""
        if not self.config.alignment.record_fields:
            return ()
        groups: List[List[int]] = []
        for index, item in enumerate(record.items):
            leader = record.leaders[index]
            blank = leader.leading.blank_lines > 0 or item.first_token.leading.blank_lines > 0
            if not groups or blank:
                groups.append([])
            groups[-1].append(len(flat_join(item.names)))  # type: ignore[attr-defined]
        widths: List[int] = []
        for group in groups:
            widths.extend([max(group)] * len(group))
        return tuple(widths)

    def _record(self, record: RecordBody, layout: ListLayout) -> RecordBody:
        if layout is ListLayout.SINGLE_LINE:
            return replace(record, layout=layout)
        return replace(record, layout=layout, name_widths=self._record_widths(record))

    def _data(self, decl: DataDecl) -> DataDecl:
        if not self._data_representable(decl):
            return decl
        tokens = tuple(decl.iter_tokens())
        comments = not clean_inside(tokens) or decl.last_token.trailing.has_comments
        split_deriving = len(decl.deriving) > 1
        inline_deriving = "" if split_deriving else "".join(
            " " + deriving_text(replace(clause, parenthesize=True)) for clause in decl.deriving
        )
        single = data_single_text(decl) + inline_deriving
        column = decl.first_token.column

        if decl.single_record:
            record = decl.constructors[0].record
            assert record is not None
            body_tokens = tuple(record.iter_tokens())
            items = len(record.items)
        else:
            body_tokens = (decl.equals,) + tuple(t for c in decl.constructors for t in c.iter_tokens())
            items = len(decl.constructors)
        source_multi = spans_lines(body_tokens) and items > 1

        if not comments and not source_multi and self._fits(column, single):
            constructors = tuple(
                replace(c, record=self._record(c.record, ListLayout.SINGLE_LINE)) if c.record is not None else c
                for c in decl.constructors
            )
            layout = ListLayout.SINGLE_LINE
        elif decl.single_record:
            constructor = decl.constructors[0]
            record = constructor.record
            assert record is not None
            if not record.items:
                return decl
            constructors = (replace(constructor, record=self._record(record, ListLayout.MULTI_LINE)),)
            layout = ListLayout.MULTI_LINE
        else:
            constructors = tuple(self._sum_constructor(c, column) for c in decl.constructors)
            layout = ListLayout.MULTI_LINE
        updated = replace(decl, constructors=constructors, layout=layout)
        return decl if updated == decl else updated

    def _sum_constructor(self, constructor: Constructor, column: int) -> Constructor:
        record = constructor.record
        if record is None:
            return constructor
        tokens = tuple(record.iter_tokens())
        line = " " * self.config.indent_width + "| " + constructor_single_text(constructor)
        one_line = (
            record.items
            and not _has_comments(tokens)
            and not (spans_lines(tokens) and len(record.items) > 1)
            and self._fits(column, line)
        )
        if one_line or not record.items:
            return replace(constructor, record=self._record(record, ListLayout.SINGLE_LINE))
        return replace(constructor, record=self._record(record, ListLayout.MULTI_LINE))

    # ------------------------------------------------------------------
    # Type signatures
    # ------------------------------------------------------------------

    def _signature(self, signature: TypeSignature) -> TypeSignature:
        tokens = tuple(signature.iter_tokens())
        if any(token.is_multiline for token in tokens):
            return signature
        segments = signature_segments(signature)
        column = signature.first_token.column
        comments = not clean_inside(tokens)
        source_multi = spans_lines(tokens) and len(segments) > 1
        if not comments and not source_multi and self._fits(column, signature_single_text(signature)):
            layout = ListLayout.SINGLE_LINE
        elif self._signature_multi_representable(signature, segments):
            layout = ListLayout.MULTI_LINE
        else:
            return signature
        if layout is signature.layout:
            return signature
        return replace(signature, layout=layout)

    def _signature_multi_representable(
        self, signature: TypeSignature, segments: List[Tuple[Token, Tuple[Token, ...]]],
    ) -> bool:
        if not clean_inside(signature.names) or signature.names[-1].trailing.has_comments:
            return False
        for leader, tokens in segments:
            if not tokens or not own_line_only(leader.leading) or leader.trailing.has_comments:
                return False
            if not clean_inside(tokens) or tokens[0].leading.has_comments:
                return False
        return True

    # ------------------------------------------------------------------
    # Over-long equations
    # ------------------------------------------------------------------

    def _clause(self, clause: FunctionClause) -> FunctionClause:
        equation = clause.equation
        if clause.where is not None or equation.equals is None or equation.guards:
            return clause
        if not all(isinstance(segment, Token) for segment in equation.lhs + equation.body):
            return clause
        tokens = tuple(clause.iter_tokens())
        if spans_lines(tokens) or not clean_inside(tokens):
            return clause
        column = clause.first_token.column
        head = flat_join(equation.lhs_tokens() + (equation.equals,))
        if self._fits(column, flat_join(tokens)):
            return clause
        body: Tuple[Token, ...] = equation.body  # type: ignore[assignment]
        layout = self._rhs_layout(body, column, head)
        if layout is None:
            return clause
        logger.debug("Splitting long equation at line %d (%s)", clause.first_token.line + 1, layout.style.value)
        return replace(clause, rhs_layout=layout)

    def _rhs_layout(self, body: Tuple[Token, ...], column: int, head: str) -> Optional[RhsLayout]:
        top = _depth0(body)
        if any(t.kind in (TokenKind.RESERVED_ID, TokenKind.RESERVED_OP) for t in top):
            return None
        continuation = column + self.config.indent_width
        operators = [t for t in top if t.is_operator]
        if not operators:
            if any(t.is_special("`") for t in top) or len(application_terms(body)) < 2:
                return None
            return RhsLayout(RhsStyle.APPLICATION, continuation)

        previous: Optional[Token] = None
        for token in top:
            if token.text == "-" and (previous is None or previous.is_operator):
                return None
            previous = token
        chunks = operator_chunks(body, chain_operator_set(body))
        if len(chunks) < 2:
            return None
        if self.config.alignment.operator_chains == "aligned" and len(chunks) > 2:
            return RhsLayout(RhsStyle.OPERATORS, column + len(head) + len(flat_join(chunks[0])) + 2)
        return RhsLayout(RhsStyle.OPERATORS, continuation)
