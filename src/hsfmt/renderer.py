# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Renderer: emits text for a (possibly rewritten) Module.

Nodes carrying a layout decision are written in their normalized shape;
everything else is written verbatim from its tokens and trivia, shifted by
any line placements the indentation pass recorded. Comments are always
kept: own-line comments are re-indented with their construct and
end-of-line comments get at least two spaces before them. The renderer
never fails; over-long lines are reported as LongLine advisories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .cst import (
    Constructor,
    DataDecl,
    DerivingClause,
    DerivingLayout,
    FunctionClause,
    ImportDecl,
    ItemList,
    ListLayout,
    Module,
    ModuleHeader,
    Node,
    Placement,
    Pragma,
    RecordBody,
    RecordField,
    RhsStyle,
    TypeSignature,
)
from .diagnostics import Diagnostic, DiagnosticKind
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .layout import is_closing, is_opening
from .line_formatting_visitors import LineFormattingVisitor
from .tokens import LineIndex, TextSpan, Token, TokenKind, Trivia, TriviaKind, TriviaPiece, visual_width

logger = logging.getLogger(__name__)

EOL_COMMENT_SPACING = 2

SIGNATURE_ARROWS = ("->", "→", "=>", "⇒")

CHAIN_OPERATORS = frozenset({"<$>", "<*>", "<*", "*>", ">>=", "=<<", ">>", "<|>", "$", ".", "<>"})


# =============================================================================
# Flat text helpers (shared with the alignment pass)
# =============================================================================

def has_gap(previous: Token, token: Token) -> bool:
    """Whether the source had any trivia between two adjacent tokens."""
    return bool(previous.trailing.pieces) or bool(token.leading.pieces)


def flat_join(tokens: Sequence[Token]) -> str:
    """Single-line text of ``tokens``.

    Existing gaps become exactly one space, adjacent tokens stay adjacent,
    and a comma is always followed by a space.
    """
    parts: List[str] = []
    previous: Optional[Token] = None
    for token in tokens:
        if previous is not None and (has_gap(previous, token) or previous.is_special(",")):
            parts.append(" ")
        parts.append(token.text)
        previous = token
    return "".join(parts)


def piece_span(piece: TriviaPiece) -> TextSpan:
    return TextSpan(piece.offset, piece.offset + len(piece.text), piece.line, piece.column)


def comment_text(pieces: Sequence[TriviaPiece]) -> str:
    return " ".join(piece.text for piece in pieces)


def own_line_only(trivia: Trivia) -> bool:
    """Comments, if any, sit on lines of their own and there are no directives.

    Line-start trivia qualifies; trivia of a token preceded by other tokens
    on its line must have no comments at all.
    """
    if trivia.has_directive:
        return False
    segments = trivia.lines()
    if len(segments) == 1:
        return not trivia.has_comments
    if any(piece.is_comment for piece in segments[-1]):
        return False
    return True


def clean_inside(tokens: Sequence[Token]) -> bool:
    """No comments, directives or multi-line tokens between the first and last token."""
    for index, token in enumerate(tokens):
        if token.is_multiline:
            return False
        if index > 0 and (token.leading.has_comments or token.leading.has_directive):
            return False
        if index < len(tokens) - 1 and token.trailing.has_comments:
            return False
    return True


def clean_all(tokens: Sequence[Token]) -> bool:
    """``clean_inside`` plus no comments before the first or after the last token."""
    if not tokens or not clean_inside(tokens):
        return False
    return not tokens[-1].trailing.has_comments and not tokens[0].leading.has_comments


def spans_lines(tokens: Sequence[Token]) -> bool:
    return bool(tokens) and tokens[0].line != tokens[-1].end_line


def item_text(item: Node) -> str:
    if isinstance(item, RecordField):
        return field_text(item)
    return flat_join(tuple(item.iter_tokens()))


def field_text(record_field: RecordField, name_width: int = 0) -> str:
    names = flat_join(record_field.names)
    if name_width:
        names = names.ljust(name_width)
    return f"{names} :: {flat_join(record_field.type_tokens)}"


def single_list_text(item_list: ItemList) -> str:
    """One-line rendering of a list: ``(a, b)`` or ``{ a :: A, b :: B }``."""
    inner = ", ".join(item_text(item) for item in item_list.items)
    if isinstance(item_list, RecordBody):
        return f"{{ {inner} }}" if inner else "{}"
    return f"{item_list.open.text}{inner}{item_list.close.text}"


def constructor_single_text(constructor: Constructor) -> str:
    text = flat_join(constructor.prefix)
    if constructor.record is not None:
        text += " " + single_list_text(constructor.record)
    if constructor.suffix:
        text += " " + flat_join(constructor.suffix)
    return text


def deriving_prefix(clause: DerivingClause) -> str:
    if clause.strategy is not None:
        return f"{clause.keyword.text} {clause.strategy.text}"
    return clause.keyword.text


def deriving_text(clause: DerivingClause, prefix_width: int = 0) -> str:
    prefix = deriving_prefix(clause)
    if prefix_width:
        prefix = prefix.ljust(prefix_width)
    classes = flat_join(clause.classes)
    if clause.parenthesize and not clause.is_parenthesized:
        classes = f"({classes})"
    text = f"{prefix} {classes}"
    if clause.via:
        text += " " + flat_join(clause.via)
    return text


def signature_single_text(signature: TypeSignature) -> str:
    return f"{flat_join(signature.names)} :: {flat_join(signature.type_tokens)}"


def signature_segments(signature: TypeSignature) -> List[Tuple[Token, Tuple[Token, ...]]]:
    """Split a signature into (leader, tokens) at depth-0 ``=>`` and ``->``."""
    segments: List[Tuple[Token, List[Token]]] = [(signature.colons, [])]
    depth = 0
    for token in signature.type_tokens:
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0 and token.is_reserved_op(*SIGNATURE_ARROWS):
            segments.append((token, []))
            continue
        segments[-1][1].append(token)
    return [(leader, tuple(tokens)) for leader, tokens in segments]


def data_head_text(decl: DataDecl) -> str:
    return f"{decl.keyword.text} {flat_join(decl.head)}"


def data_single_text(decl: DataDecl) -> str:
    constructors = " | ".join(constructor_single_text(c) for c in decl.constructors)
    return f"{data_head_text(decl)} = {constructors}"


def application_terms(tokens: Sequence[Token]) -> List[Tuple[Token, ...]]:
    """Split an application into its function and argument terms.

    A new term starts at a bracket-depth-0 token that had whitespace before
    it; bracketed groups and adjacent tokens stay in one term.
    """
    terms: List[List[Token]] = []
    depth = 0
    previous: Optional[Token] = None
    for token in tokens:
        starts_term = depth == 0 and (previous is None or has_gap(previous, token)) and not is_closing(token)
        if starts_term:
            terms.append([])
        terms[-1].append(token)
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        previous = token
    return [tuple(term) for term in terms]


def operator_chunks(tokens: Sequence[Token], operators: frozenset) -> List[Tuple[Token, ...]]:
    """Split before each bracket-depth-0 operator in ``operators`` that had a space before it."""
    chunks: List[List[Token]] = [[]]
    depth = 0
    previous: Optional[Token] = None
    for token in tokens:
        if depth == 0 and previous is not None and token.text in operators and token.is_operator \
                and has_gap(previous, token):
            chunks.append([])
        chunks[-1].append(token)
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        previous = token
    return [tuple(chunk) for chunk in chunks]


def language_pragma_text(pragma: Pragma, width: int = 0) -> str:
    """``{-# LANGUAGE A, B #-}`` with the closing delimiter padded to ``width``."""
    name = pragma.words[0] if pragma.words else "LANGUAGE"
    text = f"{{-# {name} {', '.join(pragma.extensions)}"
    return f"{text.ljust(width)} #-}}"


def pragma_text(pragma: Pragma) -> str:
    """Whitespace-normalised pragma text; multi-line pragmas are left alone."""
    if pragma.token.is_multiline:
        return pragma.token.text
    if pragma.name == "LANGUAGE" and pragma.extensions:
        return language_pragma_text(pragma)
    return "{-# " + " ".join(pragma.words) + " #-}"


# =============================================================================
# Output buffer
# =============================================================================

class _Writer:
    """Accumulates output text and tracks the current column."""

    def __init__(self, newline: str):
        self.newline_text = newline
        self.parts: List[str] = []
        self.length = 0
        self.column = 0
        self.protected: List[Tuple[int, int]] = []

    def write(self, text: str, protect: bool = False) -> None:
        if not text:
            return
        if protect and "\n" in text:
            self.protected.append((self.length, self.length + len(text)))
        self.parts.append(text)
        self.length += len(text)
        last_newline = text.rfind("\n")
        if last_newline >= 0:
            self.column = visual_width(text[last_newline + 1:])
        else:
            self.column = visual_width(text, self.column)

    def newline(self) -> None:
        self.write(self.newline_text)

    def newline_if_started(self) -> None:
        if self.length:
            self.newline()

    def spaces(self, count: int) -> None:
        if count > 0:
            self.write(" " * count)

    def text(self) -> str:
        return "".join(self.parts)


@dataclass(frozen=True)
class RenderResult:
    text: str
    diagnostics: Tuple[Diagnostic, ...] = ()
    protected: Tuple[Tuple[int, int], ...] = field(default=())


# =============================================================================
# Renderer
# =============================================================================

class Renderer:
    """Writes a Module (or one of its top-level nodes) back to text."""

    def __init__(
        self,
        config: FormatConfig = DEFAULT_CONFIG,
        newline: str = "\n",
        placements: Optional[Mapping[int, Placement]] = None,
    ):
        self.config = config
        self.indent = config.indent_width
        self.placements: Mapping[int, Placement] = placements or {}
        self.out = _Writer(newline)
        self.diagnostics: List[Diagnostic] = []

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def render_module(self, module: Module) -> RenderResult:
        if module.header_pragmas:
            if module.pragmas_normalized:
                self._header_pragmas(module.header_pragmas)
            else:
                for pragma in module.header_pragmas:
                    self._verbatim((pragma.token,))
        if module.header is not None:
            self._module_header(module.header)
        if module.imports:
            if module.imports_normalized:
                self._import_block(module)
            else:
                for decl in module.import_decls:
                    self._verbatim(tuple(decl.iter_tokens()))
        for declaration in module.declarations:
            self._declaration(declaration)
        self._leading(module.eof)

        raw = self.out.text()
        visitor = LineFormattingVisitor(raw, self.out.newline_text, self.out.protected)
        text = visitor.apply_edits()
        diagnostics = tuple(self.diagnostics) + long_line_diagnostics(text, self.config)
        return RenderResult(text=text, diagnostics=diagnostics, protected=tuple(self.out.protected))

    def render_fragment(self, node: Node) -> str:
        """Text of one top-level node without its leading trivia."""
        if isinstance(node, ModuleHeader):
            self._module_header(node, with_leading=False)
        elif isinstance(node, ImportDecl):
            self._import_decl(node)
        else:
            self._declaration(node, with_leading=False)
        return self.out.text()

    def render_verbatim(self, node: Node) -> str:
        self._verbatim(node.iter_tokens(), with_leading=False)
        return self.out.text()

    def render_header_pragmas(self, pragmas: Tuple[Pragma, ...], normalized: bool) -> str:
        """Text of the header pragma region, leading trivia of the first one excluded."""
        if normalized:
            self._header_pragmas(pragmas, with_prefix=False)
        else:
            self._verbatim((pragma.token for pragma in pragmas), with_leading=False)
        return self.out.text()

    # ------------------------------------------------------------------
    # Trivia
    # ------------------------------------------------------------------

    def _leading(self, token: Token) -> None:
        placement = self.placements.get(token.offset)
        if placement is not None and placement.break_before:
            for piece in token.leading.pieces:
                if piece.is_comment:
                    self.out.write(" " + piece.text, protect=True)
            self.out.newline()
            self.out.spaces(placement.column)
            return

        segments = token.leading.lines()
        if len(segments) == 1:
            for piece in segments[0]:
                self.out.write(piece.text, protect=piece.is_multiline)
            return

        delta = placement.column - token.column if placement is not None else 0
        for piece in segments[0]:
            self.out.write(piece.text, protect=piece.is_multiline)
        for segment in segments[1:-1]:
            self.out.newline()
            self._trivia_line(segment, delta, token_line=False)
        self.out.newline()
        self._trivia_line(segments[-1], delta, token_line=token.kind is not TokenKind.EOF)

    def _trivia_line(self, segment: List[TriviaPiece], delta: int, token_line: bool) -> None:
        has_content = any(piece.kind is not TriviaKind.WHITESPACE for piece in segment)
        if not has_content and not token_line:
            return
        start = 0
        width = 0
        if segment and segment[0].kind is TriviaKind.WHITESPACE:
            width = visual_width(segment[0].text)
            start = 1
            if delta:
                self.out.spaces(max(0, width + delta))
            else:
                self.out.write(segment[0].text)
        elif delta > 0:
            self.out.spaces(delta)
        for piece in segment[start:]:
            self.out.write(piece.text, protect=piece.is_multiline)

    def _trailing(self, token: Token, structured: bool = False) -> None:
        pieces = token.trailing.pieces
        first_comment = next((i for i, piece in enumerate(pieces) if piece.is_comment), None)
        if first_comment is None:
            return
        gap = "".join(piece.text for piece in pieces[:first_comment])
        width = visual_width(gap, self.out.column) - self.out.column if gap else 0
        if structured or not self.config.preserve_comment_alignment:
            spacing = EOL_COMMENT_SPACING
        else:
            spacing = max(EOL_COMMENT_SPACING, width)
        if width != spacing and not structured:
            comment = pieces[first_comment]
            self.diagnostics.append(Diagnostic.create(
                DiagnosticKind.END_OF_LINE_COMMENT_SPACING,
                "End-of-line comment needs two spaces before it",
                piece_span(comment),
            ))
        self.out.spaces(spacing)
        last_comment = max(i for i, piece in enumerate(pieces) if piece.is_comment)
        for piece in pieces[first_comment:last_comment + 1]:
            self.out.write(piece.text, protect=piece.is_multiline)

    def _comment_lines(self, trivia: Trivia, indent: int, keep_blank: bool) -> None:
        """Own-line comments of ``trivia`` re-indented to ``indent``."""
        pending_blank = False
        for entry in trivia.comment_lines():
            if entry is None:
                pending_blank = keep_blank
                continue
            if pending_blank:
                self.out.newline()
                pending_blank = False
            self.out.newline()
            self.out.spaces(indent)
            self.out.write(comment_text(entry), protect=True)
        if pending_blank:
            self.out.newline()

    def _all_comment_entries(self, trivia: Trivia) -> List[List[TriviaPiece]]:
        """Comment lines of a token's leading trivia, including one that starts the file."""
        segments = trivia.lines()
        entries = []
        if len(segments) > 1:
            first = [piece for piece in segments[0] if piece.is_comment]
            if first:
                entries.append(first)
        for entry in trivia.comment_lines():
            if entry is not None:
                entries.append(entry)
        return entries

    # ------------------------------------------------------------------
    # Verbatim tokens
    # ------------------------------------------------------------------

    def _verbatim(self, tokens: Iterable[Token], with_leading: bool = True) -> None:
        first = True
        for token in tokens:
            if with_leading or not first:
                self._leading(token)
            first = False
            self.out.write(token.text, protect=token.is_multiline)
            self._trailing(token)

    # ------------------------------------------------------------------
    # Item lists
    # ------------------------------------------------------------------

    def _item_list(
        self,
        item_list: ItemList,
        indent: int,
        render_item: Callable[[int, Node], str],
    ) -> None:
        """Leading-comma form, one item per line, closing bracket on its own line.

        A comment after a separator comma belongs to the item before it, so
        it moves to the end of that item's line.
        """
        for index, item in enumerate(item_list.items):
            leader = item_list.leaders[index]
            self._comment_lines(leader.leading, indent, keep_blank=index > 0)
            self.out.newline()
            self.out.spaces(indent)
            self.out.write(leader.text)
            self._leader_item(leader, item.first_token, indent, render_item(index, item), with_comments=index == 0)
            self._trailing(item.last_token, structured=True)
            if index + 1 < len(item_list.items):
                self._moved_comments(item.last_token, item_list.leaders[index + 1])
        self._comment_lines(item_list.close.leading, indent + 2, keep_blank=False)
        self.out.newline()
        self.out.spaces(indent)
        self.out.write(item_list.close.text)

    def _moved_comments(self, token: Token, separator: Token) -> None:
        comments = separator.trailing.comments
        if not comments:
            return
        if not token.trailing.has_comments:
            self.out.spaces(EOL_COMMENT_SPACING - 1)
        for comment in comments:
            self.out.write(" " + comment.text, protect=True)

    def _leader_item(self, leader: Token, first: Token, indent: int, text: str, with_comments: bool = True) -> None:
        """Write an item after its separator, with any comments between them."""
        after_leader = leader.trailing.comments if with_comments else ()
        before_item = [entry for entry in first.leading.comment_lines() if entry is not None]
        if not after_leader and not before_item:
            self.out.write(" " + text)
            return
        for comment in after_leader:
            self.out.write(" " + comment.text, protect=True)
        for entry in before_item:
            self.out.newline()
            self.out.spaces(indent + 2)
            self.out.write(comment_text(entry), protect=True)
        self.out.newline()
        self.out.spaces(indent + 2)
        self.out.write(text)

    # ------------------------------------------------------------------
    # Header pragmas
    # ------------------------------------------------------------------

    def _header_pragmas(self, pragmas: Tuple[Pragma, ...], with_prefix: bool = True) -> None:
        blocks = pragma_blocks(pragmas)
        source_first = min(pragmas, key=lambda pragma: pragma.token.offset)
        if with_prefix:
            self._leading(source_first.token)
        first = True
        for block in blocks:
            width = max((len(language_pragma_text(p)) - 4 for p in block if _is_language(p)), default=0)
            for position, pragma in enumerate(block):
                if not first:
                    self.out.newline()
                    if position == 0:
                        self.out.newline()
                if pragma is not source_first:
                    for entry in self._all_comment_entries(pragma.token.leading):
                        self.out.write(comment_text(entry), protect=True)
                        self.out.newline()
                first = False
                text = language_pragma_text(pragma, width) if _is_language(pragma) else pragma_text(pragma)
                self.out.write(text, protect=pragma.token.is_multiline)
                self._trailing(pragma.token, structured=True)

    # ------------------------------------------------------------------
    # Module header
    # ------------------------------------------------------------------

    def _module_header(self, header: ModuleHeader, with_leading: bool = True) -> None:
        exports = header.exports
        if exports is None or exports.layout is None:
            self._verbatim(header.iter_tokens(), with_leading=with_leading)
            return
        if with_leading:
            self._leading(header.keyword)
        self.out.write(f"{header.keyword.text} {header.name.text}")
        for pragma in header.pragmas:
            self.out.write(" " + pragma.text)
        if exports.layout is ListLayout.SINGLE_LINE:
            self.out.write(" " + single_list_text(exports))
        else:
            self._item_list(exports, self.indent, lambda _, item: item_text(item))
        self.out.write(" " + header.where_keyword.text)
        self._trailing(header.where_keyword, structured=True)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _import_block(self, module: Module) -> None:
        prefix_blank = import_prefix_blank_lines(module)
        for group_index, group in enumerate(module.imports):
            for position, decl in enumerate(group.decls):
                if group_index == 0 and position == 0:
                    blank = prefix_blank
                elif position == 0:
                    blank = 1
                else:
                    blank = 0
                for _ in range(blank):
                    self.out.newline()
                for entry in self._all_comment_entries(decl.first_token.leading):
                    self.out.newline_if_started()
                    self.out.write(comment_text(entry), protect=True)
                self.out.newline_if_started()
                self._import_decl(decl)

    def _import_decl(self, decl: ImportDecl) -> None:
        if not import_is_structured(decl):
            logger.debug("Import at line %d has comments inside; written verbatim", decl.first_token.line + 1)
            self._verbatim(decl.iter_tokens(), with_leading=False)
            return
        self.out.write(" ".join(token.text for token in decl.head))
        import_list = decl.import_list
        if import_list is not None:
            if import_list.layout is ListLayout.SINGLE_LINE or not import_list.items:
                self.out.write(" " + single_list_text(import_list))
            else:
                self._item_list(import_list, self.indent, lambda _, item: item_text(item))
        if decl.tail:
            self.out.write(" " + flat_join(decl.tail))
        self._trailing(decl.last_token, structured=True)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _declaration(self, node: Node, with_leading: bool = True) -> None:
        if isinstance(node, Pragma) and node.pinned:
            self._pinned_pragma(node, with_leading)
            return
        structured = (
            (isinstance(node, TypeSignature) and node.layout is not None)
            or (isinstance(node, DataDecl) and node.layout is not None)
            or (isinstance(node, FunctionClause) and node.rhs_layout is not None)
        )
        if not structured:
            self._verbatim(node.iter_tokens(), with_leading=with_leading)
            return
        if with_leading:
            self._leading(node.first_token)
        if isinstance(node, TypeSignature):
            self._signature(node)
        elif isinstance(node, DataDecl):
            self._data_decl(node)
        else:
            self._rhs_layout(node)  # type: ignore[arg-type]
        self._trailing(node.last_token, structured=True)

    def _pinned_pragma(self, pragma: Pragma, with_leading: bool) -> None:
        if with_leading:
            for entry in self._all_comment_entries(pragma.token.leading):
                self.out.newline_if_started()
                self.out.write(comment_text(entry), protect=True)
            self.out.newline_if_started()
        self.out.write(pragma_text(pragma), protect=pragma.token.is_multiline)
        self._trailing(pragma.token, structured=True)

    def _signature(self, signature: TypeSignature) -> None:
        if signature.layout is ListLayout.SINGLE_LINE:
            self.out.write(signature_single_text(signature))
            return
        base = signature.first_token.column
        self.out.write(flat_join(signature.names))
        for leader, tokens in signature_segments(signature):
            self._comment_lines(leader.leading, base + self.indent, keep_blank=False)
            self.out.newline()
            self.out.spaces(base + self.indent)
            self.out.write(f"{leader.text} {flat_join(tokens)}")
            if tokens and tokens[-1] is not signature.last_token:
                self._trailing(tokens[-1], structured=True)

    def _data_decl(self, decl: DataDecl) -> None:
        base = decl.first_token.column
        indent = base + self.indent
        if decl.layout is ListLayout.SINGLE_LINE:
            self.out.write(data_single_text(decl))
        elif decl.single_record:
            constructor = decl.constructors[0]
            record = constructor.record
            assert record is not None
            self.out.write(f"{data_head_text(decl)} = {flat_join(constructor.prefix)}")
            self._record(record, indent)
            if record.close is not decl.last_token:
                self._trailing(record.close, structured=True)
        else:
            self.out.write(data_head_text(decl))
            for index, constructor in enumerate(decl.constructors):
                leader = decl.leaders[index]
                self._comment_lines(leader.leading, indent, keep_blank=False)
                self.out.newline()
                self.out.spaces(indent)
                self.out.write(leader.text)
                record = constructor.record
                if record is None or record.layout is ListLayout.SINGLE_LINE:
                    self._leader_item(leader, constructor.first_token, indent, constructor_single_text(constructor))
                else:
                    self._leader_item(leader, constructor.first_token, indent, flat_join(constructor.prefix))
                    self._record(record, indent + 4)
                if constructor.last_token is not decl.last_token:
                    self._trailing(constructor.last_token, structured=True)
        self._deriving(decl, indent)

    def _record(self, record: RecordBody, indent: int) -> None:
        widths = record.name_widths

        def render(index: int, item: Node) -> str:
            width = widths[index] if index < len(widths) else 0
            return field_text(item, width)  # type: ignore[arg-type]

        self._item_list(record, indent, render)

    def _deriving(self, decl: DataDecl, indent: int) -> None:
        layout = decl.deriving_layout or DerivingLayout(own_lines=False)
        if not decl.deriving:
            return
        if not layout.own_lines and decl.layout is not ListLayout.MULTI_LINE:
            for clause in decl.deriving:
                self.out.write(" " + deriving_text(clause))
            return
        for clause in decl.deriving:
            self._comment_lines(clause.keyword.leading, indent, keep_blank=False)
            self.out.newline()
            self.out.spaces(indent)
            self.out.write(deriving_text(clause, layout.strategy_width))
            if clause.last_token is not decl.last_token:
                self._trailing(clause.last_token, structured=True)

    def _rhs_layout(self, clause: FunctionClause) -> None:
        layout = clause.rhs_layout
        assert layout is not None and clause.equation.equals is not None
        equation = clause.equation
        head = flat_join(equation.lhs_tokens() + (equation.equals,))
        body: Tuple[Token, ...] = tuple(equation.body)  # type: ignore[arg-type]
        if layout.style is RhsStyle.APPLICATION:
            lines = application_terms(body)
        else:
            lines = rhs_operator_lines(body, self.config)
        self.out.write(f"{head} {flat_join(lines[0])}")
        for line in lines[1:]:
            self.out.newline()
            self.out.spaces(layout.column)
            self.out.write(flat_join(line))


# =============================================================================
# Shared decisions
# =============================================================================

def _is_language(pragma: Pragma) -> bool:
    return pragma.name == "LANGUAGE" and bool(pragma.extensions) and not pragma.token.is_multiline


def pragma_block_index(pragma: Pragma) -> int:
    if pragma.name in ("OPTIONS_GHC", "OPTIONS"):
        return 0
    if pragma.name == "LANGUAGE":
        return 1
    return 2


def pragma_blocks(pragmas: Sequence[Pragma]) -> List[List[Pragma]]:
    """Header pragmas grouped into OPTIONS, LANGUAGE and other blocks, in list order."""
    blocks: List[List[Pragma]] = [[], [], []]
    for pragma in pragmas:
        blocks[pragma_block_index(pragma)].append(pragma)
    return [block for block in blocks if block]


def import_prefix_blank_lines(module: Module) -> int:
    """Blank lines before the import block, taken from the first import in the source."""
    first = min(module.import_decls, key=lambda decl: decl.first_token.offset)
    count = 0
    for entry in first.first_token.leading.comment_lines():
        if entry is not None:
            break
        count += 1
    return count


def import_is_structured(decl: ImportDecl) -> bool:
    """Whether an import can be re-spaced without touching comments."""
    tokens = tuple(decl.iter_tokens())
    if not clean_inside(decl.head):
        return False
    if decl.import_list is None:
        return clean_inside(tokens)
    if decl.tail and not clean_inside((decl.import_list.close,) + decl.tail):
        return False
    if decl.head[-1].trailing.has_comments:
        return False
    if decl.import_list.layout is None:
        return False
    return True


def rhs_operator_lines(body: Sequence[Token], config: FormatConfig) -> List[Tuple[Token, ...]]:
    """Lines of an operator-split right-hand side.

    With aligned chains the first operator stays on the first line and the
    rest line up under it; with indented chains every operator starts a line.
    """
    operators = chain_operator_set(body)
    chunks = operator_chunks(body, operators)
    if config.alignment.operator_chains == "aligned" and len(chunks) > 2:
        return [chunks[0] + chunks[1]] + chunks[2:]
    return chunks


def chain_operator_set(body: Sequence[Token]) -> frozenset:
    """Chain operators present at depth 0, or every depth-0 operator when none are."""
    depth = 0
    present = set()
    operators = set()
    for token in body:
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0 and token.is_operator:
            operators.add(token.text)
            if token.text in CHAIN_OPERATORS:
                present.add(token.text)
    return frozenset(present or operators)


def long_line_diagnostics(text: str, config: FormatConfig) -> Tuple[Diagnostic, ...]:
    """LongLine advisories for lines of ``text`` over the line budget."""
    if not config.check_enabled("long-line"):
        return ()
    index = LineIndex(text)
    found = []
    for number, start, line in index.iter_lines():
        width = visual_width(line)
        if width > config.max_line_length:
            found.append(Diagnostic.create(
                DiagnosticKind.LONG_LINE,
                f"Line is {width} columns long (maximum {config.max_line_length})",
                index.span(start, start + len(line)),
            ))
    return tuple(found)


def render(module: Module, config: FormatConfig = DEFAULT_CONFIG) -> RenderResult:
    """Render a module using its placements and layout decisions."""
    renderer = Renderer(config, module.newline, module.placements)
    return renderer.render_module(module)


def render_fragment(node: Node, module: Module, config: FormatConfig = DEFAULT_CONFIG) -> str:
    """Render one top-level node of ``module`` on its own."""
    renderer = Renderer(config, module.newline, module.placements)
    return renderer.render_fragment(node)
