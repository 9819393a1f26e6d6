# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
CST reader: turns the token sequence into a Module tree.

The layout reader in ``layout`` finds item boundaries; this module
classifies each item into the node types the passes understand and falls
back to OpaqueDecl / Statement for everything else. Reading never loses a
token: ``read_module(text).reconstruct() == text`` for every accepted input.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Type

from returns.result import Failure, Result, Success

from .cst import (
    BlockKind,
    CaseAlt,
    Constructor,
    DataDecl,
    DerivingClause,
    Equation,
    ExportItem,
    ExportList,
    Expr,
    FunctionClause,
    GuardedRhs,
    ImportDecl,
    ImportGroup,
    ImportItem,
    ImportList,
    ItemList,
    LayoutBlock,
    LetBinding,
    ListItem,
    Module,
    ModuleHeader,
    Node,
    OpaqueDecl,
    Pragma,
    RecordBody,
    RecordField,
    Segment,
    Statement,
    TypeSignature,
    WhereClause,
)
from .errors import ParseAbort, ParseError, parse_failed
from .layout import LayoutContext, is_closing, is_opening, read_block_items
from .tokenizer import tokenize
from .tokens import LineIndex, Token, TokenKind

logger = logging.getLogger(__name__)

_OPAQUE_KEYWORDS = (
    "type", "class", "instance", "deriving", "infix", "infixl", "infixr",
    "foreign", "default", "module",
)

_ARROWS = ("->", "→")
_EQUALS = ("=",)


# =============================================================================
# Small token helpers
# =============================================================================

def _is_flat(segments: Sequence[Segment]) -> bool:
    return all(isinstance(segment, Token) for segment in segments)


def _find_depth0(segments: Sequence[Segment], predicate, start: int = 0) -> int:
    """Index of the first bracket-depth-0 token matching ``predicate`` or -1."""
    depth = 0
    for index in range(start, len(segments)):
        segment = segments[index]
        if not isinstance(segment, Token):
            continue
        if is_opening(segment):
            depth += 1
            continue
        if is_closing(segment):
            depth -= 1
            continue
        if depth == 0 and predicate(segment):
            return index
    return -1


def _first_at_depth0(tokens: Sequence[Token], bracket: str) -> int:
    """Index of the first opening ``bracket`` outside any other brackets, or -1."""
    depth = 0
    for index, token in enumerate(tokens):
        if token.is_special(bracket) and depth == 0:
            return index
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
    return -1


def _matching_close(tokens: Sequence[Token], start: int) -> int:
    depth = 0
    for index in range(start, len(tokens)):
        if is_opening(tokens[index]):
            depth += 1
        elif is_closing(tokens[index]):
            depth -= 1
            if depth == 0:
                return index
    return -1


def parse_item_list(
    tokens: Sequence[Token],
    start: int,
    item_type: Type[ListItem],
    list_type: Type[ItemList],
) -> Optional[Tuple[ItemList, int]]:
    """Parse a bracketed comma list starting at ``tokens[start]``.

    Returns the list and the index of its closing bracket, or None when the
    list is unterminated or has an empty entry other than a trailing comma.
    """
    opening = tokens[start]
    items: List[ListItem] = []
    separators: List[Token] = []
    current: List[Token] = []
    depth = 0
    for index in range(start + 1, len(tokens)):
        token = tokens[index]
        if is_closing(token):
            if depth == 0:
                if current:
                    items.append(item_type(tuple(current)))
                return list_type(opening, tuple(items), tuple(separators), token), index
            depth -= 1
        elif is_opening(token):
            depth += 1
        elif depth == 0 and token.is_special(","):
            if not current:
                return None
            items.append(item_type(tuple(current)))
            separators.append(token)
            current = []
            continue
        current.append(token)
    return None


# =============================================================================
# Equations and signatures
# =============================================================================

def _parse_guards(segments: Tuple[Segment, ...], separators: Tuple[str, ...]) -> Optional[Tuple[GuardedRhs, ...]]:
    bars = []
    depth = 0
    for index, segment in enumerate(segments):
        if not isinstance(segment, Token):
            continue
        if is_opening(segment):
            depth += 1
        elif is_closing(segment):
            depth -= 1
        elif depth == 0 and segment.is_reserved_op("|"):
            bars.append(index)
    guards = []
    for position, bar_index in enumerate(bars):
        end = bars[position + 1] if position + 1 < len(bars) else len(segments)
        group = segments[bar_index:end]
        equals_index = _find_depth0(group, lambda token: token.is_reserved_op(*separators), 1)
        if equals_index < 0:
            return None
        guards.append(GuardedRhs(
            bar=group[0],
            guard=group[1:equals_index],
            equals=group[equals_index],
            body=group[equals_index + 1:],
        ))
    return tuple(guards) if guards else None


def parse_equation(segments: Tuple[Segment, ...], separators: Tuple[str, ...]) -> Optional[Equation]:
    """Split segments into ``lhs = body`` or ``lhs | guard = body ...``."""
    index = _find_depth0(segments, lambda token: token.is_reserved_op(*separators, "|", "::"))
    if index <= 0:
        return None
    token = segments[index]
    if token.is_reserved_op("::"):
        return None
    if token.is_reserved_op("|"):
        guards = _parse_guards(segments[index:], separators)
        if guards is None:
            return None
        return Equation(lhs=segments[:index], equals=None, body=(), guards=guards)
    return Equation(lhs=segments[:index], equals=token, body=segments[index + 1:])


def _is_binder_name(tokens: Sequence[Token]) -> bool:
    """``name`` or ``name, name`` or ``(op)`` sequences before ``::``."""
    expect_name = True
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if expect_name:
            if token.kind is TokenKind.VARID:
                index += 1
            elif token.is_special("(") and index + 2 < len(tokens) and tokens[index + 1].is_operator \
                    and tokens[index + 2].is_special(")"):
                index += 3
            else:
                return False
            expect_name = False
        else:
            if not token.is_special(","):
                return False
            index += 1
            expect_name = True
    return not expect_name


def parse_signature(segments: Tuple[Segment, ...]) -> Optional[TypeSignature]:
    if not _is_flat(segments):
        return None
    tokens: Tuple[Token, ...] = segments  # type: ignore[assignment]
    index = _find_depth0(tokens, lambda token: token.is_reserved_op("::", "∷", "="))
    if index <= 0 or not tokens[index].is_reserved_op("::", "∷"):
        return None
    if not _is_binder_name(tokens[:index]) or index + 1 >= len(tokens):
        return None
    type_tokens = tokens[index + 1:]
    if _find_depth0(type_tokens, lambda token: token.is_reserved_op("=")) >= 0:
        return None
    return TypeSignature(names=tokens[:index], colons=tokens[index], type_tokens=type_tokens)


def split_where(segments: Tuple[Segment, ...]) -> Tuple[Tuple[Segment, ...], Optional[WhereClause]]:
    if len(segments) >= 2 and isinstance(segments[-1], LayoutBlock):
        keyword = segments[-2]
        if isinstance(keyword, Token) and keyword.is_keyword("where") and segments[-1].opener is keyword:
            return segments[:-2], WhereClause(keyword=keyword, block=segments[-1])
    return segments, None


# =============================================================================
# Imports
# =============================================================================

def parse_import(tokens: Tuple[Token, ...]) -> Optional[ImportDecl]:
    index = _first_at_depth0(tokens, "(")
    if index < 0:
        if any(is_opening(token) or is_closing(token) for token in tokens):
            return None
        decl = ImportDecl(head=tokens)
    else:
        parsed = parse_item_list(tokens, index, ImportItem, ImportList)
        if parsed is None:
            return None
        import_list, close = parsed
        decl = ImportDecl(head=tokens[:index], import_list=import_list, tail=tokens[close + 1:])
    return decl if decl.module_name else None


# =============================================================================
# Data declarations
# =============================================================================

def _parse_record_field(item: ListItem) -> Optional[RecordField]:
    index = _find_depth0(item.tokens, lambda token: token.is_reserved_op("::", "∷"))
    if index <= 0 or index + 1 >= len(item.tokens):
        return None
    return RecordField(names=item.tokens[:index], colons=item.tokens[index], type_tokens=item.tokens[index + 1:])


def _parse_constructor(tokens: Tuple[Token, ...]) -> Optional[Constructor]:
    brace = _first_at_depth0(tokens, "{")
    if brace < 0:
        return Constructor(prefix=tokens)
    parsed = parse_item_list(tokens, brace, ListItem, RecordBody)
    if parsed is None:
        return None
    body, close = parsed
    fields = []
    for item in body.items:
        record_field = _parse_record_field(item)
        if record_field is None:
            return None
        fields.append(record_field)
    record = RecordBody(open=body.open, items=tuple(fields), separators=body.separators, close=body.close)
    if record.has_trailing_comma or brace == 0:
        return None
    return Constructor(prefix=tokens[:brace], record=record, suffix=tokens[close + 1:])


def _parse_deriving(tokens: Tuple[Token, ...]) -> Optional[Tuple[DerivingClause, ...]]:
    clauses = []
    index = 0
    while index < len(tokens):
        keyword = tokens[index]
        if not keyword.is_keyword("deriving"):
            return None
        index += 1
        strategy = None
        if index < len(tokens) and tokens[index].text in ("stock", "anyclass", "newtype") \
                and tokens[index].kind in (TokenKind.VARID, TokenKind.RESERVED_ID):
            strategy = tokens[index]
            index += 1
        if index >= len(tokens):
            return None
        if tokens[index].is_special("("):
            close = _matching_close(tokens, index)
            if close < 0:
                return None
            classes = tokens[index:close + 1]
            index = close + 1
        elif tokens[index].kind in (TokenKind.CONID, TokenKind.QCONID):
            classes = (tokens[index],)
            index += 1
        else:
            return None
        via: Tuple[Token, ...] = ()
        if index < len(tokens) and tokens[index].kind is TokenKind.VARID and tokens[index].text == "via":
            end = _find_depth0(tokens, lambda token: token.is_keyword("deriving"), index)
            end = len(tokens) if end < 0 else end
            via = tokens[index:end]
            index = end
        clauses.append(DerivingClause(keyword=keyword, strategy=strategy, classes=classes, via=via))
    return tuple(clauses)


def parse_data(tokens: Tuple[Token, ...]) -> Optional[DataDecl]:
    equals = _find_depth0(tokens, lambda token: token.is_reserved_op("="))
    if equals < 2:
        return None
    head = tokens[1:equals]
    if any(token.is_keyword("where") for token in head):
        return None
    rest = tokens[equals + 1:]
    deriving_at = _find_depth0(rest, lambda token: token.is_keyword("deriving"))
    if deriving_at < 0:
        deriving_at = len(rest)
    body, deriving_tokens = rest[:deriving_at], rest[deriving_at:]

    groups: List[List[Token]] = [[]]
    bars: List[Token] = []
    depth = 0
    for token in body:
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0 and token.is_reserved_op("|"):
            bars.append(token)
            groups.append([])
            continue
        groups[-1].append(token)
    if any(not group for group in groups):
        return None

    constructors = []
    for group in groups:
        constructor = _parse_constructor(tuple(group))
        if constructor is None:
            return None
        constructors.append(constructor)
    deriving = _parse_deriving(deriving_tokens)
    if deriving is None:
        return None
    return DataDecl(
        keyword=tokens[0],
        head=head,
        equals=tokens[equals],
        constructors=tuple(constructors),
        bars=tuple(bars),
        deriving=deriving,
    )


# =============================================================================
# Item classification
# =============================================================================

def classify_block_item(segments: Tuple[Segment, ...], kind: BlockKind) -> Node:
    """Classify an item of a nested layout block."""
    if kind is BlockKind.DO:
        return Statement(Expr(segments))
    if kind in (BlockKind.OF, BlockKind.LAMBDA_CASE):
        body, where = split_where(segments)
        equation = parse_equation(body, _ARROWS)
        if equation is not None:
            return CaseAlt(equation=equation, where=where)
        return Statement(Expr(segments))
    first = segments[0]
    if isinstance(first, Token) and first.kind is TokenKind.PRAGMA and len(segments) == 1:
        return Pragma(first)
    signature = parse_signature(segments)
    if signature is not None:
        return signature
    body, where = split_where(segments)
    equation = parse_equation(body, _EQUALS)
    if kind is BlockKind.LET:
        if equation is not None:
            return LetBinding(equation=equation, where=where)
        return Statement(Expr(segments))
    if equation is not None:
        return FunctionClause(equation=equation, where=where)
    return OpaqueDecl(Expr(segments))


def classify_top_item(segments: Tuple[Segment, ...]) -> Node:
    """Classify a top-level declaration."""
    first = segments[0]
    assert isinstance(first, Token)
    flat = _is_flat(segments)
    if first.is_keyword("import") and flat:
        decl = parse_import(segments)  # type: ignore[arg-type]
        if decl is not None:
            return decl
        return OpaqueDecl(Expr(segments))
    if first.kind is TokenKind.PRAGMA and len(segments) == 1:
        return Pragma(first)
    if first.is_keyword("data", "newtype"):
        if flat:
            data = parse_data(segments)  # type: ignore[arg-type]
            if data is not None:
                return data
        return OpaqueDecl(Expr(segments))
    if first.is_keyword(*_OPAQUE_KEYWORDS):
        return OpaqueDecl(Expr(segments))
    if first.kind is TokenKind.VARID and first.text == "pattern" and len(segments) > 1 \
            and isinstance(segments[1], Token) and segments[1].kind is TokenKind.CONID:
        return OpaqueDecl(Expr(segments))
    signature = parse_signature(segments)
    if signature is not None:
        return signature
    body, where = split_where(segments)
    equation = parse_equation(body, _EQUALS)
    if equation is not None:
        return FunctionClause(equation=equation, where=where)
    return OpaqueDecl(Expr(segments))


# =============================================================================
# Module
# =============================================================================

def _parse_header(tokens: Tuple[Token, ...], index: int) -> Tuple[ModuleHeader, int]:
    keyword = tokens[index]
    name = tokens[index + 1]
    if name.kind not in (TokenKind.CONID, TokenKind.QCONID):
        raise ParseAbort("expected module name after 'module'", name.offset)
    position = index + 2
    pragmas = []
    while tokens[position].kind is TokenKind.PRAGMA:
        pragmas.append(tokens[position])
        position += 1
    exports = None
    if tokens[position].is_special("("):
        parsed = parse_item_list(tokens, position, ExportItem, ExportList)
        if parsed is None:
            raise ParseAbort("malformed export list", tokens[position].offset)
        exports, close = parsed
        position = close + 1
    where = tokens[position]
    if not where.is_keyword("where"):
        raise ParseAbort("expected 'where' after module header", where.offset)
    header = ModuleHeader(
        keyword=keyword,
        name=name,
        pragmas=tuple(pragmas),
        exports=exports,  # type: ignore[arg-type]
        where_keyword=where,
    )
    return header, position + 1


def _import_has_directive(decl: ImportDecl) -> bool:
    return any(token.leading.has_directive or token.trailing.has_directive for token in decl.iter_tokens())


def _group_imports(decls: List[ImportDecl]) -> Tuple[ImportGroup, ...]:
    groups: List[List[ImportDecl]] = []
    for decl in decls:
        if not groups or decl.first_token.leading.blank_lines > 0:
            groups.append([])
        groups[-1].append(decl)
    return tuple(ImportGroup(tuple(group)) for group in groups)


def read_module(text: str) -> Module:
    """Read source text into a Module.

    Raises:
        ParseAbort: When tokens or layout cannot be resolved
    """
    tokens = tokenize(text)
    index = 0
    header_pragmas = []
    while tokens[index].kind is TokenKind.PRAGMA and Pragma(tokens[index]).is_header_pragma:
        header_pragmas.append(Pragma(tokens[index]))
        index += 1

    header = None
    if tokens[index].is_keyword("module"):
        header, index = _parse_header(tokens, index)

    items: List[Node] = []
    if tokens[index].is_special("{"):
        items.append(OpaqueDecl(Expr(tokens[index:-1])))
        index = len(tokens) - 1
    elif tokens[index].kind is not TokenKind.EOF:
        raw_items, index = read_block_items(
            tokens, index, tokens[index].column, BlockKind.TOP, LayoutContext(), classify_block_item,
        )
        items = [classify_top_item(segments) for segments in raw_items]
    if tokens[index].kind is not TokenKind.EOF:
        raise ParseAbort("unexpected token at top level", tokens[index].offset)

    imports: List[ImportDecl] = []
    position = 0
    while position < len(items) and isinstance(items[position], ImportDecl):
        imports.append(items[position])  # type: ignore[arg-type]
        position += 1
    declarations = tuple(items[position:])

    reorderable = not any(_import_has_directive(decl) for decl in imports)
    if imports:
        following = declarations[0].first_token if declarations else tokens[-1]
        if following.leading.has_directive:
            reorderable = False

    newline_at = text.find("\n")
    newline = "\r\n" if newline_at > 0 and text[newline_at - 1] == "\r" else "\n"

    module = Module(
        header_pragmas=tuple(header_pragmas),
        header=header,
        imports=_group_imports(imports),
        declarations=declarations,
        eof=tokens[-1],
        newline=newline,
        imports_reorderable=reorderable,
    )
    logger.debug(
        "Read module %s: %d tokens, %d imports, %d declarations",
        module.module_name or "<anonymous>", len(tokens), len(imports), len(declarations),
    )
    return module


def parse_source(text: str) -> Result[Module, ParseError]:
    """Read ``text`` into a Module, returning ParseError instead of raising."""
    try:
        return Success(read_module(text))
    except ParseAbort as abort:
        line, column = LineIndex(text).position(min(abort.offset, len(text)))
        logger.debug("Parse failed at %d:%d: %s", line + 1, column + 1, abort.message)
        return Failure(parse_failed(abort.message, line, column, abort.offset))
