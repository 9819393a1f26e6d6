# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Concrete syntax tree for Haskell modules.

Nodes are immutable and own their tokens; iterating the tokens of the
module yields every token of the source exactly once, in source order for
a freshly read tree. Rewrite passes return new trees built with
``dataclasses.replace`` and attach layout decisions that the renderer
consumes. Constructs that are not modelled structurally are kept as
OpaqueDecl or Statement nodes around their raw token segments.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, Mapping, Optional, Tuple, Union

from .tokens import TextSpan, Token, TokenKind


class NodeKind(Enum):
    MODULE = "Module"
    MODULE_HEADER = "ModuleHeader"
    EXPORT_LIST = "ExportList"
    EXPORT_ITEM = "ExportItem"
    IMPORT_GROUP = "ImportGroup"
    IMPORT_DECL = "ImportDecl"
    IMPORT_LIST = "ImportList"
    IMPORT_ITEM = "ImportItem"
    PRAGMA = "Pragma"
    TYPE_SIGNATURE = "TypeSignature"
    DATA_DECL = "DataDecl"
    CONSTRUCTOR = "Constructor"
    RECORD_BODY = "RecordBody"
    RECORD_FIELD = "RecordField"
    DERIVING_CLAUSE = "DerivingClause"
    FUNCTION_CLAUSE = "FunctionClause"
    EQUATION = "Equation"
    GUARDED_RHS = "GuardedRHS"
    CASE_ALT = "CaseAlt"
    LET_BINDING = "LetBinding"
    STATEMENT = "Statement"
    WHERE_CLAUSE = "WhereClause"
    LAYOUT_BLOCK = "LayoutBlock"
    EXPR = "Expr"
    OPAQUE_DECL = "OpaqueDecl"


class BlockKind(Enum):
    """What opened a layout block."""
    TOP = "top"
    DO = "do"
    OF = "of"
    LAMBDA_CASE = "lambda_case"
    LET = "let"
    WHERE = "where"
    DECLS = "decls"


class ListLayout(Enum):
    SINGLE_LINE = "single_line"
    MULTI_LINE = "multi_line"


class RhsStyle(Enum):
    APPLICATION = "application"
    OPERATORS = "operators"


@dataclass(frozen=True)
class Placement:
    """New column for a line-start token; ``break_before`` moves it to a new line."""
    column: int
    break_before: bool = False


@dataclass(frozen=True)
class RhsLayout:
    """Multi-line layout for an over-long single-line right-hand side."""
    style: RhsStyle
    column: int


@dataclass(frozen=True)
class DerivingLayout:
    own_lines: bool
    strategy_width: int = 0


def tokens_text(tokens: Tuple[Token, ...]) -> str:
    """Source of consecutive tokens with the trivia between them."""
    parts = []
    for index, token in enumerate(tokens):
        if index > 0:
            parts.append(token.leading.text)
        parts.append(token.text)
        if index < len(tokens) - 1:
            parts.append(token.trailing.text)
    return "".join(parts)


class Node(ABC):
    """Base for all tree nodes."""
    kind: ClassVar[NodeKind]

    @abstractmethod
    def iter_tokens(self) -> Iterator[Token]:
        """Tokens of the node in tree order."""

    @property
    def first_token(self) -> Token:
        return next(self.iter_tokens())

    @property
    def last_token(self) -> Token:
        last = None
        for last in self.iter_tokens():
            pass
        if last is None:
            raise ValueError(f"{self.kind.value} has no tokens")
        return last

    @property
    def span(self) -> TextSpan:
        return self.first_token.span.cover(self.last_token.span)

    def source_text(self) -> str:
        """Source from the first token to the last, internal trivia included."""
        return tokens_text(tuple(self.iter_tokens()))

    def is_multiline(self) -> bool:
        tokens = list(self.iter_tokens())
        return tokens[0].line != tokens[-1].end_line


Segment = Union[Token, "LayoutBlock"]


def iter_segment_tokens(segments: Tuple[Segment, ...]) -> Iterator[Token]:
    for segment in segments:
        if isinstance(segment, Token):
            yield segment
        else:
            yield from segment.iter_tokens()


# =============================================================================
# Layout blocks and expressions
# =============================================================================

@dataclass(frozen=True)
class Expr(Node):
    """A run of tokens with nested layout blocks kept as units."""
    kind: ClassVar[NodeKind] = NodeKind.EXPR
    segments: Tuple[Segment, ...]

    def iter_tokens(self) -> Iterator[Token]:
        return iter_segment_tokens(self.segments)

    def tokens(self) -> Tuple[Token, ...]:
        """Top-level tokens only, nested blocks skipped."""
        return tuple(segment for segment in self.segments if isinstance(segment, Token))

    def blocks(self) -> Tuple["LayoutBlock", ...]:
        return tuple(segment for segment in self.segments if isinstance(segment, LayoutBlock))


@dataclass(frozen=True)
class LayoutBlock(Node):
    """Items governed by one layout context.

    ``opener`` is the keyword that opened the block; it is owned by the
    enclosing expression, not by the block.
    """
    kind: ClassVar[NodeKind] = NodeKind.LAYOUT_BLOCK
    opener: Token
    block_kind: BlockKind
    column: int
    items: Tuple["BlockItem", ...]

    def iter_tokens(self) -> Iterator[Token]:
        for item in self.items:
            yield from item.iter_tokens()


@dataclass(frozen=True)
class WhereClause(Node):
    kind: ClassVar[NodeKind] = NodeKind.WHERE_CLAUSE
    keyword: Token
    block: LayoutBlock

    def iter_tokens(self) -> Iterator[Token]:
        yield self.keyword
        yield from self.block.iter_tokens()


@dataclass(frozen=True)
class GuardedRhs(Node):
    kind: ClassVar[NodeKind] = NodeKind.GUARDED_RHS
    bar: Token
    guard: Tuple[Segment, ...]
    equals: Token
    body: Tuple[Segment, ...]

    def iter_tokens(self) -> Iterator[Token]:
        yield self.bar
        yield from iter_segment_tokens(self.guard)
        yield self.equals
        yield from iter_segment_tokens(self.body)


@dataclass(frozen=True)
class Equation(Node):
    """Left-hand side followed by either ``= body`` or guarded alternatives."""
    kind: ClassVar[NodeKind] = NodeKind.EQUATION
    lhs: Tuple[Segment, ...]
    equals: Optional[Token]
    body: Tuple[Segment, ...]
    guards: Tuple[GuardedRhs, ...] = ()

    def iter_tokens(self) -> Iterator[Token]:
        yield from iter_segment_tokens(self.lhs)
        if self.equals is not None:
            yield self.equals
            yield from iter_segment_tokens(self.body)
        for guard in self.guards:
            yield from guard.iter_tokens()

    def lhs_tokens(self) -> Tuple[Token, ...]:
        return tuple(segment for segment in self.lhs if isinstance(segment, Token))

    @property
    def binder(self) -> Optional[Token]:
        """Name being defined, when the left-hand side names one."""
        tokens = self.lhs_tokens()
        if len(tokens) != len(self.lhs) or not tokens:
            return None
        first = tokens[0]
        if first.kind is TokenKind.VARID:
            if len(tokens) >= 3 and tokens[1].is_special("`"):
                return tokens[2]
            if len(tokens) >= 3 and tokens[1].is_operator and not _is_prefix_bang(tokens[1], tokens[2]):
                return tokens[1]
            return first
        if first.is_special("(") and len(tokens) >= 3 and tokens[1].is_operator and tokens[2].is_special(")"):
            return tokens[1]
        if len(tokens) >= 3 and tokens[1].is_operator and not tokens[1].text.startswith(":"):
            return tokens[1]
        return None


def _is_prefix_bang(operator: Token, following: Token) -> bool:
    """``f !x`` is a bang pattern, ``x ! y`` defines ``!``."""
    if operator.text not in ("!", "~"):
        return False
    spaced_before = bool(operator.leading.pieces)
    tight_after = not operator.trailing.pieces and not following.leading.pieces
    return spaced_before and tight_after


@dataclass(frozen=True)
class Statement(Node):
    kind: ClassVar[NodeKind] = NodeKind.STATEMENT
    body: Expr

    def iter_tokens(self) -> Iterator[Token]:
        return self.body.iter_tokens()


@dataclass(frozen=True)
class FunctionClause(Node):
    kind: ClassVar[NodeKind] = NodeKind.FUNCTION_CLAUSE
    equation: Equation
    where: Optional[WhereClause] = None
    rhs_layout: Optional[RhsLayout] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.equation.iter_tokens()
        if self.where is not None:
            yield from self.where.iter_tokens()

    @property
    def binder(self) -> Optional[Token]:
        return self.equation.binder


@dataclass(frozen=True)
class CaseAlt(Node):
    kind: ClassVar[NodeKind] = NodeKind.CASE_ALT
    equation: Equation
    where: Optional[WhereClause] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.equation.iter_tokens()
        if self.where is not None:
            yield from self.where.iter_tokens()


@dataclass(frozen=True)
class LetBinding(Node):
    kind: ClassVar[NodeKind] = NodeKind.LET_BINDING
    equation: Equation
    where: Optional[WhereClause] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.equation.iter_tokens()
        if self.where is not None:
            yield from self.where.iter_tokens()


@dataclass(frozen=True)
class OpaqueDecl(Node):
    """A declaration kept as raw segments (class, instance, type, TH splice...)."""
    kind: ClassVar[NodeKind] = NodeKind.OPAQUE_DECL
    body: Expr

    def iter_tokens(self) -> Iterator[Token]:
        return self.body.iter_tokens()


# =============================================================================
# Pragmas and signatures
# =============================================================================

HEADER_PRAGMA_NAMES = frozenset({"LANGUAGE", "OPTIONS_GHC", "OPTIONS", "OPTIONS_HADDOCK", "INCLUDE"})
BINDER_PRAGMA_NAMES = frozenset({
    "INLINE", "NOINLINE", "INLINABLE", "INLINEABLE", "SPECIALIZE", "SPECIALISE", "OPAQUE",
})


@dataclass(frozen=True)
class Pragma(Node):
    kind: ClassVar[NodeKind] = NodeKind.PRAGMA
    token: Token
    pinned: bool = False

    def iter_tokens(self) -> Iterator[Token]:
        yield self.token

    @property
    def words(self) -> Tuple[str, ...]:
        inner = self.token.text[3:-3]
        return tuple(inner.split())

    @property
    def name(self) -> str:
        words = self.words
        if not words:
            return ""
        name = words[0].upper()
        if name.startswith("OPTIONS_") and name not in ("OPTIONS_GHC", "OPTIONS_HADDOCK"):
            return "OPTIONS"
        return name

    @property
    def body(self) -> str:
        """Pragma contents after its name, whitespace collapsed."""
        return " ".join(self.words[1:])

    @property
    def extensions(self) -> Tuple[str, ...]:
        if self.name != "LANGUAGE":
            return ()
        return tuple(part.strip() for part in self.body.split(",") if part.strip())

    @property
    def is_header_pragma(self) -> bool:
        return self.name in HEADER_PRAGMA_NAMES or self.name.startswith("OPTIONS")

    @property
    def target(self) -> Optional[str]:
        """Binder named by an INLINE-family pragma."""
        if self.name not in BINDER_PRAGMA_NAMES:
            return None
        words = list(self.words[1:])
        if words and words[0].startswith("["):
            words = words[1:]
        if not words:
            return None
        name = words[0]
        if name.startswith("(") and name.endswith(")") and len(name) > 2:
            name = name[1:-1]
        return name.split("::")[0] or None


@dataclass(frozen=True)
class TypeSignature(Node):
    """``names :: type`` with the type kept as a flat token run."""
    kind: ClassVar[NodeKind] = NodeKind.TYPE_SIGNATURE
    names: Tuple[Token, ...]
    colons: Token
    type_tokens: Tuple[Token, ...]
    layout: Optional[ListLayout] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.names
        yield self.colons
        yield from self.type_tokens

    @property
    def binder_names(self) -> Tuple[str, ...]:
        return tuple(
            token.text for token in self.names
            if not token.is_special(",", "(", ")")
        )


# =============================================================================
# Item lists: exports, imports, record fields
# =============================================================================

@dataclass(frozen=True)
class ListItem(Node):
    """One comma-separated entry of an item list."""
    kind: ClassVar[NodeKind] = NodeKind.EXPORT_ITEM
    tokens: Tuple[Token, ...]

    def iter_tokens(self) -> Iterator[Token]:
        return iter(self.tokens)


@dataclass(frozen=True)
class ExportItem(ListItem):
    kind: ClassVar[NodeKind] = NodeKind.EXPORT_ITEM


@dataclass(frozen=True)
class ImportItem(ListItem):
    kind: ClassVar[NodeKind] = NodeKind.IMPORT_ITEM


@dataclass(frozen=True)
class RecordField(Node):
    kind: ClassVar[NodeKind] = NodeKind.RECORD_FIELD
    names: Tuple[Token, ...]
    colons: Token
    type_tokens: Tuple[Token, ...]

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.names
        yield self.colons
        yield from self.type_tokens

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return tuple(self.iter_tokens())

    @property
    def field_names(self) -> Tuple[Token, ...]:
        return tuple(token for token in self.names if not token.is_special(",", "(", ")"))

    @property
    def is_strict(self) -> bool:
        for token in self.type_tokens:
            if token.kind is TokenKind.PRAGMA:
                continue
            return token.text in ("!", "~")
        return False


@dataclass(frozen=True)
class ItemList(Node):
    """Bracketed, comma-separated list with its separators.

    ``separators`` holds the commas; there is one fewer than ``items``
    unless the list ends with a trailing comma.
    """
    kind: ClassVar[NodeKind] = NodeKind.EXPORT_LIST
    open: Token
    items: Tuple[Node, ...]
    separators: Tuple[Token, ...]
    close: Token
    layout: Optional[ListLayout] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield self.open
        for index, item in enumerate(self.items):
            yield from item.iter_tokens()
            if index < len(self.separators):
                yield self.separators[index]
        yield self.close

    @property
    def has_trailing_comma(self) -> bool:
        return bool(self.items) and len(self.separators) >= len(self.items)

    @property
    def leaders(self) -> Tuple[Token, ...]:
        """Token written before each item in leading-comma form."""
        return (self.open,) + self.separators[:max(len(self.items) - 1, 0)]


@dataclass(frozen=True)
class ExportList(ItemList):
    kind: ClassVar[NodeKind] = NodeKind.EXPORT_LIST


@dataclass(frozen=True)
class ImportList(ItemList):
    kind: ClassVar[NodeKind] = NodeKind.IMPORT_LIST


@dataclass(frozen=True)
class RecordBody(ItemList):
    kind: ClassVar[NodeKind] = NodeKind.RECORD_BODY
    name_widths: Tuple[int, ...] = ()


# =============================================================================
# Module header and imports
# =============================================================================

@dataclass(frozen=True)
class ModuleHeader(Node):
    kind: ClassVar[NodeKind] = NodeKind.MODULE_HEADER
    keyword: Token
    name: Token
    pragmas: Tuple[Token, ...]
    exports: Optional[ExportList]
    where_keyword: Token

    def iter_tokens(self) -> Iterator[Token]:
        yield self.keyword
        yield self.name
        yield from self.pragmas
        if self.exports is not None:
            yield from self.exports.iter_tokens()
        yield self.where_keyword


@dataclass(frozen=True)
class ImportDecl(Node):
    kind: ClassVar[NodeKind] = NodeKind.IMPORT_DECL
    head: Tuple[Token, ...]
    import_list: Optional[ImportList] = None
    tail: Tuple[Token, ...] = ()

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.head
        if self.import_list is not None:
            yield from self.import_list.iter_tokens()
        yield from self.tail

    @property
    def module_name(self) -> str:
        for token in self.head[1:]:
            if token.kind in (TokenKind.CONID, TokenKind.QCONID):
                return token.text
        return ""

    @property
    def is_qualified(self) -> bool:
        return any(token.text == "qualified" for token in self.head)

    @property
    def is_hiding(self) -> bool:
        return any(token.text == "hiding" for token in self.head)

    @property
    def alias(self) -> Optional[str]:
        for index, token in enumerate(self.head[:-1]):
            if token.text == "as":
                return self.head[index + 1].text
        return None

    def normalized_text(self) -> str:
        return " ".join(token.text for token in self.iter_tokens())


@dataclass(frozen=True)
class ImportGroup(Node):
    kind: ClassVar[NodeKind] = NodeKind.IMPORT_GROUP
    decls: Tuple[ImportDecl, ...]

    def iter_tokens(self) -> Iterator[Token]:
        for decl in self.decls:
            yield from decl.iter_tokens()


# =============================================================================
# Data declarations
# =============================================================================

@dataclass(frozen=True)
class Constructor(Node):
    kind: ClassVar[NodeKind] = NodeKind.CONSTRUCTOR
    prefix: Tuple[Token, ...]
    record: Optional[RecordBody] = None
    suffix: Tuple[Token, ...] = ()

    def iter_tokens(self) -> Iterator[Token]:
        yield from self.prefix
        if self.record is not None:
            yield from self.record.iter_tokens()
        yield from self.suffix

    @property
    def name(self) -> Optional[Token]:
        for token in self.prefix:
            if token.kind is TokenKind.CONID:
                return token
            if token.kind is TokenKind.CONSYM:
                return token
        return None


@dataclass(frozen=True)
class DerivingClause(Node):
    kind: ClassVar[NodeKind] = NodeKind.DERIVING_CLAUSE
    keyword: Token
    strategy: Optional[Token]
    classes: Tuple[Token, ...]
    via: Tuple[Token, ...] = ()
    parenthesize: bool = False

    def iter_tokens(self) -> Iterator[Token]:
        yield self.keyword
        if self.strategy is not None:
            yield self.strategy
        yield from self.classes
        yield from self.via

    @property
    def is_parenthesized(self) -> bool:
        return bool(self.classes) and self.classes[0].is_special("(") and self.classes[-1].is_special(")")

    @property
    def class_names(self) -> Tuple[Token, ...]:
        return tuple(
            token for token in self.classes
            if token.kind in (TokenKind.CONID, TokenKind.QCONID)
        )


@dataclass(frozen=True)
class DataDecl(Node):
    """``data``/``newtype`` with ``=``-separated constructors and deriving clauses."""
    kind: ClassVar[NodeKind] = NodeKind.DATA_DECL
    keyword: Token
    head: Tuple[Token, ...]
    equals: Token
    constructors: Tuple[Constructor, ...]
    bars: Tuple[Token, ...]
    deriving: Tuple[DerivingClause, ...] = ()
    layout: Optional[ListLayout] = None
    deriving_layout: Optional[DerivingLayout] = None

    def iter_tokens(self) -> Iterator[Token]:
        yield self.keyword
        yield from self.head
        yield self.equals
        for index, constructor in enumerate(self.constructors):
            if index > 0:
                yield self.bars[index - 1]
            yield from constructor.iter_tokens()
        for clause in self.deriving:
            yield from clause.iter_tokens()

    @property
    def is_newtype(self) -> bool:
        return self.keyword.text == "newtype"

    @property
    def type_name(self) -> Optional[Token]:
        for token in self.head:
            if token.kind is TokenKind.CONID and token.text != "instance":
                return token
        return None

    @property
    def leaders(self) -> Tuple[Token, ...]:
        return (self.equals,) + self.bars

    @property
    def single_record(self) -> bool:
        return len(self.constructors) == 1 and self.constructors[0].record is not None


# =============================================================================
# Module
# =============================================================================

TopDecl = Union[
    Pragma, TypeSignature, DataDecl, FunctionClause, ImportDecl, OpaqueDecl,
]

BlockItem = Union[
    Statement, CaseAlt, LetBinding, FunctionClause, TypeSignature, Pragma, OpaqueDecl,
]


@dataclass(frozen=True)
class Module(Node):
    """Root node.

    ``pragmas_normalized`` and ``imports_normalized`` are set by the passes
    that own those regions; until then the renderer reproduces them as read.
    """
    kind: ClassVar[NodeKind] = NodeKind.MODULE
    header_pragmas: Tuple[Pragma, ...]
    header: Optional[ModuleHeader]
    imports: Tuple[ImportGroup, ...]
    declarations: Tuple[Node, ...]
    eof: Token
    newline: str = "\n"
    placements: Mapping[int, Placement] = field(default_factory=dict, compare=False)
    pragmas_normalized: bool = False
    imports_normalized: bool = False
    imports_reorderable: bool = True

    def iter_tokens(self) -> Iterator[Token]:
        for pragma in self.header_pragmas:
            yield from pragma.iter_tokens()
        if self.header is not None:
            yield from self.header.iter_tokens()
        for group in self.imports:
            yield from group.iter_tokens()
        for declaration in self.declarations:
            yield from declaration.iter_tokens()
        yield self.eof

    def reconstruct(self) -> str:
        """Concatenate every token with its trivia."""
        return "".join(token.source_text for token in self.iter_tokens())

    @property
    def import_decls(self) -> Tuple[ImportDecl, ...]:
        return tuple(decl for group in self.imports for decl in group.decls)

    @property
    def module_name(self) -> Optional[str]:
        return self.header.name.text if self.header is not None else None


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal over structural children."""
    yield node
    for child in children(node):
        yield from walk(child)


def children(node: Node) -> Iterator[Node]:
    if isinstance(node, Module):
        yield from node.header_pragmas
        if node.header is not None:
            yield node.header
        yield from node.imports
        yield from node.declarations
    elif isinstance(node, ModuleHeader):
        if node.exports is not None:
            yield node.exports
    elif isinstance(node, ImportGroup):
        yield from node.decls
    elif isinstance(node, ImportDecl):
        if node.import_list is not None:
            yield node.import_list
    elif isinstance(node, ItemList):
        yield from node.items
    elif isinstance(node, DataDecl):
        yield from node.constructors
        yield from node.deriving
    elif isinstance(node, Constructor):
        if node.record is not None:
            yield node.record
    elif isinstance(node, (FunctionClause, CaseAlt, LetBinding)):
        yield node.equation
        if node.where is not None:
            yield node.where
    elif isinstance(node, Equation):
        yield from _segment_blocks(node.lhs)
        yield from _segment_blocks(node.body)
        yield from node.guards
    elif isinstance(node, GuardedRhs):
        yield from _segment_blocks(node.guard)
        yield from _segment_blocks(node.body)
    elif isinstance(node, WhereClause):
        yield node.block
    elif isinstance(node, LayoutBlock):
        yield from node.items
    elif isinstance(node, (Statement, OpaqueDecl)):
        yield node.body
    elif isinstance(node, Expr):
        yield from node.blocks()


def _segment_blocks(segments: Tuple[Segment, ...]) -> Iterator[Node]:
    for segment in segments:
        if isinstance(segment, LayoutBlock):
            yield segment
