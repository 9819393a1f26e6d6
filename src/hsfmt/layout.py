# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Layout-rule block reader.

Resolves implicit layout into explicit nested blocks. A block opened by
``do``/``mdo``, ``of``, ``\\case``, ``let`` or ``where`` takes the column of
the first token after the opener; a line starting at that column begins a
new item, a line starting further left closes the block, and a token that
cannot continue the current item (an unmatched closing bracket, ``then``,
``else``, ``of``, ``in`` or a ``where`` inside ``do``) closes it as well.

The enclosing block columns are threaded explicitly through
``LayoutContext``; reading is a set of pure functions over an immutable
token tuple and a position.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .cst import BlockKind, LayoutBlock, Segment
from .errors import ParseAbort
from .tokens import Token, TokenKind

OPENING_BRACKETS = ("(", "[", "{")
CLOSING_BRACKETS = (")", "]", "}")

# Tokens that can never begin an item, so meeting one at the block column
# ends the block.
_BLOCK_ENDING_KEYWORDS = ("then", "else", "of", "in", "where")
_BLOCK_ENDING_OPS = ("=", "->", "=>", "::", "<-", "|", "..", "→", "⇒", "∷", "←")

DECLS_OWNERS = ("class", "instance", "data", "newtype", "type")

MAX_NESTING = 200


@dataclass(frozen=True)
class LayoutContext:
    """Columns of the enclosing open blocks, outermost first."""
    columns: Tuple[int, ...] = ()

    def push(self, column: int) -> "LayoutContext":
        if len(self.columns) >= MAX_NESTING:
            raise ParseAbort("layout nesting too deep", 0)
        return LayoutContext(self.columns + (column,))

    @property
    def innermost(self) -> int:
        return self.columns[-1] if self.columns else -1


ItemClassifier = Callable[[Tuple[Segment, ...], BlockKind], object]


@dataclass
class _Pending:
    """Per-item counters for keywords that must be matched inside the item."""
    then_: int = 0
    else_: int = 0
    of: int = 0
    in_: int = 0


def is_opening(token: Token) -> bool:
    return token.kind is TokenKind.SPECIAL and token.text in OPENING_BRACKETS


def is_closing(token: Token) -> bool:
    return token.kind is TokenKind.SPECIAL and token.text in CLOSING_BRACKETS


def opener_kind(token: Token, previous: Optional[Token], item_first: Token) -> Optional[BlockKind]:
    """Block kind opened by ``token``, if it is a layout keyword."""
    if token.kind is TokenKind.RESERVED_ID:
        if token.text == "do":
            return BlockKind.DO
        if token.text == "of":
            return BlockKind.OF
        if token.text == "let":
            return BlockKind.LET
        if token.text == "where":
            if item_first.kind is TokenKind.RESERVED_ID and item_first.text in DECLS_OWNERS:
                return BlockKind.DECLS
            return BlockKind.WHERE
        if token.text == "case" and previous is not None and previous.is_reserved_op("\\"):
            return BlockKind.LAMBDA_CASE
        return None
    if token.kind is TokenKind.VARID:
        if token.text == "mdo":
            return BlockKind.DO
        if token.text == "cases" and previous is not None and previous.is_reserved_op("\\"):
            return BlockKind.LAMBDA_CASE
    return None


def _closes_at_block_column(token: Token) -> bool:
    if token.kind is TokenKind.RESERVED_ID:
        return token.text in _BLOCK_ENDING_KEYWORDS
    if token.kind is TokenKind.RESERVED_OP:
        return token.text in _BLOCK_ENDING_OPS
    if token.kind is TokenKind.SPECIAL:
        return token.text in CLOSING_BRACKETS or token.text == ","
    return False


def _closes_item(token: Token, kind: BlockKind, pending: _Pending) -> bool:
    """Whether ``token`` cannot continue the current item and ends the block."""
    if token.kind is TokenKind.SPECIAL:
        if token.text in CLOSING_BRACKETS:
            return True
        return token.text == "," and kind is BlockKind.DO
    if token.kind is not TokenKind.RESERVED_ID:
        return False
    if token.text == "then":
        return pending.then_ == 0
    if token.text == "else":
        return pending.else_ == 0
    if token.text == "of":
        return pending.of == 0
    if token.text == "in":
        return pending.in_ == 0
    if token.text == "where":
        return kind is BlockKind.DO
    return False


def _count_keyword(token: Token, previous: Optional[Token], following: Token, pending: _Pending) -> None:
    if token.kind is not TokenKind.RESERVED_ID:
        return
    text = token.text
    if text == "if" and not following.is_reserved_op("|"):
        pending.then_ += 1
        pending.else_ += 1
    elif text == "then" and pending.then_:
        pending.then_ -= 1
    elif text == "else" and pending.else_:
        pending.else_ -= 1
    elif text == "case" and not (previous is not None and previous.is_reserved_op("\\")):
        pending.of += 1
    elif text == "of" and pending.of:
        pending.of -= 1
    elif text == "in" and pending.in_:
        pending.in_ -= 1


def _no_block_follows(token: Token, column: int) -> bool:
    """An opener followed by this token gets an empty block."""
    if token.kind is TokenKind.EOF or token.is_special("{"):
        return True
    if is_closing(token) or token.is_special(","):
        return True
    if token.kind is TokenKind.RESERVED_ID and token.text in ("then", "else", "of", "in"):
        return True
    return token.line_start and token.column <= column


def _require_closed(opened: List[Token]) -> None:
    """A declaration cannot end inside brackets."""
    if opened:
        raise ParseAbort(f"unclosed '{opened[-1].text}'", opened[-1].offset)


def read_item(
    tokens: Tuple[Token, ...],
    pos: int,
    column: int,
    kind: BlockKind,
    context: LayoutContext,
    classify: ItemClassifier,
) -> Tuple[Tuple[Segment, ...], int, bool]:
    """Read one item of a block starting at ``pos``.

    Returns:
        (segments, next position, block_closed) where ``block_closed`` is
        true when the item ended on a token that also ends the block
    """
    segments: List[Segment] = []
    pending = _Pending()
    opened: List[Token] = []
    start = pos
    item_first = tokens[pos]
    previous: Optional[Token] = None

    while True:
        token = tokens[pos]
        if token.kind is TokenKind.EOF:
            _require_closed(opened)
            return tuple(segments), pos, True
        if pos != start:
            if token.line_start and token.column <= column:
                continues_if = (
                    kind is BlockKind.DO
                    and token.column == column
                    and ((token.is_keyword("then") and pending.then_)
                         or (token.is_keyword("else") and pending.else_))
                )
                if not continues_if:
                    if kind is BlockKind.TOP:
                        _require_closed(opened)
                    return tuple(segments), pos, False
            if not opened and kind is not BlockKind.TOP and _closes_item(token, kind, pending):
                return tuple(segments), pos, True

        _count_keyword(token, previous, tokens[pos + 1], pending)
        if is_opening(token):
            opened.append(token)
        elif is_closing(token) and opened:
            opened.pop()

        segments.append(token)
        pos += 1
        block_kind = opener_kind(token, previous, item_first)
        previous = token
        if block_kind is None or _no_block_follows(tokens[pos], column):
            continue

        block, pos = read_block(tokens, pos, tokens[pos].column, block_kind, context, classify)
        segments.append(block)
        if block_kind is BlockKind.LET:
            pending.in_ += 1
        previous = block.last_token


def read_block_items(
    tokens: Tuple[Token, ...],
    pos: int,
    column: int,
    kind: BlockKind,
    context: LayoutContext,
    classify: ItemClassifier,
) -> Tuple[List[Tuple[Segment, ...]], int]:
    """Read the raw items of a block whose first item starts at ``pos``."""
    items: List[Tuple[Segment, ...]] = []
    inner = context.push(column)
    while tokens[pos].kind is not TokenKind.EOF:
        segments, pos, closed = read_item(tokens, pos, column, kind, inner, classify)
        items.append(segments)
        if closed:
            break
        token = tokens[pos]
        if token.kind is TokenKind.EOF or kind is BlockKind.TOP:
            continue
        if token.column < column or _closes_at_block_column(token):
            break
    return items, pos


def read_block(
    tokens: Tuple[Token, ...],
    pos: int,
    column: int,
    kind: BlockKind,
    context: LayoutContext,
    classify: ItemClassifier,
) -> Tuple[LayoutBlock, int]:
    """Read a nested block and classify its items."""
    opener = tokens[pos - 1]
    raw_items, pos = read_block_items(tokens, pos, column, kind, context, classify)
    items = tuple(classify(segments, kind) for segments in raw_items)
    return LayoutBlock(opener=opener, block_kind=kind, column=column, items=items), pos
