# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Lexical data model: tokens, trivia pieces and source spans.

Every character of the input belongs either to a token's text or to one of
its trivia pieces. Trivia on the same line after a token (up to the newline)
is that token's trailing trivia; everything else is the leading trivia of
the token that follows. Concatenating ``leading + text + trailing`` for all
tokens, in order, reproduces the input exactly.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Tuple

TAB_STOP = 8


class TokenKind(Enum):
    """Lexical token categories."""
    VARID = "varid"
    CONID = "conid"
    QVARID = "qvarid"
    QCONID = "qconid"
    VARSYM = "varsym"
    CONSYM = "consym"
    QVARSYM = "qvarsym"
    QCONSYM = "qconsym"
    RESERVED_ID = "reserved_id"
    RESERVED_OP = "reserved_op"
    INTEGER = "integer"
    FLOAT = "float"
    CHAR = "char"
    STRING = "string"
    PRAGMA = "pragma"
    SPECIAL = "special"
    QUASIQUOTE = "quasiquote"
    TICK = "tick"
    EOF = "eof"


class TriviaKind(Enum):
    """Non-semantic source material."""
    WHITESPACE = "whitespace"
    NEWLINE = "newline"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    DIRECTIVE = "directive"
    BOM = "bom"


COMMENT_KINDS = frozenset({
    TriviaKind.LINE_COMMENT,
    TriviaKind.BLOCK_COMMENT,
    TriviaKind.DIRECTIVE,
})

OPERATOR_KINDS = frozenset({
    TokenKind.VARSYM,
    TokenKind.CONSYM,
    TokenKind.QVARSYM,
    TokenKind.QCONSYM,
})

NAME_KINDS = frozenset({
    TokenKind.VARID,
    TokenKind.CONID,
    TokenKind.QVARID,
    TokenKind.QCONID,
})


@dataclass(frozen=True)
class TextSpan:
    """A half-open character range with its 0-based start line and column.

    Attributes:
        start: Start offset (inclusive)
        end: End offset (exclusive)
        line: 0-based line of ``start``
        column: 0-based column of ``start`` (tabs expanded)
    """
    start: int
    end: int
    line: int
    column: int

    def __post_init__(self):
        """Validate span ordering."""
        if self.start < 0 or self.end < self.start:
            raise ValueError("Invalid span: start must not be after end")

    @property
    def line1(self) -> int:
        """1-based line number for external reporting."""
        return self.line + 1

    @property
    def column1(self) -> int:
        """1-based column number for external reporting."""
        return self.column + 1

    def contains(self, offset: int) -> bool:
        """Check if offset is within this span."""
        return self.start <= offset < self.end

    def cover(self, other: "TextSpan") -> "TextSpan":
        """Smallest span covering both spans."""
        first = self if self.start <= other.start else other
        return TextSpan(first.start, max(self.end, other.end), first.line, first.column)


@dataclass(frozen=True)
class TriviaPiece:
    """One piece of trivia with its own position."""
    kind: TriviaKind
    text: str
    offset: int
    line: int
    column: int

    @property
    def is_comment(self) -> bool:
        return self.kind in COMMENT_KINDS

    @property
    def is_multiline(self) -> bool:
        return self.kind is not TriviaKind.NEWLINE and "\n" in self.text


@dataclass(frozen=True)
class Trivia:
    """Ordered sequence of trivia pieces attached to a token."""
    pieces: Tuple[TriviaPiece, ...] = ()

    @property
    def text(self) -> str:
        return "".join(piece.text for piece in self.pieces)

    @property
    def has_newline(self) -> bool:
        return any(piece.kind is TriviaKind.NEWLINE for piece in self.pieces)

    @property
    def comments(self) -> Tuple[TriviaPiece, ...]:
        return tuple(piece for piece in self.pieces if piece.is_comment)

    @property
    def has_comments(self) -> bool:
        return any(piece.is_comment for piece in self.pieces)

    @property
    def has_directive(self) -> bool:
        return any(piece.kind is TriviaKind.DIRECTIVE for piece in self.pieces)

    def lines(self) -> list[list[TriviaPiece]]:
        """Split pieces into line segments at NEWLINE pieces.

        The first segment holds whatever precedes the first newline and the
        last segment whatever follows the final newline; segments in between
        are complete lines.
        """
        segments: list[list[TriviaPiece]] = [[]]
        for piece in self.pieces:
            if piece.kind is TriviaKind.NEWLINE:
                segments.append([])
            else:
                segments[-1].append(piece)
        return segments

    @property
    def blank_lines(self) -> int:
        """Number of whitespace-only lines in this trivia."""
        return sum(1 for segment in self.lines()[1:-1] if not _has_content(segment))

    def comment_lines(self) -> list[list[TriviaPiece] | None]:
        """Own-line content of the trivia.

        Returns one entry per complete line: ``None`` for a blank line and
        the list of pieces (whitespace stripped) for a comment line.
        """
        result: list[list[TriviaPiece] | None] = []
        for segment in self.lines()[1:-1]:
            content = [piece for piece in segment if piece.kind is not TriviaKind.WHITESPACE]
            result.append(content or None)
        return result


def _has_content(segment: list[TriviaPiece]) -> bool:
    return any(piece.kind is not TriviaKind.WHITESPACE for piece in segment)


EMPTY_TRIVIA = Trivia()


@dataclass(frozen=True)
class Token:
    """A single non-trivia token with its attached trivia.

    Immutable once produced. ``line_start`` is true when no other token
    precedes this one on its line, which is what the layout rule looks at.
    """
    kind: TokenKind
    text: str
    offset: int
    line: int
    column: int
    leading: Trivia = field(default=EMPTY_TRIVIA)
    trailing: Trivia = field(default=EMPTY_TRIVIA)
    line_start: bool = False

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    @property
    def span(self) -> TextSpan:
        return TextSpan(self.offset, self.end, self.line, self.column)

    @property
    def is_multiline(self) -> bool:
        return "\n" in self.text

    @property
    def end_line(self) -> int:
        return self.line + self.text.count("\n")

    @property
    def is_operator(self) -> bool:
        return self.kind in OPERATOR_KINDS

    @property
    def is_name(self) -> bool:
        return self.kind in NAME_KINDS

    def is_keyword(self, *words: str) -> bool:
        return self.kind is TokenKind.RESERVED_ID and self.text in words

    def is_special(self, *chars: str) -> bool:
        return self.kind is TokenKind.SPECIAL and self.text in chars

    def is_reserved_op(self, *ops: str) -> bool:
        return self.kind is TokenKind.RESERVED_OP and self.text in ops

    @property
    def reindentable(self) -> bool:
        """Whether this token's line can be moved by changing its indentation.

        The indentation must be plain spaces following a real newline, with no
        multi-line comment between that newline and the token.
        """
        if not self.line_start or not self.leading.has_newline:
            return False
        last = self.leading.lines()[-1]
        for piece in last:
            if piece.kind is TriviaKind.WHITESPACE and "\t" in piece.text:
                return False
            if piece.is_multiline:
                return False
        return True

    @property
    def source_text(self) -> str:
        """Leading trivia, text and trailing trivia exactly as read."""
        return self.leading.text + self.text + self.trailing.text


def visual_width(text: str, start_column: int = 0) -> int:
    """Column reached after writing ``text`` from ``start_column``.

    Tabs advance to the next multiple of eight; carriage returns and byte
    order marks take no room.
    """
    column = start_column
    for char in text:
        if char == "\n":
            column = 0
        elif char == "\t":
            column = (column // TAB_STOP + 1) * TAB_STOP
        elif char in "\r\ufeff":
            continue
        else:
            column += 1
    return column


class LineIndex:
    """Offset to (line, column) lookups for one source text."""

    def __init__(self, text: str):
        self.text = text
        self._starts = [0]
        for index, char in enumerate(text):
            if char == "\n":
                self._starts.append(index + 1)

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._starts, offset) - 1

    def position(self, offset: int) -> Tuple[int, int]:
        """Return the 0-based (line, column) of ``offset``."""
        line = self.line_of(offset)
        start = self._starts[line]
        return line, visual_width(self.text[start:offset])

    def span(self, start: int, end: int) -> TextSpan:
        line, column = self.position(start)
        return TextSpan(start, end, line, column)

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def iter_lines(self) -> Iterator[Tuple[int, int, str]]:
        """Yield (line number, start offset, line text without newline)."""
        for number, start in enumerate(self._starts):
            end = self._starts[number + 1] - 1 if number + 1 < len(self._starts) else len(self.text)
            line = self.text[start:end]
            if line.endswith("\r"):
                line = line[:-1]
            yield number, start, line
