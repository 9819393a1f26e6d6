# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Lossless tokenizer for Haskell source text.

Produces the token sequence with trivia attached. Strings, character
literals, pragmas and quasi-quote bodies become single tokens so nothing
inside them is ever inspected or rewritten. Block comments nest; CPP
directives and a leading shebang are kept as DIRECTIVE trivia.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import List, Tuple, Union

from returns.result import Failure, Result, Success

from .errors import ParseAbort, ParseError, parse_failed
from .tokens import LineIndex, Token, TokenKind, Trivia, TriviaKind, TriviaPiece

logger = logging.getLogger(__name__)

RESERVED_IDS = frozenset({
    "case", "class", "data", "default", "deriving", "do", "else", "foreign",
    "if", "import", "in", "infix", "infixl", "infixr", "instance", "let",
    "module", "newtype", "of", "then", "type", "where", "_",
})

RESERVED_OPS = frozenset({
    "..", ":", "::", "=", "\\", "|", "<-", "->", "@", "~", "=>",
    "∷", "⇒", "→", "←", "∀",
})

SPECIAL_CHARS = "(),;[]`{}"

_ASCII_SYMBOLS = frozenset("!#$%&*+./<=>?@\\^|-~:")

_DIRECTIVE_RE = re.compile(
    r"#[ \t]*(?:if|ifdef|ifndef|elif|else|endif|define|undef|include|error|warning|line|pragma)\b"
)

_CHAR_RE = re.compile(
    r"'(?:[^'\\\n]|\\(?:\^.|[A-Z]{2,3}|x[0-9a-fA-F]+|o[0-7]+|[0-9]+|.))'"
)

_NUMBER_RE = re.compile(
    r"""
    0[xX][0-9a-fA-F_]*[0-9a-fA-F]
    | 0[oO][0-7_]*[0-7]
    | 0[bB][01_]*[01]
    | [0-9][0-9_]*(?:\.[0-9][0-9_]*)?(?:[eE][+-]?[0-9]+)?
    """,
    re.VERBOSE,
)

_QUASIQUOTE_RE = re.compile(r"\[(?:[A-Z][\w']*\.)*[a-z_][\w']*\|")

_QUASIQUOTES_ENABLED_RE = re.compile(r"\{-#\s*LANGUAGE\b[^#]*\bQuasiQuotes\b", re.IGNORECASE)


@dataclass(frozen=True)
class _RawToken:
    kind: TokenKind
    text: str
    offset: int


@dataclass(frozen=True)
class _RawTrivia:
    kind: TriviaKind
    text: str
    offset: int


_Item = Union[_RawToken, _RawTrivia]


def is_symbol_char(char: str) -> bool:
    """Check whether ``char`` may appear in an operator symbol."""
    if char in _ASCII_SYMBOLS:
        return True
    if ord(char) < 128:
        return False
    category = unicodedata.category(char)
    return category.startswith("S") or (category.startswith("P") and char not in "()[]{},;`'\"_")


def _is_ident_start(char: str) -> bool:
    return char.isalpha() or char == "_"


def _is_ident_char(char: str) -> bool:
    return char.isalnum() or char in "_'"


def quasi_quotes_enabled(text: str) -> bool:
    """Check for a LANGUAGE pragma enabling QuasiQuotes."""
    return _QUASIQUOTES_ENABLED_RE.search(text) is not None


class _Scanner:
    """Single forward scan over the text producing raw items."""

    def __init__(self, text: str, quasi_quotes: bool):
        self.text = text
        self.length = len(text)
        self.quasi_quotes = quasi_quotes
        self.items: List[_Item] = []

    def run(self) -> List[_Item]:
        pos = 0
        if self.text.startswith("\ufeff"):
            self.items.append(_RawTrivia(TriviaKind.BOM, "\ufeff", 0))
            pos = 1
        if self.text.startswith("#!", pos):
            pos = self._directive(pos)
        while pos < self.length:
            pos = self._scan(pos)
        return self.items

    def _trivia(self, kind: TriviaKind, start: int, end: int) -> int:
        self.items.append(_RawTrivia(kind, self.text[start:end], start))
        return end

    def _token(self, kind: TokenKind, start: int, end: int) -> int:
        self.items.append(_RawToken(kind, self.text[start:end], start))
        return end

    def _at_line_start(self, pos: int) -> bool:
        return pos == 0 or self.text[pos - 1] == "\n"

    def _scan(self, pos: int) -> int:
        text = self.text
        char = text[pos]

        if char == "\n":
            return self._trivia(TriviaKind.NEWLINE, pos, pos + 1)
        if char == "\r" and text.startswith("\r\n", pos):
            return self._trivia(TriviaKind.NEWLINE, pos, pos + 2)
        if char.isspace():
            end = pos
            while end < self.length and text[end].isspace() and text[end] != "\n" \
                    and not text.startswith("\r\n", end):
                end += 1
            return self._trivia(TriviaKind.WHITESPACE, pos, end)
        if char == "#" and self._at_line_start(pos) and _DIRECTIVE_RE.match(text, pos):
            return self._directive(pos)
        if text.startswith("{-#", pos):
            end = text.find("#-}", pos + 3)
            if end < 0:
                raise ParseAbort("unterminated pragma", pos)
            return self._token(TokenKind.PRAGMA, pos, end + 3)
        if text.startswith("{-", pos):
            return self._block_comment(pos)
        if char == '"':
            return self._string(pos)
        if char == "'":
            match = _CHAR_RE.match(text, pos)
            if match:
                return self._token(TokenKind.CHAR, pos, match.end())
            end = pos + 2 if text.startswith("''", pos) else pos + 1
            return self._token(TokenKind.TICK, pos, end)
        if char.isdigit():
            match = _NUMBER_RE.match(text, pos)
            end = match.end() if match else pos + 1
            word = text[pos:end]
            is_float = word[:2].lower() not in ("0x", "0o", "0b") and ("." in word or "e" in word.lower())
            return self._token(TokenKind.FLOAT if is_float else TokenKind.INTEGER, pos, end)
        if _is_ident_start(char):
            return self._identifier(pos)
        if char == "[" and self.quasi_quotes:
            match = _QUASIQUOTE_RE.match(text, pos)
            if match:
                end = text.find("|]", match.end())
                if end < 0:
                    raise ParseAbort("unterminated quasi-quote", pos)
                return self._token(TokenKind.QUASIQUOTE, pos, end + 2)
        if char in SPECIAL_CHARS:
            return self._token(TokenKind.SPECIAL, pos, pos + 1)
        if is_symbol_char(char):
            return self._symbol(pos)
        logger.debug("Unrecognised character %r at offset %d", char, pos)
        return self._token(TokenKind.VARSYM, pos, pos + 1)

    def _directive(self, pos: int) -> int:
        end = pos
        while True:
            newline = self.text.find("\n", end)
            if newline < 0:
                end = self.length
                break
            line_end = newline - 1 if newline > 0 and self.text[newline - 1] == "\r" else newline
            if line_end > pos and self.text[line_end - 1] == "\\":
                end = newline + 1
                continue
            end = line_end
            break
        return self._trivia(TriviaKind.DIRECTIVE, pos, end)

    def _block_comment(self, pos: int) -> int:
        depth = 0
        index = pos
        while index < self.length:
            if self.text.startswith("{-", index):
                depth += 1
                index += 2
            elif self.text.startswith("-}", index):
                depth -= 1
                index += 2
                if depth == 0:
                    return self._trivia(TriviaKind.BLOCK_COMMENT, pos, index)
            else:
                index += 1
        raise ParseAbort("unterminated block comment", pos)

    def _string(self, pos: int) -> int:
        text = self.text
        index = pos + 1
        while index < self.length:
            char = text[index]
            if char == '"':
                return self._token(TokenKind.STRING, pos, index + 1)
            if char == "\\":
                if index + 1 < self.length and text[index + 1] in " \t\r\n":
                    gap = index + 1
                    while gap < self.length and text[gap] in " \t\r\n":
                        gap += 1
                    if gap >= self.length or text[gap] != "\\":
                        raise ParseAbort("malformed string gap", index)
                    index = gap + 1
                else:
                    index += 2
                continue
            if char == "\n":
                break
            index += 1
        raise ParseAbort("unterminated string literal", pos)

    def _ident_end(self, pos: int) -> int:
        end = pos
        while end < self.length and _is_ident_char(self.text[end]):
            end += 1
        return end

    def _symbol_end(self, pos: int) -> int:
        end = pos
        while end < self.length and is_symbol_char(self.text[end]):
            end += 1
        return end

    def _identifier(self, pos: int) -> int:
        text = self.text
        end = self._ident_end(pos)
        word = text[pos:end]
        if not (word[0].isupper() or word[0].istitle()):
            kind = TokenKind.RESERVED_ID if word in RESERVED_IDS else TokenKind.VARID
            return self._token(kind, pos, end)

        # Qualified names: Mod.Sub.name, Mod.Con, Mod.+
        while end + 1 < self.length and text[end] == ".":
            following = text[end + 1]
            if following.isupper():
                end = self._ident_end(end + 1)
                continue
            if _is_ident_start(following):
                name_end = self._ident_end(end + 1)
                if text[end + 1:name_end] in RESERVED_IDS:
                    break
                return self._token(TokenKind.QVARID, pos, name_end)
            if is_symbol_char(following):
                sym_end = self._symbol_end(end + 1)
                symbol = text[end + 1:sym_end]
                if len(symbol) >= 2 and set(symbol) == {"-"}:
                    break
                kind = TokenKind.QCONSYM if symbol.startswith(":") else TokenKind.QVARSYM
                return self._token(kind, pos, sym_end)
            break
        kind = TokenKind.QCONID if "." in text[pos:end] else TokenKind.CONID
        return self._token(kind, pos, end)

    def _symbol(self, pos: int) -> int:
        end = self._symbol_end(pos)
        symbol = self.text[pos:end]
        if len(symbol) >= 2 and set(symbol) == {"-"}:
            line_end = self.text.find("\n", pos)
            if line_end < 0:
                line_end = self.length
            elif line_end > pos and self.text[line_end - 1] == "\r":
                line_end -= 1
            return self._trivia(TriviaKind.LINE_COMMENT, pos, line_end)
        if symbol in RESERVED_OPS:
            kind = TokenKind.RESERVED_OP
        elif symbol.startswith(":"):
            kind = TokenKind.CONSYM
        else:
            kind = TokenKind.VARSYM
        return self._token(kind, pos, end)


def _assemble(text: str, items: List[_Item]) -> Tuple[Token, ...]:
    """Attach trivia to tokens and compute positions."""
    index = LineIndex(text)

    def piece(raw: _RawTrivia) -> TriviaPiece:
        line, column = index.position(raw.offset)
        return TriviaPiece(raw.kind, raw.text, raw.offset, line, column)

    drafts: List[list] = []
    pending: List[TriviaPiece] = []
    trailing_open = False

    for item in items:
        if isinstance(item, _RawTrivia):
            current = piece(item)
            if trailing_open and current.kind is TriviaKind.NEWLINE:
                drafts[-1][2] = pending
                pending = [current]
                trailing_open = False
            else:
                pending.append(current)
        else:
            drafts.append([item, pending, []])
            pending = []
            trailing_open = True
    if trailing_open and drafts:
        drafts[-1][2] = pending
        pending = []

    tokens: List[Token] = []
    previous_end_line = -1
    for raw, leading, trailing in drafts:
        line, column = index.position(raw.offset)
        tokens.append(Token(
            kind=raw.kind,
            text=raw.text,
            offset=raw.offset,
            line=line,
            column=column,
            leading=Trivia(tuple(leading)),
            trailing=Trivia(tuple(trailing)),
            line_start=line > previous_end_line,
        ))
        previous_end_line = index.line_of(raw.offset + len(raw.text) - 1)

    eof_line, eof_column = index.position(len(text))
    tokens.append(Token(
        kind=TokenKind.EOF,
        text="",
        offset=len(text),
        line=eof_line,
        column=eof_column,
        leading=Trivia(tuple(pending)),
        line_start=True,
    ))
    return tuple(tokens)


def tokenize(text: str, *, quasi_quotes: bool | None = None) -> Tuple[Token, ...]:
    """Split ``text`` into tokens with attached trivia.

    The final token is always EOF and owns any trivia after the last real
    token.

    Args:
        text: Decoded source text
        quasi_quotes: Treat ``[name|...|]`` as opaque; detected from the
            LANGUAGE pragmas when omitted

    Returns:
        Tuple of tokens ending with an EOF token

    Raises:
        ParseAbort: On an unterminated comment, pragma, string or quasi-quote
    """
    if quasi_quotes is None:
        quasi_quotes = quasi_quotes_enabled(text)
    items = _Scanner(text, quasi_quotes).run()
    return _assemble(text, items)


def tokenize_safe(text: str) -> Result[Tuple[Token, ...], ParseError]:
    """Tokenize, returning a ParseError instead of raising."""
    try:
        return Success(tokenize(text))
    except ParseAbort as abort:
        line, column = LineIndex(text).position(abort.offset)
        return Failure(parse_failed(abort.message, line, column, abort.offset))


def reconstruct(tokens: Tuple[Token, ...]) -> str:
    """Concatenate tokens and trivia back into source text."""
    return "".join(token.source_text for token in tokens)
