# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================
"""
Line formatting visitor for Haskell text.

This module provides the visitor for line-level rules: trailing whitespace
removal and final newline normalization. Whitespace inside multi-line
tokens (string gaps, quasi-quotes) and multi-line comments is protected
and never touched.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Iterable, List, Literal, Sequence, Tuple

from .tokens import Token

EditType = Literal["trailing_whitespace", "final_newline"]


@dataclass
class LineFormatEdit:
    """Represents a line formatting edit."""
    start_offset: int
    end_offset: int
    new_text: str
    edit_type: EditType


def protected_ranges(tokens: Iterable[Token]) -> List[Tuple[int, int]]:
    """Offsets of multi-line tokens and multi-line trivia pieces."""
    ranges = []
    for token in tokens:
        for piece in token.leading.pieces + token.trailing.pieces:
            if piece.is_multiline:
                ranges.append((piece.offset, piece.offset + len(piece.text)))
        if token.is_multiline:
            ranges.append((token.offset, token.end))
    ranges.sort()
    return ranges


class LineFormattingVisitor:
    """
    Visitor that applies line formatting rules.

    Handles:
    - Trailing whitespace removal from every line outside protected ranges
    - Exactly one final newline (in the file's newline style) for non-empty text
    """

    def __init__(
        self,
        source_text: str,
        newline: str = "\n",
        protected: Sequence[Tuple[int, int]] = (),
    ):
        """Initialize the visitor with the text, its newline style and protected ranges."""
        self.source_text = source_text
        self.newline = newline
        self.protected = sorted(protected)
        self._protected_starts = [start for start, _ in self.protected]
        self.edits: list[LineFormatEdit] = []
        self._process_line_formatting()

    def _process_line_formatting(self) -> None:
        content_end = self._process_final_newline()
        self._process_trailing_whitespace(content_end)

    def _is_protected(self, start: int, end: int) -> bool:
        index = bisect.bisect_right(self._protected_starts, end) - 1
        while index >= 0:
            range_start, range_end = self.protected[index]
            if range_start < end and start < range_end:
                return True
            if range_end <= start:
                break
            index -= 1
        return False

    def _process_trailing_whitespace(self, content_end: int) -> None:
        """Remove trailing spaces and tabs from all lines."""
        offset = 0
        for line in self.source_text.split("\n"):
            line_length = len(line)
            body = line[:-1] if line.endswith("\r") else line
            trimmed = body.rstrip(" \t")
            start = offset + len(trimmed)
            end = offset + len(body)
            if end > start and end <= content_end and not self._is_protected(start, end):
                self.edits.append(LineFormatEdit(
                    start_offset=start,
                    end_offset=end,
                    new_text="",
                    edit_type="trailing_whitespace",
                ))
            offset += line_length + 1

    def _process_final_newline(self) -> int:
        """Ensure non-empty text ends with exactly one newline.

        Returns the offset where content ends; whitespace after it is
        replaced by the final newline edit.
        """
        text = self.source_text
        content_end = len(text.rstrip(" \t\r\n"))
        if content_end == 0:
            if text:
                self.edits.append(LineFormatEdit(0, len(text), "", "final_newline"))
            return 0
        if text[content_end:] != self.newline:
            self.edits.append(LineFormatEdit(
                start_offset=content_end,
                end_offset=len(text),
                new_text=self.newline,
                edit_type="final_newline",
            ))
        return content_end

    def edits_of(self, edit_type: EditType) -> list[LineFormatEdit]:
        return [edit for edit in self.edits if edit.edit_type == edit_type]

    def apply_edits(self) -> str:
        """Apply all collected edits to produce the formatted text."""
        if not self.edits:
            return self.source_text

        # Apply from end to start to preserve offsets
        result = self.source_text
        for edit in sorted(self.edits, key=lambda e: e.start_offset, reverse=True):
            result = result[:edit.start_offset] + edit.new_text + result[edit.end_offset:]
        return result
