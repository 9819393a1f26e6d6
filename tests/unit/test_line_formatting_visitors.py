# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for line formatting: trailing whitespace and the final newline.

Tests the LineFormattingVisitor implementation for handling
line-level formatting rules:

- Trailing whitespace is removed outside multi-line tokens and comments
- Non-empty text ends with exactly one newline in its own newline style
"""

from hsfmt.line_formatting_visitors import LineFormattingVisitor, protected_ranges
from hsfmt.tokenizer import tokenize


class TestTrailingWhitespace:
    """Test trailing whitespace edits."""

    def test_removes_trailing_spaces_and_tabs(self):
        """Test spaces and tabs at line ends are removed.

        Given: Lines ending in spaces and a tab
        When: The visitor runs
        Then: The edited text has no trailing whitespace
        """
        visitor = LineFormattingVisitor("a = 1   \nb = 2\t\nc = 3\n")
        assert visitor.apply_edits() == "a = 1\nb = 2\nc = 3\n"
        assert len(visitor.edits_of("trailing_whitespace")) == 2

    def test_crlf_lines(self):
        """Test whitespace before CRLF is removed and CRLF kept."""
        visitor = LineFormattingVisitor("a = 1  \r\n", newline="\r\n")
        assert visitor.apply_edits() == "a = 1\r\n"

    def test_protected_block_comment(self):
        """Test whitespace inside a multi-line block comment is kept.

        Given: A block comment whose first line ends with spaces
        When: The visitor runs with the comment's range protected
        Then: The comment is untouched
        """
        text = "{- note  \n   more -}\nx = 1\n"
        visitor = LineFormattingVisitor(text, "\n", protected_ranges(tokenize(text)))
        assert visitor.edits == []
        assert visitor.apply_edits() == text

    def test_clean_text_has_no_edits(self):
        """Test well-formed text produces no edits."""
        assert LineFormattingVisitor("x = 1\n").edits == []


class TestFinalNewline:
    """Test final newline edits."""

    def test_missing_final_newline_added(self):
        """Test a newline is appended when missing."""
        visitor = LineFormattingVisitor("x = 1")
        assert visitor.apply_edits() == "x = 1\n"
        assert len(visitor.edits_of("final_newline")) == 1

    def test_extra_blank_lines_collapsed(self):
        """Test trailing blank lines collapse to one newline."""
        assert LineFormattingVisitor("x = 1\n\n\n  \n").apply_edits() == "x = 1\n"

    def test_file_newline_style_used(self):
        """Test the final newline follows the file's style."""
        assert LineFormattingVisitor("x = 1", newline="\r\n").apply_edits() == "x = 1\r\n"

    def test_whitespace_only_text_becomes_empty(self):
        """Test text with no content becomes empty."""
        assert LineFormattingVisitor("  \n\n").apply_edits() == ""
        assert LineFormattingVisitor("").edits == []
