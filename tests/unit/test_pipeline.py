# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the text-in, text-out pipeline.

Tests cover:

- Decoding bytes and rejecting invalid UTF-8
- Formatting results and the diagnostics that come with them
- Parse failures with file paths attached
- Linting without rewriting
- The optional self-check
"""

from pathlib import Path

import pytest
from returns.result import Failure, Success

from hsfmt.diagnostics import DiagnosticKind, mechanical
from hsfmt.errors import EncodingError, ParseError
from hsfmt.formatting_rules_model import FormatConfig
from hsfmt.pipeline import (
    FormatResult,
    check_idempotent,
    decode_source,
    format_source,
    lint_source,
)


def _format(source, config=None, **kwargs) -> FormatResult:
    result = format_source(source, config or FormatConfig(), **kwargs)
    assert isinstance(result, Success), result
    return result.unwrap()


def _kinds(diagnostics):
    return [diagnostic.kind for diagnostic in diagnostics]


class TestDecodeSource:
    """Test UTF-8 decoding."""

    def test_valid_bytes(self):
        """Test UTF-8 bytes decode to text."""
        assert decode_source("x = \"é\"\n".encode("utf-8")).unwrap() == "x = \"é\"\n"

    def test_invalid_bytes_report_offset(self):
        """Test invalid UTF-8 fails with the byte offset.

        Given: Bytes with an invalid sequence at offset 4
        When: They are decoded
        Then: An EncodingError carries offset 4 and the path
        """
        result = decode_source(b"x = \xff\n", Path("Bad.hs"))
        assert isinstance(result, Failure)
        error = result.failure()
        assert isinstance(error, EncodingError)
        assert error.offset == 4
        assert error.path == Path("Bad.hs")

    def test_byte_order_mark_kept(self):
        """Test a leading BOM is accepted and kept."""
        text = decode_source(b"\xef\xbb\xbfx = 1\n").unwrap()
        assert text.startswith("\ufeff")

    def test_lone_surrogate_rejected(self):
        """Test text that cannot be encoded as UTF-8 is rejected."""
        assert isinstance(decode_source("x = \"\ud800\"\n"), Failure)


class TestFormatSource:
    """Test formatting results."""

    def test_formatted_text_unchanged(self, sample_sources):
        """Test already formatted text comes back unchanged.

        Given: A module that follows the style
        When: It is formatted
        Then: The text is identical and no fixes are reported
        """
        source = sample_sources["formatted"]
        result = _format(source)
        assert result.text == source
        assert not result.changed
        assert mechanical(result.diagnostics) == ()

    def test_bytes_input(self, sample_sources):
        """Test bytes and text give the same result."""
        source = sample_sources["formatted"]
        assert _format(source.encode("utf-8")).text == source

    def test_trailing_whitespace_removed(self):
        """Test trailing whitespace is removed and reported.

        Given: A signature followed by spaces
        When: It is formatted
        Then: The spaces are gone and a TrailingWhitespace fix is reported
        """
        result = _format("x :: Int   \nx = 1\n")
        assert result.text == "x :: Int\nx = 1\n"
        assert result.changed
        assert DiagnosticKind.TRAILING_WHITESPACE in _kinds(result.diagnostics)

    def test_final_newline_added(self):
        """Test a missing final newline is added and reported."""
        result = _format("x :: Int\nx = 1")
        assert result.text == "x :: Int\nx = 1\n"
        assert DiagnosticKind.FINAL_NEWLINE in _kinds(result.diagnostics)

    def test_end_of_line_comment_spacing(self):
        """Test one space before an end-of-line comment becomes two."""
        result = _format("x :: Int\nx = 1 -- one\n")
        assert result.text == "x :: Int\nx = 1  -- one\n"
        assert DiagnosticKind.END_OF_LINE_COMMENT_SPACING in _kinds(result.diagnostics)

    def test_wide_comment_gap_narrowed(self):
        """Test a wide gap before an end-of-line comment becomes two spaces.

        Given: Three spaces before a trailing comment
        When: The module is formatted with default options
        Then: Exactly two spaces remain and the fix is reported
        """
        result = _format("f :: Int -> Int\nf x = x   -- comment\n")
        assert result.text == "f :: Int -> Int\nf x = x  -- comment\n"
        assert DiagnosticKind.END_OF_LINE_COMMENT_SPACING in _kinds(result.diagnostics)
        assert check_idempotent(result.text)

    def test_comment_alignment_preserved_on_request(self):
        """Test preserveCommentAlignment keeps a wider gap."""
        source = "f :: Int -> Int\nf x = x   -- comment\n"
        result = _format(source, FormatConfig(preserve_comment_alignment=True))
        assert result.text == source
        assert mechanical(result.diagnostics) == ()

    def test_header_pragmas_sorted(self):
        """Test LANGUAGE pragmas are sorted by extension and aligned.

        Given: Two LANGUAGE pragmas out of order
        When: The module is formatted
        Then: BangPatterns comes first, closing delimiters line up
        """
        source = (
            "{-# LANGUAGE TupleSections #-}\n"
            "{-# LANGUAGE BangPatterns #-}\n"
            "\n"
            "module A (a) where\n"
            "\n"
            "a :: Int\n"
            "a = 1\n"
        )
        result = _format(source)
        assert result.text.startswith(
            "{-# LANGUAGE BangPatterns  #-}\n"
            "{-# LANGUAGE TupleSections #-}\n"
        )
        assert DiagnosticKind.PRAGMA_ORDER in _kinds(result.diagnostics)

    def test_crlf_preserved(self):
        """Test CRLF files stay CRLF."""
        result = _format("x :: Int\r\nx = 1\r\n")
        assert result.text == "x :: Int\r\nx = 1\r\n"

    def test_advisories_reported_alongside_text(self, sample_sources):
        """Test advisories come with the formatted text, not instead of it."""
        result = _format(sample_sources["lazy_record"])
        assert result.text == sample_sources["lazy_record"]
        assert DiagnosticKind.MISSING_STRICTNESS_ANNOTATION in _kinds(result.diagnostics)

    def test_diagnostics_sorted(self, sample_sources):
        """Test diagnostics are ordered by position."""
        result = _format(sample_sources["unsorted_imports"])
        starts = [d.span.start for d in result.diagnostics]
        assert starts == sorted(starts)


class TestFormatFailures:
    """Test failures of the pipeline."""

    def test_parse_error_with_path(self):
        """Test a read failure is a ParseError labelled with the path.

        Given: A module with an unterminated block comment
        When: It is formatted with a path
        Then: A ParseError with that path comes back and no text
        """
        result = format_source("module A where\n{- open\n", path=Path("A.hs"))
        assert isinstance(result, Failure)
        error = result.failure()
        assert isinstance(error, ParseError)
        assert error.path == Path("A.hs")

    def test_encoding_error(self):
        """Test invalid bytes fail before reading."""
        result = format_source(b"\xc3\x28")
        assert isinstance(result.failure(), EncodingError)


class TestLintSource:
    """Test linting through the pipeline."""

    def test_lint_reports_without_rewriting(self):
        """Test lint returns advisories only.

        Given: A clause without a signature and with trailing spaces
        When: It is linted
        Then: MissingSignature and TrailingWhitespace are reported
        """
        result = lint_source("main = pure ()  \n-- end\n")
        assert isinstance(result, Success)
        kinds = _kinds(result.unwrap())
        assert DiagnosticKind.MISSING_SIGNATURE in kinds
        assert DiagnosticKind.TRAILING_WHITESPACE in kinds

    def test_lint_parse_error(self):
        """Test lint fails on unreadable input."""
        result = lint_source("x = \"open\n", path=Path("B.hs"))
        assert isinstance(result, Failure)
        assert result.failure().path == Path("B.hs")


class TestSelfCheck:
    """Test the self-check option."""

    @pytest.mark.parametrize("name", [
        "traffic_light", "long_exports", "unsorted_imports", "lazy_record",
        "unnecessary_derive", "application_layout", "pinned_pragma",
    ])
    def test_self_check_passes(self, sample_sources, name):
        """Test the sample sources format idempotently."""
        result = format_source(sample_sources[name], self_check=True)
        assert isinstance(result, Success)
        assert check_idempotent(sample_sources[name])

    def test_check_idempotent_false_for_unreadable_input(self):
        """Test unreadable input is not reported as idempotent."""
        assert not check_idempotent("{- open")
