# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the read-only linter.

Tests cover:

- Declaration checks (signatures, records in sums, eta reduction)
- Text checks (trailing whitespace, tabs)
- Import advisories
- Switching checks off through the configuration
"""

from hsfmt.diagnostics import DiagnosticKind
from hsfmt.formatting_rules_model import FormatConfig
from hsfmt.linter import Linter, eta_reduction, lint_module
from hsfmt.reader import parse_source


def _lint(text, config=None):
    module = parse_source(text).unwrap()
    return lint_module(module, text, config or FormatConfig())


def _of(diagnostics, kind):
    return [d for d in diagnostics if d.kind is kind]


class TestDeclarationChecks:
    """Test checks over top-level declarations."""

    def test_missing_signature(self):
        """Test a binding without a signature is reported once.

        Given: Two clauses of an unsigned function
        When: The module is linted
        Then: One MissingSignature names the function
        """
        found = _of(_lint("go 0 = 1\ngo n = n\n"), DiagnosticKind.MISSING_SIGNATURE)
        assert len(found) == 1
        assert found[0].message == "Top-level binding 'go' has no type signature"

    def test_signed_binding_not_reported(self):
        """Test a signature silences the check."""
        assert _of(_lint("go :: Int\ngo = 1\n"), DiagnosticKind.MISSING_SIGNATURE) == []

    def test_record_in_sum_type(self):
        """Test each record constructor of a sum type is reported."""
        text = "data Shape = Circle { radius :: !Double } | Square { side :: !Double }\n"
        found = _of(_lint(text), DiagnosticKind.RECORD_IN_SUM_TYPE)
        assert len(found) == 2
        assert "'Circle'" in found[0].message

    def test_single_record_not_a_sum(self):
        """Test a single record constructor is fine."""
        text = "data Circle = Circle { radius :: !Double }\n"
        assert _of(_lint(text), DiagnosticKind.RECORD_IN_SUM_TYPE) == []

    def test_eta_reducible(self):
        """Test a single-clause eta-reducible equation gets a suggested fix.

        Given: f x = g x
        When: The module is linted
        Then: EtaReducible suggests f = g
        """
        found = _of(_lint("f :: Int -> Int\nf x = g x\n"), DiagnosticKind.ETA_REDUCIBLE)
        assert len(found) == 1
        assert found[0].suggested_fix is not None
        assert found[0].suggested_fix.replacement == "f = g"

    def test_eta_not_reducible_with_operator(self):
        """Test an argument after an operator is not eta-reducible."""
        module = parse_source("f x = 1 + x\n").unwrap()
        assert eta_reduction(module.declarations[0]) is None

    def test_eta_not_reducible_when_argument_reused(self):
        """Test the argument may not appear elsewhere in the body."""
        module = parse_source("f x = g x x\n").unwrap()
        assert eta_reduction(module.declarations[0]) is None


class TestTextChecks:
    """Test checks over raw text."""

    def test_trailing_whitespace(self):
        """Test trailing spaces are reported without being removed."""
        text = "x :: Int  \nx = 1\n"
        found = _of(_lint(text), DiagnosticKind.TRAILING_WHITESPACE)
        assert len(found) == 1
        assert found[0].span.line == 0

    def test_tab_character(self):
        """Test a tab between tokens is reported once per line."""
        found = _of(_lint("x :: Int\nx =\t1\t+ 2\n"), DiagnosticKind.TAB_CHARACTER)
        assert len(found) == 1
        assert found[0].span.line == 1

    def test_long_line(self):
        """Test lines over the limit are reported."""
        config = FormatConfig(max_line_length=20)
        found = _of(_lint("x :: Int\nx = 1 + 2 + 3 + 4 + 5 + 6\n", config), DiagnosticKind.LONG_LINE)
        assert len(found) == 1


class TestImportAdvisories:
    """Test export and import advisories."""

    def test_missing_export_and_import_lists(self):
        """Test a header without exports and a bare import are reported."""
        found = _lint("module A where\n\nimport Data.Maybe\n\nx :: Int\nx = 1\n")
        kinds = {d.kind for d in found}
        assert DiagnosticKind.MISSING_EXPORT_LIST in kinds
        assert DiagnosticKind.MISSING_IMPORT_LIST in kinds

    def test_qualified_import_needs_no_list(self):
        """Test qualified imports are never asked for a list."""
        found = _lint("module A (x) where\n\nimport qualified Data.Map as M\n\nx :: Int\nx = 1\n")
        assert _of(found, DiagnosticKind.MISSING_IMPORT_LIST) == []

    def test_large_unqualified_import(self):
        """Test an import list at the threshold is reported."""
        config = FormatConfig(qualification_threshold=3)
        text = "module A (x) where\n\nimport Data.List (sort, nub, group)\n\nx :: Int\nx = 1\n"
        found = _of(_lint(text, config), DiagnosticKind.LARGE_UNQUALIFIED_IMPORT)
        assert len(found) == 1
        assert "3 names" in found[0].message


class TestConfiguration:
    """Test checks switched by the configuration."""

    def test_disabled_checks_filtered(self):
        """Test only the enabled checks report.

        Given: Source with a missing signature and trailing whitespace
        When: Only trailing-whitespace is enabled
        Then: MissingSignature is not reported
        """
        config = FormatConfig(enabled_lint_checks=frozenset({"trailing-whitespace"}))
        found = _lint("main = pure ()  \n-- end\n", config)
        assert {d.kind for d in found} == {DiagnosticKind.TRAILING_WHITESPACE}

    def test_clean_module(self, sample_sources):
        """Test a formatted module lints clean."""
        text = sample_sources["formatted"]
        assert Linter().lint(parse_source(text).unwrap(), text) == ()

    def test_results_sorted(self):
        """Test findings are in position order."""
        found = _lint("b_x = 1\na_y = 2\n")
        starts = [d.span.start for d in found]
        assert starts == sorted(starts)
