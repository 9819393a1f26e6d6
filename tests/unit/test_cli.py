# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the CLI module helpers.

Tests cover:

- Configuration loading and its error reporting
- File discovery (directories, hidden directories, duplicates)
- Exit codes computed from batch outcomes
"""

from pathlib import Path

from returns.result import Failure, Success

from hsfmt import cli
from hsfmt.diagnostics import Diagnostic, DiagnosticKind
from hsfmt.errors import ConfigError, ParseError
from hsfmt.thread_safe_metrics import ThreadSafeMetrics
from hsfmt.tokens import TextSpan
from hsfmt.worker_context import FileOutcome, WorkerContext


def _context(mode, *outcomes):
    context = WorkerContext(metrics=ThreadSafeMetrics(), logger=None, diagnostics_logger=None, mode=mode)
    context.outcomes.extend(outcomes)
    return context


class TestLoadConfig:
    """Test configuration loading for commands."""

    def test_explicit_file(self, tmp_path):
        """Test an explicit file is loaded."""
        path = tmp_path / "style.json"
        path.write_text('{"indentWidth": 4}', encoding="utf-8")
        result = cli.load_config(path)
        assert isinstance(result, Success)
        assert result.unwrap().indent_width == 4

    def test_missing_explicit_file(self, tmp_path):
        """Test a missing explicit file is a configuration error."""
        result = cli.load_config(tmp_path / "absent.json")
        assert isinstance(result, Failure)
        assert isinstance(result.failure(), ConfigError)

    def test_invalid_value_names_the_key(self, tmp_path):
        """Test validation failures name the offending key.

        Given: A configuration with an out-of-range indent
        When: It is loaded
        Then: A ConfigError names indentWidth
        """
        path = tmp_path / "style.json"
        path.write_text('{"indentWidth": 0}', encoding="utf-8")
        error = cli.load_config(path).failure()
        assert error.key == "indentWidth"
        assert error.config_file == path
        assert "Invalid configuration" in error.message

    def test_defaults_without_path(self, tmp_path, monkeypatch):
        """Test no path and no hsfmt.json gives defaults."""
        monkeypatch.chdir(tmp_path)
        assert cli.load_config(None).unwrap().indent_width == 2


class TestDiscoverFiles:
    """Test source file discovery."""

    def test_directory_search(self, hs_project_structure):
        """Test directories yield sorted .hs files outside hidden directories.

        Given: A project with sources, a hidden build directory and a README
        When: The project root is searched
        Then: Only the three sources under src/ are found
        """
        found = cli.discover_files([hs_project_structure]).unwrap()
        assert [path.name for path in found] == ["Broken.hs", "Foo.hs", "Geometry.hs"]

    def test_explicit_file_kept(self, temp_hs_file):
        """Test explicit files are used as given."""
        assert cli.discover_files([temp_hs_file]).unwrap() == [temp_hs_file]

    def test_duplicates_removed(self, hs_project_structure):
        """Test a file named twice appears once, in first position."""
        foo = hs_project_structure / "src" / "Foo.hs"
        found = cli.discover_files([foo, hs_project_structure / "src"]).unwrap()
        assert found[0] == foo
        assert len(found) == 3

    def test_missing_path(self, tmp_path):
        """Test a missing path fails discovery."""
        result = cli.discover_files([tmp_path / "nope"])
        assert isinstance(result, Failure)
        assert result.failure().not_found


class TestReport:
    """Test exit codes computed from outcomes."""

    def test_clean_format_run(self):
        """Test unchanged files exit 0."""
        context = _context("format", FileOutcome(Path("A.hs"), 1, "unchanged"))
        assert cli._report(context, show_diagnostics=False, check=True) == cli.EXIT_OK

    def test_check_with_changes(self):
        """Test --check fails when a file would change."""
        context = _context("format", FileOutcome(Path("A.hs"), 1, "changed"))
        assert cli._report(context, show_diagnostics=False, check=True) == cli.EXIT_FINDINGS
        assert cli._report(context, show_diagnostics=False, check=False) == cli.EXIT_OK

    def test_failed_file(self):
        """Test a failed file makes the run fail."""
        error = ParseError(message="unterminated block comment", line=3, column=1)
        context = _context("format", FileOutcome(Path("A.hs"), 1, "failed", error=error))
        assert cli._report(context, show_diagnostics=False, check=False) == cli.EXIT_FINDINGS

    def test_lint_findings(self):
        """Test lint --check fails only when there are findings."""
        diagnostic = Diagnostic.create(DiagnosticKind.LONG_LINE, "long", TextSpan(0, 1, 0, 0))
        with_findings = _context("lint", FileOutcome(Path("A.hs"), 1, "unchanged", (diagnostic,)))
        without = _context("lint", FileOutcome(Path("B.hs"), 1, "unchanged"))
        assert cli._report(with_findings, show_diagnostics=True, check=True) == cli.EXIT_FINDINGS
        assert cli._report(without, show_diagnostics=True, check=True) == cli.EXIT_OK
