# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for logging setup."""

import logging

from hsfmt.logging_jsonl import JsonlLogger
from hsfmt.logging_setup import configure_console_logging, default_log_path, setup_loggers


class TestLoggingSetup:
    """Test log path naming and logger creation."""

    def test_default_log_path(self, tmp_path):
        """Test the default name carries a UTC timestamp."""
        path = default_log_path(tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("hsfmt_")
        assert path.name.endswith("_log.jsonl")

    def test_diagnostics_log_shares_timestamp(self, tmp_path):
        """Test the diagnostics log reuses the main log's timestamp.

        Given: A main log named hsfmt_<timestamp>_log.jsonl
        When: Loggers are set up
        Then: Both files exist and the diagnostics log has the same timestamp
        """
        log_path = tmp_path / "hsfmt_20250101T000000Z_log.jsonl"
        main_logger, diagnostics_logger, diagnostics_path = setup_loggers(log_path)
        try:
            assert isinstance(main_logger, JsonlLogger)
            assert isinstance(diagnostics_logger, JsonlLogger)
            assert diagnostics_path == tmp_path / "hsfmt_20250101T000000Z_diagnostics.log"
            assert log_path.exists() and diagnostics_path.exists()
        finally:
            main_logger.close()
            diagnostics_logger.close()

    def test_custom_log_name(self, tmp_path):
        """Test a custom log name still gets a diagnostics log beside it."""
        main_logger, diagnostics_logger, diagnostics_path = setup_loggers(tmp_path / "run.jsonl")
        main_logger.close()
        diagnostics_logger.close()
        assert diagnostics_path.parent == tmp_path
        assert diagnostics_path.name.startswith("hsfmt_")
        assert diagnostics_path.name.endswith("_diagnostics.log")

    def test_console_logging_level(self):
        """Test verbose mode lowers the package logger to DEBUG."""
        configure_console_logging(True)
        assert logging.getLogger("hsfmt").level == logging.DEBUG
        configure_console_logging(False)
        assert logging.getLogger("hsfmt").level == logging.WARNING
