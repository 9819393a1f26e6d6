# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the logging_jsonl module.

Tests cover:

- Log file creation and truncation
- Writing one or many records
- Values json cannot encode natively
- Notes about a file
- Context manager support and reopening after close
"""
import json
from pathlib import Path

from hsfmt.logging_jsonl import JsonlLogger


class TestJsonlLogger:
    """Test suite for the JsonlLogger class."""

    def test_init_creates_path_object(self, tmp_path):
        """Test string paths are stored as Path objects."""
        log_path = tmp_path / "run.jsonl"
        logger = JsonlLogger(str(log_path))
        assert isinstance(logger.path, Path)
        assert logger.path == log_path

    def test_start_fresh_truncates_and_creates_parents(self, tmp_path):
        """Test start_fresh makes parent directories and empties the file.

        Given: A log path under directories that do not exist yet
        When: start_fresh() is called twice with a write in between
        Then: The directories exist and the file is empty again
        """
        log_path = tmp_path / "logs" / "deep" / "run.jsonl"
        logger = JsonlLogger(log_path)
        logger.start_fresh()
        logger.write({"ev": "file", "path": "src/Foo.hs"})
        logger.start_fresh()
        assert log_path.read_text(encoding="utf-8") == ""

    def test_write_multiple_records(self, tmp_path):
        """Test each record is one JSON line.

        Given: Three file records with different outcomes
        When: They are written
        Then: The file holds three lines that decode to the same records
        """
        log_path = tmp_path / "run.jsonl"
        records = [
            {"ev": "file", "path": "src/A.hs", "status": "unchanged"},
            {"ev": "file", "path": "src/B.hs", "status": "changed", "mechanical": 2},
            {"ev": "file", "path": "src/C.hs", "status": "failed", "error": "unterminated block comment"},
        ]
        with JsonlLogger(log_path) as logger:
            for record in records:
                logger.write(record)

        lines = log_path.read_text(encoding="utf-8").strip().split("\n")
        assert [json.loads(line) for line in lines] == records

    def test_write_unicode(self, tmp_path):
        """Test non-ASCII text is written as-is."""
        log_path = tmp_path / "run.jsonl"
        record = {"path": "src/Données.hs", "message": "λ → ok"}
        with JsonlLogger(log_path) as logger:
            logger.write(record)
        content = log_path.read_text(encoding="utf-8")
        assert "λ" in content
        assert json.loads(content) == record

    def test_write_non_json_values_as_strings(self, tmp_path):
        """Test values such as paths are written through str()."""
        log_path = tmp_path / "run.jsonl"
        with JsonlLogger(log_path) as logger:
            logger.write({"path": Path("src") / "Foo.hs"})
        assert json.loads(log_path.read_text(encoding="utf-8"))["path"] == str(Path("src") / "Foo.hs")

    def test_append_notes(self, tmp_path):
        """Test each note becomes its own record."""
        log_path = tmp_path / "run.jsonl"
        with JsonlLogger(log_path) as logger:
            logger.append_notes("src/Foo.hs", ["imports sorted", "pragmas aligned"])
            logger.append_notes("src/Bar.hs", [])
        lines = log_path.read_text(encoding="utf-8").strip().split("\n")
        assert [json.loads(line) for line in lines] == [
            {"ev": "note", "path": "src/Foo.hs", "note": "imports sorted"},
            {"ev": "note", "path": "src/Foo.hs", "note": "pragmas aligned"},
        ]

    def test_close_and_reopen(self, tmp_path):
        """Test writing after close reopens the file in append mode."""
        log_path = tmp_path / "run.jsonl"
        logger = JsonlLogger(log_path)
        logger.write({"n": 1})
        logger.close()
        logger.write({"n": 2})
        logger.close()
        lines = log_path.read_text(encoding="utf-8").strip().split("\n")
        assert [json.loads(line)["n"] for line in lines] == [1, 2]
