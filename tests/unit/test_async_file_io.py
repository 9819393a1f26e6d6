# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for async file I/O with Result types."""

import os

import pytest
from returns.result import Failure, Success

from hsfmt.async_file_io import read_bytes_safe, write_formatted


class TestReadBytes:
    """Test reading sources as raw bytes."""

    @pytest.mark.asyncio
    async def test_read_normal_file(self, tmp_path):
        """Test bytes come back exactly, including CRLF."""
        path = tmp_path / "Foo.hs"
        path.write_bytes(b"x = 1\r\ny = 2\r\n")

        result = await read_bytes_safe(path)

        assert isinstance(result, Success)
        assert result.unwrap() == b"x = 1\r\ny = 2\r\n"

    @pytest.mark.asyncio
    async def test_read_nonexistent_file(self, tmp_path):
        """Test a missing file is a not-found FileError.

        Given: A path with no file
        When: It is read
        Then: A FileError with not_found set comes back
        """
        result = await read_bytes_safe(tmp_path / "Missing.hs")

        assert isinstance(result, Failure)
        error = result.failure()
        assert error.not_found
        assert error.operation == "read"

    @pytest.mark.asyncio
    async def test_read_directory(self, tmp_path):
        """Test a directory is not readable as a source."""
        assert isinstance(await read_bytes_safe(tmp_path), Failure)


class TestWriteFormatted:
    """Test replacing a module with its formatted text."""

    @pytest.mark.asyncio
    async def test_replaces_existing(self, tmp_path):
        """Test the file is replaced and no temp files remain.

        Given: An existing module
        When: Its formatted text is written
        Then: The file holds the new text and the directory has one file
        """
        path = tmp_path / "Foo.hs"
        path.write_text("x  =  1\n", encoding="utf-8")

        result = await write_formatted(path, "x = 1\n")

        assert isinstance(result, Success)
        assert path.read_text(encoding="utf-8") == "x = 1\n"
        assert [p.name for p in tmp_path.iterdir()] == ["Foo.hs"]

    @pytest.mark.asyncio
    async def test_newlines_written_verbatim(self, tmp_path):
        """Test CRLF and LF are not translated on write."""
        path = tmp_path / "Crlf.hs"
        path.write_bytes(b"x = 1\r\n")
        await write_formatted(path, "x = 1\r\ny = 2\n")
        assert path.read_bytes() == b"x = 1\r\ny = 2\n"

    @pytest.mark.asyncio
    async def test_missing_source_not_recreated(self, tmp_path):
        """Test a module deleted before the write is a not-found failure."""
        path = tmp_path / "Gone.hs"
        result = await write_formatted(path, "x = 1\n")
        assert isinstance(result, Failure)
        assert result.failure().not_found
        assert not path.exists()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    @pytest.mark.asyncio
    async def test_permissions_kept(self, tmp_path):
        """Test the formatted file keeps the source's permission bits."""
        path = tmp_path / "Foo.hs"
        path.write_text("x  =  1\n", encoding="utf-8")
        path.chmod(0o640)
        await write_formatted(path, "x = 1\n")
        assert path.stat().st_mode & 0o777 == 0o640
