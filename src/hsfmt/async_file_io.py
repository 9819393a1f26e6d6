# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Reading Haskell sources and writing formatted modules back.

Sources are read as bytes so that decoding, and any EncodingError, belongs to
the formatter. A formatted module replaces its source through a temp file in
the same directory and a rename, keeping the source's permission bits, so an
interrupted write never leaves a half-formatted module behind. Both
functions return Result types.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path

import aiofiles
import aiofiles.os
from returns.result import Failure, Result, Success

from .errors import FileError, file_not_found, permission_denied

logger = logging.getLogger(__name__)


def _os_error(path: Path, operation: str, error: OSError) -> FileError:
    return FileError(
        message=f"Failed to {operation} {path}: {error}",
        path=path,
        operation=operation,
        original_error=str(error),
    )


async def read_bytes_safe(path: Path) -> Result[bytes, FileError]:
    """Raw bytes of a source file."""
    try:
        async with aiofiles.open(path, mode='rb') as f:
            return Success(await f.read())
    except FileNotFoundError:
        return Failure(file_not_found(path))
    except PermissionError:
        return Failure(permission_denied(path, "read"))
    except IsADirectoryError as e:
        return Failure(FileError(message=f"Not a file: {path}", path=path, operation="read", original_error=str(e)))
    except OSError as e:
        return Failure(_os_error(path, "read", e))


async def write_formatted(path: Path, text: str) -> Result[None, FileError]:
    """Replace ``path`` with ``text`` atomically.

    The text is written as UTF-8 with its newlines exactly as given, and
    the new file gets the permission bits of the one it replaces.
    """
    temp_path = None
    try:
        mode = stat.S_IMODE((await aiofiles.os.stat(path)).st_mode)
        fd, name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
        os.close(fd)
        temp_path = Path(name)
        async with aiofiles.open(temp_path, mode='w', encoding='utf-8', newline='') as f:
            await f.write(text)
        os.chmod(temp_path, mode)
        await aiofiles.os.replace(temp_path, path)
        temp_path = None
        return Success(None)
    except FileNotFoundError:
        return Failure(file_not_found(path, "write"))
    except PermissionError:
        return Failure(permission_denied(path, "write"))
    except OSError as e:
        return Failure(_os_error(path, "write", e))
    finally:
        if temp_path is not None:
            try:
                await aiofiles.os.remove(temp_path)
            except OSError as e:
                logger.debug("Could not remove temp file %s: %s", temp_path, e)
