# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Text diff helpers for reporting formatting changes."""

from __future__ import annotations

import difflib


def unified_diff(original: str, formatted: str, filename: str, context: int = 3) -> str:
    """Unified diff between two versions of one file.

    Both sides are labelled with ``filename``; an empty string means the
    versions are identical.
    """
    lines = difflib.unified_diff(
        original.splitlines(keepends=True),
        formatted.splitlines(keepends=True),
        fromfile=filename,
        tofile=filename,
        n=context,
    )
    out = []
    for line in lines:
        out.append(line if line.endswith("\n") else line + "\n")
    return "".join(out)
