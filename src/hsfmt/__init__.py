# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""hsfmt - Haskell style formatter and linter."""

__version__ = "0.1.0"
