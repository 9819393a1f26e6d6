# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Integration tests for hsfmt.

These tests run complete workflows: source text through every pass and the
renderer, batches of temporary files through the worker pool, and the
command-line interface with its exit codes.

Markers:
    - @pytest.mark.integration: All tests in this package
"""
