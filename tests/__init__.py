# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""hsfmt test suite.

Tests are organized into unit tests (fast, isolated) and integration tests
(the whole pipeline, the worker pool and the CLI over temporary files).

Test Organization:
    - unit/: Fast, isolated unit tests
    - integration/: End-to-end tests over real files
    - conftest.py: Shared pytest fixtures and sample sources

Running Tests:
    # All tests
    pytest

    # Unit tests only (fast)
    pytest tests/unit/
"""
