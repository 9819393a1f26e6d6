# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Shared pytest configuration and fixtures for the hsfmt test suite.

This module provides common fixtures, sample Haskell sources and helpers
used across all test modules. Fixtures defined here are automatically
available to all tests without explicit imports.
"""

import sys
from pathlib import Path
from typing import Dict
from unittest.mock import Mock

import pytest

# Add src to path for imports during testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hsfmt.formatting_rules_model import FormatConfig
from hsfmt.logging_jsonl import JsonlLogger


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (runs the whole pipeline)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (>1 second execution time)"
    )


# ============================================================================
# Sample Sources
# ============================================================================

TRAFFIC_LIGHT = "data TrafficLight = Red | Yellow | Green deriving (Eq, Ord)\n"

LONG_EXPORTS = (
    "module Data.Inventory.Warehouse.Reporting "
    "(summarizeStock, reorderThreshold, formatReport) where\n"
    "\n"
    "summarizeStock :: Int\n"
    "summarizeStock = 1\n"
)

UNSORTED_IMPORTS = (
    "module Foo (foo) where\n"
    "\n"
    "import Data.Text\n"
    "import Control.Exception\n"
    "\n"
    "foo :: Int\n"
    "foo = 1\n"
)

LAZY_RECORD = "module Foo (Foo (..)) where\n\ndata Foo = Foo { fooBar :: Bar }\n"

FORMATTED_MODULE = (
    "module Geometry (area) where\n"
    "\n"
    "import Data.List (sortOn)\n"
    "\n"
    "-- | Area of a rectangle.\n"
    "area :: Int -> Int -> Int\n"
    "area w h = w * h\n"
)

DERIVING_STRATEGIES = (
    "module Units (Meters (..)) where\n"
    "\n"
    "newtype Meters = Meters Double\n"
    "  deriving stock (Eq, Ord) deriving newtype Num deriving anyclass (NFData)\n"
)

UNNECESSARY_DERIVE = "data Color = Red | Green deriving (Eq, Show, Eq)\n"

OPERATOR_CHAIN = (
    "parseUser :: Parser User\n"
    "parseUser = User <$> field \"name\" <*> field \"email\" <*> field \"age\" <*> field \"address\"\n"
)

APPLICATION_LAYOUT = (
    "renderPage :: Html\n"
    "renderPage = layoutWith defaultOptions pageHeader pageNavigation pageContent pageFooter\n"
)

MULTILINE_SIGNATURE = (
    "processOrder :: (MonadIO m, MonadLogger m) => Config -> OrderId -> Customer -> Inventory"
    " -> m (Either OrderError Receipt)\n"
    "processOrder = placeOrder\n"
)

PINNED_PRAGMA = (
    "module Geometry (cube) where\n"
    "\n"
    "{-# INLINE square #-}\n"
    "\n"
    "cube :: Int -> Int\n"
    "cube n = n * square n\n"
    "\n"
    "square :: Int -> Int\n"
    "square n = n * n\n"
)

COMMENTED_EXPORTS = (
    "module Some.Very.Long.Module.Name.That.Is.Long (\n"
    "    -- * Section\n"
    "    foo, -- the foo\n"
    "    bar,\n"
    "    baz, quux, frobnicate, another) where\n"
)


@pytest.fixture
def default_config() -> FormatConfig:
    """Formatter options with every default."""
    return FormatConfig()


@pytest.fixture
def sample_sources() -> Dict[str, str]:
    """Named Haskell sources used by several suites."""
    return {
        "traffic_light": TRAFFIC_LIGHT,
        "long_exports": LONG_EXPORTS,
        "unsorted_imports": UNSORTED_IMPORTS,
        "lazy_record": LAZY_RECORD,
        "formatted": FORMATTED_MODULE,
        "deriving_strategies": DERIVING_STRATEGIES,
        "unnecessary_derive": UNNECESSARY_DERIVE,
        "operator_chain": OPERATOR_CHAIN,
        "application_layout": APPLICATION_LAYOUT,
        "multiline_signature": MULTILINE_SIGNATURE,
        "pinned_pragma": PINNED_PRAGMA,
        "commented_exports": COMMENTED_EXPORTS,
    }


# ============================================================================
# File System Fixtures
# ============================================================================

@pytest.fixture
def temp_hs_file(tmp_path: Path) -> Path:
    """Create a temporary Haskell file that is already formatted.

    Returns:
        Path to a temporary .hs file.
    """
    file_path = tmp_path / "Geometry.hs"
    file_path.write_text(FORMATTED_MODULE, encoding="utf-8")
    return file_path


@pytest.fixture
def hs_project_structure(tmp_path: Path) -> Path:
    """Create a small Haskell project tree for testing.

    Creates:
        - src/Foo.hs with imports out of order
        - src/Geometry.hs, already formatted
        - src/Broken.hs with an unterminated block comment
        - .stack-work/Generated.hs, which discovery must skip
        - README.md, which is not a Haskell source

    Returns:
        Path to the project root directory.
    """
    src = tmp_path / "src"
    src.mkdir()
    (src / "Foo.hs").write_text(UNSORTED_IMPORTS, encoding="utf-8")
    (src / "Geometry.hs").write_text(FORMATTED_MODULE, encoding="utf-8")
    (src / "Broken.hs").write_text("module Broken where\n\n{- never closed\n", encoding="utf-8")
    hidden = tmp_path / ".stack-work"
    hidden.mkdir()
    (hidden / "Generated.hs").write_text(UNSORTED_IMPORTS, encoding="utf-8")
    (tmp_path / "README.md").write_text("# project\n", encoding="utf-8")
    return tmp_path


# ============================================================================
# Mock Fixtures
# ============================================================================

@pytest.fixture
def mock_logger() -> Mock:
    """Create a mock JSONL logger for testing.

    Returns:
        Mock JsonlLogger with all methods stubbed.
    """
    logger = Mock(spec=JsonlLogger)
    logger.write = Mock()
    logger.close = Mock()
    return logger

