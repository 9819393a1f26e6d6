# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Logging setup and initialization for the formatter."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple

from .logging_jsonl import JsonlLogger


def default_log_path(directory: Path = Path(".")) -> Path:
    """``hsfmt_<timestamp>_log.jsonl`` in ``directory``."""
    timestamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')
    return directory / f"hsfmt_{timestamp}_log.jsonl"


def setup_loggers(log_path: Path) -> Tuple[JsonlLogger, JsonlLogger, Path]:
    """
    Initialize the run log and the diagnostics log.

    The diagnostics log is created next to ``log_path`` and shares its
    timestamp when the main log follows the ``hsfmt_<timestamp>_...`` naming.

    Args:
        log_path: Path for main log file

    Returns:
        Tuple of (main_logger, diagnostics_logger, diagnostics_log_path)
    """
    logger = JsonlLogger(log_path)
    logger.start_fresh()

    parts = log_path.name.split('_')
    if len(parts) >= 3 and parts[0] == "hsfmt":
        timestamp = parts[1]
    else:
        timestamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')

    diagnostics_log_path = log_path.parent / f"hsfmt_{timestamp}_diagnostics.log"
    diagnostics_logger = JsonlLogger(diagnostics_log_path)
    diagnostics_logger.start_fresh()

    return logger, diagnostics_logger, diagnostics_log_path


def configure_console_logging(verbose: bool) -> None:
    """Route library DEBUG records to stderr when ``verbose`` is set."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("hsfmt").setLevel(level)
