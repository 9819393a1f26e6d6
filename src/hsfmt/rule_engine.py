# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Rule engine: runs the formatting passes in their fixed order.

Each pass receives the tree the previous pass produced. The first pass that
fails stops the run; its PassError is returned and no partial tree escapes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Type

from returns.result import Failure, Result, Success

from .cst import Module
from .diagnostics import Diagnostic
from .errors import PassError
from .formatting_rules_model import DEFAULT_CONFIG, FormatConfig
from .formatting_visitor import RulePass
from .passes import DEFAULT_PASSES

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Outcome of a full engine run.

    Attributes:
        module: Tree after the last pass
        diagnostics: Diagnostics of every pass, in pass order
        applied_rules: Rules that changed something
        statistics: Counters keyed by pass name
    """
    module: Module
    diagnostics: List[Diagnostic] = field(default_factory=list)
    applied_rules: Set[str] = field(default_factory=set)
    statistics: Dict[str, dict] = field(default_factory=dict)


class RuleEngine:
    """Fixed, ordered sequence of rule passes."""

    def __init__(
        self,
        config: FormatConfig = DEFAULT_CONFIG,
        passes: Sequence[Type[RulePass]] = DEFAULT_PASSES,
        path: Optional[Path] = None,
    ):
        self.config = config
        self.passes = tuple(passes)
        self.path = path

    def run(self, module: Module) -> Result[EngineResult, PassError]:
        """Apply every pass in order."""
        result = EngineResult(module=module)
        for pass_type in self.passes:
            rule_pass = pass_type(self.config, self.path)
            started = time.perf_counter()
            outcome = rule_pass.run(result.module)
            elapsed_ms = (time.perf_counter() - started) * 1000
            if isinstance(outcome, Failure):
                error = outcome.failure()
                logger.debug("Pass %s failed after %.2fms: %s", rule_pass.name, elapsed_ms, error.message)
                return Failure(error)
            pass_result = outcome.unwrap()
            logger.debug(
                "Pass %s: %.2fms, %d diagnostics, rules %s",
                rule_pass.name, elapsed_ms, len(pass_result.diagnostics),
                sorted(pass_result.applied_rules) or "-",
            )
            result.module = pass_result.module
            result.diagnostics.extend(pass_result.diagnostics)
            result.applied_rules |= pass_result.applied_rules
            if pass_result.statistics:
                result.statistics[rule_pass.name] = pass_result.statistics
        return Success(result)


def run_passes(module: Module, config: FormatConfig = DEFAULT_CONFIG) -> Result[EngineResult, PassError]:
    return RuleEngine(config).run(module)
