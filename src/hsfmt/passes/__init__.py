# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Rule engine passes, in the order the engine runs them."""

from .indentation_pass import IndentationPass
from .alignment_pass import AlignmentPass
from .import_order_pass import ImportOrderPass
from .pragma_pass import PragmaPass
from .strictness_deriving_pass import StrictnessDerivingPass
from .naming_pass import NamingPass

DEFAULT_PASSES = (
    IndentationPass,
    AlignmentPass,
    ImportOrderPass,
    PragmaPass,
    StrictnessDerivingPass,
    NamingPass,
)

__all__ = [
    "DEFAULT_PASSES",
    "IndentationPass",
    "AlignmentPass",
    "ImportOrderPass",
    "PragmaPass",
    "StrictnessDerivingPass",
    "NamingPass",
]
