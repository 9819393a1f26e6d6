# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Type-safe formatter configuration using Pydantic.

This module defines FormatConfig, the immutable option set shared by every
pass, the renderer and the linter. JSON files use the camelCase option
names (``indentWidth``, ``maxLineLength``, ...); Python callers may use
either spelling.
"""

from pathlib import Path
from typing import FrozenSet, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .diagnostics import ALL_CHECKS

DEFAULT_CONFIG_FILENAME = "hsfmt.json"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class NamingCaseRules(_FrozenModel):
    """Identifier case policy per identifier category."""
    function: str = Field(r"^_?[a-z][A-Za-z0-9']*$", description="Functions and variables: lower camel case")
    type: str = Field(r"^[A-Z][A-Za-z0-9']*$", description="Types and classes: upper camel case")
    constructor: str = Field(r"^[A-Z][A-Za-z0-9']*$", description="Data constructors: upper camel case")
    field: str = Field(r"^_?[a-z][A-Za-z0-9']*$", description="Record fields: lower camel case")
    max_abbreviation_length: int = Field(
        2, ge=1, alias="maxAbbreviationLength",
        description="Longest all-caps run allowed inside a longer name",
    )


class AlignmentPolicy(_FrozenModel):
    """Per-group alignment choices."""
    record_fields: bool = Field(True, alias="recordFields", description="Align :: across record fields")
    deriving_strategies: bool = Field(
        True, alias="derivingStrategies", description="Align class lists of split deriving clauses",
    )
    operator_chains: Literal["aligned", "indented"] = Field(
        "aligned", alias="operatorChains",
        description="Continue operator chains under the first operator or at one indent",
    )


class FormatConfig(_FrozenModel):
    """Root configuration for formatting and linting."""
    indent_width: int = Field(2, ge=1, le=8, alias="indentWidth", description="Base indent unit")
    max_line_length: int = Field(80, ge=20, alias="maxLineLength", description="Line budget")
    import_group_order: Tuple[Literal["external", "local"], ...] = Field(
        ("external", "local"), alias="importGroupOrder", description="Order of import groups",
    )
    local_module_prefixes: Tuple[str, ...] = Field(
        (), alias="localModulePrefixes", description="Extra module prefixes treated as intra-project",
    )
    enabled_lint_checks: FrozenSet[str] = Field(
        ALL_CHECKS, alias="enabledLintChecks", description="Advisory checks to report",
    )
    naming_case_rules: NamingCaseRules = Field(default_factory=NamingCaseRules, alias="namingCaseRules")
    qualification_threshold: int = Field(
        15, ge=1, alias="qualificationThreshold",
        description="Names imported unqualified before suggesting a qualified import",
    )
    alignment: AlignmentPolicy = Field(default_factory=AlignmentPolicy)
    preserve_comment_alignment: bool = Field(
        False, alias="preserveCommentAlignment",
        description="Keep existing spacing (at least two) before end-of-line comments in verbatim regions",
    )

    def check_enabled(self, check: Optional[str]) -> bool:
        return check is None or check in self.enabled_lint_checks

    @classmethod
    def load(cls, path: Path) -> "FormatConfig":
        """Load configuration from a JSON file.

        Args:
            path: Path to JSON configuration file

        Returns:
            FormatConfig: Validated configuration (defaults if the file is missing)

        Raises:
            ValidationError: If JSON doesn't match schema
        """
        if not path.exists():
            return cls()
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    @classmethod
    def load_from_path_or_default(
        cls, path: Optional[Path], default_filename: str = DEFAULT_CONFIG_FILENAME,
    ) -> "FormatConfig":
        """Load configuration from ``path`` or from ``hsfmt.json`` in the CWD."""
        if path:
            return cls.load(path)
        default_path = Path(default_filename)
        if default_path.exists():
            return cls.load(default_path)
        return cls()


DEFAULT_CONFIG = FormatConfig()
