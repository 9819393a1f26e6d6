# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Diagnostics emitted by the formatter and the linter.

Mechanical diagnostics describe a fix the formatter applied; formatting
its own output must produce none. Advisory diagnostics describe problems
that need a human (or an explicit suggested fix) to resolve.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from .tokens import TextSpan

Severity = Literal["error", "warning", "advisory"]


class DiagnosticKind(Enum):
    # Mechanical fixes
    PRAGMA_ORDER = "PragmaOrder"
    PRAGMA_PLACEMENT = "PragmaPlacement"
    IMPORT_ORDER = "ImportOrder"
    IMPORT_SPACING = "ImportSpacing"
    INDENTATION = "Indentation"
    WHERE_PLACEMENT = "WherePlacement"
    ALIGNMENT = "Alignment"
    DERIVING_FORMAT = "DerivingFormat"
    END_OF_LINE_COMMENT_SPACING = "EndOfLineCommentSpacing"
    TRAILING_WHITESPACE = "TrailingWhitespace"
    FINAL_NEWLINE = "FinalNewline"
    # Advisories
    NAMING_VIOLATION = "NamingViolation"
    ABBREVIATION_CASE = "AbbreviationCase"
    OPERATOR_DEFINITION = "OperatorDefinition"
    MISSING_SIGNATURE = "MissingSignature"
    RECORD_IN_SUM_TYPE = "RecordInSumType"
    ETA_REDUCIBLE = "EtaReducible"
    UNNECESSARY_DERIVE = "UnnecessaryDerive"
    LONG_LINE = "LongLine"
    TAB_CHARACTER = "TabCharacter"
    MISSING_STRICTNESS_ANNOTATION = "MissingStrictnessAnnotation"
    MISSING_EXPORT_LIST = "MissingExportList"
    MISSING_IMPORT_LIST = "MissingImportList"
    LARGE_UNQUALIFIED_IMPORT = "LargeUnqualifiedImport"
    # Errors
    ENCODING_ERROR = "EncodingError"
    PARSE_ERROR = "ParseError"


MECHANICAL_KINDS = frozenset({
    DiagnosticKind.PRAGMA_ORDER,
    DiagnosticKind.PRAGMA_PLACEMENT,
    DiagnosticKind.IMPORT_ORDER,
    DiagnosticKind.IMPORT_SPACING,
    DiagnosticKind.INDENTATION,
    DiagnosticKind.WHERE_PLACEMENT,
    DiagnosticKind.ALIGNMENT,
    DiagnosticKind.DERIVING_FORMAT,
    DiagnosticKind.END_OF_LINE_COMMENT_SPACING,
    DiagnosticKind.TRAILING_WHITESPACE,
    DiagnosticKind.FINAL_NEWLINE,
})

ERROR_KINDS = frozenset({DiagnosticKind.ENCODING_ERROR, DiagnosticKind.PARSE_ERROR})

# Lint check name controlling each advisory kind.
CHECK_NAMES: Dict[DiagnosticKind, str] = {
    DiagnosticKind.NAMING_VIOLATION: "naming-case",
    DiagnosticKind.ABBREVIATION_CASE: "abbreviation-case",
    DiagnosticKind.OPERATOR_DEFINITION: "operator-definition",
    DiagnosticKind.MISSING_SIGNATURE: "missing-signature",
    DiagnosticKind.RECORD_IN_SUM_TYPE: "record-in-sum-type",
    DiagnosticKind.ETA_REDUCIBLE: "point-free",
    DiagnosticKind.UNNECESSARY_DERIVE: "unnecessary-derive",
    DiagnosticKind.LONG_LINE: "long-line",
    DiagnosticKind.TRAILING_WHITESPACE: "trailing-whitespace",
    DiagnosticKind.TAB_CHARACTER: "tab-character",
    DiagnosticKind.MISSING_STRICTNESS_ANNOTATION: "missing-strictness",
    DiagnosticKind.MISSING_EXPORT_LIST: "missing-export-list",
    DiagnosticKind.MISSING_IMPORT_LIST: "missing-import-list",
    DiagnosticKind.LARGE_UNQUALIFIED_IMPORT: "large-unqualified-import",
}

ALL_CHECKS = frozenset(CHECK_NAMES.values())


def severity_of(kind: DiagnosticKind) -> Severity:
    if kind in ERROR_KINDS:
        return "error"
    if kind in MECHANICAL_KINDS:
        return "warning"
    return "advisory"


@dataclass(frozen=True)
class SuggestedFix:
    """Replace ``span`` of the original text with ``replacement``."""
    span: TextSpan
    replacement: str


@dataclass(frozen=True)
class Diagnostic:
    """A single finding attached to a source span."""
    kind: DiagnosticKind
    message: str
    span: TextSpan
    severity: Severity = "advisory"
    suggested_fix: Optional[SuggestedFix] = None

    @classmethod
    def create(
        cls,
        kind: DiagnosticKind,
        message: str,
        span: TextSpan,
        suggested_fix: Optional[SuggestedFix] = None,
    ) -> "Diagnostic":
        return cls(kind=kind, message=message, span=span, severity=severity_of(kind), suggested_fix=suggested_fix)

    @property
    def is_mechanical(self) -> bool:
        return self.kind in MECHANICAL_KINDS

    @property
    def check(self) -> Optional[str]:
        return CHECK_NAMES.get(self.kind)

    def sort_key(self) -> Tuple[int, int, str]:
        return (self.span.start, self.span.end, self.kind.value)

    def to_dict(self) -> dict:
        """Serializable form used by the JSONL diagnostics log and the CLI."""
        data = {
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
            "line": self.span.line1,
            "column": self.span.column1,
        }
        if self.suggested_fix is not None:
            data["fix"] = self.suggested_fix.replacement
        return data

    def format(self, path: str = "<input>") -> str:
        return f"{path}:{self.span.line1}:{self.span.column1}: {self.severity}: [{self.kind.value}] {self.message}"


def sort_diagnostics(diagnostics: Iterable[Diagnostic]) -> Tuple[Diagnostic, ...]:
    """Stable order by position, dropping exact duplicates."""
    seen = set()
    result: List[Diagnostic] = []
    for diagnostic in sorted(diagnostics, key=Diagnostic.sort_key):
        key = (diagnostic.kind, diagnostic.span, diagnostic.message)
        if key in seen:
            continue
        seen.add(key)
        result.append(diagnostic)
    return tuple(result)


def mechanical(diagnostics: Iterable[Diagnostic]) -> Tuple[Diagnostic, ...]:
    return tuple(d for d in diagnostics if d.is_mechanical)


def advisories(diagnostics: Iterable[Diagnostic]) -> Tuple[Diagnostic, ...]:
    return tuple(d for d in diagnostics if d.severity == "advisory")
