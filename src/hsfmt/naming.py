# =============================================================================
# hsfmt - Haskell Style Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""
Identifier naming checks shared by the naming pass and the linter.

Names are collected per category (function, type, constructor, field) and
each distinct name is checked once, at its first definition.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Set, Tuple

from .cst import (
    Constructor,
    DataDecl,
    FunctionClause,
    LetBinding,
    Module,
    Node,
    OpaqueDecl,
    RecordField,
    TypeSignature,
    children,
)
from .diagnostics import Diagnostic, DiagnosticKind
from .formatting_rules_model import FormatConfig
from .layout import is_closing, is_opening
from .tokens import Token, TokenKind

_CATEGORY_NAMES = {
    "function": "Function",
    "type": "Type",
    "constructor": "Constructor",
    "field": "Record field",
}

_CATEGORY_STYLE = {
    "function": "lower camel case",
    "type": "upper camel case",
    "constructor": "upper camel case",
    "field": "lower camel case",
}

_UPPER_RUN = re.compile(r"[A-Z]+")


def abbreviations(name: str, max_length: int) -> List[str]:
    """All-caps runs longer than ``max_length`` inside a longer name.

    The last capital of a run followed by a lower-case letter starts the
    next word, so ``parseHTTPRequest`` yields ``HTTP``.
    """
    bare = name.strip("_'")
    found = []
    for match in _UPPER_RUN.finditer(bare):
        run = match.group()
        end = match.end()
        if end < len(bare) and bare[end].islower():
            run = run[:-1]
        if len(run) > max_length and run != bare:
            found.append(run)
    return found


def _declared_type(decl: OpaqueDecl) -> Optional[Token]:
    """Name introduced by a ``type``/``data``/``class`` declaration kept opaque."""
    tokens = decl.body.tokens()
    if not tokens or not tokens[0].is_keyword("type", "data", "newtype", "class"):
        return None
    rest = list(tokens[1:])
    if rest and rest[0].text in ("family", "instance"):
        if rest[0].text == "instance":
            return None
        rest = rest[1:]
    depth = 0
    for index, token in enumerate(rest):
        if is_opening(token):
            depth += 1
        elif is_closing(token):
            depth -= 1
        elif depth == 0 and token.is_reserved_op("=>", "⇒"):
            rest = rest[index + 1:]
            break
    for token in rest:
        if token.kind is TokenKind.CONID:
            return token
        if token.is_reserved_op("=", "::") or token.is_keyword("where"):
            return None
    return None


def _definitions(node: Node) -> Iterator[Tuple[str, Token]]:
    """(category, name token) for every definition under ``node``."""
    if isinstance(node, OpaqueDecl):
        first = node.first_token
        if first.is_keyword("instance", "deriving"):
            return
        declared = _declared_type(node)
        if declared is not None:
            yield "type", declared
    elif isinstance(node, TypeSignature):
        for token in node.names:
            if token.kind is TokenKind.VARID:
                yield "function", token
    elif isinstance(node, (FunctionClause, LetBinding)):
        binder = node.equation.binder
        if binder is not None and binder.kind is TokenKind.VARID:
            yield "function", binder
    elif isinstance(node, DataDecl):
        if node.type_name is not None:
            yield "type", node.type_name
    elif isinstance(node, Constructor):
        if node.name is not None and node.name.kind is TokenKind.CONID:
            yield "constructor", node.name
    elif isinstance(node, RecordField):
        for token in node.field_names:
            if token.kind is TokenKind.VARID:
                yield "field", token
    for child in children(node):
        yield from _definitions(child)


def operator_definitions(module: Module) -> Iterator[Token]:
    """Operator tokens that a signature or clause defines."""
    seen: Set[str] = set()
    for token in _operator_tokens(module):
        if token.text not in seen:
            seen.add(token.text)
            yield token


def _operator_tokens(node: Node) -> Iterator[Token]:
    if isinstance(node, OpaqueDecl) and node.first_token.is_keyword("instance"):
        return
    if isinstance(node, TypeSignature):
        for token in node.names:
            if token.is_operator:
                yield token
    elif isinstance(node, (FunctionClause, LetBinding)):
        binder = node.equation.binder
        if binder is not None and binder.is_operator:
            yield binder
    for child in children(node):
        yield from _operator_tokens(child)


def naming_diagnostics(module: Module, config: FormatConfig) -> List[Diagnostic]:
    """NamingViolation, AbbreviationCase and OperatorDefinition findings."""
    rules = config.naming_case_rules
    patterns = {
        "function": re.compile(rules.function),
        "type": re.compile(rules.type),
        "constructor": re.compile(rules.constructor),
        "field": re.compile(rules.field),
    }
    found: List[Diagnostic] = []
    seen: Set[Tuple[str, str]] = set()
    for category, token in _definitions(module):
        name = token.text
        if (category, name) in seen:
            continue
        seen.add((category, name))
        if not patterns[category].match(name):
            found.append(Diagnostic.create(
                DiagnosticKind.NAMING_VIOLATION,
                f"{_CATEGORY_NAMES[category]} name '{name}' should be {_CATEGORY_STYLE[category]}",
                token.span,
            ))
        for run in abbreviations(name, rules.max_abbreviation_length):
            found.append(Diagnostic.create(
                DiagnosticKind.ABBREVIATION_CASE,
                f"Abbreviation '{run}' in '{name}' should be written '{run.capitalize()}'",
                token.span,
            ))
    for token in operator_definitions(module):
        found.append(Diagnostic.create(
            DiagnosticKind.OPERATOR_DEFINITION,
            f"Custom operator '{token.text}' defined; review whether a named function is clearer",
            token.span,
        ))
    return [d for d in found if config.check_enabled(d.check)]
