"""DynamoDB-style update and condition expressions.

Only the subset used by document writes is understood:

    SET a = :a, #name = :name, instructors.#i = :x
    attribute_exists(providerid) AND attribute_not_exists(instructors.#i)

Path segments are plain identifiers or ``#placeholders`` resolved through
``attribute_names``; values are always ``:placeholders`` resolved through
``attribute_values``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from devkit.errors import ExpressionError

_SEGMENT = re.compile(r"#?[A-Za-z_][A-Za-z0-9_]*")
_VALUE = re.compile(r":[A-Za-z_][A-Za-z0-9_]*")
_SET_CLAUSE = re.compile(r"^\s*SET\s+(?P<body>.+?)\s*$", re.IGNORECASE | re.DOTALL)
_ASSIGNMENT = re.compile(r"^\s*(?P<path>[^=\s]+)\s*=\s*(?P<value>\S+)\s*$")
_CONDITION = re.compile(
    r"^\s*(?P<fn>attribute_exists|attribute_not_exists)\s*\(\s*(?P<path>[^)\s]+)\s*\)\s*$"
)
_AND = re.compile(r"\s+AND\s+", re.IGNORECASE)

Path = tuple[str, ...]


@dataclass(frozen=True)
class SetAction:
    path: Path
    value: Any


@dataclass(frozen=True)
class Condition:
    path: Path
    exists: bool


def resolve_path(raw: str, attribute_names: Mapping[str, str] | None = None) -> Path:
    names = attribute_names or {}
    segments: list[str] = []
    for token in raw.split("."):
        if not _SEGMENT.fullmatch(token):
            raise ExpressionError(f"invalid document path {raw!r}")
        if token.startswith("#"):
            if token not in names:
                raise ExpressionError(f"undefined attribute name placeholder {token}")
            segments.append(names[token])
        else:
            segments.append(token)
    return tuple(segments)


def parse_update_expression(
    expression: str,
    attribute_names: Mapping[str, str] | None = None,
    attribute_values: Mapping[str, Any] | None = None,
) -> list[SetAction]:
    match = _SET_CLAUSE.match(expression or "")
    if not match:
        raise ExpressionError(f"unsupported update expression {expression!r}")
    values = attribute_values or {}
    actions: list[SetAction] = []
    for clause in match.group("body").split(","):
        assignment = _ASSIGNMENT.match(clause)
        if not assignment:
            raise ExpressionError(f"invalid SET clause {clause.strip()!r}")
        placeholder = assignment.group("value")
        if not _VALUE.fullmatch(placeholder):
            raise ExpressionError(f"invalid value placeholder {placeholder!r}")
        if placeholder not in values:
            raise ExpressionError(f"undefined attribute value placeholder {placeholder}")
        path = resolve_path(assignment.group("path"), attribute_names)
        actions.append(SetAction(path=path, value=values[placeholder]))
    _ensure_no_overlap(action.path for action in actions)
    return actions


def parse_condition_expression(
    expression: str,
    attribute_names: Mapping[str, str] | None = None,
) -> list[Condition]:
    conditions: list[Condition] = []
    for term in _AND.split(expression.strip()):
        match = _CONDITION.match(term)
        if not match:
            raise ExpressionError(f"unsupported condition {term.strip()!r}")
        conditions.append(
            Condition(
                path=resolve_path(match.group("path"), attribute_names),
                exists=match.group("fn") == "attribute_exists",
            )
        )
    return conditions


def evaluate_condition(
    document: Mapping[str, Any] | None,
    expression: str | None,
    attribute_names: Mapping[str, str] | None = None,
) -> bool:
    if not expression:
        return True
    for condition in parse_condition_expression(expression, attribute_names):
        if _path_exists(document, condition.path) != condition.exists:
            return False
    return True


def apply_set_actions(
    document: Mapping[str, Any],
    actions: Iterable[SetAction],
    *,
    key_fields: Iterable[str] = (),
) -> dict[str, Any]:
    """Return a copy of ``document`` with every action applied."""
    protected = set(key_fields)
    updated = copy.deepcopy(dict(document))
    for action in actions:
        if len(action.path) == 1 and action.path[0] in protected:
            raise ExpressionError(f"cannot update attribute {action.path[0]}, it is part of the key")
        container: Any = updated
        for segment in action.path[:-1]:
            container = container.get(segment) if isinstance(container, dict) else None
            if not isinstance(container, dict):
                raise ExpressionError(
                    f"document path {'.'.join(action.path)} is invalid for update"
                )
        container[action.path[-1]] = copy.deepcopy(action.value)
    return updated


def build_set_expression(fields: Mapping[str, Any]) -> tuple[str, dict[str, str], dict[str, Any]]:
    if not fields:
        raise ExpressionError("at least one field is required")
    clauses: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for field, value in fields.items():
        if not _SEGMENT.fullmatch(field) or field.startswith("#"):
            raise ExpressionError(f"invalid attribute name {field!r}")
        names[f"#{field}"] = field
        values[f":{field}"] = value
        clauses.append(f"#{field} = :{field}")
    return "SET " + ", ".join(clauses), names, values


def _path_exists(document: Mapping[str, Any] | None, path: Path) -> bool:
    current: Any = document
    for segment in path:
        if not isinstance(current, Mapping) or segment not in current:
            return False
        current = current[segment]
    return True


def _ensure_no_overlap(paths: Iterable[Path]) -> None:
    seen: list[Path] = []
    for path in paths:
        for other in seen:
            shorter = min(len(path), len(other))
            if path[:shorter] == other[:shorter]:
                raise ExpressionError(
                    f"two document paths overlap: {'.'.join(other)} and {'.'.join(path)}"
                )
        seen.append(path)
