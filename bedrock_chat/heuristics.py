"""bedrock_chat/heuristics.py

Query/scan fallback for ``query-table`` calls requested by the model.

A DynamoDB Query needs a key condition that names the partition key and
compares it with ``=``. Models often produce range tests, conditions on
non-key attributes or forget the value map; those calls are rewritten to a
``scan-table`` call that applies the same condition as a filter.
"""

from __future__ import annotations

# Standard Library
import enum
import json
import re
from typing import Any

QUERY_TOOL: str = "query-table"
SCAN_TOOL: str = "scan-table"

# One clause of a key condition: ``name = :value`` or ``:value = name``.
_EQUALITY_CLAUSE: re.Pattern[str] = re.compile(
    r"^\s*(?:(?P<lhs>#?[A-Za-z_][\w.]*)\s*=\s*:[\w]+"
    r"|:[\w]+\s*=\s*(?P<rhs>#?[A-Za-z_][\w.]*))\s*$"
)
_AND: re.Pattern[str] = re.compile(r"\s+AND\s+", re.IGNORECASE)
# Anything that is not a plain ``=`` test: range operators, negation, functions.
_COMPARISON: re.Pattern[str] = re.compile(
    r"<|>|!|(?<![#:\w])(?:BETWEEN|begins_with|OR|NOT)\b",
    re.IGNORECASE,
)
_PLACEHOLDER: re.Pattern[str] = re.compile(r"[#:][\w]+")


class KeyConditionVerdict(enum.Enum):
    """Outcome of :func:`classify_key_condition`."""

    VALID_EQUALITY = "valid-equality"
    NEEDS_SCAN = "needs-scan"


def _references_partition_key(
    expression: str,
    partition_key: str,
    names: dict[str, Any] | None,
) -> bool:
    key = re.escape(partition_key)
    if re.search(rf"(?<![#:\w]){key}\b|#{key}\b", expression):
        return True
    # An alias such as ``#pk`` mapped to the key through expressionAttributeNames.
    for alias, target in (names or {}).items():
        if target == partition_key and re.search(rf"{re.escape(alias)}\b", expression):
            return True
    return False


def _resolve(name: str, names: dict[str, Any] | None) -> str:
    if name.startswith("#"):
        return str((names or {}).get(name, name[1:]))
    return name


def classify_key_condition(
    arguments: dict[str, Any],
    partition_key: str = "id",
) -> KeyConditionVerdict:
    """Decide whether ``query-table`` arguments are safe for a direct Query.

    Args:
        arguments: The tool arguments the model supplied.
        partition_key: Name of the table's partition key attribute.

    Returns:
        ``VALID_EQUALITY`` when the key condition is a conjunction of plain
        equalities that includes the partition key, ``NEEDS_SCAN`` otherwise.
    """
    expression = arguments.get("keyConditionExpression")
    values = arguments.get("expressionAttributeValues")
    names = arguments.get("expressionAttributeNames")
    if not isinstance(expression, str) or not expression.strip():
        return KeyConditionVerdict.NEEDS_SCAN
    if not isinstance(values, dict) or not values:
        return KeyConditionVerdict.NEEDS_SCAN
    if not _references_partition_key(expression, partition_key, names):
        return KeyConditionVerdict.NEEDS_SCAN
    if _COMPARISON.search(expression):
        return KeyConditionVerdict.NEEDS_SCAN

    compared: set[str] = set()
    for clause in _AND.split(expression.strip()):
        match = _EQUALITY_CLAUSE.match(clause)
        if match is None:
            return KeyConditionVerdict.NEEDS_SCAN
        compared.add(_resolve(match.group("lhs") or match.group("rhs"), names))
    if partition_key not in compared:
        return KeyConditionVerdict.NEEDS_SCAN
    return KeyConditionVerdict.VALID_EQUALITY


def _prune(mapping: Any, expression: str) -> dict[str, Any] | None:
    """Keep only the placeholders ``expression`` still references."""
    if not isinstance(mapping, dict):
        return None
    used = set(_PLACEHOLDER.findall(expression))
    kept = {k: v for k, v in mapping.items() if k in used}
    return kept or None


def build_scan_arguments(arguments: dict[str, Any]) -> dict[str, Any]:
    """Translate ``query-table`` arguments into ``scan-table`` arguments.

    The explicit filter wins; otherwise the key condition text becomes the
    filter. The key condition itself is never forwarded.
    """
    filter_expression = (
        arguments.get("filterExpression") or arguments.get("keyConditionExpression") or ""
    )
    scan_args: dict[str, Any] = {
        "tableName": arguments.get("tableName"),
        "filterExpression": filter_expression or None,
        "expressionAttributeNames": _prune(
            arguments.get("expressionAttributeNames"), filter_expression
        ),
        "expressionAttributeValues": _prune(
            arguments.get("expressionAttributeValues"), filter_expression
        ),
        "limit": arguments.get("limit"),
    }
    return {k: v for k, v in scan_args.items() if v is not None}


def route_tool_call(
    name: str,
    arguments: dict[str, Any],
    partition_key: str = "id",
) -> tuple[str, dict[str, Any]]:
    """Return the tool name and arguments that should actually be called.

    Only ``query-table`` calls are inspected; every other call passes
    through unchanged.
    """
    if name != QUERY_TOOL:
        return name, arguments
    if classify_key_condition(arguments, partition_key) is KeyConditionVerdict.VALID_EQUALITY:
        return name, arguments
    return SCAN_TOOL, build_scan_arguments(arguments)


def describe_call(name: str, arguments: dict[str, Any]) -> str:
    """Trace line shown to the user for every tool call."""
    return f"[Calling tool {name} with args {json.dumps(arguments, default=str)}]"
