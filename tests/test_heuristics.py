"""tests/test_heuristics.py

Unit tests for the query/scan fallback (bedrock_chat/heuristics.py).
"""

from __future__ import annotations

# Third-Party Libraries
import pytest

# Local Modules
from bedrock_chat.heuristics import (
    SCAN_TOOL,
    KeyConditionVerdict,
    build_scan_arguments,
    classify_key_condition,
    describe_call,
    route_tool_call,
)


def _query(expression: str | None, values: dict | None = None, **extra) -> dict:
    args: dict = {"tableName": "Users"}
    if expression is not None:
        args["keyConditionExpression"] = expression
    if values is not None:
        args["expressionAttributeValues"] = values
    args.update(extra)
    return args


class TestClassifyKeyCondition:
    """Test suite for classify_key_condition."""

    @pytest.mark.parametrize(
        "expression",
        [
            "id = :id",
            "id=:id",
            "#id = :id",
            ":id = id",
            "id = :id AND createdAt = :c",
            "  id   =   :id  ",
        ],
    )
    def test_equality_on_partition_key_is_valid(self, expression: str) -> None:
        """Plain equality conditions naming the partition key allow a query."""
        verdict = classify_key_condition(_query(expression, {":id": "u1", ":c": "x"}))
        assert verdict is KeyConditionVerdict.VALID_EQUALITY

    def test_alias_mapped_through_attribute_names(self) -> None:
        """An alias resolved to the partition key by expressionAttributeNames counts."""
        args = _query(
            "#pk = :v",
            {":v": "u1"},
            expressionAttributeNames={"#pk": "id"},
        )
        assert classify_key_condition(args) is KeyConditionVerdict.VALID_EQUALITY

    @pytest.mark.parametrize(
        ("expression", "values", "names"),
        [
            ("id = :not", {":not": "u1"}, None),
            ("id = :or", {":or": "u1"}, None),
            ("#or = :v", {":v": "u1"}, {"#or": "id"}),
            ("id = :v AND #between = :b", {":v": "u1", ":b": "x"}, {"#between": "sk"}),
        ],
    )
    def test_keyword_like_placeholders_are_not_operators(
        self, expression: str, values: dict, names: dict | None
    ) -> None:
        """Placeholders and aliases spelled like OR/NOT/BETWEEN stay equalities."""
        args = _query(expression, values, expressionAttributeNames=names)
        assert classify_key_condition(args) is KeyConditionVerdict.VALID_EQUALITY

    @pytest.mark.parametrize(
        "expression",
        [
            "id > :v",
            "id < :v",
            "id >= :v",
            "id <= :v",
            "id <> :v",
            "id != :v",
            "id BETWEEN :a AND :b",
            "begins_with(id, :v)",
            "id = :v OR id = :w",
            "id = :v AND createdAt > :c",
            "NOT id = :v",
        ],
    )
    def test_non_equality_comparisons_need_scan(self, expression: str) -> None:
        """Range tests, functions and disjunctions fall back to a scan."""
        values = {":v": 1, ":w": 2, ":a": 1, ":b": 2, ":c": 3}
        assert classify_key_condition(_query(expression, values)) is KeyConditionVerdict.NEEDS_SCAN

    @pytest.mark.parametrize(
        "expression",
        ["userid = :id", "name = :id", "email = :v", "#name = :v"],
    )
    def test_condition_without_partition_key_needs_scan(self, expression: str) -> None:
        """The partition key must appear as a whole word, not inside another name
        or a value placeholder."""
        values = {":id": "u1", ":v": "x"}
        assert classify_key_condition(_query(expression, values)) is KeyConditionVerdict.NEEDS_SCAN

    def test_missing_expression_needs_scan(self) -> None:
        assert classify_key_condition(_query(None, {":id": 1})) is KeyConditionVerdict.NEEDS_SCAN

    def test_blank_expression_needs_scan(self) -> None:
        assert classify_key_condition(_query("   ", {":id": 1})) is KeyConditionVerdict.NEEDS_SCAN

    def test_missing_values_needs_scan(self) -> None:
        assert classify_key_condition(_query("id = :id")) is KeyConditionVerdict.NEEDS_SCAN

    def test_empty_values_needs_scan(self) -> None:
        assert classify_key_condition(_query("id = :id", {})) is KeyConditionVerdict.NEEDS_SCAN

    def test_custom_partition_key(self) -> None:
        """The partition key name is configurable."""
        args = _query("userId = :u", {":u": "abc"})
        assert classify_key_condition(args, "userId") is KeyConditionVerdict.VALID_EQUALITY
        assert classify_key_condition(args) is KeyConditionVerdict.NEEDS_SCAN


class TestBuildScanArguments:
    """Test suite for build_scan_arguments."""

    def test_key_condition_becomes_filter(self) -> None:
        """Without an explicit filter the key condition text is reused."""
        scan = build_scan_arguments(_query("age > :a", {":a": 30}))
        assert scan == {
            "tableName": "Users",
            "filterExpression": "age > :a",
            "expressionAttributeValues": {":a": 30},
        }

    def test_explicit_filter_wins_and_key_condition_is_dropped(self) -> None:
        """The original key condition never travels alongside a derived filter."""
        args = _query(
            "id > :v",
            {":v": 1, ":a": 21},
            filterExpression="age > :a",
            limit=5,
        )
        scan = build_scan_arguments(args)
        assert "keyConditionExpression" not in scan
        assert scan["filterExpression"] == "age > :a"
        assert scan["expressionAttributeValues"] == {":a": 21}
        assert scan["limit"] == 5

    def test_unused_names_are_pruned(self) -> None:
        args = _query(
            "#n = :n",
            {":n": "Ada"},
            expressionAttributeNames={"#n": "name", "#unused": "other"},
        )
        scan = build_scan_arguments(args)
        assert scan["expressionAttributeNames"] == {"#n": "name"}

    def test_no_condition_yields_plain_scan(self) -> None:
        assert build_scan_arguments({"tableName": "Users"}) == {"tableName": "Users"}


class TestRouteToolCall:
    """Test suite for route_tool_call."""

    def test_valid_query_passes_through_unchanged(self) -> None:
        args = _query("id = :id", {":id": "u1"})
        name, routed = route_tool_call("query-table", args)
        assert name == "query-table"
        assert routed == args

    def test_range_query_rewritten_even_with_values(self) -> None:
        """'id > :v' becomes a scan regardless of a present value map."""
        name, routed = route_tool_call("query-table", _query("id > :v", {":v": 10}))
        assert name == SCAN_TOOL
        assert routed["filterExpression"] == "id > :v"
        assert "keyConditionExpression" not in routed

    @pytest.mark.parametrize("tool", ["list-tables", "scan-table", "get-item"])
    def test_other_tools_are_untouched(self, tool: str) -> None:
        args = {"tableName": "Users", "keyConditionExpression": "id > :v"}
        assert route_tool_call(tool, args) == (tool, args)


def test_describe_call_renders_json_arguments() -> None:
    line = describe_call("scan-table", {"tableName": "Users"})
    assert line == '[Calling tool scan-table with args {"tableName": "Users"}]'
