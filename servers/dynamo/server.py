"""servers/dynamo/server.py

FastMCP stdio server exposing DynamoDB table operations:
  - list-tables    : names of all tables in the account/region
  - describe-table : table schema and metadata
  - put-item       : insert or overwrite one item
  - get-item       : point lookup by primary key
  - query-table    : key-condition query (partition key equality)
  - scan-table     : full table read with an optional filter
  - create-table   : create a table with a partition key and optional sort key

Every result is a single text block holding JSON, except put-item which
returns a confirmation sentence. Run directly with
``python servers/dynamo/server.py`` or the ``dynamo-mcp-server`` script.
"""

from __future__ import annotations

import base64
import contextlib
import datetime
import decimal
import json
import logging
import sys
from collections.abc import Iterator
from typing import Any, Literal

import boto3
from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("dynamo-server")

KeyType = Literal["S", "N", "B"]

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class DynamoSettings(BaseSettings):
    """Runtime configuration loaded from environment variables / .env file.

    Attributes:
        aws_region: Region of the DynamoDB endpoint; boto3 resolves it when unset.
        aws_access_key_id: Static access key, used only with the secret key.
        aws_secret_access_key: Static secret key, used only with the key id.
        aws_session_token: Optional session token for temporary credentials.
        dynamodb_endpoint_url: Alternative endpoint, e.g. DynamoDB Local.
        log_level: Logging level for the server process (logs go to stderr).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws_region: str | None = Field(None)
    aws_access_key_id: str | None = Field(None)
    aws_secret_access_key: str | None = Field(None)
    aws_session_token: str | None = Field(None)
    dynamodb_endpoint_url: str | None = Field(None)
    log_level: str = Field("INFO")

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``boto3.client("dynamodb", ...)``."""
        kwargs: dict[str, Any] = {}
        if self.aws_region:
            kwargs["region_name"] = self.aws_region
        if self.dynamodb_endpoint_url:
            kwargs["endpoint_url"] = self.dynamodb_endpoint_url
        if self.aws_access_key_id and self.aws_secret_access_key:
            kwargs["aws_access_key_id"] = self.aws_access_key_id
            kwargs["aws_secret_access_key"] = self.aws_secret_access_key
            if self.aws_session_token:
                kwargs["aws_session_token"] = self.aws_session_token
        return kwargs


def build_dynamo_client(settings: DynamoSettings) -> Any:
    """Create the low-level DynamoDB client.

    Falls back to boto3's default credential chain unless a static key pair
    is configured.
    """
    kwargs = settings.client_kwargs()
    logger.info(
        "Creating DynamoDB client (region=%s, endpoint=%s, static_credentials=%s)",
        kwargs.get("region_name", "<default>"),
        kwargs.get("endpoint_url", "<default>"),
        "aws_access_key_id" in kwargs,
    )
    return boto3.client("dynamodb", **kwargs)


# ---------------------------------------------------------------------------
# Attribute value conversion
# ---------------------------------------------------------------------------

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def marshall(item: dict[str, Any]) -> dict[str, Any]:
    """Convert a plain JSON object into DynamoDB attribute values.

    Floats become ``Decimal`` first since the serializer rejects ``float``.
    """
    as_decimals = json.loads(json.dumps(item), parse_float=decimal.Decimal)
    return {key: _serializer.serialize(value) for key, value in as_decimals.items()}


def unmarshall(item: dict[str, Any]) -> dict[str, Any]:
    return {key: _deserializer.deserialize(value) for key, value in item.items()}


def _json_default(value: Any) -> Any:
    if isinstance(value, decimal.Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, Binary):
        return base64.b64encode(value.value).decode("ascii")
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    return json.dumps(value, default=_json_default)


@contextlib.contextmanager
def _remote_call(operation: str) -> Iterator[None]:
    """Turn DynamoDB client failures into tool errors carrying the service message."""
    try:
        yield
    except ClientError as exc:
        error = exc.response.get("Error", {})
        logger.error("[%s] %s: %s", operation, error.get("Code"), error.get("Message"))
        raise ToolError(
            f"{operation} failed: {error.get('Code', 'ClientError')}: "
            f"{error.get('Message', str(exc))}"
        ) from exc
    except BotoCoreError as exc:
        logger.error("[%s] %s", operation, exc, exc_info=True)
        raise ToolError(f"{operation} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class DynamoTools:
    """DynamoDB operations behind the MCP tools.

    Each method returns the text payload sent back to the client.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def list_tables(self) -> str:
        names: list[str] = []
        request: dict[str, Any] = {}
        with _remote_call("ListTables"):
            while True:
                resp = self.client.list_tables(**request)
                names.extend(resp.get("TableNames", []))
                last = resp.get("LastEvaluatedTableName")
                if not last:
                    break
                request["ExclusiveStartTableName"] = last
        logger.info("[list-tables] %d tables", len(names))
        return to_json(names)

    def describe_table(self, table_name: str) -> str:
        with _remote_call("DescribeTable"):
            resp = self.client.describe_table(TableName=table_name)
        return to_json(resp.get("Table"))

    def put_item(self, table_name: str, item: dict[str, Any]) -> str:
        with _remote_call("PutItem"):
            self.client.put_item(TableName=table_name, Item=marshall(item))
        logger.info("[put-item] table=%s", table_name)
        return f"Item put in table {table_name}"

    def get_item(self, table_name: str, key: dict[str, Any]) -> str:
        with _remote_call("GetItem"):
            resp = self.client.get_item(TableName=table_name, Key=marshall(key))
        item = resp.get("Item")
        return to_json(unmarshall(item) if item else None)

    def query_table(
        self,
        table_name: str,
        key_condition_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        filter_expression: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
    ) -> str:
        request: dict[str, Any] = {
            "TableName": table_name,
            "KeyConditionExpression": key_condition_expression,
            "ExpressionAttributeValues": marshall(expression_attribute_values),
        }
        if expression_attribute_names:
            request["ExpressionAttributeNames"] = expression_attribute_names
        if filter_expression:
            request["FilterExpression"] = filter_expression
        if index_name:
            request["IndexName"] = index_name
        if limit:
            request["Limit"] = limit
        with _remote_call("Query"):
            resp = self.client.query(**request)
        return self._items_payload(resp)

    def scan_table(
        self,
        table_name: str,
        filter_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
        expression_attribute_values: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> str:
        request: dict[str, Any] = {"TableName": table_name}
        if filter_expression:
            request["FilterExpression"] = filter_expression
        if expression_attribute_names:
            request["ExpressionAttributeNames"] = expression_attribute_names
        if expression_attribute_values:
            request["ExpressionAttributeValues"] = marshall(expression_attribute_values)
        if limit:
            request["Limit"] = limit
        with _remote_call("Scan"):
            resp = self.client.scan(**request)
        return self._items_payload(resp)

    def create_table(
        self,
        table_name: str,
        partition_key: str,
        partition_key_type: KeyType,
        sort_key: str | None = None,
        sort_key_type: KeyType | None = None,
        read_capacity: int | None = None,
        write_capacity: int | None = None,
    ) -> str:
        if sort_key and not sort_key_type:
            raise ToolError("sortKeyType is required when sortKey is given")
        if (read_capacity is None) != (write_capacity is None):
            raise ToolError("readCapacity and writeCapacity must be given together")

        attribute_definitions = [
            {"AttributeName": partition_key, "AttributeType": partition_key_type}
        ]
        key_schema = [{"AttributeName": partition_key, "KeyType": "HASH"}]
        if sort_key:
            attribute_definitions.append(
                {"AttributeName": sort_key, "AttributeType": sort_key_type}
            )
            key_schema.append({"AttributeName": sort_key, "KeyType": "RANGE"})

        request: dict[str, Any] = {
            "TableName": table_name,
            "AttributeDefinitions": attribute_definitions,
            "KeySchema": key_schema,
        }
        if read_capacity is None:
            request["BillingMode"] = "PAY_PER_REQUEST"
        else:
            request["ProvisionedThroughput"] = {
                "ReadCapacityUnits": read_capacity,
                "WriteCapacityUnits": write_capacity,
            }
        with _remote_call("CreateTable"):
            resp = self.client.create_table(**request)
        logger.info("[create-table] table=%s", table_name)
        return to_json(resp.get("TableDescription"))

    @staticmethod
    def _items_payload(resp: dict[str, Any]) -> str:
        items = [unmarshall(item) for item in resp.get("Items", [])]
        payload: dict[str, Any] = {"items": items, "count": len(items)}
        if resp.get("LastEvaluatedKey"):
            payload["lastEvaluatedKey"] = unmarshall(resp["LastEvaluatedKey"])
        return to_json(payload)


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------
# Tool parameter names are the wire contract shared with the chat client.


def build_server(tools: DynamoTools) -> FastMCP:
    """Register the DynamoDB tools on a new FastMCP server."""
    mcp: FastMCP = FastMCP(
        name="dynamo",
        instructions="Read and write Amazon DynamoDB tables.",
    )

    @mcp.tool(name="list-tables")
    def list_tables() -> str:
        """List all DynamoDB tables"""
        return tools.list_tables()

    @mcp.tool(name="describe-table")
    def describe_table(
        tableName: str = Field(..., description="Name of the table"),
    ) -> str:
        """Describe a DynamoDB table"""
        return tools.describe_table(tableName)

    @mcp.tool(name="put-item")
    def put_item(
        tableName: str = Field(..., description="Name of the table"),
        item: dict[str, Any] = Field(
            ..., description="Item to put (as a key-value object)"
        ),
    ) -> str:
        """Put an item into a DynamoDB table"""
        return tools.put_item(tableName, item)

    @mcp.tool(name="get-item")
    def get_item(
        tableName: str = Field(..., description="Name of the table"),
        key: dict[str, Any] = Field(..., description="Key object for the item"),
    ) -> str:
        """Get an item from a DynamoDB table"""
        return tools.get_item(tableName, key)

    @mcp.tool(name="query-table")
    def query_table(
        tableName: str = Field(..., description="Name of the table"),
        keyConditionExpression: str = Field(
            ..., description="Key condition expression, e.g. 'id = :id'"
        ),
        expressionAttributeValues: dict[str, Any] = Field(
            ..., description="Values for the key condition expression"
        ),
        expressionAttributeNames: dict[str, str] | None = Field(
            None, description="Substitutions for attribute names, e.g. {'#n': 'name'}"
        ),
        filterExpression: str | None = Field(
            None, description="Filter applied after the key condition"
        ),
        indexName: str | None = Field(None, description="Secondary index to query"),
        limit: int | None = Field(None, ge=1, description="Maximum items to evaluate"),
    ) -> str:
        """Query a DynamoDB table"""
        return tools.query_table(
            tableName,
            keyConditionExpression,
            expressionAttributeValues,
            expression_attribute_names=expressionAttributeNames,
            filter_expression=filterExpression,
            index_name=indexName,
            limit=limit,
        )

    @mcp.tool(name="scan-table")
    def scan_table(
        tableName: str = Field(..., description="Name of the table"),
        filterExpression: str | None = Field(
            None, description="Filter expression applied to every item"
        ),
        expressionAttributeNames: dict[str, str] | None = Field(
            None, description="Substitutions for attribute names"
        ),
        expressionAttributeValues: dict[str, Any] | None = Field(
            None, description="Values for the filter expression"
        ),
        limit: int | None = Field(None, ge=1, description="Maximum items to evaluate"),
    ) -> str:
        """Scan a DynamoDB table"""
        return tools.scan_table(
            tableName,
            filter_expression=filterExpression,
            expression_attribute_names=expressionAttributeNames,
            expression_attribute_values=expressionAttributeValues,
            limit=limit,
        )

    @mcp.tool(name="create-table")
    def create_table(
        tableName: str = Field(..., description="Name of the table"),
        partitionKey: str = Field(..., description="Partition key name"),
        partitionKeyType: KeyType = Field(..., description="Partition key type"),
        sortKey: str | None = Field(None, description="Sort key name (optional)"),
        sortKeyType: KeyType | None = Field(
            None, description="Sort key type (optional)"
        ),
        readCapacity: int | None = Field(
            None, ge=1, description="Read capacity units (omit for on-demand)"
        ),
        writeCapacity: int | None = Field(
            None, ge=1, description="Write capacity units (omit for on-demand)"
        ),
    ) -> str:
        """Create a DynamoDB table"""
        return tools.create_table(
            tableName,
            partitionKey,
            partitionKeyType,
            sort_key=sortKey,
            sort_key_type=sortKeyType,
            read_capacity=readCapacity,
            write_capacity=writeCapacity,
        )

    return mcp


def main() -> None:
    """Run the server on stdio. Logs go to stderr; stdout carries MCP frames."""
    settings = DynamoSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    mcp = build_server(DynamoTools(build_dynamo_client(settings)))
    logger.info("Dynamo MCP Server running on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
