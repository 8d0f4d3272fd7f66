"""tests/conftest.py

Pytest configuration and shared fixtures for the bedrock-dynamo-chat test suite.
"""

from __future__ import annotations

# Standard Library
from unittest.mock import MagicMock

# Third-Party Libraries
import pytest

# Local Modules
from bedrock_chat.config import ChatSettings
from bedrock_chat.models import ToolDescriptor


@pytest.fixture
def settings() -> ChatSettings:
    """Chat settings that ignore any local .env file."""
    return ChatSettings(aws_region="us-east-1", _env_file=None)


@pytest.fixture
def dynamo_tools() -> list[ToolDescriptor]:
    """A small tool catalog resembling the dynamo server's."""
    return [
        ToolDescriptor(
            name="list-tables",
            description="List all DynamoDB tables",
            input_schema={"type": "object", "properties": {}},
        ),
        ToolDescriptor(
            name="query-table",
            description="Query a DynamoDB table",
            input_schema={
                "type": "object",
                "properties": {
                    "tableName": {"type": "string"},
                    "keyConditionExpression": {"type": "string"},
                    "expressionAttributeValues": {"type": "object"},
                },
                "required": [
                    "tableName",
                    "keyConditionExpression",
                    "expressionAttributeValues",
                ],
            },
        ),
        ToolDescriptor(
            name="scan-table",
            description="Scan a DynamoDB table",
            input_schema={
                "type": "object",
                "properties": {"tableName": {"type": "string"}},
                "required": ["tableName"],
            },
        ),
    ]


@pytest.fixture
def mock_dynamo_client() -> MagicMock:
    """Mock boto3 DynamoDB low-level client with empty default responses."""
    client = MagicMock()
    client.list_tables.return_value = {"TableNames": []}
    client.scan.return_value = {"Items": [], "Count": 0}
    client.query.return_value = {"Items": [], "Count": 0}
    client.get_item.return_value = {}
    client.put_item.return_value = {}
    return client
