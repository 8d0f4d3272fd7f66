"""bedrock_chat/models.py

Value types exchanged between the chat session, the model and the tool server.
"""

from __future__ import annotations

# Standard Library
import dataclasses
from typing import Any


@dataclasses.dataclass(frozen=True)
class ToolDescriptor:
    """A tool advertised by the MCP server.

    Attributes:
        name: Tool name as registered on the server.
        description: Human-readable description offered to the model.
        input_schema: JSON schema of the tool arguments.
    """

    name: str
    description: str
    input_schema: dict[str, Any]

    @classmethod
    def from_mcp(cls, tool: Any) -> ToolDescriptor:
        """Build a descriptor from an ``mcp.types.Tool``."""
        return cls(
            name=tool.name,
            description=tool.description or "",
            input_schema=dict(tool.inputSchema or {"type": "object", "properties": {}}),
        )

    def to_bedrock(self) -> dict[str, Any]:
        """Render the descriptor in the Anthropic Messages ``tools`` format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclasses.dataclass(frozen=True)
class ToolInvocation:
    """A ``tool_use`` block requested by the model."""

    name: str
    arguments: dict[str, Any]
    id: str

    @classmethod
    def from_block(cls, block: dict[str, Any]) -> ToolInvocation:
        return cls(
            name=str(block.get("name", "")),
            arguments=dict(block.get("input") or {}),
            id=str(block.get("id", "")),
        )

    def to_block(self) -> dict[str, Any]:
        return {
            "type": "tool_use",
            "id": self.id,
            "name": self.name,
            "input": self.arguments,
        }


@dataclasses.dataclass(frozen=True)
class ToolResult:
    """Result of a tool call, correlated with the invocation that produced it.

    Attributes:
        id: The ``tool_use`` id this result answers.
        content: MCP content blocks returned by the server.
    """

    id: str
    content: list[Any]
