"""bedrock_chat/tool_client.py

MCP stdio connection to the tool server, built on the FastMCP client.
"""

from __future__ import annotations

# Standard Library
import contextlib
import logging
import os
import sys
from pathlib import Path
from typing import Any

# Third-Party Libraries
from fastmcp import Client
from fastmcp.client.transports import NodeStdioTransport, PythonStdioTransport
from fastmcp.exceptions import ToolError

# Local Modules
from bedrock_chat.models import ToolDescriptor

logger = logging.getLogger(__name__)


class ToolServerConnectionError(ConnectionError):
    """Raised when the tool server cannot be started or its catalog read."""


def build_transport(
    server_script: str,
    env: dict[str, str] | None = None,
) -> PythonStdioTransport | NodeStdioTransport:
    """Pick the stdio transport for a ``.py`` or ``.js`` server script.

    The parent environment is forwarded so the server inherits AWS settings;
    the MCP stdio launcher would otherwise pass only a minimal environment.
    The subprocess is not kept alive between sessions: it exits when the
    client session closes.

    Raises:
        ToolServerConnectionError: If the script is missing or has another
            suffix.
    """
    server_env = dict(os.environ if env is None else env)
    path = Path(server_script)
    if not path.is_file():
        raise ToolServerConnectionError(f"Server script not found: {server_script}")
    suffix = path.suffix
    if suffix == ".py":
        return PythonStdioTransport(
            server_script,
            env=server_env,
            python_cmd=sys.executable,
            keep_alive=False,
        )
    if suffix == ".js":
        return NodeStdioTransport(server_script, env=server_env, keep_alive=False)
    raise ToolServerConnectionError(
        f"Server script must be a .js or .py file: {server_script}"
    )


class ToolServerClient:
    """Long-lived MCP session with one tool server subprocess.

    The session is opened by :meth:`connect` and released by :meth:`close`,
    which is safe to call more than once.
    """

    def __init__(self, client: Any) -> None:
        self._client = client
        self._stack: contextlib.AsyncExitStack | None = None

    @classmethod
    def for_script(cls, server_script: str) -> ToolServerClient:
        """Create a client that will spawn ``server_script`` on connect."""
        return cls(Client(build_transport(server_script)))

    @property
    def connected(self) -> bool:
        return self._stack is not None

    async def connect(self) -> list[ToolDescriptor]:
        """Start the session and fetch the tool catalog.

        Returns:
            The advertised tools.

        Raises:
            ToolServerConnectionError: If the server cannot be reached.
        """
        stack = contextlib.AsyncExitStack()
        try:
            await stack.enter_async_context(self._client)
            tools = await self._client.list_tools()
        except Exception as exc:
            await stack.aclose()
            raise ToolServerConnectionError(
                f"Failed to connect to MCP server: {exc}"
            ) from exc
        self._stack = stack
        descriptors = [ToolDescriptor.from_mcp(tool) for tool in tools]
        logger.info(
            "Connected to server with tools: %s", [d.name for d in descriptors]
        )
        return descriptors

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> list[Any]:
        """Call one tool and return its content blocks.

        Raises:
            ToolError: If the server reports the call as failed.
        """
        logger.info("Tool call requested: %s with args %s", name, arguments)
        result = await self._client.call_tool_mcp(name, arguments)
        content = list(result.content or [])
        if result.isError:
            detail = " ".join(
                getattr(block, "text", "") for block in content
            ).strip()
            raise ToolError(f"Tool {name} failed: {detail or 'unknown error'}")
        return content

    async def close(self) -> None:
        """Close the session; later calls are no-ops."""
        if self._stack is None:
            return
        stack, self._stack = self._stack, None
        await stack.aclose()
        logger.info("Tool server connection closed")
