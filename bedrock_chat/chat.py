"""bedrock_chat/chat.py

Chat session: owns the transcript, calls the model, routes tool calls to the
MCP server and asks the model for one follow-up answer per tool call.
"""

from __future__ import annotations

# Standard Library
import asyncio
import logging
from typing import Any

# Third-Party Libraries
from rich.console import Console

# Local Modules
from bedrock_chat.bedrock import BedrockModel, ModelInvocationError
from bedrock_chat.config import ChatSettings
from bedrock_chat.heuristics import describe_call, route_tool_call
from bedrock_chat.models import ToolDescriptor, ToolInvocation, ToolResult
from bedrock_chat.results import extract_items, render_items
from bedrock_chat.tool_client import ToolServerClient
from bedrock_chat.transcript import Transcript

logger = logging.getLogger(__name__)


def _text_of(blocks: list[dict[str, Any]]) -> str:
    return "\n".join(
        block.get("text", "") for block in blocks if block.get("type") == "text"
    )


class ChatSession:
    """Orchestrates one interactive conversation.

    Model and tool server clients are passed in so tests can substitute fakes.
    Calls are strictly sequential: at most one model request and one tool call
    are outstanding at any time.
    """

    def __init__(
        self,
        settings: ChatSettings,
        model: BedrockModel,
        tools_client: ToolServerClient,
        console: Console | None = None,
    ) -> None:
        self.settings = settings
        self.model = model
        self.tools_client = tools_client
        self.console = console
        self.transcript = Transcript()
        self.tools: list[ToolDescriptor] = []

    async def connect(self) -> None:
        """Open the tool server session and store its catalog.

        Raises:
            ToolServerConnectionError: If the server is unreachable.
        """
        self.tools = await self.tools_client.connect()

    async def cleanup(self) -> None:
        await self.tools_client.close()

    def clear_history(self) -> None:
        """Forget the conversation so far."""
        self.transcript.clear()
        logger.info("Conversation history cleared")

    async def _complete(self) -> dict[str, Any]:
        # boto3 blocks; keep the event loop free for the MCP session.
        return await asyncio.to_thread(
            self.model.invoke, self.transcript.messages(), self.tools
        )

    def _show_items(self, items: list[Any]) -> None:
        if self.console is None:
            return
        self.console.rule("Actual items from tool")
        self.console.print_json(data=items)
        self.console.rule("End items")

    async def _run_tool(self, invocation: ToolInvocation) -> tuple[str, ToolResult]:
        """Execute a requested tool call, applying the query/scan fallback."""
        name, arguments = route_tool_call(
            invocation.name, invocation.arguments, self.settings.partition_key
        )
        if name != invocation.name:
            logger.info(
                "Rewrote %s to %s: key condition not usable for a direct query",
                invocation.name,
                name,
            )
        content = await self.tools_client.call_tool(name, arguments)
        return describe_call(name, arguments), ToolResult(id=invocation.id, content=content)

    async def process_query(self, query: str) -> str:
        """Answer one user query.

        Model failures are returned as ``"Error: ..."`` text. Tool failures
        propagate to the caller. Either way the transcript is restored to its
        state before the query.

        Args:
            query: The user's input line.

        Returns:
            Text to display: model text, tool-call traces and follow-up answers.
        """
        checkpoint = self.transcript.checkpoint()
        self.transcript.add_user_text(query)
        output: list[str] = []
        try:
            response = await self._complete()
            pending: list[str] = []
            for block in response["content"]:
                block_type = block.get("type")
                if block_type == "text":
                    output.append(block.get("text", ""))
                    pending.append(block.get("text", ""))
                elif block_type == "tool_use":
                    # Text preceding the tool request belongs to the same turn.
                    self.transcript.add_assistant_text("\n".join(pending))
                    pending = []
                    output.extend(await self._handle_tool_use(block))
            self.transcript.add_assistant_text("\n".join(pending))
        except ModelInvocationError as exc:
            logger.error("Error invoking Bedrock model: %s", exc)
            self.transcript.rollback(checkpoint)
            return f"Error: {exc}"
        except BaseException:
            self.transcript.rollback(checkpoint)
            raise
        return "\n".join(output)

    async def _handle_tool_use(self, block: dict[str, Any]) -> list[str]:
        invocation = ToolInvocation.from_block(block)
        trace, result = await self._run_tool(invocation)

        items = extract_items(result.content)
        if items is not None:
            self._show_items(items)
        self.transcript.add_tool_exchange(
            invocation, result, render_items(items) if items is not None else ""
        )

        follow_up = await self._complete()
        follow_up_text = _text_of(follow_up["content"])
        self.transcript.add_assistant_text(follow_up_text)
        return [trace, follow_up_text] if follow_up_text else [trace]
