"""bedrock_chat/transcript.py

Conversation transcript sent to the model on every request.
Lives for the process lifetime and is never persisted.
"""

from __future__ import annotations

# Standard Library
import copy
from typing import Any, NamedTuple

# Local Modules
from bedrock_chat.models import ToolInvocation, ToolResult
from bedrock_chat.results import render_tool_content


class Checkpoint(NamedTuple):
    """Transcript position: message count and block count of the last message."""

    messages: int
    last_blocks: int


class Transcript:
    """Ordered list of Anthropic Messages API messages.

    Roles strictly alternate: content for the same role as the last message is
    merged into it. Only the chat session mutates the transcript. A turn that
    fails is undone with :meth:`rollback` so a ``tool_use`` block is never left
    without its ``tool_result``.
    """

    def __init__(self) -> None:
        self._messages: list[dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._messages)

    def _append(self, role: str, blocks: list[dict[str, Any]]) -> None:
        if self._messages and self._messages[-1]["role"] == role:
            self._messages[-1]["content"].extend(blocks)
        else:
            self._messages.append({"role": role, "content": list(blocks)})

    def add_user_text(self, text: str) -> None:
        """Append a user text block.

        Args:
            text: The user's input.
        """
        self._append("user", [{"type": "text", "text": text}])

    def add_assistant_text(self, text: str) -> None:
        """Append an assistant text reply. Empty replies are skipped."""
        if text:
            self._append("assistant", [{"type": "text", "text": text}])

    def add_tool_exchange(
        self,
        invocation: ToolInvocation,
        result: ToolResult,
        items_text: str = "",
    ) -> None:
        """Append a tool request and its result as one atomic pair.

        Args:
            invocation: The tool call that was executed.
            result: The server's answer to ``invocation``.
            items_text: Extra readable text appended to the result content,
                normally the pretty-printed ``items`` array.
        """
        self._append("assistant", [invocation.to_block()])
        self._append(
            "user",
            [
                {
                    "type": "tool_result",
                    "tool_use_id": result.id,
                    "content": render_tool_content(result.content) + items_text,
                }
            ],
        )

    def messages(self) -> list[dict[str, Any]]:
        """Return a deep copy of the messages, safe to serialize or mutate."""
        return copy.deepcopy(self._messages)

    def checkpoint(self) -> Checkpoint:
        """Mark the current position for a later :meth:`rollback`."""
        last_blocks = len(self._messages[-1]["content"]) if self._messages else 0
        return Checkpoint(len(self._messages), last_blocks)

    def rollback(self, checkpoint: Checkpoint) -> None:
        """Discard everything added since ``checkpoint``, merged blocks included."""
        del self._messages[checkpoint.messages:]
        if self._messages:
            del self._messages[-1]["content"][checkpoint.last_blocks:]

    def clear(self) -> None:
        self._messages.clear()
