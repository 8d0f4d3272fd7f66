"""bedrock_chat/results.py

Helpers for reading MCP tool results.
"""

from __future__ import annotations

# Standard Library
import json
from typing import Any


def _block_field(block: Any, name: str) -> Any:
    """Read ``name`` from a content block given as a pydantic model or a dict."""
    if isinstance(block, dict):
        return block.get(name)
    return getattr(block, name, None)


def _first_text(payload: Any) -> str | None:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (list, tuple)) and payload:
        text = _block_field(payload[0], "text")
        if isinstance(text, str):
            return text
    return None


def extract_items(payload: Any) -> list[Any] | None:
    """Pull the ``items`` array out of a tool result payload.

    The payload is either a JSON string or a list of MCP content blocks whose
    first block carries JSON text. Anything that does not parse to an object
    with an ``items`` list yields ``None``; this function never raises.

    Args:
        payload: The ``content`` of a tool result.

    Returns:
        The ``items`` list, or ``None`` when there is none.
    """
    text = _first_text(payload)
    if text is None:
        return None
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("items"), list):
        return parsed["items"]
    return None


def render_items(items: list[Any]) -> str:
    """Readable text block appended to a tool result for the model."""
    return "\nActual items:\n" + json.dumps(items, indent=2, ensure_ascii=False)


def render_tool_content(payload: Any) -> str:
    """Flatten tool result content into the string sent as ``tool_result``.

    Text blocks contribute their text; any other block type is serialized
    as JSON so no data is dropped.
    """
    if isinstance(payload, str):
        return payload
    parts: list[str] = []
    for block in payload or []:
        text = _block_field(block, "text")
        if _block_field(block, "type") == "text" and isinstance(text, str):
            parts.append(text)
        elif isinstance(block, dict):
            parts.append(json.dumps(block, ensure_ascii=False))
        else:
            dump = getattr(block, "model_dump_json", None)
            parts.append(dump() if dump else str(block))
    return "\n".join(parts)
