"""bedrock_chat/bedrock.py

Thin wrapper around the Bedrock runtime ``invoke_model`` call using the
Anthropic Messages request format.
"""

from __future__ import annotations

# Standard Library
import json
import logging
from typing import Any

# Third-Party Libraries
import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Local Modules
from bedrock_chat.config import ChatSettings
from bedrock_chat.models import ToolDescriptor

logger = logging.getLogger(__name__)


class ModelInvocationError(RuntimeError):
    """Raised when the model endpoint fails or returns an unusable body."""


def build_request(
    settings: ChatSettings,
    messages: list[dict[str, Any]],
    tools: list[ToolDescriptor],
) -> dict[str, Any]:
    """Build the JSON body for one ``invoke_model`` call.

    Args:
        settings: Supplies the version tag and generation parameters.
        messages: Full transcript to send.
        tools: Tool catalog; the ``tools`` key is omitted when empty.

    Returns:
        The request body as a dict.
    """
    payload: dict[str, Any] = {
        "anthropic_version": settings.anthropic_version,
        "max_tokens": settings.max_tokens,
        "top_k": settings.top_k,
        "stop_sequences": [],
        "temperature": settings.temperature,
        "top_p": settings.top_p,
        "messages": messages,
    }
    if tools:
        payload["tools"] = [tool.to_bedrock() for tool in tools]
    return payload


class BedrockModel:
    """Sends Messages API payloads to a Bedrock model.

    The boto3 client is created once and can be injected for tests.
    """

    def __init__(self, settings: ChatSettings, client: Any | None = None) -> None:
        self.settings = settings
        self.model_id = settings.effective_model_id
        self.client = client or boto3.client(
            "bedrock-runtime", region_name=settings.aws_region
        )
        logger.info(
            "BedrockModel initialized: model=%s, region=%s",
            self.model_id,
            settings.aws_region,
        )

    def invoke(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDescriptor],
    ) -> dict[str, Any]:
        """Invoke the model once and return the decoded response body.

        Raises:
            ModelInvocationError: On any transport, service or decoding failure.
        """
        body = build_request(self.settings, messages, tools)
        logger.debug("Invoking %s with %d messages", self.model_id, len(messages))
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body),
            )
            decoded: dict[str, Any] = json.loads(response["body"].read())
        except (BotoCoreError, ClientError) as exc:
            raise ModelInvocationError(str(exc)) from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise ModelInvocationError(f"Malformed model response: {exc}") from exc

        if not isinstance(decoded, dict) or not isinstance(decoded.get("content"), list):
            raise ModelInvocationError("Model response has no content blocks")
        logger.debug(
            "Model stop_reason=%s blocks=%d",
            decoded.get("stop_reason"),
            len(decoded["content"]),
        )
        return decoded
