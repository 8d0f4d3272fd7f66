"""tests/test_bedrock.py

Unit tests for request building and the Bedrock model wrapper (bedrock_chat/bedrock.py).
"""

from __future__ import annotations

# Standard Library
import io
import json
from unittest.mock import Mock, patch

# Third-Party Libraries
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

# Local Modules
from bedrock_chat.bedrock import BedrockModel, ModelInvocationError, build_request
from bedrock_chat.config import ChatSettings

MESSAGES = [{"role": "user", "content": [{"type": "text", "text": "hi"}]}]


def _response(body: object) -> dict:
    raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    return {"body": io.BytesIO(raw), "contentType": "application/json"}


class TestBuildRequest:
    """Test suite for build_request."""

    def test_fixed_generation_parameters(self, settings: ChatSettings) -> None:
        payload = build_request(settings, MESSAGES, [])
        assert payload == {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": 1000,
            "top_k": 250,
            "stop_sequences": [],
            "temperature": 0.7,
            "top_p": 0.999,
            "messages": MESSAGES,
        }

    def test_tools_included_when_catalog_not_empty(self, settings, dynamo_tools) -> None:
        payload = build_request(settings, MESSAGES, dynamo_tools)
        assert [tool["name"] for tool in payload["tools"]] == [
            "list-tables",
            "query-table",
            "scan-table",
        ]
        assert set(payload["tools"][0]) == {"name", "description", "input_schema"}


class TestBedrockModel:
    """Test suite for BedrockModel."""

    def test_invoke_sends_json_body(self, settings: ChatSettings) -> None:
        client = Mock()
        client.invoke_model.return_value = _response(
            {"content": [{"type": "text", "text": "Hello!"}], "stop_reason": "end_turn"}
        )
        model = BedrockModel(settings, client=client)

        body = model.invoke(MESSAGES, [])

        assert body["content"] == [{"type": "text", "text": "Hello!"}]
        kwargs = client.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == "anthropic.claude-3-sonnet-20240229-v1:0"
        assert kwargs["contentType"] == "application/json"
        assert json.loads(kwargs["body"])["messages"] == MESSAGES

    def test_inference_profile_replaces_model_id(self) -> None:
        settings = ChatSettings(
            aws_region="us-east-1",
            bedrock_inference_profile_id="arn:aws:bedrock:us-east-1:123456789012:inference-profile/team-profile",
            _env_file=None,
        )
        client = Mock()
        client.invoke_model.return_value = _response({"content": []})

        BedrockModel(settings, client=client).invoke(MESSAGES, [])

        assert (
            client.invoke_model.call_args.kwargs["modelId"]
            == "arn:aws:bedrock:us-east-1:123456789012:inference-profile/team-profile"
        )

    @patch("bedrock_chat.bedrock.boto3")
    def test_default_client_uses_region(self, mock_boto3: Mock, settings) -> None:
        BedrockModel(settings)
        mock_boto3.client.assert_called_once_with("bedrock-runtime", region_name="us-east-1")

    def test_client_error_is_wrapped(self, settings: ChatSettings) -> None:
        client = Mock()
        client.invoke_model.side_effect = ClientError(
            {"Error": {"Code": "ValidationException", "Message": "bad input"}},
            "InvokeModel",
        )
        with pytest.raises(ModelInvocationError, match="bad input"):
            BedrockModel(settings, client=client).invoke(MESSAGES, [])

    def test_transport_error_is_wrapped(self, settings: ChatSettings) -> None:
        client = Mock()
        client.invoke_model.side_effect = EndpointConnectionError(endpoint_url="https://x")
        with pytest.raises(ModelInvocationError):
            BedrockModel(settings, client=client).invoke(MESSAGES, [])

    @pytest.mark.parametrize("body", [b"not json", {"message": "no content"}, [1, 2]])
    def test_malformed_body_is_wrapped(self, settings: ChatSettings, body: object) -> None:
        client = Mock()
        client.invoke_model.return_value = _response(body)
        with pytest.raises(ModelInvocationError):
            BedrockModel(settings, client=client).invoke(MESSAGES, [])
