"""bedrock_chat/config.py

Runtime configuration for the chat client, loaded from environment
variables and an optional ``.env`` file.
"""

from __future__ import annotations

# Standard Library
from typing import Any

# Third-Party Libraries
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


class ChatSettings(BaseSettings):
    """Chat client configuration.

    Attributes:
        aws_region: Region of the Bedrock runtime endpoint. Required.
        bedrock_model_id: Model identifier passed to ``invoke_model``.
        bedrock_inference_profile_id: Optional inference profile id or ARN.
            When set it is used in place of ``bedrock_model_id``.
        anthropic_version: Version tag sent in every request body.
        max_tokens: Completion token limit per request.
        temperature: Sampling temperature.
        top_p: Nucleus sampling cutoff.
        top_k: Top-k sampling cutoff.
        partition_key: Partition key name assumed by the query/scan fallback.
        log_level: Root logging level for the client process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    aws_region: str = Field(
        ...,
        min_length=1,
        description="AWS region of the Bedrock runtime endpoint.",
    )
    bedrock_model_id: str = Field(
        "anthropic.claude-3-sonnet-20240229-v1:0",
        description="Bedrock model id used when no inference profile is given.",
    )
    bedrock_inference_profile_id: str | None = Field(
        None,
        description="Inference profile id or ARN; overrides the model id.",
    )
    anthropic_version: str = Field("bedrock-2023-05-31")
    max_tokens: int = Field(1000, ge=1)
    temperature: float = Field(0.7, ge=0.0, le=1.0)
    top_p: float = Field(0.999, ge=0.0, le=1.0)
    top_k: int = Field(250, ge=0)
    partition_key: str = Field(
        "id",
        min_length=1,
        description="Partition key name a direct query-table call must use.",
    )
    log_level: str = Field("WARNING")

    @property
    def effective_model_id(self) -> str:
        """Return the identifier to send as ``modelId``."""
        return self.bedrock_inference_profile_id or self.bedrock_model_id


def load_settings(**overrides: Any) -> ChatSettings:
    """Build :class:`ChatSettings`, turning validation failures into
    :class:`ConfigurationError`.

    Args:
        **overrides: Explicit values that take priority over the environment.
            ``_env_file`` is forwarded to pydantic-settings.

    Returns:
        The validated settings.

    Raises:
        ConfigurationError: If ``AWS_REGION`` is absent or any value is invalid.
    """
    try:
        return ChatSettings(**overrides)
    except ValidationError as exc:
        fields = {str(err["loc"][0]) for err in exc.errors() if err.get("loc")}
        if "aws_region" in fields:
            raise ConfigurationError(
                "AWS_REGION is not set; export it or add it to .env"
            ) from exc
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
