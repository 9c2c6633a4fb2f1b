from __future__ import annotations

import os
from typing import Any, AsyncIterator

import httpx
from anthropic import AsyncAnthropic, AsyncAnthropicBedrock

from ..generation.model_client import BaseModelClient, ModelRequest, system_and_messages
from .env import load_repo_dotenv


class AnthropicClient(BaseModelClient):
    """Anthropic Messages API client for chart generation."""

    backend = "anthropic"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-5",
        client_timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        load_repo_dotenv()
        super().__init__(model)
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable or "
                "provide api_key in config."
            )
        client_kwargs: dict[str, Any] = {"api_key": self.api_key}
        if client_timeout is not None:
            client_kwargs["timeout"] = float(client_timeout)
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        self._client = AsyncAnthropic(**client_kwargs)

    def _payload(self, request: ModelRequest) -> dict[str, Any]:
        system, messages = system_and_messages(request)
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": messages,
        }
        if system:
            payload["system"] = system
        return payload

    async def _complete(self, request: ModelRequest) -> str:
        message = await self._client.messages.create(**self._payload(request))
        return "\n".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )

    async def _stream(self, request: ModelRequest) -> AsyncIterator[str]:
        async with self._client.messages.stream(**self._payload(request)) as stream:
            async for text in stream.text_stream:
                yield text


class BedrockClient(AnthropicClient):
    """Anthropic models served through AWS Bedrock; same payloads, AWS credentials."""

    backend = "bedrock"

    def __init__(
        self,
        aws_region: str | None = None,
        aws_access_key: str | None = None,
        aws_secret_key: str | None = None,
        model: str = "us.anthropic.claude-sonnet-4-5-20250929-v1:0",
        client_timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        load_repo_dotenv()
        BaseModelClient.__init__(self, model)
        region = aws_region or os.getenv("AWS_REGION")
        if not region:
            raise ValueError(
                "AWS region required for Bedrock. Set AWS_REGION environment variable or "
                "provide aws_region in config."
            )
        client_kwargs: dict[str, Any] = {
            "aws_region": region,
            "aws_access_key": aws_access_key or os.getenv("AWS_ACCESS_KEY_ID"),
            "aws_secret_key": aws_secret_key or os.getenv("AWS_SECRET_ACCESS_KEY"),
        }
        if client_timeout is not None:
            client_kwargs["timeout"] = float(client_timeout)
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        self.aws_region = region
        self._client = AsyncAnthropicBedrock(**client_kwargs)
