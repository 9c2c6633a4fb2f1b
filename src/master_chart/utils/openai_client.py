from __future__ import annotations

import os
from typing import Any, AsyncIterator

import httpx
from openai import AsyncOpenAI

from ..generation.model_client import BaseModelClient, ModelRequest, messages_with_system
from .env import load_repo_dotenv


class OpenAIClient(BaseModelClient):
    """OpenAI chat-completions client (also serves vLLM and other compatible endpoints)."""

    backend = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        org_id: str | None = None,
        model: str = "gpt-4o",
        client_timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        load_repo_dotenv()
        super().__init__(model)
        self.api_base = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        # For local endpoints (vLLM, ollama), API key may not be required
        if not self.api_key:
            if "localhost" in self.api_base or "127.0.0.1" in self.api_base:
                self.api_key = "EMPTY"
            else:
                raise ValueError(
                    "OpenAI API key required. Set OPENAI_API_KEY environment variable or "
                    "provide api_key in config."
                )
        self.org_id = org_id or os.getenv("OPENAI_ORG_ID")
        client_kwargs: dict[str, Any] = {
            "api_key": self.api_key,
            "organization": self.org_id,
            "base_url": self.api_base,
        }
        if client_timeout is not None:
            client_kwargs["timeout"] = float(client_timeout)
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        self._client = AsyncOpenAI(**client_kwargs)

    def _payload(self, request: ModelRequest) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": list(messages_with_system(request)),
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }

    async def _complete(self, request: ModelRequest) -> str:
        response = await self._client.chat.completions.create(**self._payload(request))
        return response.choices[0].message.content or ""

    async def _stream(self, request: ModelRequest) -> AsyncIterator[str]:
        stream = await self._client.chat.completions.create(
            **self._payload(request), stream=True
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
