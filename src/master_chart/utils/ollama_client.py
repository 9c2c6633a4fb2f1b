"""Streaming client for a local Ollama server (``/api/chat``, newline-delimited JSON)."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, AsyncIterator

import httpx

from ..generation.errors import UpstreamFailure
from ..generation.model_client import BaseModelClient, ModelRequest, messages_with_system

logger = logging.getLogger(__name__)


class OllamaClient(BaseModelClient):
    """Ollama chat client; concurrency should stay low for large local models."""

    backend = "ollama"

    def __init__(
        self,
        model: str = "llama3.1:70b",
        base_url: str = "http://localhost:11434",
        client_timeout: float = 1800.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(model)
        self.base_url = os.getenv("OLLAMA_BASE_URL", base_url).rstrip("/")
        self._endpoint = f"{self.base_url}/api/chat"
        self._timeout = client_timeout
        self._transport = transport

    def _payload(self, request: ModelRequest, *, stream: bool) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": list(messages_with_system(request)),
            "stream": stream,
            "options": {
                "num_predict": request.max_tokens,
                "temperature": request.temperature,
            },
        }

    async def _complete(self, request: ModelRequest) -> str:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as session:
            response = await session.post(self._endpoint, json=self._payload(request, stream=False))
            response.raise_for_status()
            data = response.json()
        return str(data.get("message", {}).get("content", ""))

    async def _stream(self, request: ModelRequest) -> AsyncIterator[str]:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as session:
            async with session.stream(
                "POST", self._endpoint, json=self._payload(request, stream=True)
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError as exc:
                        raise UpstreamFailure(
                            f"Malformed Ollama stream line: {line[:200]}",
                            error_type="malformed_stream",
                        ) from exc
                    if data.get("error"):
                        raise UpstreamFailure(str(data["error"]), error_type="ollama_error")
                    content = data.get("message", {}).get("content", "")
                    if content:
                        yield content
                    if data.get("done"):
                        logger.debug("Ollama stream finished (%s)", data.get("done_reason", "stop"))
                        break
