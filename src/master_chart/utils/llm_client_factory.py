from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Callable

from ..generation.config import LLMConfig
from ..generation.model_client import BaseModelClient
from .anthropic_client import AnthropicClient, BedrockClient
from .env import load_repo_dotenv
from .ollama_client import OllamaClient
from .openai_client import OpenAIClient

logger = logging.getLogger(__name__)

# backend name -> (client class, LLMConfig attribute holding its settings)
_BACKENDS: dict[str, tuple[Callable[..., BaseModelClient], str]] = {
    "anthropic": (AnthropicClient, "anthropic"),
    "bedrock": (BedrockClient, "bedrock"),
    "openai": (OpenAIClient, "openai"),
    # vLLM serves the OpenAI chat-completions API; point OPENAI_API_BASE at it.
    "vllm": (OpenAIClient, "openai"),
    "ollama": (OllamaClient, "ollama"),
}

SUPPORTED_BACKENDS = tuple(_BACKENDS)


def create_model_client(config: LLMConfig) -> BaseModelClient:
    """Factory resolving the appropriate model client based on config."""

    load_repo_dotenv()
    backend = config.backend.lower()
    if backend not in _BACKENDS:
        raise ValueError(
            f"Unsupported LLM backend: {config.backend}. "
            f"Supported: {', '.join(SUPPORTED_BACKENDS)}"
        )
    client_cls, section = _BACKENDS[backend]
    settings: dict[str, Any] = asdict(getattr(config, section))
    client = client_cls(**settings)
    logger.info("Using %s backend with model %s", backend, client.model)
    return client


__all__ = ["SUPPORTED_BACKENDS", "create_model_client"]
