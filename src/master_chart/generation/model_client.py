"""Model client boundary: one-shot and streamed text generation with cooperative cancellation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Protocol, Sequence, runtime_checkable

from .cancellation import CancellationToken
from .errors import PipelineError, UpstreamFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class ModelRequest:
    """Everything a single model call needs apart from the cancellation token."""

    messages: tuple[ChatMessage, ...]
    system_prompt: str
    max_tokens: int
    temperature: float = 0.3
    request_id: str = ""

    @classmethod
    def from_prompt(
        cls,
        prompt: str,
        *,
        system_prompt: str,
        max_tokens: int,
        temperature: float = 0.3,
        request_id: str = "",
    ) -> "ModelRequest":
        return cls(
            messages=(ChatMessage(role="user", content=prompt),),
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            request_id=request_id,
        )


@runtime_checkable
class ModelClient(Protocol):
    """Anything the orchestrator can call; vendor adapters and test doubles alike."""

    async def invoke(
        self, request: ModelRequest, cancel_token: CancellationToken | None = None
    ) -> str: ...

    def invoke_streaming(
        self, request: ModelRequest, cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[str]: ...


def _check(cancel_token: CancellationToken | None) -> None:
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()


class BaseModelClient:
    """Shared cancellation and error translation for the vendor adapters.

    Subclasses implement :meth:`_complete` and :meth:`_stream`. Neither retries; any
    transport or SDK failure surfaces as :class:`UpstreamFailure`.
    """

    backend: str = "base"

    def __init__(self, model: str) -> None:
        self.model = model

    async def invoke(
        self, request: ModelRequest, cancel_token: CancellationToken | None = None
    ) -> str:
        _check(cancel_token)
        start = time.perf_counter()
        try:
            text = await self._complete(request)
        except PipelineError:
            raise
        except Exception as exc:
            raise self._wrap_exception(request, exc) from exc
        logger.info(
            "%s request %s completed in %.0f ms (%d chars)",
            self.backend,
            request.request_id or "-",
            (time.perf_counter() - start) * 1000.0,
            len(text),
        )
        _check(cancel_token)
        return text

    async def invoke_streaming(
        self, request: ModelRequest, cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[str]:
        _check(cancel_token)
        stream = self._stream(request)
        try:
            async for fragment in stream:
                _check(cancel_token)
                if fragment:
                    yield fragment
        except PipelineError:
            raise
        except Exception as exc:
            raise self._wrap_exception(request, exc) from exc
        finally:
            await stream.aclose()

    async def _complete(self, request: ModelRequest) -> str:
        raise NotImplementedError

    def _stream(self, request: ModelRequest) -> AsyncIterator[str]:
        raise NotImplementedError

    def _wrap_exception(self, request: ModelRequest, exc: Exception) -> UpstreamFailure:
        status = getattr(exc, "status_code", None)
        response = getattr(exc, "response", None)
        if status is None and response is not None:
            status = getattr(response, "status_code", None)
        retryable = bool(status is not None and (status in {408, 429} or status >= 500))
        logger.error(
            "%s request %s failed (%s): %s",
            self.backend,
            request.request_id or "-",
            exc.__class__.__name__,
            exc,
        )
        return UpstreamFailure(
            f"{exc.__class__.__name__} for {request.request_id or self.backend}: {exc}",
            error_type=exc.__class__.__name__,
            status_code=status,
            retryable=retryable,
        )


def system_and_messages(request: ModelRequest) -> tuple[str, list[Mapping[str, str]]]:
    return request.system_prompt, [message.as_dict() for message in request.messages]


def messages_with_system(request: ModelRequest) -> Sequence[Mapping[str, str]]:
    """Chat-completions style payload: the system prompt leads the message list."""

    messages: list[Mapping[str, str]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.extend(message.as_dict() for message in request.messages)
    return messages


__all__ = [
    "BaseModelClient",
    "ChatMessage",
    "ModelClient",
    "ModelRequest",
    "messages_with_system",
    "system_and_messages",
]
