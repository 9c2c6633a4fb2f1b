"""Cooperative cancellation token threaded through every stage and batch."""

from __future__ import annotations

import asyncio
import logging

from .errors import Cancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """One-shot cancellation signal checked at every suspension point.

    The token never interrupts running code; callers poll it through
    :meth:`raise_if_cancelled` before dispatching work and between stream fragments.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Generation cancelled by user") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info("Cancellation requested: %s", reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self._reason or "Generation cancelled by user")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` but wake up and raise as soon as the token fires."""

        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        self.raise_if_cancelled()


__all__ = ["CancellationToken"]
