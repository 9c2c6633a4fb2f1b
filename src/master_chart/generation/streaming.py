"""Folding a streamed model response into one string while exposing its growth."""

from __future__ import annotations

from typing import AsyncIterator, Callable


class StreamAggregator:
    """Concatenate fragments of a lazy, non-restartable stream.

    ``on_fragment`` receives the aggregate length after every fragment so callers can
    turn it into a progress signal. If the stream raises (including ``Cancelled``) the
    partial text is dropped and the exception propagates: a half-streamed batch is a
    failed batch.
    """

    def __init__(self, on_fragment: Callable[[int], None] | None = None) -> None:
        self._chunks: list[str] = []
        self._length = 0
        self._on_fragment = on_fragment
        self._consumed = False

    @property
    def length(self) -> int:
        return self._length

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    async def consume(self, fragments: AsyncIterator[str]) -> str:
        if self._consumed:
            raise RuntimeError("StreamAggregator instances consume exactly one stream")
        self._consumed = True
        try:
            async for fragment in fragments:
                self._chunks.append(fragment)
                self._length += len(fragment)
                if self._on_fragment is not None:
                    self._on_fragment(self._length)
        except BaseException:
            self._chunks.clear()
            self._length = 0
            raise
        return self.text


async def collect_stream(fragments: AsyncIterator[str]) -> str:
    return await StreamAggregator().consume(fragments)


__all__ = ["StreamAggregator", "collect_stream"]
