"""Windowed, rate-limited fan-out of stage-3 batches with monotonic progress reporting."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from .cancellation import CancellationToken
from .model_client import ModelClient, ModelRequest
from .models import Batch, ConceptManifest
from .streaming import StreamAggregator

logger = logging.getLogger(__name__)

# Rough size of one fully written concept block; only feeds the per-batch estimate.
EXPECTED_CHARS_PER_CONCEPT = 1200

BatchRequestBuilder = Callable[[Batch, Sequence[str]], ModelRequest]
BatchProgressCallback = Callable[[float, Mapping[str, Any]], None]


def plan_batches(total: int, batch_size: int) -> list[Batch]:
    """Partition ``[0, total)`` into ``ceil(total / batch_size)`` contiguous half-open ranges."""

    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    count = math.ceil(total / batch_size)
    return [
        Batch(index=idx, start=idx * batch_size, end=min((idx + 1) * batch_size, total))
        for idx in range(count)
    ]


def _chunk(items: Sequence[Batch], size: int) -> list[list[Batch]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class MonotonicProgress:
    """Global-max progress value; the only place stage-3 progress is published from.

    A candidate is published when it is greater than or equal to the current maximum,
    so the observed sequence never decreases no matter how batches interleave.
    """

    def __init__(self, total_batches: int, callback: BatchProgressCallback | None = None) -> None:
        self._total = max(1, total_batches)
        self._value = 0.0
        self._callback = callback

    @property
    def value(self) -> float:
        return self._value

    def candidate(self, batch_index: int, fraction: float = 0.5) -> float:
        return (batch_index + fraction) / self._total * 100.0

    def offer(self, candidate: float, payload: Mapping[str, Any] | None = None) -> bool:
        if candidate < self._value:
            return False
        self._value = candidate
        if self._callback is not None:
            self._callback(candidate, dict(payload or {}))
        return True


@dataclass(slots=True)
class ScheduleResult:
    text: str
    batches: list[Batch]
    windows: int
    delays: int


class BatchScheduler:
    """Run batches ``concurrency`` at a time, pausing between windows.

    Each window is awaited in full before the next is launched. A failure or
    cancellation in any batch fails the whole run; the remaining siblings of that
    window are cancelled and their output discarded.
    """

    def __init__(
        self,
        client: ModelClient,
        *,
        batch_size: int = 10,
        concurrency: int = 2,
        window_delay_seconds: float = 2.0,
    ) -> None:
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self._client = client
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.window_delay_seconds = max(0.0, window_delay_seconds)

    async def run(
        self,
        manifest: ConceptManifest,
        build_request: BatchRequestBuilder,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: BatchProgressCallback | None = None,
    ) -> ScheduleResult:
        token = cancel_token or CancellationToken()
        batches = plan_batches(len(manifest), self.batch_size)
        progress = MonotonicProgress(len(batches), on_progress)
        windows = _chunk(batches, self.concurrency)
        delays = 0
        for window_idx, window in enumerate(windows):
            if window_idx > 0 and self.window_delay_seconds > 0:
                await token.sleep(self.window_delay_seconds)
                delays += 1
            token.raise_if_cancelled()
            logger.info(
                "Dispatching batch window %d/%d (batches %s)",
                window_idx + 1,
                len(windows),
                ", ".join(str(batch.index + 1) for batch in window),
            )
            progress.offer(
                progress.candidate(window[0].index, 0.0),
                {
                    "message": (
                        f"Generating concepts {window[0].start + 1}-{window[-1].end} "
                        f"of {len(manifest)}..."
                    ),
                },
            )
            await self._run_window(window, manifest, build_request, token, progress)
        ordered = sorted(batches, key=lambda batch: batch.index)
        text = "".join(batch.text + "\n\n" for batch in ordered)
        return ScheduleResult(text=text, batches=ordered, windows=len(windows), delays=delays)

    async def _run_window(
        self,
        window: Sequence[Batch],
        manifest: ConceptManifest,
        build_request: BatchRequestBuilder,
        token: CancellationToken,
        progress: MonotonicProgress,
    ) -> None:
        tasks = [
            asyncio.create_task(
                self._run_batch(batch, manifest, build_request, token, progress),
                name=f"batch-{batch.index + 1}",
            )
            for batch in window
        ]
        pending: set[asyncio.Task[None]] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
                for task in done:
                    if task.cancelled():
                        continue
                    exc = task.exception()
                    if exc is not None:
                        logger.warning(
                            "%s failed (%s); abandoning %d sibling batch(es)",
                            task.get_name(),
                            exc.__class__.__name__,
                            len(pending),
                        )
                        raise exc
        finally:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run_batch(
        self,
        batch: Batch,
        manifest: ConceptManifest,
        build_request: BatchRequestBuilder,
        token: CancellationToken,
        progress: MonotonicProgress,
    ) -> None:
        token.raise_if_cancelled()
        request = build_request(batch, manifest.slice(batch.start, batch.end))
        candidate = progress.candidate(batch.index)
        expected_chars = max(1, batch.size * EXPECTED_CHARS_PER_CONCEPT)

        def on_fragment(length: int) -> None:
            batch.progress = min(length / expected_chars, 0.99)
            progress.offer(
                candidate,
                {
                    "batch_index": batch.index,
                    "batch_progress": batch.progress,
                    "characters": length,
                },
            )

        aggregator = StreamAggregator(on_fragment)
        batch.text = await aggregator.consume(self._client.invoke_streaming(request, token))
        batch.progress = 1.0
        logger.info(
            "Batch %d (concepts %d-%d) finished with %d chars",
            batch.index + 1,
            batch.start + 1,
            batch.end,
            aggregator.length,
        )


__all__ = [
    "BatchScheduler",
    "MonotonicProgress",
    "ScheduleResult",
    "plan_batches",
]
