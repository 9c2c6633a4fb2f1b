from __future__ import annotations

import asyncio
import math

import pytest

from chart_fakes import ScriptedModelClient, batch_request
from master_chart.generation.batching import BatchScheduler, MonotonicProgress, plan_batches
from master_chart.generation.errors import UpstreamFailure
from master_chart.generation.models import ConceptManifest


def _manifest(client: ScriptedModelClient) -> ConceptManifest:
    return ConceptManifest(concepts=tuple(client.concepts))


def test_plan_batches_partitions_range_exactly() -> None:
    for total in range(0, 60):
        for batch_size in range(1, 13):
            batches = plan_batches(total, batch_size)
            assert len(batches) == math.ceil(total / batch_size)
            covered = [idx for batch in batches for idx in range(batch.start, batch.end)]
            assert covered == list(range(total))
            assert [batch.index for batch in batches] == list(range(len(batches)))


def test_plan_batches_rejects_non_positive_batch_size() -> None:
    with pytest.raises(ValueError):
        plan_batches(10, 0)


def test_twelve_concepts_fit_one_window_without_delay() -> None:
    """12 concepts at batch size 10 give [0,10) and [10,12), dispatched together."""

    client = ScriptedModelClient(concepts=12, batch_size=10)
    # A delay this long would blow the test up if it were ever awaited.
    scheduler = BatchScheduler(client, batch_size=10, concurrency=2, window_delay_seconds=30.0)

    result = asyncio.run(scheduler.run(_manifest(client), batch_request))

    assert [(batch.start, batch.end) for batch in result.batches] == [(0, 10), (10, 12)]
    assert result.windows == 1
    assert result.delays == 0
    assert client.max_active == 2
    assert client.request_ids == ["stage3-batch-1", "stage3-batch-2"]


def test_assembly_uses_batch_order_not_completion_order() -> None:
    fast = ScriptedModelClient(concepts=30, batch_size=10)
    slow_first = ScriptedModelClient(
        concepts=30,
        batch_size=10,
        delays={"stage3-batch-1": 0.05, "stage3-batch-3": 0.02},
    )
    scheduler_kwargs = dict(batch_size=10, concurrency=3, window_delay_seconds=0.0)

    expected = asyncio.run(
        BatchScheduler(fast, **scheduler_kwargs).run(_manifest(fast), batch_request)
    )
    shuffled = asyncio.run(
        BatchScheduler(slow_first, **scheduler_kwargs).run(_manifest(slow_first), batch_request)
    )

    assert slow_first.completed[0] == "stage3-batch-2"
    assert shuffled.text == expected.text
    assert shuffled.text == "".join(fast.batch_text(idx) + "\n\n" for idx in range(3))


def test_progress_is_monotonic_under_interleaving() -> None:
    client = ScriptedModelClient(
        concepts=35,
        batch_size=5,
        chunk_size=7,
        delays={"stage3-batch-1": 0.03, "stage3-batch-4": 0.02, "stage3-batch-6": 0.01},
    )
    seen: list[float] = []
    scheduler = BatchScheduler(client, batch_size=5, concurrency=3, window_delay_seconds=0.0)

    asyncio.run(
        scheduler.run(
            _manifest(client),
            batch_request,
            on_progress=lambda value, payload: seen.append(value),
        )
    )

    assert seen, "expected progress updates"
    assert seen == sorted(seen)
    assert seen[-1] == pytest.approx((6 + 0.5) / 7 * 100)


def test_monotonic_progress_ignores_lower_candidates() -> None:
    published: list[float] = []
    progress = MonotonicProgress(4, lambda value, payload: published.append(value))

    assert progress.offer(progress.candidate(1))
    assert not progress.offer(progress.candidate(0))
    assert progress.offer(progress.candidate(1))
    assert published == [37.5, 37.5]
    assert progress.value == 37.5


def test_delay_only_between_windows() -> None:
    client = ScriptedModelClient(concepts=25, batch_size=10)
    scheduler = BatchScheduler(client, batch_size=10, concurrency=2, window_delay_seconds=0.01)

    result = asyncio.run(scheduler.run(_manifest(client), batch_request))

    assert result.windows == 2
    assert result.delays == 1
    assert [(batch.start, batch.end) for batch in result.batches] == [(0, 10), (10, 20), (20, 25)]


def test_failed_batch_fails_run_and_abandons_siblings() -> None:
    client = ScriptedModelClient(
        concepts=30,
        batch_size=10,
        responses={"stage3-batch-1": UpstreamFailure("overloaded", status_code=529)},
        delays={"stage3-batch-2": 5.0},
    )
    scheduler = BatchScheduler(client, batch_size=10, concurrency=2, window_delay_seconds=0.0)

    with pytest.raises(UpstreamFailure, match="overloaded"):
        asyncio.run(scheduler.run(_manifest(client), batch_request))

    assert "stage3-batch-2" not in client.completed
    assert "stage3-batch-3" not in client.request_ids
    assert client.active == 0
