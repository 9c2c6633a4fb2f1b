from __future__ import annotations

import json
from pathlib import Path

import pytest

from chart_fakes import outputs_through
from master_chart.generation.checkpoint import (
    Checkpoint,
    InMemoryCheckpointStore,
    JsonFileCheckpointStore,
)
from master_chart.generation.models import StageOutputs


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_in_memory_store_round_trip() -> None:
    store = InMemoryCheckpointStore()
    outputs = outputs_through(2)

    store.save_checkpoint(2, outputs)
    checkpoint = store.load_checkpoint("AZ-104")

    assert store.has_checkpoint("AZ-104")
    assert checkpoint is not None
    assert checkpoint.last_complete_stage == 2
    assert checkpoint.outputs == outputs
    assert store.saved_stages == [2]


def test_saved_payload_is_isolated_from_later_mutation() -> None:
    store = InMemoryCheckpointStore()
    outputs = outputs_through(2)
    store.save_checkpoint(2, outputs)

    outputs.stage2 = "changed"

    checkpoint = store.load_checkpoint("AZ-104")
    assert checkpoint is not None
    assert checkpoint.outputs.stage2 == "Concept 1 enables Concept 2"


def test_other_subject_is_not_resumed() -> None:
    store = InMemoryCheckpointStore()
    store.save_checkpoint(1, outputs_through(1))

    assert not store.has_checkpoint("AZ-900")
    assert store.load_checkpoint("AZ-900") is None


def test_checkpoint_expires_after_max_age() -> None:
    clock = FakeClock()
    store = InMemoryCheckpointStore(max_age_seconds=3600, clock=clock)
    store.save_checkpoint(3, outputs_through(3))

    clock.now += 3599
    assert store.has_checkpoint("AZ-104")

    clock.now += 1
    assert not store.has_checkpoint("AZ-104")
    assert store.load_checkpoint("AZ-104") is None


def test_clear_empties_the_slot() -> None:
    store = InMemoryCheckpointStore()
    store.save_checkpoint(1, outputs_through(1))

    store.clear_checkpoint()

    assert not store.has_checkpoint("AZ-104")


def test_stage_must_match_outputs() -> None:
    store = InMemoryCheckpointStore()

    with pytest.raises(ValueError, match="claims stage 2 but its outputs end at stage 0"):
        store.save_checkpoint(2, StageOutputs(subject="AZ-104", stage2="graph"))
    assert store.saved_stages == []

    with pytest.raises(ValueError):
        Checkpoint(
            subject="AZ-104", last_complete_stage=4, outputs=outputs_through(3), timestamp=0.0
        )


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "checkpoint.json"
    store = JsonFileCheckpointStore(path)
    outputs = outputs_through(4)
    store.save_checkpoint(4, outputs)

    reopened = JsonFileCheckpointStore(path)
    checkpoint = reopened.load_checkpoint("AZ-104")

    assert path.exists()
    assert not path.with_suffix(".json.tmp").exists()
    assert checkpoint is not None
    assert checkpoint.outputs == outputs
    assert checkpoint.outputs.stage1 is not None
    assert checkpoint.outputs.stage1.lifecycle.arrow_chain() == "PROVISION → CONFIGURE → MONITOR"

    reopened.clear_checkpoint()
    assert not path.exists()
    reopened.clear_checkpoint()


def test_corrupt_checkpoint_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "checkpoint.json"
    path.write_text("{ not json", encoding="utf-8")

    store = JsonFileCheckpointStore(path)

    assert store.load_checkpoint("AZ-104") is None
    assert not store.has_checkpoint("AZ-104")


def test_file_with_mismatched_stage_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "checkpoint.json"
    store = JsonFileCheckpointStore(path, clock=FakeClock())
    payload = {
        "subject": "AZ-104",
        "last_complete_stage": 2,
        "outputs": StageOutputs(subject="AZ-104", stage2="graph").to_dict(),
        "timestamp": 1_000.0,
    }
    path.write_text(json.dumps(payload), encoding="utf-8")

    assert store.load_checkpoint("AZ-104") is None
    assert not store.has_checkpoint("AZ-104")
