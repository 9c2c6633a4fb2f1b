"""Resume checkpoints: a single slot holding the outputs of the last completed stage."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol

from .models import StageOutputs

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Checkpoint:
    """One saved slot; ``last_complete_stage`` must agree with what ``outputs`` hold."""

    subject: str
    last_complete_stage: int
    outputs: StageOutputs
    timestamp: float

    def __post_init__(self) -> None:
        derived = self.outputs.last_complete_stage()
        if self.last_complete_stage != derived:
            raise ValueError(
                f"Checkpoint claims stage {self.last_complete_stage} but its outputs end at "
                f"stage {derived}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "last_complete_stage": self.last_complete_stage,
            "outputs": self.outputs.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Checkpoint":
        return cls(
            subject=str(data["subject"]),
            last_complete_stage=int(data["last_complete_stage"]),
            outputs=StageOutputs.from_dict(data["outputs"]),
            timestamp=float(data["timestamp"]),
        )


class CheckpointStore(Protocol):
    """Narrow persistence boundary the orchestrator calls at stage boundaries."""

    def has_checkpoint(self, subject: str) -> bool: ...

    def load_checkpoint(self, subject: str) -> Checkpoint | None: ...

    def save_checkpoint(self, stage_index: int, outputs: StageOutputs) -> None: ...

    def clear_checkpoint(self) -> None: ...


class _SingleSlotStore:
    """Freshness and subject matching; subclasses implement the slot I/O."""

    def __init__(
        self,
        *,
        max_age_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def _read(self) -> Checkpoint | None:
        raise NotImplementedError

    def _write(self, checkpoint: Checkpoint) -> None:
        raise NotImplementedError

    def _delete(self) -> None:
        raise NotImplementedError

    def _fresh(self, checkpoint: Checkpoint, subject: str) -> bool:
        if checkpoint.subject != subject:
            return False
        return (self._clock() - checkpoint.timestamp) < self.max_age_seconds

    def has_checkpoint(self, subject: str) -> bool:
        checkpoint = self._read()
        return checkpoint is not None and self._fresh(checkpoint, subject)

    def load_checkpoint(self, subject: str) -> Checkpoint | None:
        checkpoint = self._read()
        if checkpoint is None or not self._fresh(checkpoint, subject):
            return None
        return checkpoint

    def save_checkpoint(self, stage_index: int, outputs: StageOutputs) -> None:
        checkpoint = Checkpoint(
            subject=outputs.subject,
            last_complete_stage=stage_index,
            outputs=outputs,
            timestamp=self._clock(),
        )
        self._write(checkpoint)
        logger.info("Saved checkpoint for %r after stage %d", outputs.subject, stage_index)

    def clear_checkpoint(self) -> None:
        self._delete()


class InMemoryCheckpointStore(_SingleSlotStore):
    """Process-local store; ``saved_stages`` records every save in order."""

    def __init__(
        self,
        *,
        max_age_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(max_age_seconds=max_age_seconds, clock=clock)
        self._payload: dict[str, Any] | None = None
        self.saved_stages: list[int] = []

    def _read(self) -> Checkpoint | None:
        if self._payload is None:
            return None
        return Checkpoint.from_dict(self._payload)

    def _write(self, checkpoint: Checkpoint) -> None:
        # Stored serialized so later mutation of the outputs cannot leak into the slot.
        self._payload = json.loads(json.dumps(checkpoint.to_dict()))
        self.saved_stages.append(checkpoint.last_complete_stage)

    def _delete(self) -> None:
        self._payload = None


class JsonFileCheckpointStore(_SingleSlotStore):
    """Checkpoint persisted as one JSON file, replaced atomically on every save."""

    def __init__(
        self,
        path: Path | str,
        *,
        max_age_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(max_age_seconds=max_age_seconds, clock=clock)
        self.path = Path(path)

    def _read(self) -> Checkpoint | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return Checkpoint.from_dict(payload)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring unreadable checkpoint %s: %s", self.path, exc)
            return None

    def _write(self, checkpoint: Checkpoint) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(checkpoint.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        tmp_path.replace(self.path)

    def _delete(self) -> None:
        self.path.unlink(missing_ok=True)


__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "InMemoryCheckpointStore",
    "JsonFileCheckpointStore",
]
