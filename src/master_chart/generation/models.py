"""Data model for a generation run: stage state, stage outputs and validation results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

STAGE_COUNT = 4
STAGE_NAMES: dict[int, str] = {
    1: "Domain Analysis",
    2: "Dependency Mapping",
    3: "Content Generation",
    4: "Quality Validation",
}


class StageStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in-progress"
    FIXING = "fixing"
    COMPLETE = "complete"


# Allowed transitions. Re-entering IN_PROGRESS carries progress updates; FIXING only
# follows a COMPLETE on the validation stage and always returns to COMPLETE.
_TRANSITIONS: dict[StageStatus, frozenset[StageStatus]] = {
    StageStatus.QUEUED: frozenset({StageStatus.IN_PROGRESS}),
    StageStatus.IN_PROGRESS: frozenset({StageStatus.IN_PROGRESS, StageStatus.COMPLETE}),
    StageStatus.COMPLETE: frozenset({StageStatus.FIXING}),
    StageStatus.FIXING: frozenset({StageStatus.COMPLETE}),
}

ProgressCallback = Callable[[int, StageStatus, Mapping[str, Any]], None]


@dataclass(slots=True)
class StageState:
    """Status of one stage; never regresses."""

    index: int
    status: StageStatus = StageStatus.QUEUED
    payload: dict[str, Any] = field(default_factory=dict)

    def transition(self, status: StageStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(
                f"Stage {self.index} cannot move from {self.status.value} to {status.value}"
            )
        if status is StageStatus.FIXING and self.index != STAGE_COUNT:
            raise ValueError(f"Only stage {STAGE_COUNT} may enter {StageStatus.FIXING.value}")
        self.status = status

    def restore(self) -> None:
        """Mark a stage completed by an earlier run that this run resumes from."""

        if self.status is not StageStatus.QUEUED:
            raise ValueError(f"Stage {self.index} already started; cannot restore it")
        self.status = StageStatus.COMPLETE
        self.payload = {"restored": True}


@dataclass(frozen=True, slots=True)
class LifecyclePhase:
    verb: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class Lifecycle:
    """Pre-analysis output: the three-phase operational lifecycle for a subject."""

    domain: str
    role_scope: str
    phases: tuple[LifecyclePhase, LifecyclePhase, LifecyclePhase]
    justification: str = ""
    excluded_actions: tuple[str, ...] = ()

    @property
    def verbs(self) -> tuple[str, str, str]:
        return tuple(phase.verb for phase in self.phases)  # type: ignore[return-value]

    def arrow_chain(self) -> str:
        return " → ".join(self.verbs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Lifecycle":
        phases = tuple(
            LifecyclePhase(verb=str(item["verb"]), description=str(item.get("description", "")))
            for item in data["phases"]
        )
        if len(phases) != 3:
            raise ValueError(f"Lifecycle needs exactly three phases, got {len(phases)}")
        return cls(
            domain=str(data["domain"]),
            role_scope=str(data["role_scope"]),
            phases=phases,  # type: ignore[arg-type]
            justification=str(data.get("justification", "")),
            excluded_actions=tuple(str(item) for item in data.get("excluded_actions", ())),
        )


@dataclass(frozen=True, slots=True)
class Stage1Result:
    """Domain analysis: lifecycle, concept list and source verification."""

    lifecycle: Lifecycle
    concepts: tuple[str, ...]
    source_verification: str
    recent_updates: tuple[str, ...] = ()
    numerical_limits: tuple[str, ...] = ()

    @property
    def domain(self) -> str:
        return self.lifecycle.domain

    @property
    def role_scope(self) -> str:
        return self.lifecycle.role_scope

    @property
    def excluded_actions(self) -> tuple[str, ...]:
        return self.lifecycle.excluded_actions

    def manifest(self) -> "ConceptManifest":
        return ConceptManifest(concepts=self.concepts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lifecycle": self.lifecycle.to_dict(),
            "concepts": list(self.concepts),
            "source_verification": self.source_verification,
            "recent_updates": list(self.recent_updates),
            "numerical_limits": list(self.numerical_limits),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Stage1Result":
        return cls(
            lifecycle=Lifecycle.from_dict(data["lifecycle"]),
            concepts=tuple(str(item) for item in data["concepts"]),
            source_verification=str(data.get("source_verification", "")),
            recent_updates=tuple(str(item) for item in data.get("recent_updates", ())),
            numerical_limits=tuple(str(item) for item in data.get("numerical_limits", ())),
        )


@dataclass(frozen=True, slots=True)
class ConceptManifest:
    """Concept list handed from stage 1 to the batch scheduler; its size drives batching."""

    concepts: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.concepts)

    def slice(self, start: int, end: int) -> tuple[str, ...]:
        return self.concepts[start:end]


@dataclass(slots=True)
class Batch:
    """One stage-3 work unit covering concepts ``[start, end)``."""

    index: int
    start: int
    end: int
    text: str = ""
    progress: float = 0.0

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass(slots=True)
class ValidationIssue:
    section: str
    problem: str
    severity: str = "minor"  # "critical" | "minor"
    fix: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidationIssue":
        severity = str(data.get("severity", "minor")).lower()
        return cls(
            section=str(data.get("section", "")),
            problem=str(data.get("problem", "")),
            severity=severity if severity in {"critical", "minor"} else "minor",
            fix=str(data.get("fix", "")),
        )


@dataclass(slots=True)
class ValidationResult:
    """Merged stage-4 verdict: structural metrics plus the remote quality assessment."""

    expected_concepts: int
    found_concepts: int
    lifecycle_consistency: int
    format_consistency: int
    completeness: int
    positive_framing: int = 0
    terminology_density: int = 0
    domain_specificity: int = 0
    valid: bool = False
    incomplete: bool = False
    issues: list[ValidationIssue] = field(default_factory=list)
    violations: dict[str, list[str]] = field(default_factory=dict)
    fixes: dict[str, str] = field(default_factory=dict)
    fixes_applied: list[str] = field(default_factory=list)

    def quality_metrics(self) -> dict[str, int]:
        return {
            "lifecycle_consistency": self.lifecycle_consistency,
            "positive_framing": self.positive_framing,
            "format_consistency": self.format_consistency,
            "completeness": self.completeness,
            "terminology_density": self.terminology_density,
            "domain_specificity": self.domain_specificity,
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValidationResult":
        payload = dict(data)
        payload["issues"] = [ValidationIssue.from_dict(item) for item in data.get("issues", [])]
        payload["violations"] = {
            str(key): [str(item) for item in value]
            for key, value in dict(data.get("violations", {})).items()
        }
        payload["fixes"] = {str(k): str(v) for k, v in dict(data.get("fixes", {})).items()}
        payload["fixes_applied"] = [str(item) for item in data.get("fixes_applied", [])]
        return cls(**payload)


@dataclass(slots=True)
class StageOutputs:
    """Accumulated outputs of completed stages; what a checkpoint persists."""

    subject: str
    stage1: Stage1Result | None = None
    stage2: str | None = None
    stage3: str | None = None
    validation: ValidationResult | None = None

    def last_complete_stage(self) -> int:
        if self.stage1 is None:
            return 0
        if self.stage2 is None:
            return 1
        if self.stage3 is None:
            return 2
        if self.validation is None:
            return 3
        return 4

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "stage1": self.stage1.to_dict() if self.stage1 else None,
            "stage2": self.stage2,
            "stage3": self.stage3,
            "validation": self.validation.to_dict() if self.validation else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StageOutputs":
        stage1 = data.get("stage1")
        validation = data.get("validation")
        return cls(
            subject=str(data["subject"]),
            stage1=Stage1Result.from_dict(stage1) if stage1 else None,
            stage2=data.get("stage2"),
            stage3=data.get("stage3"),
            validation=ValidationResult.from_dict(validation) if validation else None,
        )


@dataclass(slots=True)
class GenerationRun:
    """Mutable state of one orchestrator run; owned by the orchestrator until it returns."""

    subject: str
    outputs: StageOutputs
    stages: list[StageState] = field(
        default_factory=lambda: [StageState(index=i) for i in range(1, STAGE_COUNT + 1)]
    )

    def stage(self, index: int) -> StageState:
        return self.stages[index - 1]


@dataclass(slots=True)
class GenerationResult:
    stage1: Stage1Result
    stage2: str
    stage3: str
    validation: ValidationResult
    full_document: str
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "Batch",
    "ConceptManifest",
    "GenerationResult",
    "GenerationRun",
    "Lifecycle",
    "LifecyclePhase",
    "ProgressCallback",
    "STAGE_COUNT",
    "STAGE_NAMES",
    "Stage1Result",
    "StageOutputs",
    "StageState",
    "StageStatus",
    "ValidationIssue",
    "ValidationResult",
]
