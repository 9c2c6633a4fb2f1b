from __future__ import annotations

import json

import pytest

from chart_fakes import LIFECYCLE_PAYLOAD
from master_chart.generation.lifecycle import parse_lifecycle_response
from master_chart.generation.models import (
    GenerationRun,
    Stage1Result,
    StageOutputs,
    StageState,
    StageStatus,
    ValidationIssue,
    ValidationResult,
)


def _stage1() -> Stage1Result:
    lifecycle = parse_lifecycle_response(json.dumps(LIFECYCLE_PAYLOAD))
    assert lifecycle is not None
    return Stage1Result(
        lifecycle=lifecycle,
        concepts=("Identity", "Storage"),
        source_verification="AZ-104 Study Guide",
        recent_updates=("Entra ID rename",),
    )


def test_stage_cannot_skip_in_progress() -> None:
    state = StageState(index=2)

    with pytest.raises(ValueError, match="cannot move from queued to complete"):
        state.transition(StageStatus.COMPLETE)


def test_only_validation_stage_may_fix() -> None:
    state = StageState(index=2)
    state.transition(StageStatus.IN_PROGRESS)
    state.transition(StageStatus.COMPLETE)

    with pytest.raises(ValueError, match="Only stage 4"):
        state.transition(StageStatus.FIXING)


def test_validation_stage_fixing_flow() -> None:
    state = StageState(index=4)
    for status in (
        StageStatus.IN_PROGRESS,
        StageStatus.IN_PROGRESS,
        StageStatus.COMPLETE,
        StageStatus.FIXING,
        StageStatus.COMPLETE,
    ):
        state.transition(status)

    assert state.status is StageStatus.COMPLETE
    with pytest.raises(ValueError):
        state.transition(StageStatus.IN_PROGRESS)


def test_restore_only_from_queued() -> None:
    state = StageState(index=1)
    state.restore()

    assert state.status is StageStatus.COMPLETE
    assert state.payload == {"restored": True}

    started = StageState(index=2)
    started.transition(StageStatus.IN_PROGRESS)
    with pytest.raises(ValueError):
        started.restore()


def test_run_starts_with_all_stages_queued() -> None:
    run = GenerationRun(subject="AZ-104", outputs=StageOutputs(subject="AZ-104"))

    assert [state.index for state in run.stages] == [1, 2, 3, 4]
    assert {state.status for state in run.stages} == {StageStatus.QUEUED}
    assert run.stage(3).index == 3


def test_last_complete_stage_follows_outputs() -> None:
    outputs = StageOutputs(subject="AZ-104")
    assert outputs.last_complete_stage() == 0

    outputs.stage1 = _stage1()
    assert outputs.last_complete_stage() == 1

    outputs.stage2 = "graph"
    outputs.stage3 = "chart"
    assert outputs.last_complete_stage() == 3


def test_outputs_survive_json_round_trip() -> None:
    outputs = StageOutputs(
        subject="AZ-104",
        stage1=_stage1(),
        stage2="graph",
        stage3="chart",
        validation=ValidationResult(
            expected_concepts=2,
            found_concepts=2,
            lifecycle_consistency=100,
            format_consistency=85,
            completeness=100,
            positive_framing=90,
            valid=True,
            issues=[ValidationIssue("1. Identity", "Too vague", "minor", "Name the blade")],
            fixes={"Identity": "## 1. Identity\nbetter"},
        ),
    )

    restored = StageOutputs.from_dict(json.loads(json.dumps(outputs.to_dict())))

    assert restored == outputs
    assert restored.stage1 is not None
    assert restored.stage1.lifecycle.verbs == ("PROVISION", "CONFIGURE", "MONITOR")
    assert restored.last_complete_stage() == 4


def test_unknown_issue_severity_is_minor() -> None:
    issue = ValidationIssue.from_dict({"section": "x", "problem": "y", "severity": "Severe"})

    assert issue.severity == "minor"


def test_quality_metrics_lists_six_scores() -> None:
    result = ValidationResult(
        expected_concepts=1,
        found_concepts=1,
        lifecycle_consistency=70,
        format_consistency=60,
        completeness=100,
    )

    assert result.quality_metrics() == {
        "lifecycle_consistency": 70,
        "positive_framing": 0,
        "format_consistency": 60,
        "completeness": 100,
        "terminology_density": 0,
        "domain_specificity": 0,
    }
