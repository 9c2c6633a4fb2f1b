from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from chart_fakes import ScriptedModelClient, outputs_through
from master_chart.generation.checkpoint import JsonFileCheckpointStore

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "generate_chart.py"


@pytest.fixture
def cli():
    spec = importlib.util.spec_from_file_location("generate_chart", SCRIPT)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_dry_run_prints_resolved_settings(cli, tmp_path: Path, capsys) -> None:
    checkpoint = tmp_path / "checkpoint.json"

    code = cli.main(
        [
            "AZ-104",
            "--dry-run",
            "--batch-size",
            "5",
            "--window-delay",
            "-1",
            "--checkpoint",
            str(checkpoint),
            "--log-level",
            "WARNING",
        ]
    )

    summary = json.loads(capsys.readouterr().out)
    assert code == 0
    assert summary["batch_size"] == 5
    assert summary["concurrency"] == 2
    assert summary["window_delay_seconds"] == 0.0
    assert summary["checkpoint"] == str(checkpoint)
    assert summary["resume_after_stage"] == 0


def test_dry_run_reports_fresh_checkpoint(cli, tmp_path: Path, capsys) -> None:
    checkpoint = tmp_path / "checkpoint.json"
    JsonFileCheckpointStore(checkpoint).save_checkpoint(2, outputs_through(2))

    cli.main(["AZ-104", "--dry-run", "--checkpoint", str(checkpoint), "--log-level", "WARNING"])
    assert json.loads(capsys.readouterr().out)["resume_after_stage"] == 2

    cli.main(
        [
            "AZ-104",
            "--dry-run",
            "--no-resume",
            "--checkpoint",
            str(checkpoint),
            "--log-level",
            "WARNING",
        ]
    )
    assert json.loads(capsys.readouterr().out)["resume_after_stage"] == 0


def test_full_run_writes_document_and_clears_checkpoint(
    cli, tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = ScriptedModelClient(concepts=12)
    monkeypatch.setattr(cli, "create_model_client", lambda config: client)
    output = tmp_path / "out" / "chart.md"
    checkpoint = tmp_path / "checkpoint.json"

    code = cli.main(
        [
            "AZ-104",
            "--window-delay",
            "0",
            "--output",
            str(output),
            "--checkpoint",
            str(checkpoint),
            "--log-level",
            "WARNING",
        ]
    )

    summary = json.loads(capsys.readouterr().out)
    assert code == 0
    assert output.read_text(encoding="utf-8").startswith("=" * 80)
    assert not checkpoint.exists()
    assert summary["concepts"] == {"expected": 12, "found": 12}
    assert summary["valid"] is True
    assert summary["output"] == str(output)


def test_failed_run_keeps_checkpoint_and_exits_nonzero(
    cli, tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    client = ScriptedModelClient(
        concepts=12, responses={"stage3-batch-2": RuntimeError("connection reset")}
    )
    monkeypatch.setattr(cli, "create_model_client", lambda config: client)
    checkpoint = tmp_path / "checkpoint.json"

    code = cli.main(
        ["AZ-104", "--window-delay", "0", "--checkpoint", str(checkpoint), "--log-level", "ERROR"]
    )

    err = capsys.readouterr().err
    assert code == 1
    assert "Generation failed" in err
    assert "--no-resume" in err
    saved = JsonFileCheckpointStore(checkpoint).load_checkpoint("AZ-104")
    assert saved is not None
    assert saved.last_complete_stage == 2


def test_stdout_carries_only_the_summary_when_writing_a_file(
    cli, tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(cli, "create_model_client", lambda config: ScriptedModelClient(12))
    output = tmp_path / "chart.md"

    cli.main(
        [
            "AZ-104",
            "--window-delay",
            "0",
            "--output",
            str(output),
            "--checkpoint",
            str(tmp_path / "checkpoint.json"),
            "--log-level",
            "WARNING",
        ]
    )

    captured = capsys.readouterr()
    assert captured.out.startswith("{")
    assert "[1/4 Domain Analysis]" in captured.err
    assert "[4/4 Quality Validation]" in captured.err


def test_document_then_summary_on_stdout_without_output_file(
    cli, tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(cli, "create_model_client", lambda config: ScriptedModelClient(12))

    code = cli.main(
        [
            "AZ-104",
            "--window-delay",
            "0",
            "--checkpoint",
            str(tmp_path / "checkpoint.json"),
            "--log-level",
            "WARNING",
        ]
    )

    out = capsys.readouterr().out
    document, _, summary = out.partition("\n{")
    assert code == 0
    assert document.startswith("=" * 80)
    assert "[1/4" not in out
    assert json.loads("{" + summary)["concepts"] == {"expected": 12, "found": 12}
