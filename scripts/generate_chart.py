#!/usr/bin/env python3
"""Generate a visual master chart for one subject: lifecycle, dependencies, batches, validation."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Mapping

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
if _SRC.exists():
    sys.path.insert(0, str(_SRC))

from tqdm import tqdm

from master_chart.generation import (
    Cancelled,
    CancellationToken,
    GenerationResult,
    JsonFileCheckpointStore,
    PassOrchestrator,
    PipelineConfig,
    PipelineError,
    StageOutputs,
    StageStatus,
    load_pipeline_config,
)
from master_chart.generation.models import STAGE_NAMES
from master_chart.utils import configure_logging
from master_chart.utils.llm_client_factory import create_model_client

logger = logging.getLogger("master_chart.scripts.generate_chart")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("subject", help="Subject to chart, e.g. 'AZ-104 Azure Administrator'")
    parser.add_argument("--config", type=Path, help="Path to PipelineConfig YAML/JSON overrides")
    parser.add_argument("--output", type=Path, help="Write the document here instead of stdout")
    parser.add_argument(
        "--resume",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Continue from a fresh checkpoint for the same subject (default: %(default)s)",
    )
    parser.add_argument("--batch-size", type=int, help="Concepts per stage-3 batch")
    parser.add_argument("--concurrency", type=int, help="Batches per concurrency window")
    parser.add_argument("--window-delay", type=float, help="Seconds to pause between windows")
    parser.add_argument("--checkpoint", type=Path, help="Checkpoint file override")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: %(default)s)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Resolve arguments and exit")
    return parser


def _apply_overrides(cfg: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    if args.batch_size is not None:
        cfg.batching.batch_size = max(1, args.batch_size)
    if args.concurrency is not None:
        cfg.batching.concurrency = max(1, args.concurrency)
    if args.window_delay is not None:
        cfg.batching.window_delay_seconds = max(0.0, args.window_delay)
    if args.checkpoint is not None:
        cfg.checkpoint.path = args.checkpoint
    return cfg


class _ProgressPrinter:
    """Stage messages and the stage-3 percentage bar, both on stderr so stdout stays parseable."""

    def __init__(self) -> None:
        self._bar: tqdm | None = None

    def __call__(self, stage: int, status: StageStatus, payload: Mapping[str, Any]) -> None:
        if stage == 3 and status is StageStatus.IN_PROGRESS and self._bar is None:
            self._bar = tqdm(total=100, desc="content", unit="%")
        progress = payload.get("progress")
        if self._bar is not None and isinstance(progress, (int, float)):
            self._bar.update(max(0, int(progress) - self._bar.n))
        message = payload.get("message")
        if message:
            tqdm.write(f"[{stage}/4 {STAGE_NAMES[stage]}] {message}", file=sys.stderr)
        elif status is StageStatus.COMPLETE:
            tqdm.write(f"[{stage}/4 {STAGE_NAMES[stage]}] {status.value}", file=sys.stderr)
        if stage == 3 and status is StageStatus.COMPLETE:
            self.close()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


async def _generate(
    subject: str,
    cfg: PipelineConfig,
    store: JsonFileCheckpointStore,
    resume_from: StageOutputs | None,
) -> GenerationResult:
    loop = asyncio.get_running_loop()
    token = CancellationToken()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        handler_installed = True
    except NotImplementedError:  # pragma: no cover - Windows event loops
        logger.debug("SIGINT handler unavailable on this platform; Ctrl+C aborts immediately")
        handler_installed = False

    client = create_model_client(cfg.llm)
    orchestrator = PassOrchestrator(client, cfg, checkpoint_store=store, resume_from=resume_from)
    printer = _ProgressPrinter()
    try:
        return await orchestrator.run(subject, printer, token)
    finally:
        printer.close()
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    cfg = _apply_overrides(load_pipeline_config(args.config), args)
    store = JsonFileCheckpointStore(
        cfg.checkpoint.path, max_age_seconds=cfg.checkpoint.max_age_seconds
    )

    resume_from: StageOutputs | None = None
    if args.resume:
        checkpoint = store.load_checkpoint(args.subject)
        if checkpoint is not None:
            resume_from = checkpoint.outputs
            logger.info(
                "Resuming %r from checkpoint after stage %d",
                args.subject,
                checkpoint.last_complete_stage,
            )

    summary: dict[str, object] = {
        "subject": args.subject,
        "backend": cfg.llm.backend,
        "batch_size": cfg.batching.batch_size,
        "concurrency": cfg.batching.concurrency,
        "window_delay_seconds": cfg.batching.window_delay_seconds,
        "checkpoint": str(cfg.checkpoint.path),
        "resume_after_stage": resume_from.last_complete_stage() if resume_from else 0,
    }
    if args.dry_run:
        print(json.dumps(summary, indent=2, sort_keys=True))
        return 0

    try:
        result = asyncio.run(_generate(args.subject, cfg, store, resume_from))
    except Cancelled:
        return 130
    except (PipelineError, ValueError) as exc:
        print(f"Generation failed: {exc}", file=sys.stderr)
        print(
            "Re-run the same command to resume from the last completed stage "
            "(or pass --no-resume to start over).",
            file=sys.stderr,
        )
        return 1

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(result.full_document, encoding="utf-8")
        summary["output"] = str(args.output)
    else:
        print(result.full_document)
    store.clear_checkpoint()

    validation = result.validation
    summary.update(
        {
            "concepts": {
                "expected": validation.expected_concepts,
                "found": validation.found_concepts,
            },
            "valid": validation.valid,
            "incomplete": validation.incomplete,
            "quality_metrics": validation.quality_metrics(),
            "fixes_applied": validation.fixes_applied,
            "issues": len(validation.issues),
        }
    )
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
