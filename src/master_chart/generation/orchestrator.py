"""Four-stage master chart pipeline with resumable stage boundaries.

Stage 1 infers the subject's lifecycle and extracts the concept list, stage 2 maps
concept dependencies, stage 3 fans the concepts out over the batch scheduler and
stage 4 validates (locally and remotely) and applies section fixes. After each
stage completes, its outputs are handed to the checkpoint store before the next
stage starts.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from .batching import BatchScheduler
from .cancellation import CancellationToken
from .checkpoint import Checkpoint, CheckpointStore
from .cleanup import strip_boilerplate
from .config import PipelineConfig, SamplingConfig
from .document import assemble_final_document
from .errors import Cancelled, PipelineError, UpstreamFailure
from .fixes import FixApplier, SectionFixApplier
from .lifecycle import (
    LIFECYCLE_SYSTEM_PROMPT,
    build_lifecycle_prompt,
    lifecycle_scope_prompt,
    resolve_lifecycle,
)
from .local_validation import validate_locally
from .model_client import ModelClient, ModelRequest
from .models import (
    STAGE_COUNT,
    STAGE_NAMES,
    Batch,
    GenerationResult,
    GenerationRun,
    Lifecycle,
    ProgressCallback,
    Stage1Result,
    StageOutputs,
    StageStatus,
)
from .parsing import require_json_object
from .prompts import (
    BATCH_SYSTEM_SUFFIX,
    CHART_SYSTEM_PROMPT,
    STAGE1_SCHEMA,
    SUPPLEMENTARY_SYSTEM_PROMPT,
    build_batch_prompt,
    build_stage1_prompt,
    build_stage2_prompt,
    build_supplementary_prompt,
)
from .remote_validation import RemoteValidator, merge_validation, structural_metrics
from .streaming import collect_stream

logger = logging.getLogger(__name__)

CHART_HEADING = "## STEP 3: MASTER HIERARCHICAL CHART"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _strings(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if str(item).strip())


def parse_stage1_response(text: str, lifecycle: Lifecycle) -> Stage1Result:
    """Build the stage-1 result from the model's JSON, pinned to the pre-analysed lifecycle.

    Raises :class:`UpstreamFailure` when the JSON is missing or malformed, or when it
    names no concepts. There is deliberately no fallback here.
    """

    payload = require_json_object(text, what="stage 1", schema=STAGE1_SCHEMA)
    concepts = tuple(concept.strip() for concept in payload["concepts"] if concept.strip())
    if not concepts:
        raise UpstreamFailure("Stage 1 returned an empty concept list", error_type="empty_concepts")
    return Stage1Result(
        lifecycle=lifecycle,
        concepts=concepts,
        source_verification=str(payload.get("sourceVerification") or ""),
        recent_updates=_strings(payload.get("recentUpdates")),
        numerical_limits=_strings(payload.get("numericalLimits")),
    )


class PassOrchestrator:
    """Run the pipeline for one subject, optionally continuing a checkpointed run.

    The orchestrator never decides whether to resume: callers pass ``resume_from``
    (or use :meth:`from_checkpoint`) and every stage already present in those outputs
    is skipped without any model call.
    """

    def __init__(
        self,
        client: ModelClient,
        config: PipelineConfig | None = None,
        *,
        checkpoint_store: CheckpointStore | None = None,
        fix_applier: FixApplier | None = None,
        clock: Callable[[], datetime] | None = None,
        resume_from: StageOutputs | None = None,
    ) -> None:
        self._client = client
        self._config = config or PipelineConfig()
        self._checkpoints = checkpoint_store
        self._fix_applier = fix_applier or SectionFixApplier()
        self._clock = clock or _utcnow
        self._resume_from = resume_from
        self._remote = RemoteValidator(
            client,
            self._config.remote_validation,
            sample_window_chars=self._config.validation.sample_window_chars,
        )

    @classmethod
    def from_checkpoint(
        cls,
        client: ModelClient,
        checkpoint: Checkpoint,
        config: PipelineConfig | None = None,
        **kwargs: Any,
    ) -> "PassOrchestrator":
        return cls(client, config, resume_from=checkpoint.outputs, **kwargs)

    async def run(
        self,
        subject: str,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> GenerationResult:
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()
        run = GenerationRun(subject=subject, outputs=self._initial_outputs(subject))

        def emit(index: int, status: StageStatus, payload: Mapping[str, Any]) -> None:
            state = run.stage(index)
            state.transition(status)
            state.payload = dict(payload)
            if on_progress is not None:
                on_progress(index, status, state.payload)

        resumed_after = run.outputs.last_complete_stage()
        for index in range(1, resumed_after + 1):
            run.stage(index).restore()
            if on_progress is not None:
                on_progress(index, StageStatus.COMPLETE, run.stage(index).payload)
        if resumed_after:
            logger.info("Resuming %r after stage %d", subject, resumed_after)

        stages: dict[int, Callable[[GenerationRun, CancellationToken, Any], Awaitable[None]]] = {
            1: self._run_stage1,
            2: self._run_stage2,
            3: self._run_stage3,
            4: self._run_stage4,
        }
        for index in range(resumed_after + 1, STAGE_COUNT + 1):
            token.raise_if_cancelled()
            logger.info("Stage %d (%s) starting for %r", index, STAGE_NAMES[index], subject)
            try:
                await stages[index](run, token, emit)
            except Cancelled:
                logger.info("Generation for %r cancelled during stage %d", subject, index)
                raise
            except PipelineError as exc:
                logger.error("Stage %d (%s) failed: %s", index, STAGE_NAMES[index], exc)
                raise
            self._save_checkpoint(index, run.outputs)
            logger.info("Stage %d (%s) complete", index, STAGE_NAMES[index])

        return self._result(run, resumed_after)

    def _initial_outputs(self, subject: str) -> StageOutputs:
        if self._resume_from is None:
            return StageOutputs(subject=subject)
        if self._resume_from.subject != subject:
            raise ValueError(
                f"Checkpoint is for {self._resume_from.subject!r}, not {subject!r}"
            )
        return StageOutputs.from_dict(self._resume_from.to_dict())

    def _save_checkpoint(self, index: int, outputs: StageOutputs) -> None:
        if self._checkpoints is not None:
            self._checkpoints.save_checkpoint(index, outputs)

    def _request(
        self,
        prompt: str,
        *,
        system_prompt: str,
        sampling: SamplingConfig,
        request_id: str,
    ) -> ModelRequest:
        return ModelRequest.from_prompt(
            prompt,
            system_prompt=system_prompt,
            max_tokens=sampling.max_tokens,
            temperature=sampling.temperature,
            request_id=request_id,
        )

    async def _analyse_lifecycle(
        self, subject: str, token: CancellationToken
    ) -> tuple[Lifecycle, bool]:
        request = self._request(
            build_lifecycle_prompt(subject),
            system_prompt=LIFECYCLE_SYSTEM_PROMPT,
            sampling=self._config.lifecycle,
            request_id="stage1-lifecycle",
        )
        try:
            text = await self._client.invoke(request, token)
        except UpstreamFailure as exc:
            logger.warning("Lifecycle pre-analysis failed (%s); using default lifecycle", exc)
            text = ""
        return resolve_lifecycle(text, subject)

    async def _run_stage1(self, run: GenerationRun, token: CancellationToken, emit) -> None:
        subject = run.subject
        emit(
            1,
            StageStatus.IN_PROGRESS,
            {"message": "Analyzing subject and generating optimal lifecycle..."},
        )
        lifecycle, used_default = await self._analyse_lifecycle(subject, token)
        emit(
            1,
            StageStatus.IN_PROGRESS,
            {
                "message": f"Lifecycle detected: {lifecycle.arrow_chain()}",
                "lifecycle": list(lifecycle.verbs),
                "role_scope": lifecycle.role_scope,
                "default_lifecycle": used_default,
            },
        )
        token.raise_if_cancelled()
        text = await self._client.invoke(
            self._request(
                build_stage1_prompt(subject, lifecycle),
                system_prompt=CHART_SYSTEM_PROMPT,
                sampling=self._config.stage1,
                request_id="stage1",
            ),
            token,
        )
        stage1 = parse_stage1_response(text, lifecycle)
        run.outputs.stage1 = stage1
        logger.info("Stage 1 extracted %d concepts for %r", len(stage1.concepts), subject)
        emit(1, StageStatus.COMPLETE, stage1.to_dict())

    async def _run_stage2(self, run: GenerationRun, token: CancellationToken, emit) -> None:
        stage1 = run.outputs.stage1
        assert stage1 is not None
        emit(2, StageStatus.IN_PROGRESS, {"message": "Building concept dependencies..."})
        scope = lifecycle_scope_prompt(stage1.lifecycle, run.subject)
        text = await self._client.invoke(
            self._request(
                build_stage2_prompt(stage1),
                system_prompt=f"{CHART_SYSTEM_PROMPT}\n\n{scope}",
                sampling=self._config.stage2,
                request_id="stage2",
            ),
            token,
        )
        run.outputs.stage2 = text
        emit(2, StageStatus.COMPLETE, {"content": text})

    async def _run_stage3(self, run: GenerationRun, token: CancellationToken, emit) -> None:
        stage1 = run.outputs.stage1
        assert stage1 is not None
        batching = self._config.batching
        manifest = stage1.manifest()
        total_batches = math.ceil(len(manifest) / batching.batch_size)
        scope = lifecycle_scope_prompt(stage1.lifecycle, run.subject)
        system_prompt = f"{scope}\n{BATCH_SYSTEM_SUFFIX}"

        def build_request(batch: Batch, concepts) -> ModelRequest:
            return self._request(
                build_batch_prompt(stage1, batch, concepts, total_batches),
                system_prompt=system_prompt,
                sampling=self._config.batch,
                request_id=f"stage3-batch-{batch.index + 1}",
            )

        def on_batch_progress(percent: float, payload: Mapping[str, Any]) -> None:
            emit(3, StageStatus.IN_PROGRESS, {**payload, "progress": round(percent)})

        emit(
            3,
            StageStatus.IN_PROGRESS,
            {"message": "Creating detailed content (batch generation)..."},
        )
        scheduler = BatchScheduler(
            self._client,
            batch_size=batching.batch_size,
            concurrency=batching.concurrency,
            window_delay_seconds=batching.window_delay_seconds,
        )
        scheduled = await scheduler.run(
            manifest, build_request, cancel_token=token, on_progress=on_batch_progress
        )

        token.raise_if_cancelled()
        emit(
            3,
            StageStatus.IN_PROGRESS,
            {"message": "Generating mental anchors and learning path..."},
        )
        supplementary = await collect_stream(
            self._client.invoke_streaming(
                self._request(
                    build_supplementary_prompt(run.subject, stage1),
                    system_prompt=SUPPLEMENTARY_SYSTEM_PROMPT,
                    sampling=self._config.supplementary,
                    request_id="stage3-supplementary",
                ),
                token,
            )
        )
        body = f"{CHART_HEADING}\n\n{scheduled.text}\n\n{supplementary}"
        stage3 = strip_boilerplate(body)
        run.outputs.stage3 = stage3
        emit(
            3,
            StageStatus.COMPLETE,
            {"content": stage3, "batches": len(scheduled.batches), "windows": scheduled.windows},
        )

    async def _run_stage4(self, run: GenerationRun, token: CancellationToken, emit) -> None:
        stage1, stage3 = run.outputs.stage1, run.outputs.stage3
        assert stage1 is not None and stage3 is not None
        emit(4, StageStatus.IN_PROGRESS, {"message": "Running quality checks..."})
        local = validate_locally(
            stage3,
            len(stage1.concepts),
            stage1.lifecycle,
            min_completeness=self._config.validation.min_completeness,
        )
        emit(
            4,
            StageStatus.IN_PROGRESS,
            {"message": "Structural checks complete", "structural": structural_metrics(local)},
        )
        token.raise_if_cancelled()
        assessment = await self._remote.assess(stage1, stage3, local, token)
        validation = merge_validation(local, assessment)
        emit(4, StageStatus.COMPLETE, validation.to_dict())

        final_text = stage3
        if validation.fixes:
            emit(
                4,
                StageStatus.FIXING,
                {
                    "message": f"Auto-correcting {len(validation.fixes)} issues...",
                    "sections": list(validation.fixes),
                },
            )
            outcome = self._fix_applier.apply(stage3, validation.fixes)
            validation.fixes_applied = list(outcome.applied)
            final_text = outcome.text
            emit(
                4,
                StageStatus.COMPLETE,
                {
                    "content": final_text,
                    "fixes_applied": list(outcome.applied),
                    "fixes_skipped": list(outcome.skipped),
                },
            )
        run.outputs.stage3 = final_text
        run.outputs.validation = validation
        if validation.incomplete:
            logger.warning(
                "Chart incomplete: %d of %d concepts (%d%%)",
                validation.found_concepts,
                validation.expected_concepts,
                validation.completeness,
            )

    def _result(self, run: GenerationRun, resumed_after: int) -> GenerationResult:
        outputs = run.outputs
        assert outputs.stage1 is not None and outputs.stage2 is not None
        assert outputs.stage3 is not None and outputs.validation is not None
        generated_at = self._clock()
        document = assemble_final_document(
            outputs.stage1, outputs.stage2, outputs.stage3, generated_at
        )
        return GenerationResult(
            stage1=outputs.stage1,
            stage2=outputs.stage2,
            stage3=outputs.stage3,
            validation=outputs.validation,
            full_document=document,
            metadata={
                "subject": run.subject,
                "generated_at": generated_at.isoformat(),
                "resumed_after_stage": resumed_after,
                "quality_metrics": outputs.validation.quality_metrics(),
            },
        )


__all__ = ["PassOrchestrator", "parse_stage1_response"]
