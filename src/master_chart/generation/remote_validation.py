"""Model-backed quality assessment of the chart, merged with the local structural metrics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from .cancellation import CancellationToken
from .config import SamplingConfig
from .model_client import ModelClient, ModelRequest
from .models import Stage1Result, ValidationIssue, ValidationResult
from .parsing import require_json_object
from .prompts import VALIDATION_SYSTEM_PROMPT, build_validation_prompt

logger = logging.getLogger(__name__)

REMOTE_VALIDATION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "valid": {"type": "boolean"},
        "positiveFraming": {"type": "number"},
        "terminologyDensity": {"type": "number"},
        "domainSpecificity": {"type": "number"},
        "issues": {"type": "array", "items": {"type": "object"}},
        "violations": {"type": "object"},
        "fixes": {"type": "object"},
    },
}


@dataclass(slots=True)
class RemoteAssessment:
    """Soft quality scores and proposed section fixes as returned by the model."""

    valid: bool = True
    positive_framing: int = 0
    terminology_density: int = 0
    domain_specificity: int = 0
    issues: list[ValidationIssue] = field(default_factory=list)
    violations: dict[str, list[str]] = field(default_factory=dict)
    fixes: dict[str, str] = field(default_factory=dict)


def sample_document(text: str, window_chars: int) -> str:
    """Head, middle and tail windows of ``text``; the whole text when it is short enough."""

    if window_chars <= 0 or len(text) <= window_chars * 3:
        return text
    middle_start = (len(text) - window_chars) // 2
    head = text[:window_chars]
    middle = text[middle_start : middle_start + window_chars]
    tail = text[-window_chars:]
    return (
        f"[BEGINNING]\n{head}\n\n"
        f"[MIDDLE - from character {middle_start}]\n{middle}\n\n"
        f"[END]\n{tail}"
    )


def _score(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, int(round(number))))


def parse_remote_assessment(text: str) -> RemoteAssessment:
    payload = require_json_object(text, what="remote validation", schema=REMOTE_VALIDATION_SCHEMA)
    violations: dict[str, list[str]] = {}
    for key, items in dict(payload.get("violations") or {}).items():
        if isinstance(items, list):
            violations[str(key)] = [str(item) for item in items]
    fixes = {
        str(section): replacement
        for section, replacement in dict(payload.get("fixes") or {}).items()
        if isinstance(replacement, str) and replacement.strip()
    }
    return RemoteAssessment(
        valid=bool(payload.get("valid", True)),
        positive_framing=_score(payload.get("positiveFraming")),
        terminology_density=_score(payload.get("terminologyDensity")),
        domain_specificity=_score(payload.get("domainSpecificity")),
        issues=[ValidationIssue.from_dict(item) for item in payload.get("issues") or []],
        violations=violations,
        fixes=fixes,
    )


def merge_validation(local: ValidationResult, remote: RemoteAssessment) -> ValidationResult:
    """Add the remote scores to ``local``; counts and structural percentages are kept as is."""

    return replace(
        local,
        positive_framing=remote.positive_framing,
        terminology_density=remote.terminology_density,
        domain_specificity=remote.domain_specificity,
        valid=remote.valid and not local.incomplete,
        issues=[*local.issues, *remote.issues],
        violations=dict(remote.violations),
        fixes=dict(remote.fixes),
        fixes_applied=[],
    )


def structural_metrics(result: ValidationResult) -> dict[str, int]:
    return {
        "expectedConcepts": result.expected_concepts,
        "foundConcepts": result.found_concepts,
        "lifecycleConsistency": result.lifecycle_consistency,
        "formatConsistency": result.format_consistency,
        "completeness": result.completeness,
    }


class RemoteValidator:
    def __init__(
        self,
        client: ModelClient,
        sampling: SamplingConfig,
        *,
        sample_window_chars: int = 4000,
    ) -> None:
        self._client = client
        self._sampling = sampling
        self.sample_window_chars = sample_window_chars

    def build_request(
        self, stage1: Stage1Result, text: str, local: ValidationResult
    ) -> ModelRequest:
        prompt = build_validation_prompt(
            stage1,
            sample_document(text, self.sample_window_chars),
            structural_metrics(local),
        )
        return ModelRequest.from_prompt(
            prompt,
            system_prompt=VALIDATION_SYSTEM_PROMPT,
            max_tokens=self._sampling.max_tokens,
            temperature=self._sampling.temperature,
            request_id="stage4-validation",
        )

    async def assess(
        self,
        stage1: Stage1Result,
        text: str,
        local: ValidationResult,
        cancel_token: CancellationToken | None = None,
    ) -> RemoteAssessment:
        response = await self._client.invoke(self.build_request(stage1, text, local), cancel_token)
        assessment = parse_remote_assessment(response)
        logger.info(
            "Remote assessment: framing=%d terminology=%d specificity=%d, %d fix(es) proposed",
            assessment.positive_framing,
            assessment.terminology_density,
            assessment.domain_specificity,
            len(assessment.fixes),
        )
        return assessment


__all__ = [
    "REMOTE_VALIDATION_SCHEMA",
    "RemoteAssessment",
    "RemoteValidator",
    "merge_validation",
    "parse_remote_assessment",
    "sample_document",
    "structural_metrics",
]
