"""Assembly of the final master chart document."""

from __future__ import annotations

from datetime import datetime

from .models import Stage1Result

_BANNER = "=" * 80


def _bullets(items: tuple[str, ...]) -> str:
    return "\n".join(f"  • {item}" for item in items)


def render_header(stage1: Stage1Result, generated_at: datetime) -> str:
    """Stage-1 metadata block: title banner plus the domain analysis."""

    concepts = "\n".join(f"  {idx}. {concept}" for idx, concept in enumerate(stage1.concepts, 1))
    return "\n".join(
        [
            _BANNER,
            f"VISUAL MASTER CHART: {stage1.source_verification}",
            f"Generated: {generated_at.isoformat()}",
            _BANNER,
            "",
            "DOMAIN ANALYSIS",
            "-" * len("DOMAIN ANALYSIS"),
            f"Domain: {stage1.domain}",
            f"Professional Role: {stage1.role_scope}",
            f"Lifecycle: {stage1.lifecycle.arrow_chain()}",
            "",
            f"Source Verification: {stage1.source_verification}",
            "",
            "Recent Updates:",
            _bullets(stage1.recent_updates),
            "",
            "Numerical Limits:",
            _bullets(stage1.numerical_limits),
            "",
            f"Core Concepts Identified: {len(stage1.concepts)}",
            concepts,
        ]
    )


def _section(title: str, body: str) -> str:
    return f"{_BANNER}\n{title}\n{_BANNER}\n\n{body}"


def assemble_final_document(
    stage1: Stage1Result,
    stage2: str,
    stage3: str,
    generated_at: datetime,
) -> str:
    """Header, then the dependency/decision section, then the (possibly fixed) chart."""

    parts = [
        render_header(stage1, generated_at),
        _section("CONCEPT DEPENDENCY GRAPH & DECISION FRAMEWORKS", stage2.strip()),
        _section("MASTER HIERARCHICAL CHART", stage3.strip()),
    ]
    return "\n\n".join(parts).strip()


__all__ = ["assemble_final_document", "render_header"]
