"""Prompt builders for the four generation stages."""

from __future__ import annotations

import json
from typing import Any, Sequence

from .models import Batch, Lifecycle, Stage1Result

_RULE = "━" * 43

CHART_SYSTEM_PROMPT = """You are a curriculum architect producing a VISUAL MASTER CHART for professional certification study.

Rules:
- Every core concept follows the authorized three-phase lifecycle, in order.
- Use positive framing: "enables", "extends", "builds upon", "connects to".
- Name exact tools, commands, portal paths, forms and thresholds; never stay generic.
- Output content only. No questions, no apologies, no offers to continue."""

BATCH_SYSTEM_SUFFIX = (
    "You are an automated content generator. Output content only. "
    "No questions. No conversational phrases."
)

SUPPLEMENTARY_SYSTEM_PROMPT = (
    "You are an automated content generator. Output content only. No questions."
)

VALIDATION_SYSTEM_PROMPT = "You are a quality assurance validator for educational content."

# Minimum shape of the stage-1 response; extra keys are allowed.
STAGE1_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "sourceVerification": {"type": "string"},
        "recentUpdates": {"type": "array", "items": {"type": "string"}},
        "numericalLimits": {"type": "array", "items": {"type": "string"}},
        "concepts": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
            "minItems": 1,
        },
    },
    "required": ["concepts"],
}


def _header(title: str) -> str:
    return f"{_RULE}\n{title}\n{_RULE}"


def _numbered(items: Sequence[str], start: int = 1) -> str:
    return "\n".join(f"{start + offset}. {item}" for offset, item in enumerate(items))


def build_stage1_prompt(subject: str, lifecycle: Lifecycle) -> str:
    p1, p2, p3 = lifecycle.phases
    return f"""{_header("STAGE 1 TASK: Live verification and concept extraction")}

Subject: "{subject}"

PRE-DETERMINED LIFECYCLE (USE EXACTLY):
Domain: {lifecycle.domain}
Role: {lifecycle.role_scope}
Phase 1: {p1.verb} - {p1.description}
Phase 2: {p2.verb} - {p2.description}
Phase 3: {p3.verb} - {p3.description}

INSTRUCTIONS:
1. Identify the most recent official syllabus or standard
2. Extract 3 specific recent updates (last 12 months)
3. Identify numerical limits and thresholds
4. Extract ALL core concepts from the official syllabus (typically 15-35)

OUTPUT FORMAT (JSON ONLY):
{{
  "sourceVerification": "Name of official source found",
  "recentUpdates": ["Update 1", "Update 2", "Update 3"],
  "numericalLimits": ["Limit 1 with value", "Limit 2 with value"],
  "concepts": ["Concept 1", "Concept 2", "..."]
}}"""


def build_stage2_prompt(stage1: Stage1Result) -> str:
    lifecycle = stage1.lifecycle
    verified = json.dumps(stage1.to_dict(), indent=2, ensure_ascii=False)
    return f"""{_header("STAGE 2 TASK: Dependency graph, decision frameworks and mental map")}

Use the verified data below. Do not re-run verification.

VERIFIED DATA FROM STAGE 1:
{verified}

EXACT CONCEPTS TO USE (DO NOT MODIFY):
{_numbered(stage1.concepts)}

TASKS:
1. Concept Dependency Graph showing how these {len(stage1.concepts)} concepts build upon each other
2. 2-3 Decision Framework Trees for common "When do I use X vs Y?" questions
3. Mental Map Summary Diagram showing all concepts as connected nodes

LIFECYCLE: {lifecycle.arrow_chain()}
ROLE SCOPE: {lifecycle.role_scope}
EXCLUDED ACTIONS: {", ".join(lifecycle.excluded_actions)}

POSITIVE FRAMING REQUIRED: use "enables", "extends", "builds upon", "connects to".

OUTPUT: only the three structures above. No chart content yet."""


def _foundation_block(stage1: Stage1Result) -> str:
    p1, p2, p3 = stage1.lifecycle.verbs
    return f"""FOUNDATION DATA (DO NOT MODIFY):
Domain: {stage1.domain}
Role Scope: {stage1.role_scope}
Lifecycle: {stage1.lifecycle.arrow_chain()}
Source: {stage1.source_verification}

DETAIL REQUIREMENTS FOR EACH CONCEPT:

{p1} (Foundation Phase):
  - Prerequisite: what must exist first, or "[None]"
  - Selection: 2-3 specific options with their key capabilities
  - Execution: the EXACT tool/command/portal/form to use

{p2} (Configuration Phase):
  • 5-8 configuration items with SPECIFIC commands, settings or procedures
  • **[Critical Distinction]:** for key comparisons
  • **[Design Boundary]:** for limitations (positively framed)
  • **[Prerequisite Check]:** for requirements (positively framed)
  • **[Exam Focus]:** for tested concepts

{p3} (Verification Phase):
  ○ the EXACT tool or document
  ○ metrics to monitor
  ○ deadlines or thresholds

QUALITY: each concept is 15-25 lines with specific commands, portal paths and callouts."""


def build_batch_prompt(
    stage1: Stage1Result,
    batch: Batch,
    concepts: Sequence[str],
    total_batches: int,
) -> str:
    p1, p2, p3 = stage1.lifecycle.verbs
    first = concepts[0] if concepts else ""
    return f"""{_header(f"BATCH {batch.index + 1}/{total_batches}: Generate concepts {batch.start + 1}-{batch.end}")}

{_foundation_block(stage1)}

CONCEPTS TO GENERATE IN THIS BATCH:
{_numbered(concepts, start=batch.start + 1)}

OUTPUT FORMAT:
## {batch.start + 1}. {first}
- {p1}:
  [detailed content]
• {p2}:
  [detailed content with callouts]
○ {p3}:
  [monitoring details]

CRITICAL: Generate ALL {len(concepts)} concepts completely, keeping the numbering above. No skipping. No asking to continue."""


def build_supplementary_prompt(subject: str, stage1: Stage1Result) -> str:
    return f"""{_header(f"Generate Steps 4, 5, and 7 for: {subject}")}

Domain: {stage1.domain}
Role Scope: {stage1.role_scope}
Lifecycle: {stage1.lifecycle.arrow_chain()}

Concepts covered: {", ".join(stage1.concepts)}

GENERATE:

## STEP 4: VISUAL MENTAL ANCHORS
3 vivid mental anchors mapping 3-4 technical concepts to concrete physical elements, each with a "Why It Helps" note.

## STEP 5: WORKED EXAMPLE
Student question, chart navigation, diagnosis, solution and learning point.

## STEP 7: LEARNING PATH SEQUENCE
4-5 progressive stages with the concepts included and "Capabilities Gained" after each.

OUTPUT ALL THREE SECTIONS NOW:"""


def build_validation_prompt(
    stage1: Stage1Result,
    sample: str,
    local_metrics: dict[str, int],
) -> str:
    expected = len(stage1.concepts)
    metrics = json.dumps(local_metrics, indent=2)
    return f"""{_header("STAGE 4 TASK: Validate generated content against standards")}

EXPECTED STRUCTURE:
Domain: {stage1.domain}
Lifecycle: {stage1.lifecycle.arrow_chain()}
Role Scope: {stage1.role_scope}
Excluded Actions: {", ".join(stage1.excluded_actions)}
Expected Concept Count: {expected}

STRUCTURAL METRICS (already measured, do not recompute):
{metrics}

SAMPLED CONTENT (head, middle and tail of the document):
{sample}

SCORING RULES:
- positiveFraming: subtract 10 per "requires", "cannot", "must not", "depends on".
- terminologyDensity: subtract 10 per generic phrase ("various options", "best practices", "etc.").
- domainSpecificity: subtract 15 per concept without a named tool, command or threshold.
- Flag boilerplate or meta-commentary ("Let me...", "I'll create...") as issues.

OUTPUT FORMAT (JSON ONLY):
{{
  "valid": true,
  "positiveFraming": 0,
  "terminologyDensity": 0,
  "domainSpecificity": 0,
  "issues": [{{"section": "", "problem": "", "severity": "critical|minor", "fix": ""}}],
  "violations": {{"outOfScope": [], "negativeFraming": [], "genericPhrasing": []}},
  "fixes": {{"<section heading text>": "<full replacement section including its heading>"}}
}}"""


__all__ = [
    "BATCH_SYSTEM_SUFFIX",
    "CHART_SYSTEM_PROMPT",
    "STAGE1_SCHEMA",
    "SUPPLEMENTARY_SYSTEM_PROMPT",
    "VALIDATION_SYSTEM_PROMPT",
    "build_batch_prompt",
    "build_stage1_prompt",
    "build_stage2_prompt",
    "build_supplementary_prompt",
    "build_validation_prompt",
]
