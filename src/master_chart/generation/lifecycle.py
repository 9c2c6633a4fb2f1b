"""Lifecycle pre-analysis: infer the three operational phases a subject is taught through."""

from __future__ import annotations

import logging

from .models import Lifecycle, LifecyclePhase
from .parsing import extract_json_object

logger = logging.getLogger(__name__)

LIFECYCLE_SYSTEM_PROMPT = (
    "You are an expert curriculum designer. Analyze subjects and determine the optimal "
    "operational lifecycle."
)

LIFECYCLE_PROMPT = """You are an expert curriculum designer. Determine the 3-phase operational lifecycle that best captures how professionals work with this subject.

SUBJECT: {subject}

GUIDELINES:
1. Each phase is a single ACTION VERB in CAPS (e.g. PROVISION, ANALYZE, DESIGN)
2. Phase 1 = foundation / setup / preparation
3. Phase 2 = core action / implementation / execution
4. Phase 3 = verification / monitoring / evaluation
5. Verbs are specific to the subject domain, not generic

EXAMPLES:
- Azure Administrator: PROVISION → CONFIGURE → MONITOR
- Accountant: RECOGNIZE → MEASURE → DISCLOSE
- Security Analyst: DETECT → INVESTIGATE → RESPOND

RESPOND WITH THIS JSON ONLY:
{{
  "domain": "<detected domain category>",
  "roleScope": "<specific professional role title>",
  "phase1": "<VERB>",
  "phase2": "<VERB>",
  "phase3": "<VERB>",
  "phase1Description": "<10 words or less>",
  "phase2Description": "<10 words or less>",
  "phase3Description": "<10 words or less>",
  "justification": "<1-2 sentences>",
  "excludedActions": ["<action outside this role's scope>", "..."]
}}"""

_RULE = "━" * 43


def build_lifecycle_prompt(subject: str) -> str:
    return LIFECYCLE_PROMPT.format(subject=subject)


def parse_lifecycle_response(text: str) -> Lifecycle | None:
    """Return the lifecycle described by ``text`` or None when it cannot be used.

    A response is unusable when it holds no JSON object or any of the three phase
    verbs is missing. Verbs are upper-cased; other fields fall back to defaults.
    """

    payload = extract_json_object(text)
    if payload is None:
        return None
    verbs = [payload.get(f"phase{idx}") for idx in (1, 2, 3)]
    if not all(isinstance(verb, str) and verb.strip() for verb in verbs):
        return None
    excluded = payload.get("excludedActions") or []
    if not isinstance(excluded, list):
        excluded = []
    phases = tuple(
        LifecyclePhase(
            verb=str(verb).strip().upper(),
            description=str(payload.get(f"phase{idx}Description") or ""),
        )
        for idx, verb in enumerate(verbs, start=1)
    )
    return Lifecycle(
        domain=str(payload.get("domain") or "General"),
        role_scope=str(payload.get("roleScope") or "Professional"),
        phases=phases,  # type: ignore[arg-type]
        justification=str(payload.get("justification") or ""),
        excluded_actions=tuple(str(item) for item in excluded),
    )


def default_lifecycle(subject: str) -> Lifecycle:
    return Lifecycle(
        domain="General",
        role_scope="Professional",
        phases=(
            LifecyclePhase("FOUNDATION", "Establish prerequisites and setup"),
            LifecyclePhase("ACTION", "Execute core activities"),
            LifecyclePhase("VERIFICATION", "Validate and verify outcomes"),
        ),
        justification=(
            f"Generic lifecycle for {subject} following setup, execution, and validation pattern."
        ),
        excluded_actions=(),
    )


def resolve_lifecycle(text: str, subject: str) -> tuple[Lifecycle, bool]:
    """Parse the pre-analysis response, degrading to :func:`default_lifecycle`.

    Returns the lifecycle and whether the default was used.
    """

    parsed = parse_lifecycle_response(text)
    if parsed is not None:
        return parsed, False
    logger.warning("Unparseable lifecycle pre-analysis for %r; using default lifecycle", subject)
    return default_lifecycle(subject), True


def lifecycle_scope_prompt(lifecycle: Lifecycle, subject: str) -> str:
    """System-prompt block that pins every concept to the authorized lifecycle."""

    p1, p2, p3 = lifecycle.phases
    excluded = "\n".join(f"  - {action}" for action in lifecycle.excluded_actions)
    return "\n".join(
        [
            _RULE,
            "DYNAMIC LIFECYCLE ENFORCEMENT",
            _RULE,
            "",
            f"Subject: {subject}",
            f"Domain: {lifecycle.domain}",
            f"Professional Role: {lifecycle.role_scope}",
            "",
            "AUTHORIZED LIFECYCLE:",
            f"{p1.verb} ({p1.description}) →",
            f"{p2.verb} ({p2.description}) →",
            f"{p3.verb} ({p3.description})",
            "",
            f"Justification: {lifecycle.justification}",
            "",
            "OUT OF SCOPE - DO NOT INCLUDE:",
            excluded,
            "",
            "Every core concept MUST use the authorized lifecycle phases:",
            f"- Phase 1: {p1.verb}",
            f"- Phase 2: {p2.verb}",
            f"- Phase 3: {p3.verb}",
            "",
            "No exceptions. These verbs replace any default lifecycle phases.",
            _RULE,
        ]
    )


__all__ = [
    "LIFECYCLE_SYSTEM_PROMPT",
    "build_lifecycle_prompt",
    "default_lifecycle",
    "lifecycle_scope_prompt",
    "parse_lifecycle_response",
    "resolve_lifecycle",
]
