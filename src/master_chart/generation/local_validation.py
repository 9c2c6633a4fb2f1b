"""Deterministic structural checks over the stage-3 chart text.

Nothing here calls the model; the same text and expected count always produce the
same :class:`ValidationResult`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .models import Lifecycle, ValidationIssue, ValidationResult

CHART_SECTION = "MASTER HIERARCHICAL CHART"

# "## 12. Concept name" as requested by the batch prompt, or "CORE CONCEPT 12: name".
_CONCEPT_MARKER = re.compile(
    r"^(?:##[ \t]*(?P<num>\d+)\.[ \t]+\S.*|.*?CORE CONCEPT[ \t]+(?P<core>\d+):.*)$",
    re.MULTILINE | re.IGNORECASE,
)
_ANY_VERB = r"[A-Z][A-Z/&\- ]*?"
_PHASE_BULLETS = ("-", "•", "○")
_CALLOUT = re.compile(r"\*\*\[[^\]\n]+\]:\*\*")
_INDENTED = re.compile(r"^ {2,}\S", re.MULTILINE)

# Points per structural feature; they add up to 100.
FORMAT_WEIGHTS = {
    "concept_headers": 30,
    "phase1_marker": 15,
    "phase2_marker": 15,
    "phase3_marker": 15,
    "indentation": 15,
    "callouts": 10,
}


@dataclass(frozen=True, slots=True)
class ConceptBlock:
    number: int
    title: str
    body: str


def _phase_patterns(lifecycle: Lifecycle | None) -> tuple[re.Pattern[str], ...]:
    verbs = lifecycle.verbs if lifecycle is not None else (None, None, None)
    patterns = []
    for bullet, verb in zip(_PHASE_BULLETS, verbs):
        label = re.escape(verb) if verb else _ANY_VERB
        patterns.append(re.compile(rf"^[ \t]*{re.escape(bullet)}[ \t]*\**{label}\b", re.MULTILINE))
    return tuple(patterns)


def split_concept_blocks(text: str) -> list[ConceptBlock]:
    """Concept blocks in document order, each running up to the next concept marker.

    Repeated concept numbers are counted once; the first occurrence wins.
    """

    matches = list(_CONCEPT_MARKER.finditer(text))
    blocks: list[ConceptBlock] = []
    seen: set[int] = set()
    for idx, match in enumerate(matches):
        number = int(match.group("num") or match.group("core"))
        if number in seen:
            continue
        seen.add(number)
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(text)
        blocks.append(
            ConceptBlock(
                number=number,
                title=match.group(0).strip().lstrip("#").strip(),
                body=text[match.end() : end],
            )
        )
    return blocks


def completeness_score(found: int, expected: int) -> int:
    if expected <= 0:
        return 100
    return min(int(round(found / expected * 100)), 100)


def validate_locally(
    text: str,
    expected_count: int,
    lifecycle: Lifecycle | None = None,
    *,
    min_completeness: int = 90,
) -> ValidationResult:
    """Structural metrics for ``text``; remote quality fields are left at zero.

    ``lifecycle`` pins the phase labels looked for. Without it any upper-case label
    after the ``-``, ``•`` and ``○`` bullets is accepted.
    """

    blocks = split_concept_blocks(text)
    found = len(blocks)
    completeness = completeness_score(found, expected_count)
    phase_patterns = _phase_patterns(lifecycle)

    issues: list[ValidationIssue] = []
    per_block: list[float] = []
    for block in blocks:
        present = [bool(pattern.search(block.body)) for pattern in phase_patterns]
        per_block.append(sum(present) / len(present))
        if not all(present):
            missing = [str(idx) for idx, ok in enumerate(present, start=1) if not ok]
            issues.append(
                ValidationIssue(
                    section=block.title,
                    problem=f"Missing lifecycle phase(s) {', '.join(missing)}",
                    severity="minor",
                )
            )
    lifecycle_consistency = int(round(sum(per_block) / len(per_block) * 100)) if per_block else 0

    features = {
        "concept_headers": found > 0,
        "phase1_marker": bool(phase_patterns[0].search(text)),
        "phase2_marker": bool(phase_patterns[1].search(text)),
        "phase3_marker": bool(phase_patterns[2].search(text)),
        "indentation": bool(_INDENTED.search(text)),
        "callouts": bool(_CALLOUT.search(text)),
    }
    format_consistency = sum(FORMAT_WEIGHTS[name] for name, ok in features.items() if ok)

    incomplete = completeness < min_completeness
    if found < expected_count:
        issues.insert(
            0,
            ValidationIssue(
                section=CHART_SECTION,
                problem=f"Found {found} of {expected_count} expected concepts",
                severity="critical" if incomplete else "minor",
            ),
        )

    return ValidationResult(
        expected_concepts=expected_count,
        found_concepts=found,
        lifecycle_consistency=lifecycle_consistency,
        format_consistency=format_consistency,
        completeness=completeness,
        valid=not incomplete,
        incomplete=incomplete,
        issues=issues,
    )


__all__ = [
    "CHART_SECTION",
    "ConceptBlock",
    "FORMAT_WEIGHTS",
    "completeness_score",
    "split_concept_blocks",
    "validate_locally",
]
