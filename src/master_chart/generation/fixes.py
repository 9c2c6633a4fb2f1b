"""Section-granular corrections proposed by the remote validator."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Mapping, Protocol

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FixOutcome:
    text: str
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class FixApplier(Protocol):
    def apply(self, text: str, fixes: Mapping[str, str]) -> FixOutcome: ...


class SectionFixApplier:
    """Replace a whole section, from its heading line up to the next markdown heading.

    A section is located by the first heading line containing its name, either a
    markdown heading (``## 3. Name`` / ``### NAME``) or a line that starts with
    ``NAME:``. Keys that are empty or match nothing are skipped without error.
    Fixes apply one after another, so later keys see earlier replacements.
    """

    def _pattern(self, section: str) -> re.Pattern[str]:
        name = re.escape(section.strip())
        heading = rf"(?:#{{1,6}}[ \t]*[^\n]*?{name}[^\n]*|{name}[ \t]*:[^\n]*)"
        return re.compile(
            rf"^{heading}\n?[\s\S]*?(?=^#{{1,6}}[ \t]|\Z)",
            re.MULTILINE | re.IGNORECASE,
        )

    def apply(self, text: str, fixes: Mapping[str, str]) -> FixOutcome:
        outcome = FixOutcome(text=text)
        for section, replacement in fixes.items():
            if not isinstance(section, str) or not section.strip():
                outcome.skipped.append(str(section))
                continue
            pattern = self._pattern(section)
            body = str(replacement).rstrip("\n") + "\n\n"
            updated, count = pattern.subn(lambda _match: body, outcome.text, count=1)
            if count == 0:
                logger.debug("No section matched fix key %r; leaving text unchanged", section)
                outcome.skipped.append(section)
                continue
            outcome.text = updated
            outcome.applied.append(section)
        if outcome.applied:
            logger.info(
                "Applied %d fix(es); %d key(s) matched no section",
                len(outcome.applied),
                len(outcome.skipped),
            )
        return outcome


def apply_fixes(text: str, fixes: Mapping[str, str]) -> str:
    return SectionFixApplier().apply(text, fixes).text


__all__ = ["FixApplier", "FixOutcome", "SectionFixApplier", "apply_fixes"]
