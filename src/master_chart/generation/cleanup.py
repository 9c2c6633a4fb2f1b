"""Mandatory post-processing of stage-3 text: strip placeholders and conversational framing."""

from __future__ import annotations

import re

# Applied in order. The DOTALL patterns drop everything from the phrase to the end of
# the text, matching the first occurrence only. Framing phrases only match at a word start.
_SUBSTITUTIONS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"\[Continue with.*?\]", re.IGNORECASE), 0),
    (re.compile(r"\[.*?truncated.*?\]", re.IGNORECASE), 0),
    (re.compile(r"\[Additional concepts follow.*?\]", re.IGNORECASE), 0),
    (re.compile(r"\[.*?same.*?pattern.*?\]", re.IGNORECASE), 0),
    (re.compile(r"Note: I can provide.*?$", re.DOTALL), 1),
    (re.compile(r"Would you like me to.*?$", re.DOTALL), 1),
    (re.compile(r"I apologize.*?$", re.DOTALL), 1),
    (re.compile(r"\bI'll execute.*?framing.*?\.", re.IGNORECASE), 0),
    (re.compile(r"\bI'll create.*?\.", re.IGNORECASE), 0),
    (re.compile(r"\bLet me.*?\.", re.IGNORECASE), 0),
)


def strip_boilerplate(text: str) -> str:
    """Remove truncation placeholders, offers to continue and "Let me..." framing, then trim."""

    for pattern, count in _SUBSTITUTIONS:
        text = pattern.sub("", text, count=count)
    return text.strip()


__all__ = ["strip_boilerplate"]
