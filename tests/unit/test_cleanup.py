from __future__ import annotations

from master_chart.generation.cleanup import strip_boilerplate


def test_placeholders_are_removed() -> None:
    text = (
        "## 1. Identity\n[Continue with remaining concepts]\n"
        "[Output truncated for length]\n"
        "[Additional concepts follow the same format]\n"
        "[Use the same pattern for the rest]\nbody"
    )

    cleaned = strip_boilerplate(text)

    assert "[" not in cleaned
    assert cleaned.startswith("## 1. Identity")
    assert cleaned.endswith("body")


def test_trailing_offers_cut_to_end() -> None:
    text = (
        "## 1. Identity\nbody\n\n"
        "Would you like me to continue with concepts 11-20?\nMore chatter."
    )

    assert strip_boilerplate(text) == "## 1. Identity\nbody"


def test_apology_cut_to_end() -> None:
    text = "## 1. Identity\nbody\nI apologize, but the response was cut.\n## 2. Lost"

    assert strip_boilerplate(text) == "## 1. Identity\nbody"


def test_framing_sentences_removed() -> None:
    text = (
        "Let me build the chart now. I'll create the detailed sections.\n"
        "I'll execute this with positive framing throughout.\n"
        "## 1. Identity\nbody"
    )

    assert strip_boilerplate(text) == "## 1. Identity\nbody"


def test_clean_text_only_trimmed() -> None:
    assert strip_boilerplate("\n\n## 1. Identity\nbody\n\n") == "## 1. Identity\nbody"


def test_framing_phrases_inside_words_are_kept() -> None:
    text = "## 1. Identity\nOutlet measures are tracked. Toilet mechanics apply.\nbody"

    assert strip_boilerplate(text) == text
