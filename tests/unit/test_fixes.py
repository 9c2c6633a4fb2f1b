from __future__ import annotations

from master_chart.generation.fixes import SectionFixApplier, apply_fixes

CHART = (
    "## STEP 3: MASTER HIERARCHICAL CHART\n\n"
    "## 1. Identity\n- PROVISION:\n  old identity text\n\n"
    "## 2. Storage\n- PROVISION:\n  storage text\n\n"
    "## STEP 4: VISUAL MENTAL ANCHORS\nThe harbour."
)


def test_missing_section_is_a_silent_no_op() -> None:
    outcome = SectionFixApplier().apply(CHART, {"DOMAIN ANALYSIS": "replacement"})

    assert outcome.text == CHART
    assert outcome.applied == []
    assert outcome.skipped == ["DOMAIN ANALYSIS"]


def test_fix_replaces_heading_through_next_heading() -> None:
    fixed = apply_fixes(CHART, {"Identity": "## 1. Identity\n- PROVISION:\n  new identity text"})

    assert "old identity text" not in fixed
    assert "## 1. Identity\n- PROVISION:\n  new identity text\n\n## 2. Storage" in fixed
    assert "storage text" in fixed
    assert fixed.startswith("## STEP 3: MASTER HIERARCHICAL CHART")


def test_fix_for_last_section_runs_to_end_of_text() -> None:
    fix = {"VISUAL MENTAL ANCHORS": "## STEP 4: VISUAL MENTAL ANCHORS\nThe orchard."}
    fixed = apply_fixes(CHART, fix)

    assert fixed.endswith("The orchard.\n\n")
    assert "The harbour." not in fixed
    assert "storage text" in fixed


def test_section_lookup_is_case_insensitive_and_escapes_regex() -> None:
    text = "### C++ (Basics)\nold\n### Next\nkeep"

    fixed = apply_fixes(text, {"c++ (basics)": "### C++ (Basics)\nnew"})

    assert fixed == "### C++ (Basics)\nnew\n\n### Next\nkeep"


def test_plain_label_sections_are_matched() -> None:
    text = "Intro\nDOMAIN ANALYSIS: General\nold details\n## 1. Identity\nkeep"

    fixed = apply_fixes(text, {"DOMAIN ANALYSIS": "DOMAIN ANALYSIS: Cloud"})

    assert fixed == "Intro\nDOMAIN ANALYSIS: Cloud\n\n## 1. Identity\nkeep"


def test_blank_keys_are_skipped_and_later_fixes_still_apply() -> None:
    outcome = SectionFixApplier().apply(CHART, {"": "x", "Storage": "## 2. Storage\nfixed"})

    assert outcome.skipped == [""]
    assert outcome.applied == ["Storage"]
    assert "## 2. Storage\nfixed\n\n## STEP 4" in outcome.text
