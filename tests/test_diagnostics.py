"""Tests for instruction diagnostics."""
import pytest

from services.realtime.diagnostics import (
    NumberedListParser,
    apply_instruction_side_effects,
    count_mistakes,
)

FIVE_FINDINGS = """Here is what differs:
1. The header background should be #1e3a8a.
2. The logo is missing.
3) The hero title font is too small.
4. Buttons need rounded corners.
**5.** The footer links are misaligned.
"""


@pytest.mark.parametrize(
    "text,expected",
    [
        ("", 0),
        ("No mistakes found.", 0),
        ("1. The navigation bar should be sticky.", 1),
        (FIVE_FINDINGS, 5),
    ],
)
def test_count_mistakes(text, expected):
    assert count_mistakes(text) == expected


def test_repeated_indices_are_counted_once():
    text = "1. Wrong font\n1. Wrong font\n2. Missing icon"
    assert count_mistakes(text) == 2


def test_decimal_numbers_are_not_findings():
    assert count_mistakes("Padding is 3.5 pixels off in the card.") == 0


def test_bullets_under_mistake_heading():
    text = "Mistakes:\n- Title colour\n- Missing search box\n\nNotes:\n- keep the layout"
    assert count_mistakes(text) == 2


@pytest.mark.parametrize("value", [None, 42, "   ", "\x00\x01"])
def test_malformed_input_degrades_to_zero(value):
    assert count_mistakes(value) == 0


def test_parser_errors_degrade_to_zero():
    class Exploding:
        def findings(self, text):
            raise ValueError("bad grammar")

    assert count_mistakes("1. anything", parser=Exploding()) == 0


def test_side_effects_strip_fences_and_collect_findings():
    summary = apply_instruction_side_effects("```\n1. Make the title bold.\n2. Add spacing.\n```")

    assert summary.text == "1. Make the title bold.\n2. Add spacing."
    assert summary.findings == ["Make the title bold.", "Add spacing."]


def test_numbered_list_parser_keeps_order():
    assert NumberedListParser().findings("2. second\n1. first") == ["second", "first"]
