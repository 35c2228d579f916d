"""Unit tests for course section rules."""

import pytest

from noter.contexts.templating.section_rules import (
    SECTION_RULES,
    SectionRule,
    course_type_for,
    find_rule,
    matches_course_pattern,
    select_sections,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "course_id,pattern,expected",
    [
        ("01005", "01xxx", True),
        ("01005", "01XXX", True),
        ("02101", "01xxx", False),
        ("0100", "01xxx", False),
        ("010055", "01xxx", False),
        ("22100", "22100", True),
    ],
)
def test_matches_course_pattern(course_id, pattern, expected):
    """Test wildcard matching; lengths must agree."""
    assert matches_course_pattern(course_id, pattern) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "course_id,course_type",
    [
        ("01005", "math"),
        ("02101", "programming"),
        ("25200", "physics"),
        ("22100", "electronics"),
        ("28010", "environment"),
        ("31001", "mechanics"),
        ("42000", "general"),
        ("MATH1", "general"),
    ],
)
def test_course_type_for(course_id, course_type):
    """Test department detection from the course number."""
    assert course_type_for(course_id) == course_type


@pytest.mark.unit
def test_math_courses_get_proof_section():
    """Test that mathematics assignments are structured around proofs."""
    sections = select_sections("01005", ["Problem 1"])
    assert "Proof" in sections


@pytest.mark.unit
def test_unmatched_course_keeps_default_sections():
    """Test the fallback to the configured sections."""
    assert select_sections("42000", ["Problem 1", "Problem 2"]) == ("Problem 1", "Problem 2")


@pytest.mark.unit
def test_first_matching_rule_wins():
    """Test rule ordering."""
    rules = (
        SectionRule("0xxxx", "broad", ("A",)),
        SectionRule("01xxx", "narrow", ("B",)),
    )
    assert find_rule("01005", rules).course_type == "broad"


@pytest.mark.unit
def test_every_rule_has_sections():
    """Test that no rule produces an empty document."""
    for rule in SECTION_RULES:
        assert rule.sections
        assert len(rule.pattern) == 5
