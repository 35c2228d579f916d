"""
Course-specific section rules for assignment-like documents.

DTU course numbers encode the department in their first two digits, so a
pattern such as "01xxx" (x = any character) identifies every mathematics
course. Rules are checked in order and the first match wins; unmatched
courses keep the generic assignment sections from the config.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

GENERAL_COURSE_TYPE = "general"


@dataclass(frozen=True)
class SectionRule:
    """
    Attributes:
        pattern: Course id pattern; "x"/"X" matches any single character
        course_type: Informational tag for matching courses
        sections: Section list used instead of the generic assignment sections
    """

    pattern: str
    course_type: str
    sections: Tuple[str, ...]

    def matches(self, course_id: str) -> bool:
        return matches_course_pattern(course_id, self.pattern)


SECTION_RULES: Tuple[SectionRule, ...] = (
    SectionRule(
        "01xxx",
        "math",
        ("Problem Statement", "Analysis", "Proof", "Verification", "Conclusion"),
    ),
    SectionRule(
        "02xxx",
        "programming",
        ("Problem Description", "Design", "Implementation", "Testing", "Discussion"),
    ),
    SectionRule(
        "25xxx",
        "physics",
        ("Theory", "Experimental Setup", "Measurements", "Error Analysis", "Conclusion"),
    ),
    SectionRule(
        "22xxx",
        "electronics",
        ("Circuit Analysis", "Simulation", "Measurements", "Discussion"),
    ),
    SectionRule(
        "28xxx",
        "environment",
        ("Background", "Methods", "Results", "Discussion"),
    ),
    SectionRule(
        "31xxx",
        "mechanics",
        ("Free Body Diagrams", "Equations of Motion", "Solution", "Verification"),
    ),
)


def matches_course_pattern(course_id: str, pattern: str) -> bool:
    """
    Whether `course_id` matches `pattern` character by character.

    Examples:
        matches_course_pattern("01005", "01xxx")  # True
        matches_course_pattern("0100", "01xxx")   # False (length differs)
    """
    if len(course_id) != len(pattern):
        return False
    return all(p in ("x", "X") or p == c for c, p in zip(course_id, pattern))


def find_rule(course_id: str, rules: Sequence[SectionRule] = SECTION_RULES) -> Optional[SectionRule]:
    for rule in rules:
        if rule.matches(course_id):
            return rule
    return None


def course_type_for(course_id: str, rules: Sequence[SectionRule] = SECTION_RULES) -> str:
    rule = find_rule(course_id, rules)
    return rule.course_type if rule else GENERAL_COURSE_TYPE


def select_sections(
    course_id: str,
    default: Sequence[str],
    rules: Sequence[SectionRule] = SECTION_RULES,
) -> Tuple[str, ...]:
    """Sections of the first matching rule, else `default`."""
    rule = find_rule(course_id, rules)
    if rule is None:
        return tuple(default)
    return rule.sections
