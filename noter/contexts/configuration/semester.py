"""
Semester derivation from calendar dates.

Uses the northern-hemisphere two-semester convention: dates before the
cutoff (month-day, default July 1st) belong to the Spring semester of that
year, dates on or after it to the Fall semester.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

STYLES = ("year_season", "season_year", "short_form", "custom")
DEFAULT_CUTOFF = "07-01"


@dataclass(frozen=True)
class SemesterFormat:
    """
    How semester strings are rendered.

    Attributes:
        style: One of STYLES
        pattern: Pattern for the "custom" style. Tokens: {year} (or {}), {yy},
                 {season}, {s}
        cutoff: MM-DD boundary between Spring and Fall
    """

    style: str = "year_season"
    pattern: Optional[str] = None
    cutoff: str = DEFAULT_CUTOFF


def parse_cutoff(cutoff: str) -> Tuple[int, int]:
    """
    Parse an MM-DD cutoff into (month, day).

    Raises:
        ValueError: If the cutoff is not a valid calendar month-day
    """
    month_text, _, day_text = cutoff.partition("-")
    month, day = int(month_text), int(day_text)
    # Validates the combination (2000 is a leap year, so 02-29 is accepted)
    date(2000, month, day)
    return month, day


def is_spring(day: date, cutoff: str = DEFAULT_CUTOFF) -> bool:
    """Whether `day` falls in the Spring semester of its year."""
    return (day.month, day.day) < parse_cutoff(cutoff)


def semester_for(day: date, fmt: SemesterFormat = SemesterFormat()) -> str:
    """
    Format the semester containing `day`.

    Examples:
        semester_for(date(2024, 3, 1))                             # "2024 Spring"
        semester_for(date(2024, 9, 1), SemesterFormat("short_form"))  # "F24"
    """
    spring = is_spring(day, fmt.cutoff)
    season = "Spring" if spring else "Fall"
    short = "S" if spring else "F"
    year = day.year

    if fmt.style == "season_year":
        return f"{season} {year}"
    if fmt.style == "short_form":
        return f"{short}{year % 100:02d}"
    if fmt.style == "custom" and fmt.pattern:
        return (
            fmt.pattern.replace("{year}", str(year))
            .replace("{yy}", f"{year % 100:02d}")
            .replace("{season}", season)
            .replace("{s}", short)
            .replace("{}", str(year))
        )
    return f"{year} {season}"
