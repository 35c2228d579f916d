"""
Generation entry points used by the CLI and status layers.

Thin orchestrators over TemplateBuilder; they return content or filenames
and never write files.
"""

from datetime import date
from pathlib import Path
from typing import Optional, Union

from noter.contexts.configuration.schema import Config
from noter.contexts.templating.builder import TemplateBuilder
from noter.contexts.templating.context import TemplateType
from noter.contexts.templating.engine import generate_filename as _document_filename
from noter.utils.timestamp import iso_date
from noter.utils.timestamp import today as current_day


def generate_lecture(
    course_id: str,
    config: Config,
    custom_title: Optional[str] = None,
    today: Optional[date] = None,
    package_root: Optional[Path] = None,
) -> str:
    """
    Generate lecture notes content for a course.

    Example:
        content = generate_lecture("02101", config)
    """
    builder = TemplateBuilder(course_id, config, today=today, package_root=package_root)
    if custom_title:
        builder = builder.with_title(custom_title)
    return builder.build()


def generate_assignment(
    course_id: str,
    title: str,
    config: Config,
    today: Optional[date] = None,
    package_root: Optional[Path] = None,
) -> str:
    """Generate assignment content; sections follow the course section rules."""
    builder = TemplateBuilder(
        course_id, config, doc_type=TemplateType.assignment(), today=today, package_root=package_root
    )
    return builder.with_title(title).build()


def generate_filename(
    course_id: str,
    doc_type: Union[str, TemplateType],
    custom_title: Optional[str] = None,
    today: Optional[date] = None,
    ext: str = "typ",
) -> str:
    """
    Filename for a document generated today.

    Example:
        generate_filename("02101", "lecture")  # "2026-10-19-02101-lecture.typ"
    """
    return _document_filename(iso_date(today or current_day()), course_id, doc_type, custom_title, ext)
