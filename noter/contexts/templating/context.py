"""
Template Context

Assembles the substitution variables for one generation call from the
config and the caller's overrides.

A TemplateContext is built fresh per call and never persisted or shared.
Its template_version is always the resolved installed package version:
if no version can be resolved, building fails instead of guessing.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from noter.contexts.configuration.schema import Config, validate_course_id
from noter.contexts.configuration.semester import semester_for
from noter.contexts.templating.exceptions import UnknownCourseError, UnknownTemplateTypeError
from noter.contexts.templating.logger import _log_warning, log_version_resolved
from noter.contexts.templating.section_rules import course_type_for
from noter.contexts.templating.version_resolver import resolve
from noter.utils.errors import NoterError, attempting
from noter.utils.timestamp import iso_date, long_date
from noter.utils.timestamp import today as current_day

LECTURE = "lecture"
ASSIGNMENT = "assignment"

_TYPE_NAME = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


@dataclass(frozen=True)
class TemplateType:
    """
    Document type tag: lecture, assignment, or a custom named type.

    Examples:
        TemplateType.lecture().name        # "lecture"
        TemplateType.parse("Lab-Report")   # TemplateType(name="lab-report")
    """

    name: str

    @classmethod
    def lecture(cls) -> "TemplateType":
        return cls(LECTURE)

    @classmethod
    def assignment(cls) -> "TemplateType":
        return cls(ASSIGNMENT)

    @classmethod
    def custom(cls, name: str) -> "TemplateType":
        return cls.parse(name)

    @classmethod
    def parse(cls, text: Union[str, "TemplateType"]) -> "TemplateType":
        """
        Normalize a document type name.

        Raises:
            UnknownTemplateTypeError: If the name is empty or not a valid directory name
        """
        if isinstance(text, TemplateType):
            return text

        name = text.strip().lower().replace(" ", "-")
        if not _TYPE_NAME.match(name):
            raise UnknownTemplateTypeError(text)
        return cls(name)

    @property
    def is_lecture(self) -> bool:
        return self.name == LECTURE

    @property
    def is_assignment(self) -> bool:
        return self.name == ASSIGNMENT

    @property
    def is_custom(self) -> bool:
        return self.name not in (LECTURE, ASSIGNMENT)

    @property
    def display_name(self) -> str:
        return self.name.replace("-", " ").replace("_", " ").title()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ContextOverrides:
    """Caller-supplied values that always win over computed defaults."""

    title: Optional[str] = None
    sections: Optional[Sequence[str]] = None
    custom_fields: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TemplateContext:
    """
    Substitution variables for one document.

    Attributes:
        course_id: Course identifier (e.g., "02101")
        course_name: Configured display name, or the course id when unmapped
        title: Document title
        author: Author from the config
        date: Generation date as YYYY-MM-DD
        semester: Semester string for the date
        template_version: Resolved installed template package version
        package_name: Typst package name
        sections: Section names, in order
        custom_fields: Extra tokens supplied by the caller
        explicit_title: The title came from an override
        explicit_sections: The sections came from an override
        course_type: Informational tag from the course section rules
        package_dir: Installed package directory, if known
    """

    course_id: str
    course_name: str
    title: str
    author: str
    date: str
    semester: str
    template_version: str
    package_name: str
    sections: Tuple[str, ...] = ()
    custom_fields: Dict[str, str] = field(default_factory=dict)
    explicit_title: bool = False
    explicit_sections: bool = False
    course_type: str = "general"
    package_dir: Optional[Path] = None

    def builtin_tokens(self) -> Dict[str, str]:
        """Built-in token values, including year/month/day derived from date."""
        year, month, day = self.date.split("-")
        return {
            "course_id": self.course_id,
            "course_name": self.course_name,
            "title": self.title,
            "author": self.author,
            "date": self.date,
            "semester": self.semester,
            "template_version": self.template_version,
            "package_name": self.package_name,
            "year": str(int(year)),
            "month": str(int(month)),
            "day": str(int(day)),
        }


def resolve_course_name(course_id: str, config: Config, strict: bool) -> str:
    """
    Configured name for a course, or the course id itself.

    Raises:
        UnknownCourseError: If strict and the course is not configured
    """
    name = config.course_name(course_id)
    if name is not None:
        return name

    if strict:
        raise UnknownCourseError(course_id)

    _log_warning(f"Course '{course_id}' is not configured, using the course id as its name")
    return course_id


def default_title(doc_type: TemplateType, config: Config, day: date) -> str:
    if doc_type.is_lecture:
        if config.note_preferences.include_date_in_title:
            return f"Lecture - {long_date(day)}"
        return "Lecture Notes"
    if doc_type.is_assignment:
        return ""
    return doc_type.display_name


def default_sections(doc_type: TemplateType, config: Config) -> Tuple[str, ...]:
    if doc_type.is_lecture:
        return tuple(config.note_preferences.lecture_sections)
    if doc_type.is_assignment:
        return tuple(config.note_preferences.assignment_sections)
    return ()


def build_context(
    course_id: str,
    doc_type: Union[str, TemplateType],
    config: Config,
    overrides: Optional[ContextOverrides] = None,
    strict: Optional[bool] = None,
    today: Optional[date] = None,
    package_root: Optional[Path] = None,
) -> TemplateContext:
    """
    Build the substitution context for one document.

    Args:
        course_id: Course identifier
        doc_type: Document type name or TemplateType
        config: Loaded config snapshot
        overrides: Title/sections/custom fields that replace computed defaults
        strict: Unknown courses are an error (defaults to
                config.templates.strict_course_lookup)
        today: Generation date (defaults to the current date)
        package_root: Explicit local template package directory

    Returns:
        TemplateContext

    Raises:
        UnknownCourseError: Strict mode and the course is not configured
        VersionNotFoundError: No installed template version could be resolved
        ManifestCorruptError: The package manifest is unreadable
    """
    doc_type = TemplateType.parse(doc_type)
    overrides = overrides or ContextOverrides()

    try:
        validate_course_id(course_id)
    except ValueError as e:
        raise NoterError(str(e), field="course_id") from e

    if strict is None:
        strict = config.templates.strict_course_lookup

    course_name = resolve_course_name(course_id, config, strict)

    day = today or current_day()
    try:
        semester = semester_for(day, config.semester_format)
    except ValueError as e:
        raise NoterError(
            f"Invalid semester cutoff '{config.semester_format.cutoff}' (expected MM-DD)",
            field="semester_format.cutoff",
        ) from e

    with attempting("resolving template version"):
        resolved = resolve(config.repository_for(course_id), config, package_root)
    log_version_resolved(resolved)

    title = overrides.title if overrides.title is not None else default_title(doc_type, config, day)
    if overrides.sections is not None:
        sections = tuple(overrides.sections)
    else:
        sections = default_sections(doc_type, config)

    return TemplateContext(
        course_id=course_id,
        course_name=course_name,
        title=title,
        author=config.author,
        date=iso_date(day),
        semester=semester,
        template_version=resolved.version,
        package_name=resolved.package_name,
        sections=sections,
        custom_fields=dict(overrides.custom_fields),
        explicit_title=overrides.title is not None,
        explicit_sections=overrides.sections is not None,
        course_type=course_type_for(course_id),
        package_dir=resolved.package_dir,
    )
