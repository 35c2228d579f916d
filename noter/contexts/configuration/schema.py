"""
Configuration schema for noter.

The persisted config record is the single source of truth for user settings.
Once loaded it is an immutable snapshot: every change builds a new Config
(see the with_* helpers) and is only persisted by an explicit save.

Schema history (template_version is the schema tag of the record):
- "0": records written before the tag existed
- "1": template_repositories values are "owner/repo" strings; semester_format
       is "YearSeason" / "SeasonYear" / "ShortForm" / {"Custom": pattern};
       no `templates` group; no note_preferences.auto_open_dir
- "2": current shape (this module)
"""

import os
import re
import sys
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from noter.contexts.configuration.semester import SemesterFormat
from noter.utils.timestamp import now_exact

CURRENT_SCHEMA_VERSION = "2"

OFFICIAL_REPOSITORY_ALIAS = "official"
OFFICIAL_REPOSITORY = "HollowNumber/dtu-note-template"
OFFICIAL_PACKAGE_NAME = "dtu-template"

DEFAULT_COURSES = {
    "01005": "Advanced Engineering Mathematics 1",
    "01006": "Advanced Engineering Mathematics 2",
    "01017": "Discrete Mathematics",
    "02101": "Introduction to Programming",
    "02102": "Algorithms and Data Structures",
    "25200": "Classical Physics 1",
    "22100": "Electronics 1",
}

DEFAULT_LECTURE_SECTIONS = [
    "Key Concepts",
    "Mathematical Framework",
    "Examples",
    "Important Points",
    "Questions & Follow-up",
    "Connections to Previous Material",
    "Next Class Preview",
]

DEFAULT_ASSIGNMENT_SECTIONS = ["Problem 1", "Problem 2", "Problem 3"]

_INVALID_COURSE_ID = re.compile(r"[\s/\\]")


def _data_local_dir() -> Path:
    """Per-OS local data directory (%LOCALAPPDATA%, Application Support, XDG)."""
    if sys.platform.startswith("win"):
        return Path(os.getenv("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def default_typst_packages_dir() -> str:
    return str(_data_local_dir() / "typst" / "packages" / "local")


def validate_course_id(course_id: str) -> str:
    """
    Validate a course id: non-empty, no whitespace, no path separators.

    Length is deliberately not constrained.

    Raises:
        ValueError: If the id is invalid
    """
    if not course_id:
        raise ValueError("Course id must not be empty")
    if _INVALID_COURSE_ID.search(course_id):
        raise ValueError(f"Course id '{course_id}' must not contain whitespace or path separators")
    return course_id


@dataclass(frozen=True)
class PathConfig:
    notes_dir: str = "notes"
    obsidian_dir: str = "obsidian-vault"
    templates_dir: str = "templates"
    typst_packages_dir: str = field(default_factory=default_typst_packages_dir)


@dataclass(frozen=True)
class TemplateRepository:
    """
    A template package source.

    Attributes:
        repository: GitHub "owner/repo" or URL
        package_name: Local Typst package name the repository installs as
        version: Version last recorded as installed (None if never recorded)
        branch: Branch to use instead of releases
        enabled: Whether this repository is used
    """

    repository: str = ""
    package_name: str = ""
    version: Optional[str] = None
    branch: Optional[str] = None
    enabled: bool = True


def package_name_for(repository: str) -> str:
    """Local package name a repository installs as: its last path segment."""
    if repository == OFFICIAL_REPOSITORY:
        return OFFICIAL_PACKAGE_NAME
    return repository.rstrip("/").rsplit("/", 1)[-1]


def default_repositories() -> Dict[str, TemplateRepository]:
    return {
        OFFICIAL_REPOSITORY_ALIAS: TemplateRepository(
            repository=OFFICIAL_REPOSITORY,
            package_name=OFFICIAL_PACKAGE_NAME,
        )
    }


@dataclass(frozen=True)
class TemplatePreferences:
    """
    Template selection policy.

    Attributes:
        default_repository: Repository alias used for courses without an explicit mapping
        course_repositories: course_id -> repository alias
        strict_course_lookup: Unknown course ids are an error instead of a warning
        strict_custom_fields: Custom fields the skeleton never uses are an error
        auto_update: Check for template updates when generating
    """

    default_repository: str = OFFICIAL_REPOSITORY_ALIAS
    course_repositories: Dict[str, str] = field(default_factory=dict)
    strict_course_lookup: bool = False
    strict_custom_fields: bool = False
    auto_update: bool = False


@dataclass(frozen=True)
class NotePreferences:
    auto_open_file: bool = True
    auto_open_dir: bool = False
    include_date_in_title: bool = True
    lecture_sections: List[str] = field(default_factory=lambda: list(DEFAULT_LECTURE_SECTIONS))
    assignment_sections: List[str] = field(
        default_factory=lambda: list(DEFAULT_ASSIGNMENT_SECTIONS)
    )
    create_backups: bool = False
    file_extension: str = "typ"

    def open_target(self, path: Path) -> Optional[Path]:
        """What to open after creating `path`: the file, its directory, or nothing."""
        if self.auto_open_file:
            return path
        if self.auto_open_dir:
            return path.parent
        return None


@dataclass(frozen=True)
class ObsidianIntegration:
    enabled: bool = True
    create_course_index: bool = True
    create_daily_notes: bool = False
    link_format: str = "wiki"
    tag_format: str = "#course/{{course_id}}"


@dataclass(frozen=True)
class TypstConfig:
    compile_args: List[str] = field(default_factory=list)
    watch_args: List[str] = field(default_factory=list)
    output_dir: Optional[str] = None
    clean_before_compile: bool = False


@dataclass(frozen=True)
class Metadata:
    """Bookkeeping written by noter itself, not meant for hand editing."""

    created_at: str = field(default_factory=now_exact)
    last_updated: str = field(default_factory=now_exact)
    migration_notes: str = ""
    reset_fields: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Config:
    """Versioned user configuration record."""

    template_version: str = CURRENT_SCHEMA_VERSION
    author: str = "Your Name"
    preferred_editor: Optional[str] = None
    semester_format: SemesterFormat = field(default_factory=SemesterFormat)
    paths: PathConfig = field(default_factory=PathConfig)
    courses: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COURSES))
    template_repositories: Dict[str, TemplateRepository] = field(
        default_factory=default_repositories
    )
    templates: TemplatePreferences = field(default_factory=TemplatePreferences)
    note_preferences: NotePreferences = field(default_factory=NotePreferences)
    obsidian_integration: ObsidianIntegration = field(default_factory=ObsidianIntegration)
    typst: TypstConfig = field(default_factory=TypstConfig)
    metadata: Metadata = field(default_factory=Metadata)

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict suitable for OmegaConf/YAML serialization."""
        return asdict(self)

    # Lookups

    def course_name(self, course_id: str) -> Optional[str]:
        """Mapped display name, or None if the course is not configured."""
        return self.courses.get(course_id)

    def list_courses(self) -> List[tuple]:
        """(course_id, name) pairs sorted by course id."""
        return sorted(self.courses.items())

    def repository_for(self, course_id: str) -> str:
        """Repository alias whose template package serves `course_id`."""
        return self.templates.course_repositories.get(
            course_id, self.templates.default_repository
        )

    def editor_list(self) -> List[str]:
        """Editors to try in order, preferred editor first, without duplicates."""
        editors = [self.preferred_editor] if self.preferred_editor else []
        if sys.platform.startswith("win"):
            editors += ["code", "notepad"]
        else:
            editors += ["code", "nvim", "vim", "nano"]
        return list(dict.fromkeys(editors))

    def validate(self) -> List[str]:
        """Non-fatal configuration warnings."""
        warnings = []

        if self.author == "Your Name":
            warnings.append("Author name is set to default value")

        for course_id in self.courses:
            try:
                validate_course_id(course_id)
            except ValueError as e:
                warnings.append(str(e))

        if self.templates.default_repository not in self.template_repositories:
            warnings.append(
                f"Default repository '{self.templates.default_repository}' is not configured"
            )

        if not Path(self.paths.templates_dir).exists():
            warnings.append(f"Template directory '{self.paths.templates_dir}' doesn't exist")

        return warnings

    # Structural updates (each returns a new Config)

    def with_author(self, author: str) -> "Config":
        return replace(self, author=author)

    def with_course(self, course_id: str, course_name: str) -> "Config":
        validate_course_id(course_id)
        return replace(self, courses={**self.courses, course_id: course_name})

    def without_course(self, course_id: str) -> "Config":
        return replace(self, courses={k: v for k, v in self.courses.items() if k != course_id})

    def with_course_repository(self, course_id: str, alias: str) -> "Config":
        """Serve `course_id` from repository `alias` instead of the default."""
        mapping = {**self.templates.course_repositories, course_id: alias}
        return replace(self, templates=replace(self.templates, course_repositories=mapping))

    def with_editor(self, editor: Optional[str]) -> "Config":
        return replace(self, preferred_editor=editor or None)

    def with_template_preferences(self, **changes: Any) -> "Config":
        """Copy with fields of the `templates` group replaced, e.g. auto_update=True."""
        return replace(self, templates=replace(self.templates, **changes))

    def with_repository(
        self,
        alias: str,
        repository: str,
        package_name: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> "Config":
        """
        Add a template repository under a new alias.

        Raises:
            ValueError: If the alias is empty or already configured
        """
        if not alias:
            raise ValueError("Repository alias must not be empty")
        if alias in self.template_repositories:
            raise ValueError(f"Template repository '{alias}' already exists")

        record = TemplateRepository(
            repository=repository,
            package_name=package_name or package_name_for(repository),
            branch=branch or None,
        )
        return replace(self, template_repositories={**self.template_repositories, alias: record})

    def without_repository(self, alias: str) -> "Config":
        """
        Remove a template repository and the course mappings that point at it.

        Raises:
            ValueError: If the alias is unknown or is the default repository
        """
        if alias not in self.template_repositories:
            raise ValueError(f"Template repository '{alias}' not found")
        if alias == self.templates.default_repository:
            raise ValueError(f"Template repository '{alias}' is the default and cannot be removed")

        repositories = {k: v for k, v in self.template_repositories.items() if k != alias}
        mapping = {k: v for k, v in self.templates.course_repositories.items() if v != alias}
        return replace(
            self,
            template_repositories=repositories,
            templates=replace(self.templates, course_repositories=mapping),
        )

    def with_repository_enabled(self, alias: str, enabled: bool) -> "Config":
        if alias not in self.template_repositories:
            raise ValueError(f"Template repository '{alias}' not found")
        repositories = dict(self.template_repositories)
        repositories[alias] = replace(repositories[alias], enabled=enabled)
        return replace(self, template_repositories=repositories)

    def with_recorded_version(self, alias: str, version: str) -> "Config":
        """Record `version` as the installed version for repository `alias`."""
        repositories = dict(self.template_repositories)
        current = repositories.get(alias, TemplateRepository(package_name=alias))
        repositories[alias] = replace(current, version=version)
        return replace(self, template_repositories=repositories)

    def touched(self) -> "Config":
        """Copy with metadata.last_updated set to now."""
        return replace(self, metadata=replace(self.metadata, last_updated=now_exact()))


def default_config() -> Config:
    return Config()
