"""
Templating Context

Responsibilities:
- Resolves the installed version of template packages
- Builds the substitution context for a document (course, date, semester, version)
- Selects sections by document type and course
- Renders Typst skeletons and computes filenames
- Installs template packages from GitHub

Owns: Version resolution, template context, skeletons, document generation
Never: Writes generated documents to disk or compiles them
"""

from noter.contexts.configuration.persistence import load_and_migrate_config
from noter.contexts.templating.builder import TemplateBuilder
from noter.contexts.templating.context import (
    ContextOverrides,
    TemplateContext,
    TemplateType,
    build_context,
)
from noter.contexts.templating.engine import GeneratedDocument, TemplateEngine
from noter.contexts.templating.generation import (
    generate_assignment,
    generate_filename,
    generate_lecture,
)
from noter.contexts.templating.version_resolver import (
    ResolvedVersion,
    record_installed_version,
    resolve_version,
)

__all__ = [
    # Outward generation API
    "generate_lecture",
    "generate_assignment",
    "generate_filename",
    "load_and_migrate_config",
    # Building blocks
    "TemplateBuilder",
    "TemplateEngine",
    "GeneratedDocument",
    "TemplateContext",
    "ContextOverrides",
    "TemplateType",
    "build_context",
    # Version resolution
    "ResolvedVersion",
    "resolve_version",
    "record_installed_version",
]
