"""
Fluent front-end for document generation.

Every with_* call returns a new builder, so partially configured builders
can be shared and extended without aliasing:

    base = TemplateBuilder("02101", config).with_type("assignment")
    first = base.with_title("Problem Set 1")
    second = base.with_title("Problem Set 2")   # base is unchanged

Terminal calls build the context, run the engine, and let any failure
from either surface unchanged (annotated with the step that failed).
"""

from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from noter.contexts.configuration.schema import Config
from noter.contexts.templating.context import (
    ContextOverrides,
    TemplateContext,
    TemplateType,
    build_context,
)
from noter.contexts.templating.engine import GeneratedDocument, TemplateEngine
from noter.contexts.templating.logger import log_generation_result, log_generation_start
from noter.utils.errors import attempting


@dataclass(frozen=True)
class TemplateBuilder:
    """
    Immutable generation request.

    Attributes:
        course_id: Course identifier
        config: Config snapshot
        doc_type: Document type (defaults to lecture)
        title: Title override
        sections: Sections override
        custom_fields: Extra tokens
        strict: Unknown course handling (None: use the config setting)
        today: Generation date (None: current date)
        package_root: Explicit local template package directory
    """

    course_id: str
    config: Config
    doc_type: TemplateType = field(default_factory=TemplateType.lecture)
    title: Optional[str] = None
    sections: Optional[Tuple[str, ...]] = None
    custom_fields: Dict[str, str] = field(default_factory=dict)
    strict: Optional[bool] = None
    today: Optional[date] = None
    package_root: Optional[Path] = None

    def with_title(self, title: str) -> "TemplateBuilder":
        return replace(self, title=title)

    def with_type(self, doc_type: Union[str, TemplateType]) -> "TemplateBuilder":
        return replace(self, doc_type=TemplateType.parse(doc_type))

    def with_sections(self, sections: Sequence[str]) -> "TemplateBuilder":
        return replace(self, sections=tuple(sections))

    def with_custom_field(self, name: str, value: str) -> "TemplateBuilder":
        return replace(self, custom_fields={**self.custom_fields, name: value})

    def with_strict(self, strict: bool = True) -> "TemplateBuilder":
        return replace(self, strict=strict)

    def with_date(self, today: date) -> "TemplateBuilder":
        return replace(self, today=today)

    def with_package_root(self, package_root: Path) -> "TemplateBuilder":
        return replace(self, package_root=Path(package_root))

    def overrides(self) -> ContextOverrides:
        return ContextOverrides(
            title=self.title,
            sections=self.sections,
            custom_fields=dict(self.custom_fields),
        )

    def context(self) -> TemplateContext:
        with attempting(f"building context for {self.course_id} {self.doc_type}"):
            return build_context(
                self.course_id,
                self.doc_type,
                self.config,
                overrides=self.overrides(),
                strict=self.strict,
                today=self.today,
                package_root=self.package_root,
            )

    def engine(self) -> TemplateEngine:
        return TemplateEngine(
            strict_fields=self.config.templates.strict_custom_fields,
            default_extension=self.config.note_preferences.file_extension,
        )

    def build_document(self, engine: Optional[TemplateEngine] = None) -> GeneratedDocument:
        """
        Generate the document.

        Raises:
            NoterError: Any failure from context building or rendering
        """
        log_generation_start(self.course_id, self.doc_type.name)
        context = self.context()
        engine = engine or self.engine()

        with attempting(f"rendering {self.doc_type}"):
            document = engine.generate(self.doc_type, context)

        log_generation_result(document, context)
        return document

    def build(self) -> str:
        return self.build_document().content

    def build_with_filename(self) -> Tuple[str, str]:
        document = self.build_document()
        return document.content, document.filename
