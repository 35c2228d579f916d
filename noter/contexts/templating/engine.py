"""
Template Engine

Turns a TemplateContext into a Typst document and its filename.

Pipeline:
    1. Load the skeleton for the document type (package skeletons first)
    2. Choose the section set (explicit override, course section rules, defaults)
    3. Check required tokens and custom fields against the skeleton's tokens
    4. Substitute tokens; unknown tokens are left verbatim
    5. Append one "= <section>" block per section

Examples:
    >>> engine = TemplateEngine()
    >>> document = engine.generate("lecture", context)
    >>> document.filename
    '2026-10-19-02101-lecture.typ'
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union

from jinja2 import TemplateError

from noter.contexts.templating.context import TemplateContext, TemplateType
from noter.contexts.templating.exceptions import (
    MissingRequiredTokenError,
    TemplateRenderError,
    UnusedCustomFieldError,
)
from noter.contexts.templating.logger import _log_debug, _log_warning
from noter.contexts.templating.registries import SkeletonManifest, SkeletonRegistry
from noter.contexts.templating.section_rules import SECTION_RULES, SectionRule, find_rule

REQUIRED_TOKENS = (
    "course_id",
    "course_name",
    "title",
    "author",
    "date",
    "semester",
    "template_version",
    "package_name",
)

SLUG_MAX_LENGTH = 50

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class GeneratedDocument:
    """
    Attributes:
        content: Rendered Typst source
        filename: Computed filename (no directory)
        sections: Sections that were appended
        variant: How sections were chosen ("explicit", "default", or a course type)
    """

    content: str
    filename: str
    sections: Tuple[str, ...]
    variant: str


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """
    Lower-case, collapse non-alphanumeric runs to "-", and truncate.

    Examples:
        slugify("Problem Set 3: Graphs!")  # "problem-set-3-graphs"
    """
    slug = _SLUG_SEPARATORS.sub("-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def generate_filename(
    date: str,
    course_id: str,
    doc_type: Union[str, TemplateType],
    title: Optional[str] = None,
    ext: str = "typ",
) -> str:
    """
    Deterministic filename: {date}-{course_id}-{doc_type}[-{slug}].{ext}

    Collisions are not handled here; the file writer decides what to do
    with an existing path.
    """
    parts = [date, course_id, str(TemplateType.parse(doc_type))]
    slug = slugify(title) if title else ""
    if slug:
        parts.append(slug)
    return f"{'-'.join(parts)}.{ext.lstrip('.')}"


def render_sections(sections: Sequence[str]) -> str:
    return "".join(f"= {section}\n\n" for section in sections)


class TemplateEngine:
    """
    Renders documents from skeletons.

    Args:
        registry: Skeleton registry to use for every document. When None, a
                  registry is chosen per document from its package directory.
        rules: Course section rules for assignment-like types
        strict_fields: Custom fields the skeleton never uses are an error
        default_extension: Extension for skeletons whose manifest sets none
    """

    def __init__(
        self,
        registry: Optional[SkeletonRegistry] = None,
        rules: Sequence[SectionRule] = SECTION_RULES,
        strict_fields: bool = False,
        default_extension: str = "typ",
    ):
        self.registry = registry
        self.rules = tuple(rules)
        self.strict_fields = strict_fields
        self.default_extension = default_extension
        self._package_registries: Dict[object, SkeletonRegistry] = {}

    def registry_for(self, context: TemplateContext) -> SkeletonRegistry:
        if self.registry is not None:
            return self.registry

        key = context.package_dir
        if key not in self._package_registries:
            self._package_registries[key] = SkeletonRegistry.for_package(context.package_dir)
        return self._package_registries[key]

    def select_sections(
        self, manifest: SkeletonManifest, context: TemplateContext
    ) -> Tuple[Tuple[str, ...], str]:
        """
        Choose the sections for a document.

        Returns:
            Tuple of (sections, variant)
        """
        if context.explicit_sections:
            return tuple(context.sections), "explicit"

        if manifest.assignment_like:
            rule = find_rule(context.course_id, self.rules)
            if rule is not None:
                return rule.sections, rule.course_type

        if context.sections:
            return tuple(context.sections), "default"

        return manifest.default_sections, "default"

    def _token_values(
        self, type_name: str, manifest: SkeletonManifest, declared: set, context: TemplateContext
    ) -> Dict[str, str]:
        values = {name: "" for name in manifest.custom_fields}

        for name, value in context.custom_fields.items():
            values[name] = "" if value is None else str(value)

        builtins = context.builtin_tokens()
        shadowed = sorted(set(context.custom_fields) & set(builtins))
        if shadowed:
            _log_warning(f"Custom field(s) {', '.join(shadowed)} ignored: built-in tokens take precedence")
        values.update(builtins)

        unused = sorted(set(context.custom_fields) - declared - set(builtins))
        if unused:
            if self.strict_fields:
                raise UnusedCustomFieldError(unused, type_name)
            _log_debug(f"Unused custom field(s) for {type_name}: {', '.join(unused)}")

        return values

    def _check_required(
        self,
        type_name: str,
        manifest: SkeletonManifest,
        declared: set,
        values: Dict[str, str],
        registry: SkeletonRegistry,
    ) -> None:
        required = [t for t in REQUIRED_TOKENS if t in declared]
        required += [t for t in manifest.required_tokens if t not in required]

        for token in required:
            if not str(values.get(token, "")).strip():
                raise MissingRequiredTokenError(token, type_name, registry.get_template_path(type_name))

    def render(
        self, doc_type: Union[str, TemplateType], context: TemplateContext
    ) -> Tuple[str, Tuple[str, ...], str, SkeletonManifest]:
        """
        Render content without computing a filename.

        Returns:
            Tuple of (content, sections, variant, manifest)

        Raises:
            UnknownTemplateTypeError: No skeleton for the document type
            MissingRequiredTokenError: A required token used by the skeleton is empty
            UnusedCustomFieldError: Strict field mode and a custom field is unused
            TemplateRenderError: The skeleton fails to render
        """
        type_name = TemplateType.parse(doc_type).name
        registry = self.registry_for(context)

        registry.get_template(type_name)
        manifest = registry.get_manifest(type_name)
        declared = registry.declared_tokens(type_name)

        sections, variant = self.select_sections(manifest, context)
        values = self._token_values(type_name, manifest, declared, context)
        values["sections"] = list(sections)
        self._check_required(type_name, manifest, declared, values, registry)

        unknown = declared - set(values)
        if unknown:
            _log_debug(f"Leaving unknown token(s) verbatim in {type_name}: {', '.join(sorted(unknown))}")
        template = registry.get_template(type_name, verbatim=unknown)

        try:
            body = template.render(**values)
        except TemplateError as e:
            raise TemplateRenderError(
                "Failed to render skeleton",
                type_name=type_name,
                template_path=registry.get_template_path(type_name),
                original_error=e,
            ) from e

        if not body.endswith("\n"):
            body += "\n"
        if sections:
            body += "\n" + render_sections(sections)

        return body, sections, variant, manifest

    def generate(self, doc_type: Union[str, TemplateType], context: TemplateContext) -> GeneratedDocument:
        """
        Render a document and compute its filename.

        The title slug is only added for titles the caller supplied, so
        default lecture titles keep the plain {date}-{course}-lecture name.
        """
        content, sections, variant, manifest = self.render(doc_type, context)
        filename = generate_filename(
            context.date,
            context.course_id,
            doc_type,
            title=context.title if context.explicit_title else None,
            ext=manifest.extension or self.default_extension,
        )
        return GeneratedDocument(content=content, filename=filename, sections=sections, variant=variant)
