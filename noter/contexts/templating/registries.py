"""
Templating Registries

Loads and caches document skeletons (Jinja2 templates) and their manifests.

Each document type is a directory holding:
- template.typ.jinja: the Typst skeleton
- skeleton.yaml: manifest (extension, assignment_like, custom_fields,
  required_tokens, default_sections)

An installed template package may ship its own skeletons/ directory; it is
searched before the built-in skeletons, so a package can override or add
document types.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from dotenv import load_dotenv
from jinja2 import (
    Environment,
    FileSystemLoader,
    Template,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    meta,
)
from omegaconf import OmegaConf

from noter.contexts.templating.exceptions import TemplateRenderError, UnknownTemplateTypeError

load_dotenv()
SKELETONS_PATH = Path(os.getenv("NOTER_SKELETONS_PATH", Path(__file__).parent / "skeletons"))

TEMPLATE_FILENAME = "template.typ.jinja"
MANIFEST_FILENAME = "skeleton.yaml"
PACKAGE_SKELETONS_DIR = "skeletons"

_TOKEN = re.compile(r"<<<(.*?)>>>", re.DOTALL)
_TOKEN_ROOT = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)")


class VerbatimUndefined(Undefined):
    """
    Renders an unknown token back as its own source text.

    Skeletons may contain markup that looks like a token but is not one;
    it must survive rendering unchanged.
    """

    __slots__ = ()

    def __str__(self) -> str:
        return f"<<< {self._undefined_name} >>>"


def protect_tokens(source: str, names: Iterable[str]) -> str:
    """
    Wrap every <<< token >>> whose root name is in `names` in a raw block.

    The token then renders exactly as written, including dotted access,
    filters and spacing.

    Examples:
        protect_tokens("<<<page.number>>>", {"page"})
        # "<%% raw %%><<<page.number>>><%% endraw %%>"
    """
    names = set(names)

    def keep(match: re.Match) -> str:
        root = _TOKEN_ROOT.match(match.group(1))
        if root is None or root.group(1) not in names:
            return match.group(0)
        return f"<%% raw %%>{match.group(0)}<%% endraw %%>"

    return _TOKEN.sub(keep, source)


@dataclass(frozen=True)
class SkeletonManifest:
    """
    Attributes:
        extension: Output file extension without dot (None: the engine default)
        assignment_like: Sections are specialized by the course section rules
        custom_fields: Custom field tokens the skeleton uses (absent ones render empty)
        required_tokens: Extra tokens that must be non-empty
        default_sections: Sections used when neither context nor rules supply any
        description: Human-readable description
    """

    extension: Optional[str] = None
    assignment_like: bool = False
    custom_fields: Tuple[str, ...] = ()
    required_tokens: Tuple[str, ...] = ()
    default_sections: Tuple[str, ...] = ()
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "SkeletonManifest":
        return cls(
            extension=str(data["extension"]).lstrip(".") if data.get("extension") else None,
            assignment_like=bool(data.get("assignment_like", False)),
            custom_fields=tuple(data.get("custom_fields") or ()),
            required_tokens=tuple(data.get("required_tokens") or ()),
            default_sections=tuple(data.get("default_sections") or ()),
            description=str(data.get("description") or ""),
        )


def package_skeletons_dir(package_dir: Optional[Path]) -> Optional[Path]:
    """skeletons/ directory inside an installed package, if it has one."""
    if package_dir is None:
        return None
    candidate = Path(package_dir) / PACKAGE_SKELETONS_DIR
    return candidate if candidate.is_dir() else None


class SkeletonRegistry:
    """
    Registry for loading and caching document skeletons.

    Skeletons use custom delimiters so Typst syntax passes through untouched:
    - Variable: <<< var >>>
    - Block: <%% block %%>
    - Comment: <## comment ##>
    """

    def __init__(self, search_paths: Sequence[Path] = None):
        """
        Initialize the skeleton registry.

        Args:
            search_paths: Directories searched in order for <doc_type>/ skeletons.
                          Defaults to the built-in skeletons (NOTER_SKELETONS_PATH)
        """
        if search_paths is None:
            search_paths = [SKELETONS_PATH]

        self.search_paths: List[Path] = [Path(p) for p in search_paths]
        self._cache: Dict[str, Template] = {}
        self._protected: Dict[Tuple[str, FrozenSet[str]], Template] = {}
        self._manifests: Dict[str, SkeletonManifest] = {}

        self.env = Environment(
            loader=FileSystemLoader([str(p) for p in self.search_paths]),
            undefined=VerbatimUndefined,
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<##",
            comment_end_string="##>",
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=True,
            autoescape=False,
        )

    @classmethod
    def for_package(cls, package_dir: Optional[Path]) -> "SkeletonRegistry":
        """Registry that prefers a package's own skeletons over the built-in ones."""
        package_dir = package_skeletons_dir(package_dir)
        if package_dir is None:
            return cls()
        return cls([package_dir, SKELETONS_PATH])

    def available_types(self) -> List[str]:
        """Document types with a skeleton in any search path, sorted."""
        names: Set[str] = set()
        for base in self.search_paths:
            if not base.is_dir():
                continue
            for child in base.iterdir():
                if (child / TEMPLATE_FILENAME).is_file():
                    names.add(child.name)
        return sorted(names)

    def get_template_path(self, type_name: str) -> Optional[Path]:
        """
        Path of the skeleton that would be loaded for a type.

        Returns:
            Path to template file, or None if no search path has one
        """
        for base in self.search_paths:
            candidate = base / type_name / TEMPLATE_FILENAME
            if candidate.is_file():
                return candidate
        return None

    def get_template(self, type_name: str, verbatim: Iterable[str] = ()) -> Template:
        """
        Get a skeleton by document type, loading and caching it if necessary.

        Args:
            type_name: Document type
            verbatim: Token names to keep as written instead of substituting

        Raises:
            UnknownTemplateTypeError: If no skeleton exists for the type
            TemplateRenderError: If the skeleton has Jinja2 syntax errors
        """
        verbatim = frozenset(verbatim)
        if verbatim:
            return self._get_protected(type_name, verbatim)

        if type_name in self._cache:
            return self._cache[type_name]

        try:
            template = self.env.get_template(f"{type_name}/{TEMPLATE_FILENAME}")
        except TemplateNotFound as e:
            raise UnknownTemplateTypeError(type_name, self.available_types()) from e
        except TemplateSyntaxError as e:
            raise self._syntax_error(type_name, e) from e

        self._cache[type_name] = template
        return template

    def _get_protected(self, type_name: str, verbatim: FrozenSet[str]) -> Template:
        key = (type_name, verbatim)
        if key not in self._protected:
            source = protect_tokens(self.get_template_source(type_name), verbatim)
            try:
                self._protected[key] = self.env.from_string(source)
            except TemplateSyntaxError as e:
                raise self._syntax_error(type_name, e) from e
        return self._protected[key]

    def _syntax_error(self, type_name: str, error: TemplateSyntaxError) -> TemplateRenderError:
        return TemplateRenderError(
            "Skeleton has invalid syntax",
            type_name=type_name,
            template_path=self.get_template_path(type_name),
            original_error=error,
        )

    def get_manifest(self, type_name: str) -> SkeletonManifest:
        """
        Load the skeleton.yaml that sits next to the type's template.

        A skeleton without a manifest gets the default manifest.
        """
        if type_name in self._manifests:
            return self._manifests[type_name]

        template_path = self.get_template_path(type_name)
        if template_path is None:
            raise UnknownTemplateTypeError(type_name, self.available_types())

        manifest_path = template_path.parent / MANIFEST_FILENAME
        if manifest_path.is_file():
            data = OmegaConf.to_container(OmegaConf.load(manifest_path), resolve=True)
            manifest = SkeletonManifest.from_dict(data or {})
        else:
            manifest = SkeletonManifest()

        self._manifests[type_name] = manifest
        return manifest

    def get_template_source(self, type_name: str) -> str:
        """
        Get the raw skeleton source for a type.

        Raises:
            UnknownTemplateTypeError: If no skeleton exists for the type
        """
        try:
            source, _, _ = self.env.loader.get_source(self.env, f"{type_name}/{TEMPLATE_FILENAME}")
        except TemplateNotFound as e:
            raise UnknownTemplateTypeError(type_name, self.available_types()) from e
        return source

    def declared_tokens(self, type_name: str) -> Set[str]:
        """
        Token names the skeleton reads from its render context.

        Example:
            registry.declared_tokens("lecture")
            # {"course_id", "course_name", "title", ...}
        """
        source = self.get_template_source(type_name)
        try:
            ast = self.env.parse(source)
        except TemplateSyntaxError as e:
            raise self._syntax_error(type_name, e) from e
        return meta.find_undeclared_variables(ast)

    def clear_cache(self):
        """Clear the template and manifest caches."""
        self._cache.clear()
        self._protected.clear()
        self._manifests.clear()

    def is_cached(self, type_name: str) -> bool:
        return type_name in self._cache
