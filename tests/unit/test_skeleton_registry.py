"""Unit tests for SkeletonRegistry."""

from pathlib import Path

import pytest

from noter.contexts.templating.exceptions import TemplateRenderError, UnknownTemplateTypeError
from noter.contexts.templating.registries import SkeletonManifest, SkeletonRegistry, protect_tokens


def write_skeleton(base: Path, type_name: str, template: str, manifest: str = None) -> Path:
    directory = base / type_name
    directory.mkdir(parents=True)
    (directory / "template.typ.jinja").write_text(template)
    if manifest is not None:
        (directory / "skeleton.yaml").write_text(manifest)
    return directory


@pytest.mark.unit
def test_builtin_skeletons_available():
    """Test the skeletons shipped with noter."""
    registry = SkeletonRegistry()
    assert {"lecture", "assignment", "lab-report"} <= set(registry.available_types())


@pytest.mark.unit
def test_template_caching():
    """Test that skeletons are cached after first load."""
    registry = SkeletonRegistry()

    template1 = registry.get_template("lecture")
    assert registry.is_cached("lecture")

    template2 = registry.get_template("lecture")
    assert template1 is template2


@pytest.mark.unit
def test_clear_cache():
    """Test cache clearing."""
    registry = SkeletonRegistry()
    registry.get_template("lecture")

    registry.clear_cache()

    assert not registry.is_cached("lecture")


@pytest.mark.unit
def test_unknown_type():
    """Test error handling for a missing skeleton."""
    registry = SkeletonRegistry()

    with pytest.raises(UnknownTemplateTypeError) as exc_info:
        registry.get_template("poster")

    assert "lecture" in exc_info.value.available


@pytest.mark.unit
def test_get_template_path():
    """Test getting the skeleton file path."""
    path = SkeletonRegistry().get_template_path("assignment")

    assert isinstance(path, Path)
    assert path.name == "template.typ.jinja"
    assert path.parent.name == "assignment"
    assert SkeletonRegistry().get_template_path("poster") is None


@pytest.mark.unit
def test_builtin_manifests():
    """Test manifests of the shipped skeletons."""
    registry = SkeletonRegistry()

    assignment = registry.get_manifest("assignment")
    assert assignment.assignment_like
    assert "due_date" in assignment.custom_fields

    assert not registry.get_manifest("lecture").assignment_like


@pytest.mark.unit
def test_missing_manifest_gives_defaults(tmp_path):
    """Test that a skeleton without skeleton.yaml gets the default manifest."""
    write_skeleton(tmp_path, "memo", "<<< title >>>\n")
    registry = SkeletonRegistry([tmp_path])

    assert registry.get_manifest("memo") == SkeletonManifest()


@pytest.mark.unit
def test_declared_tokens():
    """Test token discovery from the skeleton source."""
    tokens = SkeletonRegistry().declared_tokens("lecture")

    assert {"course_id", "course_name", "title", "template_version", "package_name"} <= tokens


@pytest.mark.unit
def test_unknown_tokens_render_verbatim(tmp_path):
    """Test that tokens with no value survive rendering unchanged."""
    write_skeleton(tmp_path, "memo", "<<< title >>> / <<< mystery >>>\n")
    template = SkeletonRegistry([tmp_path]).get_template("memo")

    assert template.render(title="Hello") == "Hello / <<< mystery >>>\n"


@pytest.mark.unit
def test_typst_syntax_passes_through(tmp_path):
    """Test that Typst braces and hashes are not treated as template syntax."""
    source = "#let f(x) = { x + 1 }\n{{ not jinja }} {% neither %}\n"
    write_skeleton(tmp_path, "memo", source)

    assert SkeletonRegistry([tmp_path]).get_template("memo").render() == source


@pytest.mark.unit
def test_syntax_error_is_reported(tmp_path):
    """Test that broken skeletons raise TemplateRenderError."""
    write_skeleton(tmp_path, "broken", "<%% if title %%>unterminated\n")

    with pytest.raises(TemplateRenderError):
        SkeletonRegistry([tmp_path]).get_template("broken")


@pytest.mark.unit
def test_package_skeletons_take_precedence(tmp_path):
    """Test that a package's own skeletons override the built-in ones."""
    package_dir = tmp_path / "dtu-template" / "1.2.0"
    write_skeleton(package_dir / "skeletons", "lecture", "custom lecture\n")
    write_skeleton(package_dir / "skeletons", "seminar", "seminar\n")

    registry = SkeletonRegistry.for_package(package_dir)

    assert registry.get_template("lecture").render() == "custom lecture\n"
    assert "seminar" in registry.available_types()
    assert "assignment" in registry.available_types()


@pytest.mark.unit
def test_package_without_skeletons_uses_builtins(tmp_path):
    """Test the fallback to built-in skeletons."""
    registry = SkeletonRegistry.for_package(tmp_path)
    assert registry.search_paths == SkeletonRegistry().search_paths


@pytest.mark.unit
def test_protect_tokens_wraps_only_named_roots():
    """Test that only tokens rooted at the given names are wrapped in raw blocks."""
    source = "<<<page.number>>> <<< title >>> <<< page | upper >>>"

    protected = protect_tokens(source, {"page"})

    assert protected == (
        "<%% raw %%><<<page.number>>><%% endraw %%> <<< title >>> "
        "<%% raw %%><<< page | upper >>><%% endraw %%>"
    )
    assert protect_tokens(source, ()) == source


@pytest.mark.unit
def test_verbatim_template_renders_tokens_as_written(tmp_path):
    """Test a protected template next to the cached plain one."""
    write_skeleton(tmp_path, "memo", "<<<page.number>>> <<< title >>>\n")
    registry = SkeletonRegistry([tmp_path])

    protected = registry.get_template("memo", verbatim={"page"})

    assert protected.render(title="Notes") == "<<<page.number>>> Notes\n"
    assert registry.get_template("memo", verbatim={"page"}) is protected
    assert not registry.is_cached("memo")
