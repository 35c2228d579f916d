"""Unit tests for dotted-key config access."""

import pytest

from noter.contexts.configuration.exceptions import ConfigKeyError
from noter.contexts.configuration.schema import default_config
from noter.contexts.configuration.settings import config_keys, get_value, with_value


@pytest.mark.unit
def test_config_keys_list_leaves_without_managed_fields():
    """Test that keys reach nested leaves and skip noter's own bookkeeping."""
    keys = config_keys(default_config())

    assert "author" in keys
    assert "templates.auto_update" in keys
    assert "template_repositories.official.branch" in keys
    assert "templates.course_repositories" in keys
    assert "template_version" not in keys
    assert not [key for key in keys if key.startswith("metadata")]


@pytest.mark.unit
def test_get_value():
    """Test reading scalar and nested values."""
    config = default_config()

    assert get_value(config, "author") == "Your Name"
    assert get_value(config, "courses.02101") == "Introduction to Programming"
    assert get_value(config, "semester_format")["cutoff"] == "07-01"


@pytest.mark.unit
@pytest.mark.parametrize("key", ["nope", "templates.nope", "author.first", "courses.99999"])
def test_get_unknown_key(key):
    """Test that unknown keys name themselves in the error."""
    with pytest.raises(ConfigKeyError) as exc_info:
        get_value(default_config(), key)

    assert exc_info.value.field == key


@pytest.mark.unit
@pytest.mark.parametrize("text,expected", [("true", True), ("Yes", True), ("off", False), ("0", False)])
def test_set_boolean(text, expected):
    """Test boolean words for boolean keys."""
    config = with_value(default_config(), "note_preferences.auto_open_dir", text)
    assert config.note_preferences.auto_open_dir is expected


@pytest.mark.unit
def test_set_string_and_list():
    """Test string values and YAML flow lists."""
    config = with_value(default_config(), "author", "Ada Lovelace")
    config = with_value(config, "note_preferences.lecture_sections", "[Summary, Notes]")

    assert config.author == "Ada Lovelace"
    assert config.note_preferences.lecture_sections == ["Summary", "Notes"]


@pytest.mark.unit
def test_set_mapping_keeps_course_id_digits():
    """Test that course ids in a mapping value keep their leading zeros."""
    config = with_value(default_config(), "courses", "{01005: Advanced Engineering Mathematics 1}")
    assert config.courses == {"01005": "Advanced Engineering Mathematics 1"}


@pytest.mark.unit
def test_set_optional_value():
    """Test setting a value that is currently unset."""
    config = with_value(default_config(), "preferred_editor", "nvim")
    assert config.preferred_editor == "nvim"


@pytest.mark.unit
@pytest.mark.parametrize(
    "key,text",
    [
        ("templates.auto_update", "maybe"),
        ("note_preferences.lecture_sections", "Summary"),
        ("note_preferences.lecture_sections", "[1, 2]"),
        ("semester_format.cutoff", "July 1"),
        ("semester_format.style", "quarterly"),
    ],
)
def test_set_rejects_unusable_values(key, text):
    """Test that a value the record cannot hold is an error, not a silent reset."""
    config = default_config()

    with pytest.raises(ConfigKeyError) as exc_info:
        with_value(config, key, text)

    assert exc_info.value.field == key


@pytest.mark.unit
@pytest.mark.parametrize("key", ["template_version", "metadata.created_at", "metadata"])
def test_set_rejects_managed_keys(key):
    """Test that bookkeeping written by noter cannot be set by hand."""
    with pytest.raises(ConfigKeyError, match="managed by noter"):
        with_value(default_config(), key, "x")


@pytest.mark.unit
def test_set_leaves_original_untouched():
    """Test that setting a value builds a new Config."""
    config = default_config()
    updated = with_value(config, "templates.strict_course_lookup", "true")

    assert updated.templates.strict_course_lookup
    assert not config.templates.strict_course_lookup
    assert updated.metadata.reset_fields == []


@pytest.mark.unit
def test_set_group_rejects_unknown_fields():
    """Test that a group value with an unknown field is not silently trimmed."""
    with pytest.raises(ConfigKeyError, match="semester_format.cutof"):
        with_value(default_config(), "semester_format", "{style: short_form, cutof: 08-01}")

    config = with_value(default_config(), "semester_format", "{style: short_form, cutoff: 08-01}")
    assert config.semester_format.style == "short_form"
    assert config.semester_format.cutoff == "08-01"
