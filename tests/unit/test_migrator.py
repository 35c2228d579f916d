"""Unit tests for config schema migration."""

import copy

import pytest

from noter.contexts.configuration import migrator
from noter.contexts.configuration.exceptions import ConfigCorruptError
from noter.contexts.configuration.migrator import (
    FIELD_TRANSFORMS,
    FieldTransform,
    migrate,
    needs_migration,
    repositories_from_strings,
    schema_number,
    semester_format_from_enum,
    structure,
)
from noter.contexts.configuration.schema import (
    CURRENT_SCHEMA_VERSION,
    DEFAULT_LECTURE_SECTIONS,
    OFFICIAL_PACKAGE_NAME,
    OFFICIAL_REPOSITORY,
    default_config,
)
from noter.contexts.configuration.semester import SemesterFormat


def schema_one_record():
    """A config record as written by the schema 1 release."""
    return {
        "template_version": "1",
        "author": "Ada Lovelace",
        "preferred_editor": "nvim",
        "semester_format": "SeasonYear",
        "paths": {
            "notes_dir": "uni/notes",
            "obsidian_dir": "vault",
            "templates_dir": "templates",
            "typst_packages_dir": "/tmp/typst/packages/local",
        },
        "courses": {"02101": "Introduction to Programming", "01005": "Math 1"},
        "template_repositories": {
            "official": OFFICIAL_REPOSITORY,
            "mine": "ada/my-notes",
        },
        "note_preferences": {
            "auto_open_file": False,
            "include_date_in_title": False,
            "lecture_sections": ["Notes"],
            "assignment_sections": ["Task"],
            "create_backups": True,
            "file_extension": "typ",
        },
    }


@pytest.mark.unit
def test_schema_one_record_is_migrated():
    """Test that a schema 1 record keeps every user setting it can express."""
    report = structure(schema_one_record())
    config = report.config

    assert report.migrated
    assert report.from_version == "1"
    assert config.template_version == CURRENT_SCHEMA_VERSION

    assert config.author == "Ada Lovelace"
    assert config.preferred_editor == "nvim"
    assert config.paths.notes_dir == "uni/notes"
    assert config.courses == {"02101": "Introduction to Programming", "01005": "Math 1"}
    assert config.note_preferences.auto_open_file is False
    assert config.note_preferences.create_backups is True
    assert config.note_preferences.lecture_sections == ["Notes"]


@pytest.mark.unit
def test_new_nested_field_gets_default_without_disturbing_siblings():
    """Test that note_preferences.auto_open_dir is added and nothing else changes."""
    report = structure(schema_one_record())

    assert "note_preferences.auto_open_dir" in report.added
    assert report.config.note_preferences.auto_open_dir is False
    assert report.config.note_preferences.include_date_in_title is False


@pytest.mark.unit
def test_transforms_are_applied():
    """Test string repositories and the semester enum are converted."""
    report = structure(schema_one_record())
    config = report.config

    assert set(report.transformed) == {"template_repositories", "semester_format"}
    assert config.semester_format == SemesterFormat(style="season_year")

    official = config.template_repositories["official"]
    assert official.repository == OFFICIAL_REPOSITORY
    assert official.package_name == OFFICIAL_PACKAGE_NAME
    assert config.template_repositories["mine"].package_name == "my-notes"


@pytest.mark.unit
def test_custom_semester_enum_keeps_pattern():
    """Test that {"Custom": pattern} becomes a custom style with that pattern."""
    record = schema_one_record()
    record["semester_format"] = {"Custom": "{season} '{yy}"}

    config = migrate(record)

    assert config.semester_format.style == "custom"
    assert config.semester_format.pattern == "{season} '{yy}"


@pytest.mark.unit
def test_metadata_records_migration():
    """Test migration notes and timestamps in metadata."""
    config = migrate(schema_one_record())

    assert "Migrated from schema 1 to 2" in config.metadata.migration_notes
    assert config.metadata.last_updated


@pytest.mark.unit
def test_migration_is_idempotent():
    """Test that migrating an already migrated config is a no-op."""
    once = migrate(schema_one_record())
    twice = migrate(once)

    assert twice == once
    assert structure(once.to_dict()).config == once
    assert not structure(once.to_dict()).migrated


@pytest.mark.unit
def test_current_default_config_round_trips():
    """Test that a current record structures back into an equal Config."""
    config = default_config()
    report = structure(config.to_dict())

    assert report.config == config
    assert report.added == []
    assert report.reset == []


@pytest.mark.unit
def test_structure_does_not_modify_input():
    """Test that structuring is pure."""
    record = schema_one_record()
    original = copy.deepcopy(record)

    structure(record)

    assert record == original


@pytest.mark.unit
def test_invalid_value_is_reset_and_flagged():
    """Test that a value with no applicable conversion resets to the default."""
    record = schema_one_record()
    record["author"] = 42
    record["note_preferences"]["lecture_sections"] = "not a list"

    report = structure(record)

    assert report.config.author == "Your Name"
    assert report.config.note_preferences.lecture_sections == DEFAULT_LECTURE_SECTIONS
    assert report.config.note_preferences.create_backups is True
    assert "author" in report.reset
    assert "note_preferences.lecture_sections" in report.reset
    assert "author" in report.config.metadata.reset_fields


@pytest.mark.unit
@pytest.mark.parametrize("cutoff", ["July 1", "13-01", "02-30", "0701", ""])
def test_invalid_semester_cutoff_is_reset(cutoff):
    """Test that an unparseable cutoff falls back to the default and is flagged."""
    record = default_config().to_dict()
    record["semester_format"]["cutoff"] = cutoff

    report = structure(record)

    assert report.config.semester_format.cutoff == "07-01"
    assert report.reset == ["semester_format.cutoff"]
    assert report.config.metadata.reset_fields == ["semester_format.cutoff"]


@pytest.mark.unit
def test_unknown_semester_style_is_reset():
    """Test that a style name outside the known set is reset."""
    record = default_config().to_dict()
    record["semester_format"]["style"] = "quarter"

    report = structure(record)

    assert report.config.semester_format.style == "year_season"
    assert "semester_format.style" in report.reset


@pytest.mark.unit
def test_numeric_course_ids_are_kept():
    """Test that course ids read back as numbers keep every entry as a string key."""
    record = default_config().to_dict()
    record["courses"] = {1005: "Math One", "02101": "Programming"}

    report = structure(record)

    assert report.config.courses == {"1005": "Math One", "02101": "Programming"}
    assert report.reset == []


@pytest.mark.unit
def test_current_record_keeps_earlier_reset_fields():
    """Test that resets on a current record are appended to those already recorded."""
    record = default_config().to_dict()
    record["metadata"]["reset_fields"] = ["author"]
    record["typst"]["compile_args"] = "--root ."

    config = structure(record).config

    assert config.metadata.reset_fields == ["author", "typst.compile_args"]


@pytest.mark.unit
def test_nested_transform_sees_record_schema(monkeypatch):
    """Test that a transform on a nested field fires when migrating an old record."""
    path = "note_preferences.lecture_sections"
    monkeypatch.setitem(
        migrator._TRANSFORMS_BY_PATH,
        path,
        FieldTransform(path, 2, lambda value: [s.strip() for s in value.split(",")], "comma list"),
    )
    record = schema_one_record()
    record["note_preferences"]["lecture_sections"] = "Overview, Proofs"

    report = structure(record)

    assert report.config.note_preferences.lecture_sections == ["Overview", "Proofs"]
    assert path in report.transformed

    current = default_config().to_dict()
    current["note_preferences"]["lecture_sections"] = "Overview, Proofs"
    assert path in structure(current).reset


@pytest.mark.unit
def test_unknown_fields_are_dropped():
    """Test that keys the schema no longer has are reported and dropped."""
    record = schema_one_record()
    record["legacy_setting"] = True

    report = structure(record)

    assert "legacy_setting" in report.dropped


@pytest.mark.unit
def test_untagged_record_is_schema_zero():
    """Test records written before the schema tag existed."""
    report = structure({"author": "Ada"})

    assert report.from_version == "0"
    assert report.config.author == "Ada"
    assert report.config.template_version == CURRENT_SCHEMA_VERSION


@pytest.mark.unit
@pytest.mark.parametrize("tag,expected", [(None, 0), ("", 0), ("1", 1), ("1.0.0", 1), (2, 2)])
def test_schema_number(tag, expected):
    """Test schema tag parsing."""
    assert schema_number(tag) == expected


@pytest.mark.unit
@pytest.mark.parametrize("tag", ["3", "99.0", "banana"])
def test_unusable_schema_tag_is_corrupt(tag):
    """Test that newer or unreadable tags are fatal rather than guessed at."""
    with pytest.raises(ConfigCorruptError):
        structure({"template_version": tag, "author": "Ada"})


@pytest.mark.unit
def test_non_mapping_record_is_corrupt():
    """Test that a record that is not a mapping is rejected."""
    with pytest.raises(ConfigCorruptError):
        structure(["author", "Ada"])


@pytest.mark.unit
def test_needs_migration():
    """Test staleness detection for records and configs."""
    assert needs_migration({"template_version": "1"})
    assert needs_migration({})
    assert not needs_migration({"template_version": CURRENT_SCHEMA_VERSION})
    assert not needs_migration(default_config())


@pytest.mark.unit
def test_repositories_from_strings():
    """Test the repository transform directly."""
    converted = repositories_from_strings({"official": OFFICIAL_REPOSITORY})

    assert converted["official"]["package_name"] == OFFICIAL_PACKAGE_NAME
    assert converted["official"]["version"] is None
    assert repositories_from_strings("not a mapping") is None
    assert repositories_from_strings({"bad": 5}) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "value,expected",
    [
        ("YearSeason", {"style": "year_season"}),
        ("ShortForm", {"style": "short_form"}),
        ({"Custom": "{}"}, {"style": "custom", "pattern": "{}"}),
        ("Unknown", None),
        ({"Custom": 3}, None),
    ],
)
def test_semester_format_from_enum(value, expected):
    """Test the semester format transform directly."""
    assert semester_format_from_enum(value) == expected


@pytest.mark.unit
def test_every_transform_is_documented():
    """Test that every transform names the schema that introduced it."""
    for transform in FIELD_TRANSFORMS:
        assert transform.description
        assert 0 < transform.introduced_in <= int(CURRENT_SCHEMA_VERSION)
