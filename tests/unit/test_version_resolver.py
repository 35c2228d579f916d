"""Unit tests for template package version resolution."""

from dataclasses import replace

import pytest

from noter.contexts.templating.exceptions import ManifestCorruptError, VersionNotFoundError
from noter.contexts.templating.version_resolver import (
    record_installed_version,
    resolve,
    resolve_version,
    version_key,
)


def with_recorded(config, version):
    return config.with_recorded_version("official", version)


@pytest.mark.unit
def test_version_from_root_manifest(empty_config, packages_dir):
    """Test that a typst.toml at the package root wins."""
    root = packages_dir / "dtu-template"
    root.mkdir()
    (root / "typst.toml").write_text('[package]\nname = "dtu-template"\nversion = "2.1.0"\n')
    (root / "0.9.0").mkdir()

    resolved = resolve("official", with_recorded(empty_config, "0.1.0"))

    assert resolved.version == "2.1.0"
    assert resolved.source == "manifest"
    assert resolved.package_dir == root


@pytest.mark.unit
def test_version_from_newest_directory(empty_config, install_package):
    """Test that the highest version directory is chosen numerically."""
    install_package("1.2.0")
    newest = install_package("1.10.0")
    install_package("1.9.3")

    resolved = resolve("official", empty_config)

    assert resolved.version == "1.10.0"
    assert resolved.source == "directory"
    assert resolved.package_dir == newest
    assert resolved.package_name == "dtu-template"


@pytest.mark.unit
def test_version_directory_with_v_prefix(empty_config, packages_dir):
    """Test that "v1.2.0" directories resolve to "1.2.0"."""
    (packages_dir / "dtu-template" / "v1.2.0").mkdir(parents=True)

    assert resolve_version("official", empty_config) == "1.2.0"


@pytest.mark.unit
def test_version_from_suffixed_root(empty_config, tmp_path):
    """Test a package root named <package>-<version>."""
    root = tmp_path / "dtu-template-1.4.2"
    root.mkdir()

    resolved = resolve("official", empty_config, package_root=root)

    assert resolved.version == "1.4.2"
    assert resolved.package_name == "dtu-template"
    assert resolved.package_dir == root


@pytest.mark.unit
def test_version_from_config_when_nothing_installed(empty_config):
    """Test that the recorded version is used only when the package root is absent."""
    resolved = resolve("official", with_recorded(empty_config, "1.1.0"))

    assert resolved.version == "1.1.0"
    assert resolved.source == "config"
    assert resolved.package_dir is None


@pytest.mark.unit
def test_filesystem_wins_over_config(installed_config):
    """Test that an installed package overrides a stale recorded version."""
    config = with_recorded(installed_config, "0.5.0")
    assert resolve_version("official", config) == "1.2.0"


@pytest.mark.unit
def test_existing_root_without_versions_does_not_fall_back_to_config(empty_config, packages_dir):
    """Test that an empty package directory is not papered over by the config."""
    (packages_dir / "dtu-template" / "not-a-version").mkdir(parents=True)

    with pytest.raises(VersionNotFoundError):
        resolve("official", with_recorded(empty_config, "1.1.0"))


@pytest.mark.unit
def test_no_version_anywhere(empty_config):
    """Test failure when no source has a version."""
    with pytest.raises(VersionNotFoundError) as exc_info:
        resolve("official", empty_config)

    assert exc_info.value.alias == "official"
    assert "manage_templates.py install" in str(exc_info.value)


@pytest.mark.unit
def test_unknown_alias(empty_config):
    """Test failure for a repository alias that is not configured."""
    with pytest.raises(VersionNotFoundError, match="not configured"):
        resolve("nope", empty_config)


@pytest.mark.unit
def test_corrupt_root_manifest_is_fatal(empty_config, packages_dir):
    """Test that an unreadable manifest raises instead of falling back."""
    root = packages_dir / "dtu-template"
    (root / "1.2.0").mkdir(parents=True)
    (root / "typst.toml").write_text("[package\nversion = ")

    with pytest.raises(ManifestCorruptError):
        resolve("official", with_recorded(empty_config, "1.0.0"))


@pytest.mark.unit
def test_manifest_without_version_is_corrupt(empty_config, packages_dir):
    """Test that a manifest missing [package] version is corrupt."""
    root = packages_dir / "dtu-template"
    root.mkdir()
    (root / "typst.toml").write_text('[package]\nname = "dtu-template"\n')

    with pytest.raises(ManifestCorruptError):
        resolve("official", empty_config)


@pytest.mark.unit
@pytest.mark.parametrize(
    "manifest",
    [
        'package = "dtu-template"\n',
        "package = [1, 2]\n",
        '[other]\nversion = "1.2.0"\n',
    ],
)
def test_manifest_package_not_a_table_is_corrupt(empty_config, packages_dir, manifest):
    """Test that a manifest whose package entry is not a table is corrupt."""
    root = packages_dir / "dtu-template"
    root.mkdir()
    (root / "typst.toml").write_text(manifest)

    with pytest.raises(ManifestCorruptError, match=r"\[package\] table"):
        resolve("official", empty_config)


@pytest.mark.unit
def test_directory_manifest_disagreeing_with_name_is_corrupt(empty_config, install_package):
    """Test that a version directory whose manifest declares another version is rejected."""
    package_dir = install_package("1.3.0")
    (package_dir / "typst.toml").write_text('[package]\nversion = "1.2.0"\n')

    with pytest.raises(ManifestCorruptError, match="1.2.0"):
        resolve("official", empty_config)


@pytest.mark.unit
def test_package_name_follows_repository_record(empty_config, packages_dir):
    """Test that the repository's package name locates the package."""
    config = replace(
        empty_config,
        template_repositories={
            **empty_config.template_repositories,
            "official": replace(empty_config.template_repositories["official"], package_name="my-notes"),
        },
    )
    (packages_dir / "my-notes" / "0.3.0").mkdir(parents=True)

    resolved = resolve("official", config)

    assert resolved.package_name == "my-notes"
    assert resolved.version == "0.3.0"


@pytest.mark.unit
@pytest.mark.parametrize(
    "name,expected",
    [("1.2.0", (1, 2, 0)), ("v1.10.0", (1, 10, 0)), ("2", (2,)), ("latest", None), ("1.2.0-beta", None)],
)
def test_version_key(name, expected):
    """Test version directory name parsing."""
    assert version_key(name) == expected


@pytest.mark.unit
def test_record_installed_version(empty_config):
    """Test recording is pure and skips no-op updates."""
    recorded = record_installed_version(empty_config, "official", "1.2.0")

    assert recorded.template_repositories["official"].version == "1.2.0"
    assert empty_config.template_repositories["official"].version is None
    assert record_installed_version(recorded, "official", "1.2.0") is recorded
