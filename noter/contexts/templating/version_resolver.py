"""
Template Package Version Resolution

Determines the installed version of a repository's Typst template package.

Sources are tried in order and the first one with evidence wins:

    1. from_manifest        <package_root>/typst.toml  ([package] version)
    2. from_directory_name  version-named subdirectories (1.2.0/, v1.2.0/) or a
                            version-suffixed package root (dtu-template-1.2.0)
    3. from_config          version last recorded in the config, used only when
                            the package root does not exist at all

A source whose evidence is present but unreadable raises ManifestCorruptError
instead of falling through: a broken install must not be papered over by an
older recorded version.

Examples:
    >>> resolve_version("official", config)
    '1.2.0'
"""

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from noter.contexts.configuration.schema import Config, TemplateRepository
from noter.contexts.templating.exceptions import ManifestCorruptError, VersionNotFoundError

MANIFEST_NAME = "typst.toml"

_VERSION_NAME = re.compile(r"^v?(\d+(?:\.\d+)*)$")
_VERSION_SUFFIX = re.compile(r"-v?(\d+(?:\.\d+)+)$")


@dataclass(frozen=True)
class ResolvedVersion:
    """
    Attributes:
        version: Installed package version (e.g., "1.2.0")
        source: Which resolver found it ("manifest", "directory" or "config")
        package_dir: Directory holding that version, None when taken from config
        package_name: Typst package name used in #import
    """

    version: str
    source: str
    package_dir: Optional[Path]
    package_name: str


@dataclass(frozen=True)
class PackageLocation:
    """Everything a resolver may inspect for one repository alias."""

    alias: str
    repository: TemplateRepository
    package_root: Path
    package_name: str


def version_key(name: str) -> Optional[Tuple[int, ...]]:
    """
    Numeric sort key for a version-like name, or None if it is not one.

    Examples:
        version_key("v1.10.0")  # (1, 10, 0)
        version_key("latest")   # None
    """
    match = _VERSION_NAME.match(name)
    if not match:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def read_manifest_version(manifest_path: Path) -> str:
    """
    Read [package] version from a typst.toml.

    Raises:
        ManifestCorruptError: If the file cannot be parsed or has no version
    """
    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise ManifestCorruptError("Package manifest is unreadable", manifest_path, e) from e

    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestCorruptError("Package manifest has no [package] table", manifest_path)

    version = package.get("version")
    if not isinstance(version, str) or not version.strip():
        raise ManifestCorruptError("Package manifest has no [package] version", manifest_path)

    return version.strip()


# Resolvers (pure; return None when their evidence is absent)


def from_manifest(location: PackageLocation) -> Optional[ResolvedVersion]:
    manifest = location.package_root / MANIFEST_NAME
    if not manifest.is_file():
        return None

    return ResolvedVersion(
        version=read_manifest_version(manifest),
        source="manifest",
        package_dir=location.package_root,
        package_name=location.package_name,
    )


def from_directory_name(location: PackageLocation) -> Optional[ResolvedVersion]:
    root = location.package_root
    if not root.is_dir():
        return None

    candidates = [
        (key, child)
        for child in root.iterdir()
        if child.is_dir() and (key := version_key(child.name)) is not None
    ]

    if candidates:
        _, newest = max(candidates)
        version = newest.name.lstrip("v")

        manifest = newest / MANIFEST_NAME
        if manifest.is_file():
            declared = read_manifest_version(manifest)
            if declared != version:
                raise ManifestCorruptError(
                    f"Manifest declares version {declared} but directory is named {newest.name}",
                    manifest,
                )

        return ResolvedVersion(
            version=version, source="directory", package_dir=newest, package_name=location.package_name
        )

    match = _VERSION_SUFFIX.search(root.name)
    if match:
        return ResolvedVersion(
            version=match.group(1),
            source="directory",
            package_dir=root,
            package_name=root.name[: match.start()],
        )

    return None


def from_config(location: PackageLocation) -> Optional[ResolvedVersion]:
    if location.package_root.exists():
        return None

    version = location.repository.version
    if not version:
        return None

    return ResolvedVersion(
        version=version, source="config", package_dir=None, package_name=location.package_name
    )


Resolver = Callable[[PackageLocation], Optional[ResolvedVersion]]
RESOLVERS: Tuple[Resolver, ...] = (from_manifest, from_directory_name, from_config)


def package_root_for(repository: TemplateRepository, alias: str, config: Config) -> Path:
    """<typst_packages_dir>/<package_name> for a repository."""
    package_name = repository.package_name or alias
    return Path(config.paths.typst_packages_dir).expanduser() / package_name


def resolve(alias: str, config: Config, package_root: Optional[Path] = None) -> ResolvedVersion:
    """
    Resolve the installed template package version for a repository alias.

    Args:
        alias: Repository alias in config.template_repositories
        config: Loaded config
        package_root: Explicit local package directory (defaults to
                      <typst_packages_dir>/<package_name>)

    Returns:
        ResolvedVersion describing where the version came from

    Raises:
        VersionNotFoundError: If the alias is unknown or no source has a version
        ManifestCorruptError: If a manifest exists but cannot be read
    """
    repository = config.template_repositories.get(alias)
    if repository is None:
        raise VersionNotFoundError(alias, reason="repository is not configured")

    root = Path(package_root) if package_root is not None else package_root_for(repository, alias, config)

    location = PackageLocation(
        alias=alias,
        repository=repository,
        package_root=root,
        package_name=repository.package_name or alias,
    )

    for resolver in RESOLVERS:
        resolved = resolver(location)
        if resolved is not None:
            return resolved

    raise VersionNotFoundError(alias, package_root=root)


def resolve_version(alias: str, config: Config, package_root: Optional[Path] = None) -> str:
    """Version string only. See resolve()."""
    return resolve(alias, config, package_root).version


def record_installed_version(config: Config, alias: str, version: str) -> Config:
    """
    Return a config with `version` recorded for `alias`.

    Resolution itself never writes; callers persist the result with save_config.
    """
    if alias in config.template_repositories and config.template_repositories[alias].version == version:
        return config
    return config.with_recorded_version(alias, version)
