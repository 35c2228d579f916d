"""Shared fixtures: configs pointed at temporary package directories."""

from dataclasses import replace
from pathlib import Path

import pytest

from noter.contexts.configuration.schema import PathConfig, default_config


def _install_package(packages_dir: Path, version: str = "1.2.0", package_name: str = "dtu-template") -> Path:
    """Lay out <packages_dir>/<package_name>/<version>/typst.toml like an installed package."""
    package_dir = packages_dir / package_name / version
    package_dir.mkdir(parents=True)
    (package_dir / "typst.toml").write_text(
        f'[package]\nname = "{package_name}"\nversion = "{version}"\nentrypoint = "lib.typ"\n'
    )
    (package_dir / "lib.typ").write_text("// template package\n")
    return package_dir


@pytest.fixture
def packages_dir(tmp_path):
    directory = tmp_path / "packages"
    directory.mkdir()
    return directory


@pytest.fixture
def install_package(packages_dir):
    """Install a fake template package: install_package("1.2.0")."""

    def install(version: str = "1.2.0", package_name: str = "dtu-template") -> Path:
        return _install_package(packages_dir, version, package_name)

    return install


@pytest.fixture
def empty_config(packages_dir):
    """Default config whose packages directory holds no template package."""
    config = default_config()
    return replace(config, paths=replace(PathConfig(), typst_packages_dir=str(packages_dir)))


@pytest.fixture
def installed_config(empty_config, install_package):
    """Default config with dtu-template 1.2.0 installed."""
    install_package("1.2.0")
    return empty_config
