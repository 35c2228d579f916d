"""
Config file persistence.

The config record lives at a fixed per-user location (overridable with
NOTER_CONFIG_PATH) and is read once per process, mutated in memory, and
written once on save.

ConfigStore tracks where a load ended up:

    UNLOADED --load--> LOADED_CURRENT              record already current (or freshly created)
                   --> LOADED_STALE                migration not written (read-only load, or backup failed)
                   --> MIGRATED                    backup written, migrated record saved
                   --> CORRUPT                     record unparseable; file left untouched
"""

import os
import shutil
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from noter.contexts.configuration.exceptions import ConfigCorruptError
from noter.contexts.configuration.logger import (
    _log_error,
    _log_info,
    _log_warning,
    log_load_start,
    log_migration_result,
)
from noter.contexts.configuration.migrator import MigrationReport, structure
from noter.contexts.configuration.schema import Config, default_config
from noter.utils.errors import NoterIOError
from noter.utils.files import atomic_write_text

load_dotenv()

BACKUP_SUFFIX = ".backup"


def default_config_path() -> Path:
    """Config file location: $NOTER_CONFIG_PATH, else ~/.config/noter/config.yaml."""
    override = os.getenv("NOTER_CONFIG_PATH")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "noter" / "config.yaml"


class ConfigState(Enum):
    UNLOADED = "unloaded"
    LOADED_CURRENT = "loaded_current"
    LOADED_STALE = "loaded_stale"
    MIGRATED = "migrated"
    CORRUPT = "corrupt"


class _ConfigLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps scalar mapping keys exactly as written.

    Unquoted course ids such as 01005 would otherwise resolve to integers
    (octal, even) and lose their leading zeros.
    """

    def construct_mapping(self, node, deep=False):
        if not isinstance(node, yaml.MappingNode):
            return super().construct_mapping(node, deep=deep)

        self.flatten_mapping(node)
        mapping = {}
        for key_node, value_node in node.value:
            if isinstance(key_node, yaml.ScalarNode):
                key = key_node.value
            else:
                key = self.construct_object(key_node, deep=deep)
            try:
                hash(key)
            except TypeError as e:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark, f"found unhashable key ({e})", key_node.start_mark
                ) from e
            mapping[key] = self.construct_object(value_node, deep=deep)
        return mapping


def parse_config_text(text: str) -> Any:
    """Parse config YAML and resolve OmegaConf interpolations."""
    data = yaml.load(text, Loader=_ConfigLoader)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return data
    return OmegaConf.to_container(OmegaConf.create(data), resolve=True)


def _stale_snapshot(report: MigrationReport) -> Config:
    """In-memory view of a stale record that still carries its original schema tag."""
    return replace(report.config, template_version=report.from_version)


def config_to_yaml(config: Config) -> str:
    return OmegaConf.to_yaml(OmegaConf.create(config.to_dict()))


class ConfigStore:
    """
    Loads, migrates and saves the config record at `path`.

    Example:
        store = ConfigStore()
        config = store.load()
        if store.state is ConfigState.MIGRATED:
            print(f"Backup written to {store.backup_path}")
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else default_config_path()
        self.state = ConfigState.UNLOADED
        self.report: Optional[MigrationReport] = None

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}{BACKUP_SUFFIX}")

    def read_record(self) -> Dict[str, Any]:
        """
        Parse the config file into a plain mapping.

        Raises:
            NoterIOError: If the file cannot be read
            ConfigCorruptError: If the content is not a YAML mapping
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise NoterIOError("Failed to read config", path=self.path, original_error=e) from e

        try:
            record = parse_config_text(text)
        except (yaml.YAMLError, OmegaConfBaseException) as e:
            self.state = ConfigState.CORRUPT
            raise ConfigCorruptError("Config file is not valid YAML", path=self.path, original_error=e) from e

        if not isinstance(record, dict):
            self.state = ConfigState.CORRUPT
            raise ConfigCorruptError("Config file root must be a mapping", path=self.path)

        return record

    def load(self, migrate: bool = True) -> Config:
        """
        Load the config, creating it with defaults if missing.

        Args:
            migrate: Write a migrated record back (with a backup) when the
                     stored record is stale. When False the stale snapshot is
                     returned and nothing is written.

        Returns:
            Config snapshot. A stale snapshot keeps its original schema tag.

        Raises:
            ConfigCorruptError: If the record cannot be parsed
            NoterIOError: If the file cannot be read or written
        """
        log_load_start(self.path)

        if not self.path.exists():
            _log_info(f"No config found, creating default at {self.path}")
            config = self.save(default_config())
            self.state = ConfigState.LOADED_CURRENT
            return config

        record = self.read_record()

        try:
            report = structure(record)
        except ConfigCorruptError as e:
            self.state = ConfigState.CORRUPT
            if e.path is None:
                e.path = self.path
            raise

        self.report = report

        if not report.migrated:
            for field_path in report.reset:
                _log_warning(f"Invalid value for '{field_path}', using default")
            self.state = ConfigState.LOADED_CURRENT
            return report.config

        if not migrate:
            self.state = ConfigState.LOADED_STALE
            return _stale_snapshot(report)

        try:
            shutil.copy2(self.path, self.backup_path)
        except OSError as e:
            _log_error(f"Migration aborted: could not write backup {self.backup_path} ({e})")
            self.state = ConfigState.LOADED_STALE
            return _stale_snapshot(report)

        self._write(report.config)
        log_migration_result(report, self.path, self.backup_path)
        self.state = ConfigState.MIGRATED
        return report.config

    def save(self, config: Config) -> Config:
        """
        Atomically write `config` exactly as given.

        Returns:
            The config as written
        """
        self._write(config)
        self.state = ConfigState.LOADED_CURRENT
        return config

    def _write(self, config: Config) -> None:
        atomic_write_text(self.path, config_to_yaml(config))


def load_config(path: Optional[Path] = None) -> Config:
    """Load the config without writing a migration back."""
    return ConfigStore(path).load(migrate=False)


def save_config(config: Config, path: Optional[Path] = None) -> Config:
    return ConfigStore(path).save(config)


def load_and_migrate_config(path: Optional[Path] = None) -> Config:
    """
    Load the config, migrating and persisting it if it is stale.

    Example:
        config = load_and_migrate_config()
        config.template_version  # "2"
    """
    return ConfigStore(path).load()
