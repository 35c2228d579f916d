"""
Dotted-key access to config values.

Keys follow the record layout, e.g. "author", "templates.auto_update" or
"note_preferences.lecture_sections". A new value is parsed according to the
type of the value it replaces, then the whole record is structured again so
an unusable value is rejected instead of silently reset.

Examples:
    >>> config = with_value(config, "templates.auto_update", "yes")
    >>> get_value(config, "templates.auto_update")
    True
"""

from typing import Any, List, Mapping

import yaml
from omegaconf.errors import OmegaConfBaseException

from noter.contexts.configuration.exceptions import ConfigKeyError
from noter.contexts.configuration.migrator import SCHEMA_FIELD, structure
from noter.contexts.configuration.persistence import parse_config_text
from noter.contexts.configuration.schema import Config

# Written by noter itself
MANAGED_KEYS = (SCHEMA_FIELD, "metadata")

TRUE_WORDS = {"true", "1", "yes", "y", "on"}
FALSE_WORDS = {"false", "0", "no", "n", "off"}


def config_keys(config: Config) -> List[str]:
    """Every settable leaf key, in record order."""

    def walk(data: Mapping, prefix: str) -> List[str]:
        keys = []
        for name, value in data.items():
            key = f"{prefix}{name}"
            if isinstance(value, Mapping) and value:
                keys += walk(value, f"{key}.")
            else:
                keys.append(key)
        return keys

    record = config.to_dict()
    return walk({k: v for k, v in record.items() if k not in MANAGED_KEYS}, "")


def _parent(record: dict, key: str) -> tuple:
    """(mapping holding the key, last key segment). Raises ConfigKeyError."""
    *parents, name = key.split(".")
    current = record
    for part in parents:
        current = current.get(part) if isinstance(current, dict) else None
        if not isinstance(current, dict):
            raise ConfigKeyError(f"Configuration key '{key}' not found", key)
    if name not in current:
        raise ConfigKeyError(f"Configuration key '{key}' not found", key)
    return current, name


def get_value(config: Config, key: str) -> Any:
    """
    Value at a dotted key.

    Raises:
        ConfigKeyError: If no such key exists
    """
    parent, name = _parent(config.to_dict(), key)
    return parent[name]


def parse_value(text: str, current: Any, key: str) -> Any:
    """Read `text` as the same kind of value as `current`."""
    if isinstance(current, bool):
        word = text.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
        raise ConfigKeyError(f"Invalid boolean '{text}' (expected true or false)", key)

    if isinstance(current, (list, dict)):
        try:
            value = parse_config_text(text)
        except (yaml.YAMLError, OmegaConfBaseException) as e:
            raise ConfigKeyError(f"Invalid value '{text}' ({e})", key) from e
        if not isinstance(value, type(current)):
            kind = "list, e.g. [a, b]" if isinstance(current, list) else "mapping, e.g. {a: b}"
            raise ConfigKeyError(f"Invalid value '{text}' (expected a {kind})", key)
        return value

    # Strings, and optional values that are currently unset
    return text


def with_value(config: Config, key: str, text: str) -> Config:
    """
    Copy of `config` with the value at `key` replaced.

    Raises:
        ConfigKeyError: If the key is unknown, managed by noter, or the value
                        is not usable for it
    """
    if key.split(".", 1)[0] in MANAGED_KEYS:
        raise ConfigKeyError(f"Configuration key '{key}' is managed by noter", key)

    record = config.to_dict()
    parent, name = _parent(record, key)
    parent[name] = parse_value(text, parent[name], key)

    report = structure(record)
    rejected = [path for path in report.reset + report.dropped if path == key or path.startswith(f"{key}.")]
    if rejected:
        raise ConfigKeyError(f"Invalid value '{text}' (not usable: {', '.join(rejected)})", key)
    return report.config
