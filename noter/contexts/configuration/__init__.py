"""
Configuration Context

Responsibilities:
- Defines the versioned user configuration record
- Migrates records from older schema versions
- Loads and saves the config file (backup before migration, atomic writes)
- Derives semester strings from dates
- Reads and sets single values by dotted key

Owns: Config schema, schema migration, config persistence
Never: Resolves template versions or renders documents
"""

from noter.contexts.configuration.exceptions import ConfigCorruptError, ConfigKeyError
from noter.contexts.configuration.migrator import (
    MigrationReport,
    migrate,
    needs_migration,
    structure,
)
from noter.contexts.configuration.persistence import (
    ConfigState,
    ConfigStore,
    default_config_path,
    load_and_migrate_config,
    load_config,
    save_config,
)
from noter.contexts.configuration.schema import (
    CURRENT_SCHEMA_VERSION,
    Config,
    TemplateRepository,
    default_config,
)
from noter.contexts.configuration.semester import SemesterFormat, semester_for
from noter.contexts.configuration.settings import config_keys, get_value, with_value

__all__ = [
    # Schema
    "CURRENT_SCHEMA_VERSION",
    "Config",
    "TemplateRepository",
    "default_config",
    "SemesterFormat",
    "semester_for",
    # Migration
    "MigrationReport",
    "migrate",
    "needs_migration",
    "structure",
    # Persistence
    "ConfigState",
    "ConfigStore",
    "ConfigCorruptError",
    "default_config_path",
    "load_config",
    "save_config",
    "load_and_migrate_config",
    # Dotted-key access
    "ConfigKeyError",
    "config_keys",
    "get_value",
    "with_value",
]
