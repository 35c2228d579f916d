"""
Config Schema Migration

Upgrades a persisted config record of any older schema version to the current
Config shape without losing recognizable user settings.

Every field of the current schema is resolved by trying an ordered list of
pure field resolvers; the first that produces a value wins:

    1. fill_absent       field missing from the old record -> documented default
    2. keep_compatible   value already has the current type/shape -> kept verbatim
    3. apply_transform   a named per-field transform converts the old shape
    4. reset_to_default  nothing applies -> default, and the field is flagged

Nested groups are resolved recursively, so a single new sub-field (e.g.
note_preferences.auto_open_dir) does not disturb its siblings.

Examples:
    >>> config = migrate({"template_version": "1", "author": "Ada"})
    >>> config.template_version
    '2'
    >>> config.author
    'Ada'
"""

import dataclasses
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union, get_args, get_origin, get_type_hints

from noter.contexts.configuration.exceptions import ConfigCorruptError
from noter.contexts.configuration.schema import (
    CURRENT_SCHEMA_VERSION,
    Config,
    package_name_for,
)
from noter.contexts.configuration.semester import STYLES, parse_cutoff
from noter.utils.timestamp import now_exact

SCHEMA_FIELD = "template_version"


class _Incompatible(Exception):
    """Value cannot be read as the declared type."""


@dataclass
class _Trace:
    """Per-path outcomes collected while structuring a record."""

    added: List[str] = field(default_factory=list)
    transformed: List[str] = field(default_factory=list)
    reset: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    def merge(self, other: "_Trace") -> None:
        self.added += other.added
        self.transformed += other.transformed
        self.reset += other.reset
        self.dropped += other.dropped


@dataclass
class MigrationReport:
    """Result of structuring a raw record into the current Config."""

    config: Config
    from_version: str
    added: List[str] = field(default_factory=list)
    transformed: List[str] = field(default_factory=list)
    reset: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)

    @property
    def migrated(self) -> bool:
        return self.from_version != CURRENT_SCHEMA_VERSION


# Named per-field transforms


def repositories_from_strings(value: Any) -> Optional[Dict[str, Any]]:
    """
    Schema 1 -> 2: template_repositories values changed from "owner/repo" to records.

    Entries that are already records are passed through.
    """
    if not isinstance(value, Mapping):
        return None

    converted = {}
    for alias, source in value.items():
        if isinstance(source, str):
            converted[alias] = {
                "repository": source,
                "package_name": package_name_for(source),
                "version": None,
                "branch": None,
                "enabled": True,
            }
        elif isinstance(source, Mapping):
            converted[alias] = dict(source)
        else:
            return None
    return converted


_LEGACY_SEMESTER_STYLES = {
    "YearSeason": "year_season",
    "SeasonYear": "season_year",
    "ShortForm": "short_form",
}


def semester_format_from_enum(value: Any) -> Optional[Dict[str, Any]]:
    """Schema 1 -> 2: semester_format changed from an enum tag to a record."""
    if isinstance(value, str) and value in _LEGACY_SEMESTER_STYLES:
        return {"style": _LEGACY_SEMESTER_STYLES[value]}
    if isinstance(value, Mapping) and set(value) == {"Custom"} and isinstance(value["Custom"], str):
        return {"style": "custom", "pattern": value["Custom"]}
    return None


@dataclass(frozen=True)
class FieldTransform:
    """A documented breaking change to one field's shape."""

    path: str
    introduced_in: int
    convert: Callable[[Any], Optional[Any]]
    description: str


FIELD_TRANSFORMS = (
    FieldTransform(
        "template_repositories",
        2,
        repositories_from_strings,
        "repository sources became records with package name and recorded version",
    ),
    FieldTransform(
        "semester_format",
        2,
        semester_format_from_enum,
        "semester format enum became a record with style, pattern and cutoff",
    ),
)
_TRANSFORMS_BY_PATH = {t.path: t for t in FIELD_TRANSFORMS}


# Value checks beyond the declared type


def _is_cutoff(value: Any) -> bool:
    try:
        parse_cutoff(value)
    except ValueError:
        return False
    return True


FIELD_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "semester_format.style": lambda value: value in STYLES,
    "semester_format.cutoff": _is_cutoff,
}


# Type coercion


def _coerce(value: Any, hint: Any, path: str, trace: _Trace, from_version: int) -> Any:
    """Read `value` as `hint`, structuring nested dataclasses. Raises _Incompatible."""
    if dataclasses.is_dataclass(hint):
        if not isinstance(value, Mapping):
            raise _Incompatible(path)
        # A non-empty mapping with none of the record's keys is some other shape
        if value and not set(value) & {f.name for f in dataclasses.fields(hint)}:
            raise _Incompatible(path)
        return _structure_dataclass(hint, value, f"{path}.", trace, from_version)

    origin = get_origin(hint)
    args = get_args(hint)

    if origin is Union:
        if value is None and type(None) in args:
            return None
        non_none = [a for a in args if a is not type(None)]
        return _coerce(value, non_none[0], path, trace, from_version)

    if origin in (list, List):
        if not isinstance(value, list):
            raise _Incompatible(path)
        return [_coerce(item, args[0], f"{path}[{i}]", trace, from_version) for i, item in enumerate(value)]

    if origin in (dict, Dict):
        if not isinstance(value, Mapping):
            raise _Incompatible(path)
        result = {}
        for key, item in value.items():
            # Unquoted YAML keys such as course ids arrive as numbers
            if isinstance(key, (int, float)) and not isinstance(key, bool):
                key = str(key)
            if not isinstance(key, str):
                raise _Incompatible(path)
            result[key] = _coerce(item, args[1], f"{path}.{key}", trace, from_version)
        return result

    if hint is bool:
        if not isinstance(value, bool):
            raise _Incompatible(path)
        return value

    if hint is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _Incompatible(path)
        return value

    if hint is str:
        if not isinstance(value, str):
            raise _Incompatible(path)
        return value

    return value


# Field resolvers


@dataclass(frozen=True)
class _FieldSlot:
    path: str
    name: str
    hint: Any
    definition: dataclasses.Field
    raw: Mapping
    from_version: int

    @property
    def present(self) -> bool:
        return self.name in self.raw

    @property
    def value(self) -> Any:
        return self.raw.get(self.name)

    def default(self) -> Any:
        if self.definition.default is not dataclasses.MISSING:
            return self.definition.default
        return self.definition.default_factory()


FieldResolver = Callable[[_FieldSlot, _Trace], Optional[tuple]]


def fill_absent(slot: _FieldSlot, trace: _Trace) -> Optional[tuple]:
    if slot.present:
        return None
    trace.added.append(slot.path)
    return (slot.default(),)


def _try_coerce(value: Any, slot: _FieldSlot, trace: _Trace) -> Optional[tuple]:
    child = _Trace()
    try:
        coerced = _coerce(value, slot.hint, slot.path, child, slot.from_version)
    except _Incompatible:
        return None
    check = FIELD_CHECKS.get(slot.path)
    if check is not None and not check(coerced):
        return None
    trace.merge(child)
    return (coerced,)


def keep_compatible(slot: _FieldSlot, trace: _Trace) -> Optional[tuple]:
    return _try_coerce(slot.value, slot, trace)


def apply_transform(slot: _FieldSlot, trace: _Trace) -> Optional[tuple]:
    transform = _TRANSFORMS_BY_PATH.get(slot.path)
    if transform is None or slot.from_version >= transform.introduced_in:
        return None

    converted = transform.convert(slot.value)
    if converted is None:
        return None

    resolved = _try_coerce(converted, slot, trace)
    if resolved is not None:
        trace.transformed.append(slot.path)
    return resolved


def reset_to_default(slot: _FieldSlot, trace: _Trace) -> Optional[tuple]:
    trace.reset.append(slot.path)
    return (slot.default(),)


FIELD_RESOLVERS: tuple = (fill_absent, keep_compatible, apply_transform, reset_to_default)


def _structure_dataclass(cls: type, raw: Mapping, prefix: str, trace: _Trace, from_version: int = None) -> Any:
    if from_version is None:
        from_version = _current_number()

    hints = get_type_hints(cls)
    names = set()
    kwargs = {}

    for definition in dataclasses.fields(cls):
        names.add(definition.name)
        if prefix == "" and definition.name == SCHEMA_FIELD:
            continue

        slot = _FieldSlot(
            path=f"{prefix}{definition.name}",
            name=definition.name,
            hint=hints[definition.name],
            definition=definition,
            raw=raw,
            from_version=from_version,
        )
        for resolver in FIELD_RESOLVERS:
            resolved = resolver(slot, trace)
            if resolved is not None:
                kwargs[definition.name] = resolved[0]
                break

    for key in raw:
        if key not in names:
            trace.dropped.append(f"{prefix}{key}")

    return cls(**kwargs)


# Schema version handling


def _current_number() -> int:
    return int(CURRENT_SCHEMA_VERSION)


def schema_number(tag: Any) -> int:
    """
    Numeric schema version of a record's tag.

    Missing/empty tags are schema 0. Dotted tags ("1.0.0") use the major part.

    Raises:
        ConfigCorruptError: If the tag is unreadable or newer than this release
    """
    if tag is None or str(tag).strip() == "":
        return 0

    text = str(tag).strip()
    try:
        number = int(text.split(".")[0])
    except ValueError as e:
        raise ConfigCorruptError(f"Unreadable config schema version '{text}'", original_error=e) from e

    if number > _current_number():
        raise ConfigCorruptError(
            f"Config schema version '{text}' was written by a newer release "
            f"(this release understands up to '{CURRENT_SCHEMA_VERSION}')"
        )
    return number


def needs_migration(record: Union[Config, Mapping]) -> bool:
    """Whether the record's schema tag is older than the current schema."""
    tag = record.template_version if isinstance(record, Config) else record.get(SCHEMA_FIELD)
    return schema_number(tag) < _current_number()


def structure(record: Mapping) -> MigrationReport:
    """
    Structure a raw record into the current Config, migrating if it is stale.

    Pure: the input mapping is not modified and nothing is written.

    Raises:
        ConfigCorruptError: If the record is not a mapping or its schema tag is unusable
    """
    if not isinstance(record, Mapping):
        raise ConfigCorruptError(
            f"Config record must be a mapping, got {type(record).__name__}"
        )

    from_number = schema_number(record.get(SCHEMA_FIELD))
    from_version = str(from_number)
    trace = _Trace()

    config = _structure_dataclass(Config, record, "", trace, from_version=from_number)
    config = replace(config, template_version=CURRENT_SCHEMA_VERSION)

    if from_number < _current_number():
        notes = f"Migrated from schema {from_version} to {CURRENT_SCHEMA_VERSION}"
        if trace.transformed:
            notes += f" (transformed: {', '.join(trace.transformed)})"
        config = replace(
            config,
            metadata=replace(
                config.metadata,
                last_updated=now_exact(),
                migration_notes=notes,
                reset_fields=list(trace.reset),
            ),
        )
    elif trace.reset:
        known = list(config.metadata.reset_fields)
        config = replace(
            config,
            metadata=replace(
                config.metadata,
                reset_fields=known + [path for path in trace.reset if path not in known],
            ),
        )

    return MigrationReport(
        config=config,
        from_version=from_version,
        added=trace.added,
        transformed=trace.transformed,
        reset=trace.reset,
        dropped=trace.dropped,
    )


def migrate(old: Union[Config, Mapping]) -> Config:
    """
    Upgrade a record to the current schema.

    Idempotent: a Config that is already current is returned unchanged, and
    migrating the result again is a no-op.

    Args:
        old: Raw persisted record (mapping) or a Config

    Returns:
        Config in the current schema

    Raises:
        ConfigCorruptError: If the record cannot be interpreted at all
    """
    if isinstance(old, Config):
        if old.template_version == CURRENT_SCHEMA_VERSION:
            return old
        old = old.to_dict()

    return structure(old).config
