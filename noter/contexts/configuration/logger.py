"""
Configuration context logger.

Provides logging interface for configuration context with automatic [config] prefix.
All configuration modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from noter.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[config]"


def setup_configuration_logger(log_dir: Path = None, config_path: Path = None) -> Path:
    """
    Setup logger for configuration context.

    Args:
        log_dir: Directory for this session (defaults to NOTER_LOGS_PATH)
        config_path: Config file being managed, recorded in the provenance header

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="config",
        log_dir=log_dir,
        extra_provenance={"Config file": config_path},
    )


# Wrapper functions with automatic [config] prefix


def _log_info(message: str) -> None:
    """Log info message with [config] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [config] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [config] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [config] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [config] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level configuration-specific logging helpers


def log_load_start(path: Path) -> None:
    _log_debug(f"Loading config: {path}")


def log_migration_result(report, path: Path, backup_path: Path = None) -> None:
    """
    Log the outcome of a schema migration.

    Args:
        report: MigrationReport from structure()
        path: Config file that was migrated
        backup_path: Backup written before the migrated record, if any
    """
    _log_success(
        f"Migrated {path.name} from schema {report.from_version} "
        f"to {report.config.template_version}"
    )
    if backup_path is not None:
        _log_info(f"Backup: {backup_path}")

    for field_path in report.added:
        _log_debug(f"  Added: {field_path}")
    for field_path in report.transformed:
        _log_debug(f"  Transformed: {field_path}")
    for field_path in report.dropped:
        _log_debug(f"  Dropped unknown field: {field_path}")

    if report.reset:
        _log_warning(f"{len(report.reset)} field(s) reset to defaults")
        for field_path in report.reset:
            _log_warning(f"  Reset: {field_path}")
