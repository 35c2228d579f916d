"""
Templating context logger.

Provides logging interface for templating context with automatic [template] prefix.
All templating modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from noter.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[template]"


def setup_templating_logger(log_dir: Path = None, phase: str = "generate") -> Path:
    """
    Setup logger for templating context.

    Args:
        log_dir: Directory for this session (defaults to NOTER_LOGS_PATH)
        phase: Phase name for provenance ("generate" or "install")

    Returns:
        Path to log file

    Example:
        from noter.contexts.templating.logger import setup_templating_logger, _log_info

        log_file = setup_templating_logger(phase="generate")
        _log_info("Generating lecture...")
    """
    return _setup_logger(
        context_name="template",
        log_dir=log_dir,
        extra_provenance={"Phase": phase},
    )


# Wrapper functions with automatic [template] prefix


def _log_info(message: str) -> None:
    """Log info message with [template] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [template] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [template] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [template] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [template] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level templating-specific logging helpers


def log_generation_start(course_id: str, doc_type: str) -> None:
    _log_info(f"Generating {doc_type} for {course_id}")


def log_version_resolved(resolved) -> None:
    """
    Args:
        resolved: ResolvedVersion from the version resolver
    """
    _log_debug(f"Template {resolved.package_name}:{resolved.version} (from {resolved.source})")
    if resolved.package_dir is not None:
        _log_debug(f"  Package: {resolved.package_dir}")


def log_generation_result(document, context) -> None:
    """
    Log a generated document.

    Args:
        document: GeneratedDocument from TemplateEngine.generate()
        context: TemplateContext it was rendered from
    """
    _log_success(f"Generated {document.filename}")
    _log_debug(f"  Course: {context.course_id} ({context.course_name})")
    _log_debug(f"  Template: {context.package_name}:{context.template_version}")
    _log_debug(f"  Variant: {document.variant}")
    _log_debug(f"  Sections: {len(document.sections)}")


def log_install_result(result) -> None:
    """
    Args:
        result: InstallResult from TemplateFetcher.install()
    """
    if result.was_cached:
        _log_info(f"{result.alias} {result.version} already installed")
    else:
        _log_success(f"Installed {result.alias} {result.version}")
    _log_debug(f"  Package: {result.package_dir}")
