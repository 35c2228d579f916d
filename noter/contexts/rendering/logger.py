"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from noter.utils.logger import setup_logger as _setup_logger

load_dotenv()

CONTEXT_PREFIX = "[render]"

# Diagnostics shown per compile; verbose doubles both
ERROR_LIMIT = 5
WARNING_LIMIT = 3


def setup_rendering_logger(log_dir: Path = None) -> Path:
    """
    Setup logger for rendering context.

    Args:
        log_dir: Directory for this session (defaults to NOTER_LOGS_PATH)

    Returns:
        Path to log file
    """
    return _setup_logger(
        context_name="render",
        log_dir=log_dir,
        extra_provenance={"Typst binary": os.getenv("NOTER_TYPST_BINARY", "typst")},
    )


def _log_info(message: str) -> None:
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def _log_capped(log, label: str, items: list, limit: int) -> None:
    for number, item in enumerate(items[:limit], 1):
        log(f"  {label} {number}: {item}")
    if len(items) > limit:
        log(f"  ... {len(items) - limit} more {label.lower()}s")


def log_compilation_start(source: Path, output: Path, args: list) -> None:
    _log_info(f"Compiling {source.name}")
    _log_debug(f"  {source} -> {output}")
    if args:
        _log_debug(f"  typst args: {' '.join(args)}")


def log_compilation_result(note_name: str, result, elapsed_time: float, verbose: bool = False) -> None:
    """
    Log a CompilationResult from compile_note().

    Errors go to the console; warnings only to the session log unless
    verbose. The raw typst stderr is appended to the log on failure.
    """
    scale = 2 if verbose else 1

    if result.success:
        _log_success(f"{note_name}.pdf written in {elapsed_time:.2f}s ({len(result.warnings)} warnings)")
    else:
        _log_error(f"{note_name} failed after {elapsed_time:.2f}s with {len(result.errors)} error(s)")
        _log_capped(_log_error, "Error", result.errors, ERROR_LIMIT * scale)

    warn = _log_info if verbose else _log_debug
    _log_capped(warn, "Warning", result.warnings, WARNING_LIMIT * scale)

    # opt(raw=True) keeps multi-line compiler output unformatted
    if (verbose or not result.success) and result.stderr:
        logger.opt(raw=True).debug(f"\n{'-' * 60}\ntypst stderr:\n{result.stderr}\n")


def log_status(source: Path, status) -> None:
    """Log a CompilationStatus from check_status()."""
    _log_debug(f"{source.name}: {status.value}")


def log_clean_result(directory: Path, removed: int) -> None:
    if removed:
        _log_info(f"Removed {removed} PDF(s) from {directory}")
    else:
        _log_debug(f"No PDFs to remove in {directory}")
