"""
Typst Compilation Module

Compiles notes to PDF with the typst binary and reports whether a note's PDF
is current.
"""

import os
import re
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from noter.contexts.configuration.schema import Config
from noter.contexts.rendering.logger import (
    log_clean_result,
    log_compilation_result,
    log_compilation_start,
    log_status,
)
from noter.utils.errors import NoterIOError

load_dotenv()

TYPST_BINARY = os.getenv("NOTER_TYPST_BINARY", "typst")

_DIAGNOSTIC = re.compile(r"^(error|warning): (.+)$", re.MULTILINE)


class CompilationStatus(Enum):
    UP_TO_DATE = "up to date"
    OUT_OF_DATE = "out of date"
    NOT_COMPILED = "not compiled"
    SOURCE_NOT_FOUND = "source not found"


@dataclass
class CompilationResult:
    """
    Result of Typst compilation.

    Attributes:
        success: Whether compilation succeeded
        pdf_path: Path to generated PDF (None if failed)
        stdout: Standard output from typst
        stderr: Standard error from typst
        errors: Parsed "error:" diagnostics
        warnings: Parsed "warning:" diagnostics
    """

    success: bool
    pdf_path: Optional[Path] = None
    stdout: str = ""
    stderr: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _parse_diagnostics(output: str) -> Tuple[List[str], List[str]]:
    """
    Split typst diagnostics into (errors, warnings).

    Examples:
        _parse_diagnostics("error: unknown variable: foo")
        # (["unknown variable: foo"], [])
    """
    errors = []
    warnings = []
    for match in _DIAGNOSTIC.finditer(output):
        (errors if match.group(1) == "error" else warnings).append(match.group(2).strip())
    return errors, warnings


def resolve_source(path: Path) -> Path:
    """Add the .typ extension when the path has none."""
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".typ")
    return path


def output_path_for(source: Path, config: Config) -> Path:
    """
    PDF path for a source: next to it, or inside typst.output_dir.

    A relative output_dir is taken relative to the source's directory.
    """
    pdf_name = source.with_suffix(".pdf").name
    output_dir = config.typst.output_dir
    if not output_dir:
        return source.with_suffix(".pdf")

    directory = Path(output_dir).expanduser()
    if not directory.is_absolute():
        directory = source.parent / directory
    return directory / pdf_name


def typst_available(binary: str = None) -> Optional[str]:
    """
    Version string of the typst binary, or None if it is not installed.
    """
    binary = binary or TYPST_BINARY
    if shutil.which(binary) is None:
        return None

    result = subprocess.run([binary, "--version"], capture_output=True, text=True)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def clean_pdfs(directory: Path, recursive: bool = True) -> int:
    """
    Delete compiled PDFs under a directory.

    Returns:
        Number of files removed
    """
    directory = Path(directory)
    if not directory.exists():
        return 0

    pattern = "**/*.pdf" if recursive else "*.pdf"
    removed = 0
    for pdf in directory.glob(pattern):
        if not pdf.is_file():
            continue
        try:
            pdf.unlink()
        except OSError as e:
            raise NoterIOError("Failed to remove PDF", path=pdf, original_error=e) from e
        removed += 1

    log_clean_result(directory, removed)
    return removed


def compile_note(path: Path, config: Config, verbose: bool = False) -> CompilationResult:
    """
    Compile a Typst note to PDF.

    Runs `typst compile <source> <output> [typst.compile_args...]`.

    Args:
        path: Note path (".typ" is added when the extension is missing)
        config: Loaded config (compile args, output dir, clean-before-compile)
        verbose: Log full diagnostics

    Returns:
        CompilationResult with success status and diagnostic information
    """
    source = resolve_source(path)
    if not source.exists():
        return CompilationResult(success=False, errors=[f"File not found: {source}"])

    output = output_path_for(source, config)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise NoterIOError("Failed to create output directory", path=output.parent, original_error=e) from e

    if config.typst.clean_before_compile:
        clean_pdfs(output.parent, recursive=False)

    cmd = [TYPST_BINARY, "compile", str(source), str(output), *config.typst.compile_args]
    log_compilation_start(source, output, config.typst.compile_args)

    start = time.time()
    try:
        process = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        return CompilationResult(
            success=False,
            errors=[f"Typst binary not found: {TYPST_BINARY}. Install it from https://typst.app"],
        )
    elapsed = time.time() - start

    errors, warnings = _parse_diagnostics(process.stderr)
    success = process.returncode == 0 and output.exists()
    if not success and not errors:
        errors.append(process.stderr.strip() or "PDF file was not generated")

    result = CompilationResult(
        success=success,
        pdf_path=output if success else None,
        stdout=process.stdout,
        stderr=process.stderr,
        errors=errors,
        warnings=warnings,
    )
    log_compilation_result(source.stem, result, elapsed, verbose=verbose)
    return result


def check_status(path: Path, config: Config) -> CompilationStatus:
    """
    Compare modification times of a note and its PDF.

    Examples:
        check_status(Path("notes/02101/lectures/2026-10-19-02101-lecture.typ"), config)
        # CompilationStatus.NOT_COMPILED
    """
    source = resolve_source(path)
    if not source.exists():
        return CompilationStatus.SOURCE_NOT_FOUND

    output = output_path_for(source, config)
    if not output.exists():
        return CompilationStatus.NOT_COMPILED

    status = CompilationStatus.UP_TO_DATE
    if source.stat().st_mtime > output.stat().st_mtime:
        status = CompilationStatus.OUT_OF_DATE
    log_status(source, status)
    return status
