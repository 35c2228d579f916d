#!/usr/bin/env python3
"""
Compile Typst notes to PDF.

Usage:
    compile_note.py compile NOTE [--verbose]
    compile_note.py status NOTE
    compile_note.py clean DIRECTORY [--no-recursive]

Examples:\n

    compile_note.py compile notes/02101/lectures/2026-10-19-02101-lecture.typ

    compile_note.py status notes/02101/lectures/2026-10-19-02101-lecture

    compile_note.py clean notes/02101
"""

from pathlib import Path

import typer
from typing_extensions import Annotated

from noter.contexts.configuration import load_config
from noter.contexts.configuration.schema import Config
from noter.contexts.rendering import (
    CompilationStatus,
    check_status,
    clean_pdfs,
    compile_note,
    typst_available,
)
from noter.contexts.rendering.logger import setup_rendering_logger
from noter.utils.errors import NoterError

app = typer.Typer(
    help="Compile Typst notes to PDF",
    add_completion=False,
    invoke_without_command=True,
)

_STATUS_COLORS = {
    CompilationStatus.UP_TO_DATE: typer.colors.GREEN,
    CompilationStatus.OUT_OF_DATE: typer.colors.YELLOW,
    CompilationStatus.NOT_COMPILED: typer.colors.YELLOW,
    CompilationStatus.SOURCE_NOT_FOUND: typer.colors.RED,
}


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    setup_rendering_logger()


def _load() -> Config:
    try:
        return load_config()
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("compile")
def compile_command(
    note: Annotated[Path, typer.Argument(help="Note to compile (.typ optional)")],
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show all warnings and compiler output")
    ] = False,
):
    """
    Compile a note to PDF.

    Uses typst.compile_args and typst.output_dir from the config.
    """
    if typst_available() is None:
        typer.secho("Error: typst is not installed (https://typst.app)", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    config = _load()
    try:
        result = compile_note(note, config, verbose=verbose)
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not result.success:
        typer.secho("✗ Compilation failed", fg=typer.colors.RED, bold=True, err=True)
        for error in result.errors:
            typer.secho(f"  {error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ {result.pdf_path}", fg=typer.colors.GREEN, bold=True)
    for warning in result.warnings:
        typer.secho(f"  ⚠ {warning}", fg=typer.colors.YELLOW)


@app.command("status")
def status_command(
    note: Annotated[Path, typer.Argument(help="Note to check (.typ optional)")],
):
    """Show whether a note's PDF is up to date."""
    status = check_status(note, _load())
    typer.secho(f"{note}: {status.value}", fg=_STATUS_COLORS[status])
    if status is CompilationStatus.SOURCE_NOT_FOUND:
        raise typer.Exit(code=1)


@app.command("clean")
def clean_command(
    directory: Annotated[Path, typer.Argument(help="Directory to clean")],
    no_recursive: Annotated[
        bool, typer.Option("--no-recursive", help="Only clean the directory itself")
    ] = False,
):
    """Delete compiled PDFs."""
    try:
        removed = clean_pdfs(directory, recursive=not no_recursive)
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Removed {removed} PDF(s)")


if __name__ == "__main__":
    app()
