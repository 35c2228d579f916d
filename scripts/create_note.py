#!/usr/bin/env python3
"""
Note Creation CLI

Generates Typst lecture notes, assignments and custom documents for a course
and writes them into the notes directory.

Commands:
    lecture    - Create lecture notes
    assignment - Create an assignment
    custom     - Create a document of any skeleton type (e.g., lab-report)
    types      - List available document types

Examples:\n

    create_note.py lecture 02101                          # Today's lecture notes

    create_note.py lecture 02101 --title "Recursion"      # Custom title

    create_note.py assignment 01005 "Problem Set 3"       # Assignment with course sections

    create_note.py custom 25200 lab-report --title "Pendulum" --field partners="Ada, Alan"
"""

import shutil
import subprocess
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from noter.contexts.configuration import load_and_migrate_config, save_config
from noter.contexts.configuration.schema import Config
from noter.contexts.templating.builder import TemplateBuilder
from noter.contexts.templating.exceptions import VersionNotFoundError
from noter.contexts.templating.fetcher import TemplateFetcher
from noter.contexts.templating.logger import setup_templating_logger
from noter.contexts.templating.registries import SkeletonRegistry
from noter.contexts.templating.version_resolver import record_installed_version
from noter.utils.errors import NoterError
from noter.utils.files import create_file_with_content, ensure_course_structure

app = typer.Typer(
    help="Create Typst notes and assignments from versioned templates",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    setup_templating_logger(phase="generate")


def _parse_fields(fields: List[str]) -> dict:
    parsed = {}
    for item in fields:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            typer.secho(f"Error: --field expects NAME=VALUE, got '{item}'", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)
        parsed[name.strip()] = value
    return parsed


def _install_and_record(config: Config, course_id: str) -> Config:
    """Install the course's template package and persist its version."""
    alias = config.repository_for(course_id)
    typer.secho(f"No template package installed, installing '{alias}'...", fg=typer.colors.YELLOW)
    result = TemplateFetcher().install(alias, config)
    config = record_installed_version(config, alias, result.version)
    save_config(config.touched())
    return config


def _open_in_editor(path: Path, config: Config) -> None:
    for editor in config.editor_list():
        if shutil.which(editor):
            subprocess.Popen([editor, str(path)])
            return
    typer.secho(f"No editor found to open {path}", fg=typer.colors.YELLOW, err=True)


def _create(builder: TemplateBuilder, config: Config, open_file: bool) -> Path:
    try:
        try:
            document = builder.build_document()
        except VersionNotFoundError:
            if not config.templates.auto_update:
                raise
            config = _install_and_record(config, builder.course_id)
            builder = replace(builder, config=config)
            document = builder.build_document()

        lectures_dir, assignments_dir = ensure_course_structure(
            Path(config.paths.notes_dir).expanduser(), builder.course_id
        )
        directory = lectures_dir if builder.doc_type.is_lecture else assignments_dir
        path = create_file_with_content(
            directory / document.filename,
            document.content,
            create_backups=config.note_preferences.create_backups,
        )
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Created {path}", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Sections: {', '.join(document.sections) or '(none)'}")

    target = config.note_preferences.open_target(path) if open_file else None
    if target is not None:
        _open_in_editor(target, config)
    return path


def _load_config() -> Config:
    try:
        return load_and_migrate_config()
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("lecture")
def lecture_command(
    course_id: Annotated[str, typer.Argument(help="Course id (e.g., 02101)")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Custom title")] = None,
    sections: Annotated[
        Optional[List[str]],
        typer.Option("--section", "-s", help="Section heading (repeatable, replaces defaults)"),
    ] = None,
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail if the course is not configured")
    ] = False,
    no_open: Annotated[bool, typer.Option("--no-open", help="Do not open the note")] = False,
):
    """
    Create lecture notes for today.

    Examples:\n

        $ create_note.py lecture 02101

        $ create_note.py lecture 02101 -s "Recap" -s "New Material"
    """
    config = _load_config()
    builder = TemplateBuilder(course_id, config)
    if title:
        builder = builder.with_title(title)
    if sections:
        builder = builder.with_sections(sections)
    if strict:
        builder = builder.with_strict()
    _create(builder, config, open_file=not no_open)


@app.command("assignment")
def assignment_command(
    course_id: Annotated[str, typer.Argument(help="Course id (e.g., 01005)")],
    title: Annotated[str, typer.Argument(help="Assignment title")],
    due_date: Annotated[
        Optional[str], typer.Option("--due", help="Due date shown in the header")
    ] = None,
    strict: Annotated[
        bool, typer.Option("--strict", help="Fail if the course is not configured")
    ] = False,
    no_open: Annotated[bool, typer.Option("--no-open", help="Do not open the note")] = False,
):
    """
    Create an assignment. Sections follow the course's department.

    Examples:\n

        $ create_note.py assignment 01005 "Problem Set 3" --due 2026-11-02
    """
    config = _load_config()
    builder = TemplateBuilder(course_id, config).with_type("assignment").with_title(title)
    if due_date:
        builder = builder.with_custom_field("due_date", due_date)
    if strict:
        builder = builder.with_strict()
    _create(builder, config, open_file=not no_open)


@app.command("custom")
def custom_command(
    course_id: Annotated[str, typer.Argument(help="Course id")],
    doc_type: Annotated[str, typer.Argument(help="Document type (see 'types')")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Title")] = None,
    fields: Annotated[
        Optional[List[str]],
        typer.Option("--field", "-f", help="Custom field NAME=VALUE (repeatable)"),
    ] = None,
    no_open: Annotated[bool, typer.Option("--no-open", help="Do not open the note")] = False,
):
    """
    Create a document of any available skeleton type.

    Examples:\n

        $ create_note.py custom 25200 lab-report -t "Pendulum" -f partners="Ada"
    """
    config = _load_config()
    try:
        builder = TemplateBuilder(course_id, config).with_type(doc_type)
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if title:
        builder = builder.with_title(title)
    for name, value in _parse_fields(fields or []).items():
        builder = builder.with_custom_field(name, value)
    _create(builder, config, open_file=not no_open)


@app.command("types")
def types_command():
    """List document types with a built-in skeleton."""
    registry = SkeletonRegistry()
    for type_name in registry.available_types():
        manifest = registry.get_manifest(type_name)
        typer.echo(f"  {type_name:<14} {manifest.description}")


if __name__ == "__main__":
    app()
