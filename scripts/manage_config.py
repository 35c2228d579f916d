#!/usr/bin/env python3
"""
Command-line interface for the noter config file.

The config record (~/.config/noter/config.yaml, or $NOTER_CONFIG_PATH) holds
the author, course names, template repositories and note preferences. Loading
it with any command migrates an older record in place (a .backup is kept).

Commands:
    show          - Print the current config as YAML
    path          - Print the config file location
    migrate       - Migrate the config to the current schema
    validate      - Report configuration warnings
    set-author    - Set the author name
    add-course    - Add or rename a course
    remove-course - Remove a course
    courses       - List configured courses
    set-editor    - Set the preferred editor
    auto-update   - Toggle automatic template installation
    strict-lookup - Toggle strict course id lookup
    semester      - Show the semester for a date
    keys          - List settable keys
    get / set     - Read or change one value by dotted key
"""

from datetime import datetime
from typing import Optional

import typer
import yaml
from typing_extensions import Annotated

from noter.contexts.configuration import (
    CURRENT_SCHEMA_VERSION,
    ConfigState,
    ConfigStore,
    default_config_path,
    save_config,
)
from noter.contexts.configuration.logger import setup_configuration_logger
from noter.contexts.configuration.persistence import config_to_yaml
from noter.contexts.configuration.schema import Config
from noter.contexts.configuration.semester import semester_for
from noter.contexts.configuration.settings import config_keys, get_value, with_value
from noter.utils.errors import NoterError
from noter.utils.timestamp import iso_date, today

app = typer.Typer(
    add_completion=False,
    help="Inspect and edit the noter config file",
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    setup_configuration_logger(config_path=default_config_path())


def _fail(e: Exception) -> None:
    typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _load() -> Config:
    try:
        return ConfigStore().load()
    except NoterError as e:
        _fail(e)


def _save(config: Config) -> None:
    try:
        save_config(config.touched())
    except NoterError as e:
        _fail(e)


@app.command("show")
def show_command():
    """Print the current config as YAML."""
    typer.echo(config_to_yaml(_load()))


@app.command("path")
def path_command():
    """Print the config file location."""
    typer.echo(str(default_config_path()))


@app.command("migrate")
def migrate_command(
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-n", help="Report what would change without writing")
    ] = False,
):
    """
    Migrate the config file to the current schema.

    A copy of the original file is written to config.yaml.backup first.

    Examples:\n

        $ manage_config.py migrate --dry-run

        $ manage_config.py migrate
    """
    store = ConfigStore()
    try:
        store.load(migrate=not dry_run)
    except NoterError as e:
        _fail(e)

    report = store.report
    if report is None or not report.migrated:
        typer.secho(f"✓ Config is already at schema {CURRENT_SCHEMA_VERSION}", fg=typer.colors.GREEN)
        return

    typer.secho(
        f"Schema {report.from_version or '0'} → {CURRENT_SCHEMA_VERSION}",
        fg=typer.colors.BLUE,
        bold=True,
    )
    for label, paths in (
        ("Added", report.added),
        ("Converted", report.transformed),
        ("Reset to default", report.reset),
        ("Dropped", report.dropped),
    ):
        if paths:
            typer.echo(f"  {label}: {', '.join(paths)}")

    if store.state is ConfigState.MIGRATED:
        typer.secho(f"✓ Migrated (backup: {store.backup_path})", fg=typer.colors.GREEN)
    elif dry_run:
        typer.echo("Dry run: nothing written")
    else:
        typer.secho("Migration not written, see the log for details", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)


@app.command("validate")
def validate_command():
    """Report non-fatal configuration warnings."""
    warnings = _load().validate()
    if not warnings:
        typer.secho("✓ No problems found", fg=typer.colors.GREEN)
        return
    for warning in warnings:
        typer.secho(f"⚠ {warning}", fg=typer.colors.YELLOW)


@app.command("set-author")
def set_author_command(
    author: Annotated[str, typer.Argument(help="Author name shown in note headers")],
):
    """Set the author name."""
    _save(_load().with_author(author))
    typer.secho(f"✓ Author set to {author}", fg=typer.colors.GREEN)


@app.command("add-course")
def add_course_command(
    course_id: Annotated[str, typer.Argument(help="Course id (e.g., 02101)")],
    name: Annotated[str, typer.Argument(help="Course name")],
    repository: Annotated[
        Optional[str],
        typer.Option("--repository", "-r", help="Template repository alias for this course"),
    ] = None,
):
    """
    Add a course, or rename an existing one.

    Examples:\n

        $ manage_config.py add-course 02105 "Algorithms and Data Structures 2"
    """
    config = _load()
    try:
        config = config.with_course(course_id, name)
    except ValueError as e:
        _fail(e)

    if repository:
        if repository not in config.template_repositories:
            _fail(NoterError(f"Repository alias '{repository}' is not configured"))
        config = config.with_course_repository(course_id, repository)

    _save(config)
    typer.secho(f"✓ {course_id}: {name}", fg=typer.colors.GREEN)


@app.command("remove-course")
def remove_course_command(
    course_id: Annotated[str, typer.Argument(help="Course id to remove")],
):
    """Remove a course."""
    config = _load()
    if config.course_name(course_id) is None:
        typer.secho(f"Course {course_id} is not configured", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    _save(config.without_course(course_id))
    typer.secho(f"✓ Removed {course_id}", fg=typer.colors.GREEN)


@app.command("courses")
def courses_command():
    """List configured courses."""
    courses = _load().list_courses()
    if not courses:
        typer.echo("No courses configured")
        return
    typer.secho(f"\n{len(courses)} course(s)", fg=typer.colors.BLUE, bold=True)
    for course_id, name in courses:
        typer.echo(f"  {course_id:<8} {name}")


@app.command("set-editor")
def set_editor_command(
    editor: Annotated[
        Optional[str], typer.Argument(help="Editor command tried first (omit to clear)")
    ] = None,
):
    """Set the editor used to open new notes."""
    _save(_load().with_editor(editor))
    if editor:
        typer.secho(f"✓ Preferred editor set to {editor}", fg=typer.colors.GREEN)
    else:
        typer.secho("✓ Preferred editor cleared", fg=typer.colors.GREEN)


@app.command("auto-update")
def auto_update_command(
    enabled: Annotated[bool, typer.Option("--on/--off", help="Enable or disable")] = True,
):
    """
    Install the template package automatically when no version is found.

    Examples:\n

        $ manage_config.py auto-update

        $ manage_config.py auto-update --off
    """
    _save(_load().with_template_preferences(auto_update=enabled))
    typer.secho(f"✓ Template auto-update {'enabled' if enabled else 'disabled'}", fg=typer.colors.GREEN)


@app.command("strict-lookup")
def strict_lookup_command(
    enabled: Annotated[bool, typer.Option("--on/--off", help="Enable or disable")] = True,
):
    """Make unconfigured course ids an error instead of a warning."""
    _save(_load().with_template_preferences(strict_course_lookup=enabled))
    typer.secho(f"✓ Strict course lookup {'enabled' if enabled else 'disabled'}", fg=typer.colors.GREEN)


@app.command("semester")
def semester_command(
    when: Annotated[
        Optional[datetime],
        typer.Option("--date", "-d", formats=["%Y-%m-%d"], help="Date to show (default: today)"),
    ] = None,
):
    """
    Show the semester that notes created on a date are filed under.

    Examples:\n

        $ manage_config.py semester

        $ manage_config.py semester --date 2026-02-01
    """
    config = _load()
    day = when.date() if when else today()
    try:
        semester = semester_for(day, config.semester_format)
    except ValueError as e:
        _fail(NoterError(str(e), field="semester_format.cutoff"))

    typer.secho(f"{iso_date(day)}: {semester}", fg=typer.colors.GREEN, bold=True)
    fmt = config.semester_format
    pattern = f" ({fmt.pattern})" if fmt.style == "custom" else ""
    typer.echo(f"  Format: {fmt.style}{pattern}, cutoff {fmt.cutoff}")


@app.command("keys")
def keys_command():
    """List the keys accepted by get and set."""
    for key in config_keys(_load()):
        typer.echo(key)


@app.command("get")
def get_command(
    key: Annotated[str, typer.Argument(help="Dotted key, e.g. templates.auto_update")],
):
    """Print one config value."""
    try:
        value = get_value(_load(), key)
    except NoterError as e:
        _fail(e)
    if isinstance(value, (dict, list)):
        value = yaml.safe_dump(value, default_flow_style=True, allow_unicode=True).strip()
    typer.echo("" if value is None else value)


@app.command("set")
def set_command(
    key: Annotated[str, typer.Argument(help="Dotted key, e.g. templates.auto_update")],
    value: Annotated[str, typer.Argument(help="New value (lists as [a, b])")],
):
    """
    Set one config value.

    Examples:\n

        $ manage_config.py set author "Ada Lovelace"

        $ manage_config.py set note_preferences.auto_open_dir true

        $ manage_config.py set note_preferences.lecture_sections "[Summary, Notes]"
    """
    try:
        config = with_value(_load(), key, value)
    except NoterError as e:
        _fail(e)
    _save(config)
    typer.secho(f"✓ {key} = {value}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
