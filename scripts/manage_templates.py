#!/usr/bin/env python3
"""
Command-line interface for template packages.

Template packages are Typst packages installed under
<typst_packages_dir>/<package_name>/<version>/ and imported by every
generated note.

Commands:
    install - Download and install the latest package for a repository
    status  - Show installed and available versions
    resolve - Show which version a course's notes will import
    add     - Add a template repository
    remove  - Remove a template repository
    enable  - Enable a template repository
    disable - Disable a template repository
    list    - List repositories and their courses
"""

from typing import Optional

import typer
from typing_extensions import Annotated

from noter.contexts.configuration import load_and_migrate_config, save_config
from noter.contexts.configuration.schema import Config
from noter.contexts.templating.exceptions import FetchError
from noter.contexts.templating.fetcher import TemplateFetcher, repository_status
from noter.contexts.templating.logger import setup_templating_logger
from noter.contexts.templating.version_resolver import record_installed_version, resolve
from noter.utils.errors import NoterError

app = typer.Typer(
    add_completion=False,
    help="Install and inspect Typst template packages",
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    setup_templating_logger(phase="install")


def _load() -> Config:
    try:
        return load_and_migrate_config()
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _save(config: Config) -> None:
    try:
        save_config(config.touched())
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _change(update, *args) -> Config:
    """Apply a Config update helper, reporting its ValueError as a CLI error."""
    try:
        return update(*args)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("add")
def add_command(
    alias: Annotated[str, typer.Argument(help="Name to refer to the repository by")],
    repository: Annotated[str, typer.Argument(help="GitHub owner/repo")],
    package_name: Annotated[
        Optional[str],
        typer.Option("--package-name", "-p", help="Typst package name (default: repository name)"),
    ] = None,
    branch: Annotated[
        Optional[str], typer.Option("--branch", "-b", help="Install from a branch instead of releases")
    ] = None,
):
    """
    Add a template repository.

    Examples:\n

        $ manage_templates.py add physics ada/physics-notes

        $ manage_templates.py add nightly HollowNumber/dtu-note-template --branch main -p dtu-template
    """
    config = _load()
    config = _change(config.with_repository, alias, repository, package_name, branch)
    _save(config)

    record = config.template_repositories[alias]
    typer.secho(f"✓ Added {alias} ({repository})", fg=typer.colors.GREEN)
    typer.echo(f"  Package: {record.package_name}")
    typer.echo(f"  Install with: manage_templates.py install {alias}")


@app.command("remove")
def remove_command(
    alias: Annotated[str, typer.Argument(help="Repository alias")],
):
    """Remove a template repository and the course mappings that use it."""
    config = _load()
    _save(_change(config.without_repository, alias))
    typer.secho(f"✓ Removed {alias}", fg=typer.colors.GREEN)


@app.command("enable")
def enable_command(
    alias: Annotated[str, typer.Argument(help="Repository alias")],
):
    """Enable a template repository."""
    config = _load()
    _save(_change(config.with_repository_enabled, alias, True))
    typer.secho(f"✓ Enabled {alias}", fg=typer.colors.GREEN)


@app.command("disable")
def disable_command(
    alias: Annotated[str, typer.Argument(help="Repository alias")],
):
    """Disable a template repository so install refuses it."""
    config = _load()
    _save(_change(config.with_repository_enabled, alias, False))
    typer.secho(f"✓ Disabled {alias}", fg=typer.colors.YELLOW)


@app.command("list")
def list_command():
    """List template repositories and the courses mapped to them."""
    config = _load()
    default = config.templates.default_repository
    mapped: dict = {}
    for course_id, alias in sorted(config.templates.course_repositories.items()):
        mapped.setdefault(alias, []).append(course_id)

    for alias, repository in sorted(config.template_repositories.items()):
        status = "✓" if repository.enabled else "✗"
        marker = " (default)" if alias == default else ""
        typer.echo(f"  {status} {alias:<12} {repository.repository}{marker}")
        typer.echo(f"    {'package:':<9} {repository.package_name}")
        if repository.branch:
            typer.echo(f"    {'branch:':<9} {repository.branch}")
        if alias in mapped:
            typer.echo(f"    {'courses:':<9} {', '.join(mapped[alias])}")


@app.command("install")
def install_command(
    alias: Annotated[
        Optional[str], typer.Argument(help="Repository alias (defaults to the default repository)")
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Reinstall even if the version is present")
    ] = False,
):
    """
    Install the latest template package and record its version.

    Examples:\n

        $ manage_templates.py install

        $ manage_templates.py install official --force
    """
    config = _load()
    alias = alias or config.templates.default_repository

    try:
        result = TemplateFetcher().install(alias, config, force=force)
        save_config(record_installed_version(config, alias, result.version).touched())
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if result.was_cached:
        typer.secho(f"✓ {alias} {result.version} already installed", fg=typer.colors.GREEN)
    else:
        typer.secho(f"✓ Installed {alias} {result.version}", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  {result.package_dir}")


@app.command("status")
def status_command(
    offline: Annotated[
        bool, typer.Option("--offline", help="Do not query GitHub for the latest release")
    ] = False,
):
    """Show recorded and latest versions for each repository."""
    config = _load()
    fetcher = TemplateFetcher()

    typer.secho(
        f"\n{len(config.template_repositories)} repository(ies)", fg=typer.colors.BLUE, bold=True
    )
    for alias, repository in sorted(config.template_repositories.items()):
        latest = None
        if not offline and repository.enabled and not repository.branch:
            try:
                latest = fetcher.latest_release(repository.repository).version
            except FetchError as e:
                typer.secho(f"  {alias}: {e}", fg=typer.colors.YELLOW, err=True)

        marker = "" if repository.enabled else " (disabled)"
        typer.echo(f"  {alias:<12} {repository.repository}{marker}")
        typer.echo(f"  {'':<12} {repository_status(repository, latest)}")


@app.command("resolve")
def resolve_command(
    course_id: Annotated[str, typer.Argument(help="Course id")],
):
    """
    Show which template package version a course resolves to.

    Examples:\n

        $ manage_templates.py resolve 02101
    """
    config = _load()
    alias = config.repository_for(course_id)
    try:
        resolved = resolve(alias, config)
    except NoterError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo(f"{course_id} → {alias}: {resolved.package_name} {resolved.version} ({resolved.source})")
    if resolved.package_dir:
        typer.echo(f"  {resolved.package_dir}")


if __name__ == "__main__":
    app()
