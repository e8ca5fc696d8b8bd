"""
Main CLI entry point for ipm-repo.

This module provides the command-line interface for creating a package
repository and adding, removing and listing the packages it stores.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, NoReturn

import rich_click as click
import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..errors import CommandNotImplementedError, RepositoryError
from ..repository.manager import PackageEntry, Repository

# Configure rich-click styling
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"

console = Console()
err_console = Console(stderr=True)

logger = structlog.get_logger(__name__)

QUIET_LEVEL = logging.CRITICAL + 10


def resolve_log_level(quiet: bool, verbose: bool, debug: bool) -> int:
    """Map the global verbosity flags to a logging level."""
    if quiet:
        return QUIET_LEVEL
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def _drop_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> NoReturn:
    raise structlog.DropEvent


def configure_logging(level: int) -> None:
    """Configure structlog and the package's stdlib loggers for one run."""
    processors: list[Any] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.dev.ConsoleRenderer(colors=False),
    ]
    if level > logging.CRITICAL:
        # Filtering bound loggers stop at CRITICAL; quiet runs drop everything
        processors.insert(0, _drop_event)
        level_filter = logging.CRITICAL
    else:
        level_filter = level

    structlog.configure(
        processors=processors,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(level_filter),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("ipm_repo").setLevel(level)


class RepoCLIContext:
    """CLI context for sharing state between commands."""

    def __init__(self):
        self.directory: Path = Path.cwd()
        self.log_level: int = logging.WARNING
        self.quiet: bool = False

    def load_repository(self) -> Repository:
        return Repository.load(self.directory)


def fail(error: RepositoryError) -> NoReturn:
    """Report an error and exit with a non-zero status."""
    logger.debug("command_failed", code=int(error.code), data=error.data)
    err_console.print(f"[red]✗ {escape(error.message)}[/red]", highlight=False)
    sys.exit(1)


def report(ctx: click.Context, message: str) -> None:
    """Print a success message unless running quietly."""
    if not ctx.obj.quiet:
        console.print(f"[green]✓ {escape(message)}[/green]", highlight=False)


@click.group()
@click.option(
    "--quiet", "-q",
    is_flag=True,
    help="Suppress all output except errors"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging"
)
@click.option(
    "--directory", "-C",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="IPM_REPO_DIR",
    help="Directory to search for the repository from (default: current directory)"
)
@click.version_option(version=__version__, prog_name="ipm-repo")
@click.pass_context
def cli(
    ctx: click.Context,
    quiet: bool,
    verbose: bool,
    debug: bool,
    directory: Path | None,
) -> None:
    """
    [bold blue]ipm-repo[/bold blue] - local package repository manager.

    Stores [cyan].ipak[/cyan] package archives in a directory-backed
    repository. Commands run from any subdirectory of a repository.
    """
    if sum([quiet, verbose, debug]) > 1:
        raise click.UsageError("--quiet, --verbose and --debug are mutually exclusive")

    ctx.ensure_object(RepoCLIContext)
    ctx.obj.log_level = resolve_log_level(quiet, verbose, debug)
    ctx.obj.quiet = quiet
    if directory is not None:
        ctx.obj.directory = directory

    configure_logging(ctx.obj.log_level)


@cli.command()
@click.argument("name", required=False)
@click.argument(
    "directory",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.pass_context
def init(ctx: click.Context, name: str | None, directory: Path) -> None:
    """Initialize a new repository in DIRECTORY.

    NAME defaults to the name of the repository directory.
    """
    if name is None:
        name = Path(os.path.abspath(directory)).name

    try:
        repo = Repository.init(name, directory)
    except RepositoryError as e:
        fail(e)

    logger.info("repository_initialized", name=repo.config.name, path=str(repo.path))
    report(ctx, f"Repository '{repo.config.name}' initialized at {repo.path}")


@cli.command()
@click.argument("package_path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def add(ctx: click.Context, package_path: Path) -> None:
    """Add the package archive at PACKAGE_PATH to the repository."""
    try:
        repo = ctx.obj.load_repository()
        package = repo.add_package(package_path)
    except RepositoryError as e:
        fail(e)

    logger.info("package_added", name=package.name, version=package.version)
    report(ctx, f"Added {package.name} {package.version}")


@cli.command()
@click.argument("name")
@click.argument("version")
@click.pass_context
def remove(ctx: click.Context, name: str, version: str) -> None:
    """Remove package NAME at VERSION from the repository."""
    try:
        repo = ctx.obj.load_repository()
        repo.remove_package(name, version)
    except RepositoryError as e:
        fail(e)

    logger.info("package_removed", name=name, version=version)
    report(ctx, f"Removed {name} {version}")


@cli.command("list")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "table", "json"]),
    default="text",
    help="Output format"
)
@click.option(
    "--details", "-d",
    is_flag=True,
    help="Include archive path, size and SHA-256 digest"
)
@click.pass_context
def list_packages(ctx: click.Context, output_format: str, details: bool) -> None:
    """List all packages in the repository."""
    try:
        repo = ctx.obj.load_repository()
        if details:
            rows = [_entry_row(entry) for entry in repo.describe_packages()]
        else:
            rows = [package.model_dump() for package in repo.list_packages()]
    except RepositoryError as e:
        fail(e)

    logger.debug("packages_listed", count=len(rows), repository=repo.config.name)

    if output_format == "json":
        click.echo(json.dumps({"packages": rows}, indent=2, default=str))
        return

    if output_format == "text":
        for row in rows:
            line = f"{row['about']['package']['name']} - {row['about']['package']['version']}"
            if details:
                line += f"  {row['size']} {row['sha256']}"
            click.echo(line)
        return

    title = f"📦 Packages - {escape(repo.config.name)}"
    if not rows:
        console.print(f"[bold cyan]{title}[/bold cyan]")
        console.print("[yellow]No packages found[/yellow]")
        return

    table = Table(title=title, title_style="bold cyan", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="white")
    table.add_column("Description", style="dim")
    if details:
        table.add_column("Size", style="blue", justify="right")
        table.add_column("SHA-256", style="dim", no_wrap=True)

    for row in rows:
        package = row["about"]["package"]
        cells = [package["name"], package["version"], package.get("description", "")]
        if details:
            cells += [str(row["size"]), row["sha256"][:12]]
        table.add_row(*(escape(cell) for cell in cells))

    console.print(table)
    total = len(rows)
    console.print(f"[dim]Total: {total} package{'s' if total != 1 else ''}[/dim]")


def _entry_row(entry: PackageEntry) -> dict[str, Any]:
    return {
        **entry.data.model_dump(),
        "archive": str(entry.archive_path),
        "size": entry.size,
        "sha256": entry.sha256,
        "last_modified": entry.last_modified.isoformat(),
    }


@cli.command()
def build() -> None:
    """Build the package index from the packages directory (not implemented)."""
    fail(CommandNotImplementedError("build"))


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
