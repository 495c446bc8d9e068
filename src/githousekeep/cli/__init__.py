"""
git-housekeep CLI.

Modes (default: housekeep the current directory only):

    git-housekeep --register [PATH]   register a repository and exit
    git-housekeep --checkall          housekeep every registered repository
    git-housekeep --fast              never prompt

Entry point: githousekeep.cli:main
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape

from .. import HOUSEKEEP_HOME, HousekeepError, __version__
from ..config import load_config
from ..housekeeper import Housekeeper
from ..prompts import ClickPrompter
from ..registry import AlreadyRegisteredError, RepoRegistry
from ._common import console, setup_logging


def _print_help(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print usage and exit with status 1."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help())
    ctx.exit(1)


@click.command(context_settings={"help_option_names": []})
@click.option(
    "--register", "register_path",
    is_flag=False, flag_value=".", default=None, metavar="[PATH]",
    help="Register a repository (default: current directory) and exit.",
)
@click.option("--checkall", is_flag=True, help="Housekeep every registered repository.")
@click.option(
    "--fast", is_flag=True,
    help="Never prompt: unknown files are skipped for this run, no skip or shell offers.",
)
@click.option(
    "--home", default=HOUSEKEEP_HOME, type=click.Path(), show_default=True,
    help="Directory holding the housekeeping store.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr.")
@click.version_option(version=__version__, prog_name="git-housekeep")
@click.option(
    "--help", is_flag=True, expose_value=False, is_eager=True,
    callback=_print_help, help="Show this message and exit.",
)
def main(
    register_path: Optional[str],
    checkall: bool,
    fast: bool,
    home: str,
    verbose: bool,
):
    """Housekeep git repositories: back up untracked files you keep,
    remember the ones you ignore, and delete merged branches.

    Without --register or --checkall, only the current directory is
    processed; it does not need to be registered.
    """
    setup_logging(verbose)

    if register_path is not None and checkall:
        raise click.UsageError("--register and --checkall cannot be combined.")

    try:
        config = load_config(Path(home))
        store = config.open_store()

        if register_path is not None:
            repo = RepoRegistry(store).register(register_path)
            console.print(f"[green]Registered[/] {escape(str(repo))}")
            return

        if checkall:
            repos = RepoRegistry(store).list_all()
            if not repos:
                console.print(
                    "[yellow]No repositories registered.[/] "
                    "Run: git-housekeep --register PATH"
                )
                return
        else:
            repos = [Path.cwd()]

        housekeeper = Housekeeper(
            store, ClickPrompter(), fast=fast, config=config, console=console,
        )
        housekeeper.run(repos)
    except AlreadyRegisteredError as exc:
        console.print(f"[yellow]{escape(str(exc))}[/]")
        sys.exit(1)
    except HousekeepError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/]")
        sys.exit(1)
