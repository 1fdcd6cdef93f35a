# ABOUTME: CLI package for shelfshift, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from shelfshift.cli.commands import backup_cmd, ls_cmd, migrate_cmd


@click.group()
@click.version_option(package_name="shelfshift")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """shelfshift - move library entries between content providers."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


cli.add_command(ls_cmd.ls)
cli.add_command(migrate_cmd.migrate)
cli.add_command(backup_cmd.backup)
cli.add_command(backup_cmd.restore)
