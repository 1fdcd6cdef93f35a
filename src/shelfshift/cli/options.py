# ABOUTME: Shared Click options for shelfshift CLI commands.
# ABOUTME: Provides reusable decorators for --db, --backup-dir, and --provider.

from pathlib import Path

import click

from shelfshift.db.connection import DEFAULT_BACKUP_DIR, DEFAULT_DB_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    envvar="SHELFSHIFT_DB",
    help=f"Path to library database (default: {DEFAULT_DB_PATH})",
)

backup_dir_option = click.option(
    "--backup-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    envvar="SHELFSHIFT_BACKUP_DIR",
    help=f"Directory for library snapshots (default: {DEFAULT_BACKUP_DIR})",
)


def _parse_providers(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[tuple[str, str]]:
    """Split ID=URL provider specs, keeping command-line order."""
    specs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for value in values:
        provider_id, sep, url = value.partition("=")
        provider_id, url = provider_id.strip(), url.strip()
        if not sep or not provider_id or not url:
            raise click.BadParameter(f"expected ID=URL, got {value!r}")
        if provider_id in seen:
            raise click.BadParameter(f"provider {provider_id!r} given twice")
        seen.add(provider_id)
        specs.append((provider_id, url))
    return specs


provider_option = click.option(
    "-p",
    "--provider",
    "provider_specs",
    multiple=True,
    required=True,
    callback=_parse_providers,
    help="Destination provider as ID=BASE_URL. Repeat; earlier providers win ties.",
)
