# ABOUTME: The `shelfshift ls` command for listing library entries.
# ABOUTME: Displays a Rich table of tracked entries with provider, flag, and unread count.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfshift.cli.options import db_option
from shelfshift.db.connection import open_catalog


@click.command("ls")
@db_option
@click.option(
    "--all",
    "include_deleted",
    is_flag=True,
    default=False,
    help="Include entries removed by earlier migrations.",
)
def ls(db_path: Path | None, include_deleted: bool) -> None:
    """List the entries in the library."""
    console = Console()
    with open_catalog(db_path) as catalog:
        entries = catalog.list_entries(include_deleted=include_deleted)

        if not entries:
            console.print("[yellow]No entries in the library.[/yellow]")
            return

        table = Table()
        table.add_column("ID", style="dim")
        table.add_column("Title", style="bold")
        table.add_column("Provider")
        table.add_column("Flag")
        table.add_column("Unread", justify="right")
        table.add_column("Links", justify="right")

        for entry in entries:
            content = catalog.get_content(entry.content_id)
            title = content.title if content else "[dim]missing content[/dim]"
            if entry.is_deleted:
                title = f"[strike]{title}[/strike]"
            table.add_row(
                entry.id,
                title,
                content.provider_id if content else "?",
                entry.flag.value,
                str(entry.unread_count),
                str(len(catalog.links_for_entry(entry.id))),
            )

    console.print(table)
    console.print(f"\n[dim]{len(entries)} entr{'ies' if len(entries) != 1 else 'y'}[/dim]")
