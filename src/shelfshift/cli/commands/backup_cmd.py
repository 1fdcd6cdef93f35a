# ABOUTME: The `shelfshift backup` and `shelfshift restore` commands.
# ABOUTME: Snapshot the library to JSON, list snapshots, and restore one.

from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from shelfshift.cli.options import backup_dir_option, db_option
from shelfshift.db.backup import BackupError, BackupManager
from shelfshift.db.connection import DEFAULT_BACKUP_DIR, open_catalog


@click.command()
@db_option
@backup_dir_option
@click.option("--label", default="Manual", show_default=True, help="Snapshot name prefix.")
@click.option("--list", "list_only", is_flag=True, default=False, help="List snapshots instead.")
def backup(
    db_path: Path | None, backup_dir: Path | None, label: str, list_only: bool
) -> None:
    """Write a full snapshot of the library."""
    console = Console()
    with open_catalog(db_path) as catalog:
        manager = BackupManager(catalog, backup_dir or DEFAULT_BACKUP_DIR)

        if list_only:
            paths = manager.list_backups()
            if not paths:
                console.print("[yellow]No backups found.[/yellow]")
                return
            table = Table()
            table.add_column("File", style="bold")
            table.add_column("Written")
            for path in paths:
                written = datetime.fromtimestamp(path.stat().st_mtime)
                table.add_row(path.name, written.strftime("%Y-%m-%d %H:%M:%S"))
            console.print(table)
            return

        try:
            path = manager.save(label)
        except BackupError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc
    console.print(f"[green]Backup written:[/green] {path}")


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@db_option
@click.option("-y", "--yes", is_flag=True, default=False, help="Restore without asking.")
def restore(path: Path, db_path: Path | None, yes: bool) -> None:
    """Replace the library with the snapshot at PATH."""
    console = Console()
    if not yes and not click.confirm(
        "This replaces everything in the library. Continue?", default=False
    ):
        console.print("[yellow]Restore aborted.[/yellow]")
        return

    with open_catalog(db_path) as catalog:
        manager = BackupManager(catalog, path.parent)
        try:
            counts = manager.restore(path)
        except BackupError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

    entries = counts.get("library_entries", 0)
    console.print(
        f"[green]Restored[/green] {entries} entr{'ies' if entries != 1 else 'y'} from {path.name}"
    )
