# ABOUTME: The `shelfshift migrate` command for moving entries to other providers.
# ABOUTME: Searches destination providers, shows the matches, and applies the migration.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
)
from rich.table import Table

from shelfshift.cli.options import backup_dir_option, db_option, provider_option
from shelfshift.db.backup import BackupManager
from shelfshift.db.connection import DEFAULT_BACKUP_DIR, open_catalog
from shelfshift.migration.applier import MigrationApplier, MigrationResult
from shelfshift.migration.notify import ConsoleNotifier
from shelfshift.migration.search import SearchOrchestrator
from shelfshift.migration.session import MigrationSession, items_from_library
from shelfshift.migration.state import (
    Found,
    LibraryStrategy,
    LowerChapterStrategy,
    LowerFind,
    Searching,
    state_label,
)
from shelfshift.sources.filtering import ChapterFilter, KeepAllChapters, LanguageChapterFilter
from shelfshift.sources.http import HttpClient, ProviderHttpClient
from shelfshift.sources.provider import ContentProvider
from shelfshift.sources.remote import HttpContentProvider

_STATE_STYLES = {
    "found": "green",
    "lower": "yellow",
    "no matches": "red",
    "idle": "dim",
}


def _entries(count: int) -> str:
    return f"{count} entr{'ies' if count != 1 else 'y'}"


def _create_providers(
    specs: list[tuple[str, str]], http_client: HttpClient
) -> list[ContentProvider]:
    """Create HTTP providers from (id, base_url) specs, preserving order."""
    return [HttpContentProvider(provider_id, url, http_client) for provider_id, url in specs]


def _make_progress(console: Console) -> Progress:
    """Create a Rich progress bar for the search phase."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    )


async def _run_search(
    session: MigrationSession, http_client: ProviderHttpClient, progress: Progress
) -> None:
    task_id = progress.add_task("Searching", total=len(session.items))
    titles = {item.id: item.title for item in session.items}
    async with http_client:
        async for item_id, state in session.start_search():
            if isinstance(state, Searching):
                progress.update(task_id, description=titles.get(item_id, item_id))
            else:
                progress.advance(task_id)


def _results_table(session: MigrationSession) -> Table:
    table = Table(title="Search results")
    table.add_column("Entry", style="bold")
    table.add_column("Result")
    table.add_column("Match")
    table.add_column("Provider", style="dim")
    table.add_column("Chapters", justify="right")

    for item in session.items:
        state = session.state_of(item.id)
        label = state_label(state)
        style = _STATE_STYLES.get(label, "")
        match_title = provider = chapters = ""
        if isinstance(state, Found):
            match_title = state.candidate.title
            provider = state.candidate.provider_id
            chapters = str(state.chapter_count)
        elif isinstance(state, LowerFind):
            match_title = state.candidate.title
            provider = state.candidate.provider_id
            chapters = (
                f"{state.chapter_count} "
                f"(ch. {state.matched_chapter:g} < {state.tracked_chapter:g})"
            )
        table.add_row(item.title, f"[{style}]{label}[/{style}]", match_title, provider, chapters)
    return table



def _print_summary(console: Console, result: MigrationResult) -> None:
    parts = []
    if result.replaced:
        parts.append(f"[green]{result.replaced} replaced[/green]")
    if result.linked:
        parts.append(f"[green]{result.linked} linked[/green]")
    if result.skipped:
        parts.append(f"[yellow]{result.skipped} skipped[/yellow]")
    console.print(f"\nDone: {', '.join(parts) or 'no changes'}")
    if result.progress_carried:
        console.print(f"[dim]{result.progress_carried} read chapter(s) carried over.[/dim]")


@click.command()
@click.argument("entry_ids", nargs=-1)
@db_option
@backup_dir_option
@provider_option
@click.option(
    "-s",
    "--strategy",
    type=click.Choice([s.value for s in LibraryStrategy]),
    default=LibraryStrategy.REPLACE.value,
    show_default=True,
    help="Replace entries with the match, or link the match alongside them.",
)
@click.option(
    "--lower-chapters",
    type=click.Choice([s.value for s in LowerChapterStrategy]),
    default=LowerChapterStrategy.SKIP.value,
    show_default=True,
    help="Whether to migrate matches that are behind your tracked chapter.",
)
@click.option(
    "-l",
    "--language",
    "languages",
    multiple=True,
    help="Only count chapters in this language. Repeatable.",
)
@click.option(
    "--keep-non-matches",
    is_flag=True,
    default=False,
    help="Keep entries without a match in the result table.",
)
@click.option("--dry-run", is_flag=True, default=False, help="Search only; change nothing.")
@click.option("-y", "--yes", is_flag=True, default=False, help="Apply without asking.")
def migrate(
    entry_ids: tuple[str, ...],
    db_path: Path | None,
    backup_dir: Path | None,
    provider_specs: list[tuple[str, str]],
    strategy: str,
    lower_chapters: str,
    languages: tuple[str, ...],
    keep_non_matches: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Move library entries (all, or ENTRY_IDS) to matching content on other providers."""
    console = Console()
    with open_catalog(db_path) as catalog:
        items = items_from_library(catalog, entry_ids or None)
        if not items:
            console.print("[yellow]No library entries to migrate.[/yellow]")
            return

        chapter_filter: ChapterFilter = (
            LanguageChapterFilter(languages) if languages else KeepAllChapters()
        )
        http_client = ProviderHttpClient()
        providers = _create_providers(provider_specs, http_client)
        backup = BackupManager(catalog, backup_dir or DEFAULT_BACKUP_DIR)
        session = MigrationSession(
            catalog,
            items,
            providers,
            orchestrator=SearchOrchestrator(catalog, chapter_filter),
            applier=MigrationApplier(
                catalog,
                backup,
                chapter_filter=chapter_filter,
                notifier=ConsoleNotifier(console),
            ),
        )
        if not session.preferred_providers:
            console.print("[red]None of the providers accept migrations.[/red]")
            raise SystemExit(1)

        console.print(
            f"Searching [bold]{_entries(len(session.items))}[/bold] on "
            f"{', '.join(p.id for p in session.preferred_providers)}\n"
        )
        with _make_progress(console) as progress:
            try:
                asyncio.run(_run_search(session, http_client, progress))
            except KeyboardInterrupt:
                console.print("[yellow]Search cancelled.[/yellow]")
                raise SystemExit(1) from None

        console.print(_results_table(session))

        if not keep_non_matches:
            removed = session.filter_non_matches()
            if removed:
                console.print(f"[dim]Dropped {_entries(len(removed))} without a match.[/dim]")

        if not session.items:
            console.print("[yellow]Nothing to migrate.[/yellow]")
            return

        if dry_run:
            console.print("[dim]Dry run: no changes made.[/dim]")
            return

        if not yes and not click.confirm(
            f"Migrate {_entries(len(session.items))} using '{strategy}'?",
            default=False,
        ):
            console.print("[yellow]Migration aborted.[/yellow]")
            return

        ok = session.apply_migration(
            LibraryStrategy(strategy), LowerChapterStrategy(lower_chapters)
        )
        result = session.last_result
        if not ok or result is None:
            raise SystemExit(1)

        _print_summary(console, result)
