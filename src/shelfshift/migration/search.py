# ABOUTME: Concurrent multi-provider search for one library item's migration candidate.
# ABOUTME: Fans out to providers, caches chapters, and reduces results to a single state.

import asyncio
import logging
import sqlite3
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.mapping import StoredChapter
from shelfshift.migration.cancellation import CancellationToken
from shelfshift.migration.state import (
    IDLE,
    NO_MATCHES,
    Found,
    LowerFind,
    MigrationItemState,
)
from shelfshift.sources.filtering import ChapterFilter, KeepAllChapters
from shelfshift.sources.provider import ContentProvider
from shelfshift.sources.types import TaggedHighlight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResult:
    """One provider's best candidate and its most advanced chapter."""

    candidate: TaggedHighlight
    matched_chapter: float
    chapter_count: int


def _provider_ranks(provider_order: Sequence[str]) -> dict[str, int]:
    ranks: dict[str, int] = {}
    for index, provider_id in enumerate(provider_order):
        ranks.setdefault(provider_id, index)
    return ranks


def select_candidate(
    item_id: str,
    results: Iterable[ProviderResult],
    provider_order: Sequence[str],
) -> ProviderResult | None:
    """Pick the winning candidate among per-provider results.

    The highest matched chapter wins. Ties go to the provider listed first
    in provider_order; providers missing from the order lose every tie.
    A candidate pointing back at the item itself is discarded unless only
    one provider was searched. The outcome does not depend on the order
    in which results arrive.
    """
    single_provider = len(provider_order) == 1
    ranks = _provider_ranks(provider_order)

    best: ProviderResult | None = None
    for result in results:
        if not single_provider and result.candidate.id == item_id:
            continue
        if best is None or _beats(result, best, ranks):
            best = result
    return best


def _beats(challenger: ProviderResult, current: ProviderResult, ranks: dict[str, int]) -> bool:
    if challenger.matched_chapter != current.matched_chapter:
        return challenger.matched_chapter > current.matched_chapter
    challenger_rank = ranks.get(challenger.candidate.provider_id, sys.maxsize)
    current_rank = ranks.get(current.candidate.provider_id, sys.maxsize)
    return challenger_rank < current_rank


def classify(best: ProviderResult | None, tracked_chapter: float | None) -> MigrationItemState:
    """Turn the winning result into a terminal item state."""
    if best is None:
        return NO_MATCHES
    if not tracked_chapter or best.matched_chapter >= tracked_chapter:
        return Found(candidate=best.candidate, chapter_count=best.chapter_count)
    return LowerFind(
        candidate=best.candidate,
        tracked_chapter=tracked_chapter,
        matched_chapter=best.matched_chapter,
        chapter_count=best.chapter_count,
    )


class SearchOrchestrator:
    """Searches every destination provider for one library item at a time.

    Provider queries for an item run concurrently. Every chapter list that
    comes back is filtered and cached in the catalog, whether or not its
    provider wins.
    """

    def __init__(
        self,
        catalog: LibraryCatalog,
        chapter_filter: ChapterFilter | None = None,
    ) -> None:
        self._catalog = catalog
        self._filter = chapter_filter or KeepAllChapters()

    async def search(
        self,
        item: TaggedHighlight,
        tracked_chapter: float | None,
        providers: Sequence[ContentProvider],
        token: CancellationToken | None = None,
    ) -> MigrationItemState:
        """Search all providers for item and classify the outcome.

        Args:
            item: The library item being migrated.
            tracked_chapter: Newest chapter number the user has for the item.
            providers: Destination providers, in tie-break order.
            token: Cancellation token; when cancelled, in-flight provider
                calls are abandoned and Idle is returned.

        Returns:
            Found, LowerFind, or NoMatches; Idle if cancelled.
        """
        token = token or CancellationToken()
        tasks: list[asyncio.Task[ProviderResult | None]] = []
        for provider in providers:
            if token.cancelled:
                for task in tasks:
                    task.cancel()
                return IDLE
            tasks.append(
                asyncio.create_task(
                    self._search_provider(item.title, provider),
                    name=f"search:{provider.id}",
                )
            )

        results = await self._collect(tasks, token)
        if results is None:
            logger.info("Search for %s cancelled", item.title)
            return IDLE

        best = select_candidate(item.id, results, [p.id for p in providers])
        state = classify(best, tracked_chapter)
        logger.debug("Search for %s finished: %s", item.title, state)
        return state

    async def _collect(
        self,
        tasks: list[asyncio.Task[ProviderResult | None]],
        token: CancellationToken,
    ) -> list[ProviderResult] | None:
        """Gather provider results as they complete; None if cancelled first."""
        results: list[ProviderResult] = []
        pending = set(tasks)
        waiter = asyncio.ensure_future(token.wait())
        try:
            while pending:
                done, _ = await asyncio.wait(
                    pending | {waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    if task is waiter:
                        continue
                    pending.discard(task)
                    result = task.result()
                    if result is not None:
                        results.append(result)
                if token.cancelled:
                    return None
        finally:
            waiter.cancel()
            for task in pending:
                task.cancel()
        return results

    async def _search_provider(
        self, query: str, provider: ContentProvider
    ) -> ProviderResult | None:
        """Query one provider and resolve its first result's chapters.

        Provider failures are logged and produce no result. A failure to
        cache the chapters is a library error, not a provider error: it is
        logged and re-raised, which abandons the remaining providers.
        """
        try:
            candidate = await provider.search(query)
            if candidate is None:
                return None
            chapters = await provider.fetch_chapters(candidate.content_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Provider %s failed while searching %r", provider.id, query, exc_info=True)
            return None

        if not chapters:
            logger.debug("Provider %s returned no chapters for %r", provider.id, query)
            return None

        identifier = candidate.identifier
        filtered = self._filter.filter(chapters, identifier)
        try:
            self._catalog.store_chapters(
                identifier,
                (
                    StoredChapter.from_chapter(chapter, identifier, index)
                    for index, chapter in enumerate(filtered)
                ),
            )
        except sqlite3.Error:
            logger.error("Could not cache chapters of %s from provider %s", query, provider.id)
            raise
        if not filtered:
            return None

        return ProviderResult(
            candidate=candidate,
            matched_chapter=filtered[0].number,
            chapter_count=len(filtered),
        )
