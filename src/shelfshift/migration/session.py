# ABOUTME: Migration session tying library items, providers, search, and apply together.
# ABOUTME: Exposes the operations a UI drives: search stream, cancel, prune, apply.

import logging
from collections.abc import AsyncIterator, Iterable, Sequence

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.migration.applier import MigrationApplier, MigrationResult
from shelfshift.migration.cancellation import CancellationToken
from shelfshift.migration.search import SearchOrchestrator
from shelfshift.migration.state import (
    IDLE,
    SEARCHING,
    LibraryStrategy,
    LowerChapterStrategy,
    MigrationItemState,
    OperationState,
    is_match,
)
from shelfshift.sources.provider import ContentProvider
from shelfshift.sources.types import TaggedHighlight

logger = logging.getLogger(__name__)


def items_from_library(
    catalog: LibraryCatalog, entry_ids: Iterable[str] | None = None
) -> list[TaggedHighlight]:
    """Build migration items from live library entries.

    When entry_ids is given, only those entries are used; unknown or
    deleted ids are skipped with a warning.
    """
    if entry_ids is None:
        entries = catalog.list_entries()
    else:
        entries = []
        for entry_id in entry_ids:
            entry = catalog.get_entry(entry_id)
            if entry is None or entry.is_deleted:
                logger.warning("Library entry %s not found, skipping", entry_id)
                continue
            entries.append(entry)

    items = []
    for entry in entries:
        content = catalog.get_content(entry.content_id)
        if content is None:
            logger.warning("Entry %s has no stored content, skipping", entry.id)
            continue
        items.append(
            TaggedHighlight(
                provider_id=content.provider_id,
                content_id=content.content_id,
                title=content.title,
                cover_url=content.cover,
            )
        )
    return items


class MigrationSession:
    """Working set for one migration: the items, their states, and the providers.

    Items are kept sorted by title. Item states live only in this object
    and are discarded with it.
    """

    def __init__(
        self,
        catalog: LibraryCatalog,
        items: Iterable[TaggedHighlight],
        providers: Sequence[ContentProvider],
        *,
        orchestrator: SearchOrchestrator,
        applier: MigrationApplier,
    ) -> None:
        self._catalog = catalog
        self._orchestrator = orchestrator
        self._applier = applier
        self.items: list[TaggedHighlight] = sorted(items, key=lambda item: item.title)
        self.states: dict[str, MigrationItemState] = {}
        self.available_providers: list[ContentProvider] = [
            p for p in providers if p.migration_destination
        ]
        self.preferred_providers: list[ContentProvider] = list(self.available_providers)
        self.operation_state = OperationState.IDLE
        self.last_result: MigrationResult | None = None
        self._token: CancellationToken | None = None

    def set_preferred_providers(self, provider_ids: Sequence[str]) -> None:
        """Choose destination providers and their tie-break order.

        Raises:
            ValueError: If an id is not an available destination.
        """
        by_id = {p.id: p for p in self.available_providers}
        unknown = [pid for pid in provider_ids if pid not in by_id]
        if unknown:
            raise ValueError(f"Unknown destination provider(s): {', '.join(unknown)}")
        self.preferred_providers = [by_id[pid] for pid in provider_ids]

    def state_of(self, item_id: str) -> MigrationItemState:
        return self.states.get(item_id, IDLE)

    def _tracked_chapter(self, item: TaggedHighlight) -> float | None:
        latest = self._catalog.latest_stored_chapter(item.identifier)
        return latest.number if latest is not None else None

    async def start_search(self) -> AsyncIterator[tuple[str, MigrationItemState]]:
        """Search every item in turn, yielding (item id, state) updates.

        Each item is announced as Searching, then its terminal state follows.
        Items are searched one after another. After cancel(), the item in
        flight is reset to Idle and the stream ends.
        """
        token = CancellationToken()
        self._token = token
        self.operation_state = OperationState.SEARCHING
        providers = list(self.preferred_providers)

        for item in list(self.items):
            if token.cancelled:
                break
            if not self._has_item(item.id):
                continue

            self.states[item.id] = SEARCHING
            yield item.id, SEARCHING

            state = await self._orchestrator.search(
                item, self._tracked_chapter(item), providers, token
            )
            if not self._has_item(item.id):
                continue
            self.states[item.id] = state
            yield item.id, state

        self.operation_state = (
            OperationState.CANCELLED if token.cancelled else OperationState.SEARCH_COMPLETE
        )

    async def search_all(self) -> dict[str, MigrationItemState]:
        """Run start_search to completion and return the collected states."""
        async for _ in self.start_search():
            pass
        return dict(self.states)

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()

    def _has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.items)

    def remove_item(self, item_id: str) -> None:
        """Drop one item and its state from the working set."""
        self.items = [item for item in self.items if item.id != item_id]
        self.states.pop(item_id, None)

    def filter_non_matches(self) -> list[str]:
        """Remove every item without a usable match. Returns the removed ids."""
        removed = [item.id for item in self.items if not is_match(self.state_of(item.id))]
        for item_id in removed:
            self.remove_item(item_id)
        return removed

    def apply_migration(
        self,
        library_strategy: LibraryStrategy,
        lower_chapter_strategy: LowerChapterStrategy,
    ) -> bool:
        """Apply the current states to the library. Returns True on success."""
        self.operation_state = OperationState.MIGRATING
        states = {item.id: self.state_of(item.id) for item in self.items}
        result = self._applier.apply(states, library_strategy, lower_chapter_strategy)
        self.last_result = result
        self.operation_state = (
            OperationState.MIGRATION_COMPLETE if result.success else OperationState.MIGRATION_FAILED
        )
        return result.success
