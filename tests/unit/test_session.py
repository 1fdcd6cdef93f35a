# ABOUTME: Unit tests for MigrationSession and library item selection.
# ABOUTME: Covers the search update stream, cancel, pruning, provider choice, and apply states.

import asyncio
from collections.abc import Callable, Sequence

import pytest

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.migration.session import MigrationSession, items_from_library
from shelfshift.migration.state import (
    IDLE,
    SEARCHING,
    Found,
    Idle,
    LibraryStrategy,
    LowerChapterStrategy,
    LowerFind,
    NoMatches,
    OperationState,
)
from shelfshift.sources.provider import ContentProvider
from tests.fixtures.fakes import FakeProvider
from tests.fixtures.library import add_tracked, chapters

SessionFactory = Callable[[Sequence[ContentProvider]], MigrationSession]


async def _collect(session: MigrationSession) -> list[tuple[str, object]]:
    return [update async for update in session.start_search()]


@pytest.fixture
def library(catalog: LibraryCatalog) -> LibraryCatalog:
    """Three tracked series with differing read positions."""
    add_tracked(catalog, "origin", "zom", "Zom 100", numbers=(1, 2, 3))
    add_tracked(catalog, "origin", "bp", "Blue Period", numbers=(1, 2, 3, 4, 5), read=(1, 2))
    add_tracked(catalog, "origin", "ak", "Akane-banashi", numbers=(1,))
    return catalog


def _dest(**overrides) -> FakeProvider:
    catalog = {
        "Akane-banashi": ("ak-d", chapters(1, 2)),
        "Blue Period": ("bp-d", chapters(1, 2, 3)),
    }
    return FakeProvider("dest", catalog, **overrides)


class TestItemsFromLibrary:
    """Tests for items_from_library."""

    def test_all_live_entries(self, library: LibraryCatalog) -> None:
        library.mark_entry_deleted("origin||zom")
        items = items_from_library(library)
        assert sorted(item.id for item in items) == ["origin||ak", "origin||bp"]

    def test_selected_entries_skip_unknown(
        self, library: LibraryCatalog, caplog: pytest.LogCaptureFixture
    ) -> None:
        items = items_from_library(library, ["origin||bp", "origin||nope"])
        assert [item.title for item in items] == ["Blue Period"]
        assert "origin||nope" in caplog.text


class TestSearchStream:
    """Tests for MigrationSession.start_search."""

    def test_items_sorted_by_title(self, library: LibraryCatalog, make_session: SessionFactory) -> None:
        session = make_session([_dest()])
        assert [item.title for item in session.items] == ["Akane-banashi", "Blue Period", "Zom 100"]

    def test_each_item_searching_then_terminal(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([_dest()])
        updates = asyncio.run(_collect(session))

        assert [item_id for item_id, _ in updates] == [
            "origin||ak", "origin||ak",
            "origin||bp", "origin||bp",
            "origin||zom", "origin||zom",
        ]
        assert updates[0][1] == SEARCHING
        assert isinstance(updates[1][1], Found)
        assert isinstance(updates[3][1], LowerFind)
        assert isinstance(updates[5][1], NoMatches)
        assert session.operation_state is OperationState.SEARCH_COMPLETE

    def test_tracked_chapter_comes_from_cache(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([_dest()])
        asyncio.run(session.search_all())
        state = session.state_of("origin||bp")
        assert isinstance(state, LowerFind)
        assert state.tracked_chapter == 5
        assert state.matched_chapter == 3

    def test_untouched_item_is_idle(self, library: LibraryCatalog, make_session: SessionFactory) -> None:
        session = make_session([_dest()])
        assert session.state_of("origin||bp") == IDLE

    def test_cancel_stops_stream(self, library: LibraryCatalog, make_session: SessionFactory) -> None:
        provider = _dest()
        session = make_session([provider])

        async def _run() -> list[tuple[str, object]]:
            updates = []
            async for item_id, state in session.start_search():
                updates.append((item_id, state))
                if state != SEARCHING:
                    session.cancel()
            return updates

        updates = asyncio.run(_run())
        assert len(updates) == 2
        assert session.operation_state is OperationState.CANCELLED
        assert provider.queries == ["Akane-banashi"]

    def test_cancel_resets_in_flight_item(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        provider = _dest(delay=5.0)
        session = make_session([provider])

        async def _run() -> list[tuple[str, object]]:
            updates = []
            async for item_id, state in session.start_search():
                updates.append((item_id, state))
                if state == SEARCHING:
                    asyncio.get_running_loop().call_later(0.05, session.cancel)
            return updates

        updates = asyncio.run(asyncio.wait_for(_run(), timeout=2.0))
        assert updates == [("origin||ak", SEARCHING), ("origin||ak", IDLE)]
        assert isinstance(session.state_of("origin||ak"), Idle)
        assert provider.cancelled
        assert session.operation_state is OperationState.CANCELLED

    def test_removed_item_is_not_searched(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        provider = _dest()
        session = make_session([provider])
        session.remove_item("origin||bp")
        asyncio.run(session.search_all())
        assert "Blue Period" not in provider.queries
        assert "origin||bp" not in session.states


class TestProviders:
    """Tests for destination provider handling."""

    def test_only_destinations_are_available(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([_dest(), FakeProvider("local", migration_destination=False)])
        assert [p.id for p in session.available_providers] == ["dest"]
        assert [p.id for p in session.preferred_providers] == ["dest"]

    def test_set_preferred_providers_orders(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([FakeProvider("a"), FakeProvider("b"), FakeProvider("c")])
        session.set_preferred_providers(["c", "a"])
        assert [p.id for p in session.preferred_providers] == ["c", "a"]

    def test_set_unknown_provider_raises(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([FakeProvider("a"), FakeProvider("local", migration_destination=False)])
        with pytest.raises(ValueError, match="local"):
            session.set_preferred_providers(["a", "local"])


class TestPruneAndApply:
    """Tests for filter_non_matches and apply_migration."""

    def test_filter_non_matches(self, library: LibraryCatalog, make_session: SessionFactory) -> None:
        session = make_session([_dest()])
        asyncio.run(session.search_all())
        removed = session.filter_non_matches()
        assert removed == ["origin||zom"]
        assert [item.id for item in session.items] == ["origin||ak", "origin||bp"]
        assert "origin||zom" not in session.states

    def test_apply_migration_success(
        self, library: LibraryCatalog, make_session: SessionFactory
    ) -> None:
        session = make_session([_dest()])
        asyncio.run(session.search_all())
        session.filter_non_matches()

        assert session.apply_migration(LibraryStrategy.REPLACE, LowerChapterStrategy.SKIP)
        assert session.operation_state is OperationState.MIGRATION_COMPLETE
        assert session.last_result is not None
        assert session.last_result.replaced == 1
        assert session.last_result.skipped == 1

        migrated = library.get_entry("dest||ak-d")
        assert migrated is not None
        assert migrated.unread_count == 2
        blue = library.get_entry("origin||bp")
        assert blue is not None
        assert not blue.is_deleted

    def test_apply_migration_failure_state(
        self,
        library: LibraryCatalog,
        make_session: SessionFactory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        session = make_session([_dest()])
        asyncio.run(session.search_all())

        def _boom(entry_id: str) -> None:
            raise RuntimeError("locked")

        monkeypatch.setattr(library, "mark_entry_deleted", _boom)
        assert not session.apply_migration(LibraryStrategy.REPLACE, LowerChapterStrategy.MIGRATE)
        assert session.operation_state is OperationState.MIGRATION_FAILED
        assert library.get_entry("origin||ak") is not None
        assert library.get_entry("dest||ak-d") is None
