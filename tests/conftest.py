# ABOUTME: Shared pytest fixtures for shelfshift tests.
# ABOUTME: Provides a temporary library catalog, backup manager, and session factory.

from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

import pytest

from shelfshift.db.backup import BackupManager
from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.connection import open_catalog
from shelfshift.migration.applier import MigrationApplier
from shelfshift.migration.notify import LoggingNotifier
from shelfshift.migration.search import SearchOrchestrator
from shelfshift.migration.session import MigrationSession, items_from_library
from shelfshift.sources.provider import ContentProvider


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a temporary library database."""
    return tmp_path / "library.db"


@pytest.fixture
def catalog(db_path: Path) -> Iterator[LibraryCatalog]:
    """A LibraryCatalog backed by a fresh temporary database."""
    with open_catalog(db_path) as catalog:
        yield catalog


@pytest.fixture
def backup_dir(tmp_path: Path) -> Path:
    return tmp_path / "backups"


@pytest.fixture
def backup(catalog: LibraryCatalog, backup_dir: Path) -> BackupManager:
    return BackupManager(catalog, backup_dir)


@pytest.fixture
def notifier() -> LoggingNotifier:
    return LoggingNotifier()


@pytest.fixture
def applier(
    catalog: LibraryCatalog, backup: BackupManager, notifier: LoggingNotifier
) -> MigrationApplier:
    return MigrationApplier(catalog, backup, notifier=notifier)


@pytest.fixture
def make_session(
    catalog: LibraryCatalog, applier: MigrationApplier
) -> Callable[[Sequence[ContentProvider]], MigrationSession]:
    """Factory building a MigrationSession over every live library entry."""

    def _make(providers: Sequence[ContentProvider]) -> MigrationSession:
        return MigrationSession(
            catalog,
            items_from_library(catalog),
            providers,
            orchestrator=SearchOrchestrator(catalog),
            applier=applier,
        )

    return _make
