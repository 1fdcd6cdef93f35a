# ABOUTME: Migration engine: candidate search, item states, and the atomic applier.
# ABOUTME: Exports the session facade and the building blocks it is made of.

from shelfshift.migration.applier import MigrationApplier, MigrationResult
from shelfshift.migration.cancellation import CancellationToken
from shelfshift.migration.notify import ConsoleNotifier, LoggingNotifier, Notifier
from shelfshift.migration.search import (
    ProviderResult,
    SearchOrchestrator,
    classify,
    select_candidate,
)
from shelfshift.migration.session import MigrationSession, items_from_library
from shelfshift.migration.state import (
    Found,
    Idle,
    LibraryStrategy,
    LowerChapterStrategy,
    LowerFind,
    MigrationItemState,
    NoMatches,
    OperationState,
    Searching,
)

__all__ = [
    "CancellationToken",
    "ConsoleNotifier",
    "Found",
    "Idle",
    "LibraryStrategy",
    "LoggingNotifier",
    "LowerChapterStrategy",
    "LowerFind",
    "MigrationApplier",
    "MigrationItemState",
    "MigrationResult",
    "MigrationSession",
    "NoMatches",
    "Notifier",
    "OperationState",
    "ProviderResult",
    "SearchOrchestrator",
    "Searching",
    "classify",
    "items_from_library",
    "select_candidate",
]
