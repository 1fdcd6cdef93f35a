# ABOUTME: Migration item states and user-selectable migration strategies.
# ABOUTME: MigrationItemState is a closed union of idle/searching/found/lowerFind/noMatches.

from dataclasses import dataclass
from enum import Enum
from typing import Union

from shelfshift.sources.types import TaggedHighlight


class LibraryStrategy(str, Enum):
    """How a matched entry is carried over to its new content."""

    LINK = "link"
    REPLACE = "replace"


class LowerChapterStrategy(str, Enum):
    """What to do with matches that are behind the user's tracked chapter."""

    SKIP = "skip"
    MIGRATE = "migrate"


class OperationState(str, Enum):
    """Lifecycle of a migration session as a whole."""

    IDLE = "idle"
    SEARCHING = "searching"
    SEARCH_COMPLETE = "search_complete"
    CANCELLED = "cancelled"
    MIGRATING = "migrating"
    MIGRATION_COMPLETE = "migration_complete"
    MIGRATION_FAILED = "migration_failed"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Searching:
    pass


@dataclass(frozen=True)
class Found:
    """A match at or beyond the tracked chapter."""

    candidate: TaggedHighlight
    chapter_count: int


@dataclass(frozen=True)
class LowerFind:
    """A match that exists but trails the chapter the user already tracks."""

    candidate: TaggedHighlight
    tracked_chapter: float
    matched_chapter: float
    chapter_count: int


@dataclass(frozen=True)
class NoMatches:
    pass


MigrationItemState = Union[Idle, Searching, Found, LowerFind, NoMatches]

IDLE = Idle()
SEARCHING = Searching()
NO_MATCHES = NoMatches()


def is_match(state: MigrationItemState) -> bool:
    """Whether a state carries a candidate the applier could act on."""
    return isinstance(state, (Found, LowerFind))


def state_label(state: MigrationItemState) -> str:
    """Short human-readable name for a state."""
    if isinstance(state, Found):
        return "found"
    if isinstance(state, LowerFind):
        return "lower"
    if isinstance(state, NoMatches):
        return "no matches"
    if isinstance(state, Searching):
        return "searching"
    return "idle"
