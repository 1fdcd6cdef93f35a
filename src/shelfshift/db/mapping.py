# ABOUTME: Record types for the library tables and conversion from SQLite rows.
# ABOUTME: Every record is addressed by a stable string id rather than object references.

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shelfshift.sources.types import Chapter, ContentIdentifier, TaggedHighlight, order_key


class LibraryFlag(str, Enum):
    """Reading status flag a user attaches to a library entry."""

    UNKNOWN = "unknown"
    READING = "reading"
    PLANNED = "planned"
    COMPLETED = "completed"
    DROPPED = "dropped"
    REREADING = "rereading"
    PAUSED = "paused"


@dataclass
class StoredContent:
    """A piece of content known to the library."""

    id: str
    provider_id: str
    content_id: str
    title: str
    cover: str | None = None
    is_deleted: bool = False

    @property
    def identifier(self) -> ContentIdentifier:
        return ContentIdentifier(self.provider_id, self.content_id)

    @classmethod
    def from_highlight(cls, highlight: TaggedHighlight) -> "StoredContent":
        return cls(
            id=highlight.id,
            provider_id=highlight.provider_id,
            content_id=highlight.content_id,
            title=highlight.title,
            cover=highlight.cover_url,
        )


@dataclass
class StoredChapter:
    """A cached chapter of some provider's content."""

    id: str
    provider_id: str
    content_id: str
    chapter_id: str
    number: float
    volume: float | None
    order_key: float
    title: str | None = None
    language: str | None = None
    index: int = 0

    @property
    def identifier(self) -> ContentIdentifier:
        return ContentIdentifier(self.provider_id, self.content_id)

    @classmethod
    def from_chapter(
        cls, chapter: Chapter, identifier: ContentIdentifier, index: int = 0
    ) -> "StoredChapter":
        """Build the stored form of a provider chapter.

        index is the chapter's position in the provider's list (0 = newest).
        """
        return cls(
            id=f"{identifier.id}||{chapter.chapter_id}",
            provider_id=identifier.provider_id,
            content_id=identifier.content_id,
            chapter_id=chapter.chapter_id,
            number=chapter.number,
            volume=chapter.volume,
            order_key=order_key(chapter.volume, chapter.number),
            title=chapter.title,
            language=chapter.language,
            index=index,
        )

    def generate_reference(self) -> "ChapterReference":
        """Create an unresolved reference to this chapter.

        The caller attaches the owning content once it has confirmed the
        content exists and is not deleted.
        """
        return ChapterReference(
            id=self.id,
            chapter_id=self.id,
            content_id=None,
            number=self.number,
            volume=self.volume,
        )


@dataclass
class ChapterReference:
    """Pointer from a progress marker to a stored chapter and its content."""

    id: str
    chapter_id: str
    content_id: str | None
    number: float
    volume: float | None = None

    @property
    def order_key(self) -> float:
        return order_key(self.volume, self.number)

    @property
    def is_valid(self) -> bool:
        """A reference is valid once it resolves to a (non-deleted) content."""
        return self.content_id is not None


@dataclass
class ProgressMarker:
    """Read state for one chapter."""

    id: str
    reference_id: str
    is_completed: bool = False
    hidden_in_history: bool = False
    is_deleted: bool = False
    date_read: str | None = None


@dataclass
class Collection:
    id: str
    name: str
    order: int = 0


@dataclass
class LibraryEntry:
    """A tracked item in the user's library.

    The entry id equals the id of the content it tracks.
    """

    id: str
    content_id: str
    flag: LibraryFlag = LibraryFlag.UNKNOWN
    date_added: str | None = None
    unread_count: int = 0
    collections: list[str] = field(default_factory=list)
    is_deleted: bool = False


@dataclass
class ContentLink:
    """Non-destructive association from an entry to extra matched content."""

    id: str
    entry_id: str
    content_id: str
    is_deleted: bool = False


def row_to_content(row: Any) -> StoredContent:
    return StoredContent(
        id=row["id"],
        provider_id=row["provider_id"],
        content_id=row["content_id"],
        title=row["title"],
        cover=row["cover"],
        is_deleted=bool(row["is_deleted"]),
    )


def row_to_chapter(row: Any) -> StoredChapter:
    return StoredChapter(
        id=row["id"],
        provider_id=row["provider_id"],
        content_id=row["content_id"],
        chapter_id=row["chapter_id"],
        number=row["number"],
        volume=row["volume"],
        order_key=row["order_key"],
        title=row["title"],
        language=row["language"],
        index=row["idx"],
    )


def row_to_reference(row: Any) -> ChapterReference:
    return ChapterReference(
        id=row["id"],
        chapter_id=row["chapter_id"],
        content_id=row["content_id"],
        number=row["number"],
        volume=row["volume"],
    )


def row_to_marker(row: Any) -> ProgressMarker:
    return ProgressMarker(
        id=row["id"],
        reference_id=row["reference_id"],
        is_completed=bool(row["is_completed"]),
        hidden_in_history=bool(row["hidden_in_history"]),
        is_deleted=bool(row["is_deleted"]),
        date_read=row["date_read"],
    )


def row_to_entry(row: Any, collections: list[str]) -> LibraryEntry:
    """Convert a library_entries row plus its collection ids to a LibraryEntry."""
    return LibraryEntry(
        id=row["id"],
        content_id=row["content_id"],
        flag=LibraryFlag(row["flag"]),
        date_added=row["date_added"],
        unread_count=row["unread_count"],
        collections=collections,
        is_deleted=bool(row["is_deleted"]),
    )


def row_to_link(row: Any) -> ContentLink:
    return ContentLink(
        id=row["id"],
        entry_id=row["entry_id"],
        content_id=row["content_id"],
        is_deleted=bool(row["is_deleted"]),
    )
