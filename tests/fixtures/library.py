# ABOUTME: Helpers that seed a test library with content, chapters, and read progress.
# ABOUTME: Builds provider Chapter lists and tracked entries in a single call.

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.mapping import (
    Collection,
    LibraryEntry,
    LibraryFlag,
    ProgressMarker,
    StoredChapter,
    StoredContent,
)
from shelfshift.sources.types import Chapter, ContentIdentifier, TaggedHighlight


def chapters(*numbers: float, volume: float | None = None, language: str | None = None) -> list[Chapter]:
    """Provider-style chapter list for the given numbers, newest first."""
    return [
        Chapter(chapter_id=f"c{n:g}", number=n, volume=volume, language=language)
        for n in sorted(numbers, reverse=True)
    ]


def highlight(provider_id: str, content_id: str, title: str = "Blue Period") -> TaggedHighlight:
    return TaggedHighlight(provider_id=provider_id, content_id=content_id, title=title)


def store_chapters(
    catalog: LibraryCatalog, identifier: ContentIdentifier, chapter_list: list[Chapter]
) -> list[StoredChapter]:
    stored = [
        StoredChapter.from_chapter(chapter, identifier, index)
        for index, chapter in enumerate(chapter_list)
    ]
    catalog.store_chapters(identifier, stored)
    return stored


def add_tracked(
    catalog: LibraryCatalog,
    provider_id: str,
    content_id: str,
    title: str = "Blue Period",
    *,
    numbers: tuple[float, ...] = (),
    read: tuple[float, ...] = (),
    collections: tuple[str, ...] = (),
    flag: LibraryFlag = LibraryFlag.READING,
    date_added: str = "2024-01-02T03:04:05",
) -> LibraryEntry:
    """Add a tracked entry with cached chapters and completed markers for `read`."""
    identifier = ContentIdentifier(provider_id, content_id)
    catalog.add_content(
        StoredContent(
            id=identifier.id, provider_id=provider_id, content_id=content_id, title=title
        )
    )
    stored = store_chapters(catalog, identifier, chapters(*numbers))
    for collection_id in collections:
        catalog.add_collection(Collection(id=collection_id, name=collection_id.title()))

    for chapter in stored:
        if chapter.number not in read:
            continue
        reference = chapter.generate_reference()
        reference.content_id = identifier.id
        catalog.add_reference(reference)
        catalog.add_marker(
            ProgressMarker(id=reference.id, reference_id=reference.id, is_completed=True)
        )

    entry = LibraryEntry(
        id=identifier.id,
        content_id=identifier.id,
        flag=flag,
        date_added=date_added,
        unread_count=len(numbers) - len(read),
        collections=list(collections),
    )
    catalog.upsert_entry(entry)
    return entry
