# ABOUTME: Chapter filter policies applied to provider and stored chapter lists.
# ABOUTME: Defines the ChapterFilter protocol plus pass-through and language-based filters.

from collections.abc import Iterable, Sequence
from typing import Protocol, TypeVar, runtime_checkable

from shelfshift.sources.types import ContentIdentifier

ChapterT = TypeVar("ChapterT")


@runtime_checkable
class ChapterFilter(Protocol):
    """Protocol for user content-filter policies.

    Filters are pure: they may drop or reorder chapters but never mutate them.
    Both provider Chapters and StoredChapters pass through the same filter.
    """

    def filter(
        self, chapters: Sequence[ChapterT], identifier: ContentIdentifier
    ) -> list[ChapterT]: ...


class KeepAllChapters:
    """Filter that keeps every chapter."""

    def filter(
        self, chapters: Sequence[ChapterT], identifier: ContentIdentifier
    ) -> list[ChapterT]:
        return list(chapters)


class LanguageChapterFilter:
    """Keeps chapters in one of the allowed languages.

    Chapters without a language are kept. Language codes compare
    case-insensitively.
    """

    def __init__(self, languages: Iterable[str]) -> None:
        self._languages = {lang.lower() for lang in languages}

    def filter(
        self, chapters: Sequence[ChapterT], identifier: ContentIdentifier
    ) -> list[ChapterT]:
        if not self._languages:
            return list(chapters)
        kept = []
        for chapter in chapters:
            language = getattr(chapter, "language", None)
            if language is None or language.lower() in self._languages:
                kept.append(chapter)
        return kept
