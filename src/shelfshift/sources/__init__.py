# ABOUTME: Content source package: provider contract, HTTP adapter, and chapter values.
# ABOUTME: Exports the types used to search providers for migration candidates.

from shelfshift.sources.filtering import ChapterFilter, KeepAllChapters, LanguageChapterFilter
from shelfshift.sources.provider import ContentProvider
from shelfshift.sources.types import (
    Chapter,
    ContentIdentifier,
    TaggedHighlight,
    order_key,
    split_order_key,
)

__all__ = [
    "Chapter",
    "ChapterFilter",
    "ContentIdentifier",
    "ContentProvider",
    "KeepAllChapters",
    "LanguageChapterFilter",
    "TaggedHighlight",
    "order_key",
    "split_order_key",
]
