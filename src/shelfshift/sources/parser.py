# ABOUTME: Parsing functions for content provider JSON responses.
# ABOUTME: Converts raw search and chapter payloads into TaggedHighlight and Chapter values.

from typing import Any

from shelfshift.sources.types import Chapter, TaggedHighlight


class ProviderParseError(Exception):
    """Raised when a provider response does not have the expected shape."""


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ProviderParseError(f"{field} must be a number, got {value!r}")
    try:
        return float(value)
    except ValueError as exc:
        raise ProviderParseError(f"{field} must be a number, got {value!r}") from exc


def parse_search_response(data: Any, provider_id: str) -> TaggedHighlight | None:
    """Extract the first result from a paged search response.

    Expects {"results": [{"id": ..., "title": ..., "cover": ...}, ...]}.
    Returns None when the page is empty.
    """
    if not isinstance(data, dict):
        raise ProviderParseError("search response must be an object")
    results = data.get("results") or []
    if not isinstance(results, list):
        raise ProviderParseError("search results must be a list")
    if not results:
        return None

    first = results[0]
    if not isinstance(first, dict) or not first.get("id"):
        raise ProviderParseError("search result is missing an id")

    return TaggedHighlight(
        provider_id=provider_id,
        content_id=str(first["id"]),
        title=first.get("title") or "",
        cover_url=first.get("cover"),
    )


def parse_chapter(data: Any) -> Chapter:
    """Convert one chapter object into a Chapter."""
    if not isinstance(data, dict):
        raise ProviderParseError("chapter must be an object")
    chapter_id = data.get("id")
    if not chapter_id:
        raise ProviderParseError("chapter is missing an id")

    volume = data.get("volume")
    return Chapter(
        chapter_id=str(chapter_id),
        number=_as_float(data.get("number"), "chapter number"),
        volume=_as_float(volume, "chapter volume") if volume is not None else None,
        title=data.get("title"),
        language=data.get("language"),
    )


def parse_chapter_list(data: Any) -> list[Chapter]:
    """Convert a chapter list payload, preserving provider order (newest first)."""
    if not isinstance(data, list):
        raise ProviderParseError("chapter list must be an array")
    return [parse_chapter(item) for item in data]


def parse_content_chapters(data: Any) -> list[Chapter] | None:
    """Read the embedded chapter list from a content response.

    Returns None when the content does not embed its chapters, which
    tells the caller to fall back to the dedicated chapters endpoint.
    """
    if not isinstance(data, dict):
        raise ProviderParseError("content response must be an object")
    chapters = data.get("chapters")
    if chapters is None:
        return None
    return parse_chapter_list(chapters)
