# ABOUTME: Unit tests for provider response parsing.
# ABOUTME: Covers search, content, and chapter payloads including malformed input.

import pytest

from shelfshift.sources.parser import (
    ProviderParseError,
    parse_chapter,
    parse_chapter_list,
    parse_content_chapters,
    parse_search_response,
)
from tests.fixtures.provider_responses import (
    CHAPTER_LIST,
    CONTENT_WITH_CHAPTERS,
    CONTENT_WITHOUT_CHAPTERS,
    MALFORMED_CHAPTER_LIST,
    SEARCH_RESPONSE,
    SEARCH_RESPONSE_EMPTY,
)


class TestParseSearchResponse:
    """Tests for parse_search_response."""

    def test_first_result_wins(self) -> None:
        result = parse_search_response(SEARCH_RESPONSE, "mirror")
        assert result is not None
        assert result.content_id == "blue-period"
        assert result.provider_id == "mirror"
        assert result.title == "Blue Period"
        assert result.cover_url == "https://img.example/bp.jpg"

    def test_empty_page_returns_none(self) -> None:
        assert parse_search_response(SEARCH_RESPONSE_EMPTY, "mirror") is None

    def test_missing_results_key_returns_none(self) -> None:
        assert parse_search_response({}, "mirror") is None

    def test_result_without_id_raises(self) -> None:
        with pytest.raises(ProviderParseError):
            parse_search_response({"results": [{"title": "No id"}]}, "mirror")

    def test_non_object_raises(self) -> None:
        with pytest.raises(ProviderParseError):
            parse_search_response(["nope"], "mirror")


class TestParseChapters:
    """Tests for chapter parsing."""

    def test_list_keeps_provider_order(self) -> None:
        parsed = parse_chapter_list(CHAPTER_LIST)
        assert [c.number for c in parsed] == [4, 3, 2, 1]

    def test_string_number_is_coerced(self) -> None:
        parsed = parse_chapter_list(CHAPTER_LIST)
        assert parsed[-1].number == 1.0

    def test_volume_and_language(self) -> None:
        chapter = parse_chapter(CHAPTER_LIST[0])
        assert chapter.volume == 1
        assert chapter.language == "en"
        assert chapter.chapter_id == "ch-4"

    def test_non_numeric_number_raises(self) -> None:
        with pytest.raises(ProviderParseError):
            parse_chapter_list(MALFORMED_CHAPTER_LIST)

    def test_boolean_number_raises(self) -> None:
        with pytest.raises(ProviderParseError):
            parse_chapter({"id": "x", "number": True})

    def test_content_with_embedded_chapters(self) -> None:
        parsed = parse_content_chapters(CONTENT_WITH_CHAPTERS)
        assert parsed is not None
        assert len(parsed) == 4

    def test_content_without_chapters_returns_none(self) -> None:
        assert parse_content_chapters(CONTENT_WITHOUT_CHAPTERS) is None
