# ABOUTME: HTTP-backed content provider implementation.
# ABOUTME: Searches a JSON catalog API and resolves chapter lists for migration candidates.

import logging
from urllib.parse import quote

from shelfshift.sources.http import HttpClient, ProviderFetchError
from shelfshift.sources.parser import (
    ProviderParseError,
    parse_chapter_list,
    parse_content_chapters,
    parse_search_response,
)
from shelfshift.sources.types import Chapter, TaggedHighlight

logger = logging.getLogger(__name__)


class HttpContentProvider:
    """Content provider backed by a JSON REST catalog.

    Endpoints, relative to base_url:
      GET /search?query=...&page=1       -> {"results": [...]}
      GET /content/{id}                  -> {"chapters": [...] | null, ...}
      GET /content/{id}/chapters         -> [...]

    Uses dependency-injected HttpClient for testability.
    """

    def __init__(
        self,
        provider_id: str,
        base_url: str,
        http_client: HttpClient,
        *,
        name: str | None = None,
        migration_destination: bool = True,
    ) -> None:
        self._id = provider_id
        self._base = base_url.rstrip("/")
        self._http = http_client
        self._name = name or provider_id
        self._migration_destination = migration_destination

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def migration_destination(self) -> bool:
        return self._migration_destination

    async def search(self, query: str) -> TaggedHighlight | None:
        """Search the catalog and return the first result on page one.

        Returns None when nothing was found or the request failed.
        """
        try:
            data = await self._http.get(
                f"{self._base}/search", params={"query": query, "page": "1"}
            )
            return parse_search_response(data, self._id)
        except (ProviderFetchError, ProviderParseError) as exc:
            logger.warning("Search on %s failed for %r: %s", self._id, query, exc)
            return None

    async def fetch_chapters(self, content_id: str) -> list[Chapter] | None:
        """Fetch the chapter list for a content id, newest first.

        Reads the chapters embedded in the content response and falls back
        to the dedicated chapters endpoint when the content omits them.
        Returns None on any fetch or parse failure.
        """
        content_url = f"{self._base}/content/{quote(content_id, safe='')}"
        try:
            chapters = parse_content_chapters(await self._http.get(content_url))
            if chapters is None:
                chapters = parse_chapter_list(await self._http.get(f"{content_url}/chapters"))
        except (ProviderFetchError, ProviderParseError) as exc:
            logger.warning("Chapter fetch on %s failed for %s: %s", self._id, content_id, exc)
            return None
        return chapters
