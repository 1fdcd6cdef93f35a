# ABOUTME: ContentProvider protocol defining the contract for content sources.
# ABOUTME: Any searchable source of chapters (HTTP catalog, local fake, etc.) implements this.

from typing import Protocol, runtime_checkable

from shelfshift.sources.types import Chapter, TaggedHighlight


@runtime_checkable
class ContentProvider(Protocol):
    """Protocol for content sources used as migration destinations.

    Implementations return the best first-page result for a title query and
    the chapter list of a piece of content, newest chapter first. Both calls
    return None when the provider has nothing to offer.
    """

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def migration_destination(self) -> bool: ...

    async def search(self, query: str) -> TaggedHighlight | None: ...

    async def fetch_chapters(self, content_id: str) -> list[Chapter] | None: ...
