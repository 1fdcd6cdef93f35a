# ABOUTME: Core value types shared between content providers and the library.
# ABOUTME: ContentIdentifier, Chapter, TaggedHighlight, and chapter order-key helpers.

from dataclasses import dataclass

# Order keys pack (volume, number) into one sortable float.
_VOLUME_SPAN = 10_000


def order_key(volume: float | None, number: float) -> float:
    """Build the sortable order key for a chapter.

    Volume 0 and a missing volume produce the same key. Chapter numbers
    are expected to stay below 10,000.
    """
    return (volume or 0) * _VOLUME_SPAN + number


def split_order_key(key: float) -> tuple[float | None, float]:
    """Split an order key back into its (volume, number) pair."""
    volume, number = divmod(key, _VOLUME_SPAN)
    return (volume or None), number


@dataclass(frozen=True)
class ContentIdentifier:
    """Identity of one piece of content on one provider."""

    provider_id: str
    content_id: str

    @property
    def id(self) -> str:
        return f"{self.provider_id}||{self.content_id}"


@dataclass(frozen=True)
class Chapter:
    """A chapter as reported by a provider, newest first in provider lists."""

    chapter_id: str
    number: float
    volume: float | None = None
    title: str | None = None
    language: str | None = None

    @property
    def order_key(self) -> float:
        return order_key(self.volume, self.number)


@dataclass(frozen=True)
class TaggedHighlight:
    """A candidate descriptor: one provider's content, tagged with its provider id.

    Ephemeral; never persisted as-is. The applier turns it into a stored
    content record when a migration is carried out.
    """

    provider_id: str
    content_id: str
    title: str
    cover_url: str | None = None

    @property
    def identifier(self) -> ContentIdentifier:
        return ContentIdentifier(self.provider_id, self.content_id)

    @property
    def id(self) -> str:
        return self.identifier.id
