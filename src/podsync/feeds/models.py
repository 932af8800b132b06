"""Data models for podcast feeds and episodes."""

from collections.abc import Iterator, Mapping
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

NOT_FOUND = "<value not found>"


class NamespacedAttributes(Mapping[tuple[str, str], str]):
    """Raw feed element values keyed by ``(namespace_prefix, local_name)``.

    Elements without a namespace use ``""`` as prefix, so ``<title>`` is
    ``("", "title")`` and ``<itunes:author>`` is ``("itunes", "author")``.
    Repeated elements keep every value; item access returns the first one.
    """

    def __init__(self, values: Mapping[tuple[str, str], list[str]] | None = None) -> None:
        self._values: dict[tuple[str, str], tuple[str, ...]] = {
            key: tuple(vals) for key, vals in (values or {}).items() if vals
        }

    @staticmethod
    def split_key(key: str) -> tuple[str, str]:
        """Split ``"itunes:author"`` into ``("itunes", "author")``."""
        prefix, sep, local = key.partition(":")
        if not sep:
            return "", key
        return prefix, local

    def __getitem__(self, key: tuple[str, str]) -> str:
        return self._values[key][0]

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_text(self, key: str) -> str | None:
        """Look up a value by its XML-style key (``"itunes:episode"``)."""
        return self.get(self.split_key(key))

    def get_all(self, key: str) -> list[str]:
        """Every value recorded for an XML-style key."""
        return list(self._values.get(self.split_key(key), ()))

    def __repr__(self) -> str:
        return f"NamespacedAttributes({len(self)} keys)"


class PodcastMetadata(BaseModel):
    """Channel-level information for one subscribed feed."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str  # Configured feed name, not the channel title
    title: str
    attributes: NamespacedAttributes = Field(default_factory=NamespacedAttributes)

    @property
    def author(self) -> str | None:
        return self.attributes.get_text("itunes:author")

    @property
    def categories(self) -> list[str]:
        return self.attributes.get_all("itunes:category")

    @property
    def language(self) -> str | None:
        return self.attributes.get_text("language")

    @property
    def copyright(self) -> str | None:
        return self.attributes.get_text("copyright")

    @property
    def image(self) -> str | None:
        return self.attributes.get_text("itunes:image") or self.attributes.get_text("image")


class Episode(BaseModel):
    """A single feed item.

    ``index`` is the position in the feed sorted oldest first. It is
    recomputed on every fetch and never persisted.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    title: str
    url: str  # Enclosure URL
    guid: str
    published: datetime
    index: int = Field(..., ge=0)
    mime_type: str | None = None
    attributes: NamespacedAttributes = Field(default_factory=NamespacedAttributes)

    @property
    def description(self) -> str | None:
        return self.attributes.get_text("description") or self.attributes.get_text(
            "itunes:summary"
        )

    @property
    def author(self) -> str | None:
        return self.attributes.get_text("itunes:author") or self.attributes.get_text("author")

    @property
    def image(self) -> str | None:
        return self.attributes.get_text("itunes:image")

    @property
    def slug(self) -> str:
        """Human-readable identifier used in log messages."""
        date_str = self.published.strftime("%Y-%m-%d")
        return f"#{self.index} {date_str} {self.title}"
