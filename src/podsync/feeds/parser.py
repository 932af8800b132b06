"""RSS feed fetching and parsing using httpx and BeautifulSoup."""

import logging
from collections import defaultdict
from datetime import datetime
from email.utils import parsedate_to_datetime

import httpx
from bs4 import BeautifulSoup, Tag

from podsync.feeds.models import Episode, NamespacedAttributes, PodcastMetadata
from podsync.utils.datetime import ensure_utc
from podsync.utils.errors import FetchError

logger = logging.getLogger(__name__)

# Attributes carrying the value of empty elements such as <itunes:image href="..."/>
_VALUE_ATTRIBUTES = ("href", "url", "text")


def _element_key(tag: Tag) -> tuple[str, str]:
    prefix = tag.prefix or ""
    name = tag.name
    if not prefix and ":" in name:
        prefix, name = name.split(":", 1)
    return prefix, name


def _element_value(tag: Tag) -> str | None:
    text = tag.get_text(strip=True)
    if text:
        return text
    for attr in _VALUE_ATTRIBUTES:
        value = tag.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _collect_attributes(element: Tag, skip: tuple[str, ...] = ()) -> NamespacedAttributes:
    values: dict[tuple[str, str], list[str]] = defaultdict(list)
    for child in element.find_all(recursive=False):
        key = _element_key(child)
        if key[0] == "" and key[1] in skip:
            continue
        value = _element_value(child)
        if value is not None:
            values[key].append(value)
    return NamespacedAttributes(values)


def _parse_pubdate(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return ensure_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        return None


class RSSParser:
    """Parses RSS feeds and extracts episode information."""

    def __init__(self, timeout: float = 30) -> None:
        """Initialize the RSS parser.

        Args:
            timeout: HTTP request timeout in seconds.
        """
        self.timeout = timeout

    async def fetch(
        self, client: httpx.AsyncClient, name: str, url: str
    ) -> tuple[PodcastMetadata, list[Episode]]:
        """Download and parse a feed.

        Args:
            client: HTTP client
            name: Configured feed name
            url: Feed URL

        Returns:
            Podcast metadata and episodes indexed oldest first

        Raises:
            FetchError: If the feed cannot be downloaded or parsed
        """
        logger.debug(f"Fetching feed '{name}' from {url}")
        try:
            response = await client.get(url, timeout=self.timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"Feed '{name}' returned {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to download feed '{name}' from {url}: {e}") from e

        return self.parse(name, response.content)

    def parse(self, name: str, content: str | bytes) -> tuple[PodcastMetadata, list[Episode]]:
        """Parse feed XML.

        Items lacking a title, an enclosure URL or a valid publish date are
        skipped. A missing guid falls back to the enclosure URL.

        Args:
            name: Configured feed name
            content: Raw RSS document

        Returns:
            Podcast metadata and episodes sorted by publish time, indexed from 0

        Raises:
            FetchError: If the document has no RSS channel
        """
        soup = BeautifulSoup(content, "xml")
        channel = soup.find("channel")
        if not isinstance(channel, Tag):
            raise FetchError(f"Feed '{name}' is not a valid RSS document (no <channel>)")

        channel_attrs = _collect_attributes(channel, skip=("item",))
        podcast = PodcastMetadata(
            name=name,
            title=channel_attrs.get_text("title") or name,
            attributes=channel_attrs,
        )

        parsed: list[tuple[datetime, dict]] = []
        for item in channel.find_all("item", recursive=False):
            fields = self._parse_item(name, item)
            if fields is not None:
                parsed.append((fields["published"], fields))

        # Stable sort keeps feed order for equal timestamps
        parsed.sort(key=lambda pair: pair[0])
        episodes = [Episode(index=index, **fields) for index, (_, fields) in enumerate(parsed)]

        logger.debug(f"Parsed {len(episodes)} episodes from feed '{name}'")
        return podcast, episodes

    def _parse_item(self, name: str, item: Tag) -> dict | None:
        attributes = _collect_attributes(item)
        title = attributes.get_text("title")

        enclosure = item.find("enclosure", recursive=False)
        url = enclosure.get("url") if isinstance(enclosure, Tag) else None
        mime_type = enclosure.get("type") if isinstance(enclosure, Tag) else None

        published = _parse_pubdate(attributes.get_text("pubDate"))

        if not title or not isinstance(url, str) or not url.strip() or published is None:
            logger.warning(
                f"Skipping item in feed '{name}' with missing title, enclosure or date: "
                f"{title or '<untitled>'}"
            )
            return None

        return {
            "title": title,
            "url": url.strip(),
            "guid": attributes.get_text("guid") or url.strip(),
            "published": published,
            "mime_type": mime_type if isinstance(mime_type, str) else None,
            "attributes": attributes,
        }
