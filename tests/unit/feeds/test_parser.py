"""Tests for RSS parsing."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from podsync.feeds import NamespacedAttributes, RSSParser
from podsync.utils.errors import FetchError


class TestNamespacedAttributes:
    """Tests for NamespacedAttributes."""

    def test_lookup_by_xml_key(self) -> None:
        """Test prefixed and plain keys."""
        attrs = NamespacedAttributes(
            {("itunes", "author"): ["A"], ("", "author"): ["B"], ("itunes", "category"): ["x", "y"]}
        )

        assert attrs.get_text("itunes:author") == "A"
        assert attrs.get_text("author") == "B"
        assert attrs.get_all("itunes:category") == ["x", "y"]
        assert attrs[("itunes", "category")] == "x"
        assert attrs.get_text("missing") is None

    def test_empty_values_dropped(self) -> None:
        """Test keys without values are not stored."""
        assert len(NamespacedAttributes({("", "title"): []})) == 0


class TestRSSParser:
    """Tests for RSSParser.parse."""

    def test_episodes_sorted_and_indexed(self, build_rss, daily_items) -> None:
        """Test items are sorted oldest first with contiguous indices."""
        podcast, episodes = RSSParser().parse("my-show", build_rss(daily_items(4)))

        assert [ep.index for ep in episodes] == [0, 1, 2, 3]
        assert [ep.title for ep in episodes] == [f"Episode {i}" for i in range(4)]
        assert episodes[0].published < episodes[-1].published
        assert podcast.name == "my-show"
        assert podcast.title == "Test Show"

    def test_channel_attributes(self, build_rss, daily_items) -> None:
        """Test namespaced channel metadata."""
        podcast, _ = RSSParser().parse("my-show", build_rss(daily_items(1)))

        assert podcast.author == "Jane Host"
        assert podcast.language == "en"
        assert podcast.copyright == "2024 Test"
        assert podcast.categories == ["Technology"]
        assert podcast.image == "https://example.com/cover.jpg"

    def test_item_attributes(self, build_rss, daily_items, now: datetime) -> None:
        """Test namespaced item attributes and enclosure data."""
        _, episodes = RSSParser().parse("my-show", build_rss(daily_items(2)))
        episode = episodes[1]

        assert episode.attributes.get_text("itunes:episode") == "2"
        assert episode.url == "https://cdn.example.com/ep1.mp3"
        assert episode.mime_type == "audio/mpeg"
        assert episode.published == now.replace(microsecond=0)
        assert episode.published.tzinfo == timezone.utc

    def test_guid_falls_back_to_url(self, build_rss, daily_items) -> None:
        """Test items without guid use the enclosure URL."""
        items = daily_items(1)
        items[0]["guid"] = None
        _, episodes = RSSParser().parse("my-show", build_rss(items))

        assert episodes[0].guid == "https://cdn.example.com/ep0.mp3"

    def test_invalid_items_skipped(self) -> None:
        """Test items missing a date or enclosure are dropped."""
        xml = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>T</title>
  <item><title>No enclosure</title><pubDate>Mon, 01 Jan 2024 00:00:00 +0000</pubDate></item>
  <item><title>Bad date</title><pubDate>yesterday</pubDate>
    <enclosure url="https://x/a.mp3" type="audio/mpeg"/></item>
  <item><title>Good</title><pubDate>Mon, 01 Jan 2024 00:00:00 +0000</pubDate>
    <enclosure url="https://x/b.mp3" type="audio/mpeg"/></item>
</channel></rss>"""
        _, episodes = RSSParser().parse("t", xml)

        assert [ep.title for ep in episodes] == ["Good"]
        assert episodes[0].index == 0

    def test_not_rss(self) -> None:
        """Test documents without a channel."""
        with pytest.raises(FetchError, match="not a valid RSS"):
            RSSParser().parse("t", "<html><body>nope</body></html>")


class TestRSSParserFetch:
    """Tests for RSSParser.fetch."""

    @pytest.mark.asyncio
    async def test_fetch(self, build_rss, daily_items) -> None:
        """Test successful fetch and parse."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=build_rss(daily_items(3)))

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            podcast, episodes = await RSSParser().fetch(client, "my-show", "https://example.com/feed")

        assert len(episodes) == 3
        assert podcast.name == "my-show"

    @pytest.mark.asyncio
    async def test_fetch_http_error(self) -> None:
        """Test HTTP status errors become FetchError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match="404"):
                await RSSParser().fetch(client, "my-show", "https://example.com/feed")

    @pytest.mark.asyncio
    async def test_fetch_connection_error(self) -> None:
        """Test transport errors become FetchError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match="Failed to download"):
                await RSSParser().fetch(client, "my-show", "https://example.com/feed")


def test_parsed_dates_are_aware(build_rss, daily_items) -> None:
    """Test naive-looking dates are normalized to UTC."""
    _, episodes = RSSParser().parse("t", build_rss(daily_items(1)))
    assert isinstance(episodes[0].published, datetime)
    assert episodes[0].published.utcoffset() == timedelta(0)
