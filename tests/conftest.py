"""Shared fixtures for podsync tests."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from podsync.feeds.models import Episode, NamespacedAttributes, PodcastMetadata

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

EpisodeFactory = Callable[..., Episode]


def _build_rss(items: list[dict], title: str = "Test Show") -> str:
    """Render a minimal RSS 2.0 document with iTunes namespace."""
    rendered = []
    for item in items:
        guid = f"<guid>{item['guid']}</guid>" if item.get("guid") else ""
        rendered.append(
            f"""
    <item>
      <title>{item['title']}</title>
      {guid}
      <pubDate>{item['published'].strftime('%a, %d %b %Y %H:%M:%S +0000')}</pubDate>
      <enclosure url="{item['url']}" type="{item.get('type', 'audio/mpeg')}" length="0"/>
      <itunes:episode>{item.get('episode', '')}</itunes:episode>
    </item>"""
        )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>{title}</title>
    <language>en</language>
    <copyright>2024 Test</copyright>
    <itunes:author>Jane Host</itunes:author>
    <itunes:category text="Technology"/>
    <itunes:image href="https://example.com/cover.jpg"/>{''.join(rendered)}
  </channel>
</rss>
"""


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation time."""
    return NOW


@pytest.fixture
def podcast() -> PodcastMetadata:
    """Podcast metadata with a few channel attributes."""
    return PodcastMetadata(
        name="my-show",
        title="My Show",
        attributes=NamespacedAttributes(
            {
                ("", "title"): ["My Show"],
                ("itunes", "author"): ["Jane Host"],
                ("itunes", "category"): ["Technology", "News"],
                ("", "language"): ["en"],
            }
        ),
    )


@pytest.fixture
def make_episode() -> EpisodeFactory:
    """Factory for episodes published ``days_ago`` days before NOW."""

    def _make(index: int, days_ago: float = 0, **kwargs) -> Episode:
        published = kwargs.pop("published", NOW - timedelta(days=days_ago))
        title = kwargs.pop("title", f"Episode {index}")
        defaults = {
            "title": title,
            "url": f"https://cdn.example.com/ep{index}.mp3",
            "guid": f"guid-{index}",
            "published": published,
            "index": index,
            "attributes": NamespacedAttributes({("", "title"): [title]}),
        }
        defaults.update(kwargs)
        return Episode(**defaults)

    return _make


@pytest.fixture
def build_rss() -> Callable[..., str]:
    """Builder for RSS documents from item dicts."""
    return _build_rss


@pytest.fixture
def daily_items(now: datetime) -> Callable[[int], list[dict]]:
    """Item dicts for ``count`` episodes, one per day up to NOW, newest first."""

    def _items(count: int) -> list[dict]:
        return [
            {
                "title": f"Episode {index}",
                "guid": f"guid-{index}",
                "url": f"https://cdn.example.com/ep{index}.mp3",
                "published": now - timedelta(days=count - 1 - index),
                "episode": str(index + 1),
            }
            for index in reversed(range(count))
        ]

    return _items
