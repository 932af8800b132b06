"""Feed models and RSS parsing for podsync."""

from podsync.feeds.models import NOT_FOUND, Episode, NamespacedAttributes, PodcastMetadata
from podsync.feeds.parser import RSSParser

__all__ = ["Episode", "NamespacedAttributes", "NOT_FOUND", "PodcastMetadata", "RSSParser"]
