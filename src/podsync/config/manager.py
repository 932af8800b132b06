"""Configuration manager for loading and saving podsync config."""

import logging
from pathlib import Path

import yaml

from podsync.config.schema import FeedConfig, Feeds, GlobalConfig
from podsync.config.settings import FeedSettings, resolve_feed
from podsync.patterns import SourceType
from podsync.utils.errors import (
    DuplicateFeedError,
    FeedNotFoundError,
    InvalidConfigError,
)
from podsync.utils.paths import get_config_dir, get_config_file, get_feeds_file

logger = logging.getLogger(__name__)

FEEDS_FILE_HEADER = """\
# podsync feeds
#
# feeds:
#   my-show:
#     url: https://example.com/feed.xml
#     max_episodes: 3          # or false to ignore the global limit
#   old-show:
#     url: https://example.com/archive.xml
#     backlog_start: 2024-01-01
#     backlog_interval: 7      # days
"""


class ConfigManager:
    """Manages podsync configuration files."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_dir: Optional custom config directory. Defaults to XDG config dir.
        """
        if config_dir is None:
            self.config_dir = get_config_dir()
            self.config_file = get_config_file()
            self.feeds_file = get_feeds_file()
        else:
            self.config_dir = config_dir
            self.config_file = config_dir / "config.yaml"
            self.feeds_file = config_dir / "feeds.yaml"

    def load_config(self) -> GlobalConfig:
        """Load and validate global configuration.

        Returns:
            Validated GlobalConfig instance

        Raises:
            InvalidConfigError: If config is invalid
        """
        if not self.config_file.exists():
            # Create default config
            config = GlobalConfig()
            self.save_config(config)
            return config

        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            return GlobalConfig(**data)
        except Exception as e:
            raise InvalidConfigError(
                f"Invalid configuration in {self.config_file}: {e}"
            ) from e

    def save_config(self, config: GlobalConfig) -> None:
        """Save global configuration.

        Args:
            config: GlobalConfig instance to save
        """
        data = config.model_dump(mode="json")

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def load_feeds(self) -> Feeds:
        """Load feeds configuration.

        Returns:
            Feeds instance

        Raises:
            InvalidConfigError: If feeds file is invalid
        """
        if not self.feeds_file.exists():
            # Create empty feeds file
            self._create_default_feeds()
            return Feeds()

        try:
            with open(self.feeds_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if data.get("feeds") is None:
                data["feeds"] = {}
            return Feeds(**data)
        except Exception as e:
            raise InvalidConfigError(
                f"Invalid feeds configuration in {self.feeds_file}: {e}"
            ) from e

    def save_feeds(self, feeds: Feeds) -> None:
        """Save feeds configuration.

        Args:
            feeds: Feeds instance to save
        """
        data = feeds.model_dump(mode="json", exclude_defaults=True)
        data.setdefault("feeds", {})

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.feeds_file, "w", encoding="utf-8") as f:
            f.write(FEEDS_FILE_HEADER)
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    def add_feed(self, name: str, feed_config: FeedConfig) -> None:
        """Add a feed.

        Args:
            name: Feed identifier
            feed_config: Feed configuration

        Raises:
            DuplicateFeedError: If feed already exists
        """
        feeds = self.load_feeds()

        if name in feeds.feeds:
            raise DuplicateFeedError(f"Feed '{name}' already exists.")

        feeds.feeds[name] = feed_config
        self.save_feeds(feeds)

    def remove_feed(self, name: str) -> None:
        """Remove a feed.

        Args:
            name: Feed identifier to remove

        Raises:
            FeedNotFoundError: If feed doesn't exist
        """
        feeds = self.load_feeds()

        if name not in feeds.feeds:
            raise FeedNotFoundError(f"Feed '{name}' not found")

        del feeds.feeds[name]
        self.save_feeds(feeds)

    def get_feed(self, name: str) -> FeedConfig:
        """Get a single feed configuration.

        Raises:
            FeedNotFoundError: If feed doesn't exist
        """
        feeds = self.load_feeds()

        if name not in feeds.feeds:
            raise FeedNotFoundError(f"Feed '{name}' not found")

        return feeds.feeds[name]

    def list_feeds(self) -> dict[str, FeedConfig]:
        """List all feeds.

        Returns:
            Dictionary of feed name to FeedConfig
        """
        return self.load_feeds().feeds

    def resolve_feeds(self) -> tuple[GlobalConfig, list[FeedSettings]]:
        """Load both files and merge every feed with the global config.

        Runs before any network activity so that one bad feed entry stops
        the whole run.

        Returns:
            Global config and resolved feed settings sorted by name

        Raises:
            InvalidConfigError: If any file or feed entry is invalid
        """
        global_config = self.load_config()
        feeds = self.load_feeds()

        settings = [
            resolve_feed(name, feed, global_config)
            for name, feed in sorted(feeds.feeds.items())
        ]
        if len(settings) > 1 and SourceType.PODCAST not in settings[0].tracker_path.required_sources:
            # Concurrently synced feeds each need their own ledger file
            raise InvalidConfigError(
                f"tracker_path \"{global_config.tracker_path}\" must contain {{podname}} "
                "or other podcast data when more than one feed is configured"
            )
        logger.debug(f"Resolved {len(settings)} feed(s) from {self.feeds_file}")
        return global_config, settings

    def _create_default_feeds(self) -> None:
        """Create default feeds.yaml file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.feeds_file.write_text(FEEDS_FILE_HEADER + "feeds: {}\n", encoding="utf-8")
