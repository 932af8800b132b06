"""Tests for configuration schema models."""

from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from podsync.config.schema import (
    DEFAULT_ID_PATTERN,
    DEFAULT_NAME_PATTERN,
    DEFAULT_PATH,
    DEFAULT_TRACKER_PATH,
    FeedConfig,
    Feeds,
    GlobalConfig,
)


class TestGlobalConfig:
    """Tests for GlobalConfig model."""

    def test_defaults(self) -> None:
        """Test default global configuration."""
        config = GlobalConfig()

        assert config.version == "1"
        assert config.log_level == "INFO"
        assert config.path == DEFAULT_PATH
        assert config.name_pattern == DEFAULT_NAME_PATTERN
        assert config.id_pattern == DEFAULT_ID_PATTERN
        assert config.tracker_path == DEFAULT_TRACKER_PATH
        assert config.symlink is None
        assert config.max_days == 120
        assert config.max_episodes == 10
        assert config.earliest_date is None
        assert config.custom_tags == {}
        assert config.download_hook is None
        assert config.timeout_seconds == 60.0
        assert config.max_concurrent_feeds == 8

    def test_invalid_log_level(self) -> None:
        """Test invalid log level is rejected."""
        with pytest.raises(ValidationError):
            GlobalConfig(log_level="LOUD")  # type: ignore

    def test_yaml_date_coerced(self) -> None:
        """Test YAML date objects become ISO strings."""
        config = GlobalConfig(earliest_date=date(2024, 1, 31))  # type: ignore
        assert config.earliest_date == "2024-01-31"

    def test_negative_limits_rejected(self) -> None:
        """Test negative limits are rejected."""
        with pytest.raises(ValidationError):
            GlobalConfig(max_days=-1)

    def test_concurrency_must_be_positive(self) -> None:
        """Test max_concurrent_feeds lower bound."""
        with pytest.raises(ValidationError):
            GlobalConfig(max_concurrent_feeds=0)
        assert GlobalConfig(max_concurrent_feeds=None).max_concurrent_feeds is None


class TestFeedConfig:
    """Tests for FeedConfig model."""

    def test_minimal(self) -> None:
        """Test only the URL is required."""
        feed = FeedConfig(url="https://example.com/feed.rss")  # type: ignore

        assert str(feed.url) == "https://example.com/feed.rss"
        assert feed.max_days is None
        assert feed.is_backlog is False

    def test_invalid_url(self) -> None:
        """Test invalid URL is rejected."""
        with pytest.raises(ValidationError):
            FeedConfig(url="not a url")  # type: ignore

    def test_tri_state_false(self) -> None:
        """Test false disables an option."""
        feed = FeedConfig(
            url="https://example.com/feed.rss",  # type: ignore
            max_days=False,
            max_episodes=False,
            earliest_date=False,
            download_hook=False,
            symlink=False,
        )

        assert feed.max_days is False
        assert feed.max_episodes is False
        assert feed.download_hook is False

    def test_tri_state_zero_is_int(self) -> None:
        """Test 0 is parsed as a value, not as false."""
        feed = FeedConfig(url="https://example.com/feed.rss", max_days=0, max_episodes=0)  # type: ignore

        assert feed.max_days == 0 and feed.max_days is not False
        assert feed.max_episodes == 0 and feed.max_episodes is not False

    @pytest.mark.parametrize("option", ["max_days", "max_episodes", "download_hook", "symlink"])
    def test_tri_state_true_rejected(self, option: str) -> None:
        """Test true is not a meaningful value."""
        with pytest.raises(ValidationError, match="false to disable"):
            FeedConfig(url="https://example.com/feed.rss", **{option: True})  # type: ignore

    def test_negative_max_episodes_rejected(self) -> None:
        """Test negative per-feed limits."""
        with pytest.raises(ValidationError):
            FeedConfig(url="https://example.com/feed.rss", max_episodes=-3)  # type: ignore

    def test_backlog_fields(self) -> None:
        """Test backlog detection and date coercion."""
        feed = FeedConfig(
            url="https://example.com/feed.rss",  # type: ignore
            backlog_start=date(2024, 1, 1),  # type: ignore
            backlog_interval=7,
        )

        assert feed.is_backlog is True
        assert feed.backlog_start == "2024-01-01"

    def test_hook_path(self) -> None:
        """Test hook is parsed as a path."""
        feed = FeedConfig(url="https://example.com/feed.rss", download_hook="/bin/true")  # type: ignore
        assert feed.download_hook == Path("/bin/true")


class TestFeeds:
    """Tests for Feeds collection."""

    def test_empty(self) -> None:
        """Test empty collection."""
        assert Feeds().feeds == {}

    def test_from_dict(self) -> None:
        """Test nested validation."""
        feeds = Feeds(feeds={"a": {"url": "https://example.com/a.xml"}})  # type: ignore
        assert isinstance(feeds.feeds["a"], FeedConfig)
