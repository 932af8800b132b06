"""Merge global and per-feed configuration into runnable feed settings.

Everything that can be wrong with a configuration is detected here, before
any network activity: incompatible download mode options, bad dates and
patterns that reference data their call site cannot provide.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import TypeVar

from podsync.config.schema import FeedConfig, GlobalConfig
from podsync.patterns import Pattern, SourceType, compile_pattern
from podsync.sync.policy import BacklogMode, StandardMode
from podsync.utils.datetime import parse_config_date
from podsync.utils.errors import InvalidConfigError, PatternError

T = TypeVar("T")

# Data each pattern call site can supply at evaluation time
DOWNLOAD_PATH_SOURCES = frozenset({SourceType.PODCAST, SourceType.EPISODE})
ID_SOURCES = frozenset({SourceType.PODCAST, SourceType.EPISODE})
NAME_SOURCES = frozenset({SourceType.PODCAST, SourceType.EPISODE, SourceType.TAGS})
SYMLINK_SOURCES = frozenset({SourceType.PODCAST, SourceType.EPISODE, SourceType.TAGS})
TRACKER_SOURCES = frozenset({SourceType.PODCAST})


@dataclass(frozen=True)
class FeedSettings:
    """Fully resolved settings for syncing one feed."""

    name: str
    url: str
    mode: StandardMode | BacklogMode
    download_path: Pattern
    name_pattern: Pattern
    id_pattern: Pattern
    tracker_path: Pattern
    symlink: Pattern | None = None
    download_hook: Path | None = None
    custom_tags: dict[str, str] = field(default_factory=dict)


def use_option(feed_value: T | bool | None, global_value: T | None) -> T | None:
    """Resolve a tri-state feed option against its global default.

    ``None`` defers to the global value, ``False`` disables the option.
    """
    if feed_value is None:
        return global_value
    if feed_value is False:
        return None
    return feed_value  # type: ignore[return-value]


def _compile(name: str, option: str, template: str, sources: frozenset[SourceType]) -> Pattern:
    try:
        return compile_pattern(template, sources)
    except PatternError as e:
        raise InvalidConfigError(f"Invalid {option} for feed '{name}': {e}") from e


def _parse_date(name: str, option: str, value: str) -> datetime:
    try:
        return parse_config_date(value)
    except ValueError as e:
        raise InvalidConfigError(
            f"Invalid {option} for feed '{name}': '{value}' (use YYYY-MM-DD)"
        ) from e


def resolve_mode(name: str, feed: FeedConfig, global_config: GlobalConfig) -> StandardMode | BacklogMode:
    """Build the download mode for a feed.

    Raises:
        InvalidConfigError: On incomplete backlog settings, backlog combined
            with ``max_days``/``earliest_date``, or invalid values
    """
    if not feed.is_backlog:
        max_days = use_option(feed.max_days, global_config.max_days)
        earliest = use_option(feed.earliest_date, global_config.earliest_date)
        return StandardMode(
            max_age=timedelta(days=max_days) if max_days is not None else None,
            max_episodes=use_option(feed.max_episodes, global_config.max_episodes),
            earliest_date=_parse_date(name, "earliest_date", earliest) if earliest else None,
        )

    if feed.backlog_start is None:
        raise InvalidConfigError(f"Feed '{name}': backlog_interval is set but backlog_start is missing")
    if feed.backlog_interval is None:
        raise InvalidConfigError(f"Feed '{name}': backlog_start is set but backlog_interval is missing")
    if feed.backlog_interval < 1:
        raise InvalidConfigError(f"Feed '{name}': backlog_interval must be at least 1 day")
    for option in ("max_days", "earliest_date"):
        value = getattr(feed, option)
        if value is not None and value is not False:
            raise InvalidConfigError(f"Feed '{name}': '{option}' is not compatible with backlog mode")

    # The global max_episodes is a standard-mode default; backlog only honours the feed's own
    max_episodes = feed.max_episodes if feed.max_episodes is not False else None

    return BacklogMode(
        start=_parse_date(name, "backlog_start", feed.backlog_start),
        interval=timedelta(days=feed.backlog_interval),
        max_episodes=max_episodes,
    )


def resolve_feed(name: str, feed: FeedConfig, global_config: GlobalConfig) -> FeedSettings:
    """Merge one feed's configuration with the global configuration.

    Args:
        name: Feed name
        feed: Feed entry from feeds.yaml
        global_config: Global configuration

    Returns:
        Settings with compiled patterns and a validated download mode

    Raises:
        InvalidConfigError: If any option is invalid or incompatible
    """
    mode = resolve_mode(name, feed, global_config)

    symlink = use_option(feed.symlink, global_config.symlink)
    hook = use_option(feed.download_hook, global_config.download_hook)

    return FeedSettings(
        name=name,
        url=str(feed.url),
        mode=mode,
        download_path=_compile(name, "path", feed.path or global_config.path, DOWNLOAD_PATH_SOURCES),
        name_pattern=_compile(
            name, "name_pattern", feed.name_pattern or global_config.name_pattern, NAME_SOURCES
        ),
        id_pattern=_compile(name, "id_pattern", feed.id_pattern or global_config.id_pattern, ID_SOURCES),
        tracker_path=_compile(name, "tracker_path", global_config.tracker_path, TRACKER_SOURCES),
        symlink=_compile(name, "symlink", symlink, SYMLINK_SOURCES) if symlink else None,
        download_hook=Path(hook).expanduser() if hook else None,
        custom_tags={**global_config.custom_tags, **feed.custom_tags},
    )
