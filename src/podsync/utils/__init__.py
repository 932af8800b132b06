"""Utility functions and helpers for podsync."""

from podsync.utils.datetime import ensure_utc, now_utc, parse_config_date, to_unix
from podsync.utils.errors import (
    ConfigError,
    ConfigurationError,
    DuplicateFeedError,
    FeedError,
    FeedNotFoundError,
    FetchError,
    FilesystemError,
    InvalidConfigError,
    PatternError,
    PodsyncError,
    TagError,
    TransferError,
)
from podsync.utils.paths import (
    APP_NAME,
    get_config_dir,
    get_cache_dir,
    get_config_file,
    get_feeds_file,
    get_log_file,
    sanitize_filename,
)

__all__ = [
    # Errors
    "PodsyncError",
    "ConfigError",
    "ConfigurationError",
    "InvalidConfigError",
    "PatternError",
    "FeedError",
    "FeedNotFoundError",
    "DuplicateFeedError",
    "FetchError",
    "TransferError",
    "FilesystemError",
    "TagError",
    # Paths
    "APP_NAME",
    "get_config_dir",
    "get_cache_dir",
    "get_config_file",
    "get_feeds_file",
    "get_log_file",
    "sanitize_filename",
    # Datetime
    "now_utc",
    "ensure_utc",
    "parse_config_date",
    "to_unix",
]
