"""XDG-style directory helpers."""

import re
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir, user_log_dir

APP_NAME = "podsync"

# Characters that cannot appear in a single path component on common filesystems.
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def get_config_dir() -> Path:
    """Get the podsync configuration directory."""
    return Path(user_config_dir(APP_NAME))


def get_config_file() -> Path:
    """Get the global configuration file path."""
    return get_config_dir() / "config.yaml"


def get_feeds_file() -> Path:
    """Get the feeds configuration file path."""
    return get_config_dir() / "feeds.yaml"


def get_log_file() -> Path:
    """Get the default log file path."""
    return Path(user_log_dir(APP_NAME)) / "podsync.log"


def get_cache_dir() -> Path:
    """Get the podsync cache directory."""
    return Path(user_cache_dir(APP_NAME))


def sanitize_filename(name: str, replacement: str = "_") -> str:
    """Make a string usable as a single path component.

    Args:
        name: Raw name (episode id, evaluated name pattern, ...)
        replacement: Replacement for unsafe characters

    Returns:
        Name without path separators or control characters. Never empty.
    """
    safe = _UNSAFE_FILENAME_CHARS.sub(replacement, name).strip()
    # Leading dots would hide the file; "." and ".." would escape the directory
    safe = safe.lstrip(".")
    return safe or replacement
