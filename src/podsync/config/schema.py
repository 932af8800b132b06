"""Configuration schema models using Pydantic."""

from datetime import date
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, HttpUrl, StrictInt, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

DEFAULT_PATH = "{home}/{appname}/{podname}"
DEFAULT_NAME_PATTERN = "{pubdate::%Y-%m-%d} {rss::episode::title}"
DEFAULT_ID_PATTERN = "{guid}"
DEFAULT_TRACKER_PATH = "{home}/{appname}/.downloaded/{podname}"

# Feed-level options accept a value, ``false`` (disable even if set globally)
# or nothing (use the global value).
_TRI_STATE_FIELDS = ("max_days", "max_episodes", "earliest_date", "download_hook", "symlink")


def _date_to_str(value: Any) -> Any:
    """YAML loads unquoted YYYY-MM-DD values as dates."""
    if isinstance(value, date):
        return value.isoformat()
    return value


class GlobalConfig(BaseModel):
    """Global podsync configuration."""

    version: str = "1"
    log_level: LogLevel = "INFO"

    # Patterns
    path: str = DEFAULT_PATH
    name_pattern: str = DEFAULT_NAME_PATTERN
    id_pattern: str = DEFAULT_ID_PATTERN
    tracker_path: str = DEFAULT_TRACKER_PATH
    symlink: str | None = None

    # Standard download mode defaults
    max_days: int | None = Field(default=120, ge=0)
    max_episodes: int | None = Field(default=10, ge=0)
    earliest_date: str | None = None  # YYYY-MM-DD

    custom_tags: dict[str, str] = Field(default_factory=dict)
    download_hook: Path | None = None

    # Network
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_concurrent_feeds: int | None = Field(default=8, ge=1)

    @field_validator("earliest_date", mode="before")
    @classmethod
    def coerce_earliest_date(cls, value: Any) -> Any:
        return _date_to_str(value)


class FeedConfig(BaseModel):
    """Configuration for a single podcast feed."""

    url: HttpUrl
    path: str | None = None
    name_pattern: str | None = None
    id_pattern: str | None = None
    symlink: str | Literal[False] | None = None

    # 0 is a limit, only a literal false disables
    max_days: StrictInt | Literal[False] | None = Field(default=None, union_mode="left_to_right")
    max_episodes: StrictInt | Literal[False] | None = Field(default=None, union_mode="left_to_right")
    earliest_date: Literal[False] | str | None = None
    download_hook: Literal[False] | Path | None = None

    backlog_start: str | None = None  # YYYY-MM-DD
    backlog_interval: int | None = None  # days

    custom_tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("earliest_date", "backlog_start", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any) -> Any:
        return _date_to_str(value)

    @field_validator(*_TRI_STATE_FIELDS, mode="before")
    @classmethod
    def reject_true(cls, value: Any) -> Any:
        if value is True:
            raise ValueError("use a value, or false to disable")
        return value

    @field_validator("max_days", "max_episodes")
    @classmethod
    def check_non_negative(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool) and value < 0:
            raise ValueError("must be greater than or equal to 0")
        return value

    @property
    def is_backlog(self) -> bool:
        return self.backlog_start is not None or self.backlog_interval is not None


class Feeds(BaseModel):
    """Collection of podcast feeds."""

    feeds: dict[str, FeedConfig] = Field(default_factory=dict)
