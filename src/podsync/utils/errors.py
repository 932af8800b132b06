"""Custom exceptions for podsync."""

from pathlib import Path


class PodsyncError(Exception):
    """Base exception for all podsync errors."""

    pass


class ConfigError(PodsyncError):
    """Configuration-related errors.

    Always fatal at startup: raised while loading or merging configuration,
    before any network activity.
    """

    pass


ConfigurationError = ConfigError


class InvalidConfigError(ConfigError):
    """Invalid configuration data."""

    pass


class PatternError(ConfigError):
    """A template string could not be compiled."""

    def __init__(self, message: str, template: str, span: str | None = None) -> None:
        self.template = template
        self.span = span
        detail = f'{message} in template "{template}"'
        if span is not None:
            detail += f' (span: "{{{span}}}")'
        super().__init__(detail)


class FeedError(PodsyncError):
    """Feed management errors."""

    pass


class FeedNotFoundError(FeedError):
    """Feed not found in configuration."""

    pass


class DuplicateFeedError(FeedError):
    """Feed already exists."""

    pass


class FetchError(FeedError):
    """Feed could not be downloaded or parsed."""

    pass


class TransferError(PodsyncError):
    """Episode download failed.

    The partial file, if any, is left on disk so the next run resumes it.
    """

    def __init__(self, message: str, url: str, partial_path: Path | None = None) -> None:
        self.url = url
        self.partial_path = partial_path
        super().__init__(message)


class FilesystemError(PodsyncError):
    """Rename, symlink or directory creation failed."""

    pass


class TagError(PodsyncError):
    """Writing or reading audio tags failed."""

    pass
