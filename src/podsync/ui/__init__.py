"""Terminal progress display for podsync."""

from podsync.ui.display import FeedProgress, NullReporter, SyncDisplay, SyncReporter

__all__ = ["FeedProgress", "NullReporter", "SyncDisplay", "SyncReporter"]
