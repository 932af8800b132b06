"""Podsync - keep local copies of podcast feeds in sync."""

__version__ = "0.1.0"
