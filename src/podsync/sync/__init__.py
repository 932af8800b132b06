"""Download tracking and episode selection."""

from podsync.sync.ledger import DownloadLedger, LedgerEntry
from podsync.sync.policy import BacklogMode, DownloadMode, StandardMode, pending_episodes

__all__ = [
    "BacklogMode",
    "DownloadLedger",
    "DownloadMode",
    "LedgerEntry",
    "StandardMode",
    "pending_episodes",
]
