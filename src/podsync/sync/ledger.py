"""Append-only record of completed downloads, one file per feed.

Each line is ``<id> <unix_seconds> "<title>"``. Lines are only ever appended,
so a crash mid-write can damage at most the last line, and unparseable lines
are skipped on load.
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
from pydantic import BaseModel

from podsync.utils.datetime import now_utc, to_unix
from podsync.utils.errors import FilesystemError

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r'^(?P<id>\S+) (?P<ts>-?\d+) "(?P<title>.*)"$')
_WHITESPACE_RE = re.compile(r"\s+")


class LedgerEntry(BaseModel):
    """One completed download. Only ``id`` matters for membership."""

    id: str
    downloaded_at: datetime
    title: str

    def to_line(self) -> str:
        title = self.title.replace("\r", " ").replace("\n", " ")
        return f'{self.id} {to_unix(self.downloaded_at)} "{title}"\n'

    @classmethod
    def from_line(cls, line: str) -> "LedgerEntry | None":
        """Parse one ledger line, returning None if it is malformed."""
        match = _LINE_RE.match(line.rstrip("\r\n"))
        if not match:
            return None
        try:
            downloaded_at = datetime.fromtimestamp(int(match["ts"]), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return cls(id=match["id"], downloaded_at=downloaded_at, title=match["title"])


def normalize_id(episode_id: str) -> str:
    """Collapse whitespace so an id is a single ledger token.

    Raises:
        ValueError: If the id is empty after normalization
    """
    normalized = _WHITESPACE_RE.sub("_", episode_id.strip())
    if not normalized:
        raise ValueError("episode id must not be empty")
    return normalized


class DownloadLedger:
    """Set of episode ids already downloaded for a feed.

    Only the task syncing the owning feed may write to the file.

    Example:
        >>> ledger = DownloadLedger.load(path)
        >>> if not ledger.contains(episode_id):
        ...     await ledger.append(episode_id, episode.title)
    """

    def __init__(self, path: Path, entries: list[LedgerEntry] | None = None) -> None:
        self.path = path
        self._entries: dict[str, LedgerEntry] = {}
        for entry in entries or []:
            self._entries[entry.id] = entry

    @classmethod
    def load(cls, path: Path) -> "DownloadLedger":
        """Read a ledger file.

        A missing file yields an empty ledger. Malformed lines are skipped.

        Args:
            path: Ledger file location

        Returns:
            Loaded ledger bound to ``path``

        Raises:
            FilesystemError: If the file exists but cannot be read
        """
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return cls(path)
        except OSError as e:
            raise FilesystemError(f"Failed to read download ledger {path}: {e}") from e

        entries = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            entry = LedgerEntry.from_line(line)
            if entry is None:
                logger.debug(f"Ignoring malformed ledger line {lineno} in {path}")
                continue
            entries.append(entry)

        return cls(path, entries)

    def contains(self, episode_id: str) -> bool:
        """Check whether an episode id has been recorded."""
        try:
            return normalize_id(episode_id) in self._entries
        except ValueError:
            return False

    def __contains__(self, episode_id: object) -> bool:
        return isinstance(episode_id, str) and self.contains(episode_id)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[LedgerEntry]:
        return list(self._entries.values())

    async def append(
        self,
        episode_id: str,
        title: str,
        downloaded_at: datetime | None = None,
    ) -> LedgerEntry:
        """Record a completed download.

        Opens the file in append mode and writes exactly one line. If a
        previous crash left a partial line without a newline, a newline is
        written first so the new entry stays parseable.

        Args:
            episode_id: Id produced by the feed's id pattern
            title: Episode title (informational)
            downloaded_at: Completion time (default: now)

        Returns:
            The recorded entry

        Raises:
            FilesystemError: If the ledger cannot be written
        """
        entry = LedgerEntry(
            id=normalize_id(episode_id),
            downloaded_at=downloaded_at or now_utc(),
            title=title,
        )

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            prefix = "\n" if await asyncio.to_thread(self._has_partial_last_line) else ""
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                await f.write(prefix + entry.to_line())
                await f.flush()
        except OSError as e:
            raise FilesystemError(f"Failed to append to download ledger {self.path}: {e}") from e

        self._entries[entry.id] = entry
        return entry

    def _has_partial_last_line(self) -> bool:
        try:
            with open(self.path, "rb") as f:
                f.seek(0, 2)
                if f.tell() == 0:
                    return False
                f.seek(-1, 2)
                return f.read(1) != b"\n"
        except FileNotFoundError:
            return False
