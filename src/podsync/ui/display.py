"""Progress reporting for sync runs.

The sync pipeline talks to a :class:`SyncReporter` per feed. Reporters are
purely observational; they must never raise into the pipeline.

Usage:
    with SyncDisplay(feed_names) as display:
        reporter = display.reporter("my-show")
        reporter.fetching()
"""

from collections.abc import Iterable
from types import TracebackType
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from podsync.feeds.models import Episode

TITLE_LENGTH = 30


def truncate(text: str, length: int) -> str:
    """Fit text into ``length`` characters, marking cuts with an ellipsis."""
    if len(text) <= length:
        return text
    return text[: max(length - 1, 0)] + "…"


class SyncReporter(Protocol):
    """Feed-level lifecycle and transfer progress events."""

    def fetching(self) -> None: ...

    def begin_download(self, episode: Episode, position: int, total: int) -> None: ...

    def transfer_progress(self, downloaded: int, total: int | None) -> None: ...

    def running_hooks(self) -> None: ...

    def complete(self, downloaded: int) -> None: ...

    def error(self, message: str) -> None: ...


class NullReporter:
    """Reporter that ignores every event."""

    def fetching(self) -> None:
        pass

    def begin_download(self, episode: Episode, position: int, total: int) -> None:
        pass

    def transfer_progress(self, downloaded: int, total: int | None) -> None:
        pass

    def running_hooks(self) -> None:
        pass

    def complete(self, downloaded: int) -> None:
        pass

    def error(self, message: str) -> None:
        pass


class FeedProgress:
    """One feed's row in a :class:`SyncDisplay`."""

    def __init__(self, progress: Progress, task_id: TaskID) -> None:
        self._progress = progress
        self._task_id = task_id

    def _status(self, status: str, **kwargs) -> None:
        self._progress.update(self._task_id, status=status, **kwargs)

    def fetching(self) -> None:
        self._status("[dim]fetching feed…[/dim]")

    def begin_download(self, episode: Episode, position: int, total: int) -> None:
        title = truncate(episode.title, TITLE_LENGTH)
        self._progress.reset(self._task_id, total=None)
        self._status(f"{position}/{total} {escape(title)}")

    def transfer_progress(self, downloaded: int, total: int | None) -> None:
        self._progress.update(self._task_id, completed=downloaded, total=total)

    def running_hooks(self) -> None:
        self._status("[dim]waiting for download hooks…[/dim]")

    def complete(self, downloaded: int) -> None:
        self._status(f"[green]✓[/green] {downloaded} new episode(s)")
        self._progress.stop_task(self._task_id)

    def error(self, message: str) -> None:
        self._status(f"[red]✗[/red] {escape(truncate(message, 60))}")
        self._progress.stop_task(self._task_id)


class SyncDisplay:
    """Live multi-feed progress display built on ``rich.progress``."""

    def __init__(self, feed_names: Iterable[str], console: Console | None = None) -> None:
        names = list(feed_names)
        width = max((len(name) for name in names), default=0) + 2
        self._progress = Progress(
            TextColumn(f"{{task.description:<{width}}}", markup=False),
            BarColumn(bar_width=24),
            DownloadColumn(),
            TransferSpeedColumn(),
            TextColumn("{task.fields[status]}"),
            console=console or Console(stderr=True),
            transient=False,
        )
        self._tasks = {
            name: self._progress.add_task(name, total=None, status="[dim]queued[/dim]")
            for name in names
        }

    def reporter(self, feed_name: str) -> FeedProgress:
        """Reporter bound to one feed's row."""
        return FeedProgress(self._progress, self._tasks[feed_name])

    def __enter__(self) -> "SyncDisplay":
        self._progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._progress.stop()
