"""Per-feed sync pipeline and the concurrent multi-feed runner.

For each feed: fetch, select pending episodes through the download mode and
the ledger, then for each episode in order download, tag, rename, symlink,
start the hook and finally record it in the ledger. Feeds run concurrently;
episodes within a feed run strictly one after another, which keeps each
ledger and partial file single-writer without locks.
"""

import asyncio
import contextlib
import logging
import os
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Literal

import httpx
from pydantic import BaseModel, Field

from podsync.audio.artwork import Artwork, ArtworkCache, cover_url
from podsync.audio.downloader import DownloadProgress, ResumableDownloader
from podsync.audio.tagger import EpisodeTagger, TagSet, is_taggable
from podsync.config.settings import FeedSettings
from podsync.feeds.models import Episode, PodcastMetadata
from podsync.feeds.parser import RSSParser
from podsync.patterns import DataSources
from podsync.sync.hooks import start_hook
from podsync.sync.ledger import DownloadLedger
from podsync.sync.policy import pending_episodes
from podsync.ui.display import NullReporter, SyncReporter
from podsync.utils.datetime import now_utc
from podsync.utils.errors import (
    FetchError,
    FilesystemError,
    TagError,
    TransferError,
)
from podsync.utils.paths import sanitize_filename

logger = logging.getLogger(__name__)

ReporterFactory = Callable[[str], SyncReporter]
Clock = Callable[[], datetime]


class FeedResult(BaseModel):
    """Outcome of syncing one feed."""

    name: str
    status: Literal["complete", "error"]
    downloaded: list[Path] = Field(default_factory=list)
    error: str | None = None


def rename_episode(path: Path, name: str) -> Path:
    """Rename a downloaded file, keeping its extension.

    Raises:
        FilesystemError: If the rename fails
    """
    target = path.parent / f"{sanitize_filename(name)}{path.suffix}"
    if target == path:
        return path
    try:
        os.replace(path, target)
    except OSError as e:
        raise FilesystemError(f"Failed to rename {path} to {target}: {e}") from e
    return target


def create_symlink(target: Path, directory: Path) -> Path:
    """Create ``directory/<target name>`` pointing at ``target``.

    Raises:
        FilesystemError: If the directory is the target's own directory or
            cannot be created, or the link cannot be written
    """
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to create symlink directory {directory}: {e}") from e

    if directory.resolve() == target.parent.resolve():
        raise FilesystemError(f"Symlink for {target.name} would replace the file itself")

    link = directory / target.name
    try:
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(target.resolve())
    except OSError as e:
        raise FilesystemError(f"Failed to create symlink {link}: {e}") from e
    return link


class FeedSync:
    """Sync pipeline for a single feed.

    Example:
        >>> result = await FeedSync(settings, client).run()
        >>> result.status
        'complete'
    """

    def __init__(
        self,
        settings: FeedSettings,
        client: httpx.AsyncClient,
        reporter: SyncReporter | None = None,
        parser: RSSParser | None = None,
        tagger: EpisodeTagger | None = None,
        artwork: ArtworkCache | None = None,
        clock: Clock = now_utc,
    ) -> None:
        self.settings = settings
        self.client = client
        self.reporter = reporter or NullReporter()
        self.parser = parser or RSSParser()
        self.tagger = tagger or EpisodeTagger()
        self.artwork = artwork
        self.clock = clock
        self.downloader = ResumableDownloader(client, progress_callback=self._on_progress)

    def _on_progress(self, progress: DownloadProgress) -> None:
        self.reporter.transfer_progress(progress.downloaded_bytes, progress.total_bytes)

    def episode_id(self, podcast: PodcastMetadata, episode: Episode) -> str:
        return self.settings.id_pattern.evaluate(DataSources(podcast=podcast, episode=episode))

    def pending(
        self, podcast: PodcastMetadata, episodes: Sequence[Episode], ledger: DownloadLedger
    ) -> list[Episode]:
        """Episodes due this run, in download order."""
        return pending_episodes(
            self.settings.mode,
            episodes,
            lambda ep: ledger.contains(self.episode_id(podcast, ep)),
            self.clock(),
        )

    async def run(self) -> FeedResult:
        """Run the pipeline for this feed.

        Fetch failures and the first failing episode end the feed with an
        ``error`` result. Episodes completed before the failure stay
        recorded; the failed one is retried on the next run.
        """
        name = self.settings.name
        self.reporter.fetching()

        try:
            podcast, episodes = await self.parser.fetch(self.client, name, self.settings.url)
            tracker = Path(self.settings.tracker_path.evaluate(DataSources(podcast=podcast)))
            ledger = DownloadLedger.load(tracker.expanduser())
        except (FetchError, FilesystemError) as e:
            logger.error(f"Feed '{name}' failed: {e}")
            self.reporter.error(str(e))
            return FeedResult(name=name, status="error", error=str(e))

        pending = self.pending(podcast, episodes, ledger)
        logger.info(f"Feed '{name}': {len(pending)} of {len(episodes)} episode(s) to download")

        downloaded: list[Path] = []
        hooks: list[asyncio.Task[None]] = []
        failure: str | None = None

        try:
            for position, episode in enumerate(pending, start=1):
                self.reporter.begin_download(episode, position, len(pending))
                try:
                    path = await self._process(podcast, episode, ledger, hooks)
                except (TransferError, FilesystemError) as e:
                    failure = str(e)
                    logger.error(f"Feed '{name}': {episode.slug} failed, stopping feed: {e}")
                    break
                downloaded.append(path)
                logger.info(f"Feed '{name}': downloaded {path.name}")
        finally:
            # Hooks already started are joined even when the loop raises
            if hooks:
                self.reporter.running_hooks()
                await asyncio.gather(*hooks)

        if failure is not None:
            self.reporter.error(failure)
            return FeedResult(name=name, status="error", downloaded=downloaded, error=failure)

        self.reporter.complete(len(downloaded))
        return FeedResult(name=name, status="complete", downloaded=downloaded)

    async def _process(
        self,
        podcast: PodcastMetadata,
        episode: Episode,
        ledger: DownloadLedger,
        hooks: list[asyncio.Task[None]],
    ) -> Path:
        settings = self.settings
        sources = DataSources(podcast=podcast, episode=episode)
        episode_id = settings.id_pattern.evaluate(sources)
        directory = Path(settings.download_path.evaluate(sources)).expanduser()

        path = await self.downloader.download(episode.url, directory, episode_id)

        tags = await self._tag(path, podcast, episode)
        sources = DataSources(podcast=podcast, episode=episode, tags=tags)

        path = rename_episode(path, settings.name_pattern.evaluate(sources))

        if settings.symlink is not None:
            create_symlink(path, Path(settings.symlink.evaluate(sources)).expanduser())

        if settings.download_hook is not None:
            hooks.append(start_hook(settings.download_hook, path))

        await ledger.append(episode_id, episode.title)
        return path

    async def _cover(self, podcast: PodcastMetadata, episode: Episode) -> Artwork | None:
        url = cover_url(podcast, episode)
        if self.artwork is None or url is None:
            return None
        return await self.artwork.get(url)

    async def _tag(self, path: Path, podcast: PodcastMetadata, episode: Episode) -> TagSet:
        cover = await self._cover(podcast, episode) if is_taggable(path) else None
        try:
            return await asyncio.to_thread(
                self.tagger.tag, path, podcast, episode, self.settings.custom_tags, cover
            )
        except TagError as e:
            logger.warning(f"Feed '{self.settings.name}': {e}")
            return {}


class SyncOrchestrator:
    """Run every feed's pipeline concurrently.

    At most ``max_concurrent_feeds`` feeds are in flight at once (``None``
    for no limit). A failing feed never affects its siblings.
    """

    def __init__(
        self,
        feeds: Sequence[FeedSettings],
        timeout: float = 60.0,
        max_concurrent_feeds: int | None = 8,
        reporter_factory: ReporterFactory | None = None,
        client: httpx.AsyncClient | None = None,
        tagger: EpisodeTagger | None = None,
        artwork_dir: Path | None = None,
        clock: Clock = now_utc,
    ) -> None:
        """Initialize orchestrator.

        Args:
            feeds: Resolved feed settings
            timeout: HTTP timeout in seconds for every request
            max_concurrent_feeds: Bound on simultaneously synced feeds
            reporter_factory: Returns the progress reporter for a feed name
            client: Shared HTTP client (created and closed here if None)
            tagger: Tagger shared by all feeds
            artwork_dir: Cover image cache directory (default: XDG cache dir)
            clock: Source of "now" for download mode evaluation
        """
        self.feeds = list(feeds)
        self.timeout = timeout
        self.max_concurrent_feeds = max_concurrent_feeds
        self.reporter_factory = reporter_factory or (lambda name: NullReporter())
        self.client = client
        self.tagger = tagger or EpisodeTagger()
        self.artwork_dir = artwork_dir
        self.clock = clock

    def _client(self) -> contextlib.AbstractAsyncContextManager[httpx.AsyncClient]:
        if self.client is not None:
            return contextlib.nullcontext(self.client)
        from podsync import __version__

        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            headers={"User-Agent": f"podsync/{__version__}"},
        )

    async def run(self) -> list[FeedResult]:
        """Sync all feeds and wait for every one (and its hooks) to finish.

        Returns:
            One result per feed, ordered by feed name
        """
        limit = self.max_concurrent_feeds
        semaphore = asyncio.Semaphore(limit) if limit else None

        async with self._client() as client:
            artwork = ArtworkCache(client, cache_dir=self.artwork_dir)

            async def run_feed(settings: FeedSettings) -> FeedResult:
                sync = FeedSync(
                    settings,
                    client,
                    reporter=self.reporter_factory(settings.name),
                    tagger=self.tagger,
                    artwork=artwork,
                    clock=self.clock,
                )
                if semaphore is None:
                    return await sync.run()
                async with semaphore:
                    return await sync.run()

            outcomes = await asyncio.gather(
                *(run_feed(settings) for settings in self.feeds), return_exceptions=True
            )

        results = []
        for settings, outcome in zip(self.feeds, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    f"Feed '{settings.name}' crashed: {outcome}",
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                self.reporter_factory(settings.name).error(str(outcome))
                outcome = FeedResult(name=settings.name, status="error", error=str(outcome))
            results.append(outcome)

        return sorted(results, key=lambda result: result.name)
