"""Cover art fetching and caching for episode tagging."""

import hashlib
import logging
import mimetypes
import os
from pathlib import Path

import aiofiles
import httpx
from pydantic import BaseModel

from podsync.feeds.models import Episode, PodcastMetadata
from podsync.utils.paths import get_cache_dir

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


class Artwork(BaseModel):
    """Image bytes ready to embed as a cover picture."""

    mime: str
    data: bytes


def cover_url(podcast: PodcastMetadata, episode: Episode) -> str | None:
    """The episode's own image if it has one, otherwise the channel image."""
    return episode.image or podcast.image


def image_mime(url: str, content_type: str | None) -> str:
    """Pick the MIME type of a downloaded image.

    Args:
        url: Image URL, used when the response type is not an image type
        content_type: Content-Type header of the response

    Returns:
        An ``image/*`` type, ``image/jpeg`` when nothing better is known
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime.startswith("image/"):
        return mime
    guessed, _ = mimetypes.guess_type(httpx.URL(url).path)
    if guessed and guessed.startswith("image/"):
        return guessed
    return DEFAULT_MIME_TYPE


class ArtworkCache:
    """File-based cache for cover images.

    Uses SHA256 hashes of image URLs as cache keys. The image bytes and
    their MIME type are stored side by side (``<key>`` and ``<key>.mime``).
    Lookups are also remembered for the lifetime of the cache object,
    failures included, so each URL is requested at most once per run.
    """

    def __init__(self, client: httpx.AsyncClient, cache_dir: Path | None = None) -> None:
        """Initialize artwork cache.

        Args:
            client: HTTP client used for image downloads
            cache_dir: Directory for cache storage (default: XDG cache dir)
        """
        self.client = client
        self.cache_dir = cache_dir or get_cache_dir() / "artwork"
        self._memory: dict[str, Artwork | None] = {}

    def _get_cache_paths(self, url: str) -> tuple[Path, Path]:
        key = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return self.cache_dir / key, self.cache_dir / f"{key}.mime"

    async def get(self, url: str) -> Artwork | None:
        """Return the image at ``url``, downloading it on a cache miss.

        Missing cover art never fails an episode: network and filesystem
        problems are logged and give ``None``.

        Args:
            url: Image URL

        Returns:
            The image, or None if it could not be obtained
        """
        if url in self._memory:
            return self._memory[url]

        artwork = await self._load(url)
        if artwork is None:
            artwork = await self._fetch(url)
            if artwork is not None:
                await self._store(url, artwork)

        self._memory[url] = artwork
        return artwork

    async def _load(self, url: str) -> Artwork | None:
        data_path, mime_path = self._get_cache_paths(url)
        if not data_path.exists() or not mime_path.exists():
            return None

        try:
            async with aiofiles.open(data_path, "rb") as f:
                data = await f.read()
            async with aiofiles.open(mime_path, "r", encoding="utf-8") as f:
                mime = (await f.read()).strip()
        except OSError as e:
            logger.warning(f"Failed to read cached image for {url}: {e}")
            return None

        logger.debug(f"Loaded cached image for {url}")
        return Artwork(mime=mime or DEFAULT_MIME_TYPE, data=data)

    async def _fetch(self, url: str) -> Artwork | None:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch cover image {url}: {e}")
            return None

        if not response.content:
            logger.warning(f"Cover image {url} is empty")
            return None

        return Artwork(
            mime=image_mime(url, response.headers.get("content-type")),
            data=response.content,
        )

    async def _store(self, url: str, artwork: Artwork) -> None:
        data_path, mime_path = self._get_cache_paths(url)
        temp_path = data_path.with_name(f"{data_path.name}.tmp")

        # The data file appears last and atomically; it marks a complete entry
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(mime_path, "w", encoding="utf-8") as f:
                await f.write(artwork.mime)
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(artwork.data)
            os.replace(temp_path, data_path)
        except OSError as e:
            logger.warning(f"Failed to cache cover image {url}: {e}")
