"""Resumable episode downloader using httpx."""

import logging
import mimetypes
import os
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import aiofiles
import httpx
from pydantic import BaseModel, Field

from podsync.utils.errors import FilesystemError, TransferError
from podsync.utils.paths import sanitize_filename

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".partial"
DEFAULT_EXTENSION = "mp3"
DEFAULT_CHUNK_SIZE = 64 * 1024

# Audio types the platform mime database often lacks
_AUDIO_EXTENSIONS = {
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "audio/opus": "opus",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/x-mpeg": "mp3",
}

# Generic types that say nothing about the file format
_UNINFORMATIVE_TYPES = {"application/octet-stream", "binary/octet-stream"}


class DownloadProgress(BaseModel):
    """Progress information for an episode download."""

    status: str = Field(..., description="Current download status")
    downloaded_bytes: int = Field(default=0, ge=0, description="Bytes on disk so far")
    total_bytes: int | None = Field(
        default=None, ge=0, description="Total bytes of the file (if known)"
    )

    @property
    def percentage(self) -> float | None:
        """Calculate download percentage if total is known."""
        if self.total_bytes and self.total_bytes > 0:
            return (self.downloaded_bytes / self.total_bytes) * 100
        return None


def extension_from_url(url: str) -> str | None:
    """Extension of the last URL path segment, without query string.

    Returns:
        Lowercase extension without dot, or None if the path has none
    """
    path = unquote(urlparse(url).path)
    suffix = PurePosixPath(path).suffix.split("?", 1)[0].lstrip(".").lower()
    if suffix and suffix.isalnum() and len(suffix) <= 5:
        return suffix
    return None


def extension_from_content_type(content_type: str | None) -> str | None:
    """Map a Content-Type header to a file extension, preferring mp3."""
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime or mime in _UNINFORMATIVE_TYPES:
        return None

    candidates = [ext.lstrip(".") for ext in mimetypes.guess_all_extensions(mime)]
    if mime in _AUDIO_EXTENSIONS:
        candidates.append(_AUDIO_EXTENSIONS[mime])
    if not candidates:
        return None
    if "mp3" in candidates:
        return "mp3"
    return candidates[0]


def choose_extension(url: str, content_type: str | None) -> str:
    """Pick the final file extension: URL first, then Content-Type, then mp3."""
    return (
        extension_from_url(url)
        or extension_from_content_type(content_type)
        or DEFAULT_EXTENSION
    )


class ResumableDownloader:
    """Download episodes to a partial file and promote it when complete.

    The partial file is named after the episode id, so an interrupted
    transfer is picked up by the next run with a ``Range`` request starting
    at the partial file's current length. Nothing is retried within a run.

    Example:
        >>> async with httpx.AsyncClient(timeout=60) as client:
        ...     downloader = ResumableDownloader(client)
        ...     path = await downloader.download(url, Path("/music/show"), guid)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress_callback: Callable[[DownloadProgress], None] | None = None,
    ):
        """Initialize downloader.

        Args:
            client: Shared HTTP client (owns timeouts and connection pooling)
            chunk_size: Bytes per streamed chunk
            progress_callback: Optional callback for progress updates
        """
        self.client = client
        self.chunk_size = chunk_size
        self.progress_callback = progress_callback

    @staticmethod
    def partial_path(directory: Path, episode_id: str) -> Path:
        """Deterministic staging path for an episode."""
        return directory / f"{sanitize_filename(episode_id)}{PARTIAL_SUFFIX}"

    def _report(self, status: str, downloaded: int, total: int | None) -> None:
        if not self.progress_callback:
            return
        self.progress_callback(
            DownloadProgress(status=status, downloaded_bytes=downloaded, total_bytes=total)
        )

    async def download(self, url: str, directory: Path, episode_id: str) -> Path:
        """Download (or resume) an episode.

        Args:
            url: Enclosure URL
            directory: Directory for the partial and the downloaded file
            episode_id: Stable id, used for the partial file name

        Returns:
            Path of the complete file, named ``<id>.<ext>``

        Raises:
            TransferError: On connect, timeout, HTTP status, decode errors or
                a truncated body. The partial file is kept.
            FilesystemError: If the directory, partial or final file cannot
                be written
        """
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create download directory {directory}: {e}") from e

        partial = self.partial_path(directory, episode_id)
        offset = partial.stat().st_size if partial.exists() else 0

        headers = {"Accept-Encoding": "identity"}
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"
            logger.info(f"Resuming {url} from byte {offset}")

        try:
            async with self.client.stream("GET", url, headers=headers) as response:
                if response.status_code == 416 and offset > 0:
                    # Partial already holds the whole body
                    logger.info(f"Server reports {partial.name} already complete")
                    ext = choose_extension(url, response.headers.get("content-type"))
                    self._report("finished", offset, offset)
                    return self._promote(partial, ext)

                response.raise_for_status()

                if offset > 0 and response.status_code != 206:
                    logger.warning(f"Server ignored range request for {url}, restarting")
                    offset = 0

                remaining = response.headers.get("content-length")
                total = offset + int(remaining) if remaining is not None else None
                ext = choose_extension(url, response.headers.get("content-type"))

                downloaded = await self._stream_to_file(response, partial, offset, total)
        except httpx.TimeoutException as e:
            raise TransferError(f"Timed out downloading {url}: {e}", url, partial) from e
        except httpx.HTTPStatusError as e:
            raise TransferError(
                f"Server returned {e.response.status_code} for {url}", url, partial
            ) from e
        except httpx.HTTPError as e:
            raise TransferError(f"Failed to download {url}: {e}", url, partial) from e
        except ValueError as e:
            # Malformed Content-Length
            raise TransferError(f"Invalid response for {url}: {e}", url, partial) from e

        if total is not None and downloaded < total:
            raise TransferError(
                f"Incomplete download of {url}: {downloaded}/{total} bytes", url, partial
            )

        self._report("finished", downloaded, total if total is not None else downloaded)
        return self._promote(partial, ext)

    async def _stream_to_file(
        self, response: httpx.Response, partial: Path, offset: int, total: int | None
    ) -> int:
        mode = "ab" if offset > 0 else "wb"
        downloaded = offset
        self._report("downloading", downloaded, total)

        try:
            async with aiofiles.open(partial, mode) as f:
                async for chunk in response.aiter_bytes(self.chunk_size):
                    if not chunk:
                        continue
                    await f.write(chunk)
                    downloaded += len(chunk)
                    shown = min(downloaded, total) if total is not None else downloaded
                    self._report("downloading", shown, total)
        except OSError as e:
            raise FilesystemError(f"Failed to write {partial}: {e}") from e

        return downloaded

    def _promote(self, partial: Path, ext: str) -> Path:
        """Atomically rename the partial file to its final extension."""
        final = partial.parent / f"{partial.name[: -len(PARTIAL_SUFFIX)]}.{ext}"
        try:
            os.replace(partial, final)
        except OSError as e:
            raise FilesystemError(f"Failed to move {partial} to {final}: {e}") from e
        logger.debug(f"Downloaded {final}")
        return final
