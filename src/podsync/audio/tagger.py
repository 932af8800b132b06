"""ID3 tagging for downloaded episodes using mutagen."""

import logging
from collections.abc import Mapping
from pathlib import Path

from mutagen import MutagenError
from mutagen.id3 import APIC, ID3, Frames, ID3NoHeaderError, PictureType, TextFrame

from podsync.audio.artwork import Artwork
from podsync.feeds.models import Episode, PodcastMetadata
from podsync.utils.errors import TagError

logger = logging.getLogger(__name__)

TagSet = dict[str, str]

TAGGABLE_EXTENSIONS = {".mp3"}


def is_taggable(path: Path) -> bool:
    return path.suffix.lower() in TAGGABLE_EXTENSIONS


def parse_duration_ms(value: str | None) -> int | None:
    """Convert an ``itunes:duration`` value (``SS``, ``MM:SS`` or ``HH:MM:SS``) to ms."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) > 3:
        return None
    try:
        seconds = 0.0
        for part in parts:
            seconds = seconds * 60 + float(part)
    except ValueError:
        return None
    return int(seconds * 1000)


def _text_frame(frame_id: str, values: str | list[str]) -> TextFrame:
    frame_cls = Frames.get(frame_id)
    if frame_cls is None or not issubclass(frame_cls, TextFrame):
        raise TagError(f"Unsupported text frame '{frame_id}'")
    return frame_cls(encoding=3, text=values)


def _has_front_cover(tags: ID3) -> bool:
    return any(frame.type == PictureType.COVER_FRONT for frame in tags.getall("APIC"))


def tags_to_set(tags: ID3) -> TagSet:
    """Flatten text frames to ``{frame_id: text}``."""
    tag_set: TagSet = {}
    for frame in tags.values():
        if isinstance(frame, TextFrame):
            tag_set.setdefault(frame.FrameID, str(frame))
    return tag_set


class EpisodeTagger:
    """Fill in ID3 frames from feed metadata.

    Frames already present in the file are kept; configured custom tags
    always overwrite. Non-MP3 files are left untouched.
    """

    def tag(
        self,
        path: Path,
        podcast: PodcastMetadata,
        episode: Episode,
        custom_tags: Mapping[str, str] | None = None,
        cover: Artwork | None = None,
    ) -> TagSet:
        """Write tags to ``path`` and return the resulting text frames.

        Args:
            path: Downloaded audio file
            podcast: Channel metadata
            episode: Episode metadata
            custom_tags: Frame id to text, applied unconditionally
            cover: Front cover, embedded unless the file already has one

        Returns:
            Tag set usable as the ``id3::`` pattern source

        Raises:
            TagError: If the file cannot be read or written
        """
        if not is_taggable(path):
            logger.debug(f"Not tagging {path.name}: unsupported format")
            return {}

        try:
            try:
                tags = ID3(path)
            except ID3NoHeaderError:
                tags = ID3()

            for frame_id, value in (custom_tags or {}).items():
                tags.setall(frame_id, [_text_frame(frame_id, value)])

            for frame_id, value in self._defaults(podcast, episode).items():
                if value and not tags.getall(frame_id):
                    tags.add(_text_frame(frame_id, value))

            if cover is not None and not _has_front_cover(tags):
                tags.add(
                    APIC(
                        encoding=3,
                        mime=cover.mime,
                        type=PictureType.COVER_FRONT,
                        desc="Cover",
                        data=cover.data,
                    )
                )

            tags.save(path, v2_version=4)
        except (MutagenError, OSError, ValueError) as e:
            raise TagError(f"Failed to tag {path}: {e}") from e

        return tags_to_set(tags)

    @staticmethod
    def _defaults(podcast: PodcastMetadata, episode: Episode) -> dict[str, str | list[str] | None]:
        published = episode.published.strftime("%Y-%m-%dT%H:%M:%S")
        duration = parse_duration_ms(episode.attributes.get_text("itunes:duration"))
        track = episode.attributes.get_text("itunes:episode")

        return {
            "TIT2": episode.title,
            "TPE1": episode.author or podcast.author,
            "TALB": podcast.title,
            "TCON": "podcast",
            "TRCK": track if track and track.strip().isdigit() else None,
            "TDRC": published,
            "TDRL": published,
            "TDES": episode.description,
            "TCOP": podcast.copyright,
            "TCAT": podcast.categories or None,
            "TLAN": podcast.language,
            "TLEN": str(duration) if duration is not None else None,
            "TPUB": podcast.author,
            "TGID": episode.guid,
        }
