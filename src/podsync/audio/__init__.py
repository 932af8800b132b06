"""Episode download and tagging for podsync."""

from podsync.audio.artwork import Artwork, ArtworkCache, cover_url
from podsync.audio.downloader import DownloadProgress, ResumableDownloader, choose_extension
from podsync.audio.tagger import EpisodeTagger, TagSet, is_taggable

__all__ = [
    "Artwork",
    "ArtworkCache",
    "DownloadProgress",
    "EpisodeTagger",
    "ResumableDownloader",
    "TagSet",
    "choose_extension",
    "cover_url",
    "is_taggable",
]
