"""Data models."""

from rsvp_reader.models.book import (
    BookDocument,
    ChapterMarker,
    LinearizationStrategy,
    ManifestItem,
    PackageDocument,
    Page,
    ParsedBook,
)
from rsvp_reader.models.library import (
    BookMetadata,
    LibraryIndex,
)
from rsvp_reader.models.playback import (
    OrpPolicy,
    PlaybackState,
    ReaderSettings,
)

__all__ = [
    # Book models
    "ManifestItem",
    "PackageDocument",
    "BookDocument",
    "ChapterMarker",
    "LinearizationStrategy",
    "ParsedBook",
    "Page",
    # Library models
    "BookMetadata",
    "LibraryIndex",
    # Playback models
    "OrpPolicy",
    "PlaybackState",
    "ReaderSettings",
]
