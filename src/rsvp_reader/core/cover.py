"""Locate cover image bytes inside an EPUB container."""

import logging

from rsvp_reader.core.archive import ArchiveHandle
from rsvp_reader.core.container import join_archive_path
from rsvp_reader.errors import ReaderError
from rsvp_reader.models.book import ManifestItem, PackageDocument

log = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".gif")
COMMON_COVER_NAMES = ("cover.jpg", "cover.png", "cover.jpeg", "cover.gif")


def _cover_item(package: PackageDocument) -> ManifestItem | None:
    if package.cover_id and package.cover_id in package.manifest:
        return package.manifest[package.cover_id]
    for item in package.manifest.values():
        if item.id == "cover-image" or "cover-image" in (item.properties or ""):
            return item
    return None


def find_cover(archive: ArchiveHandle, package: PackageDocument | None) -> bytes | None:
    """Return the cover image of a book, or None when none can be found."""
    try:
        if package is not None:
            item = _cover_item(package)
            if item is not None and item.href.lower().endswith(IMAGE_SUFFIXES):
                path = join_archive_path(package.base_dir, item.href)
                if archive.find(path):
                    return archive.read_any(path)

        for name in COMMON_COVER_NAMES:
            for entry in archive.list_entries():
                if entry.lower().endswith(name):
                    return archive.read(entry)
    except ReaderError as e:
        log.debug(f"Cover extraction failed: {e}")
    return None
