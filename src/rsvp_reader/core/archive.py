"""In-memory access to zip-based book containers."""

import io
import logging
import zipfile
import zlib

from rsvp_reader.errors import CorruptArchiveError, EntryNotFoundError

log = logging.getLogger(__name__)


class ArchiveHandle:
    """Read-only view over a zip archive held in memory.

    Entry paths are reported exactly as stored. ``find`` offers the
    case-insensitive, slash-normalised lookup the ingestion pipeline needs.
    """

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf
        self._entries = [info.filename for info in zf.infolist() if not info.is_dir()]
        self._entry_set = set(self._entries)
        self._lower_index: dict[str, str] = {}
        for name in self._entries:
            key = name.replace("\\", "/").lower()
            self._lower_index.setdefault(key, name)

    def list_entries(self) -> list[str]:
        """Return entry paths in archive order."""
        return list(self._entries)

    def read(self, path: str) -> bytes:
        """Return the raw bytes of an entry.

        Raises:
            EntryNotFoundError: If no entry is stored under ``path``.
            CorruptArchiveError: If the entry exists but cannot be decompressed.
        """
        try:
            return self._zf.read(path)
        except KeyError:
            raise EntryNotFoundError(path) from None
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise CorruptArchiveError(f"Cannot read entry {path}: {e}") from e

    def find(self, path: str) -> str | None:
        """Resolve ``path`` to a stored entry name, ignoring case and slash style."""
        if path in self._entry_set:
            return path
        return self._lower_index.get(path.replace("\\", "/").lower())

    def read_any(self, path: str) -> bytes:
        """Read an entry after case-insensitive resolution."""
        stored = self.find(path)
        if stored is None:
            raise EntryNotFoundError(path)
        return self.read(stored)

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_archive(data: bytes) -> ArchiveHandle:
    """Open a zip container from bytes.

    Raises:
        CorruptArchiveError: If ``data`` is not a readable zip archive.
    """
    if not data:
        raise CorruptArchiveError("Book file is empty.")
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise CorruptArchiveError(f"Not a valid zip container: {e}") from e
    log.debug(f"Opened archive with {len(zf.infolist())} entries")
    return ArchiveHandle(zf)
