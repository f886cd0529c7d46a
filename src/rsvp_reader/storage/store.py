"""File-based library of imported books."""

import hashlib
import logging
import shutil
import threading
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from rsvp_reader.errors import BookNotFoundError
from rsvp_reader.models.library import BookMetadata, LibraryIndex
from rsvp_reader.storage.base import PersistenceStore

log = logging.getLogger(__name__)


def book_id_for(file_bytes: bytes) -> str:
    """Derive a stable book id from file contents."""
    return hashlib.sha256(file_bytes).hexdigest()[:16]


class LibraryStore(PersistenceStore):
    """Stores each book in its own directory under ``root/books``.

    Layout::

        root/index.json
        root/books/<id>/<file name>
        root/books/<id>/metadata.json
        root/books/<id>/cover.png
    """

    BOOKS_DIR = "books"
    INDEX_FILE = "index.json"
    METADATA_FILE = "metadata.json"
    COVER_FILE = "cover.png"

    def __init__(self, root: Path):
        self.root = root
        self.index_path = root / self.INDEX_FILE
        self._index: LibraryIndex | None = None
        self._metadata_lock = threading.RLock()

    def _book_dir(self, book_id: str) -> Path:
        return self.root / self.BOOKS_DIR / book_id

    def _load_index(self) -> LibraryIndex:
        """Load or create the library index."""
        if self._index is not None:
            return self._index

        if self.index_path.exists():
            try:
                self._index = LibraryIndex.model_validate_json(self.index_path.read_text())
            except (ValidationError, OSError) as e:
                log.warning(f"Library index unreadable, starting fresh: {e}")
                self._index = LibraryIndex()
        else:
            self._index = LibraryIndex()

        return self._index

    def _save_index(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.index_path.write_text(self._load_index().model_dump_json(indent=2))

    def _write_metadata(self, metadata: BookMetadata) -> None:
        book_dir = self._book_dir(metadata.id)
        book_dir.mkdir(parents=True, exist_ok=True)
        path = book_dir / self.METADATA_FILE
        tmp_path = path.with_name(path.name + ".tmp")
        # Readers never see a partially written file
        with self._metadata_lock:
            tmp_path.write_text(metadata.model_dump_json(indent=2))
            tmp_path.replace(path)

    def save(
        self,
        book_id: str,
        file_bytes: bytes,
        file_name: str,
        metadata: BookMetadata,
        cover_image: bytes | None = None,
    ) -> None:
        """Store a book file with its metadata and optional cover."""
        book_dir = self._book_dir(book_id)
        book_dir.mkdir(parents=True, exist_ok=True)

        safe_name = Path(file_name).name
        (book_dir / safe_name).write_bytes(file_bytes)
        self._write_metadata(metadata.model_copy(update={"id": book_id, "file_name": safe_name}))

        if cover_image is not None:
            (book_dir / self.COVER_FILE).write_bytes(cover_image)

        index = self._load_index()
        if book_id not in index.book_ids:
            index.book_ids.append(book_id)
            self._save_index()
        log.info(f"Saved book {book_id} ({safe_name})")

    def contains(self, book_id: str) -> bool:
        return (self._book_dir(book_id) / self.METADATA_FILE).exists()

    def load(self, book_id: str) -> bytes:
        metadata = self.get_metadata(book_id)
        book_file = self._book_dir(book_id) / metadata.file_name
        if not book_file.exists():
            raise BookNotFoundError(book_id)
        return book_file.read_bytes()

    def get_metadata(self, book_id: str) -> BookMetadata:
        metadata_file = self._book_dir(book_id) / self.METADATA_FILE
        if not metadata_file.exists():
            raise BookNotFoundError(book_id)
        return BookMetadata.model_validate_json(metadata_file.read_text())

    def update_progress(self, book_id: str, index: int) -> None:
        """Store the last read word index and mark the book as just opened."""
        with self._metadata_lock:
            metadata = self.get_metadata(book_id)
            self._write_metadata(
                metadata.model_copy(update={"last_read_index": index, "last_opened": datetime.now()})
            )

    def touch(self, book_id: str) -> BookMetadata:
        """Mark a book as opened now and return its metadata."""
        with self._metadata_lock:
            metadata = self.get_metadata(book_id).model_copy(update={"last_opened": datetime.now()})
            self._write_metadata(metadata)
        return metadata

    def list_all(self) -> list[BookMetadata]:
        """Return all readable books, most recently opened first."""
        books = []
        for book_id in self._load_index().book_ids:
            try:
                books.append(self.get_metadata(book_id))
            except (BookNotFoundError, ValidationError, OSError) as e:
                # Skip books with missing metadata
                log.debug(f"Skipping {book_id}: {e}")
                continue
        books.sort(key=lambda b: b.last_opened, reverse=True)
        return books

    def get_cover(self, book_id: str) -> bytes | None:
        cover_file = self._book_dir(book_id) / self.COVER_FILE
        if cover_file.exists():
            return cover_file.read_bytes()
        return None

    def delete(self, book_id: str) -> bool:
        """Remove a book. Returns False if it was not in the library."""
        book_dir = self._book_dir(book_id)
        existed = book_dir.exists()
        if existed:
            shutil.rmtree(book_dir)

        index = self._load_index()
        if book_id in index.book_ids:
            index.book_ids.remove(book_id)
            self._save_index()
            existed = True
        return existed
