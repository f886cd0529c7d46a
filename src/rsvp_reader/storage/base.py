"""Interface the reading core expects from book storage."""

from abc import ABC, abstractmethod

from rsvp_reader.models.library import BookMetadata


class PersistenceStore(ABC):
    """Durable storage for book files, metadata and reading progress."""

    @abstractmethod
    def save(
        self,
        book_id: str,
        file_bytes: bytes,
        file_name: str,
        metadata: BookMetadata,
        cover_image: bytes | None = None,
    ) -> None:
        pass

    @abstractmethod
    def load(self, book_id: str) -> bytes:
        pass

    @abstractmethod
    def get_metadata(self, book_id: str) -> BookMetadata:
        pass

    @abstractmethod
    def update_progress(self, book_id: str, index: int) -> None:
        pass

    @abstractmethod
    def list_all(self) -> list[BookMetadata]:
        """Return all books, most recently opened first."""
        pass

    @abstractmethod
    def get_cover(self, book_id: str) -> bytes | None:
        pass
