"""Exception taxonomy for book ingestion and the reading library."""


class ReaderError(Exception):
    """Base class for all rsvp-reader errors."""

    pass


class CorruptArchiveError(ReaderError):
    """Raised when a book file cannot be opened at all. Fatal."""

    pass


class PackageDocumentMissingError(ReaderError):
    """Raised when a container has no readable package document.

    Recoverable: ingestion falls back to markup-file discovery.
    """

    pass


class EntryNotFoundError(ReaderError, KeyError):
    """Raised when an archive entry does not exist."""

    def __init__(self, path: str):
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"Entry not found in archive: {self.path}"


class MarkupDecodeError(ReaderError):
    """Raised when a content file's bytes are not valid text."""

    pass


class NoTextFoundError(ReaderError):
    """Raised when every ingestion strategy produced zero text. Fatal."""

    pass


class UnsupportedFormatError(ReaderError, ValueError):
    """Raised for file extensions no parser handles."""

    pass


class BookNotFoundError(ReaderError, KeyError):
    """Raised when the library has no record for a book id."""

    def __init__(self, book_id: str):
        super().__init__(book_id)
        self.book_id = book_id

    def __str__(self) -> str:
        return f"Book not found in library: {self.book_id}"
