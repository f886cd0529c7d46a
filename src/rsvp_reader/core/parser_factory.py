"""Factory for creating book parsers based on file format."""

from abc import ABC, abstractmethod
from pathlib import Path

from rsvp_reader.errors import UnsupportedFormatError
from rsvp_reader.models.book import ParsedBook


class BookParser(ABC):
    """Abstract base class for book parsers.

    Parsers work on in-memory bytes; reading files from disk is the caller's
    concern.
    """

    def __init__(self, data: bytes, fallback_title: str | None = None):
        self.data = data
        self.fallback_title = fallback_title

    @abstractmethod
    def parse(self) -> ParsedBook:
        """Parse the book and return its text, word stream and metadata."""
        pass


class ParserFactory:
    """Factory for creating appropriate parser based on file format."""

    SUPPORTED_FORMATS = {
        ".epub": "epub",
        ".pdf": "pdf",
        ".txt": "txt",
    }

    @classmethod
    def create(
        cls,
        data: bytes,
        extension: str,
        fallback_title: str | None = None,
    ) -> BookParser:
        """Create appropriate parser for the given file contents.

        Args:
            data: Raw bytes of the book file
            extension: File extension, with or without the leading dot
            fallback_title: Title used when the book carries none

        Returns:
            BookParser instance for the file type

        Raises:
            UnsupportedFormatError: If the extension is not supported
        """
        file_type = cls.SUPPORTED_FORMATS.get(cls._normalize(extension))

        if file_type == "epub":
            from rsvp_reader.core.epub_parser import EpubParser

            return EpubParser(data, fallback_title=fallback_title)
        elif file_type == "pdf":
            from rsvp_reader.core.pdf_parser import PdfParser

            return PdfParser(data, fallback_title=fallback_title)
        elif file_type == "txt":
            from rsvp_reader.core.text_parser import TextParser

            return TextParser(data, fallback_title=fallback_title)

        supported = ", ".join(cls.SUPPORTED_FORMATS.keys())
        raise UnsupportedFormatError(
            f"Unsupported format: {extension}. Supported formats: {supported}"
        )

    @classmethod
    def parse(
        cls,
        data: bytes,
        extension: str,
        fallback_title: str | None = None,
    ) -> ParsedBook:
        """Create the matching parser and run it."""
        return cls.create(data, extension, fallback_title).parse()

    @classmethod
    def parse_file(cls, path: Path) -> ParsedBook:
        """Read and parse a book file, using its stem as the fallback title."""
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if not cls.is_supported(path):
            raise UnsupportedFormatError(f"Unsupported format: {path.suffix}")
        return cls.parse(path.read_bytes(), path.suffix, fallback_title=path.stem)

    @classmethod
    def detect_format(cls, path: Path) -> str:
        """Detect file format from extension.

        Returns:
            Format string ("epub", "pdf", "txt", or "unknown")
        """
        return cls.SUPPORTED_FORMATS.get(path.suffix.lower(), "unknown")

    @classmethod
    def is_supported(cls, path: Path) -> bool:
        """Check if file format is supported."""
        return path.suffix.lower() in cls.SUPPORTED_FORMATS

    @staticmethod
    def _normalize(extension: str) -> str:
        extension = extension.lower().strip()
        return extension if extension.startswith(".") else f".{extension}"
