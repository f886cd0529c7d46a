"""Persisted library records."""

from datetime import datetime

from pydantic import BaseModel, Field


class BookMetadata(BaseModel):
    """Stored record for one imported book."""

    id: str
    title: str
    author: str | None = None
    file_name: str
    total_words: int
    last_read_index: int = 0
    last_opened: datetime = Field(default_factory=datetime.now)
    file_type: str  # "epub" | "pdf" | "txt"

    @property
    def progress(self) -> float:
        """Fraction of the book already read."""
        if self.total_words <= 0:
            return 0.0
        return min(1.0, self.last_read_index / self.total_words)


class LibraryIndex(BaseModel):
    """Ordered list of book ids known to the library."""

    book_ids: list[str] = Field(default_factory=list)
