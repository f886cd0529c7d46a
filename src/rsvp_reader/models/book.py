"""Data models for book structure and parse results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LinearizationStrategy(str, Enum):
    """How the reading order of a book was reconstructed."""

    SPINE = "spine"
    MARKUP_DISCOVERY = "markup_discovery"
    PLAIN_TEXT = "plain_text"
    PDF_TEXT = "pdf_text"


class ManifestItem(BaseModel):
    """Single manifest declaration from a package document."""

    id: str
    href: str
    media_type: str | None = None
    properties: str | None = None


class PackageDocument(BaseModel):
    """Metadata, manifest and spine recovered from a package document."""

    path: str
    title: str | None = None
    author: str | None = None
    manifest: dict[str, ManifestItem] = Field(default_factory=dict)
    spine: list[str] = Field(default_factory=list)
    spine_toc: str | None = None
    cover_id: str | None = None

    @property
    def base_dir(self) -> str:
        """Directory prefix of the package document, '' at the archive root."""
        slash = self.path.rfind("/")
        return self.path[: slash + 1] if slash > 0 else ""


class BookDocument(BaseModel):
    """Linearized view of a container: metadata plus ordered content paths."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    author: str | None = None
    ordered_content_paths: list[str] = Field(default_factory=list)
    strategy: LinearizationStrategy = LinearizationStrategy.SPINE
    toc_titles: dict[str, str] = Field(default_factory=dict)


class ChapterMarker(BaseModel):
    """Word index at which a content file's text begins."""

    model_config = ConfigDict(frozen=True)

    word_index: int
    title: str
    source: str = ""


class ParsedBook(BaseModel):
    """Complete result of ingesting one book file."""

    text: str
    title: str | None = None
    author: str | None = None
    file_type: str = "epub"
    strategy: LinearizationStrategy = LinearizationStrategy.SPINE
    chapters: list[ChapterMarker] = Field(default_factory=list)
    cover_image: bytes | None = None
    words: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def total_words(self) -> int:
        return len(self.words)


class Page(BaseModel):
    """Fixed-size window over the word stream."""

    model_config = ConfigDict(frozen=True)

    word_start_index: int
    word_count: int
    text: str
    chapter_title: str | None = None
    is_chapter_start: bool = False

    @property
    def word_end_index(self) -> int:
        """Exclusive end index of this page's word range."""
        return self.word_start_index + self.word_count
