"""PDF text extraction delegated to pypdf."""

import io
import logging

# Suppress warnings about malformed PDF object references from PDF libraries
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pypdf
from pypdf.errors import EmptyFileError, FileNotDecryptedError, PdfReadError

from rsvp_reader.core.parser_factory import BookParser
from rsvp_reader.core.tokenizer import tokenize
from rsvp_reader.errors import CorruptArchiveError, NoTextFoundError
from rsvp_reader.models.book import ChapterMarker, LinearizationStrategy, ParsedBook

log = logging.getLogger(__name__)


class PdfParser(BookParser):
    """Extract the text layer of a PDF page by page.

    Layout is not reconstructed; only the extracted words enter the word
    stream. Outline entries become chapter markers at the first word of the
    page they point to.
    """

    def __init__(self, data: bytes, fallback_title: str | None = None):
        super().__init__(data, fallback_title)

        try:
            self._reader = pypdf.PdfReader(io.BytesIO(data))
        except FileNotDecryptedError:
            raise CorruptArchiveError("PDF is encrypted. Please decrypt first.")
        except EmptyFileError:
            raise CorruptArchiveError("PDF file is empty.")
        except PdfReadError as e:
            raise CorruptArchiveError(f"PDF appears corrupted: {e}")

    def parse(self) -> ParsedBook:
        """Parse the PDF and return its text."""
        if self._reader.is_encrypted:
            raise CorruptArchiveError("PDF is encrypted. Please decrypt first.")

        words: list[str] = []
        page_texts: list[str] = []
        page_offsets: list[int] = []
        for page in self._reader.pages:
            page_offsets.append(len(words))
            try:
                page_text = page.extract_text() or ""
            except Exception as e:
                log.warning(f"Could not extract text from page {len(page_offsets)}: {e}")
                continue
            page_words = tokenize(page_text)
            if page_words:
                page_texts.append(page_text.strip())
                words.extend(page_words)

        if not words:
            raise NoTextFoundError(
                "No text layer found. PDF may be scanned or image-based."
            )

        title, author = self._metadata()
        return ParsedBook(
            text="\n\n".join(page_texts),
            words=words,
            title=title or self.fallback_title,
            author=author,
            file_type="pdf",
            strategy=LinearizationStrategy.PDF_TEXT,
            chapters=self._outline_markers(page_offsets, len(words)),
        )

    def _metadata(self) -> tuple[str | None, str | None]:
        info = self._reader.metadata or {}
        title = str(info.get("/Title") or "").strip() or None
        author = str(info.get("/Author") or "").strip() or None
        return title, author

    def _outline_markers(self, page_offsets: list[int], total_words: int) -> list[ChapterMarker]:
        """Map top-level outline entries to word indices."""
        try:
            outline = self._reader.outline
        except Exception as e:
            log.debug(f"Unreadable PDF outline: {e}")
            return []

        markers: list[ChapterMarker] = []
        seen: set[int] = set()
        for item in outline or []:
            if isinstance(item, list):
                # Nested entries; only top-level sections become chapters
                continue
            try:
                page_num = self._reader.get_destination_page_number(item)
            except Exception:
                # Skip malformed destinations
                continue
            if page_num is None or not 0 <= page_num < len(page_offsets):
                continue
            word_index = page_offsets[page_num]
            if word_index >= total_words or word_index in seen:
                continue
            seen.add(word_index)
            markers.append(
                ChapterMarker(word_index=word_index, title=item.title or "", source=f"page_{page_num + 1}")
            )
        return sorted(markers, key=lambda m: m.word_index)
