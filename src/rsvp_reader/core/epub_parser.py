"""EPUB ingestion: container resolution, linearization and text extraction."""

import logging
import posixpath

from rsvp_reader.core.archive import ArchiveHandle, open_archive
from rsvp_reader.core.container import PACKAGE_SUFFIX, ContainerResolver, decode_text, scan_package_document
from rsvp_reader.core.cover import find_cover
from rsvp_reader.core.linearizer import discover_markup, linearize
from rsvp_reader.core.markup import MarkupTextExtractor, decode_markup
from rsvp_reader.core.parser_factory import BookParser
from rsvp_reader.core.tokenizer import tokenize
from rsvp_reader.errors import (
    CorruptArchiveError,
    EntryNotFoundError,
    MarkupDecodeError,
    NoTextFoundError,
    PackageDocumentMissingError,
)
from rsvp_reader.models.book import (
    BookDocument,
    ChapterMarker,
    LinearizationStrategy,
    PackageDocument,
    ParsedBook,
)

log = logging.getLogger(__name__)


class EpubParser(BookParser):
    """Parse EPUB containers into a word stream with chapter markers.

    The spine of the package document gives the reading order. Without a
    package document the parser falls back to every markup file in natural
    order, still attempting to recover title and author from any OPF file in
    the archive.
    """

    def __init__(
        self,
        data: bytes,
        fallback_title: str | None = None,
        extractor: MarkupTextExtractor | None = None,
    ):
        super().__init__(data, fallback_title)
        self.extractor = extractor or MarkupTextExtractor()

    def parse(self) -> ParsedBook:
        """Parse the EPUB and return its text and metadata.

        Raises:
            CorruptArchiveError: If the bytes are not a readable container.
            NoTextFoundError: If no strategy yields any text.
        """
        with open_archive(self.data) as archive:
            entries = archive.list_entries()
            warnings_list: list[str] = []
            package: PackageDocument | None

            resolver = ContainerResolver(archive)
            try:
                package = resolver.resolve()
                document = linearize(package, entries, resolver.toc_titles(package))
            except PackageDocumentMissingError as e:
                log.warning(f"{e}. Using markup-file discovery.")
                warnings_list.append(str(e))
                package = self._recover_package(archive)
                document = linearize(None, entries)
                if package is not None:
                    document = document.model_copy(
                        update={"title": package.title, "author": package.author}
                    )

            words, chapters = self._extract(archive, document)

            if not words and document.strategy == LinearizationStrategy.SPINE:
                log.warning("Spine documents contained no text. Trying markup discovery.")
                warnings_list.append("Spine documents contained no text")
                document = document.model_copy(
                    update={
                        "ordered_content_paths": discover_markup(entries),
                        "strategy": LinearizationStrategy.MARKUP_DISCOVERY,
                    }
                )
                words, chapters = self._extract(archive, document)

            if not words:
                raise NoTextFoundError("No readable text found in EPUB")

            cover = find_cover(archive, package)

        return ParsedBook(
            text=" ".join(words),
            words=words,
            title=document.title or self.fallback_title,
            author=document.author,
            file_type="epub",
            strategy=document.strategy,
            chapters=chapters,
            cover_image=cover,
            warnings=warnings_list,
        )

    def _recover_package(self, archive: ArchiveHandle) -> PackageDocument | None:
        """Scan every OPF entry anywhere in the archive for title and author."""
        for path in archive.list_entries():
            if not path.lower().endswith(PACKAGE_SUFFIX):
                continue
            try:
                package = scan_package_document(decode_text(archive.read(path)), path)
            except (EntryNotFoundError, CorruptArchiveError) as e:
                log.debug(f"Skipping unreadable package document {path}: {e}")
                continue
            if package.title or package.author:
                log.info(f"Recovered metadata from {path}")
                return package
        return None

    def _extract(
        self,
        archive: ArchiveHandle,
        document: BookDocument,
    ) -> tuple[list[str], list[ChapterMarker]]:
        """Extract each content file in order.

        A file that is missing, unreadable or not valid text contributes
        nothing; the rest of the book is still read.
        """
        toc_titles = {path.lower(): title for path, title in document.toc_titles.items()}
        words: list[str] = []
        chapters: list[ChapterMarker] = []

        for path in document.ordered_content_paths:
            try:
                markup = decode_markup(archive.read_any(path))
            except EntryNotFoundError:
                log.warning(f"Content file missing from archive: {path}")
                continue
            except (MarkupDecodeError, CorruptArchiveError) as e:
                log.warning(f"Skipping {path}: {e}")
                continue

            text, heading = self.extractor.extract_with_title(markup)
            file_words = tokenize(text)
            if not file_words:
                continue

            title = toc_titles.get(path.lower()) or heading or _stem(path)
            chapters.append(ChapterMarker(word_index=len(words), title=title, source=path))
            words.extend(file_words)

        log.debug(
            f"Extracted {len(words)} words from "
            f"{len(chapters)}/{len(document.ordered_content_paths)} content files"
        )
        return words, chapters


def _stem(path: str) -> str:
    name = posixpath.basename(path)
    return name.rsplit(".", 1)[0] if "." in name else name
