"""A single active reading session over the library."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from rsvp_reader.core.orp import OrpParts, orp_parts
from rsvp_reader.core.paginator import page_index_for_word, paginate
from rsvp_reader.core.parser_factory import ParserFactory
from rsvp_reader.core.progress import ProgressTracker
from rsvp_reader.core.scheduler import PlaybackScheduler, TimerFactory
from rsvp_reader.models.book import Page, ParsedBook
from rsvp_reader.models.library import BookMetadata
from rsvp_reader.models.playback import OrpPolicy, PlaybackState, ReaderSettings
from rsvp_reader.storage.store import LibraryStore, book_id_for

log = logging.getLogger(__name__)


@dataclass
class LoadedBook:
    """Everything installed together when a book is opened."""

    metadata: BookMetadata
    parsed: ParsedBook
    pages: list[Page] = field(default_factory=list)

    @property
    def words(self) -> list[str]:
        return self.parsed.words


class ReadingSession:
    """Connects the library store, ingestion, playback and pagination.

    Parsing runs on a worker thread; the result replaces the current book in
    one step under a lock, so a load that finishes later wins.
    """

    def __init__(
        self,
        store: LibraryStore,
        timer_factory: TimerFactory,
        settings: ReaderSettings | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.store = store
        self.settings = settings or ReaderSettings()
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="rsvp-io")
        self._owns_executor = executor is None
        self.tracker = ProgressTracker(store, executor=self._executor)
        self.scheduler = PlaybackScheduler(
            timer_factory,
            state=PlaybackState(
                wpm=self.settings.wpm,
                long_word_delay_enabled=self.settings.long_word_delay,
            ),
            on_save=self._on_save,
        )
        self.book: LoadedBook | None = None
        self._install_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Library
    # ------------------------------------------------------------------

    def import_file(self, path: Path) -> BookMetadata:
        """Parse a book file and add it to the library.

        Re-importing identical bytes keeps the existing record and progress.
        """
        data = path.read_bytes()
        book_id = book_id_for(data)
        if self.store.contains(book_id):
            log.info(f"{path.name} already in library as {book_id}")
            return self.store.touch(book_id)

        parsed = ParserFactory.parse(data, path.suffix, fallback_title=path.stem)
        metadata = BookMetadata(
            id=book_id,
            title=parsed.title or path.stem,
            author=parsed.author,
            file_name=path.name,
            total_words=parsed.total_words,
            file_type=parsed.file_type,
        )
        self.store.save(book_id, data, path.name, metadata, cover_image=parsed.cover_image)
        return self.store.get_metadata(book_id)

    # ------------------------------------------------------------------
    # Opening books
    # ------------------------------------------------------------------

    def load_book_async(self, book_id: str) -> Future[LoadedBook]:
        """Read and parse a stored book on the worker pool.

        The result is not installed; pass it to ``install`` on the thread
        that drives playback.
        """
        return self._executor.submit(self._load, book_id)

    def open_book(self, book_id: str) -> LoadedBook:
        """Load, parse and install a stored book, resuming at its saved position."""
        loaded = self.load_book_async(book_id).result()
        self.install(loaded)
        return loaded

    def _load(self, book_id: str) -> LoadedBook:
        metadata = self.store.touch(book_id)
        data = self.store.load(book_id)
        parsed = ParserFactory.parse(
            data, Path(metadata.file_name).suffix, fallback_title=metadata.title
        )
        return LoadedBook(metadata=metadata, parsed=parsed, pages=self._paginate(parsed))

    def open_parsed(self, parsed: ParsedBook, metadata: BookMetadata) -> LoadedBook:
        """Install an already parsed book."""
        loaded = LoadedBook(metadata=metadata, parsed=parsed, pages=self._paginate(parsed))
        self.install(loaded)
        return loaded

    def install(self, loaded: LoadedBook) -> None:
        """Replace the current book, its pages and playback state in one step."""
        with self._install_lock:
            if self.book is not None:
                self.scheduler.pause()
            self.book = None

            self.scheduler.set_words(loaded.words)
            saved = loaded.metadata.last_read_index
            if 0 < saved < len(loaded.words):
                self.scheduler.jump_to(saved)

            self.book = loaded
            self.tracker.prime(loaded.metadata.id, saved)
        log.info(
            f"Opened {loaded.metadata.title!r}: {len(loaded.words)} words, "
            f"{len(loaded.pages)} pages, starting at word {self.scheduler.state.current_index}"
        )

    def _paginate(self, parsed: ParsedBook) -> list[Page]:
        return paginate(
            parsed.words,
            page_size=self.settings.page_size,
            chapters=parsed.chapters,
            break_at_chapters=self.settings.break_pages_at_chapters,
        )

    # ------------------------------------------------------------------
    # Navigation and settings
    # ------------------------------------------------------------------

    @property
    def pages(self) -> list[Page]:
        return self.book.pages if self.book else []

    @property
    def current_page_index(self) -> int:
        return page_index_for_word(self.pages, self.scheduler.state.current_index)

    def current_orp(self) -> OrpParts | None:
        word = self.scheduler.current_word
        if not word:
            return None
        return orp_parts(word, self.settings.orp_policy)

    def jump_to_word(self, index: int) -> None:
        self.scheduler.jump_to(index)
        self._on_save(self.scheduler.state.current_index)

    def jump_to_page(self, page_index: int) -> None:
        """Move playback to the first word of a page, clamping the page index."""
        if not self.pages:
            return
        page_index = max(0, min(page_index, len(self.pages) - 1))
        self.jump_to_word(self.pages[page_index].word_start_index)

    def set_wpm(self, wpm: float) -> None:
        self.scheduler.set_wpm(wpm)
        self.settings = self.settings.model_copy(update={"wpm": self.scheduler.state.wpm})

    def set_long_word_delay(self, enabled: bool) -> None:
        self.scheduler.set_long_word_delay(enabled)
        self.settings = self.settings.model_copy(update={"long_word_delay": enabled})

    def set_orp_policy(self, policy: OrpPolicy) -> None:
        self.settings = self.settings.model_copy(update={"orp_policy": policy})

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.settings = self.settings.model_copy(update={"page_size": page_size})
        if self.book is not None:
            self.book.pages = self._paginate(self.book.parsed)

    def _on_save(self, index: int) -> None:
        if self.book is None:
            return
        self.tracker.record(self.book.metadata.id, index)

    def close(self) -> None:
        """Pause playback, flush the last position and stop the worker pool."""
        if self._closed:
            return
        self._closed = True
        if self.book is not None:
            self.scheduler.pause()
        self.scheduler.close()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

