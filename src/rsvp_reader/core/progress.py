"""Bridge playback position changes to the library store."""

import logging
import threading
from concurrent.futures import Executor, Future

from rsvp_reader.storage.base import PersistenceStore

log = logging.getLogger(__name__)


class ProgressTracker:
    """Write reading positions through to a store, skipping repeats.

    With an ``executor`` writes run in the background and the caller never
    waits on storage. Writes are serialized and coalesced: a queued write
    stores the newest recorded index, so a slow write can never land after
    a later one. Failed writes are logged and dropped; the in-memory
    position of the session stays authoritative.
    """

    def __init__(self, store: PersistenceStore, executor: Executor | None = None):
        self.store = store
        self.executor = executor
        self._last_written: dict[str, int] = {}
        self._requested: dict[str, int] = {}
        self._pending: dict[str, int] = {}
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()

    def last_written(self, book_id: str) -> int | None:
        with self._lock:
            return self._last_written.get(book_id)

    def prime(self, book_id: str, index: int) -> None:
        """Record ``index`` as already stored, e.g. after loading a book."""
        with self._lock:
            self._last_written[book_id] = index
            self._requested[book_id] = index

    def record(self, book_id: str, index: int) -> Future | None:
        """Persist ``index`` for ``book_id`` unless it was the last one recorded."""
        with self._lock:
            if self._requested.get(book_id) == index:
                return None
            self._requested[book_id] = index
            self._pending[book_id] = index
        if self.executor is not None:
            return self.executor.submit(self._flush, book_id)
        self._flush(book_id)
        return None

    def _flush(self, book_id: str) -> None:
        with self._write_lock:
            with self._lock:
                index = self._pending.pop(book_id, None)
            if index is None:
                # Already written by an earlier flush
                return
            try:
                self.store.update_progress(book_id, index)
            except Exception as e:
                log.warning(f"Could not save progress for {book_id}: {e}")
                with self._lock:
                    # Let the same index be retried
                    if self._requested.get(book_id) == index:
                        del self._requested[book_id]
                return
            with self._lock:
                self._last_written[book_id] = index
        log.debug(f"Saved progress {index} for {book_id}")
