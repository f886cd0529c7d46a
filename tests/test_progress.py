import threading
from concurrent.futures import ThreadPoolExecutor

from rsvp_reader.core.progress import ProgressTracker
from rsvp_reader.models.library import BookMetadata
from rsvp_reader.storage.store import LibraryStore


class FailingStore(LibraryStore):
    def update_progress(self, book_id: str, index: int) -> None:
        raise OSError("disk full")


class SlowStore(LibraryStore):
    """Blocks the write of one index until released."""

    def __init__(self, root, slow_index: int):
        super().__init__(root)
        self.slow_index = slow_index
        self.entered = threading.Event()
        self.release = threading.Event()
        self.written: list[int] = []

    def update_progress(self, book_id: str, index: int) -> None:
        if index == self.slow_index:
            self.entered.set()
            self.release.wait(timeout=5)
        super().update_progress(book_id, index)
        self.written.append(index)


def _add_book(store: LibraryStore, book_id: str = "book1") -> None:
    metadata = BookMetadata(id=book_id, title="T", file_name="t.txt", total_words=100, file_type="txt")
    store.save(book_id, b"text", "t.txt", metadata)


def test_record_writes_through(store: LibraryStore) -> None:
    _add_book(store)
    tracker = ProgressTracker(store)

    tracker.record("book1", 42)

    assert store.get_metadata("book1").last_read_index == 42
    assert tracker.last_written("book1") == 42


def test_record_skips_repeated_index(store: LibraryStore, monkeypatch) -> None:
    _add_book(store)
    tracker = ProgressTracker(store)
    calls: list[int] = []
    original = store.update_progress

    def counting(book_id: str, index: int) -> None:
        calls.append(index)
        original(book_id, index)

    monkeypatch.setattr(store, "update_progress", counting)

    tracker.record("book1", 5)
    tracker.record("book1", 5)
    tracker.record("book1", 6)

    assert calls == [5, 6]


def test_primed_index_is_not_rewritten(store: LibraryStore) -> None:
    _add_book(store)
    tracker = ProgressTracker(store)

    tracker.prime("book1", 30)
    tracker.record("book1", 30)

    assert store.get_metadata("book1").last_read_index == 0


def test_failed_write_is_logged_not_raised(tmp_path, caplog) -> None:
    store = FailingStore(tmp_path)
    tracker = ProgressTracker(store)

    tracker.record("book1", 7)

    assert tracker.last_written("book1") is None
    assert "Could not save progress" in caplog.text


def test_missing_book_does_not_raise(store: LibraryStore) -> None:
    tracker = ProgressTracker(store)

    tracker.record("unknown", 3)

    assert tracker.last_written("unknown") is None


def test_background_writes(store: LibraryStore) -> None:
    _add_book(store)
    with ThreadPoolExecutor(max_workers=1) as executor:
        tracker = ProgressTracker(store, executor=executor)
        future = tracker.record("book1", 12)
        assert future is not None
        future.result(timeout=5)

    assert store.get_metadata("book1").last_read_index == 12


def test_slow_write_does_not_overwrite_newer_index(tmp_path) -> None:
    store = SlowStore(tmp_path, slow_index=3)
    _add_book(store)

    with ThreadPoolExecutor(max_workers=2) as executor:
        tracker = ProgressTracker(store, executor=executor)
        tracker.record("book1", 3)
        assert store.entered.wait(timeout=5)
        tracker.record("book1", 50)
        store.release.set()

    assert store.get_metadata("book1").last_read_index == 50
    assert tracker.last_written("book1") == 50


def test_queued_writes_coalesce_to_latest(tmp_path) -> None:
    store = SlowStore(tmp_path, slow_index=3)
    _add_book(store)

    with ThreadPoolExecutor(max_workers=2) as executor:
        tracker = ProgressTracker(store, executor=executor)
        tracker.record("book1", 3)
        assert store.entered.wait(timeout=5)
        for index in (10, 20, 30):
            tracker.record("book1", index)
        store.release.set()

    assert store.written == [3, 30]
    assert store.get_metadata("book1").last_read_index == 30


def test_returning_to_a_written_index_while_a_write_is_queued(tmp_path) -> None:
    store = SlowStore(tmp_path, slow_index=8)
    _add_book(store)

    with ThreadPoolExecutor(max_workers=2) as executor:
        tracker = ProgressTracker(store, executor=executor)
        tracker.record("book1", 4)
        tracker.record("book1", 8)
        assert store.entered.wait(timeout=5)
        tracker.record("book1", 4)
        store.release.set()

    assert store.get_metadata("book1").last_read_index == 4


def test_failed_index_is_retried(tmp_path, monkeypatch) -> None:
    store = LibraryStore(tmp_path)
    _add_book(store)
    tracker = ProgressTracker(store)
    original = store.update_progress
    attempts: list[int] = []

    def flaky(book_id: str, index: int) -> None:
        attempts.append(index)
        if len(attempts) == 1:
            raise OSError("disk busy")
        original(book_id, index)

    monkeypatch.setattr(store, "update_progress", flaky)

    tracker.record("book1", 9)
    tracker.record("book1", 9)

    assert attempts == [9, 9]
    assert store.get_metadata("book1").last_read_index == 9
