"""Split the word stream into fixed-size pages for manual navigation."""

from bisect import bisect_right

from rsvp_reader.core.tokenizer import join_words
from rsvp_reader.models.book import ChapterMarker, Page
from rsvp_reader.models.playback import DEFAULT_PAGE_SIZE


def paginate(
    words: list[str],
    page_size: int = DEFAULT_PAGE_SIZE,
    chapters: list[ChapterMarker] | None = None,
    break_at_chapters: bool = False,
) -> list[Page]:
    """Partition ``words`` into consecutive pages.

    Pages hold ``page_size`` words each except the last. With
    ``break_at_chapters`` a new page is also started at every chapter
    boundary. Every page carries the title of the chapter it falls in and is
    flagged as a chapter start when its first word is a boundary.

    Raises:
        ValueError: If ``page_size`` is less than 1.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")

    markers = sorted(
        (m for m in chapters or [] if 0 <= m.word_index < len(words)),
        key=lambda m: m.word_index,
    )
    boundary_starts = [m.word_index for m in markers]
    boundaries = set(boundary_starts)

    pages: list[Page] = []
    start = 0
    while start < len(words):
        end = min(start + page_size, len(words))
        if break_at_chapters:
            next_boundary = bisect_right(boundary_starts, start)
            if next_boundary < len(boundary_starts):
                end = min(end, boundary_starts[next_boundary])

        chapter_pos = bisect_right(boundary_starts, start) - 1
        chapter = markers[chapter_pos] if chapter_pos >= 0 else None
        pages.append(
            Page(
                word_start_index=start,
                word_count=end - start,
                text=join_words(words[start:end]),
                chapter_title=chapter.title if chapter else None,
                is_chapter_start=start in boundaries,
            )
        )
        start = end

    return pages


def page_index_for_word(pages: list[Page], word_index: int) -> int:
    """Return the index of the page containing ``word_index``.

    Indices before the first page map to 0 and indices past the end map to
    the last page.
    """
    if not pages:
        return 0
    starts = [page.word_start_index for page in pages]
    position = bisect_right(starts, word_index) - 1
    return max(0, min(position, len(pages) - 1))
