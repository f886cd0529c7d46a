"""Reconstruct the linear reading order of a container."""

import logging
import re
from functools import cmp_to_key

from rsvp_reader.core.container import join_archive_path
from rsvp_reader.models.book import BookDocument, LinearizationStrategy, PackageDocument

log = logging.getLogger(__name__)

MARKUP_SUFFIXES = (".html", ".xhtml", ".htm")

_RUN_RE = re.compile(r"\d+|\D+")


def natural_compare(a: str, b: str) -> int:
    """Compare two paths so that embedded numbers order numerically.

    Paths are split into alternating digit and non-digit runs. Digit runs
    compare as integers, other runs case-insensitively; the first differing
    run decides. A path that runs out of runs first sorts first.
    """
    runs_a = _RUN_RE.findall(a)
    runs_b = _RUN_RE.findall(b)

    for part_a, part_b in zip(runs_a, runs_b):
        if part_a.isdigit() and part_b.isdigit():
            num_a, num_b = int(part_a), int(part_b)
            if num_a != num_b:
                return -1 if num_a < num_b else 1
        else:
            low_a, low_b = part_a.lower(), part_b.lower()
            if low_a != low_b:
                return -1 if low_a < low_b else 1

    if len(runs_a) != len(runs_b):
        return -1 if len(runs_a) < len(runs_b) else 1
    return 0


natural_key = cmp_to_key(natural_compare)


def is_markup_path(path: str) -> bool:
    return path.lower().endswith(MARKUP_SUFFIXES)


def discover_markup(entries: list[str]) -> list[str]:
    """Return every markup entry in natural order.

    Ties under natural comparison (paths differing only in case) fall back to
    plain string order so the result never depends on archive enumeration.
    """
    markup = [path for path in entries if is_markup_path(path)]
    return sorted(markup, key=lambda p: (natural_key(p), p))


def spine_paths(package: PackageDocument) -> list[str]:
    """Resolve spine idrefs through the manifest into archive paths.

    Idrefs without a manifest entry are skipped, and a path referenced more
    than once keeps only its first position.
    """
    paths = []
    seen: set[str] = set()
    for idref in package.spine:
        item = package.manifest.get(idref)
        if item is None:
            log.debug(f"Spine idref {idref!r} has no manifest entry")
            continue
        path = join_archive_path(package.base_dir, item.href)
        if path.lower() in seen:
            continue
        seen.add(path.lower())
        paths.append(path)
    return paths


def linearize(
    package: PackageDocument | None,
    entries: list[str],
    toc_titles: dict[str, str] | None = None,
) -> BookDocument:
    """Build the ordered content-path list for a book.

    Uses the spine when it yields at least one path, otherwise falls back to
    naturally sorted markup discovery over ``entries``.
    """
    title = package.title if package else None
    author = package.author if package else None

    if package is not None:
        paths = spine_paths(package)
        if paths:
            return BookDocument(
                title=title,
                author=author,
                ordered_content_paths=paths,
                strategy=LinearizationStrategy.SPINE,
                toc_titles=toc_titles or {},
            )
        log.info("Spine empty or unresolved, falling back to markup discovery")

    return BookDocument(
        title=title,
        author=author,
        ordered_content_paths=discover_markup(entries),
        strategy=LinearizationStrategy.MARKUP_DISCOVERY,
        toc_titles=toc_titles or {},
    )
