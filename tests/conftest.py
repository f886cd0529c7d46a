from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from rsvp_reader.storage.store import LibraryStore

CONTAINER_XML = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def make_zip(entries: dict[str, bytes | str], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression) as zf:
        for name, content in entries.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            zf.writestr(name, content)
    return buffer.getvalue()


def xhtml(body: str, title: str = "") -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        f"<head><title>{title}</title></head><body>{body}</body></html>"
    )


def opf(
    items: list[tuple[str, str, str]],
    spine: list[str],
    title: str | None = "Test Book",
    author: str | None = "Ann Author",
    toc: str | None = None,
    extra_meta: str = "",
) -> str:
    """Build an OPF document from (id, href, media-type) triples."""
    metadata = ""
    if title is not None:
        metadata += f"<dc:title>{title}</dc:title>"
    if author is not None:
        metadata += f"<dc:creator>{author}</dc:creator>"
    manifest = "".join(
        f'<item id="{item_id}" href="{href}" media-type="{media_type}"/>'
        for item_id, href, media_type in items
    )
    itemrefs = "".join(f'<itemref idref="{idref}"/>' for idref in spine)
    toc_attr = f' toc="{toc}"' if toc else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<package xmlns="http://www.idpf.org/2007/opf" version="2.0">'
        f'<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">{metadata}{extra_meta}</metadata>'
        f"<manifest>{manifest}</manifest>"
        f"<spine{toc_attr}>{itemrefs}</spine>"
        "</package>"
    )


def build_epub(
    chapters: list[tuple[str, str]],
    opf_path: str | None = "OEBPS/content.opf",
    with_container: bool = True,
    title: str | None = "Test Book",
    author: str | None = "Ann Author",
    extra: dict[str, bytes | str] | None = None,
) -> bytes:
    """Build an EPUB whose spine lists ``chapters`` (href relative to the OPF, body)."""
    base = opf_path.rsplit("/", 1)[0] + "/" if opf_path and "/" in opf_path else ""
    entries: dict[str, bytes | str] = {"mimetype": "application/epub+zip"}
    items = []
    for i, (href, body) in enumerate(chapters, start=1):
        entries[base + href] = xhtml(body)
        items.append((f"c{i}", href, "application/xhtml+xml"))
    if opf_path is not None:
        if with_container:
            entries["META-INF/container.xml"] = CONTAINER_XML.format(path=opf_path)
        entries[opf_path] = opf(items, [item[0] for item in items], title=title, author=author)
    entries.update(extra or {})
    return make_zip(entries)


class FakeTimerHandle:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimerFactory:
    """Manually driven clock for scheduler tests."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeTimerHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled and h.callback is not None]

    def fire_next(self) -> bool:
        """Run the earliest pending callback. Returns False if none is pending."""
        pending = self.pending
        if not pending:
            return False
        handle = min(pending, key=lambda h: h.when)
        self.now = max(self.now, handle.when)
        callback, handle.callback = handle.callback, None
        callback()
        return True

    def run_all(self, limit: int = 10_000) -> int:
        fired = 0
        while fired < limit and self.fire_next():
            fired += 1
        return fired


@pytest.fixture
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture
def store(tmp_path: Path) -> LibraryStore:
    return LibraryStore(tmp_path / "library")


@pytest.fixture
def sample_epub() -> bytes:
    return build_epub(
        [
            ("text/ch1.xhtml", "<h1>Chapter One</h1><p>It was a bright cold day.</p>"),
            ("text/ch2.xhtml", "<h1>Chapter Two</h1><p>The clocks were striking thirteen.</p>"),
        ]
    )
