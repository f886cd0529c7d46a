"""Locate and scan the package document of an EPUB container.

The package document is treated as a character stream and scanned with
targeted patterns instead of a full XML parse, so that malformed or
namespace-mangled OPF files still yield whatever metadata they carry.
"""

import html
import logging
import posixpath
import re
from urllib.parse import unquote

from rsvp_reader.core.archive import ArchiveHandle
from rsvp_reader.errors import CorruptArchiveError, EntryNotFoundError, PackageDocumentMissingError
from rsvp_reader.models.book import ManifestItem, PackageDocument

log = logging.getLogger(__name__)

CONTAINER_XML = "META-INF/container.xml"
PACKAGE_SUFFIX = ".opf"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"

_TITLE_RE = re.compile(r"<(?:\w+:)?title\b[^>]*>([^<]+)</(?:\w+:)?title\s*>", re.IGNORECASE)
_CREATOR_RE = re.compile(r"<(?:\w+:)?creator\b[^>]*>([^<]+)</(?:\w+:)?creator\s*>", re.IGNORECASE)
_ITEM_RE = re.compile(r"<(?:\w+:)?item\s[^>]*>", re.IGNORECASE)
_ITEMREF_RE = re.compile(r"<(?:\w+:)?itemref\s[^>]*>", re.IGNORECASE)
_SPINE_RE = re.compile(r"<(?:\w+:)?spine\b[^>]*>", re.IGNORECASE)
_META_RE = re.compile(r"<(?:\w+:)?meta\s[^>]*>", re.IGNORECASE)
_ROOTFILE_RE = re.compile(r"<(?:\w+:)?rootfile\s[^>]*>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")

_NAVPOINT_RE = re.compile(
    r"<(?:\w+:)?navLabel\b[^>]*>\s*<(?:\w+:)?text\b[^>]*>(.*?)</(?:\w+:)?text\s*>.*?"
    r"<(?:\w+:)?content\s[^>]*?src\s*=\s*(?:\"([^\"]*)\"|'([^']*)')",
    re.IGNORECASE | re.DOTALL,
)


def parse_attributes(tag: str) -> dict[str, str]:
    """Return a tag's attributes keyed by lower-cased name."""
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(tag):
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attrs[match.group(1).lower()] = value
    return attrs


def normalize_href(href: str) -> str:
    """Decode an href into an archive-relative path fragment."""
    href = html.unescape(href).strip().replace("\\", "/")
    href = href.split("#", 1)[0]
    return unquote(href)


def join_archive_path(base_dir: str, href: str) -> str:
    """Join ``href`` onto ``base_dir`` collapsing ``.`` and ``..`` segments."""
    joined = posixpath.normpath(base_dir + href)
    if joined == ".":
        return ""
    return joined.lstrip("/")


def decode_text(data: bytes) -> str:
    """Decode a package document leniently; OPF files are nearly always UTF-8."""
    return data.decode("utf-8-sig", errors="replace")


def _clean_inline(text: str) -> str | None:
    cleaned = " ".join(html.unescape(text).split())
    return cleaned or None


class ContainerResolver:
    """Find the package document in a container and extract its structure."""

    def __init__(self, archive: ArchiveHandle):
        self.archive = archive

    def locate(self) -> str:
        """Return the archive path of the package document.

        Prefers the rootfile declared in META-INF/container.xml, then the
        first entry ending in ``.opf``.

        Raises:
            PackageDocumentMissingError: If neither lookup finds a document.
        """
        declared = self._rootfile_from_container()
        if declared:
            return declared

        for path in self.archive.list_entries():
            if path.lower().endswith(PACKAGE_SUFFIX):
                return path

        raise PackageDocumentMissingError("No package document (.opf) in archive")

    def _rootfile_from_container(self) -> str | None:
        stored = self.archive.find(CONTAINER_XML)
        if stored is None:
            return None
        try:
            content = decode_text(self.archive.read(stored))
        except CorruptArchiveError as e:
            log.warning(f"Unreadable {CONTAINER_XML}: {e}")
            return None

        for tag in _ROOTFILE_RE.findall(content):
            full_path = parse_attributes(tag).get("full-path")
            if not full_path:
                continue
            resolved = self.archive.find(normalize_href(full_path))
            if resolved:
                return resolved
            log.debug(f"container.xml rootfile {full_path!r} not present in archive")
        return None

    def resolve(self) -> PackageDocument:
        """Locate and scan the package document.

        Raises:
            PackageDocumentMissingError: If no package document exists or its
                entry cannot be read.
        """
        path = self.locate()
        try:
            data = self.archive.read(path)
        except (EntryNotFoundError, CorruptArchiveError) as e:
            raise PackageDocumentMissingError(f"Package document unreadable: {e}") from e

        package = scan_package_document(decode_text(data), path)
        log.info(
            f"Package document {path}: {len(package.manifest)} manifest items, "
            f"{len(package.spine)} spine entries"
        )
        return package

    def toc_titles(self, package: PackageDocument) -> dict[str, str]:
        """Map content paths to NCX navigation labels.

        Returns an empty map when the book has no NCX document. The navMap is
        scanned in document order, which is a pre-order walk of nested
        navPoints, and the first label seen for a path wins.
        """
        ncx_item = None
        if package.spine_toc and package.spine_toc in package.manifest:
            ncx_item = package.manifest[package.spine_toc]
        else:
            for item in package.manifest.values():
                if (item.media_type or "").lower() == NCX_MEDIA_TYPE:
                    ncx_item = item
                    break
        if ncx_item is None:
            return {}

        ncx_path = join_archive_path(package.base_dir, ncx_item.href)
        try:
            content = decode_text(self.archive.read_any(ncx_path))
        except (EntryNotFoundError, CorruptArchiveError) as e:
            log.warning(f"Skipping table of contents: {e}")
            return {}

        ncx_dir = ncx_path[: ncx_path.rfind("/") + 1] if "/" in ncx_path else ""
        titles: dict[str, str] = {}
        for match in _NAVPOINT_RE.finditer(content):
            label = _clean_inline(re.sub(r"<[^>]+>", "", match.group(1)))
            src = match.group(2) if match.group(2) is not None else match.group(3)
            if not label or not src:
                continue
            target = join_archive_path(ncx_dir, normalize_href(src))
            titles.setdefault(target, label)
        return titles


def scan_package_document(content: str, path: str) -> PackageDocument:
    """Extract title, author, manifest and spine from OPF text.

    Never fails: absent fields default to None or empty collections.
    Manifest items are matched regardless of attribute order; a duplicate id
    keeps the last declaration seen.
    """
    title_match = _TITLE_RE.search(content)
    creator_match = _CREATOR_RE.search(content)

    manifest: dict[str, ManifestItem] = {}
    for tag in _ITEM_RE.findall(content):
        attrs = parse_attributes(tag)
        item_id, href = attrs.get("id"), attrs.get("href")
        if not item_id or not href:
            continue
        manifest[item_id] = ManifestItem(
            id=item_id,
            href=normalize_href(href),
            media_type=attrs.get("media-type"),
            properties=attrs.get("properties"),
        )

    spine = []
    for tag in _ITEMREF_RE.findall(content):
        idref = parse_attributes(tag).get("idref")
        if idref:
            spine.append(idref)

    spine_toc = None
    spine_match = _SPINE_RE.search(content)
    if spine_match:
        spine_toc = parse_attributes(spine_match.group(0)).get("toc")

    cover_id = None
    for tag in _META_RE.findall(content):
        attrs = parse_attributes(tag)
        if attrs.get("name", "").lower() == "cover" and attrs.get("content"):
            cover_id = attrs["content"]
            break

    return PackageDocument(
        path=path,
        title=_clean_inline(title_match.group(1)) if title_match else None,
        author=_clean_inline(creator_match.group(1)) if creator_match else None,
        manifest=manifest,
        spine=spine,
        spine_toc=spine_toc,
        cover_id=cover_id,
    )
