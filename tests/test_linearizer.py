from rsvp_reader.core.linearizer import discover_markup, linearize, natural_compare, spine_paths
from rsvp_reader.models.book import LinearizationStrategy, ManifestItem, PackageDocument


def _package(manifest: dict[str, str], spine: list[str], path: str = "OEBPS/content.opf") -> PackageDocument:
    return PackageDocument(
        path=path,
        title="Title",
        author="Author",
        manifest={key: ManifestItem(id=key, href=href) for key, href in manifest.items()},
        spine=spine,
    )


def test_spine_paths_resolve_against_package_directory() -> None:
    package = _package({"c1": "text/a.xhtml", "c2": "text/b.xhtml"}, ["c1", "c2"])

    document = linearize(package, [])

    assert document.ordered_content_paths == ["OEBPS/text/a.xhtml", "OEBPS/text/b.xhtml"]
    assert document.strategy == LinearizationStrategy.SPINE
    assert document.title == "Title"
    assert document.author == "Author"


def test_spine_skips_unknown_idrefs_and_repeats() -> None:
    package = _package({"c1": "a.xhtml", "c2": "b.xhtml"}, ["c1", "ghost", "c2", "c1"], path="content.opf")

    assert spine_paths(package) == ["a.xhtml", "b.xhtml"]


def test_markup_discovery_orders_numbers_naturally() -> None:
    document = linearize(None, ["ch2.html", "ch10.html", "ch1.html"])

    assert document.ordered_content_paths == ["ch1.html", "ch2.html", "ch10.html"]
    assert document.strategy == LinearizationStrategy.MARKUP_DISCOVERY
    assert document.title is None


def test_empty_spine_falls_back_to_discovery() -> None:
    package = _package({}, ["missing"])
    entries = ["OEBPS/part11.xhtml", "OEBPS/part2.xhtml", "OEBPS/style.css", "OEBPS/part10.xhtml"]

    document = linearize(package, entries)

    assert document.strategy == LinearizationStrategy.MARKUP_DISCOVERY
    assert document.ordered_content_paths == [
        "OEBPS/part2.xhtml",
        "OEBPS/part10.xhtml",
        "OEBPS/part11.xhtml",
    ]
    assert document.title == "Title"


def test_discover_markup_filters_by_extension() -> None:
    entries = ["cover.jpg", "b.HTM", "a.xhtml", "toc.ncx", "content.opf", "c.html"]

    assert discover_markup(entries) == ["a.xhtml", "b.HTM", "c.html"]


def test_natural_compare() -> None:
    assert natural_compare("part2", "part10") < 0
    assert natural_compare("part10", "part11") < 0
    assert natural_compare("Part2", "part2") == 0
    assert natural_compare("a", "a1") < 0
    assert natural_compare("b", "a") > 0


def test_discovery_is_stable_for_case_only_differences() -> None:
    assert discover_markup(["B.html", "b.html"]) == ["B.html", "b.html"]
    assert discover_markup(["b.html", "B.html"]) == ["B.html", "b.html"]
