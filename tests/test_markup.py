import pytest

from conftest import xhtml
from rsvp_reader.core.markup import MarkupTextExtractor, decode_markup, strip_tags
from rsvp_reader.errors import MarkupDecodeError


@pytest.fixture
def extractor() -> MarkupTextExtractor:
    return MarkupTextExtractor()


def test_extract_collapses_whitespace(extractor: MarkupTextExtractor) -> None:
    markup = xhtml("<p>  Hello,\n\n   world!  </p>")

    assert extractor.extract(markup) == "Hello, world!"


def test_block_elements_separate_words(extractor: MarkupTextExtractor) -> None:
    markup = xhtml("<p>end</p><p>start</p><div>one<br/>two</div>")

    assert extractor.extract(markup) == "end start one two"


def test_inline_elements_do_not_split_words(extractor: MarkupTextExtractor) -> None:
    markup = xhtml("<p>extra<em>ordinary</em> day</p>")

    assert extractor.extract(markup) == "extraordinary day"


def test_scripts_and_styles_are_dropped(extractor: MarkupTextExtractor) -> None:
    markup = (
        "<html><head><style>p { color: red; }</style></head>"
        "<body><script>var x = 1;</script><p>Visible</p></body></html>"
    )

    assert extractor.extract(markup) == "Visible"


def test_head_title_is_not_body_text(extractor: MarkupTextExtractor) -> None:
    markup = xhtml("<p>Body only</p>", title="Head Title")

    text, title = extractor.extract_with_title(markup)

    assert text == "Body only"
    assert title == "Head Title"


def test_title_prefers_h1_over_h2(extractor: MarkupTextExtractor) -> None:
    markup = xhtml("<h2>Second</h2><h1> The   First </h1><p>x</p>", title="Head")

    assert extractor.extract_title(markup) == "The First"


def test_entities_are_decoded(extractor: MarkupTextExtractor) -> None:
    assert extractor.extract("<p>Fish &amp; chips&nbsp;today</p>") == "Fish & chips today"


def test_empty_markup(extractor: MarkupTextExtractor) -> None:
    assert extractor.extract_with_title("   ") == ("", None)


def test_malformed_markup_still_yields_text(extractor: MarkupTextExtractor) -> None:
    assert extractor.extract("<p>Unclosed <b>bold text") == "Unclosed bold text"


def test_strip_tags_fallback() -> None:
    markup = "<style>x{}</style><p>One</p><p>Two &lt;3</p>"

    assert strip_tags(markup) == "One Two <3"


def test_decode_markup_rejects_invalid_utf8() -> None:
    with pytest.raises(MarkupDecodeError):
        decode_markup(b"\xff\xfe\xfa invalid")


def test_decode_markup_strips_bom() -> None:
    assert decode_markup("\ufeff<p>x</p>".encode("utf-8")) == "<p>x</p>"
