import io

import pytest
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

from rsvp_reader.core.parser_factory import ParserFactory
from rsvp_reader.core.pdf_parser import PdfParser
from rsvp_reader.core.text_parser import TextParser
from rsvp_reader.errors import CorruptArchiveError, NoTextFoundError
from rsvp_reader.models.book import LinearizationStrategy


def test_text_parser_reads_utf8() -> None:
    book = TextParser("Grüße aus\nBerlin.".encode("utf-8"), fallback_title="greeting").parse()

    assert book.words == ["Grüße", "aus", "Berlin."]
    assert book.title == "greeting"
    assert book.file_type == "txt"
    assert book.strategy == LinearizationStrategy.PLAIN_TEXT
    assert book.chapters == []


def test_text_parser_falls_back_to_latin1() -> None:
    book = TextParser("café au lait".encode("latin-1")).parse()

    assert book.words == ["café", "au", "lait"]


def test_text_parser_rejects_blank_file() -> None:
    with pytest.raises(NoTextFoundError):
        TextParser(b"  \n\t ").parse()


def test_pdf_without_text_layer_raises() -> None:
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)

    with pytest.raises(NoTextFoundError):
        PdfParser(buffer.getvalue()).parse()


def _text_pdf(page_texts: list[str]) -> PdfWriter:
    """Build a PDF with one line of Helvetica text per page."""
    writer = PdfWriter()
    font = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    for text in page_texts:
        page = writer.add_blank_page(width=400, height=200)
        content = DecodedStreamObject()
        content.set_data(f"BT /F1 12 Tf 20 100 Td ({text}) Tj ET".encode("latin-1"))
        page[NameObject("/Contents")] = writer._add_object(content)
        page[NameObject("/Resources")] = DictionaryObject(
            {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font})}
        )
    return writer


def _to_bytes(writer: PdfWriter) -> bytes:
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_pdf_text_layer_and_outline() -> None:
    writer = _text_pdf(["Call me Ishmael", "Some years ago"])
    writer.add_metadata({"/Title": "Moby Dick", "/Author": "Herman Melville"})
    writer.add_outline_item("Loomings", 0)
    second = writer.add_outline_item("The Carpet-Bag", 1)
    writer.add_outline_item("Nested entry", 1, parent=second)

    book = PdfParser(_to_bytes(writer), fallback_title="moby").parse()

    assert book.words == ["Call", "me", "Ishmael", "Some", "years", "ago"]
    assert book.text == "Call me Ishmael\n\nSome years ago"
    assert book.title == "Moby Dick"
    assert book.author == "Herman Melville"
    assert book.file_type == "pdf"
    assert book.strategy == LinearizationStrategy.PDF_TEXT
    assert [(c.word_index, c.title) for c in book.chapters] == [
        (0, "Loomings"),
        (3, "The Carpet-Bag"),
    ]


def test_pdf_without_metadata_uses_fallback_title() -> None:
    data = _to_bytes(_text_pdf(["Only page"]))

    book = ParserFactory.parse(data, ".pdf", fallback_title="notes")

    assert book.words == ["Only", "page"]
    assert book.title == "notes"
    assert book.chapters == []


def test_corrupt_pdf_raises() -> None:
    with pytest.raises(CorruptArchiveError):
        PdfParser(b"this is not a pdf at all")


def test_detect_format() -> None:
    from pathlib import Path

    assert ParserFactory.detect_format(Path("book.PDF")) == "pdf"
    assert ParserFactory.detect_format(Path("book.mobi")) == "unknown"
    assert ParserFactory.is_supported(Path("notes.txt"))
