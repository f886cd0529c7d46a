"""Plain text documents."""

import logging

from rsvp_reader.core.parser_factory import BookParser
from rsvp_reader.core.tokenizer import tokenize
from rsvp_reader.errors import NoTextFoundError
from rsvp_reader.models.book import LinearizationStrategy, ParsedBook

log = logging.getLogger(__name__)


class TextParser(BookParser):
    """Parse UTF-8 text, falling back to Latin-1 for legacy files."""

    def parse(self) -> ParsedBook:
        try:
            text = self.data.decode("utf-8-sig")
        except UnicodeDecodeError:
            log.info("Text is not UTF-8, decoding as Latin-1")
            text = self.data.decode("latin-1")

        words = tokenize(text)
        if not words:
            raise NoTextFoundError("Text file is empty")

        return ParsedBook(
            text=text,
            words=words,
            title=self.fallback_title,
            file_type="txt",
            strategy=LinearizationStrategy.PLAIN_TEXT,
        )
