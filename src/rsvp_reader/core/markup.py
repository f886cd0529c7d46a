"""Extract plain text from XHTML content documents."""

import html
import logging
import re
import warnings

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from rsvp_reader.errors import MarkupDecodeError

log = logging.getLogger(__name__)

# Suppress XML parsing warnings - EPUB files often use XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

# Elements whose boundaries separate words even without surrounding whitespace
BLOCK_TAGS = [
    "p", "div", "br", "li", "tr", "td", "th", "blockquote", "section",
    "article", "h1", "h2", "h3", "h4", "h5", "h6", "pre", "hr", "dd", "dt",
]

_STRIP_BLOCKS_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")


def decode_markup(data: bytes) -> str:
    """Decode a content document as UTF-8.

    Raises:
        MarkupDecodeError: If the bytes are not valid UTF-8.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MarkupDecodeError(f"Content is not valid UTF-8: {e}") from e


class MarkupTextExtractor:
    """Convert markup documents to whitespace-normalised plain text."""

    def __init__(self, parser: str = "lxml"):
        self.parser = parser

    def extract(self, markup: str) -> str:
        """Return the body text of ``markup`` with whitespace collapsed.

        Scripts and styles are dropped together with their content. Malformed
        markup degrades to whatever text the parser recovers.
        """
        return self.extract_with_title(markup)[0]

    def extract_title(self, markup: str) -> str | None:
        """Return the first h1, h2 or title text of a document, if any."""
        return self.extract_with_title(markup)[1]

    def extract_with_title(self, markup: str) -> tuple[str, str | None]:
        """Return ``(text, title)`` from a single parse of ``markup``."""
        if not markup.strip():
            return "", None
        try:
            soup = BeautifulSoup(markup, self.parser)
            for tag in soup(["script", "style"]):
                tag.decompose()
            title = self._title(soup)
            for tag in soup.find_all(BLOCK_TAGS):
                tag.insert_after(" ")
            body = soup.body or soup
            return " ".join(body.get_text().split()), title
        except Exception as e:
            log.debug(f"Markup parser failed, stripping tags directly: {e}")
            return strip_tags(markup), None

    def _title(self, soup: BeautifulSoup) -> str | None:
        for name in ["h1", "h2", "title"]:
            element = soup.find(name)
            if element:
                text = " ".join(element.get_text().split())
                if text:
                    return text
        return None


def strip_tags(markup: str) -> str:
    """Regex-only text extraction used when the markup cannot be parsed."""
    text = _STRIP_BLOCKS_RE.sub(" ", markup)
    text = _TAG_RE.sub(" ", text)
    return " ".join(html.unescape(text).split())
