"""Split extracted text into the word stream."""

import re

_WHITESPACE_RE = re.compile(r"\s+")


def tokenize(text: str) -> list[str]:
    """Split ``text`` on runs of Unicode whitespace, dropping empty strings."""
    return [word for word in _WHITESPACE_RE.split(text) if word]


def join_words(words: list[str]) -> str:
    return " ".join(words)
