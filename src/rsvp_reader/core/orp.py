"""Optimal recognition point (ORP) calculation.

Two placement policies exist. ``PROPORTIONAL`` puts the focus a third of
the way into the word; ``BANDED`` uses fixed offsets per length band and
moves the focus less for long words. Callers choose one policy per reader
and keep it, since switching shifts the highlighted character.
"""

import math
from typing import NamedTuple

from rsvp_reader.models.playback import OrpPolicy

ORP_RATIO = 0.33

# (max length, offset) pairs for the banded policy; longer words use 4
_BANDS = [(1, 0), (5, 1), (9, 2), (13, 3)]


class OrpParts(NamedTuple):
    before: str
    focus_char: str
    after: str


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def _proportional_index(length: int) -> int:
    if length <= 1:
        return 0
    if length <= 3:
        return 1
    return max(1, min(length - 1, round_half_up(length * ORP_RATIO)))


def _banded_index(length: int) -> int:
    for max_length, offset in _BANDS:
        if length <= max_length:
            return offset
    return 4


def orp_index(word: str, policy: OrpPolicy = OrpPolicy.PROPORTIONAL) -> int:
    """Return the 0-based offset of the character to highlight in ``word``."""
    if policy == OrpPolicy.BANDED:
        return _banded_index(len(word))
    return _proportional_index(len(word))


def orp_parts(word: str, policy: OrpPolicy = OrpPolicy.PROPORTIONAL) -> OrpParts:
    """Slice ``word`` around its focus character.

    Raises:
        ValueError: If ``word`` is empty.
    """
    if not word:
        raise ValueError("Cannot compute ORP of an empty word")

    index = orp_index(word, policy)
    if index >= len(word):
        return OrpParts("", word[0], word[1:])
    return OrpParts(word[:index], word[index], word[index + 1 :])
