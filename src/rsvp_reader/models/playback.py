"""Playback state and reader settings."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

MIN_WPM = 60.0
MAX_WPM = 1200.0
DEFAULT_WPM = 300.0
DEFAULT_PAGE_SIZE = 150


def clamp_wpm(value: float) -> float:
    """Clamp a words-per-minute value to the supported range."""
    return max(MIN_WPM, min(MAX_WPM, float(value)))


class OrpPolicy(str, Enum):
    """Strategy for choosing the highlighted character of a word."""

    PROPORTIONAL = "proportional"  # round(len * 0.33), clamped
    BANDED = "banded"  # fixed offsets by length band


@dataclass
class PlaybackState:
    """Mutable per-session playback state owned by one scheduler."""

    current_index: int = 0
    is_playing: bool = False
    wpm: float = DEFAULT_WPM
    long_word_delay_enabled: bool = True

    def reset(self) -> None:
        self.current_index = 0
        self.is_playing = False


class ReaderSettings(BaseModel):
    """User-adjustable reading preferences."""

    wpm: float = DEFAULT_WPM
    long_word_delay: bool = True
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    orp_policy: OrpPolicy = OrpPolicy.PROPORTIONAL
    break_pages_at_chapters: bool = False

    @field_validator("wpm")
    @classmethod
    def _clamp_wpm(cls, value: float) -> float:
        return clamp_wpm(value)
