"""RSVP playback: per-word timing and the play/pause state machine."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Protocol

from rsvp_reader.core.orp import round_half_up
from rsvp_reader.models.playback import PlaybackState, clamp_wpm

log = logging.getLogger(__name__)

SAVE_INTERVAL = 10

SENTENCE_END = (".", "!", "?", ":")
CLAUSE_END = (",", ";")
SENTENCE_MULTIPLIER = 2.5
CLAUSE_MULTIPLIER = 1.5
LONG_WORD_LENGTH = 9
LONG_WORD_MULTIPLIER = 1.5
LONG_WORD_EXTENSION = 1.2
SHORT_WORD_LENGTH = 3
SHORT_WORD_MULTIPLIER = 0.8


def word_delay_ms(word: str, wpm: float, long_word_delay: bool = True) -> int:
    """Return how long ``word`` stays on screen at ``wpm``, in milliseconds."""
    base = round_half_up(60000 / clamp_wpm(wpm))
    multiplier = 1.0

    if word.endswith(SENTENCE_END):
        multiplier = SENTENCE_MULTIPLIER
    elif word.endswith(CLAUSE_END):
        multiplier = CLAUSE_MULTIPLIER

    if long_word_delay and len(word) > LONG_WORD_LENGTH:
        # Extends a punctuation pause instead of replacing it
        if multiplier == 1.0:
            multiplier = LONG_WORD_MULTIPLIER
        else:
            multiplier *= LONG_WORD_EXTENSION
    elif len(word) < SHORT_WORD_LENGTH:
        multiplier *= SHORT_WORD_MULTIPLIER

    return round_half_up(base * multiplier)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    """Schedules a single-shot callback ``delay`` seconds from now."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioTimerFactory:
    """Timer factory backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class TimerSlot:
    """Owns at most one pending timer; arming a new one cancels the old."""

    def __init__(self, factory: TimerFactory):
        self._factory = factory
        self._handle: TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.cancel()
        self._handle = self._factory.call_later(delay_ms / 1000, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def release(self) -> None:
        """Forget a handle whose callback has already fired."""
        self._handle = None


class PlaybackStatus(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


class PlaybackScheduler:
    """Advance through a word stream one word at a time.

    The scheduler keeps exactly one pending timer while playing. Manual
    operations (pause, reset, jump) cancel it first, and every scheduled
    callback carries a generation number so a callback that was already in
    flight cannot advance the index after a manual change.
    """

    def __init__(
        self,
        timer_factory: TimerFactory,
        state: PlaybackState | None = None,
        on_word_changed: Callable[[int], None] | None = None,
        on_finished: Callable[[], None] | None = None,
        on_save: Callable[[int], None] | None = None,
    ):
        self.state = state or PlaybackState()
        self.words: list[str] = []
        self.on_word_changed = on_word_changed
        self.on_finished = on_finished
        self.on_save = on_save
        self._slot = TimerSlot(timer_factory)
        self._generation = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def status(self) -> PlaybackStatus:
        return PlaybackStatus.PLAYING if self.state.is_playing else PlaybackStatus.STOPPED

    @property
    def current_word(self) -> str | None:
        if 0 <= self.state.current_index < len(self.words):
            return self.words[self.state.current_index]
        return None

    @property
    def progress(self) -> float:
        if not self.words:
            return 0.0
        return self.state.current_index / len(self.words)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def set_words(self, words: list[str]) -> None:
        """Install a new word stream and reset playback to the start."""
        self._cancel_pending()
        self.words = list(words)
        self.state.reset()
        self._emit_word_changed()

    def set_wpm(self, wpm: float) -> None:
        """Change speed; applies from the next scheduled word."""
        self.state.wpm = clamp_wpm(wpm)

    def set_long_word_delay(self, enabled: bool) -> None:
        self.state.long_word_delay_enabled = enabled

    def play(self) -> None:
        if self.state.is_playing or not self.words:
            return
        self.state.is_playing = True
        log.debug(f"Playing from word {self.state.current_index} at {self.state.wpm:g} wpm")
        self._schedule_current()

    def pause(self) -> None:
        self._cancel_pending()
        self.state.is_playing = False
        self._emit_save()

    def toggle(self) -> None:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()

    def reset(self) -> None:
        self.pause()
        self.state.current_index = 0
        self._emit_word_changed()
        self._emit_save()

    def jump_to(self, index: int) -> None:
        """Stop playback and move to ``index``, clamped into the stream."""
        self.pause()
        last = max(0, len(self.words) - 1)
        self.state.current_index = max(0, min(index, last))
        self._emit_word_changed()

    def close(self) -> None:
        self._cancel_pending()
        self.state.is_playing = False

    def delay_for(self, word: str) -> int:
        return word_delay_ms(word, self.state.wpm, self.state.long_word_delay_enabled)

    # ------------------------------------------------------------------
    # Timer handling
    # ------------------------------------------------------------------

    def _cancel_pending(self) -> None:
        self._generation += 1
        self._slot.cancel()

    def _schedule_current(self) -> None:
        word = self.words[self.state.current_index]
        generation = self._generation
        self._slot.arm(self.delay_for(word), lambda: self._advance(generation))

    def _advance(self, generation: int) -> None:
        if generation != self._generation or not self.state.is_playing:
            return
        self._slot.release()

        self.state.current_index += 1
        self._emit_word_changed()

        if self.state.current_index % SAVE_INTERVAL == 0:
            self._emit_save()

        if self.state.current_index >= len(self.words):
            self._finish()
            return

        self._schedule_current()

    def _finish(self) -> None:
        self._generation += 1
        self.state.is_playing = False
        self.state.current_index = 0
        log.info("Reached end of book")
        if self.on_finished:
            self.on_finished()
        self._emit_word_changed()
        self._emit_save()

    def _emit_word_changed(self) -> None:
        if self.on_word_changed:
            self.on_word_changed(self.state.current_index)

    def _emit_save(self) -> None:
        if self.on_save:
            self.on_save(self.state.current_index)
