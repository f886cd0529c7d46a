"""Read command implementation: terminal RSVP playback."""

import asyncio
import logging
from pathlib import Path

from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

from rsvp_reader.core.scheduler import AsyncioTimerFactory
from rsvp_reader.models.playback import ReaderSettings
from rsvp_reader.session import ReadingSession
from rsvp_reader.storage.store import LibraryStore

log = logging.getLogger(__name__)

# Column at which the focus character is drawn
FOCUS_COLUMN = 20


def render_word(session: ReadingSession) -> Text:
    """Render the current word with its ORP character highlighted."""
    parts = session.current_orp()
    if parts is None:
        return Text("")
    text = Text(" " * max(0, FOCUS_COLUMN - len(parts.before)))
    text.append(parts.before, style="bold white")
    text.append(parts.focus_char, style="bold red")
    text.append(parts.after, style="bold white")
    return text


def render_status(session: ReadingSession) -> Text:
    state = session.scheduler.state
    total = session.scheduler.word_count
    pages = session.pages
    line = (
        f"word {min(state.current_index + 1, total):,}/{total:,}"
        f"  page {session.current_page_index + 1}/{len(pages)}"
        f"  {state.wpm:g} wpm"
    )
    if pages:
        chapter = pages[session.current_page_index].chapter_title
        if chapter:
            line += f"  {chapter}"
    return Text(line, style="dim")


def render(session: ReadingSession) -> Group:
    marker = Text(" " * FOCUS_COLUMN + "v", style="red")
    return Group(marker, render_word(session), render_status(session))


async def _play(session: ReadingSession, console: Console) -> None:
    finished = asyncio.Event()
    scheduler = session.scheduler

    with Live(render(session), console=console, refresh_per_second=30, transient=True) as live:
        scheduler.on_word_changed = lambda _index: live.update(render(session))
        scheduler.on_finished = finished.set
        scheduler.play()
        await finished.wait()


def resolve_book(session: ReadingSession, target: str) -> str:
    """Return the library id for ``target``, importing it if it is a file."""
    path = Path(target).expanduser()
    if path.is_file():
        return session.import_file(path.resolve()).id
    return target


def execute_read(
    target: str,
    store: LibraryStore,
    settings: ReaderSettings,
    start: int | None,
    console: Console,
) -> None:
    """Play a book word by word until it ends or the user interrupts."""
    session = ReadingSession(store, AsyncioTimerFactory(), settings=settings)
    try:
        book_id = resolve_book(session, target)
        loaded = session.open_book(book_id)
        if start is not None:
            session.jump_to_word(start)

        author = f" by {loaded.metadata.author}" if loaded.metadata.author else ""
        console.print(f"[bold]{loaded.metadata.title}[/]{author}")
        console.print("[dim]Ctrl-C to pause and exit[/]")

        try:
            asyncio.run(_play(session, console))
            console.print("[green]Finished.[/]")
        except KeyboardInterrupt:
            position = session.scheduler.state.current_index
            session.scheduler.pause()
            console.print(f"[yellow]Paused at word {position:,}.[/]")
    finally:
        session.close()
