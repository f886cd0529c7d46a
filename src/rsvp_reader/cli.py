"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from rsvp_reader.config import library_root, load_settings, save_settings, update_settings
from rsvp_reader.core.paginator import paginate
from rsvp_reader.core.parser_factory import ParserFactory
from rsvp_reader.errors import BookNotFoundError
from rsvp_reader.models.playback import OrpPolicy, ReaderSettings
from rsvp_reader.storage.store import LibraryStore

app = typer.Typer(
    name="rsvp-reader",
    help="Speed-read EPUB, PDF and text files one word at a time.",
    add_completion=False,
)

console = Console()

library_app = typer.Typer(help="Manage the book library")
app.add_typer(library_app, name="library")

settings_app = typer.Typer(help="Show or change stored reading settings")
app.add_typer(settings_app, name="settings")


class AppContext:
    """Options shared by all commands."""

    def __init__(self, library: Path):
        self.library = library
        self.store = LibraryStore(library)
        self.settings = load_settings(library)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _context(ctx: typer.Context) -> AppContext:
    if not isinstance(ctx.obj, AppContext):
        ctx.obj = AppContext(library_root())
    return ctx.obj


def _check_supported(book_path: Path) -> None:
    if not ParserFactory.is_supported(book_path):
        console.print(f"[red]Unsupported file format: {book_path.suffix}[/]")
        console.print("[dim]Supported formats: .epub, .pdf, .txt[/]")
        raise typer.Exit(1)


def _override_settings(
    settings: ReaderSettings,
    wpm: float | None = None,
    page_size: int | None = None,
    orp: OrpPolicy | None = None,
    long_word_delay: bool | None = None,
) -> ReaderSettings:
    """Apply per-invocation CLI overrides without touching stored settings."""
    updates = {
        "wpm": wpm,
        "page_size": page_size,
        "orp_policy": orp,
        "long_word_delay": long_word_delay,
    }
    data = settings.model_dump()
    data.update({key: value for key, value in updates.items() if value is not None})
    return ReaderSettings.model_validate(data)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
    library: Annotated[
        Optional[Path],
        typer.Option(
            "--library",
            "-L",
            help="Library directory (default: $RSVP_READER_HOME or ~/.rsvp_reader)",
        ),
    ] = None,
) -> None:
    """Speed-read EPUB, PDF and text files one word at a time."""
    configure_logging(verbose)
    ctx.obj = AppContext(library_root(library))


@app.command()
def info(
    ctx: typer.Context,
    book_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the book file (EPUB, PDF or TXT)",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
) -> None:
    """Display book metadata and chapters."""
    _check_supported(book_path)
    settings = _context(ctx).settings

    try:
        parsed = ParserFactory.parse_file(book_path)
        book_pages = paginate(parsed.words, settings.page_size, parsed.chapters)

        info_lines = [
            f"[bold]{parsed.title or book_path.stem}[/]",
            "",
            f"[dim]Author:[/] {parsed.author or 'Unknown'}",
            f"[dim]Format:[/] {parsed.file_type.upper()}",
            f"[dim]Reading order:[/] {parsed.strategy.value.replace('_', ' ')}",
            f"[dim]Words:[/] {parsed.total_words:,}",
            f"[dim]Pages:[/] {len(book_pages):,} ({settings.page_size} words each)",
        ]
        if parsed.warnings:
            info_lines.append("")
            for warning in parsed.warnings:
                info_lines.append(f"[yellow]! {warning}[/]")

        console.print()
        console.print(Panel("\n".join(info_lines), title="Book Information", border_style="green"))

        if parsed.chapters:
            console.print()
            table = Table(title="Chapters", show_header=True, header_style="bold cyan")
            table.add_column("#", style="dim", width=4)
            table.add_column("Title", style="white")
            table.add_column("First word", justify="right", style="green")
            for i, chapter in enumerate(parsed.chapters):
                table.add_row(str(i + 1), chapter.title, f"{chapter.word_index:,}")
            console.print(table)
        console.print()

    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)


@app.command()
def pages(
    ctx: typer.Context,
    book_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the book file (EPUB, PDF or TXT)",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    page: Annotated[
        int,
        typer.Option("--page", "-p", help="Page number to show (1-based)", min=1),
    ] = 1,
    page_size: Annotated[
        Optional[int],
        typer.Option("--page-size", "-s", help="Words per page", min=1),
    ] = None,
    break_at_chapters: Annotated[
        bool,
        typer.Option("--chapter-breaks", help="Start a new page at every chapter"),
    ] = False,
) -> None:
    """Show one page of a book's paginated text."""
    _check_supported(book_path)
    settings = _override_settings(_context(ctx).settings, page_size=page_size)

    try:
        parsed = ParserFactory.parse_file(book_path)
        book_pages = paginate(
            parsed.words,
            settings.page_size,
            parsed.chapters,
            break_at_chapters=break_at_chapters or settings.break_pages_at_chapters,
        )
    except Exception as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)

    index = min(page, len(book_pages)) - 1
    shown = book_pages[index]
    title = f"Page {index + 1}/{len(book_pages)}"
    if shown.chapter_title:
        title += f" - {shown.chapter_title}"
    subtitle = f"words {shown.word_start_index + 1:,}-{shown.word_end_index:,}"
    if shown.is_chapter_start:
        subtitle += " (chapter start)"
    console.print(Panel(shown.text, title=title, subtitle=subtitle, border_style="blue"))


@app.command()
def read(
    ctx: typer.Context,
    target: Annotated[
        str,
        typer.Argument(help="Book file to read, or the id of a book in the library"),
    ],
    wpm: Annotated[
        Optional[float],
        typer.Option("--wpm", "-w", help="Words per minute (60-1200)"),
    ] = None,
    start: Annotated[
        Optional[int],
        typer.Option("--start", help="Word index to start from (default: saved position)"),
    ] = None,
    orp: Annotated[
        Optional[OrpPolicy],
        typer.Option("--orp", help="Focus character placement"),
    ] = None,
    no_long_word_delay: Annotated[
        bool,
        typer.Option("--no-long-word-delay", help="Do not slow down for long words"),
    ] = False,
) -> None:
    """Read a book with rapid serial visual presentation."""
    settings = _override_settings(
        _context(ctx).settings,
        wpm=wpm,
        orp=orp,
        long_word_delay=False if no_long_word_delay else None,
    )
    _run_reader(ctx, target, settings, start)


def _run_reader(ctx: typer.Context, target: str, settings: ReaderSettings, start: int | None) -> None:
    try:
        from rsvp_reader.commands.read import execute_read

        execute_read(
            target=target,
            store=_context(ctx).store,
            settings=settings,
            start=start,
            console=console,
        )
    except BookNotFoundError:
        console.print(f"[red]No such file or library book: {target}[/]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@library_app.command("add")
def library_add(
    ctx: typer.Context,
    book_path: Annotated[
        Path,
        typer.Argument(
            help="Book file to import",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
) -> None:
    """Import a book into the library."""
    _check_supported(book_path)
    app_ctx = _context(ctx)

    from rsvp_reader.core.scheduler import AsyncioTimerFactory
    from rsvp_reader.session import ReadingSession

    session = ReadingSession(app_ctx.store, AsyncioTimerFactory(), settings=app_ctx.settings)
    try:
        metadata = session.import_file(book_path)
    except Exception as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)
    finally:
        session.close()

    console.print(
        f"[green]Added[/] [bold]{metadata.title}[/] "
        f"({metadata.total_words:,} words) as [cyan]{metadata.id}[/]"
    )


@library_app.command("list")
def library_list(ctx: typer.Context) -> None:
    """List books, most recently opened first."""
    books = _context(ctx).store.list_all()

    if not books:
        console.print("[dim]Library is empty[/]")
        return

    table = Table(title="Library", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Author", style="dim")
    table.add_column("Type", style="dim")
    table.add_column("Progress", justify="right", style="green")
    table.add_column("Last opened", style="dim")

    for book in books:
        table.add_row(
            book.id,
            book.title,
            book.author or "",
            book.file_type,
            f"{book.progress:.0%}",
            book.last_opened.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@library_app.command("read")
def library_read(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Id of the book to read")],
    wpm: Annotated[
        Optional[float],
        typer.Option("--wpm", "-w", help="Words per minute (60-1200)"),
    ] = None,
) -> None:
    """Resume a library book at its saved position."""
    settings = _override_settings(_context(ctx).settings, wpm=wpm)
    _run_reader(ctx, book_id, settings, start=None)


@library_app.command("remove")
def library_remove(
    ctx: typer.Context,
    book_id: Annotated[str, typer.Argument(help="Id of the book to remove")],
) -> None:
    """Remove a book and its saved progress."""
    if _context(ctx).store.delete(book_id):
        console.print(f"[green]Removed {book_id}[/]")
    else:
        console.print(f"[red]No book with id {book_id}[/]")
        raise typer.Exit(1)


@settings_app.command("show")
def settings_show(ctx: typer.Context) -> None:
    """Print the stored reading settings."""
    settings = _context(ctx).settings

    table = Table(title="Settings", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    for key, value in settings.model_dump(mode="json").items():
        table.add_row(key, str(value))
    console.print(table)


@settings_app.command("set")
def settings_set(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name")],
    value: Annotated[str, typer.Argument(help="New value")],
) -> None:
    """Change a stored reading setting."""
    app_ctx = _context(ctx)
    try:
        updated = update_settings(app_ctx.settings, key, value)
    except KeyError:
        known = ", ".join(ReaderSettings.model_fields)
        console.print(f"[red]Unknown setting: {key}[/]")
        console.print(f"[dim]Known settings: {known}[/]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)

    save_settings(app_ctx.library, updated)
    app_ctx.settings = updated
    console.print(f"[green]{key} = {getattr(updated, key)}[/]")


if __name__ == "__main__":
    app()
