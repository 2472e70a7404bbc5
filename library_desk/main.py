import logging
import os
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from library_desk.config import settings
from library_desk.errors import LibraryError
from library_desk.library import Library
from library_desk.ui_helpers import (
    print_book_list,
    print_category_list,
    print_loan_list,
    print_message,
    print_stats_result,
    set_output_mode,
)

APP_NAME = settings.app_name

console = Console()
logger = logging.getLogger(__name__)


class LibraryManager:
    """Holds the session used by CLI commands.

    State lives in memory only: each CLI process starts from a fresh
    session (seeded with the demo collection when SEED_DEMO_DATA is on).
    The interactive shell keeps one session for its whole run.
    """
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        if cls._instance is None:
            cls._instance = Library.from_settings()
            logger.debug("Library session created")
        return cls._instance

    @classmethod
    def reset(cls, library: Optional[Library] = None) -> None:
        """Drop the current session, or replace it with ``library``."""
        cls._instance = library


def _report(error: LibraryError) -> None:
    print_message(f"Error: {error}", "error")


# --- Typer CLI Application ---
app = typer.Typer(help=f"{APP_NAME} CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log messages"),
):
    """Global options for the CLI (output mode, logging)."""
    if output:
        set_output_mode(output)
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command("list")
def cli_list(category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category")):
    """List all books with their status."""
    lib = LibraryManager.get_instance()
    print_book_list(lib.search_books("", category))


@app.command("search")
def cli_search(
    query: str = typer.Argument(..., help="Title, author or ISBN"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
):
    """Search books by title, author or ISBN."""
    lib = LibraryManager.get_instance()
    print_book_list(lib.search_books(query, category), empty_message=f"No books match '{query}'.")


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t", help="Book title"),
    author: str = typer.Option(..., "--author", "-a", help="Author"),
    category: str = typer.Option(..., "--category", "-c", help="Category"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="ISBN"),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Published year"),
):
    """Add a book to the catalog."""
    lib = LibraryManager.get_instance()
    try:
        book = lib.create_book(title, author, category, isbn=isbn, published_year=year)
    except LibraryError as e:
        _report(e)
        return
    print_message(f"Successfully added: {book.title} by {book.author} (id {book.id})", "success")


@app.command("update")
def cli_update(
    book_id: str = typer.Argument(..., help="Book id"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    year: Optional[int] = typer.Option(None, "--year", "-y"),
):
    """Update a book's details."""
    fields = {name: value for name, value in (
        ("title", title), ("author", author), ("category", category),
        ("isbn", isbn), ("published_year", year),
    ) if value is not None}
    if not fields:
        print_message("Nothing to update. Provide at least one option.", "warning")
        return
    lib = LibraryManager.get_instance()
    try:
        book = lib.update_book(book_id, **fields)
    except LibraryError as e:
        _report(e)
        return
    print_message(f"Book {book.id} updated: {book.title} by {book.author}", "success")


@app.command("remove")
def cli_remove(book_id: str = typer.Argument(..., help="Book id")):
    """Remove a book from the catalog."""
    lib = LibraryManager.get_instance()
    try:
        book = lib.delete_book(book_id)
    except LibraryError as e:
        _report(e)
        return
    print_message(f"Book {book.id} ({book.title}) has been removed.", "success")


@app.command("borrow")
def cli_borrow(
    book_id: str = typer.Argument(..., help="Book id"),
    student_name: str = typer.Argument(..., help="Student name"),
    student_id: str = typer.Argument(..., help="Student ID"),
):
    """Issue a book to a student for the loan period."""
    lib = LibraryManager.get_instance()
    try:
        record = lib.borrow(book_id, student_name, student_id)
    except LibraryError as e:
        _report(e)
        return
    title = lib.get_book(book_id).title
    print_message(
        f"Book successfully borrowed to {record.student_name}: '{title}' "
        f"due {record.due_date.date().isoformat()} (record {record.id})",
        "success",
    )


@app.command("return")
def cli_return(record_id: str = typer.Argument(..., help="Borrow record id")):
    """Return a borrowed book and report any late fee."""
    lib = LibraryManager.get_instance()
    try:
        record = lib.return_book(record_id)
    except LibraryError as e:
        _report(e)
        return
    loan = lib.describe_loan(record)
    title = loan["book_title"] or f"book {record.book_id}"
    message = f"'{title}' has been returned successfully"
    if loan["days_overdue"]:
        message += f" ({loan['days_overdue']} days late, fee ${loan['late_fee']:.2f})"
    print_message(message, "success")


@app.command("loans")
def cli_loans(query: Optional[str] = typer.Argument(None, help="Student name or ID, book title or author")):
    """List active borrowings."""
    lib = LibraryManager.get_instance()
    now = lib.clock()
    loans = [lib.describe_loan(record, now) for record in lib.search_open_loans(query or "")]
    print_loan_list(loans, empty_message="No results found." if query else "No active borrowings.")


@app.command("overdue")
def cli_overdue():
    """List overdue borrowings with their late fees."""
    lib = LibraryManager.get_instance()
    now = lib.clock()
    loans = [lib.describe_loan(record, now) for record in lib.overdue_loans(now)]
    print_loan_list(loans, empty_message="No overdue borrowings.")


@app.command("stats")
def cli_stats():
    """Show dashboard statistics."""
    lib = LibraryManager.get_instance()
    now = lib.clock()
    stats = lib.get_statistics(now)
    stats["recent_borrowings"] = [lib.describe_loan(record, now) for record in stats["recent_borrowings"]]
    print_stats_result(stats)


@app.command("categories")
def cli_categories():
    """List the book categories."""
    print_category_list(LibraryManager.get_instance().categories())


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Port"),
    open_browser: bool = typer.Option(False, "--open", help="Open the API docs in a browser"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/docs"
    print(f"Starting API on {url}")
    if open_browser:
        try:
            webbrowser.open(url)
        except webbrowser.Error:
            console.print("[yellow]Could not open a web browser automatically.[/]")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "library_desk.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if settings.debug:
        args.append("--reload")
    try:
        subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` could not be started. Make sure it is installed.")


@app.command("shell")
def cli_shell():
    """Interactive menu that keeps one session across operations."""
    run_menu()


# --- Interactive menu ---
def _menu_list():
    lib = LibraryManager.get_instance()
    query = Prompt.ask("Search (leave empty for all)", default="")
    print_book_list(lib.search_books(query), empty_message="No books found.")


def _menu_add():
    lib = LibraryManager.get_instance()
    title = Prompt.ask("Title")
    author = Prompt.ask("Author")
    category = Prompt.ask("Category", choices=lib.categories(), default="Fiction")
    isbn = Prompt.ask("ISBN", default="")
    year = IntPrompt.ask("Published year", default=lib.clock().year)
    try:
        book = lib.create_book(title, author, category, isbn=isbn, published_year=year)
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return
    console.print(Panel.fit(f"[green]Added:[/] [bold]{escape(book.title)}[/] - {escape(book.author)} (id {book.id})",
                            title="✅ Success", border_style="green"))


def _menu_remove():
    lib = LibraryManager.get_instance()
    book_id = Prompt.ask("🔍 Id of the book to delete")
    book = lib.find_book(book_id)
    if not book:
        console.print(f"[yellow]⚠️ Book [bold]{escape(book_id)}[/] not found.[/]")
        return
    console.print(Panel(
        f"[bold]Title:[/] {escape(book.title)}\n"
        f"[bold]Author:[/] {escape(book.author)}\n"
        f"[bold]Status:[/] {book.status.label}",
        title="📚 Book to delete",
        border_style="yellow",
    ))
    if not Confirm.ask("🗑️ Delete this book?", default=False):
        console.print("[blue]🚫 Deletion cancelled.[/]")
        return
    try:
        lib.delete_book(book_id)
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return
    console.print(f"[green]✅ [bold]{escape(book.title)}[/] deleted.[/]")


def _menu_borrow():
    lib = LibraryManager.get_instance()
    query = Prompt.ask("Search available books", default="")
    available = lib.available_books(query)
    if not available:
        console.print("[yellow]No available books found.[/]")
        return
    print_book_list(available)
    book_id = Prompt.ask("Book id", choices=[b.id for b in available])
    student_name = Prompt.ask("Student name")
    student_id = Prompt.ask("Student ID")
    try:
        record = lib.borrow(book_id, student_name, student_id)
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return
    console.print(f"[green]Book successfully borrowed to {escape(record.student_name)}, "
                  f"due {record.due_date.date().isoformat()}.[/]")


def _menu_return():
    lib = LibraryManager.get_instance()
    query = Prompt.ask("Search by student name, ID, book title or author", default="")
    now = lib.clock()
    loans = [lib.describe_loan(record, now) for record in lib.search_open_loans(query)]
    print_loan_list(loans)
    if not loans:
        return
    record_id = Prompt.ask("Record id to return", choices=[loan["id"] for loan in loans])
    try:
        record = lib.return_book(record_id)
    except LibraryError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        return
    loan = lib.describe_loan(record)
    fee = f" Late fee: ${loan['late_fee']:.2f}." if loan["late_fee"] else ""
    console.print(f"[green]'{escape(loan['book_title'] or record.book_id)}' has been returned successfully.{fee}[/]")


def _menu_stats():
    lib = LibraryManager.get_instance()
    now = lib.clock()
    stats = lib.get_statistics(now)
    stats["recent_borrowings"] = [lib.describe_loan(record, now) for record in stats["recent_borrowings"]]
    print_stats_result(stats)


def run_menu():
    """Simple interactive menu for the library CLI."""
    menu_items = [
        ("1", "List / search books", "📚", _menu_list),
        ("2", "Add a book", "➕", _menu_add),
        ("3", "Delete a book", "🗑️", _menu_remove),
        ("4", "Borrow a book", "📖", _menu_borrow),
        ("5", "Return a book", "↩️", _menu_return),
        ("6", "Dashboard", "📊", _menu_stats),
        ("0", "Exit", "🚪", None),
    ]
    actions = {key: action for key, _, _, action in menu_items}

    def render_menu() -> None:
        table = Table.grid(padding=(0, 2))
        table.add_column(justify="right", style="bold cyan", width=4)
        table.add_column(justify="left", style="white")
        for key, label, icon, _ in menu_items:
            table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
        console.print(Panel(table, title=APP_NAME, border_style="cyan", box=box.HEAVY, padding=(1, 2)))

    while True:
        render_menu()
        choice = Prompt.ask("Choose an option", choices=list(actions), default="1").strip()
        action = actions[choice]
        if action is None:
            console.print("[green]Goodbye![/]")
            break
        action()
        console.print()


if __name__ == "__main__":
    if len(sys.argv) > 1 or os.environ.get("LIB_CLI_NO_MENU") == "1":
        app()
    else:
        run_menu()
