import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_message(message: str, style: str = "") -> None:
    """Status and error messages; JSON mode wraps them so output stays parseable."""
    mode = get_output_mode()
    if mode == "json":
        key = "error" if style == "error" else "message"
        print(json.dumps({key: message}, ensure_ascii=False))
    elif mode == "rich":
        color = {"error": "bold red", "success": "green", "warning": "yellow"}.get(style, "white")
        _console.print(f"[{color}]{message}[/]", highlight=False)
    else:
        print(message)


def print_book_list(books: List[Any], empty_message: str = "No books in library.") -> None:
    """Print books in the current output mode.
    - plain: 'ID. Title by Author [Category] (ISBN) - Status' lines
    - json: JSON array of book dicts
    - rich: Rich table
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
        return

    if not books:
        print(empty_message)
        return

    if mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Category", style="cyan")
        table.add_column("ISBN", style="dim", no_wrap=True)
        table.add_column("Year", justify="right")
        table.add_column("Status")
        for b in books:
            status = "[green]Available[/]" if b.is_available else "[yellow]Borrowed[/]"
            table.add_row(b.id, b.title, b.author, b.category, b.isbn, str(b.published_year), status)
        _console.print(table)
    else:
        for b in books:
            isbn = f" ({b.isbn})" if b.isbn else ""
            print(f"{b.id}. {b.title} by {b.author} [{b.category}]{isbn} - {b.status.label}")


def print_loan_list(loans: List[Dict[str, Any]], empty_message: str = "No active borrowings.") -> None:
    """Print loan rows as produced by ``Library.describe_loan``."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(loans, ensure_ascii=False))
        return

    if not loans:
        print(empty_message)
        return

    if mode == "rich":
        table = Table(title="🔁 Active Borrowings", show_lines=True, header_style="bold cyan")
        table.add_column("Record", style="magenta", no_wrap=True)
        table.add_column("Book", style="white")
        table.add_column("Student", style="white")
        table.add_column("Due", no_wrap=True)
        table.add_column("Overdue", justify="right")
        table.add_column("Fee", justify="right")
        for loan in loans:
            overdue = f"[red]{loan['days_overdue']} days[/]" if loan["is_overdue"] else "[green]On time[/]"
            table.add_row(
                loan["id"],
                loan["book_title"] or f"(missing book {loan['book_id']})",
                f"{loan['student_name']} ({loan['student_id']})",
                loan["due_date"][:10],
                overdue,
                f"${loan['late_fee']:.2f}",
            )
        _console.print(table)
    else:
        for loan in loans:
            title = loan["book_title"] or f"(missing book {loan['book_id']})"
            line = f"{loan['id']}. {title} - {loan['student_name']} ({loan['student_id']}), due {loan['due_date'][:10]}"
            if loan["is_overdue"]:
                line += f" - OVERDUE {loan['days_overdue']} days, fee ${loan['late_fee']:.2f}"
            print(line)


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print dashboard statistics in the current output mode.
    ``recent_borrowings`` is expected as a list of loan rows.
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
        return

    lines = [
        ("Total Books", stats.get("total_books", 0)),
        ("Available Books", stats.get("available_books", 0)),
        ("Borrowed Books", stats.get("borrowed_books", 0)),
        ("Overdue Books", stats.get("overdue_books", 0)),
        ("Outstanding Fees", f"${stats.get('outstanding_fees', 0.0):.2f}"),
    ]
    recent = stats.get("recent_borrowings", [])

    if mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {value}" for label, value in lines)
        if recent:
            content += "\n\n[bold]Recent Borrowings[/]"
            for loan in recent:
                flag = " [red](overdue)[/]" if loan["is_overdue"] else ""
                content += f"\n• {loan['book_title']} - {loan['student_name']}{flag}"
        _console.print(Panel.fit(content, title="📊 Dashboard", border_style="blue"))
    else:
        for label, value in lines:
            print(f"{label}: {value}")
        if recent:
            print("Recent Borrowings:")
            for loan in recent:
                flag = " (overdue)" if loan["is_overdue"] else ""
                print(f"- {loan['book_title']} - {loan['student_name']} ({loan['borrow_date'][:10]}){flag}")


def print_category_list(categories: List[str]) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(categories, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="🏷️ Categories", header_style="bold cyan")
        table.add_column("Category", style="cyan")
        for category in categories:
            table.add_row(category)
        _console.print(table)
    else:
        for category in categories:
            print(category)
