import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

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

def print_list_result(books: List[Any]) -> None:
    """Print a list of books in the current output mode.
    - plain: '#id - Title by Author [Category]' lines, or 'No books in library.'
    - json: JSON array of book records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Category", style="green")
        for b in books:
            table.add_row(str(b.id), b.title, b.author, b.category)
        _console.print(table)
    else:
        for b in books:
            suffix = f" [{b.category}]" if b.category else ""
            print(f"#{b.id} - {b.title} by {b.author}{suffix}")

def print_book_detail(book: Any) -> None:
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Author:[/] {book.author}\n"
            f"[bold]Category:[/] {book.category}\n\n"
            f"{book.summary}"
        )
        _console.print(Panel.fit(content, title=f"#{book.id} {book.title}", border_style="cyan"))
    else:
        print("Book Found")
        print(f"Title: {book.title}")
        print(f"Author: {book.author}")
        print(f"Category: {book.category}")
        print(f"Summary: {book.summary}")

def print_reviews_result(reviews: List[Any]) -> None:
    """Print reviews (already ordered newest first)."""
    mode = get_output_mode()

    if not reviews:
        print("No reviews yet.")
        return

    if mode == "json":
        print(json.dumps([r.to_dict() for r in reviews], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📝 Reviews", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Book", no_wrap=True)
        table.add_column("User", style="white")
        table.add_column("Rating", style="yellow")
        table.add_column("Comment", style="white")
        table.add_column("Created", style="dim")
        for r in reviews:
            table.add_row(str(r.id), str(r.book_id), r.user_name, "★" * r.rating, r.comment,
                          r.created_at.strftime("%Y-%m-%d %H:%M"))
        _console.print(table)
    else:
        for r in reviews:
            print(f"#{r.id} book {r.book_id} - {r.user_name} ({r.rating}/5): {r.comment}")

def print_categories_result(categories: List[str]) -> None:
    mode = get_output_mode()

    if not categories:
        print("No categories.")
        return

    if mode == "json":
        print(json.dumps(categories, ensure_ascii=False))
    else:
        print(f"Categories ({len(categories)}):")
        for category in categories:
            print(f"- {category}")

def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per metric
    - json: JSON object
    - rich: Panel with the main metrics
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = {
        "total_books": "Total Books",
        "unique_authors": "Unique Authors",
        "total_categories": "Categories",
        "total_reviews": "Total Reviews",
    }

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{labels.get(k, k)}:[/] {v}" for k, v in stats.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, value in stats.items():
            print(f"{labels.get(key, key)}: {value}")
