import os
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

from auth import CredentialService
from config import configure_logging, settings
from database import DocumentStore, DuplicateUserError, MalformedStoreError
from library import Library
from models import Book
from utils.ui_helpers import (
    set_output_mode,
    print_book_detail,
    print_categories_result,
    print_list_result,
    print_reviews_result,
    print_stats_result,
)
from utils.validators import TextValidator, UserValidator

console = Console()

app = typer.Typer(help="Library catalog CLI")

# Store selected by the global --data-dir option
_state = {"data_dir": None}


def _get_store() -> DocumentStore:
    store = DocumentStore(_state["data_dir"] or settings.data_dir)
    store.initialize()
    return store


@app.callback()
def _global_options(
    data_dir: Optional[str] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding books.json, reviews.json and users.json",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
):
    """Global CLI options (data directory, output mode)."""
    _state["data_dir"] = data_dir
    if output:
        set_output_mode(output)


@app.command("init")
def cli_init():
    """Create the data files with default content if they are missing."""
    store = _get_store()
    print(f"Data directory ready: {store.data_dir}")


@app.command("list")
def cli_list(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Match title or author"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Filter by author"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Filter by category"),
):
    """List books, optionally filtered."""
    lib = Library(_get_store())
    print_list_result(lib.list_books(search=search, author=author, category=category))


@app.command("show")
def cli_show(book_id: int):
    """Show one book by id."""
    lib = Library(_get_store())
    book = lib.get_book(book_id)
    if book:
        print_book_detail(book)
    else:
        print(f"Book {book_id} not found.")


@app.command("categories")
def cli_categories():
    """List the distinct book categories."""
    print_categories_result(Library(_get_store()).list_categories())


@app.command("add-book")
def cli_add_book(
    title: str = typer.Option(..., "--title", "-t"),
    author: str = typer.Option(..., "--author", "-a"),
    category: str = typer.Option("", "--category", "-c"),
    summary: str = typer.Option("", "--summary"),
):
    """Add a book to the catalog."""
    if not TextValidator.validate_title(title) or not TextValidator.validate_author(author):
        print("Error: provide a valid title and author.")
        raise typer.Exit(code=1)
    lib = Library(_get_store())
    book = lib.add_book(Book(title=title, author=author, category=category, summary=summary))
    print(f"Successfully added: #{book.id} {book.title} by {book.author}")


@app.command("reviews")
def cli_reviews(book_id: int):
    """List reviews for a book, newest first."""
    print_reviews_result(Library(_get_store()).list_reviews_for_book(book_id))


@app.command("user-reviews")
def cli_user_reviews(user_name: str):
    """List reviews written by a user, newest first."""
    print_reviews_result(Library(_get_store()).list_reviews_by_user(user_name))


@app.command("register")
def cli_register(
    user_name: str,
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Register a regular (non-administrator) user."""
    if not UserValidator.validate_user_name(user_name):
        print("Error: user name must be 3-32 letters, digits, '.', '_' or '-'.")
        raise typer.Exit(code=1)
    if not UserValidator.validate_password(password):
        print("Error: password is too short.")
        raise typer.Exit(code=1)
    service = CredentialService(_get_store())
    try:
        user = service.register_user(user_name, password)
    except DuplicateUserError:
        print(f"User name '{user_name}' already exists.")
        raise typer.Exit(code=1)
    print(f"Registered user {user.user_name} (id {user.id}).")


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(Library(_get_store()).get_statistics())


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart on code changes")):
    """Start the HTTP API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    env = dict(os.environ)
    if _state["data_dir"]:
        env["LIBRARY_DATA_DIR"] = _state["data_dir"]
    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    subprocess.run(args, env=env)


def run() -> None:
    configure_logging("WARNING")
    try:
        app()
    except MalformedStoreError as e:
        console.print(f"[bold red]Data file is unreadable:[/] {e}")
        sys.exit(2)


if __name__ == "__main__":
    run()
