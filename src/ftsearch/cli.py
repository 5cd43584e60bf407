"""Command line interface for ftsearch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ftsearch.config import AppConfig
from ftsearch.index.search import Searcher
from ftsearch.index.storage import DocumentExistsError, SQLiteDocumentStore
from ftsearch.models import Document
from ftsearch.utils.logs import configure_logging
from ftsearch.utils.text import split_tokens

console = Console()
app = typer.Typer(help="ftsearch - typo-tolerant phrase search over stored documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level)


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _open_store(db: Path | None) -> SQLiteDocumentStore:
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)
    return SQLiteDocumentStore(resolved_db)


def _read_text(text: Optional[str], file: Optional[Path]) -> Optional[str]:
    if text is not None and file is not None:
        raise typer.BadParameter("Use either --text or --file, not both")
    if file is not None:
        return file.read_text(encoding="utf-8")
    return text


@app.command()
def add(
    document_id: str = typer.Argument(..., help="Unique document id"),
    name: str = typer.Argument(..., help="Document name"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="Document text"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read the text from a file"
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Store a new document."""
    _setup_logging(verbose)
    body = _read_text(text, file)
    if body is None:
        raise typer.BadParameter("Provide the document text with --text or --file")

    store = _open_store(db)
    try:
        store.add_document(Document(id=document_id, name=name, text=body))
    except DocumentExistsError:
        console.print(f"[red]Document {document_id} already exists.[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()
    console.print(f"Stored document [bold]{document_id}[/bold].")


@app.command()
def edit(
    document_id: str = typer.Argument(..., help="Document id"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New document name"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="New document text"),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read the new text from a file"
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Change the name and/or text of a document."""
    _setup_logging(verbose)
    body = _read_text(text, file)

    store = _open_store(db)
    try:
        edited = store.edit_document(document_id, name=name, text=body)
    finally:
        store.close()

    if not edited:
        console.print(f"[yellow]Document {document_id} not found.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"Updated document [bold]{document_id}[/bold].")


@app.command()
def remove(
    document_id: str = typer.Argument(..., help="Document id"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Remove a single document."""
    _setup_logging(verbose)
    store = _open_store(db)
    try:
        removed = store.remove_document(document_id)
    finally:
        store.close()

    if not removed:
        console.print(f"[yellow]Document {document_id} not found.[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"Removed document [bold]{document_id}[/bold].")


@app.command()
def clear(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Remove every stored document."""
    _setup_logging(verbose)
    if not yes:
        typer.confirm("Remove all documents?", abort=True)

    store = _open_store(db)
    try:
        removed = store.remove_all()
    finally:
        store.close()
    console.print(f"Removed {removed} documents.")


@app.command("list")
def list_documents(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List stored documents."""
    _setup_logging(verbose)
    store = _open_store(db)
    try:
        documents = store.list_documents()
    finally:
        store.close()

    if not documents:
        console.print("[yellow]No documents stored.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Tokens", justify="right")
    for document in documents:
        table.add_row(document.id, document.name, str(len(split_tokens(document.text))))
    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Phrase to look for"),
    document: Optional[str] = typer.Option(
        None, "--document", "-d", help="Only search this document id"
    ),
    first: bool = typer.Option(False, "--first", help="Stop after the first match per document"),
    max_results: int = typer.Option(
        AppConfig().max_results, min=1, help="Number of results to display"
    ),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run a typo-tolerant phrase search."""
    _setup_logging(verbose)
    store = _open_store(db)
    searcher = Searcher(store)
    try:
        if document is not None:
            outcome = searcher.search_document(document, query, stop_after_one=first)
        else:
            outcome = searcher.search_all(query, stop_after_one=first)
    finally:
        store.close()

    if outcome.failed:
        console.print("[red]Search failed, see the log for details.[/red]")
        raise typer.Exit(code=1)

    if not outcome.matches:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Document")
    table.add_column("Name")
    table.add_column("Position", justify="right")
    table.add_column("Snippet")

    for match in outcome.matches[:max_results]:
        table.add_row(match.document_id, match.document_name, str(match.position), match.snippet)

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option(AppConfig().host, help="Host interface"),
    port: int = typer.Option(AppConfig().port, help="Server port"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Start the HTTP API."""
    _setup_logging(verbose)
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from ftsearch.web.app import create_app

    config = AppConfig(
        db_path=db if db is not None else AppConfig().db_path,
        host=host,
        port=port,
        log_file=log_file,
    )
    console.print(
        f"Starting server on http://{host}:{port} "
        f"(database: {config.resolve_db_path(Path.cwd())})"
    )
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        reload=False,
        log_level="debug" if verbose else "info",
    )
