# ABOUTME: The `bookcover batch` command for resolving many books from a JSON or CSV file.
# ABOUTME: Runs the worker pool with a progress bar; Ctrl-C cancels cooperatively.

import csv
import json
import logging
import threading
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)

from bookcover.cli.options import cache_path_option, mode_option
from bookcover.config import load_config
from bookcover.core.batch import BatchItemResult, BatchResolver, CancellationToken
from bookcover.core.resolver import CoverResolver
from bookcover.service import create_resolver
from bookcover.types import AccuracyMode, BookQuery, InvalidQueryError

logger = logging.getLogger(__name__)


def _create_resolver(cache_path: Path | None = None) -> CoverResolver:
    """Create the default resolver from the environment configuration."""
    config = load_config()
    if cache_path is not None:
        config.cache.path = cache_path
    return create_resolver(config)


def _read_rows(path: Path) -> list[dict[str, Any]]:
    """Read book rows from a JSON list or a CSV file with a header row."""
    if path.suffix.lower() == ".json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise click.BadParameter(f"Invalid JSON: {exc}", param_hint="FILE") from exc
        if not isinstance(data, list):
            raise click.BadParameter("JSON input must be a list of books", param_hint="FILE")
        return [row for row in data if isinstance(row, dict)]

    with path.open(newline="", encoding="utf-8-sig") as fh:
        return list(csv.DictReader(fh))


def _to_query(row: dict[str, Any]) -> BookQuery:
    year = row.get("year")
    return BookQuery(
        title=str(row.get("title") or "").strip(),
        author=str(row.get("author") or "").strip(),
        isbn=str(row["isbn"]).strip() if row.get("isbn") else None,
        genre=row.get("genre") or None,
        publisher=row.get("publisher") or None,
        year=int(year) if year and str(year).strip().isdigit() else None,
    )


def _load_queries(path: Path, console: Console) -> list[BookQuery]:
    queries: list[BookQuery] = []
    for line, row in enumerate(_read_rows(path), start=1):
        try:
            queries.append(_to_query(row))
        except InvalidQueryError as exc:
            console.print(f"[yellow]Skipping row {line}: {exc}[/yellow]")
    return queries


def _make_progress(console: Console) -> Progress:
    """Create a Rich progress bar for batch processing."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )


def _item_to_dict(item: BatchItemResult) -> dict[str, Any]:
    result = item.result
    return {
        "title": item.query.title,
        "author": item.query.author,
        "isbn": item.query.isbn,
        "success": item.success,
        "imageUrl": result.image_url if result else None,
        "confidence": result.confidence if result else 0,
        "source": result.source if result else None,
        "searchMethod": result.strategy_used if result else None,
        "error": item.error,
        "cancelled": item.cancelled,
    }


@click.command("batch")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@mode_option
@click.option(
    "-c",
    "--concurrency",
    type=click.IntRange(1, 16),
    default=None,
    help="Worker threads (default: $BOOKCOVER_CONCURRENCY or 3).",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write results to this JSON file.",
)
@cache_path_option
def batch(
    file: Path,
    mode: AccuracyMode,
    concurrency: int | None,
    output: Path | None,
    cache_path: Path | None,
) -> None:
    """Resolve covers for every book in FILE (JSON list or CSV with title/author/isbn)."""
    console = Console()
    queries = _load_queries(file, console)
    if not queries:
        console.print("[yellow]No books found in input.[/yellow]")
        return

    resolver = _create_resolver(cache_path)
    config = resolver.config
    batcher = BatchResolver(
        resolver,
        concurrency=concurrency or config.concurrency,
        batch_size=config.batch_size,
        cooldown=config.batch_cooldown,
    )
    token = CancellationToken()
    outcome: dict[str, list[BatchItemResult]] = {}

    with _make_progress(console) as progress:
        task = progress.add_task("Resolving covers", total=len(queries))

        def on_result(item: BatchItemResult) -> None:
            progress.advance(task)

        def run() -> None:
            outcome["items"] = batcher.run(queries, mode, cancel=token, on_result=on_result)

        worker = threading.Thread(target=run, name="bookcover-batch", daemon=True)
        worker.start()
        try:
            while worker.is_alive():
                worker.join(0.2)
        except KeyboardInterrupt:
            token.cancel()
            console.print("[yellow]Cancelling after in-flight books finish...[/yellow]")
            worker.join()

    items = outcome.get("items")
    if items is None:
        raise click.ClickException("Batch run failed; see log for details.")

    found = sum(1 for item in items if item.success)
    failed = sum(1 for item in items if item.error)
    cancelled = sum(1 for item in items if item.cancelled)
    missing = len(items) - found - failed - cancelled

    console.print(f"\n[bold]Batch complete:[/bold] {len(items)} book(s)")
    console.print(f"  [green]Found:[/green] {found}")
    console.print(f"  [yellow]Not found:[/yellow] {missing}")
    if failed:
        console.print(f"  [red]Errors:[/red] {failed}")
    if cancelled:
        console.print(f"  [dim]Cancelled:[/dim] {cancelled}")

    if output is not None:
        payload = [_item_to_dict(item) for item in items]
        output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        console.print(f"[dim]Results written to {output}[/dim]")
