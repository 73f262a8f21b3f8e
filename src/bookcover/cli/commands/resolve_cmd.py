# ABOUTME: The `bookcover resolve` command for a single cover lookup.
# ABOUTME: Prints the resolved cover as a table or as JSON.

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookcover.cli.options import cache_path_option, mode_option
from bookcover.config import load_config
from bookcover.core.resolver import CoverResolver
from bookcover.service import create_resolver
from bookcover.types import AccuracyMode, BookQuery, InvalidQueryError, ResolutionResult

console = Console()


def _create_resolver(cache_path: Path | None = None) -> CoverResolver:
    """Create the default resolver from the environment configuration."""
    config = load_config()
    if cache_path is not None:
        config.cache.path = cache_path
    return create_resolver(config)


def _print_result(query: BookQuery, result: ResolutionResult) -> None:
    if not result.success:
        console.print(f"[yellow]No confident cover found for[/yellow] {query.title}")
        best = result.best_candidate
        if best is not None:
            console.print(
                f"[dim]Best candidate: {best.candidate.source_title} "
                f"({best.candidate.provider_name}, score {best.total_score})[/dim]"
            )
        return

    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Title", query.title)
    table.add_row("Image", result.image_url or "")
    table.add_row("Confidence", str(result.confidence))
    table.add_row("Source", result.source)
    table.add_row("Strategy", result.strategy_used or "")
    if result.from_cache:
        table.add_row("Cached", "yes")
    console.print(table)


@click.command("resolve")
@click.argument("title")
@click.option("-a", "--author", default="", help="Author name.")
@click.option("--isbn", default=None, help="ISBN-13 of the edition, if known.")
@mode_option
@cache_path_option
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
def resolve(
    title: str,
    author: str,
    isbn: str | None,
    mode: AccuracyMode,
    cache_path: Path | None,
    as_json: bool,
) -> None:
    """Find a verified cover image for one book."""
    try:
        query = BookQuery(title=title.strip(), author=author.strip(), isbn=isbn)
    except InvalidQueryError as exc:
        raise click.BadParameter(str(exc), param_hint="TITLE") from exc

    resolver = _create_resolver(cache_path)
    result = resolver.resolve(query, mode)

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False))
    else:
        _print_result(query, result)
