# ABOUTME: The `bookcover cache` command group for inspecting the persisted result cache.
# ABOUTME: Shows statistics, removes entries by tag, and purges expired entries.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookcover.cli.options import cache_path_option
from bookcover.config import load_config
from bookcover.core.cache import CacheStore

console = Console()


def _open_cache(cache_path: Path | None) -> CacheStore:
    config = load_config().cache
    if cache_path is not None:
        config.path = cache_path
    if config.path is None:
        raise click.UsageError("No cache file configured. Pass --cache or set BOOKCOVER_CACHE_PATH.")
    return CacheStore(config)


@click.group("cache")
def cache() -> None:
    """Inspect and maintain the cover cache."""


@cache.command("stats")
@cache_path_option
def stats(cache_path: Path | None) -> None:
    """Show cache size, usage, and entries by priority."""
    summary = _open_cache(cache_path).stats()

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Entries", f"{summary.total} / {summary.max_size}")
    table.add_row("Usage", f"{summary.usage_percent:.1f}%")
    table.add_row("Expired", str(summary.expired))
    for priority, count in summary.by_priority.items():
        table.add_row(f"Priority {priority}", str(count))
    table.add_row("Average age", f"{summary.average_age_seconds / 60:.1f} min")
    console.print(table)

    if summary.top_tags:
        tags = ", ".join(f"{tag} ({count})" for tag, count in summary.top_tags)
        console.print(f"[dim]Top tags: {tags}[/dim]")


@cache.command("clear-tag")
@click.argument("tag")
@cache_path_option
def clear_tag(tag: str, cache_path: Path | None) -> None:
    """Remove every entry carrying TAG (e.g. negative, provider:rakuten)."""
    removed = _open_cache(cache_path).clear_by_tag(tag)
    console.print(f"Removed {removed} entr{'y' if removed == 1 else 'ies'} tagged {tag}.")


@cache.command("cleanup")
@cache_path_option
def cleanup(cache_path: Path | None) -> None:
    """Remove expired entries."""
    removed = _open_cache(cache_path).cleanup_expired()
    console.print(f"Removed {removed} expired entr{'y' if removed == 1 else 'ies'}.")
