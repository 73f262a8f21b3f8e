# ABOUTME: Shared Click options for bookcover CLI commands.
# ABOUTME: Provides reusable decorators for the accuracy mode and cache file flags.

from pathlib import Path

import click

from bookcover.types import AccuracyMode


def _to_mode(ctx: click.Context, param: click.Parameter, value: str) -> AccuracyMode:
    return AccuracyMode(value)


mode_option = click.option(
    "-m",
    "--mode",
    type=click.Choice([m.value for m in AccuracyMode]),
    default=AccuracyMode.BALANCED.value,
    show_default=True,
    callback=_to_mode,
    help="strict requires visual confirmation; balanced trusts strong text matches.",
)

cache_path_option = click.option(
    "--cache",
    "cache_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the JSON cache file (default: $BOOKCOVER_CACHE_PATH).",
)
