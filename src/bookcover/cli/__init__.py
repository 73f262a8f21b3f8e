# ABOUTME: CLI package for bookcover, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click

from bookcover.cli.commands import batch_cmd, cache_cmd, resolve_cmd, serve_cmd

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(package_name="bookcover")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """bookcover - find verified cover images for books."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


cli.add_command(resolve_cmd.resolve)
cli.add_command(batch_cmd.batch)
cli.add_command(cache_cmd.cache)
cli.add_command(serve_cmd.serve)
