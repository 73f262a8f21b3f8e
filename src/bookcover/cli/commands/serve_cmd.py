# ABOUTME: The `bookcover serve` command that runs the HTTP API with uvicorn.
# ABOUTME: Builds the resolver from the environment before the server starts.

import logging

import click
import uvicorn

from bookcover.api import create_app
from bookcover.config import load_config

logger = logging.getLogger(__name__)


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
def serve(host: str, port: int) -> None:
    """Serve POST /api/book-cover and GET /health."""
    app = create_app(config=load_config())
    app.state.resolver.cache.start_sweeper()
    logger.info("Serving bookcover API on %s:%d", host, port)
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    finally:
        app.state.resolver.cache.close()
