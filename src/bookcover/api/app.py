# ABOUTME: FastAPI application factory and routes for cover lookups and health checks.
# ABOUTME: Blank titles are client errors; every other failure surfaces as success=false or a 500.

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from bookcover.api.schemas import CoverRequest, CoverResponse, HealthResponse
from bookcover.config import ResolverConfig, load_config
from bookcover.core.resolver import CoverResolver
from bookcover.service import create_resolver
from bookcover.types import BookQuery, InvalidQueryError

logger = logging.getLogger(__name__)


def create_app(
    resolver: CoverResolver | None = None, config: ResolverConfig | None = None
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        resolver: Resolver to serve. Built from config when omitted.
        config: Used only when no resolver is given. Defaults to the
            BOOKCOVER_* environment.

    Returns:
        The configured application. The resolver is kept on app.state.
    """
    if resolver is None:
        resolver = create_resolver(config or load_config())

    app = FastAPI(title="bookcover", description="Book cover resolution service.")
    app.state.resolver = resolver

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"success": False, "error": "internal error"})

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok", cacheSize=len(app.state.resolver.cache))

    @app.post("/api/book-cover", response_model=CoverResponse, response_model_exclude_none=True)
    def book_cover(body: CoverRequest) -> CoverResponse:
        """Resolve the cover of one book."""
        try:
            query = BookQuery(
                title=body.title.strip(),
                author=body.author.strip(),
                isbn=body.isbn,
                genre=body.genre,
            )
        except InvalidQueryError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        result = app.state.resolver.resolve(query, body.accuracyMode)
        logger.info(
            "Resolved %r: success=%s source=%s confidence=%d",
            query.title,
            result.success,
            result.source,
            result.confidence,
        )
        return CoverResponse.from_result(result)

    return app
