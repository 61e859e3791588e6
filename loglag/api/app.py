"""FastAPI application factory for the loglag status API.

Usage::

    from loglag.api.app import create_app

    app = create_app(scheduler=scheduler)

Used by the production bootstrap (``loglag.app``) and by unit tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from loglag.api.routes import router
from loglag.api.schemas import ErrorResponse

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(scheduler: Any) -> FastAPI:
    """Create the status API.

    Args:
        scheduler: PollScheduler whose counters, queue and ledger are reported.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from loglag import __version__

    app = FastAPI(
        title="loglag",
        summary="Pod log ingestion latency monitor",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url=None,
        openapi_url="/api/v1/openapi.json",
    )

    app.state.scheduler = scheduler
    app.include_router(router, prefix=_API_PREFIX)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
