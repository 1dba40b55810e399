"""FastAPI application factory for the incident query API.

Usage::

    from kubeincident.api.app import create_app

    app = create_app(store=store, config=config)

The factory is used by both the production bootstrap (``kubeincident.app``)
and the tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from kubeincident.api.routes import router
from kubeincident.api.schemas import ErrorResponse
from kubeincident.store.incidents import IncidentStore

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(store: IncidentStore, config: Any = None) -> FastAPI:
    """Create and configure the query API.

    Args:
        store:  IncidentStore the routes read from.
        config: AgentConfig. Used for the cluster name only.
    """
    from kubeincident import __version__

    cluster_name: str = ""
    if config is not None and hasattr(config, "cluster_name"):
        cluster_name = config.cluster_name or ""

    app = FastAPI(
        title="kubeincident",
        summary="Root-cause-annotated pod incidents",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.store = store
    app.state.cluster_name = cluster_name

    app.include_router(router, prefix=_API_PREFIX)
    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="INTERNAL_ERROR", detail="internal server error").model_dump(),
        )

    return app
