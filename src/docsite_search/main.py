"""
Search Gateway Application Entry Point

This module defines the FastAPI application instance, registers all routers
and middleware, configures global exception handling, and provides a
test-friendly application factory.

Public Surface
--------------
- GET  /health
- GET  /status
- POST /search
- anything else -> 404
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core.errors import (
    GatewayError,
    gateway_exception_handler,
    unhandled_exception_handler,
)
from .api import health_routes, search_routes, status_routes


logger = logging.getLogger("docsearch.app")

SUPPORTED_ENDPOINTS = ["GET /health", "GET /status", "POST /search"]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="docsite-search-gateway",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # --------------------------------------------------------------
    # Middleware
    # --------------------------------------------------------------

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex or None,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization", "X-Forwarded-For", "X-Real-IP"],
        allow_credentials=False,
    )

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(GatewayError, gateway_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(status_routes.router)
    app.include_router(search_routes.router)

    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        include_in_schema=False,
    )
    async def _not_found(path: str) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={
                "error": "Endpoint not found",
                "supportedEndpoints": SUPPORTED_ENDPOINTS,
            },
        )

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info(
            "Search gateway starting (engine %s, index %s)",
            settings.engine_url,
            settings.index_name,
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        logger.info("Search gateway shutting down")

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()
