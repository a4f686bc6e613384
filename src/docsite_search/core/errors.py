"""
Global Error Handling

This module defines the gateway's error types and the application-wide
exception handlers that turn them into HTTP responses.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("docsearch.errors")


# ---------------------------------------------------------------------
# Gateway Errors
# ---------------------------------------------------------------------

class GatewayError(Exception):
    """
    Base class for errors that map directly onto a client response.

    ``extra`` is merged into the JSON body next to ``error``.
    """

    status_code: int = 500
    error: str = "Internal search error"

    def __init__(
        self,
        error: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.error = error or self.error
        self.extra = extra or {}
        self.headers = headers
        super().__init__(self.error)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.error, **self.extra}


class InvalidQueryError(GatewayError):
    status_code = 400
    error = "Invalid search query"

    def __init__(self, details: Optional[List[str]] = None) -> None:
        super().__init__(extra={"details": details} if details else None)


class ForbiddenQueryError(GatewayError):
    status_code = 403
    error = "Forbidden query operation detected"


class IndexNotFoundError(GatewayError):
    status_code = 404
    error = "Search index not found"


class PayloadTooLargeError(GatewayError):
    status_code = 413
    error = "Request body too large"


class RateLimitExceededError(GatewayError):
    status_code = 429
    error = "Too many search requests, please try again later."

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            extra={"retryAfter": retry_after},
            headers={"Retry-After": str(retry_after)},
        )


class SearchUnavailableError(GatewayError):
    status_code = 503
    error = "Search service temporarily unavailable"


class SearchBackendError(GatewayError):
    status_code = 500
    error = "Internal search error"


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def gateway_exception_handler(
    request: Request,
    exc: GatewayError,
) -> JSONResponse:
    """
    Render a ``GatewayError`` as ``{"error": ..., **extra}``.
    """
    if exc.status_code >= 500:
        logger.warning(
            "%s %s -> %d %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.error,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
        headers=exc.headers,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Logs the full traceback and returns a generic 500 with no internal
    details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {"error": "Internal server error"}

    return JSONResponse(
        status_code=500,
        content=payload,
    )
