"""
Search Routes

Public full-text search endpoint. Every request passes, in order:

1. schema validation (400)
2. keyword denylist (403)
3. per-client rate limit (429) and progressive slow-down
4. forwarding to the engine with a hard timeout
5. response sanitisation

Engine failures are mapped onto stable client-facing errors; engine error
bodies are never passed through.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError

from ..config import settings
from ..core.errors import (
    IndexNotFoundError,
    InvalidQueryError,
    PayloadTooLargeError,
    SearchBackendError,
    SearchUnavailableError,
)
from ..search.engine import (
    SearchEngineClient,
    SearchEngineError,
    SearchEngineUnavailableError,
)
from .dependencies import get_search_client
from .query_guard import ensure_allowed, validate_query
from .rate_limit import get_client_ip, search_limiter, search_slowdown
from .models import SearchResponse

logger = logging.getLogger("docsearch.gateway")

router = APIRouter(tags=["search"])


async def _read_json_body(request: Request) -> Any:
    """
    Read and decode the request body, stopping as soon as it exceeds
    ``max_body_bytes``.
    """
    limit = settings.max_body_bytes

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError()

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLargeError()
        chunks.append(chunk)

    try:
        return json.loads(b"".join(chunks))
    except ValueError as exc:
        raise InvalidQueryError(["body: malformed JSON"]) from exc


def map_engine_error(exc: SearchEngineError) -> Exception:
    """Translate an engine failure into the gateway error returned to clients."""
    if isinstance(exc, SearchEngineUnavailableError):
        return SearchUnavailableError()
    if exc.status_code == 400:
        return InvalidQueryError()
    if exc.status_code == 404:
        return IndexNotFoundError()
    return SearchBackendError()


@router.post(
    "/search",
    summary="Full-text documentation search",
    status_code=status.HTTP_200_OK,
)
async def search(
    request: Request,
    client: Annotated[SearchEngineClient, Depends(get_search_client)],
) -> Dict[str, Any]:
    """
    Validate a public search query, forward it to the engine, and return the
    sanitized hits.
    """
    query = validate_query(await _read_json_body(request))
    body = query.to_engine_body()
    ensure_allowed(body)

    client_ip = get_client_ip(request)
    search_limiter.hit(client_ip)
    delay = search_slowdown.register(client_ip)
    if delay:
        await asyncio.sleep(delay)

    logger.info("Search request from %s", client_ip)
    started = time.monotonic()

    try:
        raw = await client.search(body, timeout=settings.search_timeout)
    except SearchEngineError as exc:
        logger.error("Search error: %s", exc)
        raise map_engine_error(exc) from exc

    try:
        response = SearchResponse.from_engine(raw)
    except (AttributeError, TypeError, ValidationError) as exc:
        logger.error("Malformed search response: %s", exc)
        raise SearchBackendError() from exc

    logger.info(
        "Search completed in %dms, returned %d results",
        (time.monotonic() - started) * 1000,
        len(response.hits.hits),
    )
    return response.to_payload()
