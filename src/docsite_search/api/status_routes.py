"""
Index Status

Read-only view of the search index size, under its own stricter rate limit.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from ..config import settings
from ..core.errors import SearchUnavailableError
from ..search.engine import SearchEngineClient, SearchEngineError
from .dependencies import get_search_client
from .models import IndexStatus
from .rate_limit import get_client_ip, status_limiter

logger = logging.getLogger("docsearch.gateway")

router = APIRouter(tags=["status"])


@router.get("/status")
async def index_status(
    request: Request,
    client: Annotated[SearchEngineClient, Depends(get_search_client)],
) -> Dict[str, Any]:
    status_limiter.hit(get_client_ip(request))

    try:
        stats = await client.stats(timeout=settings.status_timeout)
        return IndexStatus(index=client.index_name, **stats).model_dump(by_alias=True)
    except (SearchEngineError, ValidationError) as exc:
        logger.error("Status check error: %s", exc)
        raise SearchUnavailableError(
            "Search service status unavailable",
            extra={"index": client.index_name, "status": "unavailable"},
        ) from exc
