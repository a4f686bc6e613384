from datetime import datetime, timezone

from fastapi import APIRouter

from .models import HealthStatus

SERVICE_NAME = "docsite-search-gateway"

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return HealthStatus(
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=SERVICE_NAME,
    ).model_dump()
