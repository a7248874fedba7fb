"""Liveness probe."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ...config import Settings
from ...models import HealthResponse
from ..deps import get_app_settings

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    return HealthResponse(
        service=settings.service_name,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
