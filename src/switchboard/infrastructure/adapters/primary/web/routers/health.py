"""Health check router."""

from typing import Any

from fastapi import APIRouter, Depends

from switchboard import __version__
from switchboard.configuration.config import Settings
from switchboard.infrastructure.adapters.primary.web.dependencies import get_app_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": __version__,
    }
