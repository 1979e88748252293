"""Health check endpoints."""

from fastapi import APIRouter, Request

from eduforge.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])

SERVICES = (
    "progress_service",
    "quiz_service",
    "certificate_service",
    "review_service",
    "analytics_service",
)


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness probe - checks that storage and services are initialized."""
    settings = get_settings()
    ready = all(getattr(request.app.state, name, None) for name in SERVICES)
    return {
        "status": "ready" if ready else "starting",
        "ready": ready,
        "storage_backend": settings.storage_backend,
        "environment": settings.environment,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
