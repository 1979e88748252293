"""FastAPI dependencies for course analytics."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from eduforge.core.dependencies import get_app_service

from .service import AnalyticsError, CourseAnalyticsService


async def get_analytics_service(request: Request) -> CourseAnalyticsService:
    """Get analytics service from app state."""
    return get_app_service(request, "analytics_service", "Analytics")


AnalyticsServiceDep = Annotated[CourseAnalyticsService, Depends(get_analytics_service)]


def handle_analytics_error(error: AnalyticsError) -> HTTPException:
    """Convert analytics errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
