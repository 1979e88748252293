"""FastAPI dependencies for course reviews."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from eduforge.core.dependencies import get_app_service

from .service import ReviewError, ReviewService


async def get_review_service(request: Request) -> ReviewService:
    """Get review service from app state."""
    return get_app_service(request, "review_service", "Review")


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]


def handle_review_error(error: ReviewError) -> HTTPException:
    """Convert review errors to HTTP exceptions."""
    status_map = {
        "already_reviewed": status.HTTP_409_CONFLICT,
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_rating": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
