"""Course review API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from eduforge.core.dependencies import CurrentUserId

from .dependencies import ReviewServiceDep, handle_review_error
from .schemas import (
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewSort,
    ReviewStatsResponse,
)
from .service import ReviewError


router = APIRouter(prefix="/courses", tags=["reviews"])


@router.post(
    "/{course_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review course",
)
async def submit_review(
    course_id: UUID,
    data: ReviewCreate,
    review_service: ReviewServiceDep,
    user_id: CurrentUserId,
) -> ReviewResponse:
    """Rate a course once. A second review is rejected with 409."""
    try:
        review = await review_service.submit_review(
            user_id=user_id,
            course_id=course_id,
            rating=data.rating,
            comment=data.comment,
            title=data.title,
        )
    except ReviewError as e:
        raise handle_review_error(e) from e
    return ReviewResponse.from_entity(review)


@router.get(
    "/{course_id}/reviews",
    response_model=ReviewListResponse,
    summary="List course reviews",
)
async def list_reviews(
    course_id: UUID,
    review_service: ReviewServiceDep,
    sort: ReviewSort = Query(default=ReviewSort.NEWEST),  # noqa: B008
) -> ReviewListResponse:
    """Reviews of a course."""
    reviews = await review_service.list_course_reviews(course_id, sort)
    return ReviewListResponse(
        items=[ReviewResponse.from_entity(r) for r in reviews],
        total=len(reviews),
    )


@router.get(
    "/{course_id}/reviews/stats",
    response_model=ReviewStatsResponse,
    summary="Get course rating statistics",
)
async def get_review_stats(
    course_id: UUID,
    review_service: ReviewServiceDep,
) -> ReviewStatsResponse:
    """Average rating and per-star distribution."""
    return await review_service.review_stats(course_id)
