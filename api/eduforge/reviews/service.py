"""Course review service layer.

Business logic for:
- Review submission (one per user and course, never overwritten)
- Review listing with sort order
- Rating statistics
"""

import html
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import RATING_VALUES, Review
from .schemas import ReviewSort, ReviewStatsResponse


if TYPE_CHECKING:
    from eduforge.catalog.service import CourseCatalog

    from .repository import ReviewRepository

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ReviewError(Exception):
    """Base review error."""

    def __init__(self, message: str, code: str = "review_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AlreadyReviewedError(ReviewError):
    """User already reviewed the course."""

    def __init__(self, message: str = "You have already reviewed this course"):
        super().__init__(message, "already_reviewed")


class InvalidRatingError(ReviewError):
    """Rating outside 1-5."""

    def __init__(self, rating: int):
        super().__init__(f"Rating must be between 1 and 5, got {rating}", "invalid_rating")


class ReviewCourseNotFoundError(ReviewError):
    """Course is not in the catalog."""

    def __init__(self, course_id: UUID):
        super().__init__(f"Course {course_id} not found", "course_not_found")


def sanitize_text(text: str) -> str:
    """Escape HTML in user supplied text."""
    return html.escape(text.strip())


# ==============================================================================
# Review Service
# ==============================================================================


class ReviewService:
    """Service for course reviews."""

    def __init__(self, repository: "ReviewRepository", catalog: "CourseCatalog"):
        self.repository = repository
        self.catalog = catalog

    async def submit_review(
        self,
        user_id: UUID,
        course_id: UUID,
        rating: int,
        comment: str = "",
        title: str | None = None,
    ) -> Review:
        """Submit a review.

        Raises:
            ReviewCourseNotFoundError: If the course is not in the catalog
            InvalidRatingError: If rating is outside 1-5
            AlreadyReviewedError: If the user already reviewed the course
        """
        if self.catalog.get_course(course_id) is None:
            raise ReviewCourseNotFoundError(course_id)
        if rating not in RATING_VALUES:
            raise InvalidRatingError(rating)

        review = Review(
            course_id=course_id,
            user_id=user_id,
            rating=rating,
            comment=sanitize_text(comment),
            title=sanitize_text(title) if title else None,
        )
        if not await self.repository.insert_if_absent(review):
            logger.info(
                "review_rejected_duplicate",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            raise AlreadyReviewedError

        logger.info(
            "review_submitted",
            review_id=str(review.id),
            course_id=str(course_id),
            rating=rating,
        )
        return review

    async def list_course_reviews(
        self,
        course_id: UUID,
        sort: ReviewSort = ReviewSort.NEWEST,
    ) -> list[Review]:
        """Reviews of a course in the requested order."""
        reviews = await self.repository.list_by_course(course_id)
        if sort is ReviewSort.OLDEST:
            return sorted(reviews, key=lambda r: r.created_at)
        if sort is ReviewSort.HIGHEST:
            return sorted(reviews, key=lambda r: (r.rating, r.created_at), reverse=True)
        if sort is ReviewSort.LOWEST:
            return sorted(reviews, key=lambda r: (r.rating, -r.created_at.timestamp()))
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)

    async def review_stats(self, course_id: UUID) -> ReviewStatsResponse:
        """Average rating, total and per-star distribution of a course."""
        reviews = await self.repository.list_by_course(course_id)
        distribution = {str(r): 0 for r in RATING_VALUES}
        for review in reviews:
            distribution[str(review.rating)] = distribution.get(str(review.rating), 0) + 1

        total_reviews = len(reviews)
        average_rating = (
            sum(r.rating for r in reviews) / total_reviews if total_reviews > 0 else 0.0
        )
        return ReviewStatsResponse(
            course_id=course_id,
            total_reviews=total_reviews,
            average_rating=round(average_rating, 2),
            rating_distribution=distribution,
        )
