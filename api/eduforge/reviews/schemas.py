"""Pydantic schemas for course reviews."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from .models import RATING_VALUES, Review


class ReviewSort(str, Enum):
    """Ordering of review listings."""

    NEWEST = "newest"
    OLDEST = "oldest"
    HIGHEST = "highest"
    LOWEST = "lowest"


class ReviewCreate(BaseModel):
    """Request to review a course."""

    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    comment: str = Field(default="", max_length=2000)
    title: str | None = Field(default=None, max_length=200)


class ReviewResponse(BaseModel):
    """Review response."""

    id: UUID
    course_id: UUID
    user_id: UUID
    rating: int
    title: str | None = None
    comment: str
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: Review) -> "ReviewResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            course_id=entity.course_id,
            user_id=entity.user_id,
            rating=entity.rating,
            title=entity.title,
            comment=entity.comment,
            created_at=entity.created_at,
        )


class ReviewListResponse(BaseModel):
    """Reviews of a course."""

    items: list[ReviewResponse]
    total: int


class ReviewStatsResponse(BaseModel):
    """Rating statistics for a course."""

    course_id: UUID
    total_reviews: int = 0
    average_rating: float = 0.0
    rating_distribution: dict[str, int] = Field(
        default_factory=lambda: {str(r): 0 for r in RATING_VALUES}
    )
