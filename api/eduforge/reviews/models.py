"""Course review models.

One review per (user, course). The ``reviews`` table is partitioned by
course so listing and statistics read a single partition.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from eduforge.progress.models import ensure_utc_aware


RATING_VALUES = (1, 2, 3, 4, 5)

REVIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.reviews (
    course_id UUID,
    user_id UUID,
    review_id UUID,
    rating INT,
    title TEXT,
    comment TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

REVIEW_TABLES_CQL = [REVIEWS_TABLE_CQL]


class Review:
    """Rating and optional text left by a learner on a course."""

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        rating: int,
        comment: str = "",
        title: str | None = None,
        id: UUID | None = None,  # noqa: A002
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.user_id = user_id
        self.rating = rating
        self.comment = comment
        self.title = title
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Review":
        """Create Review instance from Cassandra row."""
        return cls(
            id=row.review_id,
            course_id=row.course_id,
            user_id=row.user_id,
            rating=row.rating,
            comment=row.comment or "",
            title=row.title,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Review {self.id} course={self.course_id} rating={self.rating}>"
