"""Review storage."""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from eduforge.core.database.errors import storage_errors

from .models import Review


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ReviewRepository(Protocol):
    """Storage interface for reviews."""

    async def insert_if_absent(self, review: Review) -> bool: ...

    async def get(self, course_id: UUID, user_id: UUID) -> Review | None: ...

    async def list_by_course(self, course_id: UUID) -> list[Review]: ...


class CassandraReviewRepository:
    """Review storage on Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.reviews
            (course_id, user_id, review_id, rating, title, comment, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reviews
            WHERE course_id = ? AND user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reviews WHERE course_id = ?
        """)

    async def insert_if_absent(self, review: Review) -> bool:
        """Insert unless the user already reviewed the course."""
        with storage_errors("review_insert"):
            result = await self.session.aexecute(
                self._insert,
                [
                    review.course_id,
                    review.user_id,
                    review.id,
                    review.rating,
                    review.title,
                    review.comment,
                    review.created_at,
                ],
            )
        return bool(result.was_applied)

    async def get(self, course_id: UUID, user_id: UUID) -> Review | None:
        """Get the review of a user on a course."""
        with storage_errors("review_get"):
            result = await self.session.aexecute(self._get, [course_id, user_id])
        row = result.one()
        return Review.from_row(row) if row else None

    async def list_by_course(self, course_id: UUID) -> list[Review]:
        """Get all reviews of a course."""
        with storage_errors("review_list_by_course"):
            rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Review.from_row(row) for row in rows]


class InMemoryReviewRepository:
    """Review storage in process memory. Reviews are never updated."""

    def __init__(self) -> None:
        self._reviews: dict[tuple[UUID, UUID], Review] = {}

    async def insert_if_absent(self, review: Review) -> bool:
        key = (review.course_id, review.user_id)
        if key in self._reviews:
            return False
        self._reviews[key] = review
        return True

    async def get(self, course_id: UUID, user_id: UUID) -> Review | None:
        return self._reviews.get((course_id, user_id))

    async def list_by_course(self, course_id: UUID) -> list[Review]:
        return [r for r in self._reviews.values() if r.course_id == course_id]
