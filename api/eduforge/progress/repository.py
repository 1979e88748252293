"""Enrollment storage.

Two implementations with the same coroutine interface:

- ``CassandraEnrollmentRepository``: prepared statements over the
  ``enrollments`` tables; writes are lightweight transactions so concurrent
  processes cannot overwrite each other's progress.
- ``InMemoryEnrollmentRepository``: dict-backed store for the ``memory``
  backend and tests, with the same version check.

``save`` is a compare-and-swap: it only writes if the stored version still
equals ``expected_version`` and returns whether the write happened.
"""

import copy
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from eduforge.core.database.errors import storage_errors
from eduforge.core.exceptions import StorageError

from .models import Enrollment


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class EnrollmentRepository(Protocol):
    """Storage interface used by the tracker, issuer and aggregator."""

    async def create(self, enrollment: Enrollment) -> bool: ...

    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...

    async def get_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None: ...

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]: ...

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]: ...

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool: ...


# ==============================================================================
# Cassandra
# ==============================================================================


class CassandraEnrollmentRepository:
    """Enrollment storage on Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE enrollment_id = ?
        """)

        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (enrollment_id, user_id, course_id, region, enrolled_at,
             completed_lessons, completed_modules, current_lesson_id,
             percentage, completed_at, last_activity_at, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._update_if_version = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET completed_lessons = ?, completed_modules = ?,
                current_lesson_id = ?, percentage = ?, completed_at = ?,
                last_activity_at = ?, version = ?
            WHERE enrollment_id = ?
            IF version = ?
        """)

        # Claims the (course, user) pair; only the first enrollment wins
        self._claim_pair = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_course
            (course_id, user_id, enrollment_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._reclaim_pair = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_course
            SET enrollment_id = ?
            WHERE course_id = ? AND user_id = ?
            IF enrollment_id = ?
        """)

        self._release_pair = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ? AND user_id = ?
            IF enrollment_id = ?
        """)

        self._get_by_pair = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ? AND user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ?
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, enrollment_id)
            VALUES (?, ?, ?)
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ?
        """)

    async def create(self, enrollment: Enrollment) -> bool:
        """Insert a new enrollment; False if the user is already enrolled.

        The (course, user) pair is claimed first. If a later write fails the
        claim is released, and a claim whose enrollment row was never written
        is taken over by the next create for the pair.
        """
        if not await self._claim(enrollment):
            return False

        try:
            with storage_errors("enrollment_create"):
                await self.session.aexecute(
                    self._insert,
                    [
                        enrollment.id,
                        enrollment.user_id,
                        enrollment.course_id,
                        enrollment.region,
                        enrollment.enrolled_at,
                        enrollment.completed_lessons,
                        enrollment.completed_modules,
                        enrollment.current_lesson_id,
                        enrollment.percentage,
                        enrollment.completed_at,
                        enrollment.last_activity_at,
                        enrollment.version,
                    ],
                )
                await self.session.aexecute(
                    self._insert_by_user,
                    [enrollment.user_id, enrollment.course_id, enrollment.id],
                )
        except StorageError:
            await self._release(enrollment)
            raise
        return True

    async def _claim(self, enrollment: Enrollment) -> bool:
        with storage_errors("enrollment_claim"):
            claimed = await self.session.aexecute(
                self._claim_pair,
                [enrollment.course_id, enrollment.user_id, enrollment.id],
            )
            if claimed.was_applied:
                return True

            holder = (
                await self.session.aexecute(
                    self._get_by_pair, [enrollment.course_id, enrollment.user_id]
                )
            ).one()
        if holder is None or await self.get(holder.enrollment_id) is not None:
            return False

        # Left behind by a create that failed after claiming
        with storage_errors("enrollment_reclaim"):
            reclaimed = await self.session.aexecute(
                self._reclaim_pair,
                [
                    enrollment.id,
                    enrollment.course_id,
                    enrollment.user_id,
                    holder.enrollment_id,
                ],
            )
        if reclaimed.was_applied:
            logger.info(
                "enrollment_claim_reclaimed",
                course_id=str(enrollment.course_id),
                user_id=str(enrollment.user_id),
                stale_enrollment_id=str(holder.enrollment_id),
            )
        return reclaimed.was_applied

    async def _release(self, enrollment: Enrollment) -> None:
        try:
            with storage_errors("enrollment_release"):
                await self.session.aexecute(
                    self._release_pair,
                    [enrollment.course_id, enrollment.user_id, enrollment.id],
                )
        except StorageError:
            # The stale claim is reclaimed by the next create
            logger.warning(
                "enrollment_claim_release_failed",
                enrollment_id=str(enrollment.id),
            )

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        """Get enrollment by id."""
        with storage_errors("enrollment_get"):
            result = await self.session.aexecute(self._get, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def get_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        """Get enrollment by (user, course)."""
        with storage_errors("enrollment_get_by_pair"):
            result = await self.session.aexecute(self._get_by_pair, [course_id, user_id])
        row = result.one()
        return await self.get(row.enrollment_id) if row else None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        """Get all enrollments of a user."""
        with storage_errors("enrollment_list_by_user"):
            rows = await self.session.aexecute(self._list_by_user, [user_id])
        return await self._load_many(row.enrollment_id for row in rows)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        """Get all enrollments of a course."""
        with storage_errors("enrollment_list_by_course"):
            rows = await self.session.aexecute(self._list_by_course, [course_id])
        return await self._load_many(row.enrollment_id for row in rows)

    async def _load_many(self, ids) -> list[Enrollment]:
        enrollments = []
        for enrollment_id in ids:
            enrollment = await self.get(enrollment_id)
            if enrollment is not None:
                enrollments.append(enrollment)
        return enrollments

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool:
        """Write progress if the stored version is still ``expected_version``."""
        new_version = expected_version + 1
        with storage_errors("enrollment_save"):
            result = await self.session.aexecute(
                self._update_if_version,
                [
                    enrollment.completed_lessons,
                    enrollment.completed_modules,
                    enrollment.current_lesson_id,
                    enrollment.percentage,
                    enrollment.completed_at,
                    enrollment.last_activity_at,
                    new_version,
                    enrollment.id,
                    expected_version,
                ],
            )
        if not result.was_applied:
            return False
        enrollment.version = new_version
        return True


# ==============================================================================
# In-memory
# ==============================================================================


class InMemoryEnrollmentRepository:
    """Enrollment storage in process memory.

    Stored entities are copied on the way in and out so a caller mutating
    its instance never changes stored state without going through ``save``.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[UUID, UUID], UUID] = {}

    async def create(self, enrollment: Enrollment) -> bool:
        key = (enrollment.user_id, enrollment.course_id)
        if key in self._by_pair or enrollment.id in self._by_id:
            return False
        self._by_pair[key] = enrollment.id
        self._by_id[enrollment.id] = copy.deepcopy(enrollment)
        return True

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        stored = self._by_id.get(enrollment_id)
        return copy.deepcopy(stored) if stored else None

    async def get_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        enrollment_id = self._by_pair.get((user_id, course_id))
        return await self.get(enrollment_id) if enrollment_id else None

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        return [copy.deepcopy(e) for e in self._by_id.values() if e.user_id == user_id]

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        return [
            copy.deepcopy(e) for e in self._by_id.values() if e.course_id == course_id
        ]

    async def save(self, enrollment: Enrollment, expected_version: int) -> bool:
        stored = self._by_id.get(enrollment.id)
        if stored is None or stored.version != expected_version:
            return False
        enrollment.version = expected_version + 1
        self._by_id[enrollment.id] = copy.deepcopy(enrollment)
        return True
