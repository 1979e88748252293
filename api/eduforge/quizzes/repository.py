"""Quiz attempt storage.

Attempts are append-only. Both implementations return attempt histories
newest first.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from eduforge.core.database.errors import storage_errors

from .models import QuizAttempt


if TYPE_CHECKING:
    from cassandra.cluster import Session


class QuizAttemptRepository(Protocol):
    """Storage interface for quiz attempts."""

    async def add(self, attempt: QuizAttempt) -> None: ...

    async def list_by_enrollment(
        self, enrollment_id: UUID, module_id: UUID | None = None
    ) -> list[QuizAttempt]: ...

    async def list_by_course(self, course_id: UUID) -> list[QuizAttempt]: ...


# ==============================================================================
# Cassandra
# ==============================================================================


class CassandraQuizAttemptRepository:
    """Quiz attempt storage on Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (attempt_id, enrollment_id, user_id, course_id, module_id, answers,
             score, correct_count, total_questions, passed, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts_by_enrollment
            (enrollment_id, module_id, created_at, attempt_id)
            VALUES (?, ?, ?, ?)
        """)

        self._insert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts_by_course
            (course_id, created_at, attempt_id)
            VALUES (?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts WHERE attempt_id = ?
        """)

        self._list_by_enrollment = self.session.prepare(f"""
            SELECT attempt_id FROM {self.keyspace}.quiz_attempts_by_enrollment
            WHERE enrollment_id = ?
        """)

        self._list_by_enrollment_module = self.session.prepare(f"""
            SELECT attempt_id FROM {self.keyspace}.quiz_attempts_by_enrollment
            WHERE enrollment_id = ? AND module_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT attempt_id FROM {self.keyspace}.quiz_attempts_by_course
            WHERE course_id = ?
        """)

    async def add(self, attempt: QuizAttempt) -> None:
        """Persist a new attempt and its lookup rows."""
        with storage_errors("quiz_attempt_add"):
            await self.session.aexecute(
                self._insert,
                [
                    attempt.id,
                    attempt.enrollment_id,
                    attempt.user_id,
                    attempt.course_id,
                    attempt.module_id,
                    attempt.stored_answers(),
                    attempt.score,
                    attempt.correct_count,
                    attempt.total_questions,
                    attempt.passed,
                    attempt.created_at,
                ],
            )
            await self.session.aexecute(
                self._insert_by_enrollment,
                [attempt.enrollment_id, attempt.module_id, attempt.created_at, attempt.id],
            )
            await self.session.aexecute(
                self._insert_by_course,
                [attempt.course_id, attempt.created_at, attempt.id],
            )

    async def list_by_enrollment(
        self, enrollment_id: UUID, module_id: UUID | None = None
    ) -> list[QuizAttempt]:
        """Attempts of an enrollment, optionally for one module."""
        with storage_errors("quiz_attempt_list_by_enrollment"):
            if module_id is None:
                rows = await self.session.aexecute(
                    self._list_by_enrollment, [enrollment_id]
                )
            else:
                rows = await self.session.aexecute(
                    self._list_by_enrollment_module, [enrollment_id, module_id]
                )
        return await self._load_many(row.attempt_id for row in rows)

    async def list_by_course(self, course_id: UUID) -> list[QuizAttempt]:
        """Every attempt recorded in a course."""
        with storage_errors("quiz_attempt_list_by_course"):
            rows = await self.session.aexecute(self._list_by_course, [course_id])
        return await self._load_many(row.attempt_id for row in rows)

    async def _load_many(self, ids) -> list[QuizAttempt]:
        attempts = []
        for attempt_id in ids:
            with storage_errors("quiz_attempt_get"):
                result = await self.session.aexecute(self._get, [attempt_id])
            row = result.one()
            if row is not None:
                attempts.append(QuizAttempt.from_row(row))
        attempts.sort(key=lambda a: a.created_at, reverse=True)
        return attempts


# ==============================================================================
# In-memory
# ==============================================================================


class InMemoryQuizAttemptRepository:
    """Quiz attempt storage in process memory.

    Attempts are never mutated after creation, so they are shared rather than
    copied.
    """

    def __init__(self) -> None:
        self._attempts: list[QuizAttempt] = []

    async def add(self, attempt: QuizAttempt) -> None:
        self._attempts.append(attempt)

    async def list_by_enrollment(
        self, enrollment_id: UUID, module_id: UUID | None = None
    ) -> list[QuizAttempt]:
        return self._newest_first(
            a
            for a in self._attempts
            if a.enrollment_id == enrollment_id
            and (module_id is None or a.module_id == module_id)
        )

    async def list_by_course(self, course_id: UUID) -> list[QuizAttempt]:
        return self._newest_first(a for a in self._attempts if a.course_id == course_id)

    @staticmethod
    def _newest_first(attempts) -> list[QuizAttempt]:
        return sorted(attempts, key=lambda a: a.created_at, reverse=True)
