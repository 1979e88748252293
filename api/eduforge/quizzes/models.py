"""Quiz attempt models.

Attempts are immutable records: created once per submission, never updated
or deleted. Cassandra lists cannot hold nulls, so unanswered positions are
stored as -1.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from eduforge.progress.models import ensure_utc_aware


UNANSWERED = -1

# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    attempt_id UUID PRIMARY KEY,
    enrollment_id UUID,
    user_id UUID,
    course_id UUID,
    module_id UUID,
    answers LIST<INT>,
    score INT,
    correct_count INT,
    total_questions INT,
    passed BOOLEAN,
    created_at TIMESTAMP
)
"""

# Attempt history per (enrollment, module), newest first
QUIZ_ATTEMPTS_BY_ENROLLMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_enrollment (
    enrollment_id UUID,
    module_id UUID,
    created_at TIMESTAMP,
    attempt_id UUID,
    PRIMARY KEY (enrollment_id, module_id, created_at, attempt_id)
) WITH CLUSTERING ORDER BY (module_id ASC, created_at DESC, attempt_id ASC)
"""

# Course-wide scans for analytics
QUIZ_ATTEMPTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts_by_course (
    course_id UUID,
    created_at TIMESTAMP,
    attempt_id UUID,
    PRIMARY KEY (course_id, created_at, attempt_id)
) WITH CLUSTERING ORDER BY (created_at DESC, attempt_id ASC)
"""

QUIZ_TABLES_CQL = [
    QUIZ_ATTEMPTS_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_ENROLLMENT_TABLE_CQL,
    QUIZ_ATTEMPTS_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class QuizAttempt:
    """One scored quiz submission for an (enrollment, module) pair."""

    def __init__(
        self,
        enrollment_id: UUID,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        answers: list[int | None],
        score: int,
        correct_count: int,
        total_questions: int,
        passed: bool,
        id: UUID | None = None,  # noqa: A002
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.enrollment_id = enrollment_id
        self.user_id = user_id
        self.course_id = course_id
        self.module_id = module_id
        self.answers = tuple(answers)
        self.score = score
        self.correct_count = correct_count
        self.total_questions = total_questions
        self.passed = passed
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from Cassandra row."""
        return cls(
            id=row.attempt_id,
            enrollment_id=row.enrollment_id,
            user_id=row.user_id,
            course_id=row.course_id,
            module_id=row.module_id,
            answers=[None if a == UNANSWERED else a for a in (row.answers or [])],
            score=row.score or 0,
            correct_count=row.correct_count or 0,
            total_questions=row.total_questions or 0,
            passed=bool(row.passed),
            created_at=row.created_at,
        )

    def stored_answers(self) -> list[int]:
        """Answers with unanswered positions as -1."""
        return [UNANSWERED if a is None else a for a in self.answers]

    def __repr__(self) -> str:
        return (
            f"<QuizAttempt {self.id} enrollment={self.enrollment_id} "
            f"module={self.module_id} {self.score}%>"
        )
