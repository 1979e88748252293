"""Pydantic schemas for quizzes."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import QuizAttempt
from .scoring import normalize_answers


class QuizAttemptRequest(BaseModel):
    """Submitted answers, one option index per question in order.

    Entries that are not integers are treated as unanswered instead of
    rejecting the submission.
    """

    answers: list[int | None] = Field(default_factory=list)

    @field_validator("answers", mode="before")
    @classmethod
    def _lenient_answers(cls, value: Any) -> list[int | None]:
        return normalize_answers(value)


class QuizAttemptResponse(BaseModel):
    """Scored attempt."""

    attempt_id: UUID
    enrollment_id: UUID
    module_id: UUID
    score: int
    correct_count: int
    total_questions: int
    passed: bool
    passing_score: int
    empty_quiz: bool = False
    created_at: datetime

    @classmethod
    def from_entity(
        cls, entity: QuizAttempt, passing_score: int
    ) -> "QuizAttemptResponse":
        """Create response from entity."""
        return cls(
            attempt_id=entity.id,
            enrollment_id=entity.enrollment_id,
            module_id=entity.module_id,
            score=entity.score,
            correct_count=entity.correct_count,
            total_questions=entity.total_questions,
            passed=entity.passed,
            passing_score=passing_score,
            empty_quiz=entity.total_questions == 0,
            created_at=entity.created_at,
        )


class QuizAttemptListResponse(BaseModel):
    """Attempt history of a module, newest first."""

    items: list[QuizAttemptResponse]
    total: int
    best_score: int | None = None
