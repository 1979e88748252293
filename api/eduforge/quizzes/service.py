"""Quiz service layer.

Scores submissions against the module's quiz and records every attempt.
Passing a quiz is informational only: it never affects lesson or module
completion.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import QuizAttempt
from .scoring import (
    best_scores_by_module,
    is_passing,
    normalize_answers,
    score_attempt,
)


if TYPE_CHECKING:
    from eduforge.catalog.models import Module, Quiz
    from eduforge.catalog.service import CourseCatalog
    from eduforge.progress.repository import EnrollmentRepository

    from .repository import QuizAttemptRepository

logger = structlog.get_logger(__name__)

DEFAULT_PASSING_SCORE = 70


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizError(Exception):
    """Base quiz error."""

    def __init__(self, message: str, code: str = "quiz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class QuizEnrollmentNotFoundError(QuizError):
    """No enrollment to record the attempt against."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class QuizModuleNotFoundError(QuizError):
    """Module or its course does not exist."""

    def __init__(self, module_id: UUID):
        super().__init__(f"Module {module_id} not found", "module_not_found")
        self.module_id = module_id


class QuizNotFoundError(QuizError):
    """Module has no quiz."""

    def __init__(self, module_id: UUID):
        super().__init__(f"Module {module_id} has no quiz", "quiz_not_found")
        self.module_id = module_id


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Scores quiz submissions and keeps the attempt history."""

    def __init__(
        self,
        repository: "QuizAttemptRepository",
        enrollments: "EnrollmentRepository",
        catalog: "CourseCatalog",
        default_passing_score: int = DEFAULT_PASSING_SCORE,
    ):
        self.repository = repository
        self.enrollments = enrollments
        self.catalog = catalog
        self.default_passing_score = default_passing_score

    def passing_score_for(self, quiz: "Quiz") -> int:
        """Quiz's own passing score, or the configured default."""
        if quiz.passing_score is not None:
            return quiz.passing_score
        return self.default_passing_score

    def get_quiz(self, course_id: UUID, module_id: UUID) -> "Quiz":
        """Look up a module's quiz.

        Raises:
            QuizModuleNotFoundError: If the course or module does not exist
            QuizNotFoundError: If the module has no quiz
        """
        module = self._get_module(course_id, module_id)
        if module.quiz is None:
            raise QuizNotFoundError(module_id)
        return module.quiz

    # ==========================================================================
    # Attempts
    # ==========================================================================

    async def record_attempt(
        self,
        enrollment_id: UUID,
        module_id: UUID,
        answers: Sequence[int | None],
    ) -> QuizAttempt:
        """Score a submission and persist it as a new attempt.

        Raises:
            QuizEnrollmentNotFoundError: If the enrollment does not exist
            QuizModuleNotFoundError: If the module is not part of the course
            QuizNotFoundError: If the module has no quiz
        """
        enrollment = await self.enrollments.get(enrollment_id)
        if enrollment is None:
            raise QuizEnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")

        quiz = self.get_quiz(enrollment.course_id, module_id)
        answers = normalize_answers(list(answers))
        result = score_attempt(quiz, answers)
        if result.empty_quiz:
            logger.warning(
                "empty_quiz_scored",
                course_id=str(enrollment.course_id),
                module_id=str(module_id),
            )

        attempt = QuizAttempt(
            enrollment_id=enrollment.id,
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            module_id=module_id,
            answers=answers,
            score=result.score,
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            passed=is_passing(result.score, self.passing_score_for(quiz)),
        )
        await self.repository.add(attempt)

        logger.info(
            "quiz_attempt_recorded",
            attempt_id=str(attempt.id),
            enrollment_id=str(enrollment.id),
            module_id=str(module_id),
            score=attempt.score,
            passed=attempt.passed,
        )
        return attempt

    async def submit_attempt(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        answers: Sequence[int | None],
    ) -> QuizAttempt:
        """Record an attempt for the user's enrollment in a course."""
        enrollment = await self._find_enrollment(user_id, course_id)
        return await self.record_attempt(enrollment.id, module_id, answers)

    async def list_attempts(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
    ) -> list[QuizAttempt]:
        """Attempt history of the user on one module, newest first."""
        self.get_quiz(course_id, module_id)
        enrollment = await self._find_enrollment(user_id, course_id)
        return await self.repository.list_by_enrollment(enrollment.id, module_id)

    async def best_scores(self, enrollment_id: UUID) -> dict[UUID, int]:
        """Highest score per module over all attempts of an enrollment."""
        return best_scores_by_module(
            await self.repository.list_by_enrollment(enrollment_id)
        )

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _get_module(self, course_id: UUID, module_id: UUID) -> "Module":
        course = self.catalog.get_course(course_id)
        module = course.get_module(module_id) if course else None
        if module is None:
            raise QuizModuleNotFoundError(module_id)
        return module

    async def _find_enrollment(self, user_id: UUID, course_id: UUID):
        enrollment = await self.enrollments.get_by_user_course(user_id, course_id)
        if enrollment is None:
            raise QuizEnrollmentNotFoundError
        return enrollment
