"""Tests for QuizService."""

from uuid import UUID, uuid4

import pytest

from conftest import build_course
from eduforge.catalog.models import Course
from eduforge.catalog.service import CourseCatalog
from eduforge.progress.repository import InMemoryEnrollmentRepository
from eduforge.progress.service import ProgressService
from eduforge.quizzes.repository import InMemoryQuizAttemptRepository
from eduforge.quizzes.service import (
    QuizEnrollmentNotFoundError,
    QuizModuleNotFoundError,
    QuizNotFoundError,
    QuizService,
)


ALL_CORRECT = [0, 1, 2, 3]
HALF_CORRECT = [0, 1, 0, 0]


class TestRecordAttempt:
    """Tests for record_attempt and submit_attempt."""

    @pytest.mark.asyncio
    async def test_records_immutable_attempt(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        attempt_repo: InMemoryQuizAttemptRepository,
        course: Course,
        user_id: UUID,
    ):
        """The attempt stores answers, score and pass flag."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)
        module = course.modules[0]

        attempt = await quiz_service.record_attempt(enrollment.id, module.id, [0, 1, 2, None])

        assert attempt.score == 75
        assert attempt.passed is True
        assert attempt.answers == (0, 1, 2, None)
        stored = await attempt_repo.list_by_enrollment(enrollment.id, module.id)
        assert [a.id for a in stored] == [attempt.id]

    @pytest.mark.asyncio
    async def test_unstorable_index_recorded_as_unanswered(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """An index beyond the INT column range is kept as unanswered."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)

        attempt = await quiz_service.record_attempt(
            enrollment.id, course.modules[0].id, [2**40, 1, 2, 3]
        )

        assert attempt.answers == (None, 1, 2, 3)
        assert attempt.stored_answers() == [-1, 1, 2, 3]
        assert attempt.score == 75

    @pytest.mark.asyncio
    async def test_attempt_does_not_complete_module(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """A perfect quiz score leaves progress untouched."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)

        await quiz_service.record_attempt(enrollment.id, course.modules[0].id, ALL_CORRECT)

        progress = await progress_service.get_progress(enrollment.id)
        assert progress.percentage == 0
        assert progress.progress_details[0].completed is False

    @pytest.mark.asyncio
    async def test_multiple_attempts_and_best_score(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """Every attempt is kept; best_scores takes the highest per module."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)
        module = course.modules[0]

        await quiz_service.submit_attempt(user_id, course.id, module.id, HALF_CORRECT)
        await quiz_service.submit_attempt(user_id, course.id, module.id, ALL_CORRECT)
        await quiz_service.submit_attempt(user_id, course.id, module.id, [])

        attempts = await quiz_service.list_attempts(user_id, course.id, module.id)
        assert sorted(a.score for a in attempts) == [0, 50, 100]
        assert await quiz_service.best_scores(enrollment.id) == {module.id: 100}

    @pytest.mark.asyncio
    async def test_below_passing_score(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """50 is below the default passing score of 70."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)

        attempt = await quiz_service.record_attempt(
            enrollment.id, course.modules[0].id, HALF_CORRECT
        )

        assert attempt.passed is False

    @pytest.mark.asyncio
    async def test_empty_quiz_recorded_as_zero(self, user_id: UUID):
        """An empty quiz is scored 0 instead of failing."""
        course = build_course(modules=1, quiz_questions=0)
        enrollments = InMemoryEnrollmentRepository()
        catalog = CourseCatalog([course])
        progress = ProgressService(repository=enrollments, catalog=catalog)
        service = QuizService(
            repository=InMemoryQuizAttemptRepository(),
            enrollments=enrollments,
            catalog=catalog,
        )
        enrollment = await progress.enroll(user_id=user_id, course_id=course.id)

        attempt = await service.record_attempt(enrollment.id, course.modules[0].id, [0])

        assert attempt.score == 0
        assert attempt.total_questions == 0

    @pytest.mark.asyncio
    async def test_unknown_enrollment(self, quiz_service: QuizService, course: Course):
        """Unknown enrollment raises QuizEnrollmentNotFoundError."""
        with pytest.raises(QuizEnrollmentNotFoundError):
            await quiz_service.record_attempt(uuid4(), course.modules[0].id, [0])

    @pytest.mark.asyncio
    async def test_unknown_module(
        self,
        quiz_service: QuizService,
        progress_service: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """A module outside the course raises QuizModuleNotFoundError."""
        enrollment = await progress_service.enroll(user_id=user_id, course_id=course.id)

        with pytest.raises(QuizModuleNotFoundError):
            await quiz_service.record_attempt(enrollment.id, uuid4(), [0])


class TestGetQuiz:
    """Tests for get_quiz and passing_score_for."""

    def test_module_without_quiz(self, user_id: UUID):
        """A module without a quiz raises QuizNotFoundError."""
        course = Course.model_validate(
            {
                "id": uuid4(),
                "title": "Reading only",
                "modules": [{"id": uuid4(), "title": "Read", "lessons": []}],
            }
        )
        service = QuizService(
            repository=InMemoryQuizAttemptRepository(),
            enrollments=InMemoryEnrollmentRepository(),
            catalog=CourseCatalog([course]),
        )

        with pytest.raises(QuizNotFoundError):
            service.get_quiz(course.id, course.modules[0].id)

    def test_quiz_passing_score_overrides_default(self, quiz_service: QuizService):
        """A quiz's own passing score wins over the default."""
        course = build_course(modules=1)
        quiz = course.modules[0].quiz.model_copy(update={"passing_score": 90})

        assert quiz_service.passing_score_for(quiz) == 90
        assert quiz_service.passing_score_for(course.modules[0].quiz) == 70
