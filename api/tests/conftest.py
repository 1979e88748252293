"""Shared fixtures.

The environment is set before any ``eduforge`` import so the cached settings
select the in-memory backend, no Redis and no log files.
"""

import os


os.environ["ENVIRONMENT"] = "testing"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from collections.abc import Iterator  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from eduforge.analytics.service import CourseAnalyticsService  # noqa: E402
from eduforge.catalog.models import Course  # noqa: E402
from eduforge.catalog.service import CourseCatalog  # noqa: E402
from eduforge.certificates.repository import InMemoryCertificateRepository  # noqa: E402
from eduforge.certificates.service import CertificateService  # noqa: E402
from eduforge.progress.repository import InMemoryEnrollmentRepository  # noqa: E402
from eduforge.progress.service import ProgressService  # noqa: E402
from eduforge.quizzes.repository import InMemoryQuizAttemptRepository  # noqa: E402
from eduforge.quizzes.service import QuizService  # noqa: E402
from eduforge.reviews.repository import InMemoryReviewRepository  # noqa: E402
from eduforge.reviews.service import ReviewService  # noqa: E402


def build_course(
    modules: int = 3,
    lessons_per_module: int = 2,
    quiz_questions: int = 4,
    title: str = "Python Fundamentals",
) -> Course:
    """Course with evenly sized modules; every module gets a quiz."""
    return Course.model_validate(
        {
            "id": uuid4(),
            "title": title,
            "modules": [
                {
                    "id": uuid4(),
                    "title": f"Module {m + 1}",
                    "lessons": [
                        {"id": uuid4(), "title": f"Lesson {m + 1}.{n + 1}", "duration": 10}
                        for n in range(lessons_per_module)
                    ],
                    "quiz": {
                        "title": f"Quiz {m + 1}",
                        "questions": [
                            {
                                "text": f"Question {q + 1}",
                                "options": ["a", "b", "c", "d"],
                                "correct_index": q % 4,
                            }
                            for q in range(quiz_questions)
                        ],
                    },
                }
                for m in range(modules)
            ],
        }
    )


def lesson_ids(course: Course) -> list[UUID]:
    """Lesson ids in course order."""
    return [lid for module in course.modules for lid in module.lesson_ids]


@pytest.fixture
def course() -> Course:
    """3 modules x 2 lessons, one 4-question quiz per module."""
    return build_course()


@pytest.fixture
def five_lesson_course() -> Course:
    """Single module with 5 lessons, so 3 lessons are 60%."""
    return build_course(modules=1, lessons_per_module=5, title="Data Basics")


@pytest.fixture
def catalog(course: Course, five_lesson_course: Course) -> CourseCatalog:
    return CourseCatalog([course, five_lesson_course])


@pytest.fixture
def enrollment_repo() -> InMemoryEnrollmentRepository:
    return InMemoryEnrollmentRepository()


@pytest.fixture
def attempt_repo() -> InMemoryQuizAttemptRepository:
    return InMemoryQuizAttemptRepository()


@pytest.fixture
def certificate_repo() -> InMemoryCertificateRepository:
    return InMemoryCertificateRepository()


@pytest.fixture
def review_repo() -> InMemoryReviewRepository:
    return InMemoryReviewRepository()


@pytest.fixture
def certificate_service(
    certificate_repo, enrollment_repo, catalog, attempt_repo
) -> CertificateService:
    return CertificateService(
        repository=certificate_repo,
        enrollments=enrollment_repo,
        catalog=catalog,
        attempts=attempt_repo,
    )


@pytest.fixture
def progress_service(enrollment_repo, catalog, certificate_service) -> ProgressService:
    return ProgressService(
        repository=enrollment_repo,
        catalog=catalog,
        certificate_issuer=certificate_service,
    )


@pytest.fixture
def quiz_service(attempt_repo, enrollment_repo, catalog) -> QuizService:
    return QuizService(
        repository=attempt_repo,
        enrollments=enrollment_repo,
        catalog=catalog,
    )


@pytest.fixture
def review_service(review_repo, catalog) -> ReviewService:
    return ReviewService(repository=review_repo, catalog=catalog)


@pytest.fixture
def analytics_service(
    enrollment_repo, attempt_repo, certificate_repo, review_repo, catalog
) -> CourseAnalyticsService:
    return CourseAnalyticsService(
        enrollments=enrollment_repo,
        attempts=attempt_repo,
        certificates=certificate_repo,
        reviews=review_repo,
        catalog=catalog,
    )


@pytest.fixture
def user_id() -> UUID:
    """Test learner ID."""
    return uuid4()


@pytest.fixture
def client(catalog: CourseCatalog) -> Iterator[TestClient]:
    """HTTP client over the in-memory backend (runs the lifespan)."""
    from eduforge.main import create_app

    with TestClient(create_app(catalog)) as test_client:
        yield test_client


@pytest.fixture
def headers(user_id: UUID) -> dict[str, str]:
    """Identity header forwarded by the session layer."""
    return {"X-User-ID": str(user_id)}
