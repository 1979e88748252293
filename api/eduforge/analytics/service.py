"""Course analytics service.

Builds read-only reports over a course's enrollments, quiz attempts,
certificates and reviews. Reports are recomputed per query, optionally
cached in Redis. No per-enrollment lock is ever taken here, so a report may
lag a concurrent write.

Each record set and each aggregate is computed independently: a failing one
is logged and reported as zero/empty instead of failing the report.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar
from uuid import UUID

import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from . import aggregates
from .schemas import CourseAnalyticsResponse, ModuleProgressStat, NamedValue
from .windows import Timeframe, build_window


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from eduforge.catalog.models import Course
    from eduforge.catalog.service import CourseCatalog
    from eduforge.certificates.repository import CertificateRepository
    from eduforge.progress.repository import EnrollmentRepository
    from eduforge.quizzes.repository import QuizAttemptRepository
    from eduforge.reviews.repository import ReviewRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CACHE_KEY_PREFIX = "analytics:course"


class AnalyticsError(Exception):
    """Base analytics error."""

    def __init__(self, message: str, code: str = "analytics_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AnalyticsCourseNotFoundError(AnalyticsError):
    """Course is not in the catalog."""

    def __init__(self, course_id: UUID):
        super().__init__(f"Course {course_id} not found", "course_not_found")


class CourseAnalyticsService:
    """Read-only course reports."""

    def __init__(
        self,
        enrollments: "EnrollmentRepository",
        attempts: "QuizAttemptRepository",
        certificates: "CertificateRepository",
        reviews: "ReviewRepository",
        catalog: "CourseCatalog",
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = 60,
    ):
        self.enrollments = enrollments
        self.attempts = attempts
        self.certificates = certificates
        self.reviews = reviews
        self.catalog = catalog
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def get_course_analytics(
        self,
        course_id: UUID,
        timeframe: Timeframe = Timeframe.WEEK,
        now: datetime | None = None,
    ) -> CourseAnalyticsResponse:
        """Full report for a course over a reporting window.

        Raises:
            AnalyticsCourseNotFoundError: If the course is not in the catalog
        """
        course = self._require_course(course_id)

        cache_key = f"{CACHE_KEY_PREFIX}:{course_id}:{timeframe.value}"
        cached = await self._cache_get(cache_key)
        if cached is not None:
            return cached

        now = now or datetime.now(UTC)
        window = build_window(timeframe, now)

        enrollments = await self._load("enrollments", self.enrollments.list_by_course(course_id))
        attempts = await self._load("quiz_attempts", self.attempts.list_by_course(course_id))
        certificates = await self._load(
            "certificates", self.certificates.list_by_course(course_id)
        )
        reviews = await self._load("reviews", self.reviews.list_by_course(course_id))
        window_attempts = [a for a in attempts if window.contains(a.created_at)]

        report = CourseAnalyticsResponse(
            course_id=course_id,
            timeframe=timeframe,
            window_start=window.start,
            window_end=window.end,
            total_enrollments=len(enrollments),
            new_enrollments=self._compute(
                "new_enrollments", 0, aggregates.new_enrollments, enrollments, window
            ),
            completion_rate=self._compute(
                "completion_rate", 0, aggregates.completion_rate, enrollments
            ),
            average_rating=self._compute(
                "average_rating", 0.0, aggregates.average_rating, reviews
            ),
            average_completion_days=self._compute(
                "average_completion_days",
                0.0,
                aggregates.average_completion_days,
                certificates,
                enrollments,
                window,
            ),
            progress_stats=self._compute(
                "progress_stats", [], aggregates.progress_stats, course, enrollments
            ),
            quiz_stats=self._compute(
                "quiz_stats", [], aggregates.quiz_score_bands, window_attempts
            ),
            quiz_averages=self._compute(
                "quiz_averages", [], aggregates.quiz_averages, course, window_attempts
            ),
            demographics=self._compute(
                "demographics", [], aggregates.demographics, enrollments
            ),
            student_engagement=self._compute(
                "student_engagement",
                [],
                aggregates.student_engagement,
                enrollments,
                attempts,
                window,
            ),
            generated_at=now,
        )

        await self._cache_set(cache_key, report)
        logger.info(
            "course_analytics_computed",
            course_id=str(course_id),
            timeframe=timeframe.value,
            total_enrollments=report.total_enrollments,
        )
        return report

    async def get_progress_stats(self, course_id: UUID) -> list[ModuleProgressStat]:
        """Per-module completion rates across all enrollments."""
        course = self._require_course(course_id)
        enrollments = await self._load("enrollments", self.enrollments.list_by_course(course_id))
        return self._compute(
            "progress_stats", [], aggregates.progress_stats, course, enrollments
        )

    async def get_quiz_stats(self, course_id: UUID) -> list[NamedValue]:
        """Score bands over every attempt of the course."""
        self._require_course(course_id)
        attempts = await self._load("quiz_attempts", self.attempts.list_by_course(course_id))
        return self._compute("quiz_stats", [], aggregates.quiz_score_bands, attempts)

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _require_course(self, course_id: UUID) -> "Course":
        course = self.catalog.get_course(course_id)
        if course is None:
            raise AnalyticsCourseNotFoundError(course_id)
        return course

    async def _load(self, name: str, loader: Awaitable[list[T]]) -> list[T]:
        try:
            return await loader
        except Exception as e:
            logger.warning("analytics_subaggregate_failed", metric=name, error=str(e))
            return []

    def _compute(self, name: str, default: T, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except Exception as e:
            logger.warning("analytics_subaggregate_failed", metric=name, error=str(e))
            return default

    async def _cache_get(self, key: str) -> CourseAnalyticsResponse | None:
        if not self.redis or self.cache_ttl_seconds <= 0:
            return None
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            logger.warning("analytics_cache_unavailable", error=str(e))
            return None
        if not cached:
            return None
        try:
            return CourseAnalyticsResponse.model_validate_json(cached)
        except ValidationError as e:
            logger.warning("analytics_cache_invalid", key=key, error=str(e))
            return None

    async def _cache_set(self, key: str, report: CourseAnalyticsResponse) -> None:
        if not self.redis or self.cache_ttl_seconds <= 0:
            return
        try:
            await self.redis.setex(key, self.cache_ttl_seconds, report.model_dump_json())
        except RedisError as e:
            logger.warning("analytics_cache_unavailable", error=str(e))
