"""Tests for CourseAnalyticsService and the report aggregates."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from redis.exceptions import RedisError

from conftest import lesson_ids
from eduforge.analytics import aggregates
from eduforge.analytics.service import (
    AnalyticsCourseNotFoundError,
    CourseAnalyticsService,
)
from eduforge.analytics.windows import Timeframe
from eduforge.catalog.models import Course
from eduforge.certificates.models import Certificate
from eduforge.progress.models import Enrollment
from eduforge.quizzes.models import QuizAttempt
from eduforge.reviews.models import Review
from eduforge.reviews.repository import InMemoryReviewRepository


NOW = datetime(2026, 3, 18, 15, 30, tzinfo=UTC)


def _attempt(enrollment: Enrollment, module_id: UUID, score: int, at: datetime) -> QuizAttempt:
    return QuizAttempt(
        enrollment_id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        module_id=module_id,
        answers=[],
        score=score,
        correct_count=0,
        total_questions=4,
        passed=score >= 70,
        created_at=at,
    )


@pytest_asyncio.fixture
async def seeded(
    course: Course, enrollment_repo, attempt_repo, certificate_repo, review_repo
) -> dict[str, Enrollment]:
    """One finished learner in BR and one started learner without region."""
    finished = Enrollment(
        user_id=uuid4(),
        course_id=course.id,
        region="BR",
        enrolled_at=NOW - timedelta(days=3),
    )
    finished.complete_lessons(course, lesson_ids(course), now=NOW - timedelta(days=1))
    started = Enrollment(
        user_id=uuid4(),
        course_id=course.id,
        enrolled_at=NOW - timedelta(days=40),
    )
    started.complete_lessons(course, lesson_ids(course)[:1], now=NOW - timedelta(days=2))
    await enrollment_repo.create(finished)
    await enrollment_repo.create(started)

    first, second = course.modules[0].id, course.modules[1].id
    await attempt_repo.add(_attempt(finished, first, 95, NOW - timedelta(days=1)))
    await attempt_repo.add(_attempt(finished, first, 60, NOW - timedelta(days=2)))
    await attempt_repo.add(_attempt(started, second, 40, NOW - timedelta(days=100)))

    await certificate_repo.insert_if_absent(
        Certificate(
            user_id=finished.user_id,
            course_id=course.id,
            enrollment_id=finished.id,
            enrolled_at=finished.enrolled_at,
            issued_at=NOW - timedelta(days=1),
        )
    )
    await review_repo.insert_if_absent(Review(course.id, finished.user_id, 5))
    await review_repo.insert_if_absent(Review(course.id, started.user_id, 4))
    return {"finished": finished, "started": started}


class FailingReviewRepository(InMemoryReviewRepository):
    async def list_by_course(self, course_id: UUID) -> list[Review]:
        raise RuntimeError("reviews store down")


class TestCourseAnalytics:
    """Tests for get_course_analytics."""

    @pytest.mark.asyncio
    async def test_weekly_report(
        self, analytics_service: CourseAnalyticsService, course: Course, seeded
    ):
        """Every section of the weekly report."""
        report = await analytics_service.get_course_analytics(
            course.id, Timeframe.WEEK, now=NOW
        )

        assert report.total_enrollments == 2
        assert report.new_enrollments == 1
        assert report.completion_rate == 50
        assert report.average_rating == 4.5
        assert report.average_completion_days == 2.0
        assert [s.completion_rate for s in report.progress_stats] == [50, 50, 50]
        assert {s.name: s.value for s in report.quiz_stats} == {
            "90-100%": 1,
            "70-89%": 0,
            "50-69%": 1,
            "0-49%": 0,
        }
        assert [(q.name, q.value) for q in report.quiz_averages] == [
            ("Quiz 1", 78),
            ("Quiz 2", 0),
            ("Quiz 3", 0),
        ]
        assert [(d.name, d.value) for d in report.demographics] == [
            ("BR", 1),
            ("Unknown", 1),
        ]
        engagement = {p.date: p.active_students for p in report.student_engagement}
        assert len(engagement) == 7
        assert engagement["2026-03-17"] == 1
        assert engagement["2026-03-16"] == 2
        assert engagement["2026-03-12"] == 0

    @pytest.mark.asyncio
    async def test_empty_course(
        self, analytics_service: CourseAnalyticsService, course: Course
    ):
        """A course without activity reports zeros."""
        report = await analytics_service.get_course_analytics(
            course.id, Timeframe.MONTH, now=NOW
        )

        assert report.total_enrollments == 0
        assert report.completion_rate == 0
        assert report.average_rating == 0.0
        assert report.demographics == []
        assert all(p.active_students == 0 for p in report.student_engagement)

    @pytest.mark.asyncio
    async def test_unknown_course(self, analytics_service: CourseAnalyticsService):
        with pytest.raises(AnalyticsCourseNotFoundError):
            await analytics_service.get_course_analytics(uuid4())

    @pytest.mark.asyncio
    async def test_failing_store_degrades_to_empty(
        self,
        enrollment_repo,
        attempt_repo,
        certificate_repo,
        catalog,
        course: Course,
        seeded,
    ):
        """A failing record set zeroes its sections only."""
        service = CourseAnalyticsService(
            enrollments=enrollment_repo,
            attempts=attempt_repo,
            certificates=certificate_repo,
            reviews=FailingReviewRepository(),
            catalog=catalog,
        )

        report = await service.get_course_analytics(course.id, Timeframe.WEEK, now=NOW)

        assert report.average_rating == 0.0
        assert report.total_enrollments == 2
        assert report.completion_rate == 50

    @pytest.mark.asyncio
    async def test_failing_aggregate_degrades_to_default(
        self,
        analytics_service: CourseAnalyticsService,
        course: Course,
        seeded,
        monkeypatch,
    ):
        """A failing aggregate is reported empty."""

        def broken(*args):
            raise ZeroDivisionError

        monkeypatch.setattr(aggregates, "demographics", broken)

        report = await analytics_service.get_course_analytics(
            course.id, Timeframe.WEEK, now=NOW
        )

        assert report.demographics == []
        assert report.total_enrollments == 2


class TestAnalyticsCache:
    """Tests for the Redis report cache."""

    @pytest.fixture
    def redis(self):
        client = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.setex = AsyncMock()
        return client

    @pytest.fixture
    def cached_service(
        self, redis, enrollment_repo, attempt_repo, certificate_repo, review_repo, catalog
    ) -> CourseAnalyticsService:
        return CourseAnalyticsService(
            enrollments=enrollment_repo,
            attempts=attempt_repo,
            certificates=certificate_repo,
            reviews=review_repo,
            catalog=catalog,
            redis=redis,
            cache_ttl_seconds=60,
        )

    @pytest.mark.asyncio
    async def test_miss_stores_report(self, cached_service, redis, course: Course, seeded):
        report = await cached_service.get_course_analytics(course.id, Timeframe.WEEK, now=NOW)

        redis.setex.assert_awaited_once()
        key, ttl, payload = redis.setex.await_args.args
        assert key == f"analytics:course:{course.id}:week"
        assert ttl == 60
        assert payload == report.model_dump_json()

    @pytest.mark.asyncio
    async def test_hit_returns_cached(self, cached_service, redis, course: Course, seeded):
        report = await cached_service.get_course_analytics(course.id, Timeframe.WEEK, now=NOW)
        redis.get.return_value = report.model_dump_json()
        redis.setex.reset_mock()

        cached = await cached_service.get_course_analytics(course.id, Timeframe.WEEK)

        assert cached == report
        redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_recomputed(
        self, cached_service, redis, course: Course, seeded
    ):
        redis.get.return_value = '{"course_id": "stale"}'

        report = await cached_service.get_course_analytics(course.id, Timeframe.WEEK, now=NOW)

        assert report.total_enrollments == 2
        redis.setex.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redis_failure_is_ignored(
        self, cached_service, redis, course: Course, seeded
    ):
        redis.get.side_effect = RedisError("connection refused")
        redis.setex.side_effect = RedisError("connection refused")

        report = await cached_service.get_course_analytics(course.id, Timeframe.WEEK, now=NOW)

        assert report.total_enrollments == 2


class TestStandaloneStats:
    """Tests for get_progress_stats and get_quiz_stats."""

    @pytest.mark.asyncio
    async def test_quiz_stats_cover_all_attempts(
        self, analytics_service: CourseAnalyticsService, course: Course, seeded
    ):
        stats = await analytics_service.get_quiz_stats(course.id)

        assert [s.value for s in stats] == [1, 0, 1, 1]

    @pytest.mark.asyncio
    async def test_progress_stats(
        self, analytics_service: CourseAnalyticsService, course: Course, seeded
    ):
        stats = await analytics_service.get_progress_stats(course.id)

        assert [s.module_id for s in stats] == [m.id for m in course.modules]


class TestAggregates:
    """Tests for pure aggregate helpers."""

    @pytest.mark.parametrize(
        ("score", "band"),
        [(100, "90-100%"), (90, "90-100%"), (89, "70-89%"), (70, "70-89%"), (50, "50-69%"), (49, "0-49%"), (0, "0-49%")],
    )
    def test_score_band(self, score: int, band: str):
        assert aggregates.score_band(score) == band

    def test_blank_region_is_unknown(self):
        enrollments = [
            Enrollment(user_id=uuid4(), course_id=uuid4(), region="  "),
            Enrollment(user_id=uuid4(), course_id=uuid4(), region=None),
            Enrollment(user_id=uuid4(), course_id=uuid4(), region="PT"),
        ]

        result = aggregates.demographics(enrollments)

        assert [(d.name, d.value) for d in result] == [("Unknown", 2), ("PT", 1)]
