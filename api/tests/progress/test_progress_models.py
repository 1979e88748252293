"""Tests for progress derivation: percentage, module completion, status."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from conftest import build_course, lesson_ids
from eduforge.catalog.models import Course
from eduforge.progress.models import (
    Enrollment,
    EnrollmentStatus,
    calculate_percentage,
    derive_completed_modules,
)


class TestCalculatePercentage:
    """Tests for calculate_percentage."""

    @pytest.mark.parametrize(
        ("completed", "total", "expected"),
        [
            (0, 6, 0),
            (3, 6, 50),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),  # 12.5 rounds half up
            (6, 6, 100),
        ],
    )
    def test_rounds_half_up(self, completed: int, total: int, expected: int) -> None:
        """Percentage is round-half-up of 100 * completed / total."""
        assert calculate_percentage(completed, total) == expected

    def test_zero_total_is_zero(self) -> None:
        """A course without lessons reports 0%."""
        assert calculate_percentage(0, 0) == 0


class TestDeriveCompletedModules:
    """Tests for derive_completed_modules."""

    def test_module_complete_only_when_all_lessons_done(self) -> None:
        """A module is complete iff every one of its lessons is completed."""
        course = build_course()
        first, second = course.modules[0], course.modules[1]

        done = {*first.lesson_ids, second.lesson_ids[0]}

        assert derive_completed_modules(course, done) == {first.id}

    def test_empty_module_is_vacuously_complete(self) -> None:
        """A module without lessons counts as complete."""
        course = Course.model_validate(
            {
                "id": uuid4(),
                "title": "Intro",
                "modules": [
                    {"id": uuid4(), "title": "Welcome", "lessons": []},
                    {
                        "id": uuid4(),
                        "title": "Basics",
                        "lessons": [{"id": uuid4(), "title": "One"}],
                    },
                ],
            }
        )

        assert derive_completed_modules(course, set()) == {course.modules[0].id}


class TestEnrollment:
    """Tests for Enrollment.complete_lessons and status."""

    def test_complete_lessons_recalculates(self) -> None:
        """Completing lessons updates modules, percentage and timestamps."""
        course = build_course()
        enrollment = Enrollment(user_id=uuid4(), course_id=course.id)
        now = datetime(2025, 1, 20, 12, 0, tzinfo=UTC)

        changed = enrollment.complete_lessons(course, course.modules[0].lesson_ids, now)

        assert changed is True
        assert enrollment.percentage == 33
        assert enrollment.completed_modules == {course.modules[0].id}
        assert enrollment.last_activity_at == now
        assert all(at == now for at in enrollment.completed_lessons.values())
        assert enrollment.status is EnrollmentStatus.IN_PROGRESS

    def test_complete_lessons_is_idempotent(self) -> None:
        """Completing an already completed lesson changes nothing."""
        course = build_course()
        enrollment = Enrollment(user_id=uuid4(), course_id=course.id)
        lesson = lesson_ids(course)[0]
        enrollment.complete_lessons(course, [lesson])
        first_completed_at = enrollment.completed_lessons[lesson]

        changed = enrollment.complete_lessons(course, [lesson])

        assert changed is False
        assert enrollment.completed_lessons[lesson] == first_completed_at
        assert enrollment.percentage == 17

    def test_completed_at_stamped_once(self) -> None:
        """completed_at is set when 100% is first reached."""
        course = build_course(modules=1, lessons_per_module=1)
        enrollment = Enrollment(user_id=uuid4(), course_id=course.id)
        now = datetime(2025, 3, 1, tzinfo=UTC)

        enrollment.complete_lessons(course, lesson_ids(course), now)

        assert enrollment.percentage == 100
        assert enrollment.completed_at == now
        assert enrollment.status is EnrollmentStatus.COMPLETED

    def test_new_enrollment_status(self) -> None:
        """A fresh enrollment is 'enrolled' at 0%."""
        enrollment = Enrollment(user_id=uuid4(), course_id=uuid4())
        assert enrollment.status is EnrollmentStatus.ENROLLED
        assert enrollment.percentage == 0
        assert enrollment.version == 0

    def test_naive_datetimes_become_utc(self) -> None:
        """Timestamps read from Cassandra are made UTC-aware."""
        enrollment = Enrollment(
            user_id=uuid4(),
            course_id=uuid4(),
            enrolled_at=datetime(2025, 1, 1, 8, 0),
        )
        assert enrollment.enrolled_at.tzinfo is UTC
