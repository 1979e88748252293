"""Enrollment and progress models.

An Enrollment ties a learner to a course and owns that learner's progress:
which lessons are done (with completion time), which modules are therefore
done, the informational current-lesson pointer and the derived percentage.

Module completion and percentage are always derived from the completed
lesson set by ``recalculate``; nothing sets them directly.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from eduforge.catalog.models import Course


class EnrollmentStatus(str, Enum):
    """Enrollment status, derived from progress."""

    ENROLLED = "enrolled"  # no lesson completed yet
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # percentage reached 100


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def calculate_percentage(completed: int, total: int) -> int:
    """Round-half-up percentage of completed over total; 0 when total is 0."""
    if total <= 0:
        return 0
    ratio = Decimal(100 * completed) / Decimal(total)
    value = int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(0, min(100, value))


def derive_completed_modules(course: "Course", lesson_ids: set[UUID]) -> set[UUID]:
    """Modules whose every lesson is in ``lesson_ids``."""
    return {
        module.id
        for module in course.modules
        if all(lid in lesson_ids for lid in module.lesson_ids)
    }


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Main table, keyed by enrollment id. ``version`` drives the
# compare-and-swap used for every progress write.
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    enrollment_id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    region TEXT,
    enrolled_at TIMESTAMP,
    completed_lessons MAP<UUID, TIMESTAMP>,
    completed_modules SET<UUID>,
    current_lesson_id UUID,
    percentage INT,
    completed_at TIMESTAMP,
    last_activity_at TIMESTAMP,
    version INT
)
"""

# One row per (course, user): uniqueness of enrollment and course-wide scans
ENROLLMENTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_course (
    course_id UUID,
    user_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup: "which courses is this user enrolled in?"
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (user_id, course_id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_COURSE_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Course enrollment with its progress record.

    Attributes:
        id: Enrollment UUID
        user_id: Learner UUID
        course_id: Course UUID
        region: Declared region of the learner (for demographics)
        enrolled_at: Enrollment timestamp
        completed_lessons: Completed lesson id -> completion timestamp
        completed_modules: Ids of modules whose lessons are all completed
        current_lesson_id: Last viewed lesson (informational)
        percentage: Completed lessons over total lessons, 0-100
        completed_at: When percentage first reached 100
        last_activity_at: Last tracked learner action
        version: Optimistic concurrency counter
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,  # noqa: A002
        region: str | None = None,
        enrolled_at: datetime | None = None,
        completed_lessons: dict[UUID, datetime] | None = None,
        completed_modules: set[UUID] | None = None,
        current_lesson_id: UUID | None = None,
        percentage: int = 0,
        completed_at: datetime | None = None,
        last_activity_at: datetime | None = None,
        version: int = 0,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.region = region
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_lessons = {
            lid: ensure_utc_aware(at) for lid, at in (completed_lessons or {}).items()
        }
        self.completed_modules = set(completed_modules or ())
        self.current_lesson_id = current_lesson_id
        self.percentage = percentage
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_activity_at = ensure_utc_aware(last_activity_at)
        self.version = version

    @property
    def status(self) -> EnrollmentStatus:
        if self.percentage >= 100:
            return EnrollmentStatus.COMPLETED
        if self.completed_lessons:
            return EnrollmentStatus.IN_PROGRESS
        return EnrollmentStatus.ENROLLED

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.percentage >= 100

    def complete_lessons(
        self,
        course: "Course",
        lesson_ids: list[UUID],
        now: datetime | None = None,
    ) -> bool:
        """Add lessons to the completed set and recalculate.

        Returns:
            True if at least one lesson was newly completed
        """
        now = now or datetime.now(UTC)
        new_ids = [lid for lid in lesson_ids if lid not in self.completed_lessons]
        if not new_ids:
            return False
        for lid in new_ids:
            self.completed_lessons[lid] = now
        self.last_activity_at = now
        self.recalculate(course, now)
        return True

    def recalculate(self, course: "Course", now: datetime | None = None) -> None:
        """Derive completed modules and percentage from the completed lessons."""
        done = set(self.completed_lessons)
        self.completed_modules = derive_completed_modules(course, done)
        self.percentage = calculate_percentage(
            len(done & course.lesson_ids), course.total_lessons
        )
        if self.percentage >= 100 and self.completed_at is None:
            self.completed_at = now or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            id=row.enrollment_id,
            user_id=row.user_id,
            course_id=row.course_id,
            region=row.region,
            enrolled_at=row.enrolled_at,
            completed_lessons=dict(row.completed_lessons or {}),
            completed_modules=set(row.completed_modules or ()),
            current_lesson_id=row.current_lesson_id,
            percentage=row.percentage or 0,
            completed_at=row.completed_at,
            last_activity_at=row.last_activity_at,
            version=row.version or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "region": self.region,
            "status": self.status.value,
            "enrolled_at": self.enrolled_at,
            "completed_lessons": dict(self.completed_lessons),
            "completed_modules": set(self.completed_modules),
            "current_lesson_id": self.current_lesson_id,
            "percentage": self.percentage,
            "completed_at": self.completed_at,
            "last_activity_at": self.last_activity_at,
            "version": self.version,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.id} user={self.user_id} course={self.course_id} "
            f"{self.percentage}% v{self.version}>"
        )
