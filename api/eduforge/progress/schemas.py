"""Pydantic schemas for progress tracking.

Request and response models for:
- Enrollment creation and listing
- Lesson and module completion
- Current lesson pointer
- Progress queries
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Enrollment, EnrollmentStatus


if TYPE_CHECKING:
    from eduforge.catalog.models import Course


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID to enroll in")
    region: str | None = Field(
        default=None, max_length=100, description="Declared learner region"
    )


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    region: str | None = None
    enrolled_at: datetime
    percentage: int
    lessons_completed: int
    current_lesson_id: UUID | None = None
    completed_at: datetime | None = None
    last_activity_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            course_id=entity.course_id,
            status=entity.status,
            region=entity.region,
            enrolled_at=entity.enrolled_at,
            percentage=entity.percentage,
            lessons_completed=len(entity.completed_lessons),
            current_lesson_id=entity.current_lesson_id,
            completed_at=entity.completed_at,
            last_activity_at=entity.last_activity_at,
        )


class EnrollmentListResponse(BaseModel):
    """List of user enrollments."""

    items: list[EnrollmentResponse]
    total: int


# ==============================================================================
# Progress Schemas
# ==============================================================================


class SetCurrentLessonRequest(BaseModel):
    """Request to move the current lesson pointer."""

    lesson_id: UUID


class ModuleProgressDetail(BaseModel):
    """Completion of one module, in course order."""

    module_id: UUID
    title: str
    completed: bool
    completed_lessons: int
    total_lessons: int


class ProgressResponse(BaseModel):
    """Progress of one enrollment."""

    enrollment_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    percentage: int = Field(ge=0, le=100)
    progress_details: list[ModuleProgressDetail] = Field(default_factory=list)
    current_lesson: UUID | None = None
    completed_at: datetime | None = None

    @classmethod
    def build(cls, enrollment: Enrollment, course: "Course") -> "ProgressResponse":
        """Project an enrollment onto its course's module order."""
        done = enrollment.completed_lessons
        details = [
            ModuleProgressDetail(
                module_id=module.id,
                title=module.title,
                completed=module.id in enrollment.completed_modules,
                completed_lessons=sum(1 for lid in module.lesson_ids if lid in done),
                total_lessons=len(module.lessons),
            )
            for module in course.modules
        ]
        return cls(
            enrollment_id=enrollment.id,
            course_id=enrollment.course_id,
            status=enrollment.status,
            percentage=enrollment.percentage,
            progress_details=details,
            current_lesson=enrollment.current_lesson_id,
            completed_at=enrollment.completed_at,
        )


class CertificateTriggerOutcome(str, Enum):
    """What happened when completion reached 100%."""

    CREATED = "created"
    ALREADY_ISSUED = "already_issued"
    FAILED = "failed"


class CertificateTrigger(BaseModel):
    """Outcome of the automatic certificate issuance."""

    outcome: CertificateTriggerOutcome
    certificate_id: UUID | None = None
    message: str | None = None


class ProgressUpdateResponse(BaseModel):
    """Result of a completion operation."""

    enrollment_id: UUID
    percentage: int
    progress: list[ModuleProgressDetail]
    current_lesson: UUID | None = None
    changed: bool = Field(description="False when everything was already complete")
    certificate: CertificateTrigger | None = None
