"""Progress tracking service layer.

Business logic for:
- Enrollment creation and lookup
- Lesson and module completion (idempotent)
- Current lesson pointer
- Progress queries
- Certificate issuance when an enrollment first reaches 100%

Every mutation of an enrollment runs under that enrollment's lock and is
persisted with a version check; a lost check is retried from a fresh read.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from eduforge.catalog.service import CourseNotFoundError
from eduforge.core.locks import KeyedLock

from .models import Enrollment
from .schemas import (
    CertificateTrigger,
    CertificateTriggerOutcome,
    ProgressResponse,
    ProgressUpdateResponse,
)


if TYPE_CHECKING:
    from eduforge.catalog.models import Course
    from eduforge.catalog.service import CourseCatalog
    from eduforge.certificates.service import CertificateService

    from .repository import EnrollmentRepository

logger = structlog.get_logger(__name__)

DEFAULT_CAS_MAX_ATTEMPTS = 5


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EnrollmentNotFoundError(ProgressError):
    """Enrollment does not exist."""

    def __init__(self, enrollment_id: UUID | None = None):
        message = (
            f"Enrollment {enrollment_id} not found"
            if enrollment_id
            else "Enrollment not found"
        )
        super().__init__(message, "enrollment_not_found")
        self.enrollment_id = enrollment_id


class LessonNotFoundError(ProgressError):
    """Lesson does not exist in the enrollment's course."""

    def __init__(self, lesson_id: UUID, course_id: UUID):
        super().__init__(
            f"Lesson {lesson_id} not found in course {course_id}", "lesson_not_found"
        )
        self.lesson_id = lesson_id


class CourseModuleNotFoundError(ProgressError):
    """Module does not exist in the enrollment's course."""

    def __init__(self, module_id: UUID, course_id: UUID):
        super().__init__(
            f"Module {module_id} not found in course {course_id}", "module_not_found"
        )
        self.module_id = module_id


class CourseMissingError(ProgressError):
    """Course is not in the catalog."""

    def __init__(self, course_id: UUID):
        super().__init__(f"Course {course_id} not found", "course_not_found")
        self.course_id = course_id


class AlreadyEnrolledError(ProgressError):
    """User already enrolled."""

    def __init__(self, message: str = "User already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class ProgressConflictError(ProgressError):
    """Concurrent writers kept winning the version check."""

    def __init__(self, enrollment_id: UUID):
        super().__init__(
            f"Progress of enrollment {enrollment_id} is being updated concurrently",
            "progress_conflict",
        )


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Owns enrollment progress; the only writer of Enrollment records."""

    def __init__(
        self,
        repository: "EnrollmentRepository",
        catalog: "CourseCatalog",
        certificate_issuer: "CertificateService | None" = None,
        locks: KeyedLock | None = None,
        cas_max_attempts: int = DEFAULT_CAS_MAX_ATTEMPTS,
    ):
        self.repository = repository
        self.catalog = catalog
        self.certificate_issuer = certificate_issuer
        self.locks = locks or KeyedLock()
        self.cas_max_attempts = cas_max_attempts

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(
        self,
        user_id: UUID,
        course_id: UUID,
        region: str | None = None,
    ) -> Enrollment:
        """Enroll user in a course.

        Raises:
            CourseMissingError: If the course is not in the catalog
            AlreadyEnrolledError: If user already enrolled
        """
        course = self._require_course(course_id)

        enrollment = Enrollment(user_id=user_id, course_id=course_id, region=region)
        enrollment.recalculate(course)
        if not await self.repository.create(enrollment):
            raise AlreadyEnrolledError

        logger.info(
            "user_enrolled",
            enrollment_id=str(enrollment.id),
            user_id=str(user_id),
            course_id=str(course_id),
        )
        return enrollment

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment:
        """Get enrollment by id.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist
        """
        enrollment = await self.repository.get(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(enrollment_id)
        return enrollment

    async def find_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Get enrollment by (user, course).

        Raises:
            EnrollmentNotFoundError: If the user is not enrolled
        """
        enrollment = await self.repository.get_by_user_course(user_id, course_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """Get all enrollments of a user, newest first."""
        enrollments = await self.repository.list_by_user(user_id)
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    # ==========================================================================
    # Completion Operations
    # ==========================================================================

    async def mark_lesson_complete(
        self,
        enrollment_id: UUID,
        lesson_id: UUID,
    ) -> ProgressUpdateResponse:
        """Mark one lesson complete. Repeating the call is a no-op.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist
            LessonNotFoundError: If the lesson is not part of the course
        """

        def complete(enrollment: Enrollment, course: "Course") -> bool:
            if course.module_of_lesson(lesson_id) is None:
                raise LessonNotFoundError(lesson_id, course.id)
            return enrollment.complete_lessons(course, [lesson_id])

        update = await self._mutate(enrollment_id, complete)
        if update.changed:
            logger.info(
                "lesson_marked_complete",
                enrollment_id=str(enrollment_id),
                lesson_id=str(lesson_id),
                percentage=update.percentage,
            )
        return update

    async def mark_module_complete(
        self,
        enrollment_id: UUID,
        module_id: UUID,
    ) -> ProgressUpdateResponse:
        """Mark every lesson of a module complete in one write.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist
            CourseModuleNotFoundError: If the module is not part of the course
        """

        def complete(enrollment: Enrollment, course: "Course") -> bool:
            module = course.get_module(module_id)
            if module is None:
                raise CourseModuleNotFoundError(module_id, course.id)
            return enrollment.complete_lessons(course, module.lesson_ids)

        update = await self._mutate(enrollment_id, complete)
        if update.changed:
            logger.info(
                "module_marked_complete",
                enrollment_id=str(enrollment_id),
                module_id=str(module_id),
                percentage=update.percentage,
            )
        return update

    async def set_current_lesson(
        self,
        enrollment_id: UUID,
        lesson_id: UUID,
    ) -> ProgressResponse:
        """Move the current lesson pointer. Percentage is unaffected.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist
            LessonNotFoundError: If the lesson is not part of the course
        """

        def point(enrollment: Enrollment, course: "Course") -> bool:
            if course.module_of_lesson(lesson_id) is None:
                raise LessonNotFoundError(lesson_id, course.id)
            if enrollment.current_lesson_id == lesson_id:
                return False
            enrollment.current_lesson_id = lesson_id
            enrollment.last_activity_at = datetime.now(UTC)
            return True

        await self._mutate(enrollment_id, point, trigger_certificate=False)
        return await self.get_progress(enrollment_id)

    # ==========================================================================
    # Progress Queries
    # ==========================================================================

    async def get_progress(self, enrollment_id: UUID) -> ProgressResponse:
        """Get percentage, per-module breakdown and current lesson.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist
        """
        enrollment = await self.get_enrollment(enrollment_id)
        course = self._require_course(enrollment.course_id)
        return ProgressResponse.build(enrollment, course)

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _require_course(self, course_id: UUID) -> "Course":
        try:
            return self.catalog.require_course(course_id)
        except CourseNotFoundError as e:
            raise CourseMissingError(course_id) from e

    async def _mutate(
        self,
        enrollment_id: UUID,
        mutate: Callable[[Enrollment, "Course"], bool],
        trigger_certificate: bool = True,
    ) -> ProgressUpdateResponse:
        """Apply ``mutate`` under the enrollment lock with a version check.

        ``mutate`` returns False when there is nothing to write.
        """
        async with self.locks.acquire(enrollment_id):
            for attempt in range(1, self.cas_max_attempts + 1):
                enrollment = await self.get_enrollment(enrollment_id)
                course = self._require_course(enrollment.course_id)
                previous_percentage = enrollment.percentage
                expected_version = enrollment.version

                if not mutate(enrollment, course):
                    changed = False
                    break
                if await self.repository.save(enrollment, expected_version):
                    changed = True
                    break

                logger.warning(
                    "progress_version_conflict",
                    enrollment_id=str(enrollment_id),
                    attempt=attempt,
                )
            else:
                raise ProgressConflictError(enrollment_id)

        progress = ProgressResponse.build(enrollment, course)
        certificate = None
        if (
            trigger_certificate
            and changed
            and previous_percentage < 100  # noqa: PLR2004
            and enrollment.percentage >= 100  # noqa: PLR2004
        ):
            logger.info(
                "course_completed",
                enrollment_id=str(enrollment.id),
                user_id=str(enrollment.user_id),
                course_id=str(enrollment.course_id),
            )
            certificate = await self._trigger_certificate(enrollment)

        return ProgressUpdateResponse(
            enrollment_id=enrollment.id,
            percentage=progress.percentage,
            progress=progress.progress_details,
            current_lesson=progress.current_lesson,
            changed=changed,
            certificate=certificate,
        )

    async def _trigger_certificate(
        self, enrollment: Enrollment
    ) -> CertificateTrigger | None:
        """Issue the certificate; a failure never fails the completion."""
        if self.certificate_issuer is None:
            return None
        try:
            result = await self.certificate_issuer.generate(
                enrollment.user_id, enrollment.course_id
            )
        except Exception as e:
            logger.exception(
                "certificate_trigger_failed",
                enrollment_id=str(enrollment.id),
                error=str(e),
            )
            return CertificateTrigger(
                outcome=CertificateTriggerOutcome.FAILED,
                message="Certificate generation failed; it can be requested again",
            )
        return CertificateTrigger(
            outcome=CertificateTriggerOutcome(result.outcome.value),
            certificate_id=result.certificate.id,
        )
