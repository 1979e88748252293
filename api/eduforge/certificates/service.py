"""Certificate service layer.

Issues completion certificates exactly once per (user, course):

- an existing certificate is returned as ``ALREADY_ISSUED``
- an enrollment below 100% is ``NotEligibleError``
- otherwise one certificate is inserted conditionally; a caller that loses
  the insert race reads the winner and reports ``ALREADY_ISSUED``

Storage failures while inserting are retried ``persist_retries`` times before
``CertificateIssueError`` is raised.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from eduforge.core.exceptions import StorageError
from eduforge.quizzes.scoring import best_scores_by_module

from .models import Certificate, IssueOutcome, IssueResult, compute_grade


if TYPE_CHECKING:
    from eduforge.catalog.models import Course
    from eduforge.catalog.service import CourseCatalog
    from eduforge.progress.models import Enrollment
    from eduforge.progress.repository import EnrollmentRepository
    from eduforge.quizzes.repository import QuizAttemptRepository

    from .repository import CertificateRepository

logger = structlog.get_logger(__name__)

DEFAULT_PERSIST_RETRIES = 1


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CertificateError(Exception):
    """Base certificate error."""

    def __init__(self, message: str, code: str = "certificate_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CertificateNotFoundError(CertificateError):
    """Certificate does not exist."""

    def __init__(self, message: str = "Certificate not found"):
        super().__init__(message, "certificate_not_found")


class CertificateEnrollmentNotFoundError(CertificateError):
    """User is not enrolled in the course."""

    def __init__(self, course_id: UUID):
        super().__init__(
            f"No enrollment found for course {course_id}", "enrollment_not_found"
        )
        self.course_id = course_id


class CertificateCourseNotFoundError(CertificateError):
    """Course is not in the catalog."""

    def __init__(self, course_id: UUID):
        super().__init__(f"Course {course_id} not found", "course_not_found")
        self.course_id = course_id


class NotEligibleError(CertificateError):
    """Course not completed yet."""

    def __init__(self, percentage: int):
        super().__init__(
            f"Course not completed: progress is {percentage}%, 100% is required",
            "not_eligible",
        )
        self.percentage = percentage


class CertificateIssueError(CertificateError):
    """Certificate could not be persisted."""

    def __init__(self, message: str = "Certificate could not be issued, try again later"):
        super().__init__(message, "certificate_issue_failed")


# ==============================================================================
# Certificate Service
# ==============================================================================


class CertificateService:
    """Issues and looks up certificates. The only writer of Certificate records."""

    def __init__(
        self,
        repository: "CertificateRepository",
        enrollments: "EnrollmentRepository",
        catalog: "CourseCatalog",
        attempts: "QuizAttemptRepository | None" = None,
        persist_retries: int = DEFAULT_PERSIST_RETRIES,
    ):
        self.repository = repository
        self.enrollments = enrollments
        self.catalog = catalog
        self.attempts = attempts
        self.persist_retries = persist_retries

    # ==========================================================================
    # Issuance
    # ==========================================================================

    async def generate(self, user_id: UUID, course_id: UUID) -> IssueResult:
        """Issue the certificate of a completed course.

        Raises:
            CertificateCourseNotFoundError: If the course is not in the catalog
            CertificateEnrollmentNotFoundError: If the user is not enrolled
            NotEligibleError: If the enrollment is below 100%
            CertificateIssueError: If persisting kept failing
        """
        existing = await self.repository.get(user_id, course_id)
        if existing is not None:
            return self._already_issued(existing)

        course = self.catalog.get_course(course_id)
        if course is None:
            raise CertificateCourseNotFoundError(course_id)

        enrollment = await self.enrollments.get_by_user_course(user_id, course_id)
        if enrollment is None:
            raise CertificateEnrollmentNotFoundError(course_id)
        if enrollment.percentage < 100:  # noqa: PLR2004
            logger.info(
                "certificate_not_eligible",
                user_id=str(user_id),
                course_id=str(course_id),
                percentage=enrollment.percentage,
            )
            raise NotEligibleError(enrollment.percentage)

        certificate = await self._build_certificate(enrollment, course)
        if not await self._persist(certificate):
            winner = await self.repository.get(user_id, course_id)
            if winner is None:
                raise CertificateIssueError
            return self._already_issued(winner)

        logger.info(
            "certificate_issued",
            certificate_id=str(certificate.id),
            certificate_code=certificate.certificate_code,
            user_id=str(user_id),
            course_id=str(course_id),
            grade=certificate.grade,
        )
        return IssueResult(certificate=certificate, outcome=IssueOutcome.CREATED)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_certificate(self, user_id: UUID, course_id: UUID) -> Certificate:
        """Get the certificate of a (user, course) pair.

        Raises:
            CertificateNotFoundError: If none was issued
        """
        certificate = await self.repository.get(user_id, course_id)
        if certificate is None:
            raise CertificateNotFoundError(
                f"No certificate issued for course {course_id}"
            )
        return certificate

    async def verify(self, verification_code: str) -> Certificate:
        """Look up a certificate by its public verification code.

        Raises:
            CertificateNotFoundError: If the code matches no certificate
        """
        certificate = await self.repository.get_by_verification_code(
            verification_code.strip().upper()
        )
        if certificate is None:
            raise CertificateNotFoundError("Invalid verification code")
        return certificate

    async def list_user_certificates(self, user_id: UUID) -> list[Certificate]:
        """All certificates of a user, newest first."""
        certificates = await self.repository.list_by_user(user_id)
        return sorted(certificates, key=lambda c: c.issued_at, reverse=True)

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _already_issued(self, certificate: Certificate) -> IssueResult:
        logger.info(
            "certificate_already_issued",
            certificate_id=str(certificate.id),
            user_id=str(certificate.user_id),
            course_id=str(certificate.course_id),
        )
        return IssueResult(certificate=certificate, outcome=IssueOutcome.ALREADY_ISSUED)

    async def _build_certificate(
        self, enrollment: "Enrollment", course: "Course"
    ) -> Certificate:
        return Certificate(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            course_title=course.title,
            grade=await self._grade(enrollment, course),
            modules_completed=len(enrollment.completed_modules),
            total_modules=len(course.modules),
            percentage=enrollment.percentage,
            enrolled_at=enrollment.enrolled_at,
        )

    async def _grade(self, enrollment: "Enrollment", course: "Course") -> str:
        if self.attempts is None:
            return compute_grade([])
        quizzed = {m.id for m in course.modules if m.quiz is not None}
        best = best_scores_by_module(
            await self.attempts.list_by_enrollment(enrollment.id)
        )
        return compute_grade(
            score for module_id, score in best.items() if module_id in quizzed
        )

    async def _persist(self, certificate: Certificate) -> bool:
        """Conditional insert, retried on storage failure."""
        for attempt in range(self.persist_retries + 1):
            try:
                return await self.repository.insert_if_absent(certificate)
            except StorageError as e:
                logger.warning(
                    "certificate_persist_failed",
                    user_id=str(certificate.user_id),
                    course_id=str(certificate.course_id),
                    attempt=attempt + 1,
                    error=str(e),
                )
        raise CertificateIssueError
