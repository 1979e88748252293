"""Tests for CertificateService: eligibility, exactly-once issuance, retries."""

import asyncio
import re
from uuid import UUID, uuid4

import pytest

from conftest import lesson_ids
from eduforge.catalog.models import Course
from eduforge.certificates.models import Certificate, IssueOutcome, compute_grade
from eduforge.certificates.repository import InMemoryCertificateRepository
from eduforge.certificates.service import (
    CertificateCourseNotFoundError,
    CertificateEnrollmentNotFoundError,
    CertificateIssueError,
    CertificateNotFoundError,
    CertificateService,
    NotEligibleError,
)
from eduforge.core.exceptions import StorageError
from eduforge.progress.service import ProgressService
from eduforge.quizzes.service import QuizService


class FlakyCertificateRepository(InMemoryCertificateRepository):
    """Fails the first ``failures`` inserts with a storage error."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.insert_calls = 0

    async def insert_if_absent(self, certificate: Certificate) -> bool:
        self.insert_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise StorageError("write timeout", "certificate_insert")
        return await super().insert_if_absent(certificate)


class PartialWriteCertificateRepository(InMemoryCertificateRepository):
    """Stores the first certificate, then fails as if a lookup write timed out."""

    def __init__(self):
        super().__init__()
        self.insert_calls = 0

    async def insert_if_absent(self, certificate: Certificate) -> bool:
        self.insert_calls += 1
        applied = await super().insert_if_absent(certificate)
        if self.insert_calls == 1:
            raise StorageError("lookup write timeout", "certificate_insert_lookups")
        return applied


class YieldingCertificateRepository(InMemoryCertificateRepository):
    """Yields to the event loop before each read so callers interleave."""

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        await asyncio.sleep(0)
        return await super().get(user_id, course_id)


async def _complete(progress: ProgressService, user_id: UUID, course: Course, lessons: int):
    enrollment = await progress.enroll(user_id=user_id, course_id=course.id)
    for lesson in lesson_ids(course)[:lessons]:
        await progress.mark_lesson_complete(enrollment.id, lesson)
    return enrollment


@pytest.fixture
def bare_progress(enrollment_repo, catalog) -> ProgressService:
    """Progress tracker without automatic issuance."""
    return ProgressService(repository=enrollment_repo, catalog=catalog)


class TestGenerate:
    """Tests for generate."""

    @pytest.mark.asyncio
    async def test_not_eligible_at_sixty_percent(
        self,
        certificate_service: CertificateService,
        certificate_repo: InMemoryCertificateRepository,
        bare_progress: ProgressService,
        five_lesson_course: Course,
        user_id: UUID,
    ):
        """At 60% generate raises NotEligibleError and stores nothing."""
        await _complete(bare_progress, user_id, five_lesson_course, lessons=3)

        with pytest.raises(NotEligibleError) as exc_info:
            await certificate_service.generate(user_id, five_lesson_course.id)

        assert exc_info.value.percentage == 60
        assert await certificate_repo.get(user_id, five_lesson_course.id) is None

    @pytest.mark.asyncio
    async def test_created_then_already_issued(
        self,
        certificate_service: CertificateService,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """First call creates, repeats return the same certificate."""
        enrollment = await _complete(bare_progress, user_id, course, lessons=6)

        first = await certificate_service.generate(user_id, course.id)
        second = await certificate_service.generate(user_id, course.id)

        assert first.outcome is IssueOutcome.CREATED
        assert second.outcome is IssueOutcome.ALREADY_ISSUED
        assert second.certificate.id == first.certificate.id
        assert first.certificate.enrollment_id == enrollment.id
        assert first.certificate.modules_completed == 3
        assert first.certificate.total_modules == 3
        assert first.certificate.percentage == 100
        assert re.fullmatch(r"CERT-\d{6}-\d{4}", first.certificate.certificate_code)
        assert re.fullmatch(r"[A-Z0-9]{8}", first.certificate.verification_code)

    @pytest.mark.asyncio
    async def test_concurrent_generate_creates_exactly_one(
        self,
        enrollment_repo,
        catalog,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """N simultaneous calls: one CREATED, the rest ALREADY_ISSUED."""
        repo = YieldingCertificateRepository()
        service = CertificateService(
            repository=repo, enrollments=enrollment_repo, catalog=catalog
        )
        await _complete(bare_progress, user_id, course, lessons=6)

        results = await asyncio.gather(
            *(service.generate(user_id, course.id) for _ in range(10))
        )

        outcomes = [r.outcome for r in results]
        assert outcomes.count(IssueOutcome.CREATED) == 1
        assert outcomes.count(IssueOutcome.ALREADY_ISSUED) == 9
        assert len({r.certificate.id for r in results}) == 1
        assert len(await repo.list_by_user(user_id)) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_retried_once(
        self,
        enrollment_repo,
        catalog,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """One transient storage failure is absorbed by the retry."""
        repo = FlakyCertificateRepository(failures=1)
        service = CertificateService(
            repository=repo, enrollments=enrollment_repo, catalog=catalog
        )
        await _complete(bare_progress, user_id, course, lessons=6)

        result = await service.generate(user_id, course.id)

        assert result.outcome is IssueOutcome.CREATED
        assert repo.insert_calls == 2

    @pytest.mark.asyncio
    async def test_partial_write_retried_as_created(
        self,
        enrollment_repo,
        catalog,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """A retry of a half-written certificate still reports it as created."""
        repo = PartialWriteCertificateRepository()
        service = CertificateService(
            repository=repo, enrollments=enrollment_repo, catalog=catalog
        )
        await _complete(bare_progress, user_id, course, lessons=6)

        result = await service.generate(user_id, course.id)

        assert result.outcome is IssueOutcome.CREATED
        assert repo.insert_calls == 2
        assert (await repo.get(user_id, course.id)).id == result.certificate.id

    @pytest.mark.asyncio
    async def test_storage_failure_after_retry_surfaces(
        self,
        enrollment_repo,
        catalog,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """Two failures raise CertificateIssueError and store nothing."""
        repo = FlakyCertificateRepository(failures=2)
        service = CertificateService(
            repository=repo, enrollments=enrollment_repo, catalog=catalog
        )
        await _complete(bare_progress, user_id, course, lessons=6)

        with pytest.raises(CertificateIssueError):
            await service.generate(user_id, course.id)

        assert repo.insert_calls == 2
        assert await repo.get(user_id, course.id) is None

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self, certificate_service: CertificateService, course: Course, user_id: UUID
    ):
        """No enrollment raises CertificateEnrollmentNotFoundError."""
        with pytest.raises(CertificateEnrollmentNotFoundError):
            await certificate_service.generate(user_id, course.id)

    @pytest.mark.asyncio
    async def test_unknown_course(
        self, certificate_service: CertificateService, user_id: UUID
    ):
        """Unknown course raises CertificateCourseNotFoundError."""
        with pytest.raises(CertificateCourseNotFoundError):
            await certificate_service.generate(user_id, uuid4())

    @pytest.mark.asyncio
    async def test_grade_from_best_quiz_scores(
        self,
        certificate_service: CertificateService,
        bare_progress: ProgressService,
        quiz_service: QuizService,
        course: Course,
        user_id: UUID,
    ):
        """Grade uses the mean of the best attempt per quizzed module."""
        await _complete(bare_progress, user_id, course, lessons=6)
        first, second = course.modules[0].id, course.modules[1].id
        await quiz_service.submit_attempt(user_id, course.id, first, [0, 1, 0, 0])  # 50
        await quiz_service.submit_attempt(user_id, course.id, first, [0, 1, 2, 3])  # 100
        await quiz_service.submit_attempt(user_id, course.id, second, [0, 1, 2, 0])  # 75

        result = await certificate_service.generate(user_id, course.id)

        # mean(100, 75) = 87.5 -> 88
        assert result.certificate.grade == "A"


class TestQueries:
    """Tests for get_certificate, verify and list_user_certificates."""

    @pytest.mark.asyncio
    async def test_verify_by_code(
        self,
        certificate_service: CertificateService,
        bare_progress: ProgressService,
        course: Course,
        user_id: UUID,
    ):
        """The verification code finds the certificate, case-insensitively."""
        await _complete(bare_progress, user_id, course, lessons=6)
        issued = (await certificate_service.generate(user_id, course.id)).certificate

        found = await certificate_service.verify(f" {issued.verification_code.lower()} ")

        assert found.id == issued.id

    @pytest.mark.asyncio
    async def test_verify_unknown_code(self, certificate_service: CertificateService):
        """Unknown code raises CertificateNotFoundError."""
        with pytest.raises(CertificateNotFoundError):
            await certificate_service.verify("ZZZZ9999")

    @pytest.mark.asyncio
    async def test_get_and_list(
        self,
        certificate_service: CertificateService,
        bare_progress: ProgressService,
        course: Course,
        five_lesson_course: Course,
        user_id: UUID,
    ):
        """Certificates are listed per user and fetched per course."""
        await _complete(bare_progress, user_id, course, lessons=6)
        await _complete(bare_progress, user_id, five_lesson_course, lessons=5)
        await certificate_service.generate(user_id, course.id)
        await certificate_service.generate(user_id, five_lesson_course.id)

        certificates = await certificate_service.list_user_certificates(user_id)
        certificate = await certificate_service.get_certificate(user_id, course.id)

        assert {c.course_id for c in certificates} == {course.id, five_lesson_course.id}
        assert certificate.course_title == course.title

    @pytest.mark.asyncio
    async def test_get_missing(
        self, certificate_service: CertificateService, course: Course, user_id: UUID
    ):
        """No certificate raises CertificateNotFoundError."""
        with pytest.raises(CertificateNotFoundError):
            await certificate_service.get_certificate(user_id, course.id)


class TestComputeGrade:
    """Tests for compute_grade."""

    @pytest.mark.parametrize(
        ("scores", "grade"),
        [
            ([95], "A+"),
            ([90], "A+"),
            ([85, 86], "A"),
            ([80], "A-"),
            ([75], "B+"),
            ([70], "B"),
            ([65], "B-"),
            ([60], "C+"),
            ([55], "C"),
            ([50], "C-"),
            ([49], "Pass"),
            ([], "Pass"),
        ],
    )
    def test_thresholds(self, scores: list[int], grade: str) -> None:
        """Grade bands by mean score."""
        assert compute_grade(scores) == grade
