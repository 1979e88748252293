"""Certificate models.

A certificate is issued at most once per (user, course) and is never
updated or deleted. The ``certificates`` table is keyed by
(user_id, course_id) and written with ``IF NOT EXISTS``; that row is the
uniqueness constraint.
"""

import secrets
import string
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from eduforge.progress.models import ensure_utc_aware


VERIFICATION_CODE_LENGTH = 8
VERIFICATION_ALPHABET = string.ascii_uppercase + string.digits

# Lower bound of each grade, highest first
GRADE_THRESHOLDS = [
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
]
DEFAULT_GRADE = "Pass"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates (
    user_id UUID,
    course_id UUID,
    certificate_id UUID,
    enrollment_id UUID,
    course_title TEXT,
    certificate_code TEXT,
    verification_code TEXT,
    grade TEXT,
    modules_completed INT,
    total_modules INT,
    percentage INT,
    enrolled_at TIMESTAMP,
    issued_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

CERTIFICATES_BY_CODE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates_by_code (
    verification_code TEXT PRIMARY KEY,
    user_id UUID,
    course_id UUID
)
"""

CERTIFICATES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates_by_course (
    course_id UUID,
    user_id UUID,
    PRIMARY KEY (course_id, user_id)
)
"""

CERTIFICATE_TABLES_CQL = [
    CERTIFICATES_TABLE_CQL,
    CERTIFICATES_BY_CODE_TABLE_CQL,
    CERTIFICATES_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Helpers
# ==============================================================================


def generate_certificate_code() -> str:
    """Human-readable code, e.g. ``CERT-482913-0571``."""
    return f"CERT-{secrets.randbelow(10**6):06d}-{secrets.randbelow(10**4):04d}"


def generate_verification_code() -> str:
    """Random 8-character code used for public verification."""
    return "".join(
        secrets.choice(VERIFICATION_ALPHABET) for _ in range(VERIFICATION_CODE_LENGTH)
    )


def compute_grade(best_scores: Iterable[int]) -> str:
    """Grade from the mean of the best score of each quizzed module."""
    scores = list(best_scores)
    if not scores:
        return DEFAULT_GRADE
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    average = int(mean.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    for threshold, grade in GRADE_THRESHOLDS:
        if average >= threshold:
            return grade
    return DEFAULT_GRADE


# ==============================================================================
# Entity Classes
# ==============================================================================


class IssueOutcome(str, Enum):
    """Result kind of a generate call."""

    CREATED = "created"
    ALREADY_ISSUED = "already_issued"


class Certificate:
    """Proof that a user completed a course."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        enrollment_id: UUID,
        course_title: str = "",
        id: UUID | None = None,  # noqa: A002
        certificate_code: str | None = None,
        verification_code: str | None = None,
        grade: str = DEFAULT_GRADE,
        modules_completed: int = 0,
        total_modules: int = 0,
        percentage: int = 100,
        enrolled_at: datetime | None = None,
        issued_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.enrollment_id = enrollment_id
        self.course_title = course_title
        self.certificate_code = certificate_code or generate_certificate_code()
        self.verification_code = verification_code or generate_verification_code()
        self.grade = grade
        self.modules_completed = modules_completed
        self.total_modules = total_modules
        self.percentage = percentage
        self.enrolled_at = ensure_utc_aware(enrolled_at)
        self.issued_at = ensure_utc_aware(issued_at) or datetime.now(UTC)

    @property
    def completion_days(self) -> float | None:
        """Days between enrollment and issuance."""
        if self.enrolled_at is None:
            return None
        return (self.issued_at - self.enrolled_at).total_seconds() / 86400

    @classmethod
    def from_row(cls, row: Any) -> "Certificate":
        """Create Certificate instance from Cassandra row."""
        return cls(
            id=row.certificate_id,
            user_id=row.user_id,
            course_id=row.course_id,
            enrollment_id=row.enrollment_id,
            course_title=row.course_title or "",
            certificate_code=row.certificate_code,
            verification_code=row.verification_code,
            grade=row.grade or DEFAULT_GRADE,
            modules_completed=row.modules_completed or 0,
            total_modules=row.total_modules or 0,
            percentage=row.percentage or 0,
            enrolled_at=row.enrolled_at,
            issued_at=row.issued_at,
        )

    def __repr__(self) -> str:
        return f"<Certificate {self.certificate_code} user={self.user_id} course={self.course_id}>"


@dataclass(frozen=True)
class IssueResult:
    """Certificate returned by ``generate`` and how it was obtained."""

    certificate: Certificate
    outcome: IssueOutcome

    @property
    def created(self) -> bool:
        return self.outcome is IssueOutcome.CREATED
