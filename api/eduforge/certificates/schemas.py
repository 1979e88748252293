"""Pydantic schemas for certificates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from .models import Certificate, IssueOutcome, IssueResult


class CertificateResponse(BaseModel):
    """Certificate details."""

    id: UUID
    user_id: UUID
    course_id: UUID
    enrollment_id: UUID
    course_title: str
    certificate_code: str
    verification_code: str
    grade: str
    modules_completed: int
    total_modules: int
    percentage: int
    issued_at: datetime

    @classmethod
    def from_entity(cls, entity: Certificate) -> "CertificateResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            user_id=entity.user_id,
            course_id=entity.course_id,
            enrollment_id=entity.enrollment_id,
            course_title=entity.course_title,
            certificate_code=entity.certificate_code,
            verification_code=entity.verification_code,
            grade=entity.grade,
            modules_completed=entity.modules_completed,
            total_modules=entity.total_modules,
            percentage=entity.percentage,
            issued_at=entity.issued_at,
        )


class CertificateIssueResponse(BaseModel):
    """Result of a generate request."""

    outcome: IssueOutcome
    message: str
    certificate: CertificateResponse

    @classmethod
    def from_result(cls, result: IssueResult) -> "CertificateIssueResponse":
        """Create response from an issue result."""
        message = (
            "Certificate issued"
            if result.created
            else "Certificate was already issued for this course"
        )
        return cls(
            outcome=result.outcome,
            message=message,
            certificate=CertificateResponse.from_entity(result.certificate),
        )


class CertificateListResponse(BaseModel):
    """List of certificates."""

    items: list[CertificateResponse]
    total: int


class CertificateVerificationResponse(BaseModel):
    """Public verification result. Omits the holder's user id."""

    valid: bool = True
    certificate_code: str
    course_id: UUID
    course_title: str
    grade: str
    issued_at: datetime

    @classmethod
    def from_entity(cls, entity: Certificate) -> "CertificateVerificationResponse":
        """Create response from entity."""
        return cls(
            certificate_code=entity.certificate_code,
            course_id=entity.course_id,
            course_title=entity.course_title,
            grade=entity.grade,
            issued_at=entity.issued_at,
        )
