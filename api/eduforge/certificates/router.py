"""Certificate API endpoints.

Provides routes for:
- Certificate generation for a completed course
- Listing and fetching own certificates
- Public verification by code
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from eduforge.core.dependencies import CurrentUserId

from .dependencies import CertificateServiceDep, handle_certificate_error
from .schemas import (
    CertificateIssueResponse,
    CertificateListResponse,
    CertificateResponse,
    CertificateVerificationResponse,
)
from .service import CertificateError


router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.post(
    "/generate/{course_id}",
    response_model=CertificateIssueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate certificate",
    responses={200: {"description": "Certificate was already issued"}},
)
async def generate_certificate(
    course_id: UUID,
    response: Response,
    certificate_service: CertificateServiceDep,
    user_id: CurrentUserId,
) -> CertificateIssueResponse:
    """Issue the certificate of a completed course.

    Returns 201 on first issuance and 200 with the existing certificate on
    repeated calls. Fails with 409 while the course is not completed.
    """
    try:
        result = await certificate_service.generate(user_id, course_id)
    except CertificateError as e:
        raise handle_certificate_error(e) from e

    if not result.created:
        response.status_code = status.HTTP_200_OK
    return CertificateIssueResponse.from_result(result)


@router.get(
    "/my",
    response_model=CertificateListResponse,
    summary="Get my certificates",
)
async def get_my_certificates(
    certificate_service: CertificateServiceDep,
    user_id: CurrentUserId,
) -> CertificateListResponse:
    """All certificates of the current user, newest first."""
    certificates = await certificate_service.list_user_certificates(user_id)
    return CertificateListResponse(
        items=[CertificateResponse.from_entity(c) for c in certificates],
        total=len(certificates),
    )


@router.get(
    "/course/{course_id}",
    response_model=CertificateResponse,
    summary="Get my certificate for course",
)
async def get_course_certificate(
    course_id: UUID,
    certificate_service: CertificateServiceDep,
    user_id: CurrentUserId,
) -> CertificateResponse:
    """Certificate of the current user for one course."""
    try:
        certificate = await certificate_service.get_certificate(user_id, course_id)
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return CertificateResponse.from_entity(certificate)


@router.get(
    "/verify/{code}",
    response_model=CertificateVerificationResponse,
    summary="Verify certificate",
)
async def verify_certificate(
    code: str,
    certificate_service: CertificateServiceDep,
) -> CertificateVerificationResponse:
    """Check a verification code. No authentication required."""
    try:
        certificate = await certificate_service.verify(code)
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return CertificateVerificationResponse.from_entity(certificate)
