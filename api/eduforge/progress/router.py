"""Progress tracking API endpoints.

Provides routes for:
- Course enrollment
- Lesson and module completion
- Current lesson pointer
- Progress queries
"""

from uuid import UUID

from fastapi import APIRouter, status

from eduforge.core.dependencies import CurrentUserId

from .dependencies import ProgressServiceDep, handle_progress_error
from .models import Enrollment
from .schemas import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    ProgressResponse,
    ProgressUpdateResponse,
    SetCurrentLessonRequest,
)
from .service import EnrollmentNotFoundError, ProgressError, ProgressService


enrollments_router = APIRouter(prefix="/enrollments", tags=["enrollments"])
course_progress_router = APIRouter(prefix="/courses", tags=["progress"])


async def _owned_enrollment(
    service: ProgressService,
    enrollment_id: UUID,
    user_id: UUID,
) -> Enrollment:
    """Load an enrollment of the acting user (others look like 404)."""
    enrollment = await service.get_enrollment(enrollment_id)
    if enrollment.user_id != user_id:
        raise EnrollmentNotFoundError(enrollment_id)
    return enrollment


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> EnrollmentResponse:
    """Enroll current user in a course."""
    try:
        enrollment = await progress_service.enroll(
            user_id=user_id,
            course_id=data.course_id,
            region=data.region,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "/my",
    response_model=EnrollmentListResponse,
    summary="Get my enrollments",
)
async def get_my_enrollments(
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> EnrollmentListResponse:
    """Get all course enrollments for current user."""
    enrollments = await progress_service.list_user_enrollments(user_id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


# ==============================================================================
# Progress Endpoints (by enrollment)
# ==============================================================================


@enrollments_router.get(
    "/{enrollment_id}/progress",
    response_model=ProgressResponse,
    summary="Get enrollment progress",
)
async def get_progress(
    enrollment_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressResponse:
    """Percentage, per-module breakdown and current lesson."""
    try:
        await _owned_enrollment(progress_service, enrollment_id, user_id)
        return await progress_service.get_progress(enrollment_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@enrollments_router.post(
    "/{enrollment_id}/lessons/{lesson_id}/complete",
    response_model=ProgressUpdateResponse,
    summary="Mark lesson as complete",
)
async def complete_lesson(
    enrollment_id: UUID,
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressUpdateResponse:
    """Mark a lesson complete. Calling it again changes nothing."""
    try:
        await _owned_enrollment(progress_service, enrollment_id, user_id)
        return await progress_service.mark_lesson_complete(enrollment_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@enrollments_router.put(
    "/{enrollment_id}/current-lesson",
    response_model=ProgressResponse,
    summary="Set current lesson",
)
async def set_current_lesson(
    enrollment_id: UUID,
    data: SetCurrentLessonRequest,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressResponse:
    """Move the last-viewed lesson pointer."""
    try:
        await _owned_enrollment(progress_service, enrollment_id, user_id)
        return await progress_service.set_current_lesson(enrollment_id, data.lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


# ==============================================================================
# Progress Endpoints (enrollment implied by the acting user)
# ==============================================================================


@course_progress_router.post(
    "/{course_id}/modules/{module_id}/complete",
    response_model=ProgressUpdateResponse,
    summary="Mark module as complete",
)
async def complete_module(
    course_id: UUID,
    module_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressUpdateResponse:
    """Complete every lesson of a module.

    When this brings the course to 100% a certificate is issued as well; the
    outcome is reported in ``certificate`` and never fails the completion.
    """
    try:
        enrollment = await progress_service.find_enrollment(user_id, course_id)
        return await progress_service.mark_module_complete(enrollment.id, module_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@course_progress_router.post(
    "/{course_id}/lessons/{lesson_id}/complete",
    response_model=ProgressUpdateResponse,
    summary="Mark lesson as complete in course",
)
async def complete_course_lesson(
    course_id: UUID,
    lesson_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressUpdateResponse:
    """Mark a lesson complete for the acting user's enrollment."""
    try:
        enrollment = await progress_service.find_enrollment(user_id, course_id)
        return await progress_service.mark_lesson_complete(enrollment.id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e


@course_progress_router.get(
    "/{course_id}/progress",
    response_model=ProgressResponse,
    summary="Get my progress in course",
)
async def get_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user_id: CurrentUserId,
) -> ProgressResponse:
    """Progress of the acting user's enrollment in a course."""
    try:
        enrollment = await progress_service.find_enrollment(user_id, course_id)
        return await progress_service.get_progress(enrollment.id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
