"""Course analytics API endpoints.

Reports are derived views; they never change progress or certificates.
"""

from uuid import UUID

from fastapi import APIRouter, Query

from .dependencies import AnalyticsServiceDep, handle_analytics_error
from .schemas import CourseAnalyticsResponse, ModuleProgressStat, NamedValue
from .service import AnalyticsError
from .windows import Timeframe


router = APIRouter(prefix="/courses", tags=["analytics"])


@router.get(
    "/{course_id}/analytics",
    response_model=CourseAnalyticsResponse,
    summary="Get course analytics",
    description="Aggregate report over a week, month or year window.",
)
async def get_course_analytics(
    course_id: UUID,
    analytics_service: AnalyticsServiceDep,
    timeframe: Timeframe = Query(  # noqa: B008
        default=Timeframe.WEEK,
        description="Reporting window: week, month or year",
    ),
) -> CourseAnalyticsResponse:
    """Enrollments, completion, ratings, quiz results and engagement.

    A sub-aggregate that cannot be computed is reported as zero or empty.
    """
    try:
        return await analytics_service.get_course_analytics(course_id, timeframe)
    except AnalyticsError as e:
        raise handle_analytics_error(e) from e


@router.get(
    "/{course_id}/analytics/progress",
    response_model=list[ModuleProgressStat],
    summary="Get module completion rates",
)
async def get_progress_stats(
    course_id: UUID,
    analytics_service: AnalyticsServiceDep,
) -> list[ModuleProgressStat]:
    """Completion rate of each module across all enrollments."""
    try:
        return await analytics_service.get_progress_stats(course_id)
    except AnalyticsError as e:
        raise handle_analytics_error(e) from e


@router.get(
    "/{course_id}/analytics/quiz",
    response_model=list[NamedValue],
    summary="Get quiz score bands",
)
async def get_quiz_stats(
    course_id: UUID,
    analytics_service: AnalyticsServiceDep,
) -> list[NamedValue]:
    """Number of attempts per score band."""
    try:
        return await analytics_service.get_quiz_stats(course_id)
    except AnalyticsError as e:
        raise handle_analytics_error(e) from e
