"""Quiz API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from eduforge.core.dependencies import CurrentUserId

from .dependencies import QuizServiceDep, handle_quiz_error
from .schemas import QuizAttemptListResponse, QuizAttemptRequest, QuizAttemptResponse
from .service import QuizError


router = APIRouter(prefix="/courses", tags=["quizzes"])


@router.post(
    "/{course_id}/modules/{module_id}/quiz/attempt",
    response_model=QuizAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz attempt",
)
async def submit_quiz_attempt(
    course_id: UUID,
    module_id: UUID,
    data: QuizAttemptRequest,
    quiz_service: QuizServiceDep,
    user_id: CurrentUserId,
) -> QuizAttemptResponse:
    """Score the answers and record the attempt.

    Unanswered or invalid entries count as incorrect. Passing does not
    complete the module.
    """
    try:
        quiz = quiz_service.get_quiz(course_id, module_id)
        attempt = await quiz_service.submit_attempt(
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            answers=data.answers,
        )
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return QuizAttemptResponse.from_entity(attempt, quiz_service.passing_score_for(quiz))


@router.get(
    "/{course_id}/modules/{module_id}/quiz/attempts",
    response_model=QuizAttemptListResponse,
    summary="Get my quiz attempts",
)
async def list_quiz_attempts(
    course_id: UUID,
    module_id: UUID,
    quiz_service: QuizServiceDep,
    user_id: CurrentUserId,
) -> QuizAttemptListResponse:
    """Attempt history for a module, newest first."""
    try:
        quiz = quiz_service.get_quiz(course_id, module_id)
        attempts = await quiz_service.list_attempts(user_id, course_id, module_id)
    except QuizError as e:
        raise handle_quiz_error(e) from e

    passing_score = quiz_service.passing_score_for(quiz)
    return QuizAttemptListResponse(
        items=[QuizAttemptResponse.from_entity(a, passing_score) for a in attempts],
        total=len(attempts),
        best_score=max((a.score for a in attempts), default=None),
    )
