"""Quiz scoring.

``score_attempt`` is a pure function of the quiz's answer key and the
submitted answers. An answer is correct iff the submitted index at that
position equals the question's correct option index. Missing, unanswered
(None) or out-of-range answers count as incorrect; they are never errors.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from eduforge.catalog.models import Quiz


if TYPE_CHECKING:
    from .models import QuizAttempt


# Answers are stored in a 32-bit INT list column
MAX_ANSWER_INDEX = 2**31 - 1


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of scoring one submission."""

    score: int
    correct_count: int
    total_questions: int
    empty_quiz: bool = False


def normalize_answers(raw: Any) -> list[int | None]:
    """Coerce a submitted answer list into option indexes.

    Anything that is not a plain integer becomes None (unanswered), and so
    does a negative index or one too large to store. A value that is not a
    list at all yields an empty submission.
    """
    if not isinstance(raw, list | tuple):
        return []
    return [_as_index(item) for item in raw]


def _as_index(item: Any) -> int | None:
    if not isinstance(item, int) or isinstance(item, bool):
        return None
    if not 0 <= item <= MAX_ANSWER_INDEX:
        return None
    return item


def score_attempt(quiz: Quiz, answers: Sequence[int | None]) -> ScoreResult:
    """Grade ``answers`` against ``quiz``.

    Returns score = round-half-up(100 * correct / questions). A quiz with no
    questions scores 0 and is flagged with ``empty_quiz``.
    """
    total = len(quiz.questions)
    if total == 0:
        return ScoreResult(score=0, correct_count=0, total_questions=0, empty_quiz=True)

    correct = 0
    for position, question in enumerate(quiz.questions):
        if position >= len(answers):
            break
        submitted = answers[position]
        if (
            isinstance(submitted, int)
            and not isinstance(submitted, bool)
            and 0 <= submitted < len(question.options)
            and submitted == question.correct_index
        ):
            correct += 1

    ratio = Decimal(100 * correct) / Decimal(total)
    score = int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return ScoreResult(score=score, correct_count=correct, total_questions=total)


def is_passing(score: int, passing_score: int) -> bool:
    """Check whether a score meets the quiz's passing score."""
    return score >= passing_score


def best_scores_by_module(attempts: Iterable["QuizAttempt"]) -> dict[UUID, int]:
    """Highest score per module over a set of attempts."""
    best: dict[UUID, int] = {}
    for attempt in attempts:
        best[attempt.module_id] = max(best.get(attempt.module_id, 0), attempt.score)
    return best
