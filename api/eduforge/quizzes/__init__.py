"""Quiz scoring module.

Provides:
- Pure scoring of answer submissions
- Attempt history per enrollment and module
"""

from .models import QUIZ_TABLES_CQL, QuizAttempt
from .scoring import ScoreResult, is_passing, normalize_answers, score_attempt


__all__ = [
    "QUIZ_TABLES_CQL",
    "QuizAttempt",
    "ScoreResult",
    "is_passing",
    "normalize_answers",
    "score_attempt",
]
