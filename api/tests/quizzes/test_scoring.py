"""Tests for quiz scoring."""

import pytest
from pydantic import ValidationError

from eduforge.catalog.models import Quiz
from eduforge.quizzes.schemas import QuizAttemptRequest
from eduforge.quizzes.scoring import is_passing, normalize_answers, score_attempt


def _quiz(correct: list[int], options: int = 4) -> Quiz:
    return Quiz.model_validate(
        {
            "title": "Checkpoint",
            "questions": [
                {"text": f"Q{i}", "options": [str(o) for o in range(options)], "correct_index": c}
                for i, c in enumerate(correct)
            ],
        }
    )


class TestScoreAttempt:
    """Tests for score_attempt."""

    def test_three_of_four_correct(self) -> None:
        """Answers [0, 2, 1, 3] against key [0, 2, 1, 0] score 75."""
        result = score_attempt(_quiz([0, 2, 1, 0]), [0, 2, 1, 3])

        assert result.score == 75
        assert result.correct_count == 3
        assert result.total_questions == 4
        assert result.empty_quiz is False

    def test_answer_key_0123_scenario(self) -> None:
        """Answers [0, 1, 0, 3] against key [0, 1, 2, 3] score 75."""
        result = score_attempt(_quiz([0, 1, 2, 3]), [0, 1, 0, 3])

        assert result.score == 75
        assert result.correct_count == 3

    def test_unanswered_and_out_of_range_are_incorrect(self) -> None:
        """None, negative and too-large indexes never match."""
        result = score_attempt(_quiz([0, 1, 2, 3]), [None, -1, 9, 3])

        assert result.correct_count == 1
        assert result.score == 25

    def test_short_answer_list(self) -> None:
        """Missing trailing answers count as incorrect."""
        assert score_attempt(_quiz([0, 1, 2]), [0]).score == 33

    def test_extra_answers_ignored(self) -> None:
        """Answers beyond the last question are ignored."""
        assert score_attempt(_quiz([1]), [1, 0, 0]).score == 100

    def test_rounds_half_up(self) -> None:
        """1 of 8 correct is 12.5, reported as 13."""
        assert score_attempt(_quiz([0] * 8), [0] + [1] * 7).score == 13

    def test_empty_quiz(self) -> None:
        """A quiz without questions scores 0 and is flagged."""
        result = score_attempt(Quiz(), [0, 1])

        assert result.score == 0
        assert result.total_questions == 0
        assert result.empty_quiz is True

    def test_is_pure(self) -> None:
        """Same inputs give the same result."""
        quiz = _quiz([0, 1, 2, 3])
        answers = [0, 1, 0, 0]
        assert score_attempt(quiz, answers) == score_attempt(quiz, answers)


class TestLenientAnswers:
    """Tests for answer coercion at the request boundary."""

    def test_normalize_answers(self) -> None:
        """Non-integers become unanswered."""
        assert normalize_answers([1, "2", None, 2.5, True, 0]) == [
            1,
            None,
            None,
            None,
            None,
            0,
        ]

    def test_unstorable_indexes_are_unanswered(self) -> None:
        """Negative indexes and ones beyond 32 bits become unanswered."""
        assert normalize_answers([2**40, -1, 2**31 - 1, 2**31, 0]) == [
            None,
            None,
            2**31 - 1,
            None,
            0,
        ]

    def test_request_drops_huge_indexes(self) -> None:
        """Huge indexes are coerced at the boundary, never rejected."""
        request = QuizAttemptRequest.model_validate({"answers": [2**40, 0]})
        assert request.answers == [None, 0]

    def test_non_list_is_empty_submission(self) -> None:
        """A non-list answers value is treated as no answers."""
        assert normalize_answers("0,1") == []
        assert normalize_answers(None) == []

    def test_request_accepts_malformed_answers(self) -> None:
        """The request schema coerces instead of rejecting."""
        request = QuizAttemptRequest.model_validate({"answers": [0, "x", {"a": 1}, 3]})
        assert request.answers == [0, None, None, 3]

    def test_request_requires_json_object(self) -> None:
        """A body that is not an object is still a validation error."""
        with pytest.raises(ValidationError):
            QuizAttemptRequest.model_validate([0, 1])


class TestIsPassing:
    """Tests for is_passing."""

    @pytest.mark.parametrize(
        ("score", "passing", "expected"),
        [(70, 70, True), (69, 70, False), (100, 70, True), (0, 0, True)],
    )
    def test_threshold_inclusive(self, score: int, passing: int, expected: bool) -> None:
        """Meeting the passing score passes."""
        assert is_passing(score, passing) is expected
