"""Server-side quiz scoring."""

import pytest

from mlc.progress.quiz_scorer import (
    InvalidQuizError,
    extract_questions,
    is_answer_correct,
    score_quiz,
    validate_quiz,
)

QUESTIONS = [
    {"id": "q1", "type": "multiple-choice", "correctAnswer": 2, "points": 10},
    {"id": "q2", "type": "true-false", "correctAnswer": False, "points": 10},
]


class TestExtractQuestions:
    def test_bare_list(self):
        assert extract_questions(QUESTIONS) == QUESTIONS

    def test_wrapped_questions(self):
        assert extract_questions({"questions": QUESTIONS}) == QUESTIONS

    def test_none_is_empty(self):
        assert extract_questions(None) == []

    def test_malformed_raises(self):
        with pytest.raises(InvalidQuizError):
            extract_questions("not a quiz")
        with pytest.raises(InvalidQuizError):
            extract_questions([1, 2, 3])


class TestIsAnswerCorrect:
    def test_multiple_choice_index_zero_is_a_real_answer(self):
        q = {"id": "q", "type": "multiple-choice", "correctAnswer": 0}
        assert is_answer_correct(q, 0) is True
        assert is_answer_correct(q, 1) is False

    def test_false_is_a_real_answer(self):
        q = {"id": "q", "type": "true-false", "correctAnswer": False}
        assert is_answer_correct(q, False) is True
        assert is_answer_correct(q, True) is False

    def test_bool_does_not_match_integer_index(self):
        q = {"id": "q", "type": "multiple-choice", "correctAnswer": 1}
        assert is_answer_correct(q, True) is False

    def test_missing_answer_is_incorrect(self):
        assert is_answer_correct(QUESTIONS[0], None) is False

    def test_fill_blank_ignores_case_and_whitespace(self):
        q = {"id": "q", "type": "fill-blank", "correctAnswer": "Python"}
        assert is_answer_correct(q, "  python ") is True
        assert is_answer_correct(q, "java") is False
        assert is_answer_correct(q, 3) is False

    def test_drag_drop_compares_as_sorted_lists(self):
        q = {"id": "q", "type": "drag-drop", "correctAnswer": ["a", "b", "c"]}
        assert is_answer_correct(q, ["c", "a", "b"]) is True
        assert is_answer_correct(q, ["a", "b"]) is False
        assert is_answer_correct(q, "abc") is False

    def test_unknown_type_is_incorrect(self):
        assert is_answer_correct({"id": "q", "type": "essay", "correctAnswer": "x"}, "x") is False


class TestScoreQuiz:
    def test_half_points_scores_fifty(self):
        result = score_quiz(QUESTIONS, {"q1": 2, "q2": True})
        assert result.score == 50
        assert result.earned_points == 10
        assert result.total_points == 20
        assert result.correct == {"q1": True, "q2": False}

    def test_all_correct_scores_hundred(self):
        assert score_quiz(QUESTIONS, {"q1": 2, "q2": False}).score == 100

    def test_unanswered_questions_count_against(self):
        assert score_quiz(QUESTIONS, {}).score == 0

    def test_default_weight_is_one_and_rounds_half_up(self):
        questions = [
            {"id": "a", "type": "true-false", "correctAnswer": True},
            {"id": "b", "type": "true-false", "correctAnswer": True},
            {"id": "c", "type": "true-false", "correctAnswer": True},
            {"id": "d", "type": "true-false", "correctAnswer": True},
            {"id": "e", "type": "true-false", "correctAnswer": True},
            {"id": "f", "type": "true-false", "correctAnswer": True},
            {"id": "g", "type": "true-false", "correctAnswer": True},
            {"id": "h", "type": "true-false", "correctAnswer": True},
        ]
        # 5/8 = 62.5% rounds up to 63
        answers = {k: True for k in "abcde"}
        assert score_quiz(questions, answers).score == 63

    def test_empty_quiz_scores_zero(self):
        assert score_quiz([], {"q1": 1}).score == 0

    def test_negative_points_rejected(self):
        with pytest.raises(InvalidQuizError):
            score_quiz([{"id": "q", "type": "true-false", "correctAnswer": True, "points": -1}], {})

    @pytest.mark.parametrize("points", [float("nan"), float("inf"), "NaN", "-Infinity", "ten"])
    def test_non_finite_points_rejected(self, points):
        question = {"id": "q", "type": "true-false", "correctAnswer": True, "points": points}
        with pytest.raises(InvalidQuizError):
            score_quiz([question], {"q": True})

    def test_question_order_does_not_change_score(self):
        questions = [
            *QUESTIONS,
            {"id": "q3", "type": "fill-blank", "correctAnswer": "pep8", "points": 5},
        ]
        answers = {"q1": 2, "q2": True, "q3": "PEP8"}
        forward = score_quiz(questions, answers)
        backward = score_quiz(list(reversed(questions)), answers)
        assert forward.score == backward.score == 60
        assert forward.correct == backward.correct

    def test_all_wrong_answers_score_zero(self):
        result = score_quiz(QUESTIONS, {"q1": 0, "q2": True})
        assert result.score == 0
        assert result.earned_points == 0
        assert result.correct == {"q1": False, "q2": False}


class TestValidateQuiz:
    def test_valid_quiz_returns_questions(self):
        assert validate_quiz({"questions": QUESTIONS}) == QUESTIONS
        assert validate_quiz(None) == []

    def test_unknown_question_type_rejected(self):
        with pytest.raises(InvalidQuizError, match="essay"):
            validate_quiz([{"id": "q", "type": "essay", "correctAnswer": "x"}])

    def test_missing_or_duplicate_id_rejected(self):
        with pytest.raises(InvalidQuizError):
            validate_quiz([{"type": "true-false", "correctAnswer": True}])
        with pytest.raises(InvalidQuizError):
            validate_quiz([QUESTIONS[0], QUESTIONS[0]])

    def test_infinite_points_rejected(self):
        with pytest.raises(InvalidQuizError):
            validate_quiz([{"id": "q", "type": "true-false", "correctAnswer": True, "points": float("inf")}])
