"""Server-side quiz scoring.

Questions come from `Lesson.quiz_data`, either as a bare list or wrapped
as ``{"questions": [...]}``. Each question has an ``id``, a ``type``, a
``correctAnswer`` and a ``points`` weight (default 1). Submitted answers
are keyed by question id.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

MULTIPLE_CHOICE = "multiple-choice"
TRUE_FALSE = "true-false"
FILL_BLANK = "fill-blank"
DRAG_DROP = "drag-drop"

QUESTION_TYPES = frozenset({MULTIPLE_CHOICE, TRUE_FALSE, FILL_BLANK, DRAG_DROP})


class InvalidQuizError(ValueError):
    """Raised when a lesson's quiz data cannot be interpreted."""


@dataclass(frozen=True)
class QuizResult:
    score: int
    earned_points: float
    total_points: float
    correct: dict[str, bool] = field(default_factory=dict)


def extract_questions(quiz_data: Any) -> list[Mapping[str, Any]]:  # noqa: ANN401
    """Normalize stored quiz data into a list of question mappings."""
    if quiz_data is None:
        return []
    if isinstance(quiz_data, Mapping):
        quiz_data = quiz_data.get("questions", [])
    if not isinstance(quiz_data, list) or not all(isinstance(q, Mapping) for q in quiz_data):
        msg = "Quiz data must be a list of questions"
        raise InvalidQuizError(msg)
    return quiz_data


def _same_value(answer: Any, expected: Any) -> bool:  # noqa: ANN401
    # bool is an int subclass: True must not match index 1.
    if isinstance(expected, bool) or isinstance(answer, bool):
        return isinstance(answer, bool) and isinstance(expected, bool) and answer is expected
    return answer == expected


def is_answer_correct(question: Mapping[str, Any], answer: Any) -> bool:  # noqa: ANN401
    """Whether `answer` is correct for `question`. A missing answer is never correct."""
    if answer is None:
        return False

    expected = question.get("correctAnswer")
    qtype = question.get("type")

    if qtype in (MULTIPLE_CHOICE, TRUE_FALSE):
        return _same_value(answer, expected)
    if qtype == FILL_BLANK:
        if not isinstance(answer, str) or expected is None:
            return False
        return answer.strip().lower() == str(expected).strip().lower()
    if qtype == DRAG_DROP:
        if not isinstance(answer, list) or not isinstance(expected, list):
            return False
        try:
            return sorted(answer) == sorted(expected)
        except TypeError:
            return False
    return False


def _points(question: Mapping[str, Any]) -> Decimal:
    raw = question.get("points", 1)
    try:
        points = Decimal(str(raw))
    except ArithmeticError:
        msg = f"Invalid points value for question {question.get('id')!r}"
        raise InvalidQuizError(msg) from None
    if not points.is_finite():
        msg = f"Invalid points value for question {question.get('id')!r}"
        raise InvalidQuizError(msg)
    if points < 0:
        msg = f"Negative points for question {question.get('id')!r}"
        raise InvalidQuizError(msg)
    return points


def score_quiz(questions: list[Mapping[str, Any]], answers: Mapping[str, Any]) -> QuizResult:
    """Compute the percentage score for submitted `answers`.

    ``score = round(100 * earned / total)``, rounding halves up. An empty quiz
    (total of zero points) scores 0.
    """
    total = Decimal(0)
    earned = Decimal(0)
    correct: dict[str, bool] = {}

    for question in questions:
        qid = str(question.get("id"))
        points = _points(question)
        total += points
        ok = is_answer_correct(question, answers.get(qid))
        correct[qid] = ok
        if ok:
            earned += points

    if total == 0:
        score = 0
    else:
        score = int((earned * 100 / total).quantize(Decimal(1), rounding=ROUND_HALF_UP))

    return QuizResult(
        score=score,
        earned_points=float(earned),
        total_points=float(total),
        correct=correct,
    )


def validate_quiz(quiz_data: Any) -> list[Mapping[str, Any]]:  # noqa: ANN401
    """Check quiz data at authoring time so it can always be scored later.

    Every question needs an ``id``, a known ``type`` and a finite,
    non-negative ``points`` weight.

    Raises:
        InvalidQuizError: Describes the first offending question.
    """
    questions = extract_questions(quiz_data)
    seen: set[str] = set()
    for question in questions:
        qid = question.get("id")
        if qid is None or str(qid) in seen:
            msg = f"Missing or duplicate question id {qid!r}"
            raise InvalidQuizError(msg)
        seen.add(str(qid))
        if question.get("type") not in QUESTION_TYPES:
            msg = f"Unknown question type {question.get('type')!r} for question {qid!r}"
            raise InvalidQuizError(msg)
        _points(question)
    return questions
