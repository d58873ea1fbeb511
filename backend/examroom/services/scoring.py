"""
Scoring of a finished attempt.

``calculate_score`` is pure: it reads the (possibly shuffled) questions and the
answer slots in the same order and never touches storage.
"""
import math
from typing import Any, List, Sequence

from ..schemas.exam import ExamQuestion, QuestionType
from ..schemas.scoring import QuestionResult, ScoreResult


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _normalize(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def _score_choice(question: ExamQuestion, answer: Any) -> QuestionResult:
    answered = answer is not None
    correct = answered and question.correct_option_id is not None and answer == question.correct_option_id
    return QuestionResult(
        question_id=question.id,
        question_type=question.question_type,
        earned_marks=question.marks if correct else 0,
        possible_marks=question.marks,
        is_fully_correct=correct,
        correct_parts=1 if correct else 0,
        total_parts=1,
        answered=answered,
    )


def _ungradable(question: ExamQuestion, answered: bool) -> QuestionResult:
    return QuestionResult(
        question_id=question.id,
        question_type=question.question_type,
        earned_marks=0,
        possible_marks=question.marks,
        is_fully_correct=False,
        correct_parts=0,
        total_parts=0,
        answered=answered,
        gradable=False,
    )


def _partial(question: ExamQuestion, matches: List[bool], answered: bool) -> QuestionResult:
    per_part = question.marks / len(matches)
    correct_parts = sum(1 for matched in matches if matched)
    return QuestionResult(
        question_id=question.id,
        question_type=question.question_type,
        earned_marks=correct_parts * per_part,
        possible_marks=question.marks,
        is_fully_correct=correct_parts == len(matches),
        correct_parts=correct_parts,
        total_parts=len(matches),
        answered=answered,
    )


def _score_matching(question: ExamQuestion, answer: Any) -> QuestionResult:
    slots = answer if isinstance(answer, list) else []
    answered = any(slot for slot in slots)
    if not question.pairs:
        return _ungradable(question, answered)

    matches = []
    for index, pair in enumerate(question.pairs):
        given = slots[index] if index < len(slots) else None
        matches.append(bool(given) and _normalize(given) == _normalize(pair.correct_match))
    return _partial(question, matches, answered)


def _score_fill_blank(question: ExamQuestion, answer: Any) -> QuestionResult:
    typed = answer if isinstance(answer, dict) else {}
    answered = any(_normalize(value) for value in typed.values())
    if not question.blanks:
        return _ungradable(question, answered)

    matches = [
        _normalize(typed.get(blank.id)) == _normalize(blank.answer)
        for blank in question.blanks
    ]
    return _partial(question, matches, answered)


def score_question(question: ExamQuestion, answer: Any) -> QuestionResult:
    if question.question_type == QuestionType.MATCHING:
        return _score_matching(question, answer)
    if question.question_type == QuestionType.FILL_BLANK:
        return _score_fill_blank(question, answer)
    return _score_choice(question, answer)


def calculate_score(questions: Sequence[ExamQuestion], answers: Sequence[Any]) -> ScoreResult:
    results = []
    total = 0.0
    possible = 0.0
    correct_count = 0

    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else None
        result = score_question(question, answer)
        total += result.earned_marks
        possible += result.possible_marks
        if result.gradable and result.is_fully_correct:
            correct_count += 1
        # Per-question figure is rounded for display; the total is rounded once below.
        results.append(result.model_copy(update={"earned_marks": round_half_up(result.earned_marks, 2)}))

    total = round_half_up(total, 2)
    possible = round_half_up(possible, 2)
    percent = int(round_half_up(total / possible * 100)) if possible else 0

    return ScoreResult(
        total_marks=total,
        total_possible_marks=possible,
        percent=percent,
        correct_count=correct_count,
        total_questions=len(questions),
        question_results=results,
    )


def grade_for_percent(percent: int) -> str:
    if percent >= 90:
        return "A"
    if percent >= 80:
        return "B"
    if percent >= 70:
        return "C"
    if percent >= 60:
        return "D"
    return "F"


def result_comment(score: ScoreResult) -> str:
    return (
        f"Scored {score.total_marks:g} out of {score.total_possible_marks:g} marks - "
        f"{score.correct_count} correct answers out of {score.total_questions} questions ({score.percent}%)"
    )
