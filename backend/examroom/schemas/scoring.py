from pydantic import BaseModel
from typing import List


class QuestionResult(BaseModel):
    question_id: int
    question_type: str
    earned_marks: float
    possible_marks: float
    is_fully_correct: bool
    correct_parts: int
    total_parts: int
    answered: bool
    # False for malformed questions with no pairs or blanks to grade
    gradable: bool = True


class ScoreResult(BaseModel):
    total_marks: float
    total_possible_marks: float
    percent: int
    correct_count: int
    total_questions: int
    question_results: List[QuestionResult]
