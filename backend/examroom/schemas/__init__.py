from .exam import ExamInfo, ExamQuestion, StudentInfo, QuestionType, parse_question
from .scoring import QuestionResult, ScoreResult
from .session import (
    LoadSessionRequest,
    AnswerRequest,
    FullscreenReport,
    ViolationReport,
    SessionSnapshot,
    StartSessionResponse,
    AnswerResponse,
    FlagResponse,
    ViolationResponse,
)

__all__ = [
    "ExamInfo",
    "ExamQuestion",
    "StudentInfo",
    "QuestionType",
    "parse_question",
    "QuestionResult",
    "ScoreResult",
    "LoadSessionRequest",
    "AnswerRequest",
    "FullscreenReport",
    "ViolationReport",
    "SessionSnapshot",
    "StartSessionResponse",
    "AnswerResponse",
    "FlagResponse",
    "ViolationResponse",
]
