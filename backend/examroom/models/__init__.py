from .base import BaseModel
from .student import Student
from .exam import Exam, ExamAssignment, Question
from .session import ExamSession, SessionSecurity, SessionStatus, StudentAnswer
from .result import Result
from .proctoring_violations import ProctoringViolation

__all__ = [
    "BaseModel",
    "Student",
    "Exam",
    "ExamAssignment",
    "Question",
    "ExamSession",
    "SessionSecurity",
    "SessionStatus",
    "StudentAnswer",
    "Result",
    "ProctoringViolation",
]
