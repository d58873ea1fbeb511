from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from ..utils.fingerprint import DeviceSignals
from .scoring import ScoreResult


class LoadSessionRequest(BaseModel):
    student_id: str
    exam_code: str
    device: Optional[DeviceSignals] = None


class AnswerRequest(BaseModel):
    # Option index, list of letters, or {blank_id: text}, depending on question type
    answer: Any = None


class FullscreenReport(BaseModel):
    is_fullscreen: bool
    request_failed: bool = False


class ViolationReport(BaseModel):
    violation_type: str
    severity: Optional[str] = "medium"
    description: Optional[str] = None
    violation_metadata: Optional[Dict[str, Any]] = None


class ExamSummary(BaseModel):
    id: int
    exam_code: str
    title: str
    description: Optional[str] = None
    duration: int
    total_marks: float
    question_count: int
    fullscreen_required: bool
    show_results: bool


class SessionSnapshot(BaseModel):
    handle: str
    status: str
    session_id: Optional[str] = None
    exam: Optional[ExamSummary] = None
    student_name: Optional[str] = None
    is_resuming: bool = False
    time_remaining: int = 0
    questions: List[Dict[str, Any]] = []
    answers: List[Any] = []
    flagged: List[int] = []
    stats: Dict[str, int] = {}
    fullscreen_requested: bool = False
    fullscreen_warning: bool = False
    violation_count: int = 0
    warning_message: Optional[str] = None
    termination_reason: Optional[str] = None
    result: Optional[ScoreResult] = None
    grade: Optional[str] = None
    redirect_home: bool = False


class StartSessionResponse(SessionSnapshot):
    security_token: str


class AnswerResponse(BaseModel):
    index: int
    answer: Any = None
    stats: Dict[str, int]


class FlagResponse(BaseModel):
    index: int
    is_flagged: bool


class ViolationResponse(BaseModel):
    violation_count: int
    status: str
    warning_message: Optional[str] = None
