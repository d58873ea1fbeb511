from fastapi import APIRouter, Depends, Request, status
import logging

from ....api.deps import get_authorized_controller, get_controller, get_registry
from ....schemas.session import (
    AnswerRequest,
    AnswerResponse,
    FlagResponse,
    FullscreenReport,
    LoadSessionRequest,
    SessionSnapshot,
    StartSessionResponse,
    ViolationReport,
    ViolationResponse,
)
from ....services.exam_session import ExamSessionController
from ....services.registry import SessionRegistry
from ....utils.fingerprint import DeviceSignals

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/load", response_model=SessionSnapshot)
async def load_exam_session(
    payload: LoadSessionRequest,
    request: Request,
    sessions: SessionRegistry = Depends(get_registry),
):
    """Validate the student for the exam and resume, show instructions, or show the final screen"""
    signals = payload.device or DeviceSignals.from_headers(request.headers)
    controller = await sessions.open(payload.student_id.strip(), payload.exam_code.strip(), signals)
    return controller.snapshot()


@router.get("/{handle}", response_model=SessionSnapshot)
async def get_exam_session(controller: ExamSessionController = Depends(get_controller)):
    return controller.snapshot()


@router.post("/{handle}/start", response_model=StartSessionResponse)
async def start_exam_session(controller: ExamSessionController = Depends(get_controller)):
    await controller.start()
    return StartSessionResponse(
        **controller.snapshot().model_dump(),
        security_token=controller.token,
    )


@router.put("/{handle}/answers/{index}", response_model=AnswerResponse)
async def save_answer(
    index: int,
    payload: AnswerRequest,
    controller: ExamSessionController = Depends(get_authorized_controller),
):
    stored = await controller.set_answer(index, payload.answer)
    return AnswerResponse(index=index, answer=stored, stats=controller.answers.stats())


@router.post("/{handle}/flags/{index}", response_model=FlagResponse)
async def toggle_flag(
    index: int,
    controller: ExamSessionController = Depends(get_authorized_controller),
):
    flagged = await controller.toggle_flag(index)
    return FlagResponse(index=index, is_flagged=flagged)


@router.post("/{handle}/fullscreen", response_model=SessionSnapshot)
async def report_fullscreen(
    payload: FullscreenReport,
    controller: ExamSessionController = Depends(get_authorized_controller),
):
    controller.report_fullscreen(payload.is_fullscreen, request_failed=payload.request_failed)
    return controller.snapshot()


@router.post("/{handle}/violations", response_model=ViolationResponse)
async def report_violation(
    payload: ViolationReport,
    controller: ExamSessionController = Depends(get_authorized_controller),
):
    """Log a proctoring violation"""
    count = await controller.report_violation(
        payload.violation_type,
        severity=payload.severity,
        description=payload.description,
        metadata=payload.violation_metadata,
    )
    return ViolationResponse(
        violation_count=count,
        status=controller.status,
        warning_message=controller.warning_message,
    )


@router.post("/{handle}/submit", response_model=SessionSnapshot)
async def submit_exam_session(controller: ExamSessionController = Depends(get_authorized_controller)):
    await controller.submit()
    return controller.snapshot()


@router.delete("/{handle}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_exam_session(handle: str, sessions: SessionRegistry = Depends(get_registry)):
    """Stop the attempt's background work; the session itself stays resumable"""
    await sessions.discard(handle)
