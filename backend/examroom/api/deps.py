from typing import Optional

from fastapi import Depends, Header

from ..services.exam_session import ExamSessionController, ExamStatus
from ..services.registry import SessionRegistry, registry


def get_registry() -> SessionRegistry:
    return registry


def get_controller(
    handle: str,
    sessions: SessionRegistry = Depends(get_registry),
) -> ExamSessionController:
    return sessions.get(handle)


def get_authorized_controller(
    controller: ExamSessionController = Depends(get_controller),
    x_session_token: Optional[str] = Header(None),
) -> ExamSessionController:
    """Once an attempt has a security token, mutating calls must present it."""
    if controller.token is not None and controller.status == ExamStatus.IN_PROGRESS:
        controller.verify_token(x_session_token)
    return controller
