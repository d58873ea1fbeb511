import logging
import time
from typing import Dict, Optional

from ..core.database import AsyncSessionLocal
from ..core.exceptions import ExamSessionError
from ..utils.fingerprint import DeviceSignals
from .exam_session import EngineTimings, ExamSessionController, ExamStatus
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class SessionNotFound(ExamSessionError):
    status_code = 404

    def __init__(self, handle: str):
        super().__init__("Exam session not found. Please load the exam again.")
        self.handle = handle


class SessionRegistry:
    """In-process map of live controllers, keyed by their opaque handle."""

    def __init__(self, store: SessionStore, timings: Optional[EngineTimings] = None, retention_seconds: float = 600):
        self.store = store
        self.timings = timings
        self.retention_seconds = retention_seconds
        self._controllers: Dict[str, ExamSessionController] = {}
        self._finished_at: Dict[str, float] = {}

    def __len__(self):
        return len(self._controllers)

    async def open(self, student_code: str, exam_code: str, signals: Optional[DeviceSignals] = None) -> ExamSessionController:
        await self.prune()
        controller = ExamSessionController(
            self.store, student_code, exam_code, signals=signals, timings=self.timings
        )
        await controller.load()

        if controller.session_id is not None:
            for handle, other in list(self._controllers.items()):
                if other.session_id != controller.session_id:
                    continue
                if other.fingerprint == controller.fingerprint:
                    # A reload on the same device replaces the controller already driving that session.
                    logger.info(f"Replacing controller {handle} for session {other.session_id}")
                    await self.discard(handle)
                elif controller.status == ExamStatus.IN_PROGRESS:
                    # The new device claimed the record; the old one stays to show why it ended.
                    logger.warning(f"Session {other.session_id} taken over from controller {handle}")
                    other.end_for_takeover()

        self._controllers[controller.handle] = controller
        return controller

    def get(self, handle: str) -> ExamSessionController:
        controller = self._controllers.get(handle)
        if controller is None:
            raise SessionNotFound(handle)
        return controller

    async def discard(self, handle: str) -> bool:
        controller = self._controllers.pop(handle, None)
        self._finished_at.pop(handle, None)
        if controller is None:
            return False
        await controller.close()
        return True

    async def prune(self, now: Optional[float] = None):
        """Drop controllers that finished more than ``retention_seconds`` ago."""
        now = time.monotonic() if now is None else now
        for handle, controller in list(self._controllers.items()):
            if not controller.finished.is_set():
                continue
            finished_at = self._finished_at.setdefault(handle, now)
            if now - finished_at >= self.retention_seconds:
                await self.discard(handle)

    async def close_all(self):
        for handle in list(self._controllers):
            await self.discard(handle)
        logger.info("All exam session controllers closed")


registry = SessionRegistry(SessionStore(AsyncSessionLocal))
