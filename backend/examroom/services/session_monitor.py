"""
Device-ownership monitor for one exam session.

The monitor runs three independent periodic checks on the event loop:

* heartbeat: records liveness; repeated failures mean the connection is gone;
* device check: the security record must still be active and bound to this
  device's fingerprint; a stale but matching record is reclaimed;
* status check: the session row must still be in progress under our token.

Each check is a ``*_tick`` coroutine that returns a ``MonitorEvent`` or None.
The run loop hands termination events to ``terminate``, which fires the
owner's callbacks once. The lifecycle is one-way: active, then terminated.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from ..core.config import settings
from ..utils.timezone import seconds_since
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class TerminationReason:
    CONNECTION_LOST = "Connection to the exam server was lost. Your exam session has been closed."
    SECURITY_MISSING = "The security record for this exam session could not be found."
    SECURITY_INACTIVE = "This exam session is no longer active."
    DEVICE_TAKEOVER = "This exam session was opened on another device."
    SESSION_MISSING = "This exam session no longer exists."
    STATUS_CHANGED = "This exam session has already ended."
    TOKEN_CHANGED = "This exam session was reassigned."


class MonitorEvent(BaseModel):
    kind: str
    reason: Optional[str] = None

    @classmethod
    def terminate(cls, reason: str) -> "MonitorEvent":
        return cls(kind="terminate", reason=reason)

    @property
    def is_termination(self) -> bool:
        return self.kind == "terminate"


class MonitorTimings(BaseModel):
    heartbeat_interval: float = 5.0
    device_check_interval: float = 7.0
    status_check_interval: float = 10.0
    stale_verification_seconds: float = 15.0
    heartbeat_max_failures: int = 3
    redirect_grace_seconds: float = 3.0

    @classmethod
    def from_settings(cls, config=None) -> "MonitorTimings":
        config = config or settings
        return cls(
            heartbeat_interval=config.heartbeat_interval,
            device_check_interval=config.device_check_interval,
            status_check_interval=config.status_check_interval,
            stale_verification_seconds=config.stale_verification_seconds,
            heartbeat_max_failures=config.heartbeat_max_failures,
            redirect_grace_seconds=config.redirect_grace_seconds,
        )


class SessionMonitor:
    def __init__(
        self,
        store: SessionStore,
        session_id: str,
        token: str,
        fingerprint: str,
        on_terminated: Callable[[str], None],
        on_redirect_home: Optional[Callable[[], None]] = None,
        time_remaining: Optional[Callable[[], int]] = None,
        timings: Optional[MonitorTimings] = None,
    ):
        self.store = store
        self.session_id = session_id
        self.token = token
        self.fingerprint = fingerprint
        self.on_terminated = on_terminated
        self.on_redirect_home = on_redirect_home
        self.time_remaining = time_remaining or (lambda: 0)
        self.timings = timings or MonitorTimings.from_settings()

        self._active = False
        self._terminated = False
        self.termination_reason: Optional[str] = None
        self.heartbeat_failures = 0
        self._tasks: List[asyncio.Task] = []
        self._redirect_task: Optional[asyncio.Task] = None

    def is_active(self) -> bool:
        return self._active

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    @property
    def tasks(self) -> List[asyncio.Task]:
        tasks = list(self._tasks)
        if self._redirect_task is not None:
            tasks.append(self._redirect_task)
        return tasks

    def start(self):
        if self._active or self._terminated:
            return
        self._active = True
        self._tasks = [
            asyncio.create_task(self._run(self.timings.heartbeat_interval, self.heartbeat_tick), name=f"heartbeat:{self.session_id}"),
            asyncio.create_task(self._run(self.timings.device_check_interval, self.device_check_tick), name=f"device-check:{self.session_id}"),
            asyncio.create_task(self._run(self.timings.status_check_interval, self.status_check_tick), name=f"status-check:{self.session_id}"),
        ]
        logger.info(f"Session monitor started for {self.session_id}")

    async def _run(self, interval: float, tick: Callable[[], Awaitable[Optional[MonitorEvent]]]):
        while self._active:
            await asyncio.sleep(interval)
            if not self._active:
                return
            event = await tick()
            if event is not None and event.is_termination:
                self.terminate(event.reason)
                return

    async def heartbeat_tick(self) -> Optional[MonitorEvent]:
        try:
            await self.store.heartbeat(self.session_id, self.token, self.fingerprint, self.time_remaining())
            self.heartbeat_failures = 0
            return None
        except Exception as e:
            self.heartbeat_failures += 1
            logger.warning(
                f"Heartbeat failed for session {self.session_id} "
                f"({self.heartbeat_failures}/{self.timings.heartbeat_max_failures}): {e}"
            )
            if self.heartbeat_failures >= self.timings.heartbeat_max_failures:
                return MonitorEvent.terminate(TerminationReason.CONNECTION_LOST)
            return None

    async def device_check_tick(self) -> Optional[MonitorEvent]:
        try:
            record = await self.store.get_security(self.session_id, self.token)
        except Exception as e:
            logger.warning(f"Device check read failed for session {self.session_id}: {e}")
            return None

        if record is None:
            return MonitorEvent.terminate(TerminationReason.SECURITY_MISSING)
        if not record.is_active:
            return MonitorEvent.terminate(TerminationReason.SECURITY_INACTIVE)
        if record.device_fingerprint != self.fingerprint:
            logger.warning(
                f"Session {self.session_id} claimed by another device "
                f"({record.device_fingerprint} != {self.fingerprint})"
            )
            return MonitorEvent.terminate(TerminationReason.DEVICE_TAKEOVER)

        if seconds_since(record.last_verified) > self.timings.stale_verification_seconds:
            try:
                reclaimed = await self.store.claim_security(
                    self.session_id, self.token, self.fingerprint, expected_fingerprint=self.fingerprint
                )
            except Exception as e:
                logger.warning(f"Reclaim failed for session {self.session_id}: {e}")
                return None
            if reclaimed:
                logger.info(f"Reclaimed stale security record for session {self.session_id}")
                return MonitorEvent(kind="reclaimed")
        return None

    async def status_check_tick(self) -> Optional[MonitorEvent]:
        try:
            exam_session = await self.store.get_session(self.session_id)
        except Exception as e:
            logger.warning(f"Status check read failed for session {self.session_id}: {e}")
            return None

        if exam_session is None:
            return MonitorEvent.terminate(TerminationReason.SESSION_MISSING)
        if exam_session.status != "in_progress":
            return MonitorEvent.terminate(TerminationReason.STATUS_CHANGED)
        if exam_session.security_token != self.token:
            return MonitorEvent.terminate(TerminationReason.TOKEN_CHANGED)
        return None

    def _cancel_checks(self):
        current = asyncio.current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()

    def terminate(self, reason: str):
        """Stop all checks and notify the owner. Only the first call has any effect."""
        if self._terminated:
            return
        self._active = False
        self._terminated = True
        self.termination_reason = reason
        self._cancel_checks()
        logger.warning(f"Session {self.session_id} terminated: {reason}")

        try:
            self.on_terminated(reason)
        except Exception as e:
            logger.error(f"Termination callback failed for session {self.session_id}: {e}", exc_info=True)

        if self.on_redirect_home is not None:
            self._redirect_task = asyncio.create_task(self._redirect_after_grace())

    async def _redirect_after_grace(self):
        await asyncio.sleep(self.timings.redirect_grace_seconds)
        self.on_redirect_home()

    def stop(self):
        """Silent teardown for a session that is ending normally. No callbacks fire."""
        self._active = False
        self._terminated = True
        self._cancel_checks()
        if self._redirect_task is not None and not self._redirect_task.done():
            self._redirect_task.cancel()

    async def aclose(self):
        self.stop()
        pending = [task for task in self.tasks if not task.done() and task is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
