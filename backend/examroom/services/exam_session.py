"""
Exam session controller.

One ``ExamSessionController`` drives a single student's attempt at a single
exam, from validation through the instruction screen, the timed in-progress
phase and finally submission or termination:

    loading -> instructions -> in_progress -> completed
                                          \\-> terminated

A controller owns every background task it starts (timer, fullscreen
watchdog, throttled answer writes, violation reset, redirect) plus a
``SessionMonitor``. ``close`` is the single teardown path and leaves nothing
running.
"""
import asyncio
import logging
import secrets
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel

from ..core.config import settings
from ..core.exceptions import (
    ActiveSessionElsewhere,
    ExamValidationError,
    InvalidSessionState,
    SessionAccessDenied,
    SubmissionError,
)
from ..models.session import SessionStatus
from ..schemas.exam import ExamInfo, ExamQuestion, MatchingPair, QuestionType, StudentInfo, parse_question
from ..schemas.scoring import ScoreResult
from ..schemas.session import ExamSummary, SessionSnapshot
from ..utils.fingerprint import DeviceSignals, compute_fingerprint
from ..utils.shuffle import (
    build_seed,
    item_seed,
    seeded_shuffle,
    shuffle_matching_pairs,
    shuffle_options_with_seed,
)
from ..utils.timezone import get_naive_now, seconds_since
from .answer_store import AnswerStore
from .scoring import calculate_score, grade_for_percent, result_comment
from .session_monitor import MonitorTimings, SessionMonitor, TerminationReason
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class ExamStatus:
    LOADING = "loading"
    INSTRUCTIONS = "instructions"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    TERMINATED = "terminated"


VIOLATION_LIMIT_REASON = "Multiple security violations detected"
OTHER_DEVICE_REASON = "This exam is already active on another device."


class EngineTimings(BaseModel):
    timer_tick_seconds: float = 1.0
    fullscreen_check_interval: float = 2.0
    fullscreen_warning_debounce: float = 5.0
    answer_save_throttle: float = 1.0
    max_violations: int = 3
    violation_reset_seconds: float = 30.0
    redirect_grace_seconds: float = 3.0
    monitor: MonitorTimings = MonitorTimings()

    @classmethod
    def from_settings(cls, config=None) -> "EngineTimings":
        config = config or settings
        return cls(
            timer_tick_seconds=config.timer_tick_seconds,
            fullscreen_check_interval=config.fullscreen_check_interval,
            fullscreen_warning_debounce=config.fullscreen_warning_debounce,
            answer_save_throttle=config.answer_save_throttle,
            max_violations=config.max_violations,
            violation_reset_seconds=config.violation_reset_seconds,
            redirect_grace_seconds=config.redirect_grace_seconds,
            monitor=MonitorTimings.from_settings(config),
        )


class ExamSessionController:
    def __init__(
        self,
        store: SessionStore,
        student_code: str,
        exam_code: str,
        signals: Optional[DeviceSignals] = None,
        timings: Optional[EngineTimings] = None,
        handle: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.student_code = student_code
        self.exam_code = exam_code
        self.timings = timings or EngineTimings.from_settings()
        self.handle = handle or uuid.uuid4().hex
        self.fingerprint = compute_fingerprint(signals or DeviceSignals())
        self._clock = clock

        self.status = ExamStatus.LOADING
        self.student: Optional[StudentInfo] = None
        self.exam: Optional[ExamInfo] = None
        self._base_questions: List[ExamQuestion] = []
        self.questions: List[ExamQuestion] = []
        self.answers: Optional[AnswerStore] = None

        self.session_id: Optional[str] = None
        self.token: Optional[str] = None
        self.shuffle_seed: Optional[str] = None
        self.time_remaining = 0
        self.is_resuming = False

        self.monitor: Optional[SessionMonitor] = None
        self.termination_reason: Optional[str] = None
        self.redirect_home = False
        self.result: Optional[ScoreResult] = None
        self.grade: Optional[str] = None
        self.finished = asyncio.Event()

        self.fullscreen_requested = False
        self.is_fullscreen = False
        self.fullscreen_warning = False
        self._last_fullscreen_warning: Optional[float] = None

        self.violation_count = 0
        self.warning_message: Optional[str] = None

        self._submitting = False
        self._auto_submit_triggered = False
        self._timer_task: Optional[asyncio.Task] = None
        self._watchdog_task: Optional[asyncio.Task] = None
        self._violation_reset_task: Optional[asyncio.Task] = None
        self._redirect_task: Optional[asyncio.Task] = None
        self._auto_submit_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._save_scheduled: Set[int] = set()
        self._last_saved_at: Dict[int, float] = {}

    # Loading

    async def load(self) -> "ExamSessionController":
        """Validate the student against the exam and decide where the attempt starts."""
        student = await self.store.get_student(self.student_code)
        if not student:
            raise ExamValidationError("Student not found. Please check your Student ID.", status_code=404)

        exam = await self.store.get_exam_by_code(self.exam_code)
        if not exam:
            raise ExamValidationError("Exam not found. Please check the exam code.", status_code=404)
        if not exam.exam_active:
            raise ExamValidationError("This exam is not currently active.")
        if exam.grade and exam.grade != student.grade:
            raise ExamValidationError("This exam is not available for your grade.", status_code=403)
        if exam.section and exam.section != student.section:
            raise ExamValidationError("This exam is not available for your section.", status_code=403)
        if not await self.store.is_assigned(exam.id, student.id):
            raise ExamValidationError("You are not assigned to this exam.", status_code=403)

        other = await self.store.find_other_active_session(student.id, exam.id)
        if other is not None:
            other_code = await self.store.get_exam_code(other.exam_id)
            raise ActiveSessionElsewhere(other.id, other.exam_id, other_code)

        rows = await self.store.get_question_rows(exam.id)
        if not rows:
            raise ExamValidationError("No questions found for this exam", status_code=404)

        self.student = student
        self.exam = exam
        self._base_questions = [parse_question(row) for row in rows]

        existing = await self.store.find_active_session(student.id, exam.id)
        if existing is not None:
            await self._resume(existing)
            return self

        finished = await self.store.find_finished_session(student.id, exam.id)
        if finished is not None:
            await self._load_finished(finished)
            return self

        self.questions = list(self._base_questions)
        self.time_remaining = exam.duration * 60
        self.status = ExamStatus.INSTRUCTIONS
        logger.info(f"Exam {exam.exam_code} loaded for student {student.student_id}")
        return self

    async def _resume(self, existing):
        security = await self.store.get_security(existing.id, existing.security_token)
        if security is None or not security.is_active:
            self._enter_terminated(TerminationReason.SECURITY_INACTIVE)
            return

        if security.device_fingerprint != self.fingerprint:
            age = seconds_since(security.last_verified)
            if age <= self.timings.monitor.stale_verification_seconds:
                logger.warning(f"Session {existing.id} is held by another device ({age:.1f}s since last check)")
                self._enter_terminated(OTHER_DEVICE_REASON)
                return
            claimed = await self.store.claim_security(
                existing.id, existing.security_token, self.fingerprint,
                expected_fingerprint=security.device_fingerprint,
            )
            if not claimed:
                self._enter_terminated(OTHER_DEVICE_REASON)
                return
            logger.info(f"Session {existing.id} claimed from a stale device")
        else:
            await self.store.claim_security(
                existing.id, existing.security_token, self.fingerprint,
                expected_fingerprint=self.fingerprint,
            )

        self.session_id = existing.id
        self.token = existing.security_token
        self.shuffle_seed = existing.shuffle_seed
        self.questions = self._arrange(existing.shuffle_seed, existing.question_order)
        self.answers = AnswerStore(self.questions)
        restored = self.answers.restore(await self.store.load_answers(existing.id))

        if existing.time_remaining is not None:
            self.time_remaining = max(0, int(existing.time_remaining))
        else:
            self.time_remaining = self.exam.duration * 60
        self.is_resuming = True
        logger.info(
            f"Resumed session {existing.id} with {restored} saved answers "
            f"and {self.time_remaining}s remaining"
        )
        self._begin_in_progress()

    async def _load_finished(self, finished):
        self.session_id = finished.id
        if finished.status == SessionStatus.TERMINATED:
            self._enter_terminated(finished.terminated_reason or TerminationReason.STATUS_CHANGED)
            return

        self.status = ExamStatus.COMPLETED
        result = await self.store.get_result(self.exam.id, self.student.id)
        if result is not None:
            self.grade = result.grade
        self.finished.set()

    def _enter_terminated(self, reason: str):
        self.status = ExamStatus.TERMINATED
        self.termination_reason = reason
        self.finished.set()

    # Arrangement

    def _arrange(self, seed: Optional[str], order: Optional[List[int]]) -> List[ExamQuestion]:
        """Rebuild the display order and per-question shuffles from a stored seed."""
        by_id = {question.id: question for question in self._base_questions}
        if order:
            listed = [by_id[question_id] for question_id in order if question_id in by_id]
            seen = {question.id for question in listed}
            questions = listed + [q for q in self._base_questions if q.id not in seen]
        else:
            questions = list(self._base_questions)

        if not seed:
            return questions
        return [self._shuffle_question(question, seed) for question in questions]

    def _shuffle_question(self, question: ExamQuestion, seed: str) -> ExamQuestion:
        question_seed = item_seed(seed, question.id)
        if question.is_choice and self.exam.options_shuffled and question.options:
            options, correct = shuffle_options_with_seed(question.options, question_seed, question.correct_option_id)
            return question.model_copy(update={"options": options, "correct_option_id": correct})
        if question.question_type == QuestionType.MATCHING and len(question.pairs) > 1:
            pairs = shuffle_matching_pairs([p.model_dump(by_alias=True) for p in question.pairs], question_seed)
            return question.model_copy(update={"pairs": [MatchingPair(**pair) for pair in pairs]})
        return question

    # Starting

    async def start(self) -> "ExamSessionController":
        if self.status != ExamStatus.INSTRUCTIONS:
            raise InvalidSessionState("The exam cannot be started from its current state.")

        other = await self.store.find_other_active_session(self.student.id, self.exam.id)
        if other is not None:
            other_code = await self.store.get_exam_code(other.exam_id)
            raise ActiveSessionElsewhere(other.id, other.exam_id, other_code)

        session_id = str(uuid.uuid4())
        token = secrets.token_urlsafe(32)
        seed = build_seed(self.student.id, self.exam.id, self.exam.exam_code, nonce=secrets.token_hex(4))
        if self.exam.questions_shuffled:
            ordered = seeded_shuffle(self._base_questions, seed)
        else:
            ordered = list(self._base_questions)
        order = [question.id for question in ordered]

        await self.store.create_session(
            session_id=session_id,
            student_pk=self.student.id,
            exam=self.exam,
            token=token,
            fingerprint=self.fingerprint,
            shuffle_seed=seed,
            question_order=order,
        )

        self.session_id = session_id
        self.token = token
        self.shuffle_seed = seed
        self.questions = self._arrange(seed, order)
        self.answers = AnswerStore(self.questions)
        self.time_remaining = self.exam.duration * 60
        self.fullscreen_requested = self.exam.fullscreen_required
        logger.info(f"Started session {session_id} for student {self.student.student_id} on {self.exam.exam_code}")
        self._begin_in_progress()
        return self

    def _new_monitor(self) -> SessionMonitor:
        return SessionMonitor(
            self.store,
            self.session_id,
            self.token,
            self.fingerprint,
            on_terminated=self._on_monitor_terminated,
            on_redirect_home=self._on_redirect_home,
            time_remaining=lambda: self.time_remaining,
            timings=self.timings.monitor,
        )

    def _begin_in_progress(self):
        self.status = ExamStatus.IN_PROGRESS
        self.monitor = self._new_monitor()
        self.monitor.start()
        self._start_timer()
        self._start_watchdog()

    def verify_token(self, token: Optional[str]):
        if self.token is None or not token or not secrets.compare_digest(token, self.token):
            raise SessionAccessDenied("Invalid or missing session token.")

    # Timer

    def _start_timer(self):
        if self._timer_task is None or self._timer_task.done():
            self._timer_task = asyncio.create_task(self._run_timer(), name=f"timer:{self.session_id}")

    async def _run_timer(self):
        while self.status == ExamStatus.IN_PROGRESS:
            if self.time_remaining > 0:
                await asyncio.sleep(self.timings.timer_tick_seconds)
            if self.tick_timer():
                self._auto_submit_task = asyncio.create_task(self._auto_submit(), name=f"auto-submit:{self.session_id}")
                return
            if self._auto_submit_triggered:
                return

    def tick_timer(self) -> bool:
        """
        Count one second down. Returns True exactly once, on the tick that
        should trigger the automatic submission.
        """
        if self.status != ExamStatus.IN_PROGRESS:
            return False
        if self.time_remaining > 0:
            self.time_remaining -= 1
        if self.time_remaining <= 0 and not self._auto_submit_triggered:
            self._auto_submit_triggered = True
            return True
        return False

    async def _auto_submit(self):
        logger.info(f"Time is up for session {self.session_id}, submitting automatically")
        try:
            await self.submit(is_auto_submit=True)
        except SubmissionError:
            logger.warning(f"Automatic submission failed for session {self.session_id}; manual submit remains available")

    # Answers

    def _require_in_progress(self):
        if self.status != ExamStatus.IN_PROGRESS:
            raise InvalidSessionState("The exam is not in progress.")
        if self._submitting:
            raise InvalidSessionState("The exam is being submitted.")

    def _ensure_monitor_active(self) -> bool:
        """False (after routing to the terminated state) when the monitor has stopped."""
        if self.monitor is not None and self.monitor.is_active():
            return True
        if self.status == ExamStatus.IN_PROGRESS and not self._submitting:
            reason = (self.monitor.termination_reason if self.monitor else None) or TerminationReason.SECURITY_INACTIVE
            self._on_monitor_terminated(reason)
        return False

    def _require_live_session(self):
        self._require_in_progress()
        if not self._ensure_monitor_active():
            raise InvalidSessionState(self.termination_reason or TerminationReason.SECURITY_INACTIVE)

    async def set_answer(self, index: int, value: Any) -> Any:
        self._require_live_session()
        stored = self.answers.set_answer(index, value)
        self._schedule_save(index)
        return stored

    async def toggle_flag(self, index: int) -> bool:
        self._require_live_session()
        flagged = self.answers.toggle_flag(index)
        await self._persist_answer(index)
        return flagged

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _schedule_save(self, index: int):
        # A write already waiting for this question will pick up the latest value.
        if index in self._save_scheduled:
            return
        last = self._last_saved_at.get(index)
        delay = 0.0
        if last is not None:
            delay = max(0.0, self.timings.answer_save_throttle - (self._clock() - last))
        self._save_scheduled.add(index)
        self._track(asyncio.create_task(self._save_after(index, delay)))

    async def _save_after(self, index: int, delay: float):
        try:
            if delay > 0:
                await asyncio.sleep(delay)
        finally:
            self._save_scheduled.discard(index)
        self._last_saved_at[index] = self._clock()
        await self._persist_answer(index)

    async def _persist_answer(self, index: int):
        if not self._ensure_monitor_active():
            return
        question = self.questions[index]
        values = dict(self.answers.storage_fields(index))
        values["is_flagged"] = index in self.answers.flags
        values["answered_at"] = get_naive_now()
        try:
            await self.store.save_answer(self.session_id, question.id, values)
        except Exception as e:
            logger.error(f"Error saving answer for question {question.id} in session {self.session_id}: {e}")

    # Submission

    def _cancel_activity_tasks(self):
        # Cancelled tasks stay tracked until they finish; the slots are freed for restarts.
        current = asyncio.current_task()
        tasks = [self._timer_task, self._watchdog_task, self._violation_reset_task, *self._background]
        for task in tasks:
            if task is None or task.done():
                continue
            if task is not current:
                task.cancel()
            self._track(task)
        self._timer_task = None
        self._watchdog_task = None
        self._violation_reset_task = None
        self._save_scheduled.clear()

    async def submit(self, is_auto_submit: bool = False) -> Optional[ScoreResult]:
        if self.status == ExamStatus.COMPLETED:
            return self.result
        if self.status != ExamStatus.IN_PROGRESS:
            raise InvalidSessionState("The exam is not in progress.")
        if self._submitting:
            return None

        self._submitting = True
        if self.monitor is not None:
            self.monitor.stop()
        self._cancel_activity_tasks()
        try:
            score = calculate_score(self.questions, self.answers.answers)
            grade = grade_for_percent(score.percent)
            answer_rows = []
            for index, question in enumerate(self.questions):
                row = {"question_id": question.id, **self.answers.storage_fields(index)}
                row["is_flagged"] = index in self.answers.flags
                row["is_correct"] = score.question_results[index].is_fully_correct
                answer_rows.append(row)

            await self.store.complete_session(
                session_id=self.session_id,
                token=self.token,
                exam=self.exam,
                student_pk=self.student.id,
                total_marks=score.total_marks,
                grade=grade,
                comment=result_comment(score),
                answer_rows=answer_rows,
            )
        except Exception as e:
            logger.error(f"Error submitting session {self.session_id}: {e}", exc_info=True)
            self._resume_after_failed_submit()
            raise SubmissionError() from e
        finally:
            self._submitting = False

        self.result = score
        self.grade = grade
        self.status = ExamStatus.COMPLETED
        self.fullscreen_requested = False
        self.fullscreen_warning = False
        self.finished.set()
        logger.info(
            f"Session {self.session_id} submitted{' automatically' if is_auto_submit else ''}: "
            f"{score.total_marks}/{score.total_possible_marks} ({score.percent}%, grade {grade})"
        )
        return score

    def _resume_after_failed_submit(self):
        self.monitor = self._new_monitor()
        self.monitor.start()
        if self.time_remaining > 0:
            self._start_timer()
        self._start_watchdog()

    # Termination

    def _on_monitor_terminated(self, reason: str):
        if self.status in (ExamStatus.COMPLETED, ExamStatus.TERMINATED):
            return
        self.status = ExamStatus.TERMINATED
        self.termination_reason = reason
        self.fullscreen_warning = False
        self.fullscreen_requested = False
        self._cancel_activity_tasks()
        self.finished.set()

    def _on_redirect_home(self):
        self.redirect_home = True

    def end_for_takeover(self):
        """Another device has claimed this session; end it as the device check would."""
        if self.monitor is not None and self.monitor.is_active():
            self.monitor.terminate(TerminationReason.DEVICE_TAKEOVER)
        else:
            self._on_monitor_terminated(TerminationReason.DEVICE_TAKEOVER)

    async def _redirect_after_grace(self):
        await asyncio.sleep(self.timings.redirect_grace_seconds)
        self._on_redirect_home()

    async def _terminate_for_violations(self):
        if self.monitor is not None:
            self.monitor.stop()
        self._on_monitor_terminated(VIOLATION_LIMIT_REASON)
        try:
            await self.store.terminate_session(self.session_id, self.exam, self.student.id, VIOLATION_LIMIT_REASON)
        except Exception as e:
            logger.error(f"Error recording termination of session {self.session_id}: {e}", exc_info=True)
        self._redirect_task = asyncio.create_task(self._redirect_after_grace())

    # Proctoring

    async def _log_violation(self, violation_type: str, severity: str, description: Optional[str], metadata=None):
        try:
            await self.store.log_violation(
                self.session_id, self.student.id, violation_type, severity, description, metadata
            )
        except Exception as e:
            logger.error(f"Error logging {violation_type} violation for session {self.session_id}: {e}")

    async def report_violation(
        self,
        violation_type: str,
        severity: str = "medium",
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Log a proctoring violation; the student is removed once the limit is reached."""
        self._require_live_session()
        await self._log_violation(violation_type, severity or "medium", description, metadata)
        if self.status != ExamStatus.IN_PROGRESS or self._submitting:
            # Submitted or ended while the violation was being written.
            return self.violation_count

        self.violation_count += 1
        if self._violation_reset_task is not None and not self._violation_reset_task.done():
            self._violation_reset_task.cancel()
        self._violation_reset_task = asyncio.create_task(self._reset_violations_later())

        remaining = self.timings.max_violations - self.violation_count
        if remaining <= 0:
            logger.warning(f"Violation limit reached for session {self.session_id}")
            await self._terminate_for_violations()
        elif remaining == 1:
            self.warning_message = "Final warning: one more violation will end your exam."
        else:
            self.warning_message = f"Security violation detected ({self.violation_count}/{self.timings.max_violations})."
        return self.violation_count

    async def _reset_violations_later(self):
        await asyncio.sleep(self.timings.violation_reset_seconds)
        self.violation_count = 0
        self.warning_message = None

    # Fullscreen

    def _start_watchdog(self):
        if not self.exam.fullscreen_required:
            return
        if self._watchdog_task is None or self._watchdog_task.done():
            self._watchdog_task = asyncio.create_task(self._run_watchdog(), name=f"fullscreen:{self.session_id}")

    async def _run_watchdog(self):
        while self.status == ExamStatus.IN_PROGRESS:
            await asyncio.sleep(self.timings.fullscreen_check_interval)
            self.check_fullscreen()

    def report_fullscreen(self, is_fullscreen: bool, request_failed: bool = False) -> bool:
        self._require_in_progress()
        if request_failed:
            logger.warning(f"Fullscreen request failed for session {self.session_id}")
        self.is_fullscreen = is_fullscreen
        if is_fullscreen:
            self.fullscreen_requested = False
        return self.check_fullscreen()

    def check_fullscreen(self, now: Optional[float] = None) -> bool:
        """Raise the fullscreen warning if needed. Returns True when a new warning was raised."""
        if self.status != ExamStatus.IN_PROGRESS or not self.exam.fullscreen_required or self.is_fullscreen:
            self.fullscreen_warning = False
            return False

        now = self._clock() if now is None else now
        if (
            self._last_fullscreen_warning is not None
            and now - self._last_fullscreen_warning < self.timings.fullscreen_warning_debounce
        ):
            return False

        self._last_fullscreen_warning = now
        self.fullscreen_warning = True
        self._track(asyncio.create_task(
            self._log_violation("fullscreen_exit", "high", "Student left fullscreen mode")
        ))
        return True

    # Teardown

    def all_tasks(self) -> List[asyncio.Task]:
        tasks = [self._timer_task, self._watchdog_task, self._violation_reset_task,
                 self._redirect_task, self._auto_submit_task, *self._background]
        if self.monitor is not None:
            tasks.extend(self.monitor.tasks)
        return [task for task in tasks if task is not None]

    def pending_tasks(self) -> List[asyncio.Task]:
        return [task for task in self.all_tasks() if not task.done()]

    async def close(self):
        """Stop the attempt's background work, e.g. when the student navigates away."""
        current = asyncio.current_task()
        if self._auto_submit_task is not None and self._auto_submit_task is not current and not self._auto_submit_task.done():
            await asyncio.gather(self._auto_submit_task, return_exceptions=True)
        if self.monitor is not None:
            await self.monitor.aclose()

        pending = [task for task in self.pending_tasks() if task is not current]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._save_scheduled.clear()

    # Views

    def snapshot(self) -> SessionSnapshot:
        exam = None
        if self.exam is not None:
            exam = ExamSummary(
                id=self.exam.id,
                exam_code=self.exam.exam_code,
                title=self.exam.title,
                description=self.exam.description,
                duration=self.exam.duration,
                total_marks=self.exam.total_marks,
                question_count=len(self._base_questions),
                fullscreen_required=self.exam.fullscreen_required,
                show_results=self.exam.show_results,
            )

        snapshot = SessionSnapshot(
            handle=self.handle,
            status=self.status,
            session_id=self.session_id,
            exam=exam,
            student_name=self.student.name if self.student else None,
            is_resuming=self.is_resuming,
            time_remaining=self.time_remaining,
            fullscreen_requested=self.fullscreen_requested,
            fullscreen_warning=self.fullscreen_warning,
            violation_count=self.violation_count,
            warning_message=self.warning_message,
            termination_reason=self.termination_reason,
            redirect_home=self.redirect_home,
        )

        if self.status == ExamStatus.IN_PROGRESS and self.answers is not None:
            snapshot.questions = [question.client_view() for question in self.questions]
            snapshot.answers = list(self.answers.answers)
            snapshot.flagged = sorted(self.answers.flags)
            snapshot.stats = self.answers.stats()
        if self.status == ExamStatus.COMPLETED and self.exam is not None and self.exam.show_results:
            snapshot.result = self.result
            snapshot.grade = self.grade
        return snapshot
