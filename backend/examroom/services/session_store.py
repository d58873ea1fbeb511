"""
Persistence collaborator for the exam session engine.

Every operation opens its own ``AsyncSession`` from the factory, so the
monitor's periodic checks, the timer and request handlers can run
concurrently without sharing a session.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.cache import CacheManager, cache as default_cache
from ..core.config import settings
from ..core.exceptions import ActiveSessionConflict
from ..models import (
    Exam,
    ExamAssignment,
    ExamSession,
    ProctoringViolation,
    Question,
    Result,
    SessionSecurity,
    SessionStatus,
    Student,
    StudentAnswer,
)
from ..schemas.exam import ExamInfo, StudentInfo
from ..utils.timezone import get_naive_now

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, session_factory: async_sessionmaker, cache: CacheManager = None):
        self.session_factory = session_factory
        self.cache = cache or default_cache

    # Directory reads

    async def get_student(self, student_code: str) -> Optional[StudentInfo]:
        async with self.session_factory() as db:
            result = await db.execute(select(Student).filter(Student.student_id == student_code))
            student = result.scalars().first()
            return StudentInfo.model_validate(student) if student else None

    async def get_exam_by_code(self, exam_code: str) -> Optional[ExamInfo]:
        async with self.session_factory() as db:
            result = await db.execute(select(Exam).filter(Exam.exam_code == exam_code))
            exam = result.scalars().first()
            return ExamInfo.model_validate(exam) if exam else None

    async def is_assigned(self, exam_id: int, student_pk: int) -> bool:
        """True when the exam has no assignment list or the student is on it."""
        async with self.session_factory() as db:
            result = await db.execute(select(ExamAssignment.student_id).filter(ExamAssignment.exam_id == exam_id))
            assigned = set(result.scalars().all())
            return not assigned or student_pk in assigned

    async def get_question_rows(self, exam_id: int) -> List[Dict[str, Any]]:
        cache_key = f"exam_questions:{exam_id}"
        cached = await self.cache.aget(cache_key)
        if cached:
            return cached

        async with self.session_factory() as db:
            result = await db.execute(
                select(Question).filter(Question.exam_id == exam_id).order_by(Question.id)
            )
            rows = [
                {
                    "id": q.id,
                    "question_type": q.question_type,
                    "question_text": q.question_text,
                    "image_url": q.image_url,
                    "marks": q.marks,
                    "options": q.options,
                    "matching_pairs": q.matching_pairs,
                    "blanks": q.blanks,
                }
                for q in result.scalars().all()
            ]

        if rows:
            await self.cache.aset(cache_key, rows, ttl=settings.question_cache_ttl)
        return rows

    # Exam sessions

    async def get_session(self, session_id: str) -> Optional[ExamSession]:
        async with self.session_factory() as db:
            result = await db.execute(select(ExamSession).filter(ExamSession.id == session_id))
            return result.scalars().first()

    async def find_active_session(self, student_pk: int, exam_id: int) -> Optional[ExamSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ExamSession).filter(
                    ExamSession.student_id == student_pk,
                    ExamSession.exam_id == exam_id,
                    ExamSession.status == SessionStatus.IN_PROGRESS,
                )
            )
            return result.scalars().first()

    async def find_other_active_session(self, student_pk: int, exam_id: int) -> Optional[ExamSession]:
        """An in-progress session of the same student for a different exam."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(ExamSession).filter(
                    ExamSession.student_id == student_pk,
                    ExamSession.exam_id != exam_id,
                    ExamSession.status == SessionStatus.IN_PROGRESS,
                ).order_by(ExamSession.started_at.desc())
            )
            return result.scalars().first()

    async def find_finished_session(self, student_pk: int, exam_id: int) -> Optional[ExamSession]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(ExamSession).filter(
                    ExamSession.student_id == student_pk,
                    ExamSession.exam_id == exam_id,
                    ExamSession.status.in_([SessionStatus.SUBMITTED, SessionStatus.TERMINATED]),
                ).order_by(ExamSession.started_at.desc())
            )
            return result.scalars().first()

    async def get_exam_code(self, exam_id: int) -> Optional[str]:
        async with self.session_factory() as db:
            result = await db.execute(select(Exam.exam_code).filter(Exam.id == exam_id))
            return result.scalars().first()

    async def create_session(
        self,
        session_id: str,
        student_pk: int,
        exam: ExamInfo,
        token: str,
        fingerprint: str,
        shuffle_seed: str,
        question_order: List[int],
    ) -> ExamSession:
        """Create the ExamSession and its SessionSecurity record together."""
        now = get_naive_now()
        async with self.session_factory() as db:
            exam_session = ExamSession(
                id=session_id,
                student_id=student_pk,
                exam_id=exam.id,
                teacher_id=exam.created_by,
                status=SessionStatus.IN_PROGRESS,
                time_remaining=exam.duration * 60,
                started_at=now,
                last_activity_at=now,
                security_token=token,
                shuffle_seed=shuffle_seed,
                question_order=question_order,
            )
            db.add(exam_session)
            try:
                await db.flush()
            except IntegrityError:
                await db.rollback()
                logger.warning(f"Duplicate active session for student {student_pk} exam {exam.id}")
                raise ActiveSessionConflict()

            db.add(SessionSecurity(
                session_id=session_id,
                token=token,
                device_fingerprint=fingerprint,
                is_active=True,
                last_verified=now,
            ))
            await db.commit()
            await db.refresh(exam_session)
            return exam_session

    # Session security

    async def get_security(self, session_id: str, token: str) -> Optional[SessionSecurity]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(SessionSecurity).filter(
                    SessionSecurity.session_id == session_id,
                    SessionSecurity.token == token,
                ).order_by(SessionSecurity.id.desc())
            )
            return result.scalars().first()

    async def claim_security(self, session_id: str, token: str, fingerprint: str, expected_fingerprint: Optional[str] = None) -> bool:
        """
        Bind the active security record to ``fingerprint`` and refresh it.

        With ``expected_fingerprint`` the write only happens while the record
        still carries that fingerprint.
        """
        conditions = [
            SessionSecurity.session_id == session_id,
            SessionSecurity.token == token,
            SessionSecurity.is_active.is_(True),
        ]
        if expected_fingerprint is not None:
            conditions.append(SessionSecurity.device_fingerprint == expected_fingerprint)
        async with self.session_factory() as db:
            result = await db.execute(
                update(SessionSecurity)
                .where(*conditions)
                .values(device_fingerprint=fingerprint, last_verified=get_naive_now())
            )
            await db.commit()
            return result.rowcount > 0

    async def heartbeat(self, session_id: str, token: str, fingerprint: str, time_remaining: int) -> bool:
        """
        Record liveness for the owning device.

        The security record is only refreshed while it still carries this
        device's fingerprint, so a heartbeat never takes ownership back from a
        device that claimed the session.
        """
        now = get_naive_now()
        async with self.session_factory() as db:
            result = await db.execute(
                update(ExamSession)
                .where(
                    ExamSession.id == session_id,
                    ExamSession.security_token == token,
                    ExamSession.status == SessionStatus.IN_PROGRESS,
                )
                .values(last_activity_at=now, time_remaining=time_remaining)
            )
            await db.execute(
                update(SessionSecurity)
                .where(
                    SessionSecurity.session_id == session_id,
                    SessionSecurity.token == token,
                    SessionSecurity.device_fingerprint == fingerprint,
                    SessionSecurity.is_active.is_(True),
                )
                .values(last_verified=now)
            )
            await db.commit()
            return result.rowcount > 0

    async def deactivate_security(self, session_id: str):
        async with self.session_factory() as db:
            await db.execute(
                update(SessionSecurity)
                .where(SessionSecurity.session_id == session_id)
                .values(is_active=False)
            )
            await db.commit()

    # Answers

    async def _upsert_answer(self, db: AsyncSession, session_id: str, question_id: int, values: Dict[str, Any]):
        result = await db.execute(
            select(StudentAnswer).filter(
                StudentAnswer.session_id == session_id,
                StudentAnswer.question_id == question_id,
            )
        )
        row = result.scalars().first()
        if row is None:
            row = StudentAnswer(session_id=session_id, question_id=question_id)
            db.add(row)
        for field, value in values.items():
            setattr(row, field, value)

    async def save_answer(self, session_id: str, question_id: int, values: Dict[str, Any]):
        async with self.session_factory() as db:
            await self._upsert_answer(db, session_id, question_id, values)
            await db.commit()

    async def load_answers(self, session_id: str) -> List[Dict[str, Any]]:
        async with self.session_factory() as db:
            result = await db.execute(select(StudentAnswer).filter(StudentAnswer.session_id == session_id))
            return [
                {
                    "question_id": row.question_id,
                    "selected_option_id": row.selected_option_id,
                    "answer_payload": row.answer_payload,
                    "is_flagged": bool(row.is_flagged),
                }
                for row in result.scalars().all()
            ]

    # Completion

    async def _upsert_result(self, db: AsyncSession, exam: ExamInfo, student_pk: int, values: Dict[str, Any]) -> Result:
        result = await db.execute(
            select(Result).filter(Result.exam_id == exam.id, Result.student_id == student_pk)
        )
        row = result.scalars().first()
        if row is None:
            row = Result(exam_id=exam.id, student_id=student_pk, teacher_id=exam.created_by)
            db.add(row)
        for field, value in values.items():
            setattr(row, field, value)
        return row

    async def complete_session(
        self,
        session_id: str,
        token: str,
        exam: ExamInfo,
        student_pk: int,
        total_marks: float,
        grade: str,
        comment: str,
        answer_rows: List[Dict[str, Any]],
    ) -> Result:
        """Mark the session submitted and record answers, result and security in one transaction."""
        now = get_naive_now()
        async with self.session_factory() as db:
            updated = await db.execute(
                update(ExamSession)
                .where(
                    ExamSession.id == session_id,
                    ExamSession.security_token == token,
                    ExamSession.status == SessionStatus.IN_PROGRESS,
                )
                .values(
                    status=SessionStatus.SUBMITTED,
                    score=total_marks,
                    submitted_at=now,
                    time_remaining=0,
                )
            )
            if updated.rowcount == 0:
                await db.rollback()
                raise RuntimeError(f"Session {session_id} is no longer in progress")

            for row in answer_rows:
                values = {k: v for k, v in row.items() if k != "question_id"}
                await self._upsert_answer(db, session_id, row["question_id"], values)

            result_row = await self._upsert_result(db, exam, student_pk, {
                "total_marks_obtained": total_marks,
                "grade": grade,
                "comments": comment,
                "submission_time": now,
            })
            await db.execute(
                update(SessionSecurity)
                .where(SessionSecurity.session_id == session_id)
                .values(is_active=False)
            )
            await db.commit()
            await db.refresh(result_row)
            return result_row

    async def terminate_session(self, session_id: str, exam: ExamInfo, student_pk: int, reason: str):
        now = get_naive_now()
        async with self.session_factory() as db:
            updated = await db.execute(
                update(ExamSession)
                .where(ExamSession.id == session_id, ExamSession.status == SessionStatus.IN_PROGRESS)
                .values(
                    status=SessionStatus.TERMINATED,
                    terminated_reason=reason,
                    submitted_at=now,
                    time_remaining=0,
                )
            )
            if updated.rowcount == 0:
                logger.info(f"Session {session_id} already left in_progress, termination not recorded")
                return False
            await self._upsert_result(db, exam, student_pk, {
                "total_marks_obtained": 0,
                "grade": "F",
                "comments": f"Exam terminated: {reason}",
                "submission_time": now,
            })
            await db.execute(
                update(SessionSecurity)
                .where(SessionSecurity.session_id == session_id)
                .values(is_active=False)
            )
            await db.commit()
            return True

    async def get_result(self, exam_id: int, student_pk: int) -> Optional[Result]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Result).filter(Result.exam_id == exam_id, Result.student_id == student_pk)
            )
            return result.scalars().first()

    # Proctoring

    async def log_violation(
        self,
        session_id: str,
        student_pk: int,
        violation_type: str,
        severity: str = "medium",
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ProctoringViolation:
        async with self.session_factory() as db:
            violation = ProctoringViolation(
                session_id=session_id,
                student_id=student_pk,
                violation_type=violation_type,
                severity=severity,
                description=description,
                violation_metadata=metadata,
            )
            db.add(violation)
            await db.commit()
            await db.refresh(violation)
            return violation

    # Maintenance

    async def expire_abandoned_sessions(self, grace_seconds: int, now=None) -> List[str]:
        """Expire in-progress sessions that have been silent longer than their remaining time plus grace."""
        now = now or get_naive_now()
        async with self.session_factory() as db:
            result = await db.execute(
                select(ExamSession).filter(ExamSession.status == SessionStatus.IN_PROGRESS)
            )
            expired = []
            for exam_session in result.scalars().all():
                last_seen = exam_session.last_activity_at or exam_session.started_at
                deadline = last_seen + timedelta(seconds=(exam_session.time_remaining or 0) + grace_seconds)
                if deadline < now:
                    exam_session.status = SessionStatus.EXPIRED
                    expired.append(exam_session.id)

            if expired:
                await db.execute(
                    update(SessionSecurity)
                    .where(SessionSecurity.session_id.in_(expired))
                    .values(is_active=False)
                )
            await db.commit()
            return expired
