from sqlalchemy import Column, String, DateTime, ForeignKey, Float, Boolean, Integer, JSON, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from ..core.database import Base
from ..utils.timezone import get_naive_now
from .base import BaseModel


class SessionStatus:
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    TERMINATED = "terminated"
    EXPIRED = "expired"


class ExamSession(Base):
    __tablename__ = "exam_sessions"
    __table_args__ = (
        # One in-progress attempt per student and exam.
        Index(
            "uq_exam_sessions_active_attempt",
            "student_id",
            "exam_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )

    id = Column(String, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    teacher_id = Column(Integer, nullable=True)
    status = Column(String, default=SessionStatus.IN_PROGRESS, index=True)
    time_remaining = Column(Integer, nullable=False)
    started_at = Column(DateTime, default=get_naive_now)
    last_activity_at = Column(DateTime, default=get_naive_now)
    submitted_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=get_naive_now, onupdate=get_naive_now)
    security_token = Column(String, nullable=False)
    shuffle_seed = Column(String, nullable=False)
    question_order = Column(JSON, nullable=True)
    score = Column(Float, nullable=True)
    terminated_reason = Column(String, nullable=True)

    student = relationship("Student", back_populates="exam_sessions")
    exam = relationship("Exam")
    answers = relationship("StudentAnswer", back_populates="session")
    violations = relationship("ProctoringViolation", back_populates="session")


class SessionSecurity(BaseModel):
    __tablename__ = "session_security"

    session_id = Column(String, ForeignKey("exam_sessions.id"), nullable=False, index=True)
    token = Column(String, nullable=False)
    device_fingerprint = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    last_verified = Column(DateTime, default=get_naive_now)


class StudentAnswer(BaseModel):
    __tablename__ = "student_answers"
    __table_args__ = (UniqueConstraint("session_id", "question_id", name="uq_student_answers_session_question"),)

    session_id = Column(String, ForeignKey("exam_sessions.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    selected_option_id = Column(Integer, nullable=True)
    answer_payload = Column(JSON, nullable=True)
    is_flagged = Column(Boolean, default=False)
    is_correct = Column(Boolean, nullable=True)
    answered_at = Column(DateTime, nullable=True)

    session = relationship("ExamSession", back_populates="answers")
