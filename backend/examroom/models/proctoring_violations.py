from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from ..utils.timezone import get_naive_now
from .base import BaseModel


class ProctoringViolation(BaseModel):
    __tablename__ = "proctoring_violations"

    session_id = Column(String, ForeignKey("exam_sessions.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    violation_type = Column(String, nullable=False)
    severity = Column(String, default="medium")
    description = Column(Text)
    violation_metadata = Column(JSON)
    timestamp = Column(DateTime, default=get_naive_now)

    session = relationship("ExamSession", back_populates="violations")

    def __repr__(self):
        return f"<ProctoringViolation {self.violation_type} for session {self.session_id}>"
