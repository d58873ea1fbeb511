from sqlalchemy import Column, String, DateTime, ForeignKey, Float, Text, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from ..utils.timezone import get_naive_now
from .base import BaseModel


class Result(BaseModel):
    """Aggregate outcome of one student's attempt at one exam."""
    __tablename__ = "results"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_results_exam_student"),)

    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    teacher_id = Column(Integer, nullable=True)
    total_marks_obtained = Column(Float, default=0)
    grade = Column(String, nullable=True)
    comments = Column(Text, nullable=True)
    submission_time = Column(DateTime, default=get_naive_now)
    updated_at = Column(DateTime, default=get_naive_now, onupdate=get_naive_now)

    student = relationship("Student", back_populates="results")
    exam = relationship("Exam")
