from sqlalchemy import Column, String, ForeignKey, Float, Text, Boolean, Integer, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel


class Exam(BaseModel):
    __tablename__ = "exams"

    exam_code = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, default=60)
    total_marks = Column(Float, default=0)
    grade = Column(String, nullable=True)
    section = Column(String, nullable=True)
    questions_shuffled = Column(Boolean, default=False)
    options_shuffled = Column(Boolean, default=False)
    fullscreen_required = Column(Boolean, default=True)
    show_results = Column(Boolean, default=True)
    exam_active = Column(Boolean, default=True)
    created_by = Column(Integer, nullable=True)

    questions = relationship("Question", back_populates="exam", order_by="Question.id")
    assignments = relationship("ExamAssignment", back_populates="exam")


class ExamAssignment(BaseModel):
    __tablename__ = "exam_assignments"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_assignment_exam_student"),)

    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)

    exam = relationship("Exam", back_populates="assignments")


class Question(BaseModel):
    __tablename__ = "questions"

    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    question_type = Column(String, default="mcq")
    question_text = Column(Text, default="")
    image_url = Column(String, nullable=True)
    marks = Column(Float, default=1)
    options = Column(JSON, nullable=True)
    matching_pairs = Column(JSON, nullable=True)
    blanks = Column(JSON, nullable=True)

    exam = relationship("Exam", back_populates="questions")
