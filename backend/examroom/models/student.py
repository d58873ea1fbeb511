from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import BaseModel


class Student(BaseModel):
    __tablename__ = "students"

    student_id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, index=True)
    grade = Column(String, nullable=True)
    section = Column(String, nullable=True)

    exam_sessions = relationship("ExamSession", back_populates="student")
    results = relationship("Result", back_populates="student")
