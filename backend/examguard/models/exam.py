from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship
from .base import BaseModel


class ScheduledExam(BaseModel):
    __tablename__ = "scheduled_exams"

    name = Column(String, nullable=False)
    scheduled_time = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    admin_id = Column(Integer, ForeignKey("users.id"), index=True)

    admin = relationship("User", back_populates="scheduled_exams")

    @property
    def duration_seconds(self) -> int:
        return (self.duration_minutes or 0) * 60


class ExamResult(BaseModel):
    __tablename__ = "exam_results"

    session_id = Column(String, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    exam_id = Column(Integer, ForeignKey("scheduled_exams.id"), index=True)
    score = Column(Integer, default=0)
    total = Column(Integer, default=0)
    time_spent_seconds = Column(Integer, default=0)
    submitted_at = Column(DateTime)

    @property
    def percentage(self) -> float:
        return round(self.score / self.total * 100, 2) if self.total else 0.0
