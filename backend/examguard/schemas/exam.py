from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class ExamCreate(BaseModel):
    name: str
    scheduled_time: datetime
    duration_minutes: int = Field(60, gt=0)


class Exam(BaseModel):
    id: int
    name: str
    scheduled_time: datetime
    duration_minutes: int
    admin_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuestionPublic(BaseModel):
    id: str
    question: str
    options: List[str]
    image: Optional[str] = None


class ExamResult(BaseModel):
    session_id: str
    exam_id: int
    score: int
    total: int
    percentage: float
    time_spent_seconds: int
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
