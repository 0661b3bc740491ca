from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import List, Optional


class WhitelistCreate(BaseModel):
    email: EmailStr


class WhitelistedUser(BaseModel):
    id: int
    email: str
    admin_id: int
    added_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityLogEntry(BaseModel):
    id: int
    session_id: Optional[str] = None
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    exam_id: Optional[int] = None
    activity_type: str
    details: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class AggregatedLogEntry(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    exam_id: Optional[int] = None
    activity_type: str
    details: Optional[str] = None
    timestamp: datetime
    count: int


class Participant(BaseModel):
    user_id: int
    email: Optional[str] = None


class ExamHistoryEntry(BaseModel):
    id: int
    name: str
    scheduled_time: datetime
    duration_minutes: int
    participants: List[Participant] = []
    participant_count: int = 0


class DisqualifiedUser(BaseModel):
    id: int
    user_id: int
    user_email: Optional[str] = None
    exam_id: int
    reason: str
    disqualified_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OverrideResponse(BaseModel):
    overridden: DisqualifiedUser
    rewhitelisted: bool
    message: str


class LiveSnapshot(BaseModel):
    session_id: str
    user_id: int
    user_email: Optional[str] = None
    exam_id: int
    frame: str
    updated_at: datetime


class ActiveSession(BaseModel):
    session_id: str
    user_id: int
    user_email: Optional[str] = None
    exam_id: int
    exam_name: Optional[str] = None
    state: str
    violation_count: int
    time_remaining_seconds: int
