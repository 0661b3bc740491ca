from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from ..proctoring.types import SessionState, SessionSnapshot


class StartSessionRequest(BaseModel):
    camera_granted: bool = Field(True, description="Whether the browser obtained camera permission")


class SessionStatus(BaseModel):
    session_id: str
    exam_id: int
    state: SessionState
    time_remaining_seconds: int
    total_time_spent_seconds: int
    violation_count: int
    max_violations: int
    current_question_index: int
    started_at: Optional[datetime] = None
    disqualification_reason: Optional[str] = None
    score: Optional[int] = None
    warnings: List[str] = []

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot, warnings: Optional[List[str]] = None) -> "SessionStatus":
        return cls(
            session_id=snapshot.session_id,
            exam_id=snapshot.exam_id,
            state=snapshot.state,
            time_remaining_seconds=snapshot.time_remaining_seconds,
            total_time_spent_seconds=snapshot.total_time_spent_seconds,
            violation_count=snapshot.violation_count,
            max_violations=snapshot.max_violations,
            current_question_index=snapshot.current_question_index,
            started_at=snapshot.started_at,
            disqualification_reason=snapshot.disqualification_reason,
            score=snapshot.score,
            warnings=snapshot.warnings if warnings is None else warnings,
        )


class AnswerRequest(BaseModel):
    question_id: str
    selected_answer: str


class NavigateRequest(BaseModel):
    question_index: int = Field(..., ge=0)


class FrameRequest(BaseModel):
    frame: str = Field(..., description="Webcam still as data:image/...;base64,... URI")


class SignalRequest(BaseModel):
    detail: Optional[str] = None


class FrameResponse(BaseModel):
    accepted: bool
    state: SessionState
