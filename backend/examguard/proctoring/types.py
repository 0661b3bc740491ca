from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DISQUALIFIED = "disqualified"
    SUBMITTED = "submitted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.DISQUALIFIED, SessionState.SUBMITTED)


class ViolationType(str, Enum):
    BEHAVIOR = "behavior"
    VISIBILITY = "visibility"
    CLIPBOARD = "clipboard"


class ActivityType(str, Enum):
    EXAM_START = "exam-start"
    EXAM_SUBMIT = "exam-submit"
    AI_WARNING = "ai-warning"
    TAB_SWITCH = "tab-switch"
    COPY_PASTE = "copy-paste"
    DISQUALIFICATION = "disqualification"
    MANUAL_OVERRIDE = "manual-override"
    CLASSIFIER_ERROR = "classifier-error"


VIOLATION_ACTIVITY = {
    ViolationType.BEHAVIOR: ActivityType.AI_WARNING,
    ViolationType.VISIBILITY: ActivityType.TAB_SWITCH,
    ViolationType.CLIPBOARD: ActivityType.COPY_PASTE,
}


@dataclass(frozen=True)
class Violation:
    type: ViolationType
    reason: str
    timestamp: datetime


@dataclass(frozen=True)
class BehaviorVerdict:
    is_suspicious: bool
    reason: str


@dataclass(frozen=True)
class Question:
    id: str
    question: str
    options: tuple
    correct_answer: str
    image: Optional[str] = None


@dataclass
class SessionSnapshot:
    """Read-only view of a session for display."""
    session_id: str
    exam_id: int
    user_id: int
    state: SessionState
    time_remaining_seconds: int
    total_time_spent_seconds: int
    violation_count: int
    max_violations: int
    current_question_index: int
    started_at: Optional[datetime] = None
    disqualification_reason: Optional[str] = None
    score: Optional[int] = None
    warnings: list = field(default_factory=list)
