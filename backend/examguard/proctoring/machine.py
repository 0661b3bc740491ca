"""
Exam session state machine.

One instance tracks one user's attempt at one exam::

    not_started -> in_progress -> disqualified
                               -> submitted

Every public transition returns a list of effects (see ``effects.py``).
An empty list means the call was a no-op. The machine is synchronous and
holds no references to timers, cameras or databases, so it can be driven
directly from tests.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from .effects import (
    AcquireCamera,
    Effect,
    LogActivity,
    PersistDisqualification,
    RecordResult,
    ReleaseCamera,
    ShowWarning,
    StartTimers,
    StopTimers,
)
from .types import (
    VIOLATION_ACTIVITY,
    ActivityType,
    Question,
    SessionSnapshot,
    SessionState,
    Violation,
    ViolationType,
)

logger = logging.getLogger(__name__)

MAX_VIOLATIONS = 3
DEFAULT_DURATION_SECONDS = 1800


class SessionMachine:

    def __init__(
        self,
        session_id: str,
        exam_id: int,
        user_id: int,
        questions: Sequence[Question] = (),
        exam_name: str = "",
        now: Callable[[], datetime] = datetime.utcnow,
        max_violations: int = MAX_VIOLATIONS,
        default_duration_seconds: int = DEFAULT_DURATION_SECONDS,
    ):
        self.session_id = session_id
        self.exam_id = exam_id
        self.user_id = user_id
        self.exam_name = exam_name
        self.questions = list(questions)
        self.max_violations = max_violations
        self.default_duration_seconds = default_duration_seconds
        self._now = now

        self.state = SessionState.NOT_STARTED
        self.started_at: Optional[datetime] = None
        self.time_remaining_seconds = 0
        self.total_time_spent_seconds = 0
        self.violation_count = 0
        self.violations: List[Violation] = []
        self.disqualification_reason: Optional[str] = None
        self.current_question_index = 0
        self.answers: Dict[str, str] = {}
        self.score: Optional[int] = None

    @property
    def in_progress(self) -> bool:
        return self.state == SessionState.IN_PROGRESS

    def start(self, duration_seconds: Optional[int] = None) -> List[Effect]:
        if self.state != SessionState.NOT_STARTED:
            logger.debug(f"Ignoring start for session {self.session_id} in state {self.state.value}")
            return []

        if not duration_seconds or duration_seconds <= 0:
            duration_seconds = self.default_duration_seconds

        self.state = SessionState.IN_PROGRESS
        self.started_at = self._now()
        self.time_remaining_seconds = int(duration_seconds)
        self.total_time_spent_seconds = 0
        self.violation_count = 0
        self.violations = []
        self.disqualification_reason = None
        self.current_question_index = 0
        self.answers = {}
        self.score = None

        return [
            LogActivity(ActivityType.EXAM_START, f"Exam started: {self.exam_name or self.exam_id}", self.started_at),
            StartTimers(),
            AcquireCamera(),
        ]

    def tick(self) -> List[Effect]:
        """One second of countdown. Reaching zero submits on the same call."""
        if not self.in_progress:
            return []

        self.time_remaining_seconds = max(0, self.time_remaining_seconds - 1)
        self.total_time_spent_seconds += 1

        if self.time_remaining_seconds == 0:
            return self.submit()
        return []

    def record_violation(self, reason: str, violation_type: ViolationType) -> List[Effect]:
        if not self.in_progress:
            return []

        violation_type = ViolationType(violation_type)
        timestamp = self._now()
        self.violation_count += 1
        self.violations.append(Violation(violation_type, reason, timestamp))

        effects: List[Effect] = [
            LogActivity(VIOLATION_ACTIVITY[violation_type], reason, timestamp),
        ]

        if self.violation_count >= self.max_violations:
            effects.extend(self.disqualify(
                f"Exceeded maximum violations ({self.violation_count}). Last violation: {reason}"
            ))
        else:
            effects.append(ShowWarning(
                f"{reason} (violation {self.violation_count}/{self.max_violations})"
            ))
        return effects

    def disqualify(self, reason: str) -> List[Effect]:
        if not self.in_progress:
            return []

        timestamp = self._now()
        self.state = SessionState.DISQUALIFIED
        self.disqualification_reason = reason

        return [
            StopTimers(),
            ReleaseCamera(),
            LogActivity(ActivityType.DISQUALIFICATION, reason, timestamp),
            PersistDisqualification(reason, timestamp),
        ]

    def submit(self) -> List[Effect]:
        if not self.in_progress:
            return []

        timestamp = self._now()
        self.state = SessionState.SUBMITTED
        self.score = self.compute_score()
        total = len(self.questions)

        return [
            StopTimers(),
            ReleaseCamera(),
            RecordResult(self.score, total, self.total_time_spent_seconds, timestamp),
            LogActivity(ActivityType.EXAM_SUBMIT, f"Exam submitted. Score: {self.score}/{total}", timestamp),
        ]

    def answer(self, question_id: str, selected: str) -> bool:
        if not self.in_progress:
            return False
        if not any(q.id == question_id for q in self.questions):
            raise KeyError(question_id)
        self.answers[question_id] = selected
        return True

    def go_to_question(self, index: int) -> bool:
        if not self.in_progress:
            return False
        if index < 0 or index >= max(len(self.questions), 1):
            raise IndexError(index)
        self.current_question_index = index
        return True

    def compute_score(self) -> int:
        return sum(
            1 for q in self.questions
            if self.answers.get(q.id) == q.correct_answer
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            exam_id=self.exam_id,
            user_id=self.user_id,
            state=self.state,
            time_remaining_seconds=self.time_remaining_seconds,
            total_time_spent_seconds=self.total_time_spent_seconds,
            violation_count=self.violation_count,
            max_violations=self.max_violations,
            current_question_index=self.current_question_index,
            started_at=self.started_at,
            disqualification_reason=self.disqualification_reason,
            score=self.score,
        )
