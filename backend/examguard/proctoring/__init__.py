"""
Exam proctoring core.

- SessionMachine: pure state machine for one attempt
- ProctoringSession: applies the machine's effects on a Clock
- SessionManager: one live session per (user, exam)
"""

from .machine import SessionMachine, MAX_VIOLATIONS, DEFAULT_DURATION_SECONDS
from .session import ProctoringSession, CAMERA_FAILURE_REASON
from .manager import SessionManager, SessionContext, SessionStores
from .clock import AsyncioClock, ManualClock
from .interfaces import ClassifierError, CameraUnavailableError
from .types import ActivityType, BehaviorVerdict, Question, SessionState, ViolationType

__all__ = [
    "SessionMachine",
    "ProctoringSession",
    "SessionManager",
    "SessionContext",
    "SessionStores",
    "AsyncioClock",
    "ManualClock",
    "ClassifierError",
    "CameraUnavailableError",
    "ActivityType",
    "BehaviorVerdict",
    "Question",
    "SessionState",
    "ViolationType",
    "MAX_VIOLATIONS",
    "DEFAULT_DURATION_SECONDS",
    "CAMERA_FAILURE_REASON",
]
