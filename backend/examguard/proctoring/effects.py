"""
Side-effect commands emitted by the session state machine.

The machine never talks to the outside world; every transition returns
the list of effects the orchestrator has to carry out, in order.
"""
from dataclasses import dataclass
from datetime import datetime

from .types import ActivityType


@dataclass(frozen=True)
class Effect:
    pass


@dataclass(frozen=True)
class LogActivity(Effect):
    activity_type: ActivityType
    details: str
    timestamp: datetime


@dataclass(frozen=True)
class ShowWarning(Effect):
    message: str


@dataclass(frozen=True)
class PersistDisqualification(Effect):
    reason: str
    timestamp: datetime


@dataclass(frozen=True)
class StartTimers(Effect):
    pass


@dataclass(frozen=True)
class StopTimers(Effect):
    pass


@dataclass(frozen=True)
class AcquireCamera(Effect):
    pass


@dataclass(frozen=True)
class ReleaseCamera(Effect):
    pass


@dataclass(frozen=True)
class RecordResult(Effect):
    score: int
    total: int
    time_spent_seconds: int
    timestamp: datetime
