from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from .types import ActivityType, BehaviorVerdict


class ClassifierError(Exception):
    """Classifier unreachable, timed out, or answered with something unusable."""


class CameraUnavailableError(Exception):
    """Camera permission denied or the stream is gone."""


class BehaviorClassifier(Protocol):
    async def classify(self, frame_data_uri: str, elapsed_seconds: int, question_number: int) -> BehaviorVerdict:
        ...


class ActivityLog(Protocol):
    def append(self, session_id: str, activity_type: ActivityType, details: str, timestamp: datetime) -> None:
        ...


class DisqualificationStore(Protocol):
    def exists(self, user_id: int, exam_id: int) -> bool:
        ...

    def create(self, user_id: int, exam_id: int, reason: str, timestamp: datetime) -> None:
        ...


class ResultStore(Protocol):
    def record(self, session_id: str, score: int, total: int, time_spent_seconds: int, timestamp: datetime) -> None:
        ...


class Camera(Protocol):
    def acquire(self) -> Any:
        ...

    def capture_frame(self, stream: Any) -> Optional[str]:
        ...

    def release(self, stream: Any) -> None:
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...

    def after(self, delay: float, callback: Callable[[], Any]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...
