"""
Proctoring Session - drives one SessionMachine against its collaborators.

Responsibilities:
- countdown tick and capture/classify rounds scheduled through a Clock
- applying machine effects (activity log, disqualification record,
  camera release, result recording, timer cancellation)
- keeping capture rounds from overlapping and discarding late verdicts
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional

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
from .interfaces import (
    ActivityLog,
    BehaviorClassifier,
    Camera,
    CameraUnavailableError,
    ClassifierError,
    Clock,
    DisqualificationStore,
    ResultStore,
)
from .machine import SessionMachine
from .types import ActivityType, BehaviorVerdict, SessionSnapshot, SessionState, ViolationType

logger = logging.getLogger(__name__)

CAMERA_FAILURE_REASON = "Camera access denied or unavailable. Exam cannot be proctored."


def _spawn_on_running_loop(coro: Awaitable) -> asyncio.Task:
    return asyncio.get_running_loop().create_task(coro)


class ProctoringSession:

    def __init__(
        self,
        machine: SessionMachine,
        classifier: BehaviorClassifier,
        activity_log: ActivityLog,
        disqualifications: DisqualificationStore,
        camera: Camera,
        clock: Clock,
        results: Optional[ResultStore] = None,
        tick_interval_seconds: float = 1.0,
        capture_interval_seconds: Optional[float] = 1.0,
        classifier_timeout_seconds: float = 15.0,
        spawn: Callable[[Awaitable], Any] = _spawn_on_running_loop,
        on_finished: Optional[Callable[["ProctoringSession"], Any]] = None,
    ):
        self.machine = machine
        self.classifier = classifier
        self.activity_log = activity_log
        self.disqualifications = disqualifications
        self.camera = camera
        self.clock = clock
        self.results = results
        self.tick_interval_seconds = tick_interval_seconds
        self.capture_interval_seconds = capture_interval_seconds
        self.classifier_timeout_seconds = classifier_timeout_seconds
        self._spawn = spawn
        self._on_finished = on_finished
        self._finished = False

        self._stream = None
        self._tick_handle = None
        self._capture_handle = None
        self._capture_in_flight = False
        self._capture_task = None
        self._warnings = deque(maxlen=20)

    @property
    def session_id(self) -> str:
        return self.machine.session_id

    @property
    def state(self) -> SessionState:
        return self.machine.state

    @property
    def time_remaining_seconds(self) -> int:
        return self.machine.time_remaining_seconds

    @property
    def violation_count(self) -> int:
        return self.machine.violation_count

    @property
    def disqualification_reason(self) -> Optional[str]:
        return self.machine.disqualification_reason

    @property
    def camera_active(self) -> bool:
        return self._stream is not None

    @property
    def capture_in_flight(self) -> bool:
        return self._capture_in_flight

    def start(self, duration_seconds: Optional[int] = None) -> SessionSnapshot:
        self._apply(self.machine.start(duration_seconds))
        return self.snapshot()

    def tick(self) -> None:
        self._apply(self.machine.tick())

    def record_violation(self, reason: str, violation_type: ViolationType) -> None:
        self._apply(self.machine.record_violation(reason, violation_type))

    def disqualify(self, reason: str) -> None:
        self._apply(self.machine.disqualify(reason))

    def submit(self) -> SessionSnapshot:
        self._apply(self.machine.submit())
        return self.snapshot()

    def camera_failed(self, detail: Optional[str] = None) -> None:
        if detail:
            logger.warning(f"Camera failure in session {self.session_id}: {detail}")
        self.disqualify(CAMERA_FAILURE_REASON)

    def answer(self, question_id: str, selected: str) -> bool:
        return self.machine.answer(question_id, selected)

    def go_to_question(self, index: int) -> bool:
        return self.machine.go_to_question(index)

    async def capture_and_classify(self) -> Optional[BehaviorVerdict]:
        """
        One capture/classify round.

        Returns the verdict when the classifier answered, None when the
        round was skipped or failed. A verdict that arrives after the
        session ended is returned but has no effect.
        """
        if not self.machine.in_progress:
            return None
        if self._capture_in_flight:
            logger.debug(f"Skipping capture for session {self.session_id}: previous round still running")
            return None

        try:
            if self._stream is None:
                self._stream = self.camera.acquire()
            frame = self.camera.capture_frame(self._stream)
        except CameraUnavailableError as e:
            self.camera_failed(str(e))
            return None

        if not frame:
            return None

        elapsed = self.machine.total_time_spent_seconds
        question_number = self.machine.current_question_index + 1

        self._capture_in_flight = True
        try:
            verdict = await asyncio.wait_for(
                self.classifier.classify(frame, elapsed, question_number),
                timeout=self.classifier_timeout_seconds,
            )
        except (ClassifierError, asyncio.TimeoutError) as e:
            detail = str(e) or e.__class__.__name__
            logger.warning(f"Behavior analysis failed for session {self.session_id}: {detail}")
            if self.machine.in_progress:
                self._log(ActivityType.CLASSIFIER_ERROR, f"Behavior analysis failed: {detail}", self.clock.now())
            return None
        finally:
            self._capture_in_flight = False

        if not self.machine.in_progress:
            logger.debug(f"Discarding late verdict for session {self.session_id}")
            return verdict

        if verdict.is_suspicious:
            self.record_violation(verdict.reason, ViolationType.BEHAVIOR)
        return verdict

    def drain_warnings(self) -> List[str]:
        warnings = list(self._warnings)
        self._warnings.clear()
        return warnings

    def snapshot(self) -> SessionSnapshot:
        snapshot = self.machine.snapshot()
        snapshot.warnings = list(self._warnings)
        return snapshot

    def close(self) -> None:
        """Stop scheduled work and release the camera without changing state."""
        self._stop_timers()
        task, self._capture_task = self._capture_task, None
        if task is not None and not task.done():
            task.cancel()
        self._release_camera()

    def _apply(self, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, LogActivity):
                self._log(effect.activity_type, effect.details, effect.timestamp)
            elif isinstance(effect, ShowWarning):
                logger.info(f"Session {self.session_id} warning: {effect.message}")
                self._warnings.append(effect.message)
            elif isinstance(effect, PersistDisqualification):
                self._persist_disqualification(effect.reason, effect.timestamp)
            elif isinstance(effect, StartTimers):
                self._schedule_tick()
                self._schedule_capture()
            elif isinstance(effect, StopTimers):
                self._stop_timers()
            elif isinstance(effect, AcquireCamera):
                self._acquire_camera()
            elif isinstance(effect, ReleaseCamera):
                self._release_camera()
            elif isinstance(effect, RecordResult):
                self._record_result(effect)
            else:
                raise TypeError(f"Unknown effect: {effect!r}")
        if self.machine.state.is_terminal and not self._finished:
            self._finished = True
            self._notify_finished()

    def _notify_finished(self) -> None:
        if self._on_finished is None:
            return
        try:
            self._on_finished(self)
        except Exception:
            logger.exception(f"Session finished hook failed for session {self.session_id}")

    def _log(self, activity_type: ActivityType, details: str, timestamp: datetime) -> None:
        try:
            self.activity_log.append(self.session_id, activity_type, details, timestamp)
        except Exception:
            logger.exception(f"Failed to write {activity_type.value} activity for session {self.session_id}")

    def _persist_disqualification(self, reason: str, timestamp: datetime) -> None:
        user_id, exam_id = self.machine.user_id, self.machine.exam_id
        try:
            if self.disqualifications.exists(user_id, exam_id):
                logger.info(f"Disqualification for user {user_id} on exam {exam_id} already recorded")
                return
            self.disqualifications.create(user_id, exam_id, reason, timestamp)
            logger.info(f"User {user_id} disqualified from exam {exam_id}: {reason}")
        except Exception:
            logger.exception(f"Failed to record disqualification for session {self.session_id}")

    def _record_result(self, effect: RecordResult) -> None:
        if self.results is None:
            return
        try:
            self.results.record(self.session_id, effect.score, effect.total, effect.time_spent_seconds, effect.timestamp)
        except Exception:
            logger.exception(f"Failed to record result for session {self.session_id}")

    def _acquire_camera(self) -> None:
        if self._stream is not None:
            return
        try:
            self._stream = self.camera.acquire()
        except CameraUnavailableError as e:
            self.camera_failed(str(e))

    def _release_camera(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            self.camera.release(stream)
        except Exception:
            logger.exception(f"Failed to release camera for session {self.session_id}")

    def _schedule_tick(self) -> None:
        self._tick_handle = self.clock.after(self.tick_interval_seconds, self._on_tick)

    def _on_tick(self) -> None:
        self._tick_handle = None
        if not self.machine.in_progress:
            return
        self.tick()
        if self.machine.in_progress:
            self._schedule_tick()

    def _schedule_capture(self) -> None:
        if not self.capture_interval_seconds:
            return
        self._capture_handle = self.clock.after(self.capture_interval_seconds, self._on_capture)

    def _on_capture(self) -> None:
        self._capture_handle = None
        if not self.machine.in_progress:
            return
        self._schedule_capture()
        if self._capture_in_flight:
            return
        self._capture_task = self._spawn(self.capture_and_classify())

    def _stop_timers(self) -> None:
        self.clock.cancel(self._tick_handle)
        self.clock.cancel(self._capture_handle)
        self._tick_handle = None
        self._capture_handle = None
