import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .camera import BrowserCamera
from .interfaces import ActivityLog, BehaviorClassifier, Clock, DisqualificationStore, ResultStore
from .machine import DEFAULT_DURATION_SECONDS, MAX_VIOLATIONS, SessionMachine
from .session import ProctoringSession
from .types import Question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    user_email: str
    exam_id: int
    exam_name: str
    admin_id: Optional[int] = None


@dataclass
class SessionStores:
    activity_log: ActivityLog
    disqualifications: DisqualificationStore
    results: Optional[ResultStore] = None


class SessionManager:
    """Keeps at most one live session per (user, exam)."""

    def __init__(
        self,
        classifier: BehaviorClassifier,
        stores_factory: Callable[[SessionContext, str], SessionStores],
        clock: Clock,
        max_violations: int = MAX_VIOLATIONS,
        default_duration_seconds: int = DEFAULT_DURATION_SECONDS,
        tick_interval_seconds: float = 1.0,
        capture_interval_seconds: Optional[float] = 1.0,
        classifier_timeout_seconds: float = 15.0,
        max_frame_bytes: int = 2 * 1024 * 1024,
        on_session_finished: Optional[Callable[[ProctoringSession], Any]] = None,
    ):
        self.classifier = classifier
        self.stores_factory = stores_factory
        self.clock = clock
        self.max_violations = max_violations
        self.default_duration_seconds = default_duration_seconds
        self.tick_interval_seconds = tick_interval_seconds
        self.capture_interval_seconds = capture_interval_seconds
        self.classifier_timeout_seconds = classifier_timeout_seconds
        self.max_frame_bytes = max_frame_bytes
        self.on_session_finished = on_session_finished
        self._sessions: Dict[Tuple[int, int], ProctoringSession] = {}
        self._cameras: Dict[str, BrowserCamera] = {}
        self._contexts: Dict[str, SessionContext] = {}

    def get(self, user_id: int, exam_id: int) -> Optional[ProctoringSession]:
        return self._sessions.get((user_id, exam_id))

    def get_by_id(self, session_id: str) -> Optional[ProctoringSession]:
        for session in self._sessions.values():
            if session.session_id == session_id:
                return session
        return None

    def camera_for(self, session: ProctoringSession) -> Optional[BrowserCamera]:
        return self._cameras.get(session.session_id)

    def context_for(self, session: ProctoringSession) -> Optional[SessionContext]:
        return self._contexts.get(session.session_id)

    def active_sessions(self) -> List[ProctoringSession]:
        return [s for s in self._sessions.values() if s.machine.in_progress]

    def start(
        self,
        context: SessionContext,
        questions: Sequence[Question],
        duration_seconds: Optional[int] = None,
        camera_granted: bool = True,
    ) -> ProctoringSession:
        """
        Starts an attempt, or returns the attempt already in progress.

        A finished attempt for the same pair is discarded first, so a retake
        always gets a fresh session.
        """
        key = (context.user_id, context.exam_id)
        existing = self._sessions.get(key)
        if existing is not None:
            if existing.machine.in_progress:
                return existing
            self.discard(context.user_id, context.exam_id)

        session_id = str(uuid.uuid4())
        machine = SessionMachine(
            session_id=session_id,
            exam_id=context.exam_id,
            user_id=context.user_id,
            questions=questions,
            exam_name=context.exam_name,
            now=self.clock.now,
            max_violations=self.max_violations,
            default_duration_seconds=self.default_duration_seconds,
        )
        camera = BrowserCamera(permission_granted=camera_granted, max_frame_bytes=self.max_frame_bytes)
        stores = self.stores_factory(context, session_id)
        session = ProctoringSession(
            machine=machine,
            classifier=self.classifier,
            activity_log=stores.activity_log,
            disqualifications=stores.disqualifications,
            camera=camera,
            clock=self.clock,
            results=stores.results,
            tick_interval_seconds=self.tick_interval_seconds,
            capture_interval_seconds=self.capture_interval_seconds,
            classifier_timeout_seconds=self.classifier_timeout_seconds,
            on_finished=self.on_session_finished,
        )
        self._sessions[key] = session
        self._cameras[session_id] = camera
        self._contexts[session_id] = context

        session.start(duration_seconds)
        logger.info(f"Started proctoring session {session_id} for user {context.user_id} on exam {context.exam_id}")
        return session

    def discard(self, user_id: int, exam_id: int) -> bool:
        """Drops the pair's session (user went back to exam selection)."""
        session = self._sessions.pop((user_id, exam_id), None)
        if session is None:
            return False
        session.close()
        self._cameras.pop(session.session_id, None)
        self._contexts.pop(session.session_id, None)
        logger.info(f"Discarded session {session.session_id} in state {session.state.value}")
        return True

    def shutdown(self) -> None:
        for user_id, exam_id in list(self._sessions):
            self.discard(user_id, exam_id)
