"""
Pytest configuration for ExamGuard tests.

Environment is set before anything from ``examguard`` is imported: the
settings object and the engine are built at import time.
"""
import asyncio
import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-examguard-at-least-32-chars"
os.environ["REDIS_URL"] = "redis://localhost:6399/15"
os.environ["ADMIN_REGISTRATION_CODE"] = "let-me-in"
os.environ["AZURE_OPENAI_ENDPOINT"] = ""
os.environ["AZURE_OPENAI_API_KEY"] = ""

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from examguard.proctoring import (
    BehaviorVerdict,
    CameraUnavailableError,
    ManualClock,
    ProctoringSession,
    Question,
    SessionMachine,
)

QUESTIONS = [
    Question("q1", "What is 2 + 2?", ("3", "4", "5"), "4"),
    Question("q2", "Capital of France?", ("Paris", "Rome"), "Paris"),
    Question("q3", "Red planet?", ("Mars", "Venus"), "Mars"),
]

FRAME = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="


class RecordingActivityLog:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.entries = []

    def append(self, session_id, activity_type, details, timestamp):
        if self.fail:
            raise RuntimeError("activity log unavailable")
        self.entries.append((activity_type, details))

    @property
    def types(self):
        return [activity_type for activity_type, _ in self.entries]


class InMemoryDisqualifications:
    def __init__(self):
        self.records = {}
        self.create_calls = 0

    def exists(self, user_id, exam_id):
        return (user_id, exam_id) in self.records

    def create(self, user_id, exam_id, reason, timestamp):
        self.create_calls += 1
        self.records[(user_id, exam_id)] = reason


class InMemoryResults:
    def __init__(self):
        self.records = []

    def record(self, session_id, score, total, time_spent_seconds, timestamp):
        self.records.append((session_id, score, total, time_spent_seconds))


class FakeCamera:
    def __init__(self, granted: bool = True, frame: str = FRAME):
        self.granted = granted
        self.frame = frame
        self.active = False
        self.acquired = 0
        self.released = 0

    def acquire(self):
        if not self.granted:
            raise CameraUnavailableError("Permission denied")
        self.active = True
        self.acquired += 1
        return "stream"

    def capture_frame(self, stream):
        if not self.granted or not self.active:
            raise CameraUnavailableError("Stream ended")
        return self.frame

    def release(self, stream):
        self.active = False
        self.released += 1


class ScriptedClassifier:
    """Answers with queued outcomes; an Exception outcome is raised. Optionally waits on a gate."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.gate = None

    async def classify(self, frame_data_uri, elapsed_seconds, question_number):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.outcomes:
            outcome = self.outcomes.pop(0)
        else:
            outcome = BehaviorVerdict(False, "No suspicious behavior detected.")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SessionHarness:
    """One ProctoringSession wired to in-memory collaborators and a ManualClock."""

    def __init__(
        self,
        classifier=None,
        camera=None,
        activity_log=None,
        max_violations: int = 3,
        capture_interval_seconds=None,
        classifier_timeout_seconds: float = 15.0,
        spawn=None,
    ):
        self.clock = ManualClock()
        self.classifier = classifier or ScriptedClassifier()
        self.camera = camera or FakeCamera()
        self.log = activity_log or RecordingActivityLog()
        self.disqualifications = InMemoryDisqualifications()
        self.results = InMemoryResults()
        self.spawned = []
        self.finished = []
        self.machine = SessionMachine(
            session_id="session-1",
            exam_id=7,
            user_id=42,
            questions=QUESTIONS,
            exam_name="Midterm",
            now=self.clock.now,
            max_violations=max_violations,
        )
        self.session = ProctoringSession(
            machine=self.machine,
            classifier=self.classifier,
            activity_log=self.log,
            disqualifications=self.disqualifications,
            camera=self.camera,
            clock=self.clock,
            results=self.results,
            capture_interval_seconds=capture_interval_seconds,
            classifier_timeout_seconds=classifier_timeout_seconds,
            spawn=spawn or self.spawned.append,
            on_finished=self.finished.append,
        )


@pytest.fixture
def questions():
    return list(QUESTIONS)


@pytest.fixture
def make_harness():
    """Factory for SessionHarness; closes coroutines the test never awaited."""
    created = []

    def factory(**kwargs):
        harness = SessionHarness(**kwargs)
        created.append(harness)
        return harness

    yield factory

    for harness in created:
        for coro in harness.spawned:
            if asyncio.iscoroutine(coro):
                coro.close()


@pytest.fixture
def db_session():
    """Fresh schema on the shared in-memory SQLite engine."""
    from examguard.core.database import Base, SessionLocal, engine
    from examguard import models  # noqa: F401

    Base.metadata.create_all(engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(engine)
