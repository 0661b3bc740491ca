"""
Tests for SessionManager.
"""
from conftest import InMemoryDisqualifications, RecordingActivityLog, ScriptedClassifier
from examguard.proctoring import (
    ManualClock,
    SessionContext,
    SessionManager,
    SessionState,
    SessionStores,
    ViolationType,
)


def make_manager(clock=None):
    logs = {}

    def stores_factory(context, session_id):
        logs[session_id] = RecordingActivityLog()
        return SessionStores(activity_log=logs[session_id], disqualifications=InMemoryDisqualifications())

    manager = SessionManager(
        classifier=ScriptedClassifier(),
        stores_factory=stores_factory,
        clock=clock or ManualClock(),
        capture_interval_seconds=None,
    )
    return manager, logs


CONTEXT = SessionContext(user_id=1, user_email="student@example.com", exam_id=5, exam_name="Physics", admin_id=99)


class TestSessionManager:
    """Tests for session bookkeeping per (user, exam)"""

    def test_start_registers_session(self, questions):
        manager, logs = make_manager()
        session = manager.start(CONTEXT, questions, duration_seconds=120)

        assert session.state == SessionState.IN_PROGRESS
        assert session.time_remaining_seconds == 120
        assert manager.get(1, 5) is session
        assert manager.get_by_id(session.session_id) is session
        assert manager.context_for(session) == CONTEXT
        assert manager.camera_for(session).active
        assert manager.active_sessions() == [session]
        assert len(logs) == 1

    def test_start_returns_running_session(self, questions):
        manager, _ = make_manager()
        first = manager.start(CONTEXT, questions)

        assert manager.start(CONTEXT, questions) is first

    def test_retake_gets_fresh_session(self, questions):
        manager, _ = make_manager()
        first = manager.start(CONTEXT, questions)
        for _ in range(3):
            first.record_violation("Switched tabs", ViolationType.VISIBILITY)

        second = manager.start(CONTEXT, questions)

        assert second is not first
        assert second.state == SessionState.IN_PROGRESS
        assert second.violation_count == 0
        assert manager.get_by_id(first.session_id) is None

    def test_camera_denied(self, questions):
        manager, _ = make_manager()
        session = manager.start(CONTEXT, questions, camera_granted=False)

        assert session.state == SessionState.DISQUALIFIED
        assert manager.active_sessions() == []

    def test_discard_stops_timers(self, questions):
        clock = ManualClock()
        manager, _ = make_manager(clock)
        session = manager.start(CONTEXT, questions, duration_seconds=60)

        assert manager.discard(1, 5) is True
        assert manager.discard(1, 5) is False
        assert manager.get(1, 5) is None
        assert manager.context_for(session) is None

        clock.advance(120)
        assert session.state == SessionState.IN_PROGRESS
        assert session.time_remaining_seconds == 60

    def test_shutdown(self, questions):
        manager, _ = make_manager()
        manager.start(CONTEXT, questions)
        manager.start(SessionContext(2, "other@example.com", 5, "Physics", 99), questions)
        manager.shutdown()

        assert manager.active_sessions() == []
