"""
Tests for the exam session state machine.
"""
from datetime import datetime

import pytest

from examguard.proctoring import ActivityType, SessionMachine, SessionState, ViolationType
from examguard.proctoring.effects import (
    AcquireCamera,
    LogActivity,
    PersistDisqualification,
    RecordResult,
    ReleaseCamera,
    ShowWarning,
    StartTimers,
    StopTimers,
)

START = datetime(2024, 5, 1, 10, 0, 0)


def make_machine(questions, **kwargs):
    return SessionMachine(
        session_id="s-1",
        exam_id=3,
        user_id=9,
        questions=questions,
        exam_name="Algebra",
        now=lambda: START,
        **kwargs
    )


def effect_types(effects):
    return [type(effect) for effect in effects]


class TestStart:
    """Tests for starting a session"""

    def test_start_enters_in_progress(self, questions):
        """Start logs the exam, starts timers and asks for the camera"""
        machine = make_machine(questions)
        effects = machine.start(600)

        assert machine.state == SessionState.IN_PROGRESS
        assert machine.time_remaining_seconds == 600
        assert machine.started_at == START
        assert effect_types(effects) == [LogActivity, StartTimers, AcquireCamera]
        assert effects[0].activity_type == ActivityType.EXAM_START
        assert effects[0].details == "Exam started: Algebra"

    @pytest.mark.parametrize("duration", [None, 0, -5])
    def test_missing_duration_uses_default(self, questions, duration):
        """Missing or non-positive duration falls back to 30 minutes"""
        machine = make_machine(questions)
        machine.start(duration)

        assert machine.time_remaining_seconds == 1800

    def test_second_start_is_noop(self, questions):
        machine = make_machine(questions)
        machine.start(600)
        machine.tick()

        assert machine.start(600) == []
        assert machine.time_remaining_seconds == 599

    def test_actions_before_start_are_noops(self, questions):
        machine = make_machine(questions)

        assert machine.tick() == []
        assert machine.record_violation("Tab switch", ViolationType.VISIBILITY) == []
        assert machine.disqualify("nope") == []
        assert machine.submit() == []
        assert machine.state == SessionState.NOT_STARTED
        assert machine.violation_count == 0


class TestViolations:
    """Tests for violation counting and disqualification"""

    def test_first_violation_warns(self, questions):
        """A violation below the limit is logged and shown as a warning"""
        machine = make_machine(questions)
        machine.start()
        effects = machine.record_violation("Switched tabs", ViolationType.VISIBILITY)

        assert machine.violation_count == 1
        assert machine.state == SessionState.IN_PROGRESS
        assert effect_types(effects) == [LogActivity, ShowWarning]
        assert effects[0].activity_type == ActivityType.TAB_SWITCH
        assert effects[0].details == "Switched tabs"
        assert effects[1].message == "Switched tabs (violation 1/3)"

    def test_violation_types_map_to_activity_types(self, questions):
        machine = make_machine(questions, max_violations=10)
        machine.start()

        behavior = machine.record_violation("Phone visible", ViolationType.BEHAVIOR)
        clipboard = machine.record_violation("Pasted text", ViolationType.CLIPBOARD)

        assert behavior[0].activity_type == ActivityType.AI_WARNING
        assert clipboard[0].activity_type == ActivityType.COPY_PASTE

    def test_third_violation_disqualifies(self, questions):
        """Reaching the limit disqualifies on the same call"""
        machine = make_machine(questions)
        machine.start()
        machine.record_violation("Switched tabs", ViolationType.VISIBILITY)
        second = machine.record_violation("Copy attempt", ViolationType.CLIPBOARD)
        third = machine.record_violation("Multiple faces detected", ViolationType.BEHAVIOR)

        assert second[-1].message == "Copy attempt (violation 2/3)"
        assert machine.state == SessionState.DISQUALIFIED
        assert machine.violation_count == 3
        assert machine.disqualification_reason == (
            "Exceeded maximum violations (3). Last violation: Multiple faces detected"
        )
        assert effect_types(third) == [
            LogActivity,
            StopTimers,
            ReleaseCamera,
            LogActivity,
            PersistDisqualification,
        ]
        assert third[3].activity_type == ActivityType.DISQUALIFICATION
        assert third[4].reason == machine.disqualification_reason
        assert not any(isinstance(effect, ShowWarning) for effect in third)

    def test_violations_after_disqualification_are_ignored(self, questions):
        machine = make_machine(questions)
        machine.start()
        for _ in range(3):
            machine.record_violation("Switched tabs", ViolationType.VISIBILITY)

        assert machine.record_violation("Switched tabs", ViolationType.VISIBILITY) == []
        assert machine.violation_count == 3
        assert len(machine.violations) == 3

    def test_custom_limit(self, questions):
        machine = make_machine(questions, max_violations=1)
        machine.start()
        machine.record_violation("Pasted text", ViolationType.CLIPBOARD)

        assert machine.state == SessionState.DISQUALIFIED

    def test_disqualify_twice(self, questions):
        machine = make_machine(questions)
        machine.start()

        assert len(machine.disqualify("Camera lost")) == 4
        assert machine.disqualify("Camera lost again") == []
        assert machine.disqualification_reason == "Camera lost"


class TestTimerAndSubmit:
    """Tests for countdown and submission"""

    def test_tick_counts_down(self, questions):
        machine = make_machine(questions)
        machine.start(3)

        assert machine.tick() == []
        assert machine.time_remaining_seconds == 2
        assert machine.total_time_spent_seconds == 1

    def test_last_tick_submits(self, questions):
        """Remaining time hitting zero submits in the same step"""
        machine = make_machine(questions)
        machine.start(2)
        machine.answer("q1", "4")
        machine.tick()
        effects = machine.tick()

        assert machine.state == SessionState.SUBMITTED
        assert machine.time_remaining_seconds == 0
        assert effect_types(effects) == [StopTimers, ReleaseCamera, RecordResult, LogActivity]
        assert effects[2].score == 1
        assert effects[2].total == 3
        assert effects[2].time_spent_seconds == 2
        assert effects[3].details == "Exam submitted. Score: 1/3"

    def test_tick_after_submit_is_noop(self, questions):
        machine = make_machine(questions)
        machine.start(1)
        machine.tick()

        assert machine.tick() == []
        assert machine.total_time_spent_seconds == 1

    def test_submit_after_disqualification_is_noop(self, questions):
        machine = make_machine(questions)
        machine.start()
        machine.disqualify("Camera lost")

        assert machine.submit() == []
        assert machine.state == SessionState.DISQUALIFIED
        assert machine.score is None

    def test_disqualify_after_submit_is_noop(self, questions):
        machine = make_machine(questions)
        machine.start()
        machine.submit()

        assert machine.disqualify("late") == []
        assert machine.state == SessionState.SUBMITTED


class TestAnswers:
    """Tests for answering and navigation"""

    def test_score_counts_correct_answers(self, questions):
        machine = make_machine(questions)
        machine.start()
        machine.answer("q1", "4")
        machine.answer("q2", "Rome")
        machine.answer("q3", "Mars")
        machine.answer("q2", "Paris")

        assert machine.compute_score() == 3

    def test_unknown_question(self, questions):
        machine = make_machine(questions)
        machine.start()

        with pytest.raises(KeyError):
            machine.answer("q99", "4")

    def test_answer_after_submit_rejected(self, questions):
        machine = make_machine(questions)
        machine.start()
        machine.submit()

        assert machine.answer("q1", "4") is False

    def test_navigation_bounds(self, questions):
        machine = make_machine(questions)
        machine.start()

        assert machine.go_to_question(2) is True
        assert machine.current_question_index == 2
        with pytest.raises(IndexError):
            machine.go_to_question(3)

    def test_snapshot(self, questions):
        machine = make_machine(questions)
        machine.start(60)
        machine.record_violation("Switched tabs", ViolationType.VISIBILITY)
        snapshot = machine.snapshot()

        assert snapshot.session_id == "s-1"
        assert snapshot.state == SessionState.IN_PROGRESS
        assert snapshot.violation_count == 1
        assert snapshot.max_violations == 3
        assert snapshot.time_remaining_seconds == 60
        assert snapshot.disqualification_reason is None
