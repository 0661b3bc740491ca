"""
Tests for database services backing the admin features and live sessions.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from examguard.core.database import SessionLocal
from examguard.models.activity_log import ActivityLog
from examguard.proctoring import ActivityType, SessionContext
from examguard.schemas.exam import ExamCreate
from examguard.schemas.user import UserCreate
from examguard.services.activity_service import ActivityLogService
from examguard.services.disqualification_service import DisqualificationService
from examguard.services.exam_service import ExamService, WhitelistService
from examguard.services.proctoring_stores import database_stores_factory
from examguard.services.user_service import UserService

T0 = datetime(2024, 3, 1, 12, 0, 0)


def create_user(db, email, is_superuser=False):
    return UserService(db).create_user(
        UserCreate(full_name=email.split("@")[0], email=email, password="secret-pass"),
        is_superuser=is_superuser,
    )


@pytest.fixture
def admin(db_session):
    return create_user(db_session, "admin@example.com", is_superuser=True)


@pytest.fixture
def student(db_session):
    return create_user(db_session, "student@example.com")


@pytest.fixture
def exam(db_session, admin):
    return ExamService(db_session).schedule_exam(
        admin.id, ExamCreate(name="Chemistry", scheduled_time=T0, duration_minutes=45)
    )


class TestUserService:
    """Tests for UserService"""

    def test_duplicate_email(self, db_session, student):
        with pytest.raises(ValueError):
            create_user(db_session, "student@example.com")

    def test_email_lookup_is_case_insensitive(self, db_session, student):
        assert UserService(db_session).get_user_by_email("Student@Example.com").id == student.id

    def test_authenticate(self, db_session, student):
        service = UserService(db_session)

        assert service.authenticate_user("student@example.com", "secret-pass").id == student.id
        assert service.authenticate_user("student@example.com", "wrong") is None


class TestExamAndWhitelist:
    """Tests for ExamService and WhitelistService"""

    def test_schedule_exam(self, exam, admin):
        assert exam.admin_id == admin.id
        assert exam.duration_seconds == 45 * 60

    def test_schedule_rejects_blank_name(self, db_session, admin):
        with pytest.raises(ValueError):
            ExamService(db_session).schedule_exam(admin.id, ExamCreate(name="  ", scheduled_time=T0))

    def test_whitelist_is_per_admin(self, db_session, admin):
        other_admin = create_user(db_session, "other-admin@example.com", is_superuser=True)
        whitelist = WhitelistService(db_session)
        entry = whitelist.add(admin.id, "  Student@Example.com ")

        assert entry.email == "student@example.com"
        assert whitelist.add(admin.id, "student@example.com").id == entry.id
        assert whitelist.is_whitelisted("STUDENT@example.com", admin.id)
        assert not whitelist.is_whitelisted("student@example.com", other_admin.id)

    def test_whitelist_rejects_invalid_email(self, db_session, admin):
        with pytest.raises(ValueError):
            WhitelistService(db_session).add(admin.id, "not-an-email")

    def test_remove_only_own_entries(self, db_session, admin):
        whitelist = WhitelistService(db_session)
        entry = whitelist.add(admin.id, "student@example.com")

        assert whitelist.remove(admin.id + 1, entry.id) is None
        assert whitelist.remove(admin.id, entry.id).email == "student@example.com"
        assert whitelist.list_for_admin(admin.id) == []


class TestActivityLogs:
    """Tests for ActivityLogService"""

    def test_aggregate_collapses_consecutive_runs(self):
        def entry(i, email, activity_type, details):
            return SimpleNamespace(
                id=i, user_email=email, user_id=1, exam_id=1,
                activity_type=activity_type, details=details, timestamp=T0,
            )

        logs = [
            entry(1, "a@example.com", "tab-switch", "Switched tabs"),
            entry(2, "a@example.com", "tab-switch", "Switched tabs"),
            entry(3, "b@example.com", "tab-switch", "Switched tabs"),
            entry(4, "a@example.com", "tab-switch", "Switched tabs"),
            entry(5, "a@example.com", "copy-paste", "Switched tabs"),
        ]
        aggregated = ActivityLogService.aggregate(logs)

        assert [(row["id"], row["count"]) for row in aggregated] == [(1, 2), (3, 1), (4, 1), (5, 1)]

    def test_list_logs_newest_first_with_search(self, db_session, admin, student, exam):
        service = ActivityLogService(db_session)
        service.log(ActivityType.EXAM_START, "Exam started: Chemistry", student.id, student.email, exam.id,
                    admin_id=admin.id, timestamp=T0)
        service.log(ActivityType.TAB_SWITCH, "Switched tabs", student.id, student.email, exam.id,
                    admin_id=admin.id, timestamp=T0 + timedelta(seconds=30))
        service.log(ActivityType.EXAM_START, "Exam started: Chemistry", None, "someone@else.com", exam.id,
                    admin_id=admin.id, timestamp=T0 + timedelta(seconds=60))
        service.log(ActivityType.EXAM_START, "Other admin's exam", None, "student@example.com", 999,
                    admin_id=admin.id + 100, timestamp=T0)

        logs = service.list_logs(admin.id, search="student")

        assert [log.activity_type for log in logs] == ["tab-switch", "exam-start"]
        assert len(service.list_logs(admin.id)) == 3
        assert len(service.list_logs(admin.id, activity_type=ActivityType.TAB_SWITCH)) == 1

    def test_exam_history_counts_unique_participants(self, db_session, admin, student, exam):
        other = create_user(db_session, "other@example.com")
        service = ActivityLogService(db_session)
        for user in (student, student, other):
            service.log(ActivityType.EXAM_START, "Exam started: Chemistry", user.id, user.email, exam.id,
                        admin_id=admin.id)
        service.log(ActivityType.TAB_SWITCH, "Switched tabs", student.id, student.email, exam.id, admin_id=admin.id)

        history = service.exam_history(admin.id)

        assert len(history) == 1
        assert history[0]["name"] == "Chemistry"
        assert history[0]["participant_count"] == 2
        assert {p["email"] for p in history[0]["participants"]} == {"student@example.com", "other@example.com"}


class TestDisqualifications:
    """Tests for DisqualificationService"""

    def test_create_is_idempotent(self, db_session, admin, student, exam):
        service = DisqualificationService(db_session)
        first = service.create(student.id, exam.id, "Too many violations", student.email, admin.id)
        second = service.create(student.id, exam.id, "Again", student.email, admin.id)

        assert first.id == second.id
        assert second.reason == "Too many violations"
        assert service.exists(student.id, exam.id)

    def test_override_lifts_and_rewhitelists(self, db_session, admin, student, exam):
        """Override deletes the record, logs it and restores whitelist access"""
        service = DisqualificationService(db_session)
        record = service.create(student.id, exam.id, "Camera lost", student.email, admin.id)

        removed, rewhitelisted = service.override(admin, record.id)

        assert removed.user_email == "student@example.com"
        assert rewhitelisted is True
        assert not service.exists(student.id, exam.id)
        assert WhitelistService(db_session).is_whitelisted(student.email, admin.id)
        override_log = db_session.query(ActivityLog).filter(
            ActivityLog.activity_type == ActivityType.MANUAL_OVERRIDE.value
        ).one()
        assert override_log.details == (
            f"Admin (admin@example.com) overrode disqualification for user student@example.com for exam {exam.id}."
        )

    def test_override_keeps_existing_whitelist_entry(self, db_session, admin, student, exam):
        WhitelistService(db_session).add(admin.id, student.email)
        service = DisqualificationService(db_session)
        record = service.create(student.id, exam.id, "Camera lost", student.email, admin.id)

        _, rewhitelisted = service.override(admin, record.id)

        assert rewhitelisted is False
        assert len(WhitelistService(db_session).list_for_admin(admin.id)) == 1

    def test_override_other_admins_record(self, db_session, admin, student, exam):
        other_admin = create_user(db_session, "other-admin@example.com", is_superuser=True)
        service = DisqualificationService(db_session)
        record = service.create(student.id, exam.id, "Camera lost", student.email, admin.id)

        assert service.override(other_admin, record.id) == (None, False)
        assert service.exists(student.id, exam.id)


class TestDatabaseStores:
    """Tests for the stores a live session writes through"""

    def test_stores_write_with_session_context(self, db_session, admin, student, exam):
        context = SessionContext(student.id, student.email, exam.id, exam.name, admin.id)
        stores = database_stores_factory(SessionLocal)(context, "session-xyz")

        stores.activity_log.append("session-xyz", ActivityType.AI_WARNING, "Phone visible", T0)
        stores.disqualifications.create(student.id, exam.id, "Exceeded maximum violations (3).", T0)
        stores.results.record("session-xyz", 4, 10, 300, T0)

        logs = ActivityLogService(db_session).list_for_session("session-xyz")
        assert [(log.activity_type, log.admin_id, log.user_email) for log in logs] == [
            ("ai-warning", admin.id, "student@example.com")
        ]
        assert stores.disqualifications.exists(student.id, exam.id)
        record = DisqualificationService(db_session).get(student.id, exam.id)
        assert record.admin_id == admin.id
        result = ExamService(db_session).get_result("session-xyz")
        assert result.percentage == 40.0
