"""
Database-backed collaborators for live proctoring sessions.

A session lives far longer than a request, so each write opens its own
short database session from the factory instead of borrowing one.
"""
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from ..core.database import SessionLocal
from ..proctoring.manager import SessionContext, SessionStores
from ..proctoring.types import ActivityType
from .activity_service import ActivityLogService
from .disqualification_service import DisqualificationService
from .exam_service import ExamService

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class DatabaseActivityLog:
    def __init__(self, context: SessionContext, session_factory: SessionFactory = SessionLocal):
        self.context = context
        self.session_factory = session_factory

    def append(self, session_id: str, activity_type: ActivityType, details: str, timestamp: datetime) -> None:
        with self.session_factory() as db:
            ActivityLogService(db).log(
                activity_type,
                details,
                user_id=self.context.user_id,
                user_email=self.context.user_email,
                exam_id=self.context.exam_id,
                admin_id=self.context.admin_id,
                session_id=session_id,
                timestamp=timestamp,
            )


class DatabaseDisqualificationStore:
    def __init__(self, context: SessionContext, session_factory: SessionFactory = SessionLocal):
        self.context = context
        self.session_factory = session_factory

    def exists(self, user_id: int, exam_id: int) -> bool:
        with self.session_factory() as db:
            return DisqualificationService(db).exists(user_id, exam_id)

    def create(self, user_id: int, exam_id: int, reason: str, timestamp: datetime) -> None:
        with self.session_factory() as db:
            DisqualificationService(db).create(
                user_id,
                exam_id,
                reason,
                user_email=self.context.user_email,
                admin_id=self.context.admin_id,
                disqualified_at=timestamp,
            )


class DatabaseResultStore:
    def __init__(self, context: SessionContext, session_factory: SessionFactory = SessionLocal):
        self.context = context
        self.session_factory = session_factory

    def record(self, session_id: str, score: int, total: int, time_spent_seconds: int, timestamp: datetime) -> None:
        with self.session_factory() as db:
            ExamService(db).record_result(
                session_id=session_id,
                user_id=self.context.user_id,
                exam_id=self.context.exam_id,
                score=score,
                total=total,
                time_spent_seconds=time_spent_seconds,
                submitted_at=timestamp,
            )


def database_stores_factory(session_factory: SessionFactory = SessionLocal):
    def make_stores(context: SessionContext, session_id: str) -> SessionStores:
        return SessionStores(
            activity_log=DatabaseActivityLog(context, session_factory),
            disqualifications=DatabaseDisqualificationStore(context, session_factory),
            results=DatabaseResultStore(context, session_factory),
        )
    return make_stores
