from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from datetime import datetime

from ..models.activity_log import ActivityLog
from ..models.exam import ScheduledExam
from ..proctoring.types import ActivityType


class ActivityLogService:
    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        activity_type: ActivityType,
        details: str,
        user_id: Optional[int],
        user_email: Optional[str],
        exam_id: Optional[int],
        admin_id: Optional[int] = None,
        session_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            session_id=session_id,
            user_id=user_id,
            user_email=user_email,
            exam_id=exam_id,
            admin_id=admin_id,
            activity_type=ActivityType(activity_type).value,
            details=details,
            timestamp=timestamp or datetime.utcnow(),
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def list_logs(
        self,
        admin_id: int,
        search: Optional[str] = None,
        activity_type: Optional[ActivityType] = None,
        limit: int = 200,
    ) -> List[ActivityLog]:
        """Newest first; ``search`` matches the user's email."""
        query = self.db.query(ActivityLog).filter(ActivityLog.admin_id == admin_id)
        if search:
            query = query.filter(ActivityLog.user_email.ilike(f"%{search.strip()}%"))
        if activity_type:
            query = query.filter(ActivityLog.activity_type == ActivityType(activity_type).value)
        return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()

    def list_for_session(self, session_id: str) -> List[ActivityLog]:
        return (
            self.db.query(ActivityLog)
            .filter(ActivityLog.session_id == session_id)
            .order_by(ActivityLog.timestamp.asc(), ActivityLog.id.asc())
            .all()
        )

    @staticmethod
    def aggregate(logs: List[ActivityLog]) -> List[Dict[str, Any]]:
        """Collapses runs of consecutive entries with the same user, type and details."""
        aggregated: List[Dict[str, Any]] = []
        for log in logs:
            last = aggregated[-1] if aggregated else None
            if (
                last
                and last["user_email"] == log.user_email
                and last["activity_type"] == log.activity_type
                and last["details"] == log.details
            ):
                last["count"] += 1
                continue
            aggregated.append({
                "id": log.id,
                "user_email": log.user_email,
                "user_id": log.user_id,
                "exam_id": log.exam_id,
                "activity_type": log.activity_type,
                "details": log.details,
                "timestamp": log.timestamp,
                "count": 1,
            })
        return aggregated

    def exam_history(self, admin_id: int) -> List[Dict[str, Any]]:
        """Every exam of the admin with the unique users that started it."""
        exams = (
            self.db.query(ScheduledExam)
            .filter(ScheduledExam.admin_id == admin_id)
            .order_by(ScheduledExam.scheduled_time.desc())
            .all()
        )

        history = []
        for exam in exams:
            starts = (
                self.db.query(ActivityLog)
                .filter(
                    ActivityLog.admin_id == admin_id,
                    ActivityLog.exam_id == exam.id,
                    ActivityLog.activity_type == ActivityType.EXAM_START.value,
                )
                .order_by(ActivityLog.timestamp.asc())
                .all()
            )
            participants: Dict[int, Dict[str, Any]] = {}
            for entry in starts:
                if entry.user_id is not None and entry.user_id not in participants:
                    participants[entry.user_id] = {"user_id": entry.user_id, "email": entry.user_email}

            history.append({
                "id": exam.id,
                "name": exam.name,
                "scheduled_time": exam.scheduled_time,
                "duration_minutes": exam.duration_minutes,
                "participants": list(participants.values()),
                "participant_count": len(participants),
            })
        return history
