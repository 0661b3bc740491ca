from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from datetime import datetime

from ..models.exam import ScheduledExam, ExamResult
from ..models.whitelist import WhitelistedUser
from ..schemas.exam import ExamCreate
from ..utils.timezone import to_naive_utc


class ExamService:
    def __init__(self, db: Session):
        self.db = db

    def schedule_exam(self, admin_id: int, exam_data: ExamCreate) -> ScheduledExam:
        if not exam_data.name.strip() or exam_data.duration_minutes <= 0:
            raise ValueError("Please fill all fields correctly")

        exam = ScheduledExam(
            name=exam_data.name.strip(),
            scheduled_time=to_naive_utc(exam_data.scheduled_time),
            duration_minutes=exam_data.duration_minutes,
            admin_id=admin_id,
        )
        self.db.add(exam)
        self.db.commit()
        self.db.refresh(exam)
        return exam

    def get_exam(self, exam_id: int) -> Optional[ScheduledExam]:
        return self.db.query(ScheduledExam).filter(ScheduledExam.id == exam_id).first()

    def list_exams(self, admin_id: Optional[int] = None, newest_first: bool = False) -> List[ScheduledExam]:
        query = self.db.query(ScheduledExam)
        if admin_id is not None:
            query = query.filter(ScheduledExam.admin_id == admin_id)
        order = ScheduledExam.scheduled_time.desc() if newest_first else ScheduledExam.scheduled_time.asc()
        return query.order_by(order).all()

    def remove_exam(self, admin_id: int, exam_id: int) -> Optional[ScheduledExam]:
        exam = self.db.query(ScheduledExam).filter(
            ScheduledExam.id == exam_id,
            ScheduledExam.admin_id == admin_id
        ).first()
        if not exam:
            return None
        self.db.delete(exam)
        self.db.commit()
        return exam

    def get_result(self, session_id: str) -> Optional[ExamResult]:
        return self.db.query(ExamResult).filter(ExamResult.session_id == session_id).first()

    def record_result(
        self,
        session_id: str,
        user_id: int,
        exam_id: int,
        score: int,
        total: int,
        time_spent_seconds: int,
        submitted_at: datetime,
    ) -> ExamResult:
        result = ExamResult(
            session_id=session_id,
            user_id=user_id,
            exam_id=exam_id,
            score=score,
            total=total,
            time_spent_seconds=time_spent_seconds,
            submitted_at=submitted_at,
        )
        self.db.add(result)
        self.db.commit()
        self.db.refresh(result)
        return result

    def get_user_results(self, user_id: int) -> List[ExamResult]:
        return (
            self.db.query(ExamResult)
            .filter(ExamResult.user_id == user_id)
            .order_by(ExamResult.submitted_at.desc())
            .all()
        )


class WhitelistService:
    def __init__(self, db: Session):
        self.db = db

    def list_for_admin(self, admin_id: int) -> List[WhitelistedUser]:
        return (
            self.db.query(WhitelistedUser)
            .filter(WhitelistedUser.admin_id == admin_id)
            .order_by(WhitelistedUser.added_at.asc())
            .all()
        )

    def find(self, email: str, admin_id: int) -> Optional[WhitelistedUser]:
        return self.db.query(WhitelistedUser).filter(
            WhitelistedUser.email == email.strip().lower(),
            WhitelistedUser.admin_id == admin_id
        ).first()

    def is_whitelisted(self, email: str, admin_id: int) -> bool:
        return self.find(email, admin_id) is not None

    def add(self, admin_id: int, email: str, commit: bool = True) -> WhitelistedUser:
        email = email.strip().lower()
        if not email or "@" not in email:
            raise ValueError("Please enter a valid email address")

        existing = self.find(email, admin_id)
        if existing:
            return existing

        entry = WhitelistedUser(email=email, admin_id=admin_id)
        self.db.add(entry)
        if commit:
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                return self.find(email, admin_id)
            self.db.refresh(entry)
        return entry

    def remove(self, admin_id: int, entry_id: int) -> Optional[WhitelistedUser]:
        entry = self.db.query(WhitelistedUser).filter(
            WhitelistedUser.id == entry_id,
            WhitelistedUser.admin_id == admin_id
        ).first()
        if not entry:
            return None
        self.db.delete(entry)
        self.db.commit()
        return entry
