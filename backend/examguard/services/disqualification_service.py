import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Tuple
from datetime import datetime

from ..models.disqualification import DisqualifiedUser
from ..models.user import User
from ..proctoring.types import ActivityType
from .activity_service import ActivityLogService
from .exam_service import WhitelistService

logger = logging.getLogger(__name__)


class DisqualificationService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int, exam_id: int) -> Optional[DisqualifiedUser]:
        return self.db.query(DisqualifiedUser).filter(
            DisqualifiedUser.user_id == user_id,
            DisqualifiedUser.exam_id == exam_id
        ).first()

    def exists(self, user_id: int, exam_id: int) -> bool:
        return self.get(user_id, exam_id) is not None

    def create(
        self,
        user_id: int,
        exam_id: int,
        reason: str,
        user_email: Optional[str] = None,
        admin_id: Optional[int] = None,
        disqualified_at: Optional[datetime] = None,
    ) -> DisqualifiedUser:
        """Creates the record unless one already exists for the pair."""
        existing = self.get(user_id, exam_id)
        if existing:
            return existing

        record = DisqualifiedUser(
            user_id=user_id,
            user_email=user_email,
            exam_id=exam_id,
            admin_id=admin_id,
            reason=reason,
            disqualified_at=disqualified_at or datetime.utcnow(),
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with another writer for the same pair
            self.db.rollback()
            return self.get(user_id, exam_id)
        self.db.refresh(record)
        return record

    def list_for_admin(self, admin_id: int) -> List[DisqualifiedUser]:
        return (
            self.db.query(DisqualifiedUser)
            .filter(DisqualifiedUser.admin_id == admin_id)
            .order_by(DisqualifiedUser.disqualified_at.desc())
            .all()
        )

    def override(self, admin: User, record_id: int) -> Tuple[Optional[DisqualifiedUser], bool]:
        """
        Lifts a disqualification.

        Deletes the record, logs a manual-override entry and re-whitelists
        the user for this admin when needed. Returns the removed record (None
        when it does not belong to the admin) and whether the user was
        re-whitelisted.
        """
        record = self.db.query(DisqualifiedUser).filter(
            DisqualifiedUser.id == record_id,
            DisqualifiedUser.admin_id == admin.id
        ).first()
        if not record:
            return None, False

        # Deleted instances are detached on commit
        user_id, user_email, exam_id = record.user_id, record.user_email, record.exam_id
        self.db.expunge(record)
        self.db.query(DisqualifiedUser).filter(DisqualifiedUser.id == record_id).delete()
        self.db.commit()

        ActivityLogService(self.db).log(
            ActivityType.MANUAL_OVERRIDE,
            f"Admin ({admin.email}) overrode disqualification for user {user_email} for exam {exam_id}.",
            user_id=user_id,
            user_email=user_email,
            exam_id=exam_id,
            admin_id=admin.id,
        )

        rewhitelisted = False
        whitelist = WhitelistService(self.db)
        if user_email and not whitelist.is_whitelisted(user_email, admin.id):
            whitelist.add(admin.id, user_email)
            rewhitelisted = True

        logger.info(f"Admin {admin.id} overrode disqualification of user {user_id} on exam {exam_id}")
        return record, rewhitelisted
