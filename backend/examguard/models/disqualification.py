from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
from .base import BaseModel


class DisqualifiedUser(BaseModel):
    __tablename__ = "disqualified_users"
    __table_args__ = (UniqueConstraint("user_id", "exam_id", name="uq_disqualified_user_exam"),)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_email = Column(String, index=True)
    exam_id = Column(Integer, ForeignKey("scheduled_exams.id"), nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=True)
    reason = Column(Text, nullable=False)
    disqualified_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<DisqualifiedUser {self.user_email} from exam {self.exam_id}>"
