from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer
from datetime import datetime
from .base import BaseModel


class ActivityLog(BaseModel):
    __tablename__ = "activity_logs"

    session_id = Column(String, index=True, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    user_email = Column(String, index=True)
    exam_id = Column(Integer, ForeignKey("scheduled_exams.id"), index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=True)
    activity_type = Column(String, index=True, nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<ActivityLog {self.activity_type} for {self.user_email} on exam {self.exam_id}>"
