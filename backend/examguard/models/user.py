from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    full_name = Column(String, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    is_superuser = Column(Boolean(), default=False)

    # Only populated for admins
    scheduled_exams = relationship("ScheduledExam", back_populates="admin")
    whitelist_entries = relationship("WhitelistedUser", back_populates="admin")
