from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from .base import BaseModel


class WhitelistedUser(BaseModel):
    __tablename__ = "whitelisted_users"
    __table_args__ = (UniqueConstraint("email", "admin_id", name="uq_whitelist_email_admin"),)

    email = Column(String, nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), index=True)
    added_at = Column(DateTime, default=datetime.utcnow)

    admin = relationship("User", back_populates="whitelist_entries")
