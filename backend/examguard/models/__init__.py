from .base import BaseModel
from .user import User
from .exam import ScheduledExam, ExamResult
from .whitelist import WhitelistedUser
from .activity_log import ActivityLog
from .disqualification import DisqualifiedUser

__all__ = [
    "BaseModel",
    "User",
    "ScheduledExam",
    "ExamResult",
    "WhitelistedUser",
    "ActivityLog",
    "DisqualifiedUser",
]
