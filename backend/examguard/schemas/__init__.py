from .auth import Token, LoginRequest
from .user import User, UserCreate, AdminCreate
from .exam import Exam, ExamCreate, ExamResult, QuestionPublic
from .proctoring import SessionStatus, StartSessionRequest

__all__ = [
    "Token",
    "LoginRequest",
    "User",
    "UserCreate",
    "AdminCreate",
    "Exam",
    "ExamCreate",
    "ExamResult",
    "QuestionPublic",
    "SessionStatus",
    "StartSessionRequest",
]
