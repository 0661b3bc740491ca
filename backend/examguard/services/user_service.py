from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from ..models.user import User
from ..schemas.user import UserCreate
from ..core.security import get_password_hash, verify_password


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def create_user(self, user_data: UserCreate, is_superuser: bool = False) -> User:
        db_user = User(
            full_name=user_data.full_name,
            email=user_data.email.lower(),
            hashed_password=get_password_hash(user_data.password),
            is_superuser=is_superuser,
        )
        self.db.add(db_user)
        try:
            self.db.commit()
            self.db.refresh(db_user)
            return db_user
        except IntegrityError:
            self.db.rollback()
            raise ValueError("Email already registered")

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user
