from pydantic import BaseModel, EmailStr
from typing import Optional


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None


class LoginRequest(BaseModel):
    """JSON login used by the exam frontend; /token keeps the OAuth2 form flow."""
    email: EmailStr
    password: str
