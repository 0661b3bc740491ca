from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


class AdminCreate(UserCreate):
    admin_code: str = Field(..., description="Must match ADMIN_REGISTRATION_CODE")


class User(UserBase):
    id: int
    is_superuser: bool

    class Config:
        from_attributes = True
