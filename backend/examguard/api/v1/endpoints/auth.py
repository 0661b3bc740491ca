from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from ....core.config import settings
from ....core.database import get_db
from ....core.security import oauth2_scheme
from ....services.auth_service import AuthService
from ....services.user_service import UserService
from ....schemas.auth import LoginRequest, Token
from ....schemas.user import User, UserCreate, AdminCreate
from ... import deps

router = APIRouter()


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    auth_service = AuthService(db)
    token = auth_service.authenticate_and_create_token(
        form_data.username, form_data.password
    )

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    token = AuthService(db).authenticate_and_create_token(credentials.email, credentials.password)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return token


@router.post("/refresh-token", response_model=Token)
async def refresh_access_token(
    refresh_token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
):
    auth_service = AuthService(db)
    new_token_data = auth_service.refresh_token(refresh_token)

    if not new_token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token or user not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return new_token_data


def _register(db: Session, user_data: UserCreate, is_superuser: bool):
    user_service = UserService(db)

    if user_service.get_user_by_email(user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    try:
        return user_service.create_user(user_data, is_superuser=is_superuser)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/register", response_model=User)
async def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    return _register(db, user_data, is_superuser=False)


@router.post("/register-admin", response_model=User)
async def register_admin(
    admin_data: AdminCreate,
    db: Session = Depends(get_db)
):
    if not settings.admin_registration_code or admin_data.admin_code != settings.admin_registration_code:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin registration code"
        )
    user_data = UserCreate(
        full_name=admin_data.full_name,
        email=admin_data.email,
        password=admin_data.password,
    )
    return _register(db, user_data, is_superuser=True)


@router.get("/me", response_model=User)
async def read_current_user(
    current_user=Depends(deps.get_current_active_user),
):
    return current_user
