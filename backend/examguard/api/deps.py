import asyncio
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.cache import cache, live_snapshot_key
from ..core.config import settings
from ..core.database import get_db
from ..core.security import oauth2_scheme
from ..services.auth_service import AuthService
from ..services.proctoring_stores import database_stores_factory
from ..models.user import User
from ..proctoring import AsyncioClock, ProctoringSession, SessionManager
from ..utils.openai_service import behavior_analysis_service

logger = logging.getLogger(__name__)

_session_manager: Optional[SessionManager] = None


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    auth_service = AuthService(db)
    user = auth_service.get_current_user(token)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    return current_user


def get_current_active_superuser(
    current_user: User = Depends(get_current_active_user),
) -> User:
    if not current_user.is_superuser:
        raise HTTPException(
            status_code=403, detail="The user doesn't have enough privileges"
        )
    return current_user


def clear_live_snapshot(session: ProctoringSession) -> None:
    """Drops the admin live feed entry once a session is submitted or disqualified."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(f"No running event loop; live snapshot for session {session.session_id} left to expire")
        return
    loop.create_task(cache.adelete(live_snapshot_key(session.session_id)))


def get_session_manager() -> SessionManager:
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(
            classifier=behavior_analysis_service,
            stores_factory=database_stores_factory(),
            clock=AsyncioClock(),
            max_violations=settings.max_violations,
            default_duration_seconds=settings.default_exam_duration_seconds,
            tick_interval_seconds=settings.tick_interval_seconds,
            capture_interval_seconds=settings.capture_interval_seconds,
            classifier_timeout_seconds=settings.classifier_timeout_seconds,
            max_frame_bytes=settings.max_frame_size,
            on_session_finished=clear_live_snapshot,
        )
    return _session_manager


def shutdown_session_manager() -> None:
    global _session_manager
    if _session_manager is not None:
        _session_manager.shutdown()
        _session_manager = None
