import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from .... import schemas
from ... import deps
from ....core.cache import LIVE_SNAPSHOT_PREFIX, cache
from ....models.user import User
from ....proctoring import ActivityType, SessionManager
from ....schemas.admin import (
    ActiveSession,
    ActivityLogEntry,
    AggregatedLogEntry,
    DisqualifiedUser,
    ExamHistoryEntry,
    LiveSnapshot,
    OverrideResponse,
    WhitelistCreate,
    WhitelistedUser,
)
from ....services.activity_service import ActivityLogService
from ....services.disqualification_service import DisqualificationService
from ....services.exam_service import ExamService, WhitelistService
from ....services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/users", response_model=List[schemas.User])
def get_all_users(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    """
    Retrieve all users. Only accessible by superusers.
    """
    return UserService(db).list_users()


@router.get("/whitelist", response_model=List[WhitelistedUser])
def get_whitelist(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    return WhitelistService(db).list_for_admin(current_user.id)


@router.post("/whitelist", response_model=WhitelistedUser)
def add_to_whitelist(
    entry: WhitelistCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    try:
        return WhitelistService(db).add(current_user.id, entry.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/whitelist/{entry_id}")
def remove_from_whitelist(
    entry_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    entry = WhitelistService(db).remove(current_user.id, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Whitelist entry not found")
    return {"message": f"Removed {entry.email} from the whitelist"}


@router.get("/exams", response_model=List[schemas.Exam])
def get_scheduled_exams(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    return ExamService(db).list_exams(admin_id=current_user.id)


@router.post("/exams", response_model=schemas.Exam)
def schedule_exam(
    exam_data: schemas.ExamCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    try:
        exam = ExamService(db).schedule_exam(current_user.id, exam_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Admin {current_user.id} scheduled exam {exam.id} ({exam.name})")
    return exam


@router.delete("/exams/{exam_id}")
def remove_exam(
    exam_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    exam = ExamService(db).remove_exam(current_user.id, exam_id)
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")
    return {"message": f"Exam {exam.name} removed"}


@router.get("/activity-logs", response_model=List[ActivityLogEntry])
def get_activity_logs(
    search: Optional[str] = Query(None, description="Filter by user email"),
    activity_type: Optional[ActivityType] = None,
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    """
    Activity logs for exams owned by the current admin, newest first.
    """
    return ActivityLogService(db).list_logs(current_user.id, search=search, activity_type=activity_type, limit=limit)


@router.get("/activity-logs/aggregated", response_model=List[AggregatedLogEntry])
def get_aggregated_activity_logs(
    search: Optional[str] = Query(None, description="Filter by user email"),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    """
    Same as /activity-logs with repeated consecutive entries collapsed into one row with a count.
    """
    service = ActivityLogService(db)
    return service.aggregate(service.list_logs(current_user.id, search=search, limit=limit))


@router.get("/exam-history", response_model=List[ExamHistoryEntry])
def get_exam_history(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    return ActivityLogService(db).exam_history(current_user.id)


@router.get("/disqualified", response_model=List[DisqualifiedUser])
def get_disqualified_users(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    return DisqualificationService(db).list_for_admin(current_user.id)


@router.post("/disqualified/{record_id}/override", response_model=OverrideResponse)
def override_disqualification(
    record_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_superuser),
):
    """
    Lifts a disqualification so the user can take the exam again.
    """
    record, rewhitelisted = DisqualificationService(db).override(current_user, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Disqualification record not found")

    message = f"Disqualification for {record.user_email} lifted."
    if rewhitelisted:
        message += " User was re-added to the whitelist."
    return OverrideResponse(
        overridden=DisqualifiedUser.model_validate(record),
        rewhitelisted=rewhitelisted,
        message=message,
    )


@router.get("/sessions", response_model=List[ActiveSession])
async def get_active_sessions(
    current_user: User = Depends(deps.get_current_active_superuser),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """
    Sessions currently in progress on exams owned by the current admin.
    """
    sessions = []
    for session in manager.active_sessions():
        context = manager.context_for(session)
        if context is None or context.admin_id != current_user.id:
            continue
        sessions.append(ActiveSession(
            session_id=session.session_id,
            user_id=context.user_id,
            user_email=context.user_email,
            exam_id=context.exam_id,
            exam_name=context.exam_name,
            state=session.state.value,
            violation_count=session.violation_count,
            time_remaining_seconds=session.time_remaining_seconds,
        ))
    return sessions


@router.get("/live-snapshots", response_model=List[LiveSnapshot])
async def get_live_snapshots(
    current_user: User = Depends(deps.get_current_active_superuser),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """
    Latest webcam stills of users taking this admin's exams.

    Entries whose session is no longer in progress are skipped until they expire.
    """
    snapshots = await cache.aget_pattern(f"{LIVE_SNAPSHOT_PREFIX}*")
    live = []
    for snapshot in snapshots.values():
        if not isinstance(snapshot, dict) or snapshot.get("admin_id") != current_user.id:
            continue
        session = manager.get_by_id(snapshot.get("session_id"))
        if session is None or not session.machine.in_progress:
            continue
        live.append(LiveSnapshot(**{k: v for k, v in snapshot.items() if k != "admin_id"}))
    live.sort(key=lambda s: s.updated_at, reverse=True)
    return live
