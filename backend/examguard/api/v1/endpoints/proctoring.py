import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ....core.cache import cache, live_snapshot_key
from ....core.config import settings
from ....core.database import get_db
from ....data.questions import get_exam_questions
from ....models.user import User
from ....proctoring import ProctoringSession, SessionContext, SessionManager, ViolationType
from ....proctoring.camera import InvalidFrameError
from ....schemas.proctoring import (
    AnswerRequest,
    FrameRequest,
    FrameResponse,
    NavigateRequest,
    SessionStatus,
    SignalRequest,
    StartSessionRequest,
)
from ....services.disqualification_service import DisqualificationService
from ....services.exam_service import ExamService, WhitelistService
from ... import deps

logger = logging.getLogger(__name__)

router = APIRouter()

VISIBILITY_REASON = "Switched tabs or left the exam window"
CLIPBOARD_REASON = "Copy/paste attempt detected"


def _require_session(manager: SessionManager, user: User, exam_id: int) -> ProctoringSession:
    session = manager.get(user.id, exam_id)
    if session is None:
        raise HTTPException(status_code=404, detail="No exam session found")
    return session


def _status(session: ProctoringSession, drain: bool = False) -> SessionStatus:
    warnings = session.drain_warnings() if drain else None
    return SessionStatus.from_snapshot(session.snapshot(), warnings)


@router.post("/exams/{exam_id}/start", response_model=SessionStatus)
async def start_exam_session(
    exam_id: int,
    request: StartSessionRequest,
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """Starts a proctored attempt (or returns the one already running)."""
    exam = ExamService(db).get_exam(exam_id)
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")

    if not WhitelistService(db).is_whitelisted(current_user.email, exam.admin_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not whitelisted to take this exam. Please contact an administrator."
        )

    disqualification = DisqualificationService(db).get(current_user.id, exam_id)
    if disqualification:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "You have been disqualified from this exam",
                "reason": disqualification.reason,
            }
        )

    context = SessionContext(
        user_id=current_user.id,
        user_email=current_user.email,
        exam_id=exam.id,
        exam_name=exam.name,
        admin_id=exam.admin_id,
    )
    session = manager.start(
        context,
        questions=get_exam_questions(exam.id),
        duration_seconds=exam.duration_seconds,
        camera_granted=request.camera_granted,
    )
    return _status(session)


@router.get("/exams/{exam_id}/session", response_model=SessionStatus)
async def get_session_status(
    exam_id: int,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """Polled by the exam page; pending warnings are returned once."""
    session = _require_session(manager, current_user, exam_id)
    return _status(session, drain=True)


@router.post("/exams/{exam_id}/answer", response_model=SessionStatus)
async def answer_question(
    exam_id: int,
    request: AnswerRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    try:
        accepted = session.answer(request.question_id, request.selected_answer)
    except KeyError:
        raise HTTPException(status_code=404, detail="Question not found")
    if not accepted:
        raise HTTPException(status_code=409, detail="Exam session is no longer in progress")
    return _status(session)


@router.post("/exams/{exam_id}/navigate", response_model=SessionStatus)
async def navigate_to_question(
    exam_id: int,
    request: NavigateRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    try:
        accepted = session.go_to_question(request.question_index)
    except IndexError:
        raise HTTPException(status_code=400, detail="Question index out of range")
    if not accepted:
        raise HTTPException(status_code=409, detail="Exam session is no longer in progress")
    return _status(session)


@router.post("/exams/{exam_id}/submit", response_model=SessionStatus)
async def submit_exam(
    exam_id: int,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    session.submit()
    return _status(session)


@router.post("/exams/{exam_id}/frame", response_model=FrameResponse)
async def push_frame(
    exam_id: int,
    request: FrameRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """Receives the latest webcam still from the browser."""
    session = _require_session(manager, current_user, exam_id)
    camera = manager.camera_for(session)
    if camera is None:
        raise HTTPException(status_code=404, detail="No camera attached to this session")

    try:
        accepted = camera.push_frame(request.frame)
    except InvalidFrameError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if accepted and session.machine.in_progress:
        context = manager.context_for(session)
        await cache.aset(
            live_snapshot_key(session.session_id),
            {
                "session_id": session.session_id,
                "user_id": current_user.id,
                "user_email": current_user.email,
                "exam_id": exam_id,
                "admin_id": context.admin_id if context else None,
                "frame": request.frame,
                "updated_at": datetime.utcnow().isoformat(),
            },
            ttl=settings.live_snapshot_ttl,
        )
    return FrameResponse(accepted=accepted, state=session.state)


@router.post("/exams/{exam_id}/signals/visibility", response_model=SessionStatus)
async def report_visibility_loss(
    exam_id: int,
    request: SignalRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    session.record_violation(request.detail or VISIBILITY_REASON, ViolationType.VISIBILITY)
    return _status(session, drain=True)


@router.post("/exams/{exam_id}/signals/clipboard", response_model=SessionStatus)
async def report_clipboard_use(
    exam_id: int,
    request: SignalRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    session.record_violation(request.detail or CLIPBOARD_REASON, ViolationType.CLIPBOARD)
    return _status(session, drain=True)


@router.post("/exams/{exam_id}/signals/camera", response_model=SessionStatus)
async def report_camera_failure(
    exam_id: int,
    request: SignalRequest,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    session = _require_session(manager, current_user, exam_id)
    camera = manager.camera_for(session)
    if camera is not None:
        camera.report_permission(False)
    session.camera_failed(request.detail)
    return _status(session)


@router.delete("/exams/{exam_id}/session")
async def leave_exam_session(
    exam_id: int,
    current_user: User = Depends(deps.get_current_active_user),
    manager: SessionManager = Depends(deps.get_session_manager),
):
    """User returned to exam selection; the session is discarded."""
    session = manager.get(current_user.id, exam_id)
    if session is not None:
        await cache.adelete(live_snapshot_key(session.session_id))
    discarded = manager.discard(current_user.id, exam_id)
    return {"discarded": discarded}
