from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from ....core.database import get_db
from ....data.questions import get_exam_questions
from ....models.user import User
from ....schemas.exam import Exam, ExamResult, QuestionPublic
from ....services.exam_service import ExamService, WhitelistService
from ... import deps

router = APIRouter()


@router.get("/", response_model=List[Exam])
def list_available_exams(
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db)
):
    """Exams scheduled by admins who whitelisted the current user."""
    exams = ExamService(db).list_exams()
    if current_user.is_superuser:
        return exams

    whitelist = WhitelistService(db)
    return [exam for exam in exams if whitelist.is_whitelisted(current_user.email, exam.admin_id)]


@router.get("/results", response_model=List[ExamResult])
def list_my_results(
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db)
):
    return ExamService(db).get_user_results(current_user.id)


@router.get("/{exam_id}", response_model=Exam)
def get_exam(
    exam_id: int,
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db)
):
    exam = ExamService(db).get_exam(exam_id)
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")
    return exam


@router.get("/{exam_id}/questions", response_model=List[QuestionPublic])
def get_questions(
    exam_id: int,
    current_user: User = Depends(deps.get_current_active_user),
    db: Session = Depends(get_db)
):
    """Questions without their correct answers."""
    if not ExamService(db).get_exam(exam_id):
        raise HTTPException(status_code=404, detail="Exam not found")
    return [
        QuestionPublic(id=q.id, question=q.question, options=list(q.options), image=q.image)
        for q in get_exam_questions(exam_id)
    ]
