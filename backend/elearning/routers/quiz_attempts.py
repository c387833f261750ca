"""Quiz and exam attempt endpoints (students)."""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import models, services
from ..auth import require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import QuizAttemptIn

router = APIRouter(prefix="/api/quiz-attempts", tags=["quiz-attempts"])

student_only = require_roles(Role.STUDENT)


@router.get("")
def list_attempts(content_item_id: int = Query(..., alias="contentItemId"), db: Session = Depends(get_session),
                  user: models.User = Depends(student_only)):
    return ok(services.QuizService(db).list_mine(user, content_item_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def submit_attempt(payload: QuizAttemptIn, db: Session = Depends(get_session),
                   user: models.User = Depends(student_only)):
    """Score the submitted answers and store the attempt."""
    return ok(services.QuizService(db).submit(user, payload.content_item_id, payload.answers))


@router.get("/best")
def best_attempt(content_item_id: int = Query(..., alias="contentItemId"), db: Session = Depends(get_session),
                 user: models.User = Depends(student_only)):
    return ok(services.QuizService(db).best(user, content_item_id))


@router.get("/mine")
def my_attempts(db: Session = Depends(get_session), user: models.User = Depends(student_only)):
    return ok(services.QuizService(db).list_for_student(user.id))
