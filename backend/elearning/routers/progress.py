"""Chapter completion and progress endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user, require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import ProgressIn

router = APIRouter(tags=["progress"])

student_only = require_roles(Role.STUDENT)
course_managers = require_roles(Role.ADMIN, Role.TRAINER)


@router.get("/api/progress")
def get_progress(
    course_id: Optional[int] = Query(None, alias="courseId"),
    student_id: Optional[int] = Query(None, alias="studentId"),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Course progress of the caller, or of `studentId` for staff and trainers."""
    return ok(services.ProgressService(db).progress_for(user, student_id, course_id))


@router.post("/api/progress", status_code=status.HTTP_201_CREATED)
def mark_chapter_complete(payload: ProgressIn, db: Session = Depends(get_session),
                          user: models.User = Depends(student_only)):
    return ok(services.ProgressService(db).mark(user, payload.chapter_id))


@router.delete("/api/progress/{chapter_id}")
def unmark_chapter_complete(chapter_id: int, db: Session = Depends(get_session),
                            user: models.User = Depends(student_only)):
    services.ProgressService(db).unmark(user, chapter_id)
    return ok({"chapter_id": chapter_id})


@router.get("/api/modules/{module_id}/progress")
def get_module_progress(
    module_id: int,
    student_id: Optional[int] = Query(None, alias="studentId"),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(services.ProgressService(db).module_progress_for(user, student_id, module_id))


@router.get("/api/courses/{course_id}/module-progress")
def get_course_module_progress(
    course_id: int,
    student_id: Optional[int] = Query(None, alias="studentId"),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(services.ProgressService(db).course_module_progress_for(user, student_id, course_id))


@router.get("/api/courses/{course_id}/module-stats")
def get_course_module_stats(course_id: int, db: Session = Depends(get_session),
                            user: models.User = Depends(course_managers)):
    """Per module counts of students not started, in progress and completed."""
    return ok(services.ProgressService(db).course_module_stats(user, course_id))
