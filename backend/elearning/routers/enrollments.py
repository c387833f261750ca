"""Enrollment endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user, require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import EnrollmentCreate

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])

staff = require_roles(Role.ADMIN, Role.SUB_ADMIN)


@router.get("")
def list_enrollments(
    student_id: Optional[int] = Query(None, alias="studentId"),
    course_id: Optional[int] = Query(None, alias="courseId"),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(services.EnrollmentService(db).list(user, student_id=student_id, course_id=course_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_enrollment(payload: EnrollmentCreate, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    """Enroll a student in one course (`course_id`) or several (`course_ids`)."""
    svc = services.EnrollmentService(db)
    if payload.course_ids is not None:
        return ok(svc.create_many(payload.student_id, payload.course_ids))
    return ok(svc.create(payload.student_id, payload.course_id))


@router.delete("/{enrollment_id}")
def delete_enrollment(enrollment_id: int, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    services.EnrollmentService(db).delete(enrollment_id)
    return ok({"id": enrollment_id})
