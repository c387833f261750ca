"""Resource level access rules shared by services and routers."""

from typing import Optional

from sqlmodel import Session

from . import models, repositories
from .models import Role


def can_manage_course(user: models.User, course: Optional[models.Course]) -> bool:
    """ADMIN, or the TRAINER the course is assigned to."""
    if course is None:
        return False
    if user.role == Role.ADMIN:
        return True
    return user.role == Role.TRAINER and course.teacher_id == user.id


def can_view_course(db: Session, user: models.User, course: Optional[models.Course]) -> bool:
    if course is None:
        return False
    if user.role in models.STAFF_ROLES:
        return True
    if user.role == Role.TRAINER:
        return course.teacher_id == user.id
    if user.role == Role.STUDENT:
        return repositories.EnrollmentRepository(db).get_for(user.id, course.id) is not None
    return False


def can_view_student(db: Session, user: models.User, student_id: int) -> bool:
    """Self, staff, or a trainer teaching a course the student is enrolled in."""
    if user.id == student_id or user.role in models.STAFF_ROLES:
        return True
    if user.role == Role.TRAINER:
        return repositories.EnrollmentRepository(db).is_student_of_teacher(student_id, user.id)
    return False
