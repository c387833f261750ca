"""Course endpoints. Listing and detail are scoped by role; writes are ADMIN only."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user, require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import CourseCreate, CourseUpdate

router = APIRouter(prefix="/api/courses", tags=["courses"])

admin_only = require_roles(Role.ADMIN)


@router.get("")
def list_courses(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(services.CourseService(db).list_for(user))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_course(payload: CourseCreate, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    return ok(services.CourseService(db).create(**payload.model_dump()))


@router.get("/{course_id}")
def get_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Course with its domain, teacher and the module/chapter/content tree."""
    return ok(services.CourseService(db).get_detail(user, course_id))


@router.patch("/{course_id}")
def update_course(course_id: int, payload: CourseUpdate, db: Session = Depends(get_session),
                  user: models.User = Depends(admin_only)):
    return ok(services.CourseService(db).update(course_id, payload.changes()))


@router.delete("/{course_id}")
def delete_course(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    services.CourseService(db).delete(course_id)
    return ok({"id": course_id})
