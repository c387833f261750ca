"""Dashboard analytics per role."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models, services
from ..auth import require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/admin")
def admin_dashboard(db: Session = Depends(get_session),
                    user: models.User = Depends(require_roles(Role.ADMIN, Role.SUB_ADMIN))):
    return ok(services.AnalyticsService(db).admin())


@router.get("/teacher")
def teacher_dashboard(db: Session = Depends(get_session), user: models.User = Depends(require_roles(Role.TRAINER))):
    return ok(services.AnalyticsService(db).teacher(user))


@router.get("/courses/{course_id}")
def course_analytics(course_id: int, db: Session = Depends(get_session),
                     user: models.User = Depends(require_roles(Role.ADMIN, Role.SUB_ADMIN, Role.TRAINER))):
    return ok(services.AnalyticsService(db).course(user, course_id))


@router.get("/student")
def student_dashboard(db: Session = Depends(get_session), user: models.User = Depends(require_roles(Role.STUDENT))):
    return ok(services.AnalyticsService(db).student(user))
