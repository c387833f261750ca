"""Class management (staff) and the trainer's class list."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import ClassCourseIn, ClassCreate, ClassStudentIn, ClassUpdate

router = APIRouter(tags=["classes"])

staff = require_roles(Role.ADMIN, Role.SUB_ADMIN)
trainer_only = require_roles(Role.TRAINER)


@router.get("/api/admin/classes")
def list_classes(db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.ClassService(db).list(user))


@router.post("/api/admin/classes", status_code=status.HTTP_201_CREATED)
def create_class(payload: ClassCreate, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.ClassService(db).create(**payload.model_dump()))


@router.get("/api/admin/classes/{class_id}")
def get_class(class_id: int, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.ClassService(db).get(class_id))


@router.patch("/api/admin/classes/{class_id}")
def update_class(class_id: int, payload: ClassUpdate, db: Session = Depends(get_session),
                 user: models.User = Depends(staff)):
    return ok(services.ClassService(db).update(class_id, payload.changes()))


@router.delete("/api/admin/classes/{class_id}")
def delete_class(class_id: int, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    services.ClassService(db).delete(class_id)
    return ok({"id": class_id})


@router.post("/api/admin/classes/{class_id}/students", status_code=status.HTTP_201_CREATED)
def add_student(class_id: int, payload: ClassStudentIn, db: Session = Depends(get_session),
                user: models.User = Depends(staff)):
    """Add a student; they are enrolled in every course of the class."""
    return ok(services.ClassService(db).add_student(class_id, payload.student_id))


@router.delete("/api/admin/classes/{class_id}/students/{student_id}")
def remove_student(class_id: int, student_id: int, db: Session = Depends(get_session),
                   user: models.User = Depends(staff)):
    services.ClassService(db).remove_student(class_id, student_id)
    return ok({"class_id": class_id, "student_id": student_id})


@router.post("/api/admin/classes/{class_id}/courses", status_code=status.HTTP_201_CREATED)
def assign_course(class_id: int, payload: ClassCourseIn, db: Session = Depends(get_session),
                  user: models.User = Depends(staff)):
    """Assign a course; every student of the class is enrolled in it."""
    return ok(services.ClassService(db).assign_course(class_id, payload.course_id))


@router.delete("/api/admin/classes/{class_id}/courses/{course_id}")
def remove_course(class_id: int, course_id: int, db: Session = Depends(get_session),
                  user: models.User = Depends(staff)):
    services.ClassService(db).remove_course(class_id, course_id)
    return ok({"class_id": class_id, "course_id": course_id})


@router.get("/api/admin/classes/{class_id}/enrollment-count")
def enrollment_count(class_id: int, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.ClassService(db).enrollment_count(class_id))


@router.get("/api/teacher/classes")
def my_classes(db: Session = Depends(get_session), user: models.User = Depends(trainer_only)):
    return ok(services.ClassService(db).list(user))
