"""Module endpoints, nested under courses for listing and creation."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import ModuleCreate, ModuleUpdate, ReorderIn

router = APIRouter(tags=["modules"])


@router.get("/api/courses/{course_id}/modules")
def list_modules(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Modules of a course in display order, each with its chapters."""
    return ok(services.ModuleService(db).list(user, course_id))


@router.post("/api/courses/{course_id}/modules", status_code=status.HTTP_201_CREATED)
def create_module(course_id: int, payload: ModuleCreate, db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user)):
    return ok(services.ModuleService(db).create(user, course_id, **payload.model_dump()))


@router.post("/api/courses/{course_id}/modules/reorder")
def reorder_course_modules(course_id: int, payload: ReorderIn, db: Session = Depends(get_session),
                           user: models.User = Depends(get_current_user)):
    return ok(services.ModuleService(db).reorder(user, course_id, payload.ids))


# declared before /api/modules/{module_id} so "reorder" is not read as an id
@router.patch("/api/modules/reorder")
def reorder_modules(payload: ReorderIn, db: Session = Depends(get_session),
                    user: models.User = Depends(get_current_user)):
    return ok(services.ModuleService(db).reorder_by_ids(user, payload.ids))


@router.patch("/api/modules/{module_id}")
def update_module(module_id: int, payload: ModuleUpdate, db: Session = Depends(get_session),
                  user: models.User = Depends(get_current_user)):
    return ok(services.ModuleService(db).update(user, module_id, payload.changes()))


@router.delete("/api/modules/{module_id}")
def delete_module(module_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.ModuleService(db).delete(user, module_id)
    return ok({"id": module_id})
