"""Chapter endpoints: listing, CRUD, reorder and move between modules."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import ChapterCreate, ChapterMove, ChapterUpdate, ReorderIn

router = APIRouter(tags=["chapters"])


@router.get("/api/courses/{course_id}/chapters")
def list_course_chapters(course_id: int, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user)):
    """Every chapter of a course grouped by module, with content items."""
    return ok(services.ChapterService(db).list_for_course(user, course_id))


@router.get("/api/modules/{module_id}/chapters")
def list_module_chapters(module_id: int, db: Session = Depends(get_session),
                         user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).list_for_module(user, module_id))


@router.post("/api/modules/{module_id}/chapters", status_code=status.HTTP_201_CREATED)
def create_chapter(module_id: int, payload: ChapterCreate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).create(user, module_id, **payload.model_dump()))


@router.patch("/api/modules/{module_id}/chapters/reorder")
def reorder_module_chapters(module_id: int, payload: ReorderIn, db: Session = Depends(get_session),
                            user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).reorder(user, module_id, payload.ids))


@router.patch("/api/chapters/reorder")
def reorder_chapters(payload: ReorderIn, db: Session = Depends(get_session),
                     user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).reorder_by_ids(user, payload.ids))


@router.patch("/api/chapters/{chapter_id}")
def update_chapter(chapter_id: int, payload: ChapterUpdate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).update(user, chapter_id, payload.changes()))


@router.delete("/api/chapters/{chapter_id}")
def delete_chapter(chapter_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.ChapterService(db).delete(user, chapter_id)
    return ok({"id": chapter_id})


@router.post("/api/chapters/{chapter_id}/move")
def move_chapter(chapter_id: int, payload: ChapterMove, db: Session = Depends(get_session),
                 user: models.User = Depends(get_current_user)):
    return ok(services.ChapterService(db).move(user, chapter_id, payload.target_module_id, payload.order_index))
