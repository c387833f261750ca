"""Content item endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import ContentCreate, ContentUpdate, ReorderIn

router = APIRouter(tags=["content"])


@router.get("/api/chapters/{chapter_id}/content")
def list_content(chapter_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Content of a chapter; answer keys are only shown to course managers."""
    return ok(services.ContentService(db).list(user, chapter_id))


@router.post("/api/chapters/{chapter_id}/content", status_code=status.HTTP_201_CREATED)
def create_content(chapter_id: int, payload: ContentCreate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.ContentService(db).create(
        user, chapter_id, payload.title, payload.content_type,
        payload.content_data.model_dump(), payload.order_index,
    ))


@router.patch("/api/content/reorder")
def reorder_content(payload: ReorderIn, db: Session = Depends(get_session),
                    user: models.User = Depends(get_current_user)):
    return ok(services.ContentService(db).reorder(user, payload.ids))


@router.get("/api/content/{content_id}")
def get_content(content_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(services.ContentService(db).get(user, content_id))


@router.patch("/api/content/{content_id}")
def update_content(content_id: int, payload: ContentUpdate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.ContentService(db).update(user, content_id, payload.changes()))


@router.delete("/api/content/{content_id}")
def delete_content(content_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    services.ContentService(db).delete(user, content_id)
    return ok({"id": content_id})
