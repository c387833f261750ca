"""User administration endpoints (ADMIN; listing also SUB_ADMIN)."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlmodel import Session

from .. import models, services
from ..auth import require_roles
from ..config import settings
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import UserCreate, UserStatusIn, UserUpdate

router = APIRouter(prefix="/api/users", tags=["users"])

admin_only = require_roles(Role.ADMIN)
staff = require_roles(Role.ADMIN, Role.SUB_ADMIN)


@router.get("")
def list_users(role: Optional[Role] = None, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.UserService(db).list(role))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    return ok(services.UserService(db).create(**payload.model_dump()))


@router.post("/bulk-upload", status_code=status.HTTP_201_CREATED)
async def bulk_upload(file: UploadFile = File(...), db: Session = Depends(get_session),
                      user: models.User = Depends(admin_only)):
    """Create users from a CSV file (`email,name,role,password`)."""
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="a .csv file is required")
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="file too large")
    return ok(services.UserService(db).bulk_create(content))


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(staff)):
    return ok(services.UserService(db).get(user_id))


@router.patch("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, db: Session = Depends(get_session),
                user: models.User = Depends(admin_only)):
    return ok(services.UserService(db).update(user_id, payload.changes()))


@router.patch("/{user_id}/status")
def set_user_status(user_id: int, payload: UserStatusIn, db: Session = Depends(get_session),
                    user: models.User = Depends(admin_only)):
    return ok(services.UserService(db).set_active(user, user_id, payload.is_active))


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    services.UserService(db).delete(user, user_id)
    return ok({"id": user_id})
