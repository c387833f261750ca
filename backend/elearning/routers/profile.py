"""Self-service profile endpoints for any signed-in user."""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import PasswordChange, ProfileUpdate

router = APIRouter(prefix="/api/user", tags=["profile"])


@router.get("/profile")
def get_profile(user: models.User = Depends(get_current_user)):
    return ok(services.public_user(user))


@router.patch("/profile")
def update_profile(payload: ProfileUpdate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.UserService(db).update_profile(user, payload.changes()))


@router.post("/password")
def change_password(payload: PasswordChange, db: Session = Depends(get_session),
                    user: models.User = Depends(get_current_user)):
    services.UserService(db).change_password(user, payload.current_password, payload.new_password)
    return ok({"changed": True})


@router.post("/avatar")
async def upload_avatar(file: UploadFile = File(...), db: Session = Depends(get_session),
                        user: models.User = Depends(get_current_user)):
    """Upload a profile picture (JPEG, PNG, GIF or WEBP)."""
    content = await file.read()
    return ok(services.UserService(db).upload_avatar(user, file.filename or "", content))
