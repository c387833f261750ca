"""Domain endpoints: anyone signed in can list, ADMIN manages."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user, require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import DomainCreate, DomainUpdate

router = APIRouter(prefix="/api/domains", tags=["domains"])

admin_only = require_roles(Role.ADMIN)


@router.get("")
def list_domains(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(services.DomainService(db).list())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_domain(payload: DomainCreate, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    return ok(services.DomainService(db).create(**payload.model_dump()))


@router.get("/{domain_id}")
def get_domain(domain_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(services.DomainService(db).get(domain_id))


@router.patch("/{domain_id}")
def update_domain(domain_id: int, payload: DomainUpdate, db: Session = Depends(get_session),
                  user: models.User = Depends(admin_only)):
    return ok(services.DomainService(db).update(domain_id, payload.changes()))


@router.delete("/{domain_id}")
def delete_domain(domain_id: int, db: Session = Depends(get_session), user: models.User = Depends(admin_only)):
    services.DomainService(db).delete(domain_id)
    return ok({"id": domain_id})
