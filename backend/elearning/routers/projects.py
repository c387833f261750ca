"""Final project and submission endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user, require_roles
from ..database import get_session
from ..models import Role
from ..responses import ok
from ..schemas import FinalProjectCreate, ReviewIn, SubmissionIn

router = APIRouter(tags=["projects"])

student_only = require_roles(Role.STUDENT)
trainer_only = require_roles(Role.TRAINER)


@router.get("/api/courses/{course_id}/projects")
def list_projects(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(services.ProjectService(db).list(user, course_id))


@router.post("/api/courses/{course_id}/projects", status_code=status.HTTP_201_CREATED)
def create_project(course_id: int, payload: FinalProjectCreate, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    return ok(services.ProjectService(db).create(user, course_id, **payload.model_dump()))


@router.get("/api/projects/{project_id}/submissions")
def list_submissions(project_id: int, db: Session = Depends(get_session),
                     user: models.User = Depends(get_current_user)):
    return ok(services.ProjectService(db).list_submissions(user, project_id))


@router.post("/api/projects/{project_id}/submissions", status_code=status.HTTP_201_CREATED)
def submit_project(project_id: int, payload: SubmissionIn, db: Session = Depends(get_session),
                   user: models.User = Depends(student_only)):
    return ok(services.ProjectService(db).submit(user, project_id, payload.submission_url, payload.description))


@router.patch("/api/projects/submissions/{submission_id}")
def review_submission(submission_id: int, payload: ReviewIn, db: Session = Depends(get_session),
                      user: models.User = Depends(get_current_user)):
    return ok(services.ProjectService(db).review(user, submission_id, payload.status, payload.feedback, payload.grade))


@router.get("/api/teacher/submissions")
def pending_submissions(db: Session = Depends(get_session), user: models.User = Depends(trainer_only)):
    """Submissions awaiting review in the trainer's courses."""
    return ok(services.ProjectService(db).pending_for_teacher(user))
