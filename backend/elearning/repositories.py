"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
catalogue, enrollments, progress, quiz attempts, projects, classes).
Repositories return SQLModel objects. Single-row writes commit
immediately; multi-row reorders go through `stage()` and a single
`commit()` issued by the service.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from . import models


class _Repository:
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, obj_id: int):
        """Fetch a row by primary key or `None`."""
        return self.session.get(self.model, obj_id)

    def save(self, obj):
        """Persist a new or modified row and return the refreshed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    create = save

    def stage(self, objs: Iterable) -> None:
        for o in objs:
            self.session.add(o)

    def commit(self) -> None:
        self.session.commit()

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()


class UserRepository(_Repository):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_email(self, email: str) -> Optional[models.User]:
        stmt = select(models.User).where(func.lower(models.User.email) == email.strip().lower())
        return self.session.exec(stmt).first()

    def list(self, role: Optional[models.Role] = None) -> List[models.User]:
        stmt = select(models.User).order_by(models.User.created_at.desc(), models.User.id.desc())
        if role is not None:
            stmt = stmt.where(models.User.role == role)
        return self.session.exec(stmt).all()

    def get_many(self, ids: Iterable[int]) -> Dict[int, models.User]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.session.exec(select(models.User).where(models.User.id.in_(ids))).all()
        return {u.id: u for u in rows}

    def count_by_role(self) -> Dict[str, int]:
        stmt = select(models.User.role, func.count(models.User.id)).group_by(models.User.role)
        return {(r.value if hasattr(r, 'value') else r): n for r, n in self.session.exec(stmt).all()}


class TokenRepository(_Repository):
    """Revoked session tokens (logout)."""
    model = models.RevokedToken

    def revoke(self, jti: str, expires_at: datetime) -> None:
        if self.is_revoked(jti):
            return
        self.save(models.RevokedToken(jti=jti, expires_at=expires_at))

    def is_revoked(self, jti: str) -> bool:
        stmt = select(models.RevokedToken.id).where(models.RevokedToken.jti == jti)
        return self.session.exec(stmt).first() is not None

    def purge_expired(self, now: datetime) -> int:
        rows = self.session.exec(select(models.RevokedToken).where(models.RevokedToken.expires_at < now)).all()
        for r in rows:
            self.session.delete(r)
        self.session.commit()
        return len(rows)


class DomainRepository(_Repository):
    model = models.Domain

    def list(self) -> List[models.Domain]:
        return self.session.exec(select(models.Domain).order_by(models.Domain.name)).all()

    def get_by_name(self, name: str) -> Optional[models.Domain]:
        """Case-insensitive lookup by name."""
        stmt = select(models.Domain).where(func.lower(models.Domain.name) == name.strip().lower())
        return self.session.exec(stmt).first()

    def course_counts(self) -> Dict[int, int]:
        stmt = (
            select(models.Course.domain_id, func.count(models.Course.id))
            .where(models.Course.domain_id.is_not(None))
            .group_by(models.Course.domain_id)
        )
        return dict(self.session.exec(stmt).all())


class CourseRepository(_Repository):
    model = models.Course

    def list(self, teacher_id: Optional[int] = None, active_only: bool = False) -> List[models.Course]:
        stmt = select(models.Course).order_by(models.Course.created_at.desc(), models.Course.id.desc())
        if teacher_id is not None:
            stmt = stmt.where(models.Course.teacher_id == teacher_id)
        if active_only:
            stmt = stmt.where(models.Course.is_active == True)  # noqa: E712
        return self.session.exec(stmt).all()

    def list_by_ids(self, ids: Iterable[int]) -> List[models.Course]:
        ids = list(set(ids))
        if not ids:
            return []
        return self.session.exec(select(models.Course).where(models.Course.id.in_(ids))).all()

    def slugs_like(self, base: str) -> List[str]:
        """Existing slugs equal to `base` or of the form `base-N`."""
        stmt = select(models.Course.slug).where(
            (models.Course.slug == base) | (models.Course.slug.like(f'{base}-%'))
        )
        return list(self.session.exec(stmt).all())

    def count(self, active_only: bool = False) -> int:
        stmt = select(func.count(models.Course.id))
        if active_only:
            stmt = stmt.where(models.Course.is_active == True)  # noqa: E712
        return self.session.exec(stmt).one()

    def count_for_domain(self, domain_id: int) -> int:
        stmt = select(func.count(models.Course.id)).where(models.Course.domain_id == domain_id)
        return self.session.exec(stmt).one()


class ModuleRepository(_Repository):
    model = models.Module

    def list_for_course(self, course_id: int) -> List[models.Module]:
        stmt = (
            select(models.Module)
            .where(models.Module.course_id == course_id)
            .order_by(models.Module.order_index, models.Module.id)
        )
        return self.session.exec(stmt).all()


class ChapterRepository(_Repository):
    model = models.Chapter

    def list_for_module(self, module_id: int) -> List[models.Chapter]:
        stmt = (
            select(models.Chapter)
            .where(models.Chapter.module_id == module_id)
            .order_by(models.Chapter.order_index, models.Chapter.id)
        )
        return self.session.exec(stmt).all()

    def list_for_course(self, course_id: int) -> List[models.Chapter]:
        """All chapters of a course in display order (module, then chapter)."""
        stmt = (
            select(models.Chapter)
            .join(models.Module, models.Chapter.module_id == models.Module.id)
            .where(models.Module.course_id == course_id)
            .order_by(models.Module.order_index, models.Module.id, models.Chapter.order_index, models.Chapter.id)
        )
        return self.session.exec(stmt).all()

    def list_by_ids(self, ids: Iterable[int]) -> List[models.Chapter]:
        ids = list(set(ids))
        if not ids:
            return []
        return self.session.exec(select(models.Chapter).where(models.Chapter.id.in_(ids))).all()


class ContentRepository(_Repository):
    model = models.ContentItem

    def list_for_chapter(self, chapter_id: int) -> List[models.ContentItem]:
        stmt = (
            select(models.ContentItem)
            .where(models.ContentItem.chapter_id == chapter_id)
            .order_by(models.ContentItem.order_index, models.ContentItem.id)
        )
        return self.session.exec(stmt).all()

    def list_for_chapters(self, chapter_ids: Iterable[int]) -> List[models.ContentItem]:
        ids = list(set(chapter_ids))
        if not ids:
            return []
        stmt = (
            select(models.ContentItem)
            .where(models.ContentItem.chapter_id.in_(ids))
            .order_by(models.ContentItem.order_index, models.ContentItem.id)
        )
        return self.session.exec(stmt).all()

    def list_by_ids(self, ids: Iterable[int]) -> List[models.ContentItem]:
        ids = list(set(ids))
        if not ids:
            return []
        return self.session.exec(select(models.ContentItem).where(models.ContentItem.id.in_(ids))).all()


class EnrollmentRepository(_Repository):
    model = models.Enrollment

    def get_for(self, student_id: int, course_id: int) -> Optional[models.Enrollment]:
        stmt = select(models.Enrollment).where(
            models.Enrollment.student_id == student_id,
            models.Enrollment.course_id == course_id,
        )
        return self.session.exec(stmt).first()

    def list(self, student_id: Optional[int] = None, course_id: Optional[int] = None,
             course_ids: Optional[Iterable[int]] = None) -> List[models.Enrollment]:
        stmt = select(models.Enrollment).order_by(models.Enrollment.created_at.desc(), models.Enrollment.id.desc())
        if student_id is not None:
            stmt = stmt.where(models.Enrollment.student_id == student_id)
        if course_id is not None:
            stmt = stmt.where(models.Enrollment.course_id == course_id)
        if course_ids is not None:
            stmt = stmt.where(models.Enrollment.course_id.in_(list(course_ids)))
        return self.session.exec(stmt).all()

    def count(self, course_id: Optional[int] = None, completed_only: bool = False) -> int:
        stmt = select(func.count(models.Enrollment.id))
        if course_id is not None:
            stmt = stmt.where(models.Enrollment.course_id == course_id)
        if completed_only:
            stmt = stmt.where(models.Enrollment.completed_at.is_not(None))
        return self.session.exec(stmt).one()

    def is_student_of_teacher(self, student_id: int, teacher_id: int) -> bool:
        stmt = (
            select(models.Enrollment.id)
            .join(models.Course, models.Enrollment.course_id == models.Course.id)
            .where(models.Enrollment.student_id == student_id, models.Course.teacher_id == teacher_id)
        )
        return self.session.exec(stmt).first() is not None


class ProgressRepository(_Repository):
    model = models.ChapterProgress

    def get_for(self, student_id: int, chapter_id: int) -> Optional[models.ChapterProgress]:
        stmt = select(models.ChapterProgress).where(
            models.ChapterProgress.student_id == student_id,
            models.ChapterProgress.chapter_id == chapter_id,
        )
        return self.session.exec(stmt).first()

    def list_for(self, student_id: int, chapter_ids: Optional[Iterable[int]] = None) -> List[models.ChapterProgress]:
        stmt = select(models.ChapterProgress).where(models.ChapterProgress.student_id == student_id)
        if chapter_ids is not None:
            stmt = stmt.where(models.ChapterProgress.chapter_id.in_(list(chapter_ids)))
        return self.session.exec(stmt).all()

    def list_for_chapters(self, chapter_ids: Iterable[int]) -> List[models.ChapterProgress]:
        ids = list(chapter_ids)
        if not ids:
            return []
        return self.session.exec(select(models.ChapterProgress).where(models.ChapterProgress.chapter_id.in_(ids))).all()


class QuizAttemptRepository(_Repository):
    model = models.QuizAttempt

    def list_for(self, student_id: int, content_item_id: Optional[int] = None) -> List[models.QuizAttempt]:
        stmt = (
            select(models.QuizAttempt)
            .where(models.QuizAttempt.student_id == student_id)
            .order_by(models.QuizAttempt.attempted_at.desc(), models.QuizAttempt.id.desc())
        )
        if content_item_id is not None:
            stmt = stmt.where(models.QuizAttempt.content_item_id == content_item_id)
        return self.session.exec(stmt).all()

    def count_for(self, student_id: int, content_item_id: int) -> int:
        stmt = select(func.count(models.QuizAttempt.id)).where(
            models.QuizAttempt.student_id == student_id,
            models.QuizAttempt.content_item_id == content_item_id,
        )
        return self.session.exec(stmt).one()

    def best_for(self, student_id: int, content_item_id: int) -> Optional[models.QuizAttempt]:
        """Highest score; the earliest attempt wins a tie."""
        stmt = (
            select(models.QuizAttempt)
            .where(
                models.QuizAttempt.student_id == student_id,
                models.QuizAttempt.content_item_id == content_item_id,
            )
            .order_by(models.QuizAttempt.score.desc(), models.QuizAttempt.attempted_at, models.QuizAttempt.id)
        )
        return self.session.exec(stmt).first()

    def list_for_items(self, content_item_ids: Iterable[int]) -> List[models.QuizAttempt]:
        ids = list(content_item_ids)
        if not ids:
            return []
        return self.session.exec(select(models.QuizAttempt).where(models.QuizAttempt.content_item_id.in_(ids))).all()


class ProjectRepository(_Repository):
    model = models.FinalProject

    def list_for_course(self, course_id: int) -> List[models.FinalProject]:
        stmt = (
            select(models.FinalProject)
            .where(models.FinalProject.course_id == course_id)
            .order_by(models.FinalProject.created_at, models.FinalProject.id)
        )
        return self.session.exec(stmt).all()

    def get_submission(self, submission_id: int) -> Optional[models.ProjectSubmission]:
        return self.session.get(models.ProjectSubmission, submission_id)

    def submission_for(self, student_id: int, project_id: int) -> Optional[models.ProjectSubmission]:
        stmt = select(models.ProjectSubmission).where(
            models.ProjectSubmission.student_id == student_id,
            models.ProjectSubmission.final_project_id == project_id,
        )
        return self.session.exec(stmt).first()

    def list_submissions(self, project_id: int) -> List[models.ProjectSubmission]:
        stmt = (
            select(models.ProjectSubmission)
            .where(models.ProjectSubmission.final_project_id == project_id)
            .order_by(models.ProjectSubmission.submitted_at.desc(), models.ProjectSubmission.id.desc())
        )
        return self.session.exec(stmt).all()

    def pending_for_teacher(self, teacher_id: int) -> List[models.ProjectSubmission]:
        stmt = (
            select(models.ProjectSubmission)
            .join(models.FinalProject, models.ProjectSubmission.final_project_id == models.FinalProject.id)
            .join(models.Course, models.FinalProject.course_id == models.Course.id)
            .where(
                models.Course.teacher_id == teacher_id,
                models.ProjectSubmission.status == models.SubmissionStatus.SUBMITTED,
            )
            .order_by(models.ProjectSubmission.submitted_at, models.ProjectSubmission.id)
        )
        return self.session.exec(stmt).all()


class ClassRepository(_Repository):
    model = models.SchoolClass

    def list(self, teacher_id: Optional[int] = None) -> List[models.SchoolClass]:
        stmt = select(models.SchoolClass).order_by(models.SchoolClass.created_at.desc(), models.SchoolClass.id.desc())
        if teacher_id is not None:
            stmt = stmt.where(models.SchoolClass.teacher_id == teacher_id)
        return self.session.exec(stmt).all()

    def student_links(self, class_id: int) -> List[models.ClassEnrollment]:
        stmt = (
            select(models.ClassEnrollment)
            .where(models.ClassEnrollment.class_id == class_id)
            .order_by(models.ClassEnrollment.enrolled_at, models.ClassEnrollment.id)
        )
        return self.session.exec(stmt).all()

    def student_link(self, class_id: int, student_id: int) -> Optional[models.ClassEnrollment]:
        stmt = select(models.ClassEnrollment).where(
            models.ClassEnrollment.class_id == class_id,
            models.ClassEnrollment.student_id == student_id,
        )
        return self.session.exec(stmt).first()

    def course_links(self, class_id: int) -> List[models.ClassCourse]:
        stmt = (
            select(models.ClassCourse)
            .where(models.ClassCourse.class_id == class_id)
            .order_by(models.ClassCourse.assigned_at, models.ClassCourse.id)
        )
        return self.session.exec(stmt).all()

    def course_link(self, class_id: int, course_id: int) -> Optional[models.ClassCourse]:
        stmt = select(models.ClassCourse).where(
            models.ClassCourse.class_id == class_id,
            models.ClassCourse.course_id == course_id,
        )
        return self.session.exec(stmt).first()

    def count_students(self, class_id: int) -> int:
        stmt = select(func.count(models.ClassEnrollment.id)).where(models.ClassEnrollment.class_id == class_id)
        return self.session.exec(stmt).one()
