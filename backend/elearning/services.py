"""Business logic services used by the HTTP routers.

This module holds service classes that coordinate repositories, access
rules and auxiliary helpers. Services validate input, enforce
permissions, keep sibling ordering contiguous and persist aggregates via
repositories. Failures are raised as `errors.ServiceError` subclasses;
the application maps them to HTTP statuses.

Services return plain dictionaries (or lists of them) ready for JSON
encoding; user rows always go through `public_user` so password hashes
never leave this layer.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session

from . import models, repositories
from .auth import create_token, hash_password, verify_password
from .config import settings
from .errors import AuthenticationFailed, Conflict, NotFound, PermissionDenied, ValidationFailed
from .models import ContentType, Role, utcnow
from .permissions import can_manage_course, can_view_course, can_view_student
from .schemas import validate_email
from .utils import ordering
from .utils.csv_users import parse_users_csv
from .utils.slug import generate_slug, unique_slug
from .utils.uploads import sniff_image, store_avatar, validate_filename

logger = logging.getLogger("elearning.services")

# answer keys stripped from content shown to learners
_HIDDEN_QUESTION_KEYS = ("correct_answer", "explanation", "expected_answer")


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def percentage(part: int, total: int) -> int:
    return round_half_up(100.0 * part / total) if total else 0


def public_user(u: models.User) -> dict:
    return u.model_dump(exclude={"password_hash"})


def user_brief(u: Optional[models.User]) -> Optional[dict]:
    if u is None:
        return None
    return {"id": u.id, "name": u.name, "email": u.email, "avatar_url": u.avatar_url}


def _apply(obj, changes: dict) -> None:
    for k, v in changes.items():
        setattr(obj, k, v)
    if hasattr(obj, "updated_at"):
        obj.updated_at = utcnow()


def _to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _latest(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    vals = [_to_utc(v) for v in values if v is not None]
    return max(vals) if vals else None


def _require_active_trainer(session: Session, teacher_id: Optional[int]) -> None:
    if teacher_id is None:
        return
    teacher = repositories.UserRepository(session).get(teacher_id)
    if not teacher or teacher.role != Role.TRAINER or not teacher.is_active:
        raise ValidationFailed("teacher must be an active TRAINER")


def _require_domain(session: Session, domain_id: Optional[int]) -> None:
    if domain_id is not None and not repositories.DomainRepository(session).get(domain_id):
        raise ValidationFailed("domain not found")


def _sync_completion(session: Session, enrollments: Iterable[models.Enrollment]) -> None:
    """Stage `completed_at` changes so it is set exactly when every chapter of the course is done.

    Nothing is committed here; the caller commits with its own changes.
    """
    chapter_repo = repositories.ChapterRepository(session)
    progress_repo = repositories.ProgressRepository(session)
    chapters: Dict[int, List[int]] = {}
    for enrollment in enrollments:
        if enrollment.course_id not in chapters:
            chapters[enrollment.course_id] = [c.id for c in chapter_repo.list_for_course(enrollment.course_id)]
        chapter_ids = chapters[enrollment.course_id]
        done = {p.chapter_id for p in progress_repo.list_for(enrollment.student_id, chapter_ids)}
        complete = bool(chapter_ids) and done.issuperset(chapter_ids)
        if complete == (enrollment.completed_at is not None):
            continue
        _apply(enrollment, {"completed_at": utcnow() if complete else None})
        session.add(enrollment)
        if complete:
            logger.info("course_completed student_id=%s course_id=%s", enrollment.student_id, enrollment.course_id)


def _sync_course_completion(session: Session, course_id: int) -> None:
    # flush first so added or deleted chapters are visible to the queries
    session.flush()
    _sync_completion(session, repositories.EnrollmentRepository(session).list(course_id=course_id))


class AuthService:
    """Registration, credential checks and session tokens."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.token_repo = repositories.TokenRepository(session)

    def register(self, email: str, password: str, name: str) -> models.User:
        """Create a STUDENT account with a hashed password."""
        if self.user_repo.get_by_email(email):
            raise Conflict("email already registered")
        user = models.User(email=email, name=name.strip(), password_hash=hash_password(password), role=Role.STUDENT)
        user = self.user_repo.create(user)
        logger.info("user_registered id=%s", user.id)
        return user

    def authenticate(self, email: str, password: str):
        """Verify credentials and return `(user, token, payload)`."""
        user = self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationFailed("invalid credentials")
        if not user.is_active:
            raise PermissionDenied("account deactivated")
        token, payload = create_token(user)
        return user, token, payload

    def revoke(self, payload: dict) -> None:
        """Invalidate the token described by `payload` until it expires."""
        jti = payload.get("jti")
        if not jti:
            return
        expires_at = datetime.fromtimestamp(int(payload.get("exp", 0)), tz=timezone.utc)
        self.token_repo.revoke(jti, expires_at)
        self.token_repo.purge_expired(datetime.now(timezone.utc))


class UserService:
    """Account administration plus the self-service profile."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.UserRepository(session)

    def _get(self, user_id: int) -> models.User:
        user = self.repo.get(user_id)
        if not user:
            raise NotFound("user not found")
        return user

    def list(self, role: Optional[Role] = None) -> List[dict]:
        return [public_user(u) for u in self.repo.list(role)]

    def get(self, user_id: int) -> dict:
        return public_user(self._get(user_id))

    def create(self, email: str, name: str, password: str, role: Role = Role.STUDENT, is_active: bool = True) -> dict:
        if self.repo.get_by_email(email):
            raise Conflict("email already registered")
        user = self.repo.create(models.User(
            email=email, name=name.strip(), password_hash=hash_password(password), role=role, is_active=is_active,
        ))
        logger.info("user_created id=%s role=%s", user.id, user.role.value)
        return public_user(user)

    def update(self, user_id: int, changes: dict) -> dict:
        user = self._get(user_id)
        email = changes.get("email")
        if email and email != user.email:
            other = self.repo.get_by_email(email)
            if other and other.id != user.id:
                raise Conflict("email already registered")
        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password)
        _apply(user, changes)
        return public_user(self.repo.save(user))

    def set_active(self, actor: models.User, user_id: int, is_active: bool) -> dict:
        user = self._get(user_id)
        if user.id == actor.id and not is_active:
            raise ValidationFailed("you cannot deactivate your own account")
        _apply(user, {"is_active": is_active})
        logger.info("user_status id=%s active=%s", user.id, is_active)
        return public_user(self.repo.save(user))

    def delete(self, actor: models.User, user_id: int) -> None:
        user = self._get(user_id)
        if user.id == actor.id:
            raise ValidationFailed("you cannot delete your own account")
        self.repo.delete(user)
        logger.info("user_deleted id=%s", user_id)

    def bulk_create(self, file_bytes: bytes) -> dict:
        """Create users from a CSV upload.

        Valid rows are created; invalid rows (bad email, short password,
        unknown role, duplicate email in the file or the database) are
        reported with their line number and skipped.
        """
        try:
            rows = parse_users_csv(file_bytes)
        except ValueError as e:
            raise ValidationFailed(str(e))
        created, errors = [], []
        seen = set()
        for row in rows:
            try:
                email = validate_email(row["email"])
                if not row["name"]:
                    raise ValueError("name is required")
                if len(row["password"]) < 6:
                    raise ValueError("password must be at least 6 characters")
                try:
                    role = Role(row["role"])
                except ValueError:
                    raise ValueError(f"unknown role: {row['role']}")
                if email in seen or self.repo.get_by_email(email):
                    raise ValueError("email already registered")
            except ValueError as e:
                errors.append({"line": row["line"], "email": row["email"], "error": str(e)})
                continue
            seen.add(email)
            user = models.User(email=email, name=row["name"], password_hash=hash_password(row["password"]), role=role)
            self.session.add(user)
            created.append(user)
        self.session.commit()
        for u in created:
            self.session.refresh(u)
        logger.info("users_bulk_created created=%d errors=%d", len(created), len(errors))
        return {"created": [public_user(u) for u in created], "errors": errors}

    def update_profile(self, user: models.User, changes: dict) -> dict:
        _apply(user, changes)
        return public_user(self.repo.save(user))

    def change_password(self, user: models.User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise ValidationFailed("current password is incorrect")
        _apply(user, {"password_hash": hash_password(new_password)})
        self.repo.save(user)
        logger.info("password_changed id=%s", user.id)

    def upload_avatar(self, user: models.User, filename: str, payload: bytes) -> dict:
        """Verify the image with Pillow, store it and update `avatar_url`."""
        try:
            validate_filename(filename)
            ext = sniff_image(payload, settings.MAX_UPLOAD_BYTES)
        except ValueError as e:
            raise ValidationFailed(str(e))
        name = store_avatar(payload, ext, user.id, settings.AVATAR_DIR)
        _apply(user, {"avatar_url": f"/avatars/{name}"})
        return public_user(self.repo.save(user))


class DomainService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.DomainRepository(session)

    def _get(self, domain_id: int) -> models.Domain:
        domain = self.repo.get(domain_id)
        if not domain:
            raise NotFound("domain not found")
        return domain

    def list(self) -> List[dict]:
        counts = self.repo.course_counts()
        return [{**d.model_dump(), "course_count": counts.get(d.id, 0)} for d in self.repo.list()]

    def get(self, domain_id: int) -> dict:
        domain = self._get(domain_id)
        count = repositories.CourseRepository(self.session).count_for_domain(domain_id)
        return {**domain.model_dump(), "course_count": count}

    def _check_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        other = self.repo.get_by_name(name)
        if other and other.id != exclude_id:
            raise Conflict("a domain with this name already exists")

    def create(self, name: str, description: Optional[str] = None, color: str = "#6366f1") -> dict:
        self._check_name(name)
        domain = self.repo.create(models.Domain(name=name.strip(), description=description, color=color))
        return domain.model_dump()

    def update(self, domain_id: int, changes: dict) -> dict:
        domain = self._get(domain_id)
        if changes.get("name"):
            self._check_name(changes["name"], exclude_id=domain.id)
            changes["name"] = changes["name"].strip()
        _apply(domain, changes)
        return self.repo.save(domain).model_dump()

    def delete(self, domain_id: int) -> None:
        domain = self._get(domain_id)
        if repositories.CourseRepository(self.session).count_for_domain(domain_id):
            raise Conflict("domain still has courses")
        self.repo.delete(domain)
        logger.info("domain_deleted id=%s", domain_id)


class ContentView:
    """Serialization of the course tree for a given viewer."""

    @staticmethod
    def content(item: models.ContentItem, reveal_answers: bool) -> dict:
        out = item.model_dump()
        if reveal_answers or item.content_type not in (ContentType.QUIZ, ContentType.TEST, ContentType.EXAM):
            return out
        data = dict(out["content_data"] or {})
        data["questions"] = [
            {k: v for k, v in q.items() if k not in _HIDDEN_QUESTION_KEYS}
            for q in data.get("questions", [])
        ]
        out["content_data"] = data
        return out

    @classmethod
    def chapters_tree(cls, session: Session, chapters: List[models.Chapter], reveal_answers: bool) -> List[dict]:
        items = repositories.ContentRepository(session).list_for_chapters(c.id for c in chapters)
        by_chapter: Dict[int, List[dict]] = {}
        for it in items:
            by_chapter.setdefault(it.chapter_id, []).append(cls.content(it, reveal_answers))
        return [{**c.model_dump(), "content": by_chapter.get(c.id, [])} for c in chapters]

    @classmethod
    def modules_tree(cls, session: Session, course_id: int, reveal_answers: bool, with_content: bool = True) -> List[dict]:
        modules = repositories.ModuleRepository(session).list_for_course(course_id)
        chapters = repositories.ChapterRepository(session).list_for_course(course_id)
        if with_content:
            chapter_dicts = cls.chapters_tree(session, chapters, reveal_answers)
        else:
            chapter_dicts = [c.model_dump() for c in chapters]
        by_module: Dict[int, List[dict]] = {}
        for c in chapter_dicts:
            by_module.setdefault(c["module_id"], []).append(c)
        return [{**m.model_dump(), "chapters": by_module.get(m.id, [])} for m in modules]


class CourseService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CourseRepository(session)

    def get_model(self, course_id: int) -> models.Course:
        course = self.repo.get(course_id)
        if not course:
            raise NotFound("course not found")
        return course

    def require_view(self, user: models.User, course_id: int) -> models.Course:
        course = self.get_model(course_id)
        if not can_view_course(self.session, user, course):
            raise PermissionDenied("you do not have access to this course")
        return course

    def require_manage(self, user: models.User, course_id: int) -> models.Course:
        course = self.get_model(course_id)
        if not can_manage_course(user, course):
            raise PermissionDenied("you cannot manage this course")
        return course

    def _summaries(self, courses: List[models.Course]) -> List[dict]:
        domains = {d.id: d for d in repositories.DomainRepository(self.session).list()}
        teachers = repositories.UserRepository(self.session).get_many(c.teacher_id for c in courses if c.teacher_id)
        out = []
        for c in courses:
            d = domains.get(c.domain_id)
            out.append({
                **c.model_dump(),
                "domain": {"id": d.id, "name": d.name, "color": d.color} if d else None,
                "teacher": user_brief(teachers.get(c.teacher_id)),
            })
        return out

    def list_for(self, user: models.User) -> List[dict]:
        """ADMIN/SUB_ADMIN see every course, trainers their own, students active ones."""
        if user.role in models.STAFF_ROLES:
            courses = self.repo.list()
        elif user.role == Role.TRAINER:
            courses = self.repo.list(teacher_id=user.id)
        else:
            courses = self.repo.list(active_only=True)
        return self._summaries(courses)

    def get_detail(self, user: models.User, course_id: int) -> dict:
        course = self.require_view(user, course_id)
        out = self._summaries([course])[0]
        out["modules"] = ContentView.modules_tree(self.session, course.id, reveal_answers=can_manage_course(user, course))
        return out

    def create(self, title: str, description: Optional[str] = None, domain_id: Optional[int] = None,
               teacher_id: Optional[int] = None, thumbnail_url: Optional[str] = None, is_active: bool = False) -> dict:
        _require_domain(self.session, domain_id)
        _require_active_trainer(self.session, teacher_id)
        base = generate_slug(title)
        slug = unique_slug(base, self.repo.slugs_like(base))
        course = self.repo.create(models.Course(
            title=title.strip(), slug=slug, description=description, domain_id=domain_id,
            teacher_id=teacher_id, thumbnail_url=thumbnail_url, is_active=is_active,
        ))
        logger.info("course_created id=%s slug=%s", course.id, course.slug)
        return self._summaries([course])[0]

    def update(self, course_id: int, changes: dict) -> dict:
        course = self.get_model(course_id)
        if "domain_id" in changes:
            _require_domain(self.session, changes["domain_id"])
        if "teacher_id" in changes:
            _require_active_trainer(self.session, changes["teacher_id"])
        _apply(course, changes)
        return self._summaries([self.repo.save(course)])[0]

    def delete(self, course_id: int) -> None:
        course = self.get_model(course_id)
        if repositories.EnrollmentRepository(self.session).count(course_id=course_id):
            raise Conflict("course has enrollments")
        self.repo.delete(course)
        logger.info("course_deleted id=%s", course_id)


def _reorder_or_400(siblings, ids):
    try:
        return ordering.apply_permutation(siblings, ids)
    except ValueError as e:
        raise ValidationFailed(str(e))


class ModuleService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ModuleRepository(session)
        self.courses = CourseService(session)

    def _get(self, module_id: int) -> models.Module:
        module = self.repo.get(module_id)
        if not module:
            raise NotFound("module not found")
        return module

    def list(self, user: models.User, course_id: int) -> List[dict]:
        course = self.courses.require_view(user, course_id)
        return ContentView.modules_tree(self.session, course.id, reveal_answers=False, with_content=False)

    def create(self, user: models.User, course_id: int, title: str, description: Optional[str] = None,
               order_index: Optional[int] = None) -> dict:
        course = self.courses.require_manage(user, course_id)
        module = models.Module(course_id=course.id, title=title.strip(), description=description)
        self.repo.stage(ordering.insert_at(self.repo.list_for_course(course.id), module, order_index))
        self.repo.commit()
        self.session.refresh(module)
        logger.info("module_created id=%s course_id=%s index=%s", module.id, course.id, module.order_index)
        return module.model_dump()

    def update(self, user: models.User, module_id: int, changes: dict) -> dict:
        module = self._get(module_id)
        self.courses.require_manage(user, module.course_id)
        position = changes.pop("order_index", None)
        _apply(module, changes)
        self.session.add(module)
        if position is not None:
            self.repo.stage(ordering.move_within(self.repo.list_for_course(module.course_id), module.id, position))
        self.repo.commit()
        self.session.refresh(module)
        return module.model_dump()

    def delete(self, user: models.User, module_id: int) -> None:
        module = self._get(module_id)
        self.courses.require_manage(user, module.course_id)
        siblings = self.repo.list_for_course(module.course_id)
        self.session.delete(module)
        self.repo.stage(ordering.remove_from(siblings, module.id))
        _sync_course_completion(self.session, module.course_id)
        self.repo.commit()
        logger.info("module_deleted id=%s course_id=%s", module_id, module.course_id)

    def reorder(self, user: models.User, course_id: int, ids: List[int]) -> List[dict]:
        self.courses.require_manage(user, course_id)
        ordered = _reorder_or_400(self.repo.list_for_course(course_id), ids)
        self.repo.stage(ordered)
        self.repo.commit()
        logger.info("modules_reordered course_id=%s ids=%s", course_id, ids)
        return [m.model_dump() for m in self.repo.list_for_course(course_id)]

    def reorder_by_ids(self, user: models.User, ids: List[int]) -> List[dict]:
        """Reorder when only module ids are given; they must share one course."""
        first = self._get(ids[0])
        return self.reorder(user, first.course_id, ids)


class ChapterService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ChapterRepository(session)
        self.modules = repositories.ModuleRepository(session)
        self.courses = CourseService(session)

    def get_module(self, module_id: int) -> models.Module:
        module = self.modules.get(module_id)
        if not module:
            raise NotFound("module not found")
        return module

    def get_model(self, chapter_id: int) -> models.Chapter:
        chapter = self.repo.get(chapter_id)
        if not chapter:
            raise NotFound("chapter not found")
        return chapter

    def course_of(self, chapter: models.Chapter) -> models.Course:
        return self.courses.get_model(self.get_module(chapter.module_id).course_id)

    def require_manage(self, user: models.User, chapter: models.Chapter) -> models.Course:
        course = self.course_of(chapter)
        if not can_manage_course(user, course):
            raise PermissionDenied("you cannot manage this chapter")
        return course

    def require_view(self, user: models.User, chapter: models.Chapter) -> models.Course:
        course = self.course_of(chapter)
        if not can_view_course(self.session, user, course):
            raise PermissionDenied("you do not have access to this chapter")
        return course

    def list_for_module(self, user: models.User, module_id: int) -> List[dict]:
        module = self.get_module(module_id)
        self.courses.require_view(user, module.course_id)
        return [c.model_dump() for c in self.repo.list_for_module(module.id)]

    def list_for_course(self, user: models.User, course_id: int) -> List[dict]:
        """Modules of a course with their chapters and content, in display order."""
        course = self.courses.require_view(user, course_id)
        return ContentView.modules_tree(self.session, course.id, reveal_answers=can_manage_course(user, course))

    def create(self, user: models.User, module_id: int, title: str, description: Optional[str] = None,
               order_index: Optional[int] = None) -> dict:
        module = self.get_module(module_id)
        self.courses.require_manage(user, module.course_id)
        chapter = models.Chapter(module_id=module.id, title=title.strip(), description=description)
        self.repo.stage(ordering.insert_at(self.repo.list_for_module(module.id), chapter, order_index))
        _sync_course_completion(self.session, module.course_id)
        self.repo.commit()
        self.session.refresh(chapter)
        logger.info("chapter_created id=%s module_id=%s index=%s", chapter.id, module.id, chapter.order_index)
        return chapter.model_dump()

    def update(self, user: models.User, chapter_id: int, changes: dict) -> dict:
        chapter = self.get_model(chapter_id)
        self.require_manage(user, chapter)
        position = changes.pop("order_index", None)
        _apply(chapter, changes)
        self.session.add(chapter)
        if position is not None:
            self.repo.stage(ordering.move_within(self.repo.list_for_module(chapter.module_id), chapter.id, position))
        self.repo.commit()
        self.session.refresh(chapter)
        return chapter.model_dump()

    def delete(self, user: models.User, chapter_id: int) -> None:
        chapter = self.get_model(chapter_id)
        course = self.require_manage(user, chapter)
        siblings = self.repo.list_for_module(chapter.module_id)
        self.session.delete(chapter)
        self.repo.stage(ordering.remove_from(siblings, chapter.id))
        _sync_course_completion(self.session, course.id)
        self.repo.commit()
        logger.info("chapter_deleted id=%s module_id=%s", chapter_id, chapter.module_id)

    def reorder(self, user: models.User, module_id: int, ids: List[int]) -> List[dict]:
        module = self.get_module(module_id)
        self.courses.require_manage(user, module.course_id)
        ordered = _reorder_or_400(self.repo.list_for_module(module.id), ids)
        self.repo.stage(ordered)
        self.repo.commit()
        logger.info("chapters_reordered module_id=%s ids=%s", module.id, ids)
        return [c.model_dump() for c in self.repo.list_for_module(module.id)]

    def reorder_by_ids(self, user: models.User, ids: List[int]) -> List[dict]:
        first = self.get_model(ids[0])
        return self.reorder(user, first.module_id, ids)

    def move(self, user: models.User, chapter_id: int, target_module_id: int,
             order_index: Optional[int] = None) -> dict:
        """Move a chapter to another module of the same course.

        The chapter leaves its source module (which is renumbered) and is
        inserted into the target at `order_index`, or appended.
        """
        chapter = self.get_model(chapter_id)
        source = self.get_module(chapter.module_id)
        target = self.get_module(target_module_id)
        if target.course_id != source.course_id:
            raise ValidationFailed("target module belongs to another course")
        self.courses.require_manage(user, source.course_id)
        if target.id == source.id:
            position = len(self.repo.list_for_module(source.id)) if order_index is None else order_index
            self.repo.stage(ordering.move_within(self.repo.list_for_module(source.id), chapter.id, position))
        else:
            self.repo.stage(ordering.remove_from(self.repo.list_for_module(source.id), chapter.id))
            chapter.module_id = target.id
            _apply(chapter, {})
            self.repo.stage(ordering.insert_at(self.repo.list_for_module(target.id), chapter, order_index))
        self.repo.commit()
        self.session.refresh(chapter)
        logger.info("chapter_moved id=%s from=%s to=%s index=%s", chapter.id, source.id, target.id, chapter.order_index)
        return chapter.model_dump()


class ContentService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ContentRepository(session)
        self.chapters = ChapterService(session)

    def get_model(self, content_id: int) -> models.ContentItem:
        item = self.repo.get(content_id)
        if not item:
            raise NotFound("content item not found")
        return item

    def list(self, user: models.User, chapter_id: int) -> List[dict]:
        chapter = self.chapters.get_model(chapter_id)
        course = self.chapters.require_view(user, chapter)
        reveal = can_manage_course(user, course)
        return [ContentView.content(it, reveal) for it in self.repo.list_for_chapter(chapter.id)]

    def get(self, user: models.User, content_id: int) -> dict:
        item = self.get_model(content_id)
        course = self.chapters.require_view(user, self.chapters.get_model(item.chapter_id))
        return ContentView.content(item, can_manage_course(user, course))

    def create(self, user: models.User, chapter_id: int, title: str, content_type: ContentType,
               content_data: dict, order_index: Optional[int] = None) -> dict:
        chapter = self.chapters.get_model(chapter_id)
        self.chapters.require_manage(user, chapter)
        item = models.ContentItem(chapter_id=chapter.id, title=title.strip(), content_type=content_type, content_data=content_data)
        self.repo.stage(ordering.insert_at(self.repo.list_for_chapter(chapter.id), item, order_index))
        self.repo.commit()
        self.session.refresh(item)
        logger.info("content_created id=%s chapter_id=%s type=%s", item.id, chapter.id, content_type.value)
        return item.model_dump()

    def update(self, user: models.User, content_id: int, changes: dict) -> dict:
        item = self.get_model(content_id)
        self.chapters.require_manage(user, self.chapters.get_model(item.chapter_id))
        data = changes.get("content_data")
        new_type = changes.get("content_type", item.content_type)
        if data is not None and data.get("type") != ContentType(new_type).value:
            raise ValidationFailed("content_data.type does not match the content type")
        position = changes.pop("order_index", None)
        _apply(item, changes)
        self.session.add(item)
        if position is not None:
            self.repo.stage(ordering.move_within(self.repo.list_for_chapter(item.chapter_id), item.id, position))
        self.repo.commit()
        self.session.refresh(item)
        return item.model_dump()

    def delete(self, user: models.User, content_id: int) -> None:
        item = self.get_model(content_id)
        self.chapters.require_manage(user, self.chapters.get_model(item.chapter_id))
        siblings = self.repo.list_for_chapter(item.chapter_id)
        self.session.delete(item)
        self.repo.stage(ordering.remove_from(siblings, item.id))
        self.repo.commit()
        logger.info("content_deleted id=%s chapter_id=%s", content_id, item.chapter_id)

    def reorder(self, user: models.User, ids: List[int]) -> List[dict]:
        first = self.get_model(ids[0])
        chapter = self.chapters.get_model(first.chapter_id)
        self.chapters.require_manage(user, chapter)
        ordered = _reorder_or_400(self.repo.list_for_chapter(chapter.id), ids)
        self.repo.stage(ordered)
        self.repo.commit()
        logger.info("content_reordered chapter_id=%s ids=%s", chapter.id, ids)
        return [it.model_dump() for it in self.repo.list_for_chapter(chapter.id)]


class EnrollmentService:
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.EnrollmentRepository(session)
        self.courses = repositories.CourseRepository(session)
        self.users = repositories.UserRepository(session)

    def _describe(self, enrollments: List[models.Enrollment]) -> List[dict]:
        courses = {c.id: c for c in self.courses.list_by_ids(e.course_id for e in enrollments)}
        students = self.users.get_many(e.student_id for e in enrollments)
        out = []
        for e in enrollments:
            c = courses.get(e.course_id)
            out.append({
                **e.model_dump(),
                "course": {"id": c.id, "title": c.title, "slug": c.slug} if c else None,
                "student": user_brief(students.get(e.student_id)),
            })
        return out

    def list(self, user: models.User, student_id: Optional[int] = None, course_id: Optional[int] = None) -> List[dict]:
        """Enrollments visible to `user`, optionally filtered.

        Staff see everything; a trainer sees enrollments of their own
        courses; a student only their own.
        """
        if user.role in models.STAFF_ROLES:
            rows = self.repo.list(student_id=student_id, course_id=course_id)
        elif user.role == Role.TRAINER:
            if course_id is not None:
                course = self.courses.get(course_id)
                if not course:
                    raise NotFound("course not found")
                if not can_manage_course(user, course):
                    raise PermissionDenied("you cannot view enrollments of this course")
                rows = self.repo.list(student_id=student_id, course_id=course_id)
            else:
                own = [c.id for c in self.courses.list(teacher_id=user.id)]
                rows = self.repo.list(student_id=student_id, course_ids=own)
        else:
            if student_id is not None and student_id != user.id:
                raise PermissionDenied("you can only view your own enrollments")
            rows = self.repo.list(student_id=user.id, course_id=course_id)
        return self._describe(rows)

    def _student(self, student_id: int) -> models.User:
        student = self.users.get(student_id)
        if not student:
            raise NotFound("student not found")
        if student.role != Role.STUDENT:
            raise ValidationFailed("only students can be enrolled")
        return student

    def create(self, student_id: int, course_id: int) -> dict:
        student = self._student(student_id)
        course = self.courses.get(course_id)
        if not course:
            raise NotFound("course not found")
        if not course.is_active:
            raise ValidationFailed("course is not active")
        if self.repo.get_for(student.id, course.id):
            raise Conflict("student is already enrolled in this course")
        enrollment = self.repo.create(models.Enrollment(student_id=student.id, course_id=course.id))
        logger.info("enrollment_created student_id=%s course_id=%s", student.id, course.id)
        return self._describe([enrollment])[0]

    def create_many(self, student_id: int, course_ids: List[int]) -> dict:
        """Enroll in several courses; missing, inactive or duplicate ones are skipped."""
        student = self._student(student_id)
        courses = {c.id: c for c in self.courses.list_by_ids(course_ids)}
        created, skipped = [], []
        for cid in dict.fromkeys(course_ids):
            course = courses.get(cid)
            if not course:
                skipped.append({"course_id": cid, "reason": "course not found"})
            elif not course.is_active:
                skipped.append({"course_id": cid, "reason": "course is not active"})
            elif self.repo.get_for(student.id, cid):
                skipped.append({"course_id": cid, "reason": "already enrolled"})
            else:
                e = models.Enrollment(student_id=student.id, course_id=cid)
                self.session.add(e)
                created.append(e)
        self.session.commit()
        for e in created:
            self.session.refresh(e)
        return {"created": self._describe(created), "skipped": skipped}

    def ensure(self, student_id: int, course_id: int) -> bool:
        """Stage an enrollment unless one exists. Returns True when staged."""
        if self.repo.get_for(student_id, course_id):
            return False
        self.session.add(models.Enrollment(student_id=student_id, course_id=course_id))
        return True

    def delete(self, enrollment_id: int) -> None:
        enrollment = self.repo.get(enrollment_id)
        if not enrollment:
            raise NotFound("enrollment not found")
        self.repo.delete(enrollment)
        logger.info("enrollment_deleted id=%s", enrollment_id)


class ProgressService:
    """Chapter completion and derived course/module progress."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ProgressRepository(session)
        self.chapters = ChapterService(session)
        self.chapter_repo = repositories.ChapterRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)

    def target_student(self, user: models.User, student_id: Optional[int],
                       course: Optional[models.Course] = None) -> int:
        """Whose progress `user` asks for: themself, or `student_id` if allowed.

        When the read is scoped to `course`, someone other than the student
        must also be able to view that course.
        """
        if student_id is None:
            if user.role != Role.STUDENT:
                raise ValidationFailed("studentId is required")
            return user.id
        if not can_view_student(self.session, user, student_id):
            raise PermissionDenied("you cannot view this student's progress")
        if course is not None and user.id != student_id and not can_view_course(self.session, user, course):
            raise PermissionDenied("you cannot view progress in this course")
        return student_id

    def progress_for(self, user: models.User, student_id: Optional[int], course_id: Optional[int] = None):
        if course_id is not None:
            course = CourseService(self.session).get_model(course_id)
            return self.course_progress(self.target_student(user, student_id, course), course.id)
        target = self.target_student(user, student_id)
        # trainers only see the courses they teach
        teacher_id = user.id if user.role == Role.TRAINER and user.id != target else None
        return self.course_progress(target, teacher_id=teacher_id)

    def module_progress_for(self, user: models.User, student_id: Optional[int], module_id: int) -> dict:
        module = self.chapters.get_module(module_id)
        course = CourseService(self.session).get_model(module.course_id)
        return self._module_summary(self.target_student(user, student_id, course), module)

    def course_module_progress_for(self, user: models.User, student_id: Optional[int], course_id: int) -> List[dict]:
        course = CourseService(self.session).get_model(course_id)
        target = self.target_student(user, student_id, course)
        modules = repositories.ModuleRepository(self.session).list_for_course(course.id)
        return [self._module_summary(target, m) for m in modules]

    def _enrolled_chapter(self, student: models.User, chapter_id: int):
        chapter = self.chapters.get_model(chapter_id)
        course = self.chapters.course_of(chapter)
        enrollment = self.enrollments.get_for(student.id, course.id)
        if not enrollment:
            raise PermissionDenied("you are not enrolled in this course")
        return chapter, course, enrollment

    def mark(self, student: models.User, chapter_id: int) -> dict:
        """Mark a chapter complete. Marking twice keeps the first record."""
        chapter, _, enrollment = self._enrolled_chapter(student, chapter_id)
        progress = self.repo.get_for(student.id, chapter.id)
        if progress is None:
            progress = self.repo.create(models.ChapterProgress(student_id=student.id, chapter_id=chapter.id))
        _sync_completion(self.session, [enrollment])
        self.repo.commit()
        self.session.refresh(progress)
        return progress.model_dump()

    def unmark(self, student: models.User, chapter_id: int) -> None:
        chapter, _, enrollment = self._enrolled_chapter(student, chapter_id)
        progress = self.repo.get_for(student.id, chapter.id)
        if progress is not None:
            self.repo.delete(progress)
        _sync_completion(self.session, [enrollment])
        self.repo.commit()

    def _course_summary(self, student_id: int, enrollment: models.Enrollment, course: models.Course) -> dict:
        chapter_ids = [c.id for c in self.chapter_repo.list_for_course(course.id)]
        rows = self.repo.list_for(student_id, chapter_ids)
        return {
            "course_id": course.id,
            "course_title": course.title,
            "total_chapters": len(chapter_ids),
            "completed_chapters": len(rows),
            "percentage": percentage(len(rows), len(chapter_ids)),
            "completed_chapter_ids": sorted(p.chapter_id for p in rows),
            "completed_at": enrollment.completed_at,
            "last_activity_at": _latest(p.completed_at for p in rows),
        }

    def course_progress(self, student_id: int, course_id: Optional[int] = None, teacher_id: Optional[int] = None):
        """Progress for one course, or for every enrolled course when `course_id` is omitted.

        `teacher_id` restricts the full listing to courses taught by that trainer.
        """
        course_repo = repositories.CourseRepository(self.session)
        if course_id is not None:
            course = course_repo.get(course_id)
            if not course:
                raise NotFound("course not found")
            enrollment = self.enrollments.get_for(student_id, course_id)
            if not enrollment:
                raise NotFound("student is not enrolled in this course")
            return self._course_summary(student_id, enrollment, course)
        enrollments = self.enrollments.list(student_id=student_id)
        courses = {c.id: c for c in course_repo.list_by_ids(e.course_id for e in enrollments)
                   if teacher_id is None or c.teacher_id == teacher_id}
        return [self._course_summary(student_id, e, courses[e.course_id]) for e in enrollments if e.course_id in courses]

    def _module_summary(self, student_id: int, module: models.Module) -> dict:
        chapter_ids = [c.id for c in self.chapter_repo.list_for_module(module.id)]
        rows = self.repo.list_for(student_id, chapter_ids) if chapter_ids else []
        return {
            "module_id": module.id,
            "module_title": module.title,
            "total_chapters": len(chapter_ids),
            "completed_chapters": len(rows),
            "percentage": percentage(len(rows), len(chapter_ids)),
            "last_activity_at": _latest(p.completed_at for p in rows),
        }

    def course_module_stats(self, user: models.User, course_id: int) -> List[dict]:
        """Per module: how many enrolled students have not started, are in progress, or completed it."""
        course = CourseService(self.session).require_manage(user, course_id)
        return self.module_stats(course)

    def module_stats(self, course: models.Course) -> List[dict]:
        students = [e.student_id for e in self.enrollments.list(course_id=course.id)]
        modules = repositories.ModuleRepository(self.session).list_for_course(course.id)
        chapters = self.chapter_repo.list_for_course(course.id)
        module_of = {c.id: c.module_id for c in chapters}
        done: Dict[tuple, int] = {}
        for p in self.repo.list_for_chapters(module_of.keys()):
            if p.student_id in students:
                key = (module_of[p.chapter_id], p.student_id)
                done[key] = done.get(key, 0) + 1
        out = []
        for m in modules:
            total = sum(1 for mid in module_of.values() if mid == m.id)
            stats = {"not_started": 0, "in_progress": 0, "completed": 0}
            for sid in students:
                n = done.get((m.id, sid), 0)
                if n == 0:
                    stats["not_started"] += 1
                elif n >= total:
                    stats["completed"] += 1
                else:
                    stats["in_progress"] += 1
            out.append({"module_id": m.id, "module_title": m.title, "total_chapters": total,
                        "total_students": len(students), **stats})
        return out


class QuizService:
    """Server-side scoring of quiz and exam attempts."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.QuizAttemptRepository(session)
        self.contents = ContentService(session)

    def _scored_item(self, student: models.User, content_item_id: int) -> models.ContentItem:
        item = self.contents.get_model(content_item_id)
        if item.content_type not in models.SCORED_CONTENT_TYPES:
            raise ValidationFailed("content item is not a quiz or exam")
        course = self.contents.chapters.course_of(self.contents.chapters.get_model(item.chapter_id))
        if not repositories.EnrollmentRepository(self.session).get_for(student.id, course.id):
            raise PermissionDenied("you are not enrolled in this course")
        return item

    @staticmethod
    def score(content_data: dict, answers: Dict[str, int]):
        """Return `(score, correct_count, per_question)` for `answers`.

        `score = round(100 * correct / questions)`; unanswered questions
        count as wrong.
        """
        questions = content_data.get("questions") or []
        known = {q["id"] for q in questions}
        unknown = sorted(set(answers) - known)
        if unknown:
            raise ValidationFailed("answers reference unknown questions", details={"unknown": unknown})
        results = []
        correct = 0
        for q in questions:
            given = answers.get(q["id"])
            ok = given is not None and given == q.get("correct_answer")
            correct += ok
            results.append({"question_id": q["id"], "given": given, "correct": ok})
        return percentage(correct, len(questions)), correct, results

    def submit(self, student: models.User, content_item_id: int, answers: Dict[str, int]) -> dict:
        item = self._scored_item(student, content_item_id)
        data = item.content_data or {}
        if item.content_type == ContentType.EXAM:
            allowed = data.get("attempts_allowed")
            if allowed is not None and self.repo.count_for(student.id, item.id) >= allowed:
                raise Conflict("no attempts left for this exam")
        score, correct, results = self.score(data, answers)
        passing = data.get("passing_score")
        if passing is None:
            passing = settings.DEFAULT_PASSING_SCORE
        attempt = self.repo.create(models.QuizAttempt(
            student_id=student.id, content_item_id=item.id, answers=answers, score=score, passed=score >= passing,
        ))
        logger.info("quiz_attempt id=%s item=%s score=%s passed=%s", attempt.id, item.id, score, attempt.passed)
        out = {**attempt.model_dump(), "correct_count": correct, "total_questions": len(results), "passing_score": passing}
        if item.content_type == ContentType.QUIZ:
            # quizzes are practice; exams keep their answer key hidden
            by_id = {q["id"]: q for q in data.get("questions", [])}
            for r in results:
                q = by_id[r["question_id"]]
                r["correct_answer"] = q.get("correct_answer")
                r["explanation"] = q.get("explanation")
        out["results"] = results
        return out

    def list_mine(self, student: models.User, content_item_id: int) -> List[dict]:
        return [a.model_dump() for a in self.repo.list_for(student.id, content_item_id)]

    def best(self, student: models.User, content_item_id: int) -> Optional[dict]:
        attempt = self.repo.best_for(student.id, content_item_id)
        return attempt.model_dump() if attempt else None

    def list_for_student(self, student_id: int) -> List[dict]:
        """Every attempt of a student with content, chapter and course titles."""
        attempts = self.repo.list_for(student_id)
        items = {i.id: i for i in repositories.ContentRepository(self.session).list_by_ids(a.content_item_id for a in attempts)}
        chapters = {c.id: c for c in repositories.ChapterRepository(self.session).list_by_ids(i.chapter_id for i in items.values())}
        module_repo = repositories.ModuleRepository(self.session)
        modules = {mid: module_repo.get(mid) for mid in {c.module_id for c in chapters.values()}}
        courses = {c.id: c for c in repositories.CourseRepository(self.session).list_by_ids(m.course_id for m in modules.values() if m)}
        out = []
        for a in attempts:
            item = items.get(a.content_item_id)
            chapter = chapters.get(item.chapter_id) if item else None
            module = modules.get(chapter.module_id) if chapter else None
            course = courses.get(module.course_id) if module else None
            out.append({
                **a.model_dump(),
                "content_title": item.title if item else None,
                "content_type": item.content_type if item else None,
                "chapter_id": chapter.id if chapter else None,
                "chapter_title": chapter.title if chapter else None,
                "course_id": course.id if course else None,
                "course_title": course.title if course else None,
            })
        return out


class ProjectService:
    """Final projects and their review workflow."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ProjectRepository(session)
        self.courses = CourseService(session)

    def _project(self, project_id: int) -> models.FinalProject:
        project = self.repo.get(project_id)
        if not project:
            raise NotFound("project not found")
        return project

    def create(self, user: models.User, course_id: int, title: str, description: str,
               requirements: Optional[List[str]] = None) -> dict:
        course = self.courses.require_manage(user, course_id)
        project = self.repo.create(models.FinalProject(
            course_id=course.id, title=title.strip(), description=description, requirements=requirements,
        ))
        return project.model_dump()

    def list(self, user: models.User, course_id: int) -> List[dict]:
        course = self.courses.require_view(user, course_id)
        return [p.model_dump() for p in self.repo.list_for_course(course.id)]

    def submit(self, student: models.User, project_id: int, submission_url: Optional[str],
               description: Optional[str]) -> dict:
        """Submit, or resubmit, which resets any previous review."""
        project = self._project(project_id)
        if not repositories.EnrollmentRepository(self.session).get_for(student.id, project.course_id):
            raise PermissionDenied("you are not enrolled in this course")
        submission = self.repo.submission_for(student.id, project.id)
        if submission is None:
            submission = models.ProjectSubmission(student_id=student.id, final_project_id=project.id)
        _apply(submission, {
            "submission_url": submission_url, "description": description,
            "status": models.SubmissionStatus.SUBMITTED, "feedback": None, "grade": None,
            "reviewed_at": None, "submitted_at": utcnow(),
        })
        return self.repo.save(submission).model_dump()

    def _describe(self, submissions: List[models.ProjectSubmission]) -> List[dict]:
        students = repositories.UserRepository(self.session).get_many(s.student_id for s in submissions)
        projects = {pid: self.repo.get(pid) for pid in {s.final_project_id for s in submissions}}
        return [{
            **s.model_dump(),
            "student": user_brief(students.get(s.student_id)),
            "project_title": projects[s.final_project_id].title if projects.get(s.final_project_id) else None,
        } for s in submissions]

    def list_submissions(self, user: models.User, project_id: int) -> List[dict]:
        project = self._project(project_id)
        self.courses.require_manage(user, project.course_id)
        return self._describe(self.repo.list_submissions(project.id))

    def review(self, user: models.User, submission_id: int, status: str, feedback: Optional[str],
               grade: Optional[int]) -> dict:
        submission = self.repo.get_submission(submission_id)
        if not submission:
            raise NotFound("submission not found")
        project = self._project(submission.final_project_id)
        self.courses.require_manage(user, project.course_id)
        _apply(submission, {
            "status": models.SubmissionStatus(status), "feedback": feedback,
            "grade": grade, "reviewed_at": utcnow(),
        })
        logger.info("submission_reviewed id=%s status=%s", submission.id, status)
        return self._describe([self.repo.save(submission)])[0]

    def pending_for_teacher(self, user: models.User) -> List[dict]:
        return self._describe(self.repo.pending_for_teacher(user.id))


class ClassService:
    """Student groups; assigning a course enrolls every member."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.ClassRepository(session)
        self.users = repositories.UserRepository(session)
        self.enrollments = EnrollmentService(session)

    def _get(self, class_id: int) -> models.SchoolClass:
        klass = self.repo.get(class_id)
        if not klass:
            raise NotFound("class not found")
        return klass

    def _summary(self, klass: models.SchoolClass) -> dict:
        return {
            **klass.model_dump(),
            "teacher": user_brief(self.users.get(klass.teacher_id)),
            "student_count": self.repo.count_students(klass.id),
            "course_count": len(self.repo.course_links(klass.id)),
        }

    def list(self, user: models.User) -> List[dict]:
        teacher_id = user.id if user.role == Role.TRAINER else None
        return [self._summary(k) for k in self.repo.list(teacher_id=teacher_id)]

    def get(self, class_id: int) -> dict:
        klass = self._get(class_id)
        links = self.repo.student_links(klass.id)
        students = self.users.get_many(l.student_id for l in links)
        course_links = self.repo.course_links(klass.id)
        courses = {c.id: c for c in repositories.CourseRepository(self.session).list_by_ids(l.course_id for l in course_links)}
        out = self._summary(klass)
        out["students"] = [{**user_brief(students[l.student_id]), "enrolled_at": l.enrolled_at}
                           for l in links if l.student_id in students]
        out["courses"] = []
        for l in course_links:
            c = courses.get(l.course_id)
            if c:
                out["courses"].append({"id": c.id, "title": c.title, "slug": c.slug, "assigned_at": l.assigned_at})
        return out

    def create(self, name: str, teacher_id: int, description: Optional[str] = None, domain_id: Optional[int] = None,
               is_active: bool = True, max_students: Optional[int] = None) -> dict:
        _require_active_trainer(self.session, teacher_id)
        _require_domain(self.session, domain_id)
        klass = self.repo.create(models.SchoolClass(
            name=name.strip(), teacher_id=teacher_id, description=description, domain_id=domain_id,
            is_active=is_active, max_students=max_students,
        ))
        logger.info("class_created id=%s teacher_id=%s", klass.id, teacher_id)
        return self._summary(klass)

    def update(self, class_id: int, changes: dict) -> dict:
        klass = self._get(class_id)
        if "teacher_id" in changes:
            if changes["teacher_id"] is None:
                raise ValidationFailed("a class needs a teacher")
            _require_active_trainer(self.session, changes["teacher_id"])
        if "domain_id" in changes:
            _require_domain(self.session, changes["domain_id"])
        cap = changes.get("max_students")
        if cap is not None and cap < self.repo.count_students(klass.id):
            raise ValidationFailed("max_students is below the current number of students")
        _apply(klass, changes)
        return self._summary(self.repo.save(klass))

    def delete(self, class_id: int) -> None:
        self.repo.delete(self._get(class_id))
        logger.info("class_deleted id=%s", class_id)

    def add_student(self, class_id: int, student_id: int) -> dict:
        """Add a student and enroll them in every course of the class."""
        klass = self._get(class_id)
        student = self.users.get(student_id)
        if not student:
            raise NotFound("student not found")
        if student.role != Role.STUDENT:
            raise ValidationFailed("only students can join a class")
        if self.repo.student_link(klass.id, student.id):
            raise Conflict("student is already in this class")
        if klass.max_students is not None and self.repo.count_students(klass.id) >= klass.max_students:
            raise Conflict("class is full")
        link = models.ClassEnrollment(class_id=klass.id, student_id=student.id)
        self.session.add(link)
        enrolled = sum(self.enrollments.ensure(student.id, l.course_id) for l in self.repo.course_links(klass.id))
        self.session.commit()
        self.session.refresh(link)
        logger.info("class_student_added class_id=%s student_id=%s courses=%d", klass.id, student.id, enrolled)
        return {**link.model_dump(), "courses_enrolled": enrolled}

    def remove_student(self, class_id: int, student_id: int) -> None:
        """Remove membership only; course enrollments are kept."""
        link = self.repo.student_link(self._get(class_id).id, student_id)
        if not link:
            raise NotFound("student is not in this class")
        self.repo.delete(link)

    def assign_course(self, class_id: int, course_id: int) -> dict:
        """Attach a course and enroll every current student of the class."""
        klass = self._get(class_id)
        course = repositories.CourseRepository(self.session).get(course_id)
        if not course:
            raise NotFound("course not found")
        if self.repo.course_link(klass.id, course.id):
            raise Conflict("course is already assigned to this class")
        link = models.ClassCourse(class_id=klass.id, course_id=course.id)
        self.session.add(link)
        enrolled = sum(self.enrollments.ensure(l.student_id, course.id) for l in self.repo.student_links(klass.id))
        self.session.commit()
        self.session.refresh(link)
        logger.info("class_course_assigned class_id=%s course_id=%s students=%d", klass.id, course.id, enrolled)
        return {**link.model_dump(), "students_enrolled": enrolled}

    def remove_course(self, class_id: int, course_id: int) -> None:
        link = self.repo.course_link(self._get(class_id).id, course_id)
        if not link:
            raise NotFound("course is not assigned to this class")
        self.repo.delete(link)

    def enrollment_count(self, class_id: int) -> dict:
        klass = self._get(class_id)
        count = self.repo.count_students(klass.id)
        return {
            "class_id": klass.id,
            "student_count": count,
            "max_students": klass.max_students,
            "is_full": klass.max_students is not None and count >= klass.max_students,
        }


class AnalyticsService:
    """Read-only dashboards per role."""
    def __init__(self, session: Session):
        self.session = session
        self.courses = repositories.CourseRepository(session)
        self.enrollments = repositories.EnrollmentRepository(session)
        self.progress = ProgressService(session)

    def admin(self) -> dict:
        by_role = {r.value: 0 for r in Role}
        by_role.update(repositories.UserRepository(self.session).count_by_role())
        total = self.enrollments.count()
        completed = self.enrollments.count(completed_only=True)
        return {
            "users_by_role": by_role,
            "total_users": sum(by_role.values()),
            "total_courses": self.courses.count(),
            "active_courses": self.courses.count(active_only=True),
            "total_domains": len(repositories.DomainRepository(self.session).list()),
            "total_enrollments": total,
            "completed_enrollments": completed,
            "completion_rate": percentage(completed, total),
        }

    def _average_completion(self, course_id: int) -> int:
        rows = self.enrollments.list(course_id=course_id)
        if not rows:
            return 0
        pcts = [self.progress.course_progress(e.student_id, course_id)["percentage"] for e in rows]
        return round_half_up(sum(pcts) / len(pcts))

    def teacher(self, user: models.User) -> dict:
        courses = self.courses.list(teacher_id=user.id)
        summary = [{
            "course_id": c.id,
            "title": c.title,
            "is_active": c.is_active,
            "enrollments": self.enrollments.count(course_id=c.id),
            "completed": self.enrollments.count(course_id=c.id, completed_only=True),
            "average_completion": self._average_completion(c.id),
        } for c in courses]
        chapter_titles = {}
        for c in courses:
            for ch in repositories.ChapterRepository(self.session).list_for_course(c.id):
                chapter_titles[ch.id] = (ch.title, c.title)
        recent = sorted(
            self.progress.repo.list_for_chapters(chapter_titles.keys()),
            key=lambda p: (_to_utc(p.completed_at), p.id), reverse=True,
        )[:10]
        students = repositories.UserRepository(self.session).get_many(p.student_id for p in recent)
        return {
            "courses": summary,
            "total_students": len({e.student_id for c in courses for e in self.enrollments.list(course_id=c.id)}),
            "recent_completions": [{
                "student": user_brief(students.get(p.student_id)),
                "chapter_id": p.chapter_id,
                "chapter_title": chapter_titles[p.chapter_id][0],
                "course_title": chapter_titles[p.chapter_id][1],
                "completed_at": p.completed_at,
            } for p in recent],
        }

    def course(self, user: models.User, course_id: int) -> dict:
        course = CourseService(self.session).get_model(course_id)
        if user.role not in models.STAFF_ROLES and not can_manage_course(user, course):
            raise PermissionDenied("you cannot view analytics for this course")
        total = self.enrollments.count(course_id=course.id)
        completed = self.enrollments.count(course_id=course.id, completed_only=True)
        chapters = repositories.ChapterRepository(self.session).list_for_course(course.id)
        items = repositories.ContentRepository(self.session).list_for_chapters(c.id for c in chapters)
        attempts = repositories.QuizAttemptRepository(self.session).list_for_items(i.id for i in items)
        avg = round(sum(a.score for a in attempts) / len(attempts), 1) if attempts else None
        return {
            "course_id": course.id,
            "title": course.title,
            "total_enrollments": total,
            "completed_enrollments": completed,
            "completion_rate": percentage(completed, total),
            "average_completion": self._average_completion(course.id),
            "quiz_attempts": len(attempts),
            "average_quiz_score": avg,
            "pass_rate": percentage(sum(1 for a in attempts if a.passed), len(attempts)),
            "module_stats": self.progress.module_stats(course),
        }

    def student(self, user: models.User) -> dict:
        courses = self.progress.course_progress(user.id)
        attempts = repositories.QuizAttemptRepository(self.session).list_for(user.id)
        return {
            "courses": courses,
            "enrolled_courses": len(courses),
            "completed_courses": sum(1 for c in courses if c["completed_at"] is not None),
            "quiz_stats": {
                "attempts": len(attempts),
                "passed": sum(1 for a in attempts if a.passed),
                "average_score": round(sum(a.score for a in attempts) / len(attempts), 1) if attempts else None,
            },
        }
