"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; foreign keys cascade on delete so removing a
course removes its modules, chapters, content items and learner records.
Ordered children carry an `order_index` that services keep contiguous
(`0..n-1`) within their parent.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "ADMIN"
    SUB_ADMIN = "SUB_ADMIN"
    TRAINER = "TRAINER"
    STUDENT = "STUDENT"


STAFF_ROLES = (Role.ADMIN, Role.SUB_ADMIN)


class ContentType(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    QUIZ = "quiz"
    TEST = "test"
    EXAM = "exam"


# content types a student can submit a scored attempt for
SCORED_CONTENT_TYPES = (ContentType.QUIZ, ContentType.EXAM)


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(SQLModel, table=True):
    """A registered account of any role.

    Fields:
    - `email`: unique login identifier
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: one of `Role`, gates every API route
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True, max_length=255)
    password_hash: str
    name: str = Field(max_length=255)
    role: Role = Field(default=Role.STUDENT, index=True)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True
    phone: Optional[str] = Field(default=None, max_length=20)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Domain(SQLModel, table=True):
    """A subject area grouping courses and classes."""
    __tablename__ = "domains"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, index=True)
    description: Optional[str] = None
    color: str = Field(default="#6366f1", max_length=7)
    created_at: datetime = Field(default_factory=utcnow)


class Course(SQLModel, table=True):
    """A course, optionally assigned to a trainer (`teacher_id`)."""
    __tablename__ = "courses"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=255)
    slug: str = Field(max_length=255, unique=True, index=True)
    description: Optional[str] = None
    domain_id: Optional[int] = Field(default=None, foreign_key="domains.id", index=True)
    teacher_id: Optional[int] = Field(default=None, foreign_key="users.id", ondelete="SET NULL", index=True)
    thumbnail_url: Optional[str] = None
    is_active: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Module(SQLModel, table=True):
    """An ordered section of a course."""
    __tablename__ = "modules"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=200)
    description: Optional[str] = None
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Chapter(SQLModel, table=True):
    """An ordered lesson inside a module."""
    __tablename__ = "chapters"

    id: Optional[int] = Field(default=None, primary_key=True)
    module_id: int = Field(foreign_key="modules.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=200)
    description: Optional[str] = None
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ContentItem(SQLModel, table=True):
    """A piece of chapter content.

    `content_data` holds the type specific payload (video URL, text body,
    quiz questions, ...) validated by `schemas.ContentData` on write.
    """
    __tablename__ = "content_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    chapter_id: int = Field(foreign_key="chapters.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=200)
    content_type: ContentType
    content_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    order_index: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Enrollment(SQLModel, table=True):
    """A student-course association. One per student and course."""
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    course_id: int = Field(foreign_key="courses.id", ondelete="CASCADE", index=True)
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ChapterProgress(SQLModel, table=True):
    """Marks a chapter as completed by a student."""
    __tablename__ = "chapter_progress"
    __table_args__ = (UniqueConstraint("student_id", "chapter_id", name="uq_progress_student_chapter"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    chapter_id: int = Field(foreign_key="chapters.id", ondelete="CASCADE", index=True)
    completed_at: datetime = Field(default_factory=utcnow)


class QuizAttempt(SQLModel, table=True):
    """A scored submission of answers for a quiz or exam content item."""
    __tablename__ = "quiz_attempts"

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    content_item_id: int = Field(foreign_key="content_items.id", ondelete="CASCADE", index=True)
    answers: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    score: int
    passed: bool = Field(index=True)
    attempted_at: datetime = Field(default_factory=utcnow)


class FinalProject(SQLModel, table=True):
    """A capstone project attached to a course."""
    __tablename__ = "final_projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=200)
    description: str
    requirements: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)


class ProjectSubmission(SQLModel, table=True):
    """A student's submission for a final project, reviewed by a trainer."""
    __tablename__ = "project_submissions"
    __table_args__ = (UniqueConstraint("student_id", "final_project_id", name="uq_submission_student_project"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    final_project_id: int = Field(foreign_key="final_projects.id", ondelete="CASCADE", index=True)
    submission_url: Optional[str] = None
    description: Optional[str] = None
    status: SubmissionStatus = Field(default=SubmissionStatus.SUBMITTED)
    feedback: Optional[str] = None
    grade: Optional[int] = None
    submitted_at: datetime = Field(default_factory=utcnow)
    reviewed_at: Optional[datetime] = None


class SchoolClass(SQLModel, table=True):
    """A group of students led by a trainer."""
    __tablename__ = "classes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    description: Optional[str] = None
    teacher_id: int = Field(foreign_key="users.id", index=True)
    domain_id: Optional[int] = Field(default=None, foreign_key="domains.id")
    is_active: bool = True
    max_students: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ClassEnrollment(SQLModel, table=True):
    __tablename__ = "class_enrollments"
    __table_args__ = (UniqueConstraint("class_id", "student_id", name="uq_class_student"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: int = Field(foreign_key="classes.id", ondelete="CASCADE", index=True)
    student_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    enrolled_at: datetime = Field(default_factory=utcnow)


class ClassCourse(SQLModel, table=True):
    __tablename__ = "class_courses"
    __table_args__ = (UniqueConstraint("class_id", "course_id", name="uq_class_course"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    class_id: int = Field(foreign_key="classes.id", ondelete="CASCADE", index=True)
    course_id: int = Field(foreign_key="courses.id", ondelete="CASCADE", index=True)
    assigned_at: datetime = Field(default_factory=utcnow)


class RevokedToken(SQLModel, table=True):
    """A session token invalidated by logout before its expiry."""
    __tablename__ = "revoked_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    jti: str = Field(unique=True, index=True)
    expires_at: datetime
