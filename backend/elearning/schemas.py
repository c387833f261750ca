"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and reject malformed payloads
before they reach the services. Content item payloads are validated per
content type through the `ContentData` discriminated union.
"""

import re
from typing import Annotated, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import ContentType, Role

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"
URL_PATTERN = r"^https?://\S+$"


def validate_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("invalid email format")
    return email


class PatchModel(BaseModel):
    """Partial update body. `changes()` returns only the fields sent.

    An explicit `null` is dropped for columns listed in `non_nullable`.
    """
    non_nullable: ClassVar[tuple] = ()

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k not in self.non_nullable}


class _EmailMixin(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def check_email(cls, v):
        if v is None:
            return v
        return validate_email(v)


# ---------------------------------------------------------------------------
# auth & users
# ---------------------------------------------------------------------------


class RegisterIn(_EmailMixin):
    """Public self-registration; always creates a STUDENT."""
    email: str
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=255)


class LoginIn(_EmailMixin):
    email: str
    password: str = Field(min_length=1)


class UserCreate(_EmailMixin):
    email: str
    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    role: Role = Role.STUDENT
    is_active: bool = True


class UserUpdate(_EmailMixin, PatchModel):
    non_nullable: ClassVar[tuple] = ("email", "name", "role", "password")

    email: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[Role] = None
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=20)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None


class UserStatusIn(BaseModel):
    is_active: bool


class ProfileUpdate(PatchModel):
    non_nullable: ClassVar[tuple] = ("name",)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=2000)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)


# ---------------------------------------------------------------------------
# catalogue
# ---------------------------------------------------------------------------


class DomainCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    color: str = Field(default="#6366f1", pattern=COLOR_PATTERN)


class DomainUpdate(PatchModel):
    non_nullable: ClassVar[tuple] = ("name", "color")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    domain_id: Optional[int] = None
    teacher_id: Optional[int] = None
    thumbnail_url: Optional[str] = None
    is_active: bool = False


class CourseUpdate(PatchModel):
    non_nullable: ClassVar[tuple] = ("title", "is_active")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    domain_id: Optional[int] = None
    teacher_id: Optional[int] = None
    thumbnail_url: Optional[str] = None
    is_active: Optional[bool] = None


class ModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = Field(default=None, ge=0)


class ModuleUpdate(PatchModel):
    non_nullable: ClassVar[tuple] = ("title",)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    order_index: Optional[int] = Field(default=None, ge=0)


class ChapterCreate(ModuleCreate):
    pass


class ChapterUpdate(ModuleUpdate):
    pass


class ChapterMove(BaseModel):
    target_module_id: int
    order_index: Optional[int] = Field(default=None, ge=0)


class ReorderIn(BaseModel):
    """New display order: every child id of one parent, in order."""
    ids: List[int] = Field(min_length=1)


# ---------------------------------------------------------------------------
# content data, one schema per content type
# ---------------------------------------------------------------------------

Difficulty = Literal["easy", "medium", "hard"]


class QuizQuestion(BaseModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=2, max_length=6)
    correct_answer: int = Field(ge=0)
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def answer_in_range(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


class TestQuestion(BaseModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    points: int = Field(default=1, ge=1)
    difficulty: Difficulty = "medium"
    expected_answer: Optional[str] = None


class ExamQuestion(QuizQuestion):
    points: int = Field(default=1, ge=1)
    difficulty: Difficulty = "medium"
    category: Optional[str] = None


class _QuestionSet(BaseModel):
    @field_validator("questions", check_fields=False)
    @classmethod
    def unique_question_ids(cls, questions):
        ids = [q.id for q in questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return questions


class VideoData(BaseModel):
    type: Literal["video"]
    url: str = Field(pattern=URL_PATTERN)
    duration: Optional[int] = Field(default=None, ge=0)
    thumbnail: Optional[str] = None


class Attachment(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(pattern=URL_PATTERN)


class TextData(BaseModel):
    type: Literal["text"]
    content: str = Field(min_length=1)
    attachments: List[Attachment] = Field(default_factory=list)


class QuizData(_QuestionSet):
    type: Literal["quiz"]
    questions: List[QuizQuestion] = Field(min_length=1)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    time_limit: Optional[int] = Field(default=None, ge=1)


class TestData(_QuestionSet):
    type: Literal["test"]
    questions: List[TestQuestion] = Field(min_length=1)
    passing_score: int = Field(ge=0, le=100)
    time_limit: int = Field(ge=1)
    attempts_allowed: int = Field(ge=1)


class ExamData(_QuestionSet):
    type: Literal["exam"]
    questions: List[ExamQuestion] = Field(min_length=1)
    passing_score: int = Field(ge=0, le=100)
    time_limit: int = Field(ge=1)
    attempts_allowed: int = Field(ge=1)
    proctored: bool = False


ContentData = Annotated[
    Union[VideoData, TextData, QuizData, TestData, ExamData],
    Field(discriminator="type"),
]


def _check_type_matches(content_type, data):
    if content_type is not None and data is not None and data.type != content_type.value:
        raise ValueError(f"content_data.type '{data.type}' does not match content_type '{content_type.value}'")


class ContentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content_type: ContentType
    content_data: ContentData
    order_index: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def type_matches(self):
        _check_type_matches(self.content_type, self.content_data)
        return self


class ContentUpdate(PatchModel):
    """Partial update. Changing the type requires new `content_data`."""
    non_nullable: ClassVar[tuple] = ("title", "content_type", "content_data")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content_type: Optional[ContentType] = None
    content_data: Optional[ContentData] = None
    order_index: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def type_matches(self):
        if self.content_type is not None and self.content_data is None:
            raise ValueError("content_data is required when changing content_type")
        _check_type_matches(self.content_type, self.content_data)
        return self

    def changes(self) -> dict:
        data = super().changes()
        # content_data replaces the stored payload as a whole, defaults included
        if self.content_data is not None:
            data["content_data"] = self.content_data.model_dump()
        return data


# ---------------------------------------------------------------------------
# learners
# ---------------------------------------------------------------------------


class EnrollmentCreate(BaseModel):
    """Enroll one student in `course_id`, or in each of `course_ids`."""
    student_id: int
    course_id: Optional[int] = None
    course_ids: Optional[List[int]] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def one_target(self):
        if (self.course_id is None) == (self.course_ids is None):
            raise ValueError("provide exactly one of course_id or course_ids")
        return self


class ProgressIn(BaseModel):
    chapter_id: int


class QuizAttemptIn(BaseModel):
    """Answers keyed by question id, each the chosen option index."""
    content_item_id: int
    answers: Dict[str, int]


class FinalProjectCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    requirements: Optional[List[str]] = None


class SubmissionIn(BaseModel):
    submission_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    description: Optional[str] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not self.submission_url and not (self.description or "").strip():
            raise ValueError("submission_url or description is required")
        return self


class ReviewIn(BaseModel):
    status: Literal["reviewed", "approved", "rejected"]
    feedback: Optional[str] = None
    grade: Optional[int] = Field(default=None, ge=0, le=100)


class ClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    teacher_id: int
    domain_id: Optional[int] = None
    is_active: bool = True
    max_students: Optional[int] = Field(default=None, ge=1)


class ClassUpdate(PatchModel):
    non_nullable: ClassVar[tuple] = ("name", "teacher_id", "is_active")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    teacher_id: Optional[int] = None
    domain_id: Optional[int] = None
    is_active: Optional[bool] = None
    max_students: Optional[int] = Field(default=None, ge=1)


class ClassStudentIn(BaseModel):
    student_id: int


class ClassCourseIn(BaseModel):
    course_id: int
