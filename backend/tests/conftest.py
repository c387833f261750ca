import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a throwaway database before anything imports it.
_TMP = Path(tempfile.mkdtemp(prefix="elearning-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["AVATAR_DIR"] = str(_TMP / "avatars")
os.environ["JWT_SECRET"] = "test-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from elearning.auth import create_token, hash_password  # noqa: E402
from elearning.database import create_db_and_tables, drop_db_and_tables, engine  # noqa: E402
from elearning.main import app  # noqa: E402
from elearning.models import Role, User  # noqa: E402
from elearning.routers.auth import login_limiter  # noqa: E402

PASSWORD = "secret123"

QUIZ_DATA = {
    "type": "quiz",
    "passing_score": 50,
    "questions": [
        {"id": "q1", "question": "2 + 2?", "options": ["3", "4"], "correct_answer": 1, "explanation": "basic sum"},
        {"id": "q2", "question": "Capital of France?", "options": ["Paris", "Rome", "Oslo"], "correct_answer": 0},
    ],
}

EXAM_DATA = {
    "type": "exam",
    "passing_score": 60,
    "time_limit": 30,
    "attempts_allowed": 2,
    "questions": [
        {"id": "e1", "question": "1 + 1?", "options": ["2", "3"], "correct_answer": 0, "points": 2},
        {"id": "e2", "question": "3 * 3?", "options": ["6", "9"], "correct_answer": 1, "difficulty": "hard"},
    ],
}


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh tables and rate limiter for every test."""
    drop_db_and_tables()
    create_db_and_tables()
    login_limiter.reset()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user():
    """Insert a user directly and return it."""
    counter = {"n": 0}

    def _make(role=Role.STUDENT, email=None, name=None, password=PASSWORD, is_active=True):
        counter["n"] += 1
        email = email or f"{role.value.lower()}{counter['n']}@example.com"
        with Session(engine) as session:
            user = User(email=email, name=name or f"{role.value.title()} {counter['n']}",
                        password_hash=hash_password(password), role=role, is_active=is_active)
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make


def auth(user):
    token, _ = create_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, email="admin@example.com")


@pytest.fixture
def sub_admin(make_user):
    return make_user(Role.SUB_ADMIN, email="subadmin@example.com")


@pytest.fixture
def trainer(make_user):
    return make_user(Role.TRAINER, email="trainer@example.com")


@pytest.fixture
def student(make_user):
    return make_user(Role.STUDENT, email="student@example.com")


@pytest.fixture
def make_course(client, admin):
    """Create a course through the API (as ADMIN) and return its JSON."""
    def _make(title="Introduction to Testing", teacher=None, is_active=True, **extra):
        body = {"title": title, "is_active": is_active, **extra}
        if teacher is not None:
            body["teacher_id"] = teacher.id
        r = client.post("/api/courses", json=body, headers=auth(admin))
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _make


@pytest.fixture
def course_tree(client, admin, trainer, make_course):
    """An active course taught by `trainer` with 2 modules and 3 chapters.

    Module A holds chapters a1, a2; module B holds b1. A quiz lives in a1.
    """
    course = make_course(teacher=trainer)
    h = auth(trainer)
    mod_a = client.post(f"/api/courses/{course['id']}/modules", json={"title": "A"}, headers=h).json()["data"]
    mod_b = client.post(f"/api/courses/{course['id']}/modules", json={"title": "B"}, headers=h).json()["data"]
    a1 = client.post(f"/api/modules/{mod_a['id']}/chapters", json={"title": "a1"}, headers=h).json()["data"]
    a2 = client.post(f"/api/modules/{mod_a['id']}/chapters", json={"title": "a2"}, headers=h).json()["data"]
    b1 = client.post(f"/api/modules/{mod_b['id']}/chapters", json={"title": "b1"}, headers=h).json()["data"]
    quiz = client.post(
        f"/api/chapters/{a1['id']}/content",
        json={"title": "Quiz", "content_type": "quiz", "content_data": QUIZ_DATA},
        headers=h,
    ).json()["data"]
    return {"course": course, "modules": [mod_a, mod_b], "chapters": [a1, a2, b1], "quiz": quiz}


@pytest.fixture
def enroll(client, admin):
    def _enroll(student_user, course_id):
        r = client.post("/api/enrollments", json={"student_id": student_user.id, "course_id": course_id},
                        headers=auth(admin))
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _enroll
