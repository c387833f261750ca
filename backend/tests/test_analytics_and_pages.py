"""Tests for the dashboards and the role-gated HTML pages."""

from conftest import PASSWORD, auth
from elearning.models import Role


class TestAnalytics:

    def test_admin_totals(self, client, admin, sub_admin, student, course_tree, make_course, enroll):
        cid = course_tree["course"]["id"]
        make_course(title="Unused", is_active=False)
        enroll(student, cid)
        for ch in course_tree["chapters"]:
            client.post("/api/progress", json={"chapter_id": ch["id"]}, headers=auth(student))

        data = client.get("/api/analytics/admin", headers=auth(sub_admin)).json()["data"]
        assert data["users_by_role"] == {"ADMIN": 1, "SUB_ADMIN": 1, "TRAINER": 1, "STUDENT": 1}
        assert data["total_users"] == 4
        assert (data["total_courses"], data["active_courses"]) == (2, 1)
        assert (data["total_enrollments"], data["completed_enrollments"], data["completion_rate"]) == (1, 1, 100)

    def test_teacher_dashboard(self, client, trainer, student, make_user, course_tree, enroll):
        cid = course_tree["course"]["id"]
        other = make_user(Role.STUDENT)
        enroll(student, cid)
        enroll(other, cid)
        a1 = course_tree["chapters"][0]["id"]
        client.post("/api/progress", json={"chapter_id": a1}, headers=auth(student))

        data = client.get("/api/analytics/teacher", headers=auth(trainer)).json()["data"]
        assert data["total_students"] == 2
        course = data["courses"][0]
        assert (course["course_id"], course["enrollments"], course["completed"]) == (cid, 2, 0)
        # one student at 33%, one at 0%
        assert course["average_completion"] == 17
        recent = data["recent_completions"]
        assert [(r["student"]["id"], r["chapter_title"]) for r in recent] == [(student.id, "a1")]

    def test_course_analytics(self, client, admin, trainer, student, make_user, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        qid = course_tree["quiz"]["id"]
        for answers in ({"q1": 1, "q2": 0}, {"q1": 0}):
            client.post("/api/quiz-attempts", json={"content_item_id": qid, "answers": answers}, headers=auth(student))

        data = client.get(f"/api/analytics/courses/{cid}", headers=auth(trainer)).json()["data"]
        assert (data["quiz_attempts"], data["average_quiz_score"], data["pass_rate"]) == (2, 50.0, 50)
        assert [m["module_title"] for m in data["module_stats"]] == ["A", "B"]
        assert client.get(f"/api/analytics/courses/{cid}", headers=auth(admin)).status_code == 200
        other = make_user(Role.TRAINER)
        assert client.get(f"/api/analytics/courses/{cid}", headers=auth(other)).status_code == 403

    def test_student_dashboard(self, client, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        client.post("/api/quiz-attempts", json={"content_item_id": course_tree["quiz"]["id"], "answers": {"q1": 1}},
                    headers=auth(student))
        data = client.get("/api/analytics/student", headers=auth(student)).json()["data"]
        assert (data["enrolled_courses"], data["completed_courses"]) == (1, 0)
        assert data["quiz_stats"] == {"attempts": 1, "passed": 1, "average_score": 50.0}

    def test_role_gates(self, client, student, trainer):
        assert client.get("/api/analytics/teacher", headers=auth(student)).status_code == 403
        assert client.get("/api/analytics/student", headers=auth(trainer)).status_code == 403


class TestPages:

    def test_anonymous_redirected_to_login(self, client):
        r = client.get("/teacher/courses", follow_redirects=False)
        assert r.status_code == 303
        assert r.headers["location"] == "/login?next=/teacher"

    def test_wrong_role_redirected_to_unauthorized(self, client, student):
        r = client.get("/admin", headers=auth(student), follow_redirects=False)
        assert r.status_code == 303
        assert r.headers["location"] == "/unauthorized"
        assert client.get("/unauthorized").status_code == 403

    def test_each_role_reaches_its_dashboard(self, client, admin, sub_admin, trainer, student):
        for user, prefix in ((admin, "/admin"), (sub_admin, "/sub-admin"), (trainer, "/teacher"), (student, "/student")):
            r = client.get(prefix, headers=auth(user))
            assert r.status_code == 200
            assert user.name in r.text

    def test_home_sends_signed_in_user_home(self, client, trainer):
        r = client.get("/", headers=auth(trainer), follow_redirects=False)
        assert r.status_code == 303
        assert r.headers["location"] == "/teacher"
        assert "Sign in" in client.get("/").text

    def test_login_page_and_cookie_session(self, client, student):
        assert 'id="login"' in client.get("/login").text
        client.post("/api/auth/login", json={"email": student.email, "password": PASSWORD})
        assert client.get("/student/progress").status_code == 200
