"""Tests for domains and courses."""

from conftest import auth
from elearning.models import Role


class TestDomains:

    def test_crud_and_course_count(self, client, admin, make_course):
        h = auth(admin)
        r = client.post("/api/domains", json={"name": "Data", "color": "#112233"}, headers=h)
        assert r.status_code == 201
        did = r.json()["data"]["id"]
        make_course(title="Data Analysis Basics", domain_id=did)
        listing = client.get("/api/domains", headers=h).json()["data"]
        assert listing[0]["course_count"] == 1
        r = client.patch(f"/api/domains/{did}", json={"description": "numbers"}, headers=h)
        assert r.json()["data"]["description"] == "numbers"

    def test_duplicate_name_is_case_insensitive(self, client, admin):
        h = auth(admin)
        client.post("/api/domains", json={"name": "Design"}, headers=h)
        assert client.post("/api/domains", json={"name": "design"}, headers=h).status_code == 409

    def test_delete_blocked_while_courses_exist(self, client, admin, make_course):
        h = auth(admin)
        did = client.post("/api/domains", json={"name": "Ops"}, headers=h).json()["data"]["id"]
        course = make_course(domain_id=did)
        assert client.delete(f"/api/domains/{did}", headers=h).status_code == 409
        client.delete(f"/api/courses/{course['id']}", headers=h)
        assert client.delete(f"/api/domains/{did}", headers=h).status_code == 200

    def test_invalid_color(self, client, admin):
        r = client.post("/api/domains", json={"name": "X", "color": "red"}, headers=auth(admin))
        assert r.status_code == 400

    def test_only_admin_writes(self, client, trainer):
        assert client.post("/api/domains", json={"name": "X"}, headers=auth(trainer)).status_code == 403
        assert client.get("/api/domains", headers=auth(trainer)).status_code == 200


class TestCourses:

    def test_slug_from_initials_and_unique_suffix(self, make_course):
        assert make_course(title="Introduction to Machine Learning")["slug"] == "iml"
        assert make_course(title="Intro Machine Learning")["slug"] == "iml-1"
        assert make_course(title="Python")["slug"] == "python"

    def test_teacher_must_be_trainer(self, client, admin, student):
        r = client.post("/api/courses", json={"title": "X", "teacher_id": student.id}, headers=auth(admin))
        assert r.status_code == 400

    def test_unknown_domain(self, client, admin):
        r = client.post("/api/courses", json={"title": "X", "domain_id": 999}, headers=auth(admin))
        assert r.status_code == 400

    def test_listing_is_scoped_by_role(self, client, make_user, trainer, student, sub_admin, make_course):
        other = make_user(Role.TRAINER)
        mine = make_course(title="Mine", teacher=trainer)
        make_course(title="Theirs", teacher=other)
        hidden = make_course(title="Draft", teacher=trainer, is_active=False)

        ids = lambda u: {c["id"] for c in client.get("/api/courses", headers=auth(u)).json()["data"]}
        assert ids(trainer) == {mine["id"], hidden["id"]}
        assert hidden["id"] not in ids(student)
        assert len(ids(student)) == 2
        assert len(ids(sub_admin)) == 3

    def test_detail_requires_access(self, client, course_tree, student, make_user, enroll):
        cid = course_tree["course"]["id"]
        assert client.get(f"/api/courses/{cid}", headers=auth(student)).status_code == 403
        enroll(student, cid)
        r = client.get(f"/api/courses/{cid}", headers=auth(student))
        assert r.status_code == 200
        data = r.json()["data"]
        assert [m["title"] for m in data["modules"]] == ["A", "B"]
        assert [c["title"] for c in data["modules"][0]["chapters"]] == ["a1", "a2"]
        other_trainer = make_user(Role.TRAINER)
        assert client.get(f"/api/courses/{cid}", headers=auth(other_trainer)).status_code == 403

    def test_detail_hides_answers_from_students(self, client, course_tree, student, trainer, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        q = client.get(f"/api/courses/{cid}", headers=auth(student)).json()["data"]["modules"][0]["chapters"][0]["content"][0]
        assert "correct_answer" not in q["content_data"]["questions"][0]
        q = client.get(f"/api/courses/{cid}", headers=auth(trainer)).json()["data"]["modules"][0]["chapters"][0]["content"][0]
        assert q["content_data"]["questions"][0]["correct_answer"] == 1

    def test_update_and_delete(self, client, admin, make_course):
        h = auth(admin)
        course = make_course(title="Old")
        r = client.patch(f"/api/courses/{course['id']}", json={"title": "New", "is_active": False}, headers=h)
        assert r.json()["data"]["title"] == "New"
        assert r.json()["data"]["is_active"] is False
        assert client.delete(f"/api/courses/{course['id']}", headers=h).status_code == 200
        assert client.get(f"/api/courses/{course['id']}", headers=h).status_code == 404

    def test_delete_blocked_by_enrollments(self, client, admin, student, make_course, enroll):
        course = make_course()
        enroll(student, course["id"])
        assert client.delete(f"/api/courses/{course['id']}", headers=auth(admin)).status_code == 409

    def test_trainer_cannot_create_or_edit(self, client, trainer, course_tree):
        h = auth(trainer)
        assert client.post("/api/courses", json={"title": "X"}, headers=h).status_code == 403
        cid = course_tree["course"]["id"]
        assert client.patch(f"/api/courses/{cid}", json={"title": "Y"}, headers=h).status_code == 403
