"""Tests for enrollments and chapter progress."""

from conftest import auth
from elearning.models import Role


class TestEnrollments:

    def test_create_and_duplicate(self, client, admin, student, course_tree):
        h = auth(admin)
        cid = course_tree["course"]["id"]
        r = client.post("/api/enrollments", json={"student_id": student.id, "course_id": cid}, headers=h)
        assert r.status_code == 201
        assert r.json()["data"]["course"]["id"] == cid
        r = client.post("/api/enrollments", json={"student_id": student.id, "course_id": cid}, headers=h)
        assert r.status_code == 409

    def test_inactive_course_and_non_student(self, client, admin, student, trainer, make_course):
        h = auth(admin)
        draft = make_course(title="Draft", is_active=False)
        r = client.post("/api/enrollments", json={"student_id": student.id, "course_id": draft["id"]}, headers=h)
        assert r.status_code == 400
        live = make_course(title="Live")
        r = client.post("/api/enrollments", json={"student_id": trainer.id, "course_id": live["id"]}, headers=h)
        assert r.status_code == 400
        r = client.post("/api/enrollments", json={"student_id": student.id, "course_id": 999}, headers=h)
        assert r.status_code == 404

    def test_bulk_course_ids(self, client, admin, student, make_course, enroll):
        one = make_course(title="One")
        two = make_course(title="Two")
        draft = make_course(title="Draft", is_active=False)
        enroll(student, one["id"])
        body = {"student_id": student.id, "course_ids": [one["id"], two["id"], draft["id"], 999]}
        r = client.post("/api/enrollments", json=body, headers=auth(admin))
        assert r.status_code == 201
        data = r.json()["data"]
        assert [e["course_id"] for e in data["created"]] == [two["id"]]
        assert {s["course_id"]: s["reason"] for s in data["skipped"]} == {
            one["id"]: "already enrolled", draft["id"]: "course is not active", 999: "course not found",
        }

    def test_exactly_one_target(self, client, admin, student):
        body = {"student_id": student.id, "course_id": 1, "course_ids": [1]}
        assert client.post("/api/enrollments", json=body, headers=auth(admin)).status_code == 400
        assert client.post("/api/enrollments", json={"student_id": student.id}, headers=auth(admin)).status_code == 400

    def test_listing_scope(self, client, admin, trainer, student, make_user, course_tree, make_course, enroll):
        other_student = make_user(Role.STUDENT)
        cid = course_tree["course"]["id"]
        elsewhere = make_course(title="Elsewhere")
        enroll(student, cid)
        enroll(other_student, elsewhere["id"])

        assert len(client.get("/api/enrollments", headers=auth(admin)).json()["data"]) == 2
        mine = client.get("/api/enrollments", headers=auth(student)).json()["data"]
        assert [e["course_id"] for e in mine] == [cid]
        r = client.get(f"/api/enrollments?studentId={other_student.id}", headers=auth(student))
        assert r.status_code == 403
        taught = client.get("/api/enrollments", headers=auth(trainer)).json()["data"]
        assert [e["student_id"] for e in taught] == [student.id]
        r = client.get(f"/api/enrollments?courseId={elsewhere['id']}", headers=auth(trainer))
        assert r.status_code == 403

    def test_delete(self, client, admin, student, course_tree, enroll):
        e = enroll(student, course_tree["course"]["id"])
        assert client.delete(f"/api/enrollments/{e['id']}", headers=auth(admin)).status_code == 200
        assert client.delete(f"/api/enrollments/{e['id']}", headers=auth(admin)).status_code == 404


class TestProgress:

    def test_mark_is_idempotent_and_completes_course(self, client, student, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        h = auth(student)
        a1, a2, b1 = [c["id"] for c in course_tree["chapters"]]

        first = client.post("/api/progress", json={"chapter_id": a1}, headers=h).json()["data"]
        again = client.post("/api/progress", json={"chapter_id": a1}, headers=h).json()["data"]
        assert first["id"] == again["id"]

        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert (p["completed_chapters"], p["total_chapters"], p["percentage"]) == (1, 3, 33)
        assert p["completed_at"] is None

        for ch in (a2, b1):
            client.post("/api/progress", json={"chapter_id": ch}, headers=h)
        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert p["percentage"] == 100
        assert p["completed_at"] is not None

        assert client.delete(f"/api/progress/{b1}", headers=h).status_code == 200
        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert p["completed_at"] is None
        assert p["completed_chapter_ids"] == sorted([a1, a2])

    def test_must_be_enrolled(self, client, student, course_tree):
        a1 = course_tree["chapters"][0]["id"]
        r = client.post("/api/progress", json={"chapter_id": a1}, headers=auth(student))
        assert r.status_code == 403

    def test_only_students_mark(self, client, trainer, course_tree):
        a1 = course_tree["chapters"][0]["id"]
        assert client.post("/api/progress", json={"chapter_id": a1}, headers=auth(trainer)).status_code == 403

    def test_all_courses_summary(self, client, student, course_tree, make_course, enroll):
        enroll(student, course_tree["course"]["id"])
        enroll(student, make_course(title="Empty")["id"])
        data = client.get("/api/progress", headers=auth(student)).json()["data"]
        assert sorted(p["total_chapters"] for p in data) == [0, 3]

    def test_staff_and_trainer_read_student_progress(self, client, admin, trainer, make_user, student, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        r = client.get(f"/api/progress?studentId={student.id}&courseId={cid}", headers=auth(trainer))
        assert r.status_code == 200
        assert client.get("/api/progress", headers=auth(trainer)).status_code == 400
        other = make_user(Role.TRAINER)
        assert client.get(f"/api/progress?studentId={student.id}", headers=auth(other)).status_code == 403
        assert client.get(f"/api/progress?studentId={student.id}", headers=auth(admin)).status_code == 200

    def test_trainer_reads_progress_only_in_own_courses(self, client, admin, trainer, make_user, student,
                                                        course_tree, make_course, enroll):
        own = course_tree["course"]["id"]
        foreign = make_course(title="Data Engineering", teacher=make_user(Role.TRAINER))["id"]
        module = client.post(f"/api/courses/{foreign}/modules", json={"title": "X"}, headers=auth(admin)).json()["data"]
        enroll(student, own)
        enroll(student, foreign)
        h = auth(trainer)
        q = f"studentId={student.id}"

        assert client.get(f"/api/progress?{q}&courseId={foreign}", headers=h).status_code == 403
        assert client.get(f"/api/courses/{foreign}/module-progress?{q}", headers=h).status_code == 403
        assert client.get(f"/api/modules/{module['id']}/progress?{q}", headers=h).status_code == 403

        summaries = client.get(f"/api/progress?{q}", headers=h).json()["data"]
        assert [s["course_id"] for s in summaries] == [own]
        assert client.get(f"/api/courses/{own}/module-progress?{q}", headers=h).status_code == 200
        everything = client.get(f"/api/progress?{q}", headers=auth(admin)).json()["data"]
        assert {s["course_id"] for s in everything} == {own, foreign}

    def test_completion_follows_chapter_changes(self, client, trainer, student, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        h = auth(student)
        a1, a2, b1 = [c["id"] for c in course_tree["chapters"]]
        for ch in (a1, a2):
            client.post("/api/progress", json={"chapter_id": ch}, headers=h)

        assert client.delete(f"/api/chapters/{b1}", headers=auth(trainer)).status_code == 200
        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert p["percentage"] == 100
        assert p["completed_at"] is not None

        mod_b = course_tree["modules"][1]
        r = client.post(f"/api/modules/{mod_b['id']}/chapters", json={"title": "b2"}, headers=auth(trainer))
        assert r.status_code == 201
        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert (p["completed_chapters"], p["total_chapters"]) == (2, 3)
        assert p["completed_at"] is None

    def test_deleting_unfinished_module_completes_course(self, client, trainer, student, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        h = auth(student)
        for ch in course_tree["chapters"][:2]:
            client.post("/api/progress", json={"chapter_id": ch["id"]}, headers=h)

        mod_b = course_tree["modules"][1]
        assert client.delete(f"/api/modules/{mod_b['id']}", headers=auth(trainer)).status_code == 200
        p = client.get(f"/api/progress?courseId={cid}", headers=h).json()["data"]
        assert (p["percentage"], p["total_chapters"]) == (100, 2)
        assert p["completed_at"] is not None

    def test_module_progress(self, client, student, course_tree, enroll):
        cid = course_tree["course"]["id"]
        enroll(student, cid)
        h = auth(student)
        mod_a, mod_b = course_tree["modules"]
        client.post("/api/progress", json={"chapter_id": course_tree["chapters"][0]["id"]}, headers=h)

        one = client.get(f"/api/modules/{mod_a['id']}/progress", headers=h).json()["data"]
        assert (one["completed_chapters"], one["total_chapters"], one["percentage"]) == (1, 2, 50)
        assert one["last_activity_at"] is not None

        rows = client.get(f"/api/courses/{cid}/module-progress", headers=h).json()["data"]
        assert [(m["module_id"], m["percentage"]) for m in rows] == [(mod_a["id"], 50), (mod_b["id"], 0)]

    def test_module_stats(self, client, trainer, student, make_user, course_tree, enroll):
        cid = course_tree["course"]["id"]
        other = make_user(Role.STUDENT)
        enroll(student, cid)
        enroll(other, cid)
        a1, a2, _ = [c["id"] for c in course_tree["chapters"]]
        for ch in (a1, a2):
            client.post("/api/progress", json={"chapter_id": ch}, headers=auth(student))
        client.post("/api/progress", json={"chapter_id": a1}, headers=auth(other))

        stats = client.get(f"/api/courses/{cid}/module-stats", headers=auth(trainer)).json()["data"]
        a, b = stats
        assert (a["completed"], a["in_progress"], a["not_started"]) == (1, 1, 0)
        assert (b["completed"], b["in_progress"], b["not_started"]) == (0, 0, 2)
        assert client.get(f"/api/courses/{cid}/module-stats", headers=auth(student)).status_code == 403
