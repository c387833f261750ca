"""Tests for server-side quiz and exam scoring."""

from conftest import EXAM_DATA, auth
from elearning.services import QuizService, round_half_up


def _submit(client, user, item_id, answers):
    return client.post("/api/quiz-attempts", json={"content_item_id": item_id, "answers": answers}, headers=auth(user))


class TestScoring:

    def test_round_half_up(self):
        assert round_half_up(32.5) == 33
        assert round_half_up(66.666) == 67
        assert round_half_up(50.0) == 50

    def test_unanswered_counts_as_wrong(self):
        data = {"questions": [
            {"id": "a", "correct_answer": 0}, {"id": "b", "correct_answer": 1}, {"id": "c", "correct_answer": 2},
        ]}
        score, correct, results = QuizService.score(data, {"a": 0})
        assert (score, correct) == (33, 1)
        assert [r["correct"] for r in results] == [True, False, False]


class TestQuizAttempts:

    def test_submit_scores_and_reveals_quiz_answers(self, client, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        qid = course_tree["quiz"]["id"]
        r = _submit(client, student, qid, {"q1": 1, "q2": 2})
        assert r.status_code == 201
        data = r.json()["data"]
        assert (data["score"], data["passed"], data["correct_count"]) == (50, True, 1)
        assert data["results"][1]["correct_answer"] == 0
        assert data["results"][0]["explanation"] == "basic sum"

        data = _submit(client, student, qid, {}).json()["data"]
        assert (data["score"], data["passed"]) == (0, False)

    def test_best_and_listing(self, client, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        qid = course_tree["quiz"]["id"]
        assert client.get(f"/api/quiz-attempts/best?contentItemId={qid}", headers=auth(student)).json()["data"] is None
        _submit(client, student, qid, {"q1": 0})
        best_id = _submit(client, student, qid, {"q1": 1, "q2": 0}).json()["data"]["id"]
        _submit(client, student, qid, {"q1": 1, "q2": 0})

        best = client.get(f"/api/quiz-attempts/best?contentItemId={qid}", headers=auth(student)).json()["data"]
        assert best["id"] == best_id
        assert best["score"] == 100
        listing = client.get(f"/api/quiz-attempts?contentItemId={qid}", headers=auth(student)).json()["data"]
        assert len(listing) == 3

        mine = client.get("/api/quiz-attempts/mine", headers=auth(student)).json()["data"]
        assert {m["course_title"] for m in mine} == {course_tree["course"]["title"]}
        assert mine[0]["chapter_title"] == "a1"

    def test_exam_limits_attempts_and_hides_answers(self, client, trainer, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        a2 = course_tree["chapters"][1]["id"]
        exam = client.post(f"/api/chapters/{a2}/content", json={"title": "Final", "content_type": "exam", "content_data": EXAM_DATA},
                           headers=auth(trainer)).json()["data"]
        first = _submit(client, student, exam["id"], {"e1": 0, "e2": 0}).json()["data"]
        assert (first["score"], first["passed"]) == (50, False)
        assert "correct_answer" not in first["results"][0]
        assert _submit(client, student, exam["id"], {"e1": 0, "e2": 1}).json()["data"]["passed"] is True
        r = _submit(client, student, exam["id"], {"e1": 0, "e2": 1})
        assert r.status_code == 409

    def test_default_passing_score(self, client, trainer, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        a2 = course_tree["chapters"][1]["id"]
        data = {"type": "quiz", "questions": [
            {"id": "x", "question": "?", "options": ["a", "b"], "correct_answer": 0},
            {"id": "y", "question": "?", "options": ["a", "b"], "correct_answer": 0},
        ]}
        quiz = client.post(f"/api/chapters/{a2}/content", json={"title": "No bar", "content_type": "quiz", "content_data": data},
                           headers=auth(trainer)).json()["data"]
        r = _submit(client, student, quiz["id"], {"x": 0})
        assert r.json()["data"]["passing_score"] == 70
        assert r.json()["data"]["passed"] is False

    def test_not_enrolled(self, client, student, course_tree):
        assert _submit(client, student, course_tree["quiz"]["id"], {"q1": 1}).status_code == 403

    def test_text_item_is_not_scored(self, client, trainer, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        a2 = course_tree["chapters"][1]["id"]
        text = client.post(f"/api/chapters/{a2}/content", json={"title": "Read", "content_type": "text",
                           "content_data": {"type": "text", "content": "words"}}, headers=auth(trainer)).json()["data"]
        assert _submit(client, student, text["id"], {}).status_code == 400

    def test_unknown_question_id(self, client, student, course_tree, enroll):
        enroll(student, course_tree["course"]["id"])
        r = _submit(client, student, course_tree["quiz"]["id"], {"q1": 1, "zz": 0})
        assert r.status_code == 400
        assert r.json()["details"] == {"unknown": ["zz"]}

    def test_only_students_submit(self, client, trainer, course_tree):
        assert _submit(client, trainer, course_tree["quiz"]["id"], {"q1": 1}).status_code == 403
