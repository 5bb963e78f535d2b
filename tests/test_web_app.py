"""Tests for the FastAPI web interface."""

from bm_tutor.exceptions import UpstreamFailure

from conftest import FIVE_ITEM_QUIZ, make_item, make_quiz_json


# ── Health ───────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health_ok(self, test_client):
        resp = test_client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"]


# ── POST /api/ingest ─────────────────────────────────────────────────────────


class TestIngest:
    def test_ingest_text(self, test_client):
        resp = test_client.post("/api/ingest", json={
            "subject": "BM",
            "year": 4,
            "source": "Nota Unit 7",
            "text": "Simpulan bahasa ialah ungkapan yang maknanya tersirat.",
        })
        assert resp.status_code == 200
        assert resp.json() == {"insertedCount": 1, "totalChunks": 1, "errors": []}

    def test_text_too_short(self, test_client):
        resp = test_client.post("/api/ingest", json={
            "year": 4, "source": "Nota", "text": "pendek",
        })
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("text:")

    def test_malformed_json_body(self, test_client):
        resp = test_client.post("/api/ingest", content=b"{not json",
                                headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert set(resp.json()) == {"error"}

    def test_year_out_of_range(self, test_client):
        resp = test_client.post("/api/ingest", json={
            "year": 9, "source": "Nota", "text": "Isi yang cukup panjang.",
        })
        assert resp.status_code == 400
        assert "year" in resp.json()["error"]


# ── GET /api/topics ─────────────────────────────────────────────────────────


class TestTopics:
    def test_topics(self, test_client):
        resp = test_client.get("/api/topics", params={"subject": "BM", "year": 3})
        assert resp.status_code == 200
        assert resp.json()["topics"] == [
            {"key": "part 1", "label": "Part 1"},
            {"key": "part 2", "label": "Part 2"},
            {"key": "unit 3", "label": "Unit 3"},
        ]

    def test_empty_scope(self, test_client):
        resp = test_client.get("/api/topics", params={"subject": "BM", "year": 1})
        assert resp.json() == {"topics": []}

    def test_missing_year(self, test_client):
        resp = test_client.get("/api/topics", params={"subject": "BM"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "year: Field required"}


# ── POST /api/quiz and /api/quiz/submit ──────────────────────────────────────


class TestQuiz:
    def test_generate_and_submit(self, test_client, completion):
        completion.queue(make_quiz_json(items=FIVE_ITEM_QUIZ), "CORRECT", "CORRECT")

        resp = test_client.post("/api/quiz", json={
            "childId": "aina", "year": 3, "topic": "Kata berlawan", "count": 5,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["quiz"]["items"]) == 5
        assert "requiresPassage" in body["quiz"]["items"][0]

        resp = test_client.post("/api/quiz/submit", json={
            "attemptId": body["attemptId"],
            "answers": {"q1": "besar", "q2": "tinggi", "q3": "sejuk",
                        "q4": "rajin bekerja", "q5": "gembira"},
        })
        assert resp.status_code == 200
        report = resp.json()
        assert (report["score"], report["total"], report["percentage"]) == (4, 5, 80)
        assert report["results"][1]["isCorrect"] is False
        assert report["results"][1]["correctAnswer"] == "rendah"

    def test_count_out_of_range(self, test_client):
        resp = test_client.post("/api/quiz", json={
            "childId": "aina", "year": 3, "topic": "Peribahasa", "count": 20,
        })
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("count:")
        assert "detail" not in resp.json()

    def test_generation_failure_is_502(self, test_client, completion):
        unanchored = make_quiz_json(items=[make_item(
            "q1", question="Berdasarkan petikan, siapakah Ali?", requires_passage=True,
        )])
        completion.queue(unanchored, unanchored)

        resp = test_client.post("/api/quiz", json={
            "childId": "aina", "year": 3, "topic": "Pemahaman",
        })
        assert resp.status_code == 502
        assert "passage" in resp.json()["error"]

    def test_submit_unknown_attempt(self, test_client):
        resp = test_client.post("/api/quiz/submit", json={
            "attemptId": "0" * 32, "answers": {},
        })
        assert resp.status_code == 404


# ── POST /api/tutor ──────────────────────────────────────────────────────────


class TestTutor:
    def test_reply(self, test_client, completion):
        completion.queue("Kata adjektif menerangkan sifat.")
        resp = test_client.post("/api/tutor", json={
            "childId": "aina", "year": 3, "message": "Apa itu kata adjektif?",
            "topicKey": "unit 3",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["reply"] == "Kata adjektif menerangkan sifat."
        assert body["sources"][0]["source"] == "Nota Unit 3 (pasted 12 Mac)"

    def test_unknown_language_mode(self, test_client):
        resp = test_client.post("/api/tutor", json={
            "childId": "aina", "year": 3, "message": "Hai", "languageMode": "FR",
        })
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("languageMode:")

    def test_upstream_failure_is_502(self, test_client, completion):
        completion.queue(UpstreamFailure("connection refused", service="completion"))
        resp = test_client.post("/api/tutor", json={
            "childId": "aina", "year": 3, "message": "Hai cikgu",
        })
        assert resp.status_code == 502
        assert resp.json()["error"].startswith("completion:")


# ── GET /api/progress ────────────────────────────────────────────────────────


class TestProgress:
    def test_lists_attempts(self, test_client, completion):
        completion.queue(make_quiz_json())
        test_client.post("/api/quiz", json={"childId": "aina", "year": 3, "topic": "Peribahasa"})

        resp = test_client.get("/api/progress")
        assert resp.status_code == 200
        attempts = resp.json()["attempts"]
        assert len(attempts) == 1
        assert attempts[0]["childId"] == "aina"
        assert attempts[0]["score"] == 0

    def test_empty(self, test_client):
        assert test_client.get("/api/progress").json() == {"attempts": []}
