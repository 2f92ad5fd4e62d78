"""
In-process HTTP tests for the question import API.
"""

import json

import pytest
from fastapi.testclient import TestClient

from app import config
from app.database import IMPORT_BATCHES_COLLECTION, get_database
from app.deps import get_current_user, get_import_actor
from app.models.user import User
from app.services import extraction
from main import app

from conftest import StubChat, make_pdf, stub_factory

API = "/api/v1/questions/import"

CSV_BODY = (
    "Question (Marathi),Option A,Option B,Option C,Option D,Correct Answer,Marks\n"
    "पहिला प्रश्न,1,2,3,4,B,3\n"
    "दुसरा प्रश्न,a,b,c,d,0,1\n"
).encode("utf-8")


@pytest.fixture
def client(fake_db, teacher):
    app.dependency_overrides[get_database] = lambda: fake_db
    app.dependency_overrides[get_import_actor] = lambda: teacher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def paper_pdf(sample_paper_text):
    return make_pdf(sample_paper_text)


def _upload_csv(client, **data):
    form = {"subjectSlug": "scholarship"}
    form.update(data)
    return client.post(f"{API}/csv", files={"file": ("questions.csv", CSV_BODY, "text/csv")}, data=form)


class TestCsvImport:
    def test_csv_import_creates_draft_batch(self, client, fake_db):
        response = _upload_csv(client)
        assert response.status_code == 200
        body = response.json()
        assert body["questionsCount"] == 2
        assert body["batchName"] == "Import from questions.csv"
        assert body["questions"][0]["correctAnswer"] == 1
        assert body["questions"][0]["marks"] == 3
        assert "parsingErrors" not in body["questions"][0]

        stored = fake_db[IMPORT_BATCHES_COLLECTION].docs[0]
        assert stored["status"] == "draft"
        assert stored["metadata"]["extractionMethod"] == "csv"

    @pytest.mark.parametrize("subject", ["english", "information-technology"])
    def test_marathi_sheet_is_clean_under_any_subject(self, client, subject):
        response = _upload_csv(client, subjectSlug=subject)
        assert response.status_code == 200
        for question in response.json()["questions"]:
            assert "parsingErrors" not in question

    def test_english_only_rows_keep_their_text(self, client):
        body = b"Question (English),Option A,Option B,Option C,Option D\nWhat is 2 + 2?,3,4,5,6\n"
        response = client.post(
            f"{API}/csv",
            files={"file": ("english.csv", body, "text/csv")},
            data={"subjectSlug": "english"},
        )
        assert response.status_code == 200
        question = response.json()["questions"][0]
        assert question["questionTextMr"] == "What is 2 + 2?"
        assert question["questionTextEn"] == "What is 2 + 2?"
        assert question["parsingErrors"] == ["Missing question text (Marathi)"]

    def test_oversized_upload_is_rejected(self, client, fake_db, monkeypatch):
        monkeypatch.setattr(config, "MAX_UPLOAD_MB", 0)
        response = _upload_csv(client)
        assert response.status_code == 400
        assert response.json()["detail"] == "File too large. Maximum size is 0MB"
        assert fake_db[IMPORT_BATCHES_COLLECTION].docs == []

    def test_invalid_subject_is_rejected(self, client):
        response = _upload_csv(client, subjectSlug="astrology")
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_file_is_rejected(self, client):
        response = client.post(f"{API}/csv", data={"subjectSlug": "scholarship"})
        assert response.status_code == 400

    def test_wrong_file_type_is_rejected(self, client):
        response = client.post(
            f"{API}/csv",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            data={"subjectSlug": "english"},
        )
        assert response.status_code == 400

    def test_sheet_without_question_text_is_rejected(self, client):
        body = b"Question (Marathi),Option A\n,x\n"
        response = client.post(
            f"{API}/csv",
            files={"file": ("blank.csv", body, "text/csv")},
            data={"subjectSlug": "scholarship"},
        )
        assert response.status_code == 400
        assert "No valid questions found" in response.json()["detail"]


class TestPdfImport:
    def test_legacy_import(self, client, paper_pdf):
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "scholarship", "useAI": "false", "batchName": "Paper I"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["useAI"] is False
        assert body["batchName"] == "Paper I"
        assert body["questionsCount"] == 2
        assert body["questions"][1]["options"] == ["Venus", "Mars", "Jupiter", "Saturn"]
        assert body["questions"][0]["marks"] == 2
        assert body["metadata"]["extractionMethod"] == "legacy"
        assert body["metadata"]["progress"] == ["processing", "extracting", "complete"]

    def test_legacy_import_applies_answer_key(self, client, paper_pdf):
        response = client.post(
            f"{API}/pdf",
            files={
                "pdf": ("paper.pdf", paper_pdf, "application/pdf"),
                "answerKey": ("key.pdf", make_pdf("1. B\n2. B"), "application/pdf"),
            },
            data={"subjectSlug": "scholarship", "useAI": "false"},
        )
        assert response.status_code == 200
        body = response.json()
        assert [q["correctAnswer"] for q in body["questions"]] == [1, 1]
        assert body["metadata"]["hasAnswerKey"] is True

    def test_unknown_model_is_rejected_without_ai_call(self, client, paper_pdf, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(extraction, "LlmChat", stub_factory("{}"))
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "scholarship", "aiModel": "gpt-5-nonexistent"},
        )
        assert response.status_code == 400
        assert "gemini-2.5-flash" in response.json()["detail"]
        assert StubChat.instances == []

    def test_ai_import(self, client, paper_pdf, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        ai_response = {
            "questions": [
                {"number": 1, "text_mr": "What is 2 + 2?", "options": ["3", "4", "5", "6"], "correct_answers": [1]},
            ],
            "metadata": {"paper_number": "I"},
        }
        monkeypatch.setattr(extraction, "LlmChat", stub_factory(json.dumps(ai_response)))
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "scholarship", "aiModel": "gemini-2.5-pro"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["useAI"] is True
        assert body["questions"][0]["correctAnswer"] == 1
        assert body["metadata"]["aiModel"] == "gemini-2.5-pro"
        assert body["metadata"]["extractionMetadata"]["paper_number"] == "I"
        assert body["metadata"]["progress"] == ["processing", "extracting", "complete"]
        assert "Read all questions carefully" not in StubChat.instances[0].messages[0]

    def test_ai_english_only_question_keeps_its_text(self, client, paper_pdf, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        ai_response = {"questions": [{"number": 1, "text_en": "Name the red planet.", "type": "short_answer"}]}
        monkeypatch.setattr(extraction, "LlmChat", stub_factory(json.dumps(ai_response)))
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "english", "scholarshipMode": "false"},
        )
        assert response.status_code == 200
        question = response.json()["questions"][0]
        assert question["questionTextMr"] == "Name the red planet."
        assert question["parsingErrors"] == ["Missing question text (Marathi)"]

    def test_ai_without_credential_falls_back_to_legacy(self, client, paper_pdf):
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "scholarship"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["useAI"] is False
        assert "fallbackReason" in body["metadata"]

    def test_malformed_ai_output_is_bad_gateway(self, client, paper_pdf, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(extraction, "LlmChat", stub_factory("I could not read this paper"))
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.pdf", paper_pdf, "application/pdf")},
            data={"subjectSlug": "scholarship"},
        )
        assert response.status_code == 502
        assert response.json()["code"] == "EXTRACTION_ERROR"

    def test_pdf_without_text_is_a_parse_error(self, client):
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("scan.pdf", make_pdf(""), "application/pdf")},
            data={"subjectSlug": "scholarship", "useAI": "false"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "PARSE_ERROR"

    def test_non_pdf_upload_is_rejected(self, client):
        response = client.post(
            f"{API}/pdf",
            files={"pdf": ("paper.docx", b"PK\x03\x04", "application/msword")},
            data={"subjectSlug": "scholarship", "useAI": "false"},
        )
        assert response.status_code == 400


class TestReviewAndBatches:
    def test_review_marks_batch_reviewed(self, client, fake_db):
        batch_id = _upload_csv(client).json()["batchId"]
        edited = [{"questionNumber": 1, "questionTextMr": "सुधारित प्रश्न", "options": ["1", "2", "3", "4"],
                   "correctAnswer": 2, "marks": "4"}]

        response = client.post(f"{API}/review", json={"batchId": batch_id, "questions": edited, "batchName": "Edited"})
        assert response.status_code == 200
        assert response.json() == {"batchId": batch_id, "status": "reviewed", "questionsCount": 1}

        stored = fake_db[IMPORT_BATCHES_COLLECTION].docs[0]
        assert stored["batch_name"] == "Edited"
        assert stored["parsed_questions"][0]["marks"] == 4
        assert stored["parsed_questions"][0]["questionTextMr"] == "सुधारित प्रश्न"

    def test_review_keeps_english_only_edits(self, client, fake_db):
        batch_id = _upload_csv(client, subjectSlug="english").json()["batchId"]
        edited = [{"questionNumber": 1, "questionTextEn": "Edited in English", "questionType": "short_answer"}]

        response = client.post(f"{API}/review", json={"batchId": batch_id, "questions": edited})
        assert response.status_code == 200

        stored = fake_db[IMPORT_BATCHES_COLLECTION].docs[0]["parsed_questions"][0]
        assert stored["questionTextMr"] == "Edited in English"
        assert stored["parsingErrors"] == ["Missing question text (Marathi)"]

    def test_review_of_committed_batch_conflicts(self, client, fake_db):
        batch_id = _upload_csv(client).json()["batchId"]
        fake_db[IMPORT_BATCHES_COLLECTION].docs[0]["status"] = "committed"
        response = client.post(f"{API}/review", json={"batchId": batch_id, "questions": [{"questionTextMr": "Q"}]})
        assert response.status_code == 409
        assert fake_db[IMPORT_BATCHES_COLLECTION].docs[0]["status"] == "committed"

    def test_review_of_unknown_batch_is_not_found(self, client):
        response = client.post(f"{API}/review", json={"batchId": "missing", "questions": [{"questionTextMr": "Q"}]})
        assert response.status_code == 404

    def test_review_with_empty_questions_is_rejected(self, client):
        batch_id = _upload_csv(client).json()["batchId"]
        response = client.post(f"{API}/review", json={"batchId": batch_id, "questions": []})
        assert response.status_code == 400

    def test_review_by_other_teacher_is_forbidden(self, client, other_teacher):
        batch_id = _upload_csv(client).json()["batchId"]
        app.dependency_overrides[get_import_actor] = lambda: other_teacher
        response = client.post(f"{API}/review", json={"batchId": batch_id, "questions": [{"questionTextMr": "Q"}]})
        assert response.status_code == 403

    def test_list_and_get_batches(self, client):
        batch_id = _upload_csv(client).json()["batchId"]

        listed = client.get(f"{API}/batches").json()
        assert [b["batchId"] for b in listed] == [batch_id]
        assert listed[0]["questionsCount"] == 2

        batch = client.get(f"{API}/batches/{batch_id}").json()
        assert batch["subjectSlug"] == "scholarship"
        assert len(batch["parsedQuestions"]) == 2

        assert client.get(f"{API}/batches", params={"status": "reviewed"}).json() == []
        assert client.get(f"{API}/batches/unknown").status_code == 404


class TestAccess:
    def test_ai_models_lists_catalog_with_availability(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        body = client.get(f"{API}/ai-models").json()
        assert body["defaultModel"] == "gemini-2.5-flash"
        assert all(m["available"] for m in body["models"])

    def test_student_role_is_forbidden(self, fake_db):
        app.dependency_overrides[get_database] = lambda: fake_db
        app.dependency_overrides[get_current_user] = lambda: User(
            user_id="user_student_1", email="s@example.com", name="Student", role="student",
        )
        try:
            response = TestClient(app).get(f"{API}/ai-models")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 403

    def test_session_token_is_required(self, fake_db):
        app.dependency_overrides[get_database] = lambda: fake_db
        try:
            response = TestClient(app).get(f"{API}/batches")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 401

    def test_bearer_session_token_resolves_user(self, fake_db):
        fake_db.user_sessions.docs.append({
            "session_token": "tok_123", "user_id": "user_teacher_9", "expires_at": "2999-01-01T00:00:00+00:00",
        })
        fake_db.users.docs.append({
            "user_id": "user_teacher_9", "email": "t9@example.com", "name": "Teacher", "role": "teacher",
        })
        app.dependency_overrides[get_database] = lambda: fake_db
        try:
            response = TestClient(app).get(f"{API}/batches", headers={"Authorization": "Bearer tok_123"})
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 200
        assert response.json() == []

    def test_expired_session_is_rejected(self, fake_db):
        fake_db.user_sessions.docs.append({
            "session_token": "tok_old", "user_id": "user_teacher_9", "expires_at": "2020-01-01T00:00:00+00:00",
        })
        app.dependency_overrides[get_database] = lambda: fake_db
        try:
            response = TestClient(app).get(f"{API}/batches", headers={"Authorization": "Bearer tok_old"})
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 401

    def test_health(self):
        assert TestClient(app).get("/health").json()["status"] == "healthy"
