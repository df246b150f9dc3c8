import uuid

from fastapi.testclient import TestClient

API = "/api/v1"


def _interview_payload(**overrides) -> dict:
    payload = {
        "job_position": "Backend Developer",
        "job_desc": "Python, FastAPI, PostgreSQL",
        "job_experience": 4,
        "json_mock_resp": "[]",
        "mock_id": uuid.uuid4().hex,
    }
    payload.update(overrides)
    return payload


def test_healthz_and_echo(anon_client: TestClient) -> None:
    r = anon_client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert "live_sessions" in r.json()

    r = anon_client.get(f"{API}/echo", params={"msg": "ping"})
    assert r.json() == {"message": "ping"}


def test_interviews_require_authentication(anon_client: TestClient) -> None:
    r = anon_client.get(f"{API}/interviews/")
    assert r.status_code == 401


def test_create_list_and_delete_interview(client: TestClient) -> None:
    payload = _interview_payload()
    r = client.post(f"{API}/interviews/", json=payload)
    assert r.status_code == 201, r.text
    assert r.json() == {"success": True, "message": "Mock interview saved successfully", "mock_id": payload["mock_id"]}

    r = client.get(f"{API}/interviews/", params={"mock_id": payload["mock_id"]})
    interviews = r.json()["interviews"]
    assert len(interviews) == 1
    assert interviews[0]["created_by"] == "tester@example.com"
    assert interviews[0]["job_experience"] == 4

    r = client.get(f"{API}/interviews/", params={"created_by": "tester@example.com"})
    assert payload["mock_id"] in [i["mock_id"] for i in r.json()["interviews"]]

    client.post(f"{API}/question-answers/", json={
        "mock_id": payload["mock_id"], "question": "What is a migration?", "answer": "A versioned schema change.",
    })
    r = client.delete(f"{API}/interviews/{payload['mock_id']}")
    assert r.status_code == 200
    assert r.json()["deleted_questions"] == 1

    r = client.delete(f"{API}/interviews/{payload['mock_id']}")
    assert r.status_code == 404
    assert r.json()["error"] == "resource_not_found"


def test_duplicate_mock_id_conflicts(client: TestClient) -> None:
    payload = _interview_payload()
    assert client.post(f"{API}/interviews/", json=payload).status_code == 201
    r = client.post(f"{API}/interviews/", json=payload)
    assert r.status_code == 409
    assert r.json()["details"]["rule"] == "unique_mock_id"


def test_blank_fields_are_rejected(client: TestClient) -> None:
    r = client.post(f"{API}/interviews/", json=_interview_payload(job_position="   "))
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "validation_failed"
    assert any("job_position" in e["field"] for e in body["details"]["field_errors"])

    r = client.post(f"{API}/interviews/", json=_interview_payload(job_experience=-1))
    assert r.status_code == 400


def test_generate_stores_fallback_questions(client: TestClient) -> None:
    r = client.post(f"{API}/interviews/generate", json={
        "job_position": "Frontend Developer",
        "job_desc": "React, TypeScript",
        "job_experience": 1,
        "seed": 42,
    })
    assert r.status_code == 201, r.text
    generated = r.json()
    assert generated["source"] == "fallback"
    assert generated["save_errors"] == 0
    assert generated["saved_questions"] >= 5

    r = client.get(f"{API}/question-answers/", params={"mock_id": generated["mock_id"]})
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == generated["saved_questions"]
    assert body["experience_level"] == 1
    assert [q["id"] for q in body["questions"]] == sorted(q["id"] for q in body["questions"])
    assert body["questions"][0]["question"].startswith("For a junior developer, ")

    r = client.get(f"{API}/interviews/", params={"mock_id": generated["mock_id"]})
    assert r.json()["interviews"][0]["json_mock_resp"].startswith("[")


def test_question_answers_are_worded_for_the_interview_level(client: TestClient) -> None:
    payload = _interview_payload(job_experience=4)
    client.post(f"{API}/interviews/", json=payload)

    r = client.post(f"{API}/question-answers/", json={
        "mock_id": payload["mock_id"], "question": "Tell me about testing", "answer": "Unit, integration and e2e.",
    })
    assert r.status_code == 201
    assert r.json()["data"]["question"] == "Tell me about testing"

    r = client.get(f"{API}/question-answers/", params={"mock_id": payload["mock_id"]})
    assert r.json()["questions"][0]["question"] == "As a mid-level developer, tell me about testing"


def test_question_answers_for_unknown_interview(client: TestClient) -> None:
    r = client.get(f"{API}/question-answers/", params={"mock_id": "does-not-exist"})
    assert r.status_code == 404

    r = client.post(f"{API}/question-answers/", json={"mock_id": "x", "question": "", "answer": "a"})
    assert r.status_code == 400


def test_question_answer_needs_an_existing_interview(client: TestClient) -> None:
    r = client.post(f"{API}/question-answers/", json={
        "mock_id": "no-such-interview", "question": "What is a deadlock?", "answer": "Two waits on each other.",
    })
    assert r.status_code == 404
    assert r.json()["error"] == "resource_not_found"
