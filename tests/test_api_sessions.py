import uuid

import pytest
from fastapi.testclient import TestClient

from interview_coach.auth import current_active_user
from interview_coach.db.models.user import User
from interview_coach.main import app

API = "/api/v1"


def _generated_interview(client: TestClient, years: int = 4) -> str:
    r = client.post(f"{API}/interviews/generate", json={
        "job_position": "Backend Developer",
        "job_desc": "Django, PostgreSQL",
        "job_experience": years,
        "seed": 7,
    })
    assert r.status_code == 201, r.text
    return r.json()["mock_id"]


def _new_session(client: TestClient) -> dict:
    r = client.post(f"{API}/sessions/", json={"mock_id": _generated_interview(client)})
    assert r.status_code == 201, r.text
    return r.json()


def _post(client: TestClient, session_id: str, action: str, **kwargs) -> dict:
    r = client.post(f"{API}/sessions/{session_id}/{action}", **kwargs)
    assert r.status_code == 200, r.text
    return r.json()


def test_full_session_over_http(client: TestClient) -> None:
    snapshot = _new_session(client)
    sid = snapshot["session_id"]
    total = snapshot["total_questions"]
    assert snapshot["state"] == "not_started"
    assert snapshot["recognition"] == "client"
    assert total >= 5

    # Nothing may start before the permission check
    r = client.post(f"{API}/sessions/{sid}/start")
    assert r.status_code == 409
    assert r.json()["details"]["state"] == "not_started"

    snapshot = _post(client, sid, "permissions", json={"camera": True, "microphone": False})
    assert snapshot["state"] == "not_started"
    assert snapshot["errors"] == ["Microphone access was denied"]

    snapshot = _post(client, sid, "permissions", json={"camera": True, "microphone": True})
    assert snapshot["state"] == "ready"
    assert snapshot["errors"] == []

    snapshot = _post(client, sid, "start")
    assert snapshot["state"] == "listening"
    assert snapshot["listening"] is True
    assert snapshot["recognition_active"] is True
    assert snapshot["current_index"] == 0

    r = client.get(f"{API}/sessions/{sid}/speech")
    assert r.status_code == 204
    assert r.headers["X-TTS-Provider"] == "silence"
    assert r.headers["X-Clip-Id"]

    snapshot = _post(client, sid, "recognition", json={
        "results": [{"transcript": "I would add an index", "is_final": True}],
    })
    assert snapshot["answer"] == "I would add an index"

    r = client.post(f"{API}/sessions/{sid}/audio", files={"file": ("chunk.webm", b"webm-bytes", "audio/webm")})
    assert r.json() == {"received": 10, "accepted": True}

    snapshot = _post(client, sid, "listening/stop")
    assert snapshot["listening"] is False
    assert snapshot["state"] == "listening"
    assert snapshot["recordings"] == [0]
    # Stopping twice is harmless
    _post(client, sid, "listening/stop")

    r = client.post(f"{API}/sessions/{sid}/audio", files={"file": ("chunk.webm", b"late", "audio/webm")})
    assert r.json()["accepted"] is False

    r = client.get(f"{API}/sessions/{sid}/recordings/0")
    assert r.status_code == 200
    assert r.content == b"webm-bytes"
    assert r.headers["content-type"].startswith("audio/webm")

    r = client.put(f"{API}/sessions/{sid}/transcript", json={"text": "Typed answer about indexes"})
    assert r.json()["answer"] == "Typed answer about indexes"

    snapshot = _post(client, sid, "listening/start")
    assert snapshot["listening"] is True

    r = client.get(f"{API}/sessions/{sid}/results")
    assert r.status_code == 409

    for index in range(1, total):
        snapshot = _post(client, sid, "next")
        assert snapshot["state"] == "listening"
        assert snapshot["current_index"] == index
    snapshot = _post(client, sid, "next")
    assert snapshot["state"] == "results"
    assert snapshot["listening"] is False

    r = client.post(f"{API}/sessions/{sid}/next")
    assert r.status_code == 409

    results = client.get(f"{API}/sessions/{sid}/results").json()
    assert results["session_id"] == sid
    assert len(results["feedback"]) == total
    assert [f["index"] for f in results["feedback"]] == list(range(total))
    assert results["feedback"][0]["transcript"] == "Typed answer about indexes"
    assert 0 <= results["overall_score"] <= 100
    assert results["overall_feedback"]

    r = client.delete(f"{API}/sessions/{sid}")
    assert r.json() == {"success": True, "session_id": sid, "state": "results"}
    assert client.get(f"{API}/sessions/{sid}").status_code == 404


def test_speech_ack_is_accepted_for_the_current_clip(client: TestClient) -> None:
    sid = _new_session(client)["session_id"]
    _post(client, sid, "permissions", json={"camera": True, "microphone": True})
    _post(client, sid, "start")
    clip_id = client.get(f"{API}/sessions/{sid}/speech").headers["X-Clip-Id"]

    snapshot = _post(client, sid, "speech/ended", json={"clip_id": clip_id})
    assert snapshot["speech_clip"] is None
    assert snapshot["state"] == "listening"

    snapshot = _post(client, sid, "speech/ended", json={"clip_id": "stale"})
    assert snapshot["state"] == "listening"


def test_session_requires_a_stored_interview(client: TestClient) -> None:
    r = client.post(f"{API}/sessions/", json={"mock_id": "missing"})
    assert r.status_code == 404

    mock_id = uuid.uuid4().hex
    client.post(f"{API}/interviews/", json={
        "job_position": "QA Engineer", "job_desc": "Playwright", "job_experience": 2,
        "json_mock_resp": "[]", "mock_id": mock_id,
    })
    r = client.post(f"{API}/sessions/", json={"mock_id": mock_id})
    assert r.status_code == 400


def test_sessions_belong_to_their_owner(client: TestClient) -> None:
    sid = _new_session(client)["session_id"]
    other = User(id=2, email="someone@example.com", hashed_password="x", is_active=True,
                 is_superuser=False, is_verified=True, role="user")
    original = app.dependency_overrides[current_active_user]
    app.dependency_overrides[current_active_user] = lambda: other
    try:
        assert client.get(f"{API}/sessions/{sid}").status_code == 404
        assert client.delete(f"{API}/sessions/{sid}").status_code == 404
    finally:
        app.dependency_overrides[current_active_user] = original
    assert client.get(f"{API}/sessions/{sid}").status_code == 200
    client.delete(f"{API}/sessions/{sid}")


def test_server_side_recognition_rejects_client_results(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RECOGNITION_PROVIDER", "whisper")
    sid = _new_session(client)["session_id"]
    _post(client, sid, "permissions", json={"camera": True, "microphone": True})
    snapshot = _post(client, sid, "start")

    assert snapshot["recognition"] == "whisper"
    # No transcription key configured, so answers are typed
    assert snapshot["manual_entry"] is True
    assert snapshot["state"] == "listening"

    r = client.post(f"{API}/sessions/{sid}/recognition", json={"results": [{"transcript": "hi"}]})
    assert r.status_code == 409
    client.delete(f"{API}/sessions/{sid}")
