"""
Tests for the Proctoring API endpoints
"""

import base64
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

T0 = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


def ts(seconds: float) -> str:
    return (T0 + timedelta(seconds=seconds)).isoformat()


def _start(client, **config):
    body = {"candidate_id": "cand-api"}
    if config:
        body["config"] = config
    response = client.post("/api/proctoring/sessions", json=body)
    assert response.status_code == 200
    return response.json()["session_id"]


def _face(dx=0.0):
    return {"33": [0.40, 0.40], "263": [0.60, 0.40], "1": [0.50 + dx, 0.40]}


class TestHealth:
    """Tests for service endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_models_status(self, client):
        response = client.get("/api/proctoring/models-status")

        assert response.status_code == 200
        assert set(response.json()) == {"yolo_model", "mediapipe"}


class TestSessionEndpoints:
    """Tests for the session lifecycle over HTTP"""

    def test_start_session_returns_config(self, client):
        response = client.post("/api/proctoring/sessions", json={
            "candidate_id": "cand-api",
            "config": {"noFaceSeconds": 3}
        })

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "monitoring"
        assert data["config"]["noFaceSeconds"] == 3

    def test_invalid_config_rejected(self, client):
        response = client.post("/api/proctoring/sessions", json={
            "candidate_id": "cand-api",
            "config": {"suspiciousClasses": []}
        })

        assert response.status_code == 422

    def test_unknown_session(self, client):
        response = client.post("/api/proctoring/sessions/PRC_NOPE/audio", json={"level": 80})

        assert response.status_code == 404
        assert response.json()["detail"] == "Session not found"

    def test_face_absence_and_object_events(self, client):
        session_id = _start(client)

        for t in range(11):
            response = client.post(f"/api/proctoring/sessions/{session_id}/face", json={
                "faces": [],
                "timestamp": ts(t)
            })
            assert response.status_code == 200

        events = response.json()["events"]
        assert [e["type"] for e in events] == ["no_face_detected"]
        assert events[0]["timestamp"] == ts(0)
        assert events[0]["message"] == "No face detected"

        response = client.post(f"/api/proctoring/sessions/{session_id}/objects", json={
            "detections": [{"class": "cell phone", "score": 0.88, "bbox": [10, 10, 50, 90]}],
            "timestamp": ts(12)
        })
        assert response.status_code == 200
        assert response.json()["current_score"] == 75

    def test_looking_away_via_landmarks(self, client):
        session_id = _start(client, lookAwaySeconds=2)

        events = []
        for t in range(3):
            response = client.post(f"/api/proctoring/sessions/{session_id}/face", json={
                "faces": [_face(dx=0.1)],
                "timestamp": ts(t)
            })
            events += response.json()["events"]

        assert [e["type"] for e in events] == ["looking_away_flag"]

    def test_audio_level_and_pcm(self, client):
        session_id = _start(client)

        response = client.post(f"/api/proctoring/sessions/{session_id}/audio", json={
            "level": 80,
            "timestamp": ts(0)
        })
        assert [e["type"] for e in response.json()["events"]] == ["background_voice_detected"]

        silence = base64.b64encode(np.zeros(2048, dtype="<i2").tobytes()).decode()
        response = client.post(f"/api/proctoring/sessions/{session_id}/audio", json={
            "audio_base64": silence,
            "timestamp": ts(10)
        })
        assert response.status_code == 200
        assert response.json()["level"] == 0.0
        assert response.json()["events"] == []

    def test_audio_requires_exactly_one_input(self, client):
        session_id = _start(client)

        assert client.post(f"/api/proctoring/sessions/{session_id}/audio", json={}).status_code == 400
        assert client.post(f"/api/proctoring/sessions/{session_id}/audio", json={
            "level": 10, "audio_base64": "AAAA"
        }).status_code == 400

    def test_invalid_frame(self, client):
        session_id = _start(client)

        response = client.post(f"/api/proctoring/sessions/{session_id}/frame", json={
            "frame_base64": base64.b64encode(b"not a jpeg").decode()
        })

        assert response.status_code == 400

    def test_end_saves_report(self, client):
        session_id = _start(client)
        client.post(f"/api/proctoring/sessions/{session_id}/objects", json={
            "detections": [{"class": "book", "score": 0.9, "bbox": [0, 0, 10, 10]}],
            "timestamp": ts(1)
        })

        response = client.post(f"/api/proctoring/sessions/{session_id}/end")

        assert response.status_code == 200
        data = response.json()
        assert data["saved"] is True
        assert data["report"]["summary"]["finalScore"] == 90
        assert data["report"]["candidateName"] == "cand-api"

        reports = client.get("/api/proctoring/reports").json()
        assert reports[0]["id"] == data["report_id"]

        # ending again returns the same report without saving twice
        again = client.post(f"/api/proctoring/sessions/{session_id}/end").json()
        assert again["report_id"] == data["report_id"]
        assert again["report"] == data["report"]
        assert len(client.get("/api/proctoring/reports").json()) == 1

    def test_observing_ended_session_conflicts(self, client):
        session_id = _start(client)
        client.post(f"/api/proctoring/sessions/{session_id}/end")

        response = client.post(f"/api/proctoring/sessions/{session_id}/audio", json={"level": 80})
        assert response.status_code == 409

        status = client.get(f"/api/proctoring/sessions/{session_id}").json()
        assert status["state"] == "ended"
        assert status["events"] == 0

    def test_reset_clears_log(self, client):
        session_id = _start(client)
        client.post(f"/api/proctoring/sessions/{session_id}/audio", json={"level": 80, "timestamp": ts(0)})

        response = client.post(f"/api/proctoring/sessions/{session_id}/reset")

        assert response.status_code == 200
        assert client.get(f"/api/proctoring/sessions/{session_id}").json()["events"] == 0

    def test_provisional_report(self, client):
        session_id = _start(client)
        client.post(f"/api/proctoring/sessions/{session_id}/audio", json={"level": 99, "timestamp": ts(0)})

        report = client.get(f"/api/proctoring/sessions/{session_id}/report").json()

        assert report["endTime"] is None
        assert report["events"][0]["message"] == "Background audio detected (level 99)"


class TestSaveFailure:
    """Tests for persistence failures surfacing through the API"""

    @pytest.fixture
    def failing_client(self, app):
        from fastapi.testclient import TestClient
        from interview_proctor.proctor.errors import ReportSaveFailed
        from interview_proctor.proctor.storage import BaseReportStore, get_report_store

        class FailingStore(BaseReportStore):
            def save_report(self, report):
                raise ReportSaveFailed("Failed to save report")

            def list_reports(self):
                return []

        app.dependency_overrides[get_report_store] = lambda: FailingStore()
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_end_keeps_report_when_save_fails(self, failing_client):
        session_id = _start(failing_client)

        response = failing_client.post(f"/api/proctoring/sessions/{session_id}/end")

        assert response.status_code == 200
        data = response.json()
        assert data["saved"] is False
        assert data["error"] == "Failed to save report"
        assert data["report"]["summary"]["finalScore"] == 100

        retry = failing_client.post(f"/api/proctoring/sessions/{session_id}/save")
        assert retry.status_code == 502

    def test_save_report_endpoint_error(self, failing_client):
        response = failing_client.post("/api/proctoring/save-report", json={"candidateName": "x"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save report"}


class TestReportEndpoints:
    """Tests for save-report and reports"""

    def test_save_and_list(self, client):
        for name in ("first", "second"):
            response = client.post("/api/proctoring/save-report", json={
                "candidateName": name,
                "startTime": ts(0),
                "endTime": ts(60),
                "durationMs": 60000,
                "events": [],
                "summary": {"counts": {}, "deductions": 0, "finalScore": 100}
            })
            assert response.status_code == 200
            assert response.json()["message"] == "Report saved successfully"

        names = [r["candidateName"] for r in client.get("/api/proctoring/reports").json()]
        assert names == ["second", "first"]

    def test_candidate_required(self, client):
        response = client.post("/api/proctoring/save-report", json={"events": []})

        assert response.status_code == 422
