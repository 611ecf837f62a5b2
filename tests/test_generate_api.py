"""
Tests for the /api/generate-image routes.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models import GenerationJob
from app.services.job_store import JobRepository
from app.workers.base import NoImageInResponseError

BASE = "/api/generate-image"


class TestCreateJob:
    """POST /api/generate-image"""

    def test_missing_fields(self, client, business):
        assert client.post(BASE, json={"prompt": "x"}).status_code == 400
        assert client.post(BASE, json={"businessId": business.id}).status_code == 400
        assert client.post(BASE, json={"businessId": business.id, "prompt": "   "}).status_code == 400

    def test_unknown_business(self, client, business):
        response = client.post(BASE, json={"businessId": "nope", "prompt": "x"})
        assert response.status_code == 404

    def test_returns_processing_and_runs_job(self, client, business, fake_gemini):
        response = client.post(BASE, json={"businessId": business.id, "prompt": "A latte", "aspectRatio": "9:16"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "processing"
        assert body["jobId"]

        # BackgroundTasks run before TestClient returns
        fake_gemini.generate.assert_awaited_once()
        status = client.get(f"{BASE}/status/{body['jobId']}").json()
        assert status["status"] == "completed"
        assert status["asset"]["content"].endswith(".png")
        assert status["asset"]["aspectRatio"] == "9:16"
        assert status["resultAssetId"] == status["asset"]["id"]

    def test_insert_failure(self, client, business):
        with patch.object(JobRepository, "create", side_effect=OperationalError("INSERT", {}, Exception("db down"))):
            response = client.post(BASE, json={"businessId": business.id, "prompt": "x"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to create job"

    def test_rq_backend_enqueues(self, client, business, fake_gemini, monkeypatch):
        monkeypatch.setattr(settings, "JOB_BACKEND", "rq")
        with patch("app.api.generate.enqueue_generation") as enqueue:
            response = client.post(BASE, json={"businessId": business.id, "prompt": "x"})

        job_id = response.json()["jobId"]
        enqueue.assert_called_once_with(job_id, business.id)
        fake_gemini.generate.assert_not_awaited()
        assert client.get(f"{BASE}/status/{job_id}").json()["stage"] == "queued"

    def test_enqueue_failure_marks_job_failed(self, client, business, db, monkeypatch):
        monkeypatch.setattr(settings, "JOB_BACKEND", "rq")
        with patch("app.api.generate.enqueue_generation", side_effect=ConnectionError("redis down")):
            response = client.post(BASE, json={"businessId": business.id, "prompt": "x"})

        assert response.status_code == 500
        job = db.query(GenerationJob).one()
        assert job.status == "failed"
        assert "redis down" in job.error_message


class TestJobStatus:
    """GET /api/generate-image/status/{jobId}"""

    def test_unknown_job(self, client):
        assert client.get(f"{BASE}/status/missing").status_code == 404

    def test_processing_job_has_no_asset(self, client, make_job):
        job = make_job()
        body = client.get(f"{BASE}/status/{job.id}").json()

        assert body["id"] == job.id
        assert body["status"] == "processing"
        assert body["stage"] == "queued"
        assert body["progressMessage"] == "Queued for generation..."
        assert body["asset"] is None
        assert body["errorMessage"] is None

    def test_failed_job_reports_reason(self, client, business, fake_gemini):
        fake_gemini.generate.side_effect = NoImageInResponseError()
        job_id = client.post(BASE, json={"businessId": business.id, "prompt": "x"}).json()["jobId"]

        body = client.get(f"{BASE}/status/{job_id}").json()
        assert body["status"] == "failed"
        assert body["errorMessage"] == "No image in response"
        assert body["asset"] is None

    def test_status_is_read_only(self, client, business):
        job_id = client.post(BASE, json={"businessId": business.id, "prompt": "x"}).json()["jobId"]
        first = client.get(f"{BASE}/status/{job_id}").json()
        second = client.get(f"{BASE}/status/{job_id}").json()
        assert first == second


class TestPendingJobs:
    """GET /api/generate-image/pending/{businessId}"""

    def test_lists_active_newest_first(self, client, db, make_job, business):
        older = make_job(prompt="older")
        newer = make_job(prompt="newer")
        done = make_job(prompt="done")
        older.created_at = datetime.utcnow() - timedelta(minutes=5)
        db.commit()
        JobRepository(db).complete(done.id, "asset_1")

        body = client.get(f"{BASE}/pending/{business.id}").json()

        assert [job["prompt"] for job in body["jobs"]] == ["newer", "older"]
        assert body["jobs"][0]["businessId"] == business.id
        assert body["jobs"][0]["status"] == "processing"

    def test_other_business_empty(self, client, make_job):
        make_job()
        assert client.get(f"{BASE}/pending/someone_else").json() == {"jobs": []}


class TestDeleteJob:
    """DELETE /api/generate-image/job/{jobId}"""

    def test_delete_then_404(self, client, make_job):
        job = make_job()

        response = client.delete(f"{BASE}/job/{job.id}")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"{BASE}/status/{job.id}").status_code == 404

    def test_delete_unknown_is_success(self, client):
        assert client.delete(f"{BASE}/job/missing").json() == {"success": True}

    def test_delete_completed_job(self, client, business):
        job_id = client.post(BASE, json={"businessId": business.id, "prompt": "x"}).json()["jobId"]
        assert client.delete(f"{BASE}/job/{job_id}").status_code == 200
        assert client.get(f"{BASE}/status/{job_id}").status_code == 404

    def test_delete_failure(self, client, make_job):
        job = make_job()
        with patch.object(JobRepository, "delete", side_effect=OperationalError("DELETE", {}, Exception("db down"))):
            response = client.delete(f"{BASE}/job/{job.id}")
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to kill job"


@pytest.mark.parametrize("path", ["/health", "/"])
def test_service_endpoints(client, path):
    assert client.get(path).status_code == 200
