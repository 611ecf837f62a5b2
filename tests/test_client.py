"""
Tests for the polling client.
"""

import httpx
import pytest

from app.client import GenerationClient, PollTimeoutError


def client_for(statuses, calls):
    """Client whose status endpoint walks through `statuses` (last one repeats)."""
    def handler(request: httpx.Request):
        calls.append((request.method, request.url.path))
        if request.method == "POST":
            return httpx.Response(200, json={"jobId": "job-1", "status": "processing"})
        if request.method == "DELETE":
            return httpx.Response(200, json={"success": True})
        if request.url.path.startswith("/api/generate-image/pending/"):
            return httpx.Response(200, json={"jobs": [{"id": "job-1"}]})
        index = min(len([c for c in calls if c[0] == "GET"]) - 1, len(statuses) - 1)
        return httpx.Response(200, json=statuses[index])

    http = httpx.AsyncClient(base_url="http://api", transport=httpx.MockTransport(handler))
    return GenerationClient(http_client=http)


PROCESSING = {"id": "job-1", "status": "processing", "stage": "calling_model", "progressMessage": "Generating image..."}


class TestPolling:
    """wait_for_completion"""

    @pytest.mark.asyncio
    async def test_stops_on_completed(self):
        calls = []
        client = client_for([PROCESSING, PROCESSING, {"id": "job-1", "status": "completed", "asset": {"id": "a"}}], calls)

        result = await client.wait_for_completion("job-1", poll_interval=0.01, max_wait=5)

        assert result["status"] == "completed"
        assert result["asset"]["id"] == "a"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_failed_is_terminal(self):
        calls = []
        client = client_for([{"id": "job-1", "status": "failed", "errorMessage": "No image in response"}], calls)

        result = await client.wait_for_completion("job-1", poll_interval=0.01, max_wait=5)

        assert result["errorMessage"] == "No image in response"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_wait(self):
        client = client_for([PROCESSING], [])

        with pytest.raises(PollTimeoutError) as exc:
            await client.wait_for_completion("job-1", poll_interval=0.01, max_wait=0.05)
        assert exc.value.last_status["stage"] == "calling_model"

    @pytest.mark.asyncio
    async def test_deleted_job_raises(self):
        http = httpx.AsyncClient(
            base_url="http://api",
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={"detail": "Job not found"})),
        )
        client = GenerationClient(http_client=http)

        with pytest.raises(httpx.HTTPStatusError):
            await client.wait_for_completion("job-1", poll_interval=0.01, max_wait=1)


class TestRequests:
    """submit / list_pending / delete_job"""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        calls = []
        async with client_for([PROCESSING], calls) as client:
            job = await client.submit({"businessId": "biz_acme", "prompt": "x"})
            pending = await client.list_pending("biz_acme")
            deleted = await client.delete_job(job["jobId"])

        assert job == {"jobId": "job-1", "status": "processing"}
        assert pending == [{"id": "job-1"}]
        assert deleted is True
        assert calls == [
            ("POST", "/api/generate-image"),
            ("GET", "/api/generate-image/pending/biz_acme"),
            ("DELETE", "/api/generate-image/job/job-1"),
        ]
