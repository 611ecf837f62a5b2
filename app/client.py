"""
Generation API Client
Async client for submitting generation jobs and polling them to completion.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.schemas.job import JobStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)


class PollTimeoutError(Exception):
    """The job did not reach a terminal status within max_wait."""

    def __init__(self, job_id: str, max_wait: float, last_status: Optional[Dict[str, Any]] = None):
        super().__init__(f"Job {job_id} not finished after {max_wait:g}s")
        self.job_id = job_id
        self.last_status = last_status


class GenerationClient:
    """
    Client for the /api/generate-image endpoints.

    Usage:
        async with GenerationClient("http://localhost:8000") as client:
            job = await client.submit({"businessId": "...", "prompt": "..."})
            result = await client.wait_for_completion(job["jobId"])
    """

    def __init__(self, base_url: str = "http://localhost:8000", http_client: Optional[httpx.AsyncClient] = None):
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=30.0)

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def submit(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """POST a generation request; returns {jobId, status}."""
        response = await self._client.post("/api/generate-image", json=request)
        response.raise_for_status()
        return response.json()

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        response = await self._client.get(f"/api/generate-image/status/{job_id}")
        response.raise_for_status()
        return response.json()

    async def list_pending(self, business_id: str) -> list:
        response = await self._client.get(f"/api/generate-image/pending/{business_id}")
        response.raise_for_status()
        return response.json()["jobs"]

    async def delete_job(self, job_id: str) -> bool:
        response = await self._client.delete(f"/api/generate-image/job/{job_id}")
        response.raise_for_status()
        return response.json().get("success", False)

    async def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 2.0,
        max_wait: float = 120.0,
    ) -> Dict[str, Any]:
        """
        Poll until the job is completed or failed.

        Returns:
            The final status payload (check its "status" field)

        Raises:
            PollTimeoutError: still running after max_wait seconds
            httpx.HTTPStatusError: the job disappeared (404) or the API errored
        """
        deadline = time.monotonic() + max_wait
        last = None
        while True:
            last = await self.get_status(job_id)
            if last["status"] in TERMINAL_STATUSES:
                logger.info(f"[Client] Job {job_id} finished: {last['status']}")
                return last

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise PollTimeoutError(job_id, max_wait, last)
            logger.debug(f"[Client] Job {job_id}: {last.get('stage')} - {last.get('progressMessage')}")
            await asyncio.sleep(min(poll_interval, remaining))
