"""
Base Worker Classes
Provides the worker exception hierarchy and the base class for RQ workers
with stage tracking, error handling, and monitoring.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import datetime
from enum import Enum

from rq import get_current_job
from rq.job import Job

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Worker status recorded in RQ job meta."""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class WorkerException(Exception):
    """Base exception for pipeline errors. The message becomes the job's error_message."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class InvalidJobError(WorkerException):
    """The job cannot run as stored (missing job or business, bad input)."""


class TransientError(WorkerException):
    """An external service failed or timed out; a new request may succeed."""


class GenerationTimeoutError(TransientError):
    """The image model did not answer within its wall-clock budget."""

    def __init__(self, timeout: float):
        super().__init__(
            f"Image generation timed out after {timeout:g}s",
            details={"timeout": timeout},
        )
        self.timeout = timeout


class NoImageInResponseError(WorkerException):
    """The model answered without an image part."""

    def __init__(self, details: Optional[dict] = None):
        super().__init__("No image in response", details=details)


class StorageUploadError(TransientError):
    """The generated image could not be stored."""


class BaseWorker(ABC):
    """
    Abstract base class for RQ workers.

    Features:
    - Stage tracking on the RQ job meta
    - Structured logging with durations
    - Error logging with context
    """

    TASK_NAME = "task"

    def __init__(self):
        self.start_time: Optional[datetime] = None

    def _get_current_job(self) -> Optional[Job]:
        """Get the current RQ job context (None outside a worker)."""
        return get_current_job()

    def _update_progress(self, stage: str, message: str = ""):
        """
        Record the current stage on the RQ job meta.

        Args:
            stage: Stage name
            message: Optional status message
        """
        job = self._get_current_job()
        if job:
            job.meta["stage"] = stage
            job.meta["progress_message"] = message
            job.meta["updated_at"] = datetime.utcnow().isoformat()
            job.save_meta()

        logger.debug(f"Stage: {stage} - {message}")

    def _set_status(self, status: WorkerStatus, details: Optional[dict] = None):
        """Set worker status with optional details."""
        job = self._get_current_job()
        if job:
            job.meta["worker_status"] = status.value
            job.meta["status_details"] = details or {}
            job.meta["updated_at"] = datetime.utcnow().isoformat()
            job.save_meta()

    def _elapsed(self) -> float:
        return (datetime.utcnow() - self.start_time).total_seconds() if self.start_time else 0

    def _log_start(self, **context):
        """Log task start with context."""
        self.start_time = datetime.utcnow()
        self._set_status(WorkerStatus.RUNNING)
        logger.info(f"[START] {self.TASK_NAME} | Context: {context}")

    def _log_complete(self, result_summary: str = ""):
        """Log task completion with timing."""
        self._set_status(WorkerStatus.SUCCESS)
        logger.info(f"[COMPLETE] {self.TASK_NAME} | Duration: {self._elapsed():.2f}s | {result_summary}")

    def _log_error(self, error: Exception):
        """Log task error with traceback."""
        self._set_status(WorkerStatus.FAILED, {"error": str(error)})
        logger.exception(f"[ERROR] {self.TASK_NAME} | Duration: {self._elapsed():.2f}s | Error: {error}")

    @abstractmethod
    async def execute(self, *args, **kwargs) -> Any:
        """
        Execute the worker task. Must be implemented by subclasses.

        Returns:
            Task result
        """
        pass


__all__ = [
    "WorkerStatus",
    "WorkerException",
    "InvalidJobError",
    "TransientError",
    "GenerationTimeoutError",
    "NoImageInResponseError",
    "StorageUploadError",
    "BaseWorker",
]
