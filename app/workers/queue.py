"""
Generation Queue
Enqueues image generation jobs on RQ and reports queue depth for /health.
"""

import logging
from typing import Dict, Optional
from datetime import datetime

from rq import Queue
from rq.job import Job

from app.core.redis import get_redis, Queues
from app.core.config import settings

logger = logging.getLogger(__name__)


def rq_job_id(job_id: str) -> str:
    return f"gen_{job_id}"


class QueueManager:
    """
    RQ queues for generation jobs.

    Jobs are enqueued once; there is no automatic retry. The generation_jobs
    row, not the RQ job, is the record callers poll.
    """

    def __init__(self):
        self._queues: Dict[str, Queue] = {}
        self._redis = None

    @property
    def redis(self):
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def get_queue(self, queue_name: str = Queues.DEFAULT) -> Queue:
        if queue_name not in self._queues:
            self._queues[queue_name] = Queue(
                name=queue_name,
                connection=self.redis,
                default_timeout=settings.JOB_TIMEOUT_GENERATION
            )
            logger.debug(f"Created queue: {queue_name}")
        return self._queues[queue_name]

    def enqueue_generation(self, job_id: str, business_id: str) -> Job:
        """
        Enqueue an image generation job.

        Args:
            job_id: generation_jobs row id
            business_id: Owning business (recorded in meta)

        Returns:
            RQ Job instance
        """
        from app.workers.tasks import run_image_generation_task

        job = self.get_queue(Queues.GENERATION).enqueue(
            run_image_generation_task,
            job_id,
            job_id=rq_job_id(job_id),
            job_timeout=settings.JOB_TIMEOUT_GENERATION,
            meta={
                "type": "image_generation",
                "business_id": business_id,
                "created_at": datetime.utcnow().isoformat(),
            }
        )

        logger.info(f"[Queue] Enqueued generation job {job_id} (business {business_id})")
        return job

    def get_queue_stats(self) -> Dict[str, Dict[str, int]]:
        """Job counts per registry for each queue the workers listen on."""
        stats = {}
        for name in Queues.ALL:
            queue = self.get_queue(name)
            stats[name] = {
                "queued": len(queue),
                "started": queue.started_job_registry.count,
                "finished": queue.finished_job_registry.count,
                "failed": queue.failed_job_registry.count,
            }
        return stats


_queue_manager: Optional[QueueManager] = None


def get_queue_manager() -> QueueManager:
    global _queue_manager
    if _queue_manager is None:
        _queue_manager = QueueManager()
    return _queue_manager


def enqueue_generation(job_id: str, business_id: str) -> Job:
    return get_queue_manager().enqueue_generation(job_id, business_id)


def get_queue_stats() -> Dict[str, Dict[str, int]]:
    return get_queue_manager().get_queue_stats()


__all__ = [
    "QueueManager",
    "get_queue_manager",
    "enqueue_generation",
    "get_queue_stats",
    "rq_job_id",
]
