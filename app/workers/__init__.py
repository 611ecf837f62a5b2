# Workers package - async job processing with RQ

from app.workers.base import (
    WorkerStatus,
    WorkerException,
    InvalidJobError,
    TransientError,
    GenerationTimeoutError,
    NoImageInResponseError,
    StorageUploadError,
    BaseWorker
)
from app.workers.queue import (
    QueueManager,
    get_queue_manager,
    enqueue_generation,
    get_queue_stats
)
from app.workers.tasks import run_image_generation_task

__all__ = [
    # Base
    "WorkerStatus",
    "WorkerException",
    "InvalidJobError",
    "TransientError",
    "GenerationTimeoutError",
    "NoImageInResponseError",
    "StorageUploadError",
    "BaseWorker",
    # Queue
    "QueueManager",
    "get_queue_manager",
    "enqueue_generation",
    "get_queue_stats",
    # Tasks
    "run_image_generation_task",
]
