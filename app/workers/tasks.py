"""
RQ Task Definitions
Defines the task functions that are executed by workers.
"""

import logging
import asyncio
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Helper to run async code in sync context (for RQ)."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    if loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def run_image_generation_task(job_id: str) -> Dict[str, Any]:
    """
    RQ task for the image generation pipeline.

    The pipeline records its own outcome on the job row, so this task
    returns normally for failed generations too.

    Args:
        job_id: generation_jobs row id

    Returns:
        Dict with job results
    """
    from app.workers.pipeline import ImageGenerationWorker

    logger.info(f"[Task] Starting image generation: {job_id}")
    result = _run_async(ImageGenerationWorker().execute(job_id))
    logger.info(f"[Task] Image generation {job_id} finished: {result['status']}")
    return result
