#!/usr/bin/env python3
"""
Generation Worker Launcher
Runs RQ workers that execute image generation jobs enqueued by the API
(JOB_BACKEND=rq).

Usage:
    python scripts/run_workers.py                    # generation + default queues
    python scripts/run_workers.py --workers 4        # 4 worker processes
    python scripts/run_workers.py --burst            # drain the queues, then exit
    python scripts/run_workers.py --check            # Redis + queue depth, then exit
"""

import argparse
import json
import logging
import os
import signal
import sys
from multiprocessing import Process
from typing import List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rq import Worker

from app.core.logging import configure_logging
from app.core.redis import Queues, get_redis, redis_health_check
from app.workers.queue import get_queue_manager

logger = logging.getLogger("brand_studio.workers")


def work(queues: List[str], name: str, burst: bool):
    """Run one RQ worker in the current process until stopped (or drained, with burst)."""
    manager = get_queue_manager()
    worker = Worker(
        [manager.get_queue(queue) for queue in queues],
        connection=get_redis(),
        name=name,
        job_monitoring_interval=5,
    )
    logger.info(f"[Workers] {name} listening on {', '.join(queues)}")
    worker.work(burst=burst)


def spawn(queues: List[str], count: int, burst: bool):
    """Run `count` workers as child processes and wait for them."""
    processes = [
        Process(target=work, args=(queues, f"gen-{os.getpid()}-{i}", burst), name=f"gen-worker-{i}")
        for i in range(1, count + 1)
    ]

    def stop(signum, frame):
        logger.info("[Workers] Stopping worker processes")
        for process in processes:
            if process.is_alive():
                process.terminate()

    signal.signal(signal.SIGTERM, stop)
    signal.signal(signal.SIGINT, stop)

    for process in processes:
        process.start()
        logger.info(f"[Workers] Started {process.name} (PID {process.pid})")
    for process in processes:
        process.join()


def check() -> int:
    """Print Redis health and queue depth; non-zero exit when Redis is unreachable."""
    health = redis_health_check()
    report = {"redis": health}
    if health.get("connected"):
        report["queues"] = get_queue_manager().get_queue_stats()
    print(json.dumps(report, indent=2))
    return 0 if health.get("connected") else 1


def main():
    parser = argparse.ArgumentParser(description="Run Brand Studio generation workers")
    parser.add_argument("--queues", "-q", nargs="+", default=list(Queues.ALL),
                        help="Queues to listen on, highest priority first")
    parser.add_argument("--workers", "-w", type=int, default=1, help="Worker processes (default: 1)")
    parser.add_argument("--burst", "-b", action="store_true", help="Exit once the queues are empty")
    parser.add_argument("--check", action="store_true", help="Report Redis and queue status, then exit")
    args = parser.parse_args()

    configure_logging()

    if args.check:
        sys.exit(check())

    health = redis_health_check()
    if not health.get("connected"):
        logger.error(f"[Workers] Redis unreachable at {health.get('url')}: {health.get('error')}")
        sys.exit(1)
    logger.info(f"[Workers] Redis {health.get('redis_version')}; starting {args.workers} worker(s)")

    if args.workers == 1:
        work(args.queues, f"gen-{os.getpid()}", args.burst)
    else:
        spawn(args.queues, args.workers, args.burst)


if __name__ == "__main__":
    main()
