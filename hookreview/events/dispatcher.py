from typing import Optional

import redis
from rq import Queue

from hookreview.config.settings import (
    JOB_TIMEOUT,
    QUEUE_MAX_SIZE,
    QUEUE_MODE,
    REDIS_HOST,
    REDIS_PORT,
    REVIEW_QUEUE_NAME,
    WORKER_COUNT,
)
from hookreview.core.exceptions import QueueFullError
from hookreview.events.jobs import process_review_job, run_review
from hookreview.events.worker_pool import ReviewWorkerPool
from hookreview.models.webhook_event import CanonicalEvent
from hookreview.utils.logger import logger

q = None
if QUEUE_MODE == "redis":
    logger.info("Using Redis for the review queue.")
    redis_conn = redis.Redis(host=REDIS_HOST, port=REDIS_PORT, db=0)
    q = Queue(REVIEW_QUEUE_NAME, connection=redis_conn)
else:
    logger.info("Using the in-process worker pool for the review queue.")

# Created by start_workers() when the application starts in memory mode.
worker_pool: Optional[ReviewWorkerPool] = None


def start_workers() -> Optional[ReviewWorkerPool]:
    global worker_pool
    if QUEUE_MODE != "memory":
        return None
    if worker_pool is None:
        worker_pool = ReviewWorkerPool(
            run_review, worker_count=WORKER_COUNT, max_size=QUEUE_MAX_SIZE
        )
        worker_pool.start()
    return worker_pool


def stop_workers(drain: bool = True) -> None:
    global worker_pool
    if worker_pool is not None:
        logger.info(f"Draining {worker_pool.pending} queued reviews before shutdown.")
        worker_pool.shutdown(drain=drain, timeout=JOB_TIMEOUT)
        worker_pool = None


class EventDispatcher:
    """Hands accepted events to the review queue without waiting for the review."""

    def dispatch(self, event: CanonicalEvent) -> None:
        logger.info(f"Dispatching event: {event} (mode: {QUEUE_MODE})")
        if QUEUE_MODE == "redis":
            if not q:
                raise RuntimeError("Redis queue not initialized.")
            if q.count >= QUEUE_MAX_SIZE:
                raise QueueFullError(
                    f"Review queue is full ({QUEUE_MAX_SIZE} pending jobs)"
                )
            q.enqueue(
                process_review_job,
                event.model_dump(mode="json"),
                job_timeout=JOB_TIMEOUT,
            )
        elif QUEUE_MODE == "memory":
            if worker_pool is None:
                raise RuntimeError("Review worker pool not started.")
            worker_pool.submit(event)
        else:
            raise ValueError(
                f"Unknown QUEUE_MODE: '{QUEUE_MODE}'. Must be 'memory' or 'redis'."
            )
