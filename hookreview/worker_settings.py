"""Settings module for ``rq worker -c hookreview.worker_settings``."""

from hookreview.config.db import init_db
from hookreview.config.settings import (
    QUEUE_MODE,
    REDIS_HOST,
    REDIS_PORT,
    REVIEW_QUEUE_NAME,
)
from hookreview.utils.logger import logger, setup_logger

# Set up logging for the worker
setup_logger()

if QUEUE_MODE != "redis":
    raise ValueError(f"Invalid QUEUE_MODE for worker: {QUEUE_MODE}")

logger.info("Worker using Redis for the review queue.")
init_db()

# Read by rq.
REDIS_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/0"
QUEUES = [REVIEW_QUEUE_NAME]
