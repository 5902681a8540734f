import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "production").lower()
DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"

QUEUE_MODE = os.getenv("QUEUE_MODE", "memory")
VALID_QUEUE_MODES = ["memory", "redis"]
if QUEUE_MODE not in VALID_QUEUE_MODES:
    raise ValueError(
        f"Invalid QUEUE_MODE: {QUEUE_MODE}. Must be one of {VALID_QUEUE_MODES}"
    )

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REVIEW_QUEUE_NAME = os.getenv("REVIEW_QUEUE_NAME", "reviews")
QUEUE_MAX_SIZE = int(os.getenv("QUEUE_MAX_SIZE", 100))
WORKER_COUNT = int(os.getenv("WORKER_COUNT", 2))
# Seconds a single review run may take before it is marked failed.
JOB_TIMEOUT = int(os.getenv("JOB_TIMEOUT", 900))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hookreview.db")

LOG_DRIVER: str = os.getenv("LOG_DRIVER", "console")
LOG_FILE: str = os.getenv("LOG_FILE", "hookreview.log")

REVIEW_BACKEND = os.getenv("REVIEW_BACKEND", "dify")
VALID_REVIEW_BACKENDS = ["dify", "litellm"]
if REVIEW_BACKEND not in VALID_REVIEW_BACKENDS:
    raise ValueError(
        f"Invalid REVIEW_BACKEND: {REVIEW_BACKEND}. Must be one of {VALID_REVIEW_BACKENDS}"
    )
DEFAULT_REVIEW_ENDPOINT = os.getenv(
    "DEFAULT_REVIEW_ENDPOINT", "https://api.dify.ai/v1/workflows/run"
)
COST_PER_1000_TOKENS = Decimal(os.getenv("COST_PER_1000_TOKENS", "0.002"))

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 30))
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", 3))
RETRY_BACKOFF_BASE = float(os.getenv("RETRY_BACKOFF_BASE", 2))

REQUIRE_WEBHOOK_SIGNATURE = (
    os.getenv("REQUIRE_WEBHOOK_SIGNATURE", "false").lower() == "true"
)
# Model used by the litellm backend when a rule names no model of its own.
LITELLM_MODEL = os.getenv("LITELLM_MODEL", "gpt-4o-mini")
