from functools import lru_cache

from hookreview.config.settings import REVIEW_BACKEND
from hookreview.llms.dify import DifyReviewClient
from hookreview.llms.litellm_provider import LiteLLMProvider
from hookreview.llms.review_client import ReviewClient
from hookreview.utils.logger import logger


@lru_cache(maxsize=None)
def review_client() -> ReviewClient:
    """
    Factory function to get the review backend client.
    Uses lru_cache to ensure a single instance is created (singleton pattern).
    """
    if REVIEW_BACKEND == "dify":
        logger.info("Using Dify review backend.")
        return DifyReviewClient()
    elif REVIEW_BACKEND == "litellm":
        logger.info("Using LiteLLM review backend.")
        return LiteLLMProvider()
    else:
        raise NotImplementedError(f"Review backend '{REVIEW_BACKEND}' not implemented.")
