"""Outbound HTTP with a bounded retry policy.

Transient failures (connection errors, timeouts, 5xx, 408 and 429) are
retried, sleeping ``RETRY_BACKOFF_BASE ** attempt`` seconds after each failed
attempt. Any other non-success response fails immediately.
"""

import time
from typing import Any, Callable, Optional, TypeVar

import requests

from hookreview.config import settings
from hookreview.core.exceptions import (
    PermanentTransportError,
    TransientTransportError,
)
from hookreview.utils.logger import logger

T = TypeVar("T")

TRANSIENT_STATUS_CODES = {408, 429}


def is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in TRANSIENT_STATUS_CODES


def call_with_retry(
    operation: Callable[[], T],
    description: str,
    attempts: Optional[int] = None,
    backoff_base: Optional[float] = None,
) -> T:
    """Run ``operation`` until it succeeds or raises a non-transient error.

    Only ``TransientTransportError`` is retried. The last one is re-raised once
    the attempts are exhausted.
    """
    attempts = attempts or settings.RETRY_ATTEMPTS
    backoff_base = backoff_base if backoff_base is not None else settings.RETRY_BACKOFF_BASE

    for attempt in range(1, attempts):
        try:
            return operation()
        except TransientTransportError as e:
            delay = backoff_base**attempt
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}): {e}. "
                f"Retrying in {delay}s."
            )
            time.sleep(delay)

    try:
        return operation()
    except TransientTransportError as e:
        logger.error(f"{description} failed after {attempts} attempts: {e}")
        raise


def send_with_retry(
    method: str,
    url: str,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Send one HTTP request under the retry policy and return a 2xx response."""
    timeout = timeout or settings.HTTP_TIMEOUT
    description = f"{method.upper()} {url}"

    def _send() -> requests.Response:
        try:
            response = requests.request(method, url, timeout=timeout, **kwargs)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientTransportError(f"{description}: {e}") from e

        if response.ok:
            return response

        message = f"{description} returned HTTP {response.status_code}"
        if is_transient_status(response.status_code):
            raise TransientTransportError(
                message,
                status_code=response.status_code,
                response_text=response.text,
            )
        logger.error(f"{message} - Response: {response.text}")
        raise PermanentTransportError(
            message, status_code=response.status_code, response_text=response.text
        )

    return call_with_retry(_send, description)
