"""Units of work executed by the review workers (threads or rq workers)."""

import time
from typing import Any, Dict, Optional

from hookreview.config import settings
from hookreview.core.exceptions import RejectionError
from hookreview.models.webhook_event import CanonicalEvent
from hookreview.services.review_orchestrator import default_orchestrator
from hookreview.utils.logger import logger


def run_review(event: CanonicalEvent) -> Optional[Dict[str, Any]]:
    deadline = time.monotonic() + settings.JOB_TIMEOUT
    logger.info(f"Processing event: {event}")
    try:
        result = default_orchestrator().process(event, deadline=deadline)
    except RejectionError as e:
        logger.warning(f"Event rejected: {event} ({e})")
        return None

    if not result.success:
        logger.warning(
            f"Review of {event} did not complete: {result.error_message}"
        )
    return result.model_dump(mode="json", exclude={"file_outcomes"})


def process_review_job(event_payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """rq entry point. Events travel through redis as plain dicts."""
    return run_review(CanonicalEvent.model_validate(event_payload))
