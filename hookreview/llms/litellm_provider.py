import time
from typing import Optional

import litellm
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from hookreview.config import settings
from hookreview.core.exceptions import (
    PermanentTransportError,
    TransientTransportError,
)
from hookreview.llms.review_client import ReviewClient
from hookreview.llms.review_parser import parse_review_answer
from hookreview.models.code_review import AIReviewRequest, AIReviewResult
from hookreview.prompts.prompts import Prompts
from hookreview.utils.http import call_with_retry
from hookreview.utils.logger import logger

TRANSIENT_ERRORS = (
    APIConnectionError,
    Timeout,
    RateLimitError,
    InternalServerError,
    ServiceUnavailableError,
)
PERMANENT_ERRORS = (
    BadRequestError,
    AuthenticationError,
    PermissionDeniedError,
    NotFoundError,
    APIError,
)


class LiteLLMProvider(ReviewClient):
    """Reviews files with any chat model LiteLLM can reach.

    A rule's review endpoint is read as the LiteLLM model id and its review key
    as the provider API key.
    """

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.LITELLM_MODEL

    def review(self, request: AIReviewRequest) -> AIReviewResult:
        model = (request.endpoint or "").strip() or self.model
        user_text = Prompts.REVIEW_PROMPT.format(
            file_name=request.file_name,
            file_diff=request.file_diff,
            file_content=request.file_content or "Not provided.",
            additional_context=request.additional_context or "None.",
        )

        def _complete():
            try:
                return litellm.completion(
                    model=model,
                    api_key=request.key or None,
                    timeout=settings.HTTP_TIMEOUT,
                    messages=[
                        {"role": "system", "content": Prompts.REVIEW_SYSTEM_PROMPT},
                        {"role": "user", "content": user_text},
                    ],
                )
            except TRANSIENT_ERRORS as e:
                raise TransientTransportError(
                    f"{model}: {e}", status_code=getattr(e, "status_code", None)
                ) from e
            except PERMANENT_ERRORS as e:
                raise PermanentTransportError(
                    f"{model}: {e}", status_code=getattr(e, "status_code", None)
                ) from e

        started = time.monotonic()
        logger.info(f"Generating review of {request.file_name} with model: {model}...")
        response = call_with_retry(_complete, f"litellm completion ({model})")
        duration_ms = int((time.monotonic() - started) * 1000)

        try:
            answer = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            logger.error(f"Unexpected completion shape from {model}: {e}")
            return AIReviewResult(
                success=False,
                error="Failed to parse review response",
                duration_ms=duration_ms,
            )

        comments = parse_review_answer(answer)
        usage = getattr(response, "usage", None)
        input_tokens = getattr(usage, "prompt_tokens", 0) or 0
        output_tokens = getattr(usage, "completion_tokens", 0) or 0
        return AIReviewResult(
            success=True,
            has_issues=bool(comments),
            comments=comments,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=getattr(usage, "total_tokens", 0)
            or input_tokens + output_tokens,
            model_name=getattr(response, "model", None) or model,
            duration_ms=duration_ms,
            request_id=getattr(response, "id", None),
        )
