import time
from typing import Any, Dict, Optional, Tuple

from hookreview.config import settings
from hookreview.llms.review_client import ReviewClient
from hookreview.llms.review_parser import parse_review_answer
from hookreview.models.code_review import AIReviewRequest, AIReviewResult
from hookreview.utils.http import send_with_retry
from hookreview.utils.logger import logger

ANSWER_OUTPUT_KEYS = ("text", "answer", "result", "review")


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class DifyReviewClient(ReviewClient):
    """Calls a Dify chat or workflow app in blocking mode.

    Chat apps answer with ``answer`` and ``metadata.usage``; workflow apps with
    ``data.outputs`` and token totals on ``data``.
    """

    def __init__(self, default_endpoint: Optional[str] = None):
        self.default_endpoint = default_endpoint or settings.DEFAULT_REVIEW_ENDPOINT

    def review(self, request: AIReviewRequest) -> AIReviewResult:
        endpoint = (request.endpoint or "").strip() or self.default_endpoint
        payload = {
            "inputs": {
                "file_name": request.file_name,
                "file_diff": request.file_diff,
                "file_content": request.file_content or "",
                "additional_context": request.additional_context or "",
            },
            "response_mode": "blocking",
            "user": "hookreview",
        }

        started = time.monotonic()
        logger.info(f"Requesting review of {request.file_name} from {endpoint}")
        response = send_with_retry(
            "POST",
            endpoint,
            headers={
                "Authorization": f"Bearer {request.key}",
                "Accept": "application/json",
            },
            json=payload,
        )
        duration_ms = int((time.monotonic() - started) * 1000)

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.error(f"Unreadable review response for {request.file_name}")
            return AIReviewResult(
                success=False,
                error="Failed to parse review response",
                duration_ms=duration_ms,
            )

        answer, request_id, usage = self._extract(body)
        if answer is None:
            logger.error(f"Review response for {request.file_name} has no answer")
            return AIReviewResult(
                success=False,
                error="Review response has no answer",
                duration_ms=duration_ms,
                request_id=request_id,
            )

        comments = parse_review_answer(answer)
        input_tokens = _int(usage.get("prompt_tokens"))
        output_tokens = _int(usage.get("completion_tokens"))
        return AIReviewResult(
            success=True,
            has_issues=bool(comments),
            comments=comments,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=_int(usage.get("total_tokens"))
            or input_tokens + output_tokens,
            model_name=usage.get("model"),
            duration_ms=duration_ms,
            request_id=request_id,
        )

    @staticmethod
    def _extract(
        body: Dict[str, Any]
    ) -> Tuple[Optional[str], Optional[str], Dict[str, Any]]:
        if "answer" in body:
            usage = (body.get("metadata") or {}).get("usage") or {}
            answer = body.get("answer")
            return (
                answer if isinstance(answer, str) else None,
                body.get("message_id"),
                usage,
            )

        data = body.get("data")
        if isinstance(data, dict):
            outputs = data.get("outputs") or {}
            answer = next(
                (
                    outputs[key]
                    for key in ANSWER_OUTPUT_KEYS
                    if isinstance(outputs.get(key), str)
                ),
                None,
            )
            usage = {"total_tokens": data.get("total_tokens")}
            return answer, body.get("workflow_run_id") or data.get("id"), usage

        return None, None, {}
